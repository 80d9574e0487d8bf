import re
from datetime import datetime
from typing import List

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

from weread_sync.core.errors import MalformedPayload

TIMESTAMP_FORMAT = '%Y-%m-%d %H:%M:%S'

def format_timestamp(epoch_seconds: int) -> str:
    """Formats an epoch timestamp in local time, e.g. '2023-11-14 22:13:20'."""
    try:
        return datetime.fromtimestamp(epoch_seconds).strftime(TIMESTAMP_FORMAT)
    except (OverflowError, OSError, ValueError) as e:
        raise MalformedPayload(f"Invalid timestamp {epoch_seconds!r}: {e}") from e

def normalize_id(raw_id: str) -> str:
    """
    Replaces the '_' separator of WeRead ids with '-'.
    Obsidian block references only accept letters, digits and dashes.
    Applying it twice gives the same result.
    """
    return raw_id.replace('_', '-')

def html_to_markdown(html: str) -> str:
    """
    Converts the rich text body of a review to Markdown.
    Handles the tags the WeRead editor produces (paragraphs, emphasis, lists,
    quotes, headings, links, images, code); unknown tags keep their text.
    """
    if not html:
        return ""
    soup = BeautifulSoup(html, 'html.parser')
    text = _convert_children(soup)

    lines = [line.rstrip() for line in text.split('\n')]
    text = '\n'.join(lines)
    text = re.sub(r'\n{3,}', '\n\n', text)
    return text.strip()

# --- Internal Helpers ---

_BLOCK_TAGS = {'p', 'div', 'section', 'article'}
_HEADINGS = {'h1': 1, 'h2': 2, 'h3': 3, 'h4': 4, 'h5': 5, 'h6': 6}

def _convert_children(node) -> str:
    return "".join(_convert(child) for child in node.children)

def _convert(node) -> str:
    if isinstance(node, Comment):
        return ""
    if isinstance(node, NavigableString):
        return re.sub(r'\s+', ' ', str(node))
    if not isinstance(node, Tag):
        return ""

    name = node.name
    if name in ('script', 'style'):
        return ""
    if name == 'br':
        return "\n"
    if name == 'hr':
        return "\n\n---\n\n"
    if name == 'pre':
        code = node.get_text().strip('\n')
        return f"\n\n```\n{code}\n```\n\n"
    if name == 'img':
        return f"![{node.get('alt', '')}]({node.get('src', '')})"
    if name in ('ul', 'ol'):
        return _convert_list(node, ordered=(name == 'ol'))

    inner = _convert_children(node)
    if name in _BLOCK_TAGS:
        return f"\n\n{inner.strip()}\n\n"
    if name in _HEADINGS:
        return f"\n\n{'#' * _HEADINGS[name]} {inner.strip()}\n\n"
    if name == 'blockquote':
        quoted = "\n".join(f"> {line}".rstrip() for line in inner.strip().split('\n'))
        return f"\n\n{quoted}\n\n"
    if not inner.strip():
        return inner
    if name in ('strong', 'b'):
        return f"**{inner.strip()}**"
    if name in ('em', 'i'):
        return f"*{inner.strip()}*"
    if name in ('del', 's', 'strike'):
        return f"~~{inner.strip()}~~"
    if name == 'code':
        return f"`{inner.strip()}`"
    if name == 'a':
        href = node.get('href')
        return f"[{inner.strip()}]({href})" if href else inner
    return inner

def _convert_list(node: Tag, ordered: bool) -> str:
    items: List[str] = []
    for index, li in enumerate(node.find_all('li', recursive=False), start=1):
        prefix = f"{index}. " if ordered else "- "
        content = _convert_children(li).strip()
        lines = [line for line in content.split('\n') if line.strip()]
        if not lines:
            continue
        # Nested lists and wrapped lines stay inside the item
        items.append(prefix + lines[0] + "".join(f"\n  {line}" for line in lines[1:]))
    return "\n\n" + "\n".join(items) + "\n\n"
