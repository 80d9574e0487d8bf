"""
Front matter handling for synced notes.

Every note written by the sync carries a small YAML block:

    ---
    doc_type: weread-highlights-reviews
    bookId: '3300028078'
    noteCount: 12
    reviewCount: 3
    ---

The doc_type marker is how the inventory scan recognizes our notes; the
counters tell whether a note is behind the upstream data.
"""
from typing import Any, Dict

import frontmatter

from weread_sync.core.models import Metadata

DOC_TYPE = 'weread-highlights-reviews'

def build_tags(metadata: Metadata) -> Dict[str, Any]:
    return {
        'doc_type': DOC_TYPE,
        'bookId': metadata.book_id,
        'noteCount': metadata.note_count,
        'reviewCount': metadata.review_count,
    }

def add_tags(body: str, fields: Dict[str, Any]) -> str:
    """Prepends a front matter block to a freshly rendered note body."""
    post = frontmatter.Post(body)
    post.metadata.update(fields)
    return frontmatter.dumps(post, sort_keys=False) + '\n'

def merge_tags(fresh_fields: Dict[str, Any], existing_text: str, body: str) -> str:
    """
    Rebuilds an existing note around a fresh body.
    Keys the user added to the front matter are kept; ours are overwritten.
    """
    existing = read_tags(existing_text)
    merged = dict(existing)
    merged.update(fresh_fields)
    return add_tags(body, merged)

def read_tags(text: str) -> Dict[str, Any]:
    """
    Returns the front matter of a note, or an empty dict when it has none.
    Raises yaml.YAMLError when the block is not valid YAML.
    """
    post = frontmatter.loads(text)
    return dict(post.metadata)
