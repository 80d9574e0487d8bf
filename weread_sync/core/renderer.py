import re
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader, TemplateError

from weread_sync.core.errors import ConfigurationError
from weread_sync.core.models import Notebook

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"
DEFAULT_TEMPLATE = "notebook.md.j2"

class Renderer:
    """Renders the annotation body of a note (everything below the front matter)."""

    def __init__(self, template_path: Optional[Path] = None):
        env = Environment(
            loader=FileSystemLoader(str(TEMPLATES_DIR)),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        try:
            if template_path:
                self.template = env.from_string(Path(template_path).read_text(encoding="utf-8"))
            else:
                self.template = env.get_template(DEFAULT_TEMPLATE)
        except (OSError, TemplateError) as e:
            raise ConfigurationError(f"Cannot load note template {template_path or DEFAULT_TEMPLATE}: {e}") from e

    def render(self, notebook: Notebook) -> str:
        try:
            text = self.template.render(
                metadata=notebook.metadata,
                chapter_highlights=notebook.chapter_highlights,
                book_review=notebook.book_review,
            )
        except TemplateError as e:
            raise ConfigurationError(f"Note template failed for {notebook.metadata.title}: {e}") from e
        return re.sub(r'\n{3,}', '\n\n', text).strip() + '\n'
