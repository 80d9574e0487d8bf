"""
Loads WeRead API payloads exported to disk.

Layout of an export directory:

    notebooks.json              # /user/notebooks response, or just its "books" list
    highlights/<bookId>.json    # /book/bookmarklist response for the book
    reviews/<bookId>.json       # /review/list response for the book

A book without a highlights or reviews file has no annotations of that kind.
"""
import json
import logging
from pathlib import Path
from typing import Any, List

from weread_sync.core.errors import MalformedPayload
from weread_sync.core.sync import BookPayload

logger = logging.getLogger(__name__)

def load_payload_bundle(export_dir: Path) -> List[BookPayload]:
    export_dir = Path(export_dir)
    notebooks_file = export_dir / "notebooks.json"
    if not notebooks_file.exists():
        raise MalformedPayload(f"{notebooks_file} not found")

    data = _read_json(notebooks_file)
    if isinstance(data, dict):
        data = data.get("books")
    if not isinstance(data, list):
        raise MalformedPayload(f"{notebooks_file} does not hold a list of books")

    payloads = []
    for entry in data:
        book_id = _book_id(entry)
        if not book_id:
            # Still synced, so that the missing id is reported for this book
            payloads.append(BookPayload(notebook=entry))
            continue
        payloads.append(BookPayload(
            notebook=entry,
            highlights=_read_optional(export_dir / "highlights" / f"{book_id}.json"),
            reviews=_read_optional(export_dir / "reviews" / f"{book_id}.json"),
        ))

    logger.info(f"Loaded {len(payloads)} books from {export_dir}")
    return payloads

# --- Internal Helpers ---

def _book_id(entry: Any) -> str:
    if not isinstance(entry, dict):
        return ""
    book = entry.get("book")
    if isinstance(book, dict) and book.get("bookId"):
        return str(book["bookId"])
    return str(entry.get("bookId") or "")

def _read_json(path: Path) -> Any:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise MalformedPayload(f"Cannot read {path}: {e}") from e

def _read_optional(path: Path) -> Any:
    """Reads a per-book payload. An unreadable file fails only that book."""
    if not path.exists():
        return {}
    try:
        return _read_json(path)
    except MalformedPayload as e:
        logger.warning(str(e))
        return None
