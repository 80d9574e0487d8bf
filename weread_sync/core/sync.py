import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Set

from weread_sync.core.errors import MalformedPayload, WereadSyncError
from weread_sync.core.models import AnnotationFile, Notebook, SyncResult
from weread_sync.core.obsidian import NotebookFileManager, find_duplicate_titles, sanitize_title
from weread_sync.core.parser import build_notebook
from weread_sync.core.payloads import RawNotebook, decode

logger = logging.getLogger(__name__)

@dataclass
class BookPayload:
    """Raw API payloads for one book, as fetched."""
    notebook: Any                      # Entry of the notebook list: {"book": {...}, "noteCount": ..}
    highlights: Any = field(default_factory=dict)  # {"chapters": [...], "updated": [...]}
    reviews: Any = field(default_factory=dict)     # {"reviews": [{"review": {...}}]}

@dataclass
class SyncReport:
    results: List[SyncResult] = field(default_factory=list)

    def count(self, action: str) -> int:
        return sum(1 for r in self.results if r.action == action)

    @property
    def failures(self) -> List[SyncResult]:
        return [r for r in self.results if r.action == 'failed']

class SyncService:
    """
    Runs one sync pass: payloads in, notes out.
    Books are processed one after the other; a failing book is reported and
    the pass moves on to the next one.
    """

    def __init__(self, file_manager: NotebookFileManager, daily_notes: bool = False):
        self.file_manager = file_manager
        self.daily_notes = daily_notes

    async def sync(self, payloads: List[BookPayload], force: bool = False,
                   today: Optional[date] = None) -> SyncReport:
        local_files = await self.load_local_files()
        duplicates = self._find_duplicates(payloads)
        logger.info(f"Syncing {len(payloads)} books, {len(local_files)} already in the vault")

        report = SyncReport()
        for payload in payloads:
            try:
                result = await self._sync_book(payload, local_files, duplicates, force, today)
            except WereadSyncError as e:
                book_id, title = _describe(payload)
                logger.error(f"Sync failed for {title or book_id}: {e}")
                result = SyncResult(book_id, title, 'failed', error=str(e))
            report.results.append(result)

        logger.info(
            f"Sync done: {report.count('created')} created, {report.count('updated')} updated, "
            f"{report.count('skipped')} skipped, {len(report.failures)} failed"
        )
        return report

    async def load_local_files(self) -> Dict[str, AnnotationFile]:
        """Inventory of synced notes, keyed by bookId."""
        local_files: Dict[str, AnnotationFile] = {}
        for file in await self.file_manager.get_notebook_files():
            if file.book_id in local_files:
                logger.warning(
                    f"Book {file.book_id} is synced twice ({local_files[file.book_id].file}, {file.file}), "
                    f"only the first note is updated"
                )
                continue
            local_files[file.book_id] = file
        return local_files

    async def _sync_book(self, payload: BookPayload, local_files: Dict[str, AnnotationFile],
                         duplicates: Set[str], force: bool, today: Optional[date]) -> SyncResult:
        title = decode(RawNotebook, payload.notebook).book.title
        notebook = build_notebook(
            payload.notebook, payload.highlights, payload.reviews,
            duplicate=sanitize_title(title) in duplicates,
        )
        local_file = local_files.get(notebook.metadata.book_id)
        result = await self.file_manager.save_notebook(notebook, local_file, force=force)

        if self.daily_notes and result.action != 'skipped':
            await self._append_daily_note(notebook, result.path, today or date.today())
        return result

    async def _append_daily_note(self, notebook: Notebook, note_path: str, today: date) -> None:
        highlights = [
            highlight
            for chapter in notebook.chapter_highlights
            for highlight in chapter.highlights
            if date.fromtimestamp(highlight.created) == today
        ]
        if highlights:
            await self.file_manager.append_daily_note(notebook.metadata, highlights, today, note_path)

    def _find_duplicates(self, payloads: List[BookPayload]) -> Set[str]:
        titles = []
        for payload in payloads:
            try:
                titles.append(decode(RawNotebook, payload.notebook).book.title)
            except MalformedPayload:
                # Reported when the book itself is synced
                continue
        return find_duplicate_titles(titles)

# --- Internal Helpers ---

def _describe(payload: BookPayload):
    """Best effort (book_id, title) of a payload that may not decode."""
    notebook = payload.notebook if isinstance(payload.notebook, dict) else {}
    book = notebook.get('book') if isinstance(notebook.get('book'), dict) else {}
    book_id = book.get('bookId') or notebook.get('bookId') or ''
    return str(book_id), str(book.get('title') or '')
