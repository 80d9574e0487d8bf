import dataclasses
import logging
import re
from collections import Counter
from datetime import date
from pathlib import PurePosixPath
from typing import Any, Dict, Iterable, List, Optional, Protocol, Set, Tuple

import yaml

from weread_sync.core.config import Settings
from weread_sync.core.errors import ConfigurationError, PersistenceFailure
from weread_sync.core.frontmatter import DOC_TYPE, add_tags, build_tags, merge_tags
from weread_sync.core.models import AnnotationFile, Highlight, Metadata, Notebook, SyncResult
from weread_sync.core.renderer import Renderer
from weread_sync.utils.paths import join_vault_path

logger = logging.getLogger(__name__)

OFFICIAL_ACCOUNT = '公众号'   # Articles from WeChat official accounts
UNCATEGORIZED = '未分类'

class NoteStorage(Protocol):
    async def exists(self, path: str) -> bool: ...
    async def read(self, path: str) -> str: ...
    async def write(self, path: str, content: str) -> None: ...
    async def create(self, path: str, content: str) -> None: ...
    async def create_folder(self, path: str) -> None: ...
    async def list_notes(self) -> List[Tuple[str, Dict[str, Any]]]: ...

def sanitize_title(title: str) -> str:
    """Sanitizes a book title to be safe for filenames and Obsidian links."""
    # Characters Obsidian links choke on, then characters invalid in files
    safe_title = re.sub(r"[':#|]", '', title)
    safe_title = re.sub(r'[<>:"/\\|?*\x00-\x1f]', '', safe_title)
    return safe_title.strip()

def find_duplicate_titles(titles: Iterable[str]) -> Set[str]:
    """Returns the sanitized titles shared by more than one book."""
    counts = Counter(sanitize_title(title) for title in titles)
    return {title for title, count in counts.items() if count > 1}

def get_file_name(metadata: Metadata, file_name_type: str) -> str:
    """File name of a new note, without the .md extension."""
    # A title made only of stripped characters would give a hidden '.md'
    base_name = sanitize_title(metadata.title) or metadata.book_id
    if file_name_type == 'BOOK_NAME-AUTHOR':
        if metadata.duplicate:
            return f"{base_name}-{metadata.author}-{metadata.book_id}"
        return f"{base_name}-{metadata.author}"
    if metadata.duplicate or file_name_type == 'BOOK_NAME-BOOKID':
        return f"{base_name}-{metadata.book_id}"
    return base_name

def get_sub_folder_path(metadata: Metadata, sub_folder_type: str) -> str:
    if sub_folder_type == 'title':
        return sanitize_title(metadata.title)
    if sub_folder_type == 'category':
        if metadata.category:
            return metadata.category.split('-')[0]
        return OFFICIAL_ACCOUNT if metadata.author == OFFICIAL_ACCOUNT else UNCATEGORIZED
    return ''

def get_note_folder(metadata: Metadata, settings: Settings) -> str:
    """
    Vault folder for a new note. note_location may use {title}, {author},
    {category} and {book_id} placeholders.
    """
    try:
        location = settings.note_location.format(
            title=sanitize_title(metadata.title),
            author=metadata.author,
            category=metadata.category or UNCATEGORIZED,
            book_id=metadata.book_id,
        )
    except (KeyError, IndexError, ValueError) as e:
        raise ConfigurationError(f"Invalid note location '{settings.note_location}': {e!r}") from e
    return join_vault_path(location, get_sub_folder_path(metadata, settings.sub_folder_type))

class NotebookFileManager:
    """Decides where each notebook goes in the vault, and writes it there."""

    def __init__(self, storage: NoteStorage, renderer: Renderer, settings: Settings):
        self.storage = storage
        self.renderer = renderer
        self.settings = settings

    async def get_notebook_files(self) -> List[AnnotationFile]:
        """Scans the vault for notes previously written by the sync."""
        files = []
        for path, tags in await self.storage.list_notes():
            if tags.get('doc_type') != DOC_TYPE:
                continue
            if not tags.get('bookId'):
                logger.warning(f"{path} is a synced note without a bookId, ignoring it")
                continue
            files.append(AnnotationFile(
                book_id=str(tags['bookId']),
                note_count=_as_int(tags.get('noteCount')),
                review_count=_as_int(tags.get('reviewCount')),
                file=path,
            ))
        return files

    async def save_notebook(self, notebook: Notebook, local_file: Optional[AnnotationFile],
                            force: bool = False) -> SyncResult:
        metadata = notebook.metadata
        if local_file:
            if not force and not _is_outdated(local_file, metadata):
                logger.info(f"{metadata.title}: no new annotations, skipping {local_file.file}")
                return SyncResult(metadata.book_id, metadata.title, 'skipped', local_file.file)

            logger.info(f"Updating {local_file.file}")
            existing_content = await self._call(self.storage.read(local_file.file))
            fresh_content = self.renderer.render(notebook)
            try:
                content = merge_tags(build_tags(metadata), existing_content, fresh_content)
            except yaml.YAMLError as e:
                raise PersistenceFailure(f"Cannot merge into {local_file.file}: {e}") from e
            await self._call(self.storage.write(local_file.file, content))
            return SyncResult(metadata.book_id, metadata.title, 'updated', local_file.file)

        path = await self.get_new_notebook_file_path(notebook)
        logger.info(f"Creating {path}")
        content = add_tags(self.renderer.render(notebook), build_tags(metadata))
        await self._call(self.storage.create(path, content))
        return SyncResult(metadata.book_id, metadata.title, 'created', path)

    async def get_new_notebook_file_path(self, notebook: Notebook) -> str:
        """
        Path of a new note. When the usual name is taken (a user note, or a
        book with the same title synced in an earlier pass) the bookId is
        appended; if that is taken too the book fails rather than overwrite.
        """
        metadata = notebook.metadata
        folder = get_note_folder(metadata, self.settings)
        if not await self._call(self.storage.exists(folder)):
            logger.info(f"Folder {folder} not found. Will be created")
            await self._call(self.storage.create_folder(folder))

        path = join_vault_path(folder, f"{get_file_name(metadata, self.settings.file_name_type)}.md")
        if not await self._call(self.storage.exists(path)):
            return path

        fallback_name = get_file_name(dataclasses.replace(metadata, duplicate=True), self.settings.file_name_type)
        fallback = join_vault_path(folder, f"{fallback_name}.md")
        if fallback == path or await self._call(self.storage.exists(fallback)):
            raise PersistenceFailure(f"{path} already exists, not overwriting it")
        logger.warning(f"{path} already exists, writing {metadata.title} to {fallback}")
        return fallback

    async def append_daily_note(self, metadata: Metadata, highlights: List[Highlight],
                                today: Optional[date] = None, note_path: Optional[str] = None) -> bool:
        """
        Appends block references to the given highlights to today's daily note.
        note_path is the synced note the references point into; by default it
        is the name a new note would get. References already in the daily
        note are not added again.
        Returns False when the daily note does not exist yet.
        """
        path = self.get_daily_note_path(today)
        if not await self._call(self.storage.exists(path)):
            logger.warning(f"Daily note {path} not found, create it first")
            return False

        if note_path:
            note_name = PurePosixPath(note_path).stem
        else:
            note_name = get_file_name(metadata, self.settings.file_name_type)
        existing_content = await self._call(self.storage.read(path))
        refs = [f"![[{note_name}#^{highlight.bookmark_id}]]" for highlight in highlights]
        refs = [ref for ref in refs if ref not in existing_content]
        if not refs:
            logger.info(f"Daily note {path} already links {metadata.title}")
            return True

        content = existing_content + '\n' + f"### {metadata.title}\n" + '\n'.join(refs)
        await self._call(self.storage.write(path, content))
        return True

    def get_daily_note_path(self, today: Optional[date] = None) -> str:
        today = today or date.today()
        try:
            file_name = today.strftime(self.settings.daily_notes_format)
        except ValueError as e:
            raise ConfigurationError(f"Invalid daily notes format '{self.settings.daily_notes_format}': {e}") from e
        if not file_name.strip():
            raise ConfigurationError(f"Daily notes format '{self.settings.daily_notes_format}' gives an empty name")
        return join_vault_path(self.settings.daily_notes_location, f"{file_name}.md")

    async def _call(self, operation):
        try:
            return await operation
        except OSError as e:
            raise PersistenceFailure(str(e)) from e

# --- Internal Helpers ---

def _is_outdated(local_file: AnnotationFile, metadata: Metadata) -> bool:
    return (local_file.note_count != metadata.note_count
            or local_file.review_count != metadata.review_count)

def _as_int(value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0
