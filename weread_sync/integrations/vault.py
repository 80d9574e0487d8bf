import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, List, Tuple

import yaml

from weread_sync.core.errors import PersistenceFailure
from weread_sync.core.frontmatter import read_tags
from weread_sync.utils.paths import ensure_dir_exists, resolve_in_vault

logger = logging.getLogger(__name__)

class VaultStorage:
    """
    Notes storage on top of a vault directory.
    Paths are vault-relative ('weread/Design.md'). Every OSError is reported
    as PersistenceFailure. File access runs in a worker thread so the event
    loop of the server stays free.
    """

    def __init__(self, vault_dir: Path):
        self.vault_dir = Path(vault_dir)

    def _resolve(self, path: str) -> Path:
        try:
            return resolve_in_vault(self.vault_dir, path)
        except ValueError as e:
            raise PersistenceFailure(str(e)) from e

    async def exists(self, path: str) -> bool:
        return await asyncio.to_thread(self._resolve(path).exists)

    async def read(self, path: str) -> str:
        return await asyncio.to_thread(self._read, path)

    async def write(self, path: str, content: str) -> None:
        await asyncio.to_thread(self._write, path, content, "w")

    async def create(self, path: str, content: str) -> None:
        """Writes a new note. Fails if the file is already there."""
        await asyncio.to_thread(self._write, path, content, "x")

    async def create_folder(self, path: str) -> None:
        await asyncio.to_thread(self._create_folder, path)

    async def list_notes(self) -> List[Tuple[str, Dict[str, Any]]]:
        """Returns (path, front matter) for every Markdown note in the vault."""
        return await asyncio.to_thread(self._list_notes)

    # --- Internal Helpers ---

    def _read(self, path: str) -> str:
        try:
            with open(self._resolve(path), "r", encoding="utf-8") as f:
                return f.read()
        except OSError as e:
            raise PersistenceFailure(f"Cannot read {path}: {e}") from e

    def _write(self, path: str, content: str, mode: str) -> None:
        try:
            with open(self._resolve(path), mode, encoding="utf-8") as f:
                f.write(content)
        except FileExistsError as e:
            raise PersistenceFailure(f"{path} already exists, not overwriting it") from e
        except OSError as e:
            raise PersistenceFailure(f"Cannot write {path}: {e}") from e

    def _create_folder(self, path: str) -> None:
        try:
            ensure_dir_exists(self._resolve(path))
        except OSError as e:
            raise PersistenceFailure(f"Cannot create folder {path}: {e}") from e

    def _list_notes(self) -> List[Tuple[str, Dict[str, Any]]]:
        if not self.vault_dir.exists():
            return []

        notes = []
        root = self.vault_dir.resolve()
        for file in sorted(root.rglob("*.md")):
            relative = file.relative_to(root)
            # Skip .obsidian, .trash and other hidden folders
            if any(part.startswith('.') for part in relative.parts):
                continue
            try:
                tags = read_tags(file.read_text(encoding="utf-8"))
            except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
                logger.warning(f"Skipping unreadable note {relative}: {e}")
                continue
            notes.append((relative.as_posix(), tags))
        return notes
