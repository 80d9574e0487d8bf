import os
from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ValidationError

from weread_sync.core.errors import ConfigurationError

FileNameType = Literal['BOOK_NAME', 'BOOK_NAME-AUTHOR', 'BOOK_NAME-BOOKID']
SubFolderType = Literal['none', 'title', 'category']

class Settings(BaseModel):
    """Sync settings. Passed explicitly to whatever needs them."""
    vault_dir: Path = Path("vault")
    note_location: str = "/weread"
    file_name_type: FileNameType = 'BOOK_NAME'
    sub_folder_type: SubFolderType = 'none'
    daily_notes_location: str = "/Daily Notes"
    daily_notes_format: str = "%Y-%m-%d"
    template_path: Optional[Path] = None
    daily_notes: bool = False  # Link highlights made today from the daily note

_ENV_FIELDS = {
    "WEREAD_VAULT_DIR": "vault_dir",
    "WEREAD_NOTE_LOCATION": "note_location",
    "WEREAD_FILE_NAME_TYPE": "file_name_type",
    "WEREAD_SUB_FOLDER_TYPE": "sub_folder_type",
    "WEREAD_DAILY_NOTES_LOCATION": "daily_notes_location",
    "WEREAD_DAILY_NOTES_FORMAT": "daily_notes_format",
    "WEREAD_TEMPLATE_PATH": "template_path",
    "WEREAD_DAILY_NOTES": "daily_notes",
}

def load_settings(env_file: Optional[Path] = None, **overrides) -> Settings:
    """
    Builds Settings from WEREAD_* environment variables (a .env file is read
    first when present). Keyword overrides win over the environment.
    """
    load_dotenv(env_file)
    values = {field: os.getenv(var) for var, field in _ENV_FIELDS.items() if os.getenv(var)}
    values.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return Settings(**values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid settings: {e}") from e
