from pathlib import Path

def join_vault_path(*parts: str) -> str:
    """
    Joins vault-relative path fragments with '/'.
    Empty fragments and surrounding slashes are dropped:
    join_vault_path('/weread', '', 'Design.md') -> 'weread/Design.md'
    """
    segments = []
    for part in parts:
        segments.extend(s for s in part.strip().split('/') if s)
    return '/'.join(segments)

def resolve_in_vault(vault_dir: Path, vault_path: str) -> Path:
    """Maps a vault-relative path to a filesystem path inside vault_dir."""
    root = vault_dir.resolve()
    path = (root / join_vault_path(vault_path)).resolve()
    if path != root and root not in path.parents:
        raise ValueError(f"{vault_path} points outside the vault")
    return path

def ensure_dir_exists(path: Path) -> None:
    """Ensures that a directory exists."""
    if not path.exists():
        path.mkdir(parents=True, exist_ok=True)
