import logging
import os
from pathlib import Path

from dotenv import load_dotenv

log = logging.getLogger("config")


def resolve_path(path: str | Path, project_root: Path | None = None) -> Path:
    """`path` as given when absolute, otherwise under `project_root` (default: cwd)."""
    p = Path(path)
    return p if p.is_absolute() else (project_root or Path.cwd()) / p


def load_env_from_path(env_file_path: str | None, project_root: Path | None = None) -> bool:
    """Load a .env file without overriding variables already set. False when there is no file."""
    if not env_file_path:
        return False
    path = resolve_path(env_file_path, project_root)
    if not path.is_file():
        log.debug("no env file at %s", path)
        return False
    load_dotenv(path, override=False)
    log.info("loaded env file %s", path)
    return True


def get_env_vars(env_file_path: str | None = None, project_root: Path | None = None) -> dict[str, str]:
    load_env_from_path(env_file_path, project_root)
    return dict(os.environ)
