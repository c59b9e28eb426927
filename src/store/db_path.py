"""Database path resolver."""

from __future__ import annotations

from pathlib import Path

from src.config import settings
from src.store.schema import DEFAULT_DB_PATH

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


def _normalize_db_path(path_str: str) -> str:
    p = Path(path_str).expanduser()
    if p.is_absolute():
        return str(p)
    return str((PROJECT_ROOT / p).resolve())


def resolve_db_path(explicit_db_path: str | None = None) -> str:
    """Resolve DB path with optional explicit override.

    Priority:
    1) explicit_db_path (--db)
    2) settings.db_path (DB_PATH env)
    3) DEFAULT_DB_PATH fallback
    """
    if explicit_db_path:
        return _normalize_db_path(explicit_db_path)
    if settings.db_path:
        return _normalize_db_path(settings.db_path)
    return str(DEFAULT_DB_PATH)
