"""Tests for DB path resolution."""

from __future__ import annotations

from pathlib import Path

from src.store.db_path import PROJECT_ROOT, resolve_db_path
from src.store.schema import DEFAULT_DB_PATH


def test_resolve_db_path_uses_setting(monkeypatch):
    monkeypatch.setattr("src.store.db_path.settings.db_path", "data/paper_a.db")
    out = resolve_db_path()
    assert out.endswith("data/paper_a.db")
    assert Path(out).is_absolute()
    assert out.startswith(str(PROJECT_ROOT))


def test_resolve_db_path_falls_back_to_default(monkeypatch):
    monkeypatch.setattr("src.store.db_path.settings.db_path", "")
    assert resolve_db_path() == str(DEFAULT_DB_PATH)


def test_resolve_db_path_prefers_explicit(monkeypatch):
    monkeypatch.setattr("src.store.db_path.settings.db_path", "data/other.db")
    out = resolve_db_path(explicit_db_path="/tmp/custom.db")
    assert out == "/tmp/custom.db"


def test_resolve_db_path_expands_home(monkeypatch):
    monkeypatch.setattr("src.store.db_path.settings.db_path", "")
    out = resolve_db_path(explicit_db_path="~/plans.db")
    assert out == str(Path("~/plans.db").expanduser())
