"""Tests for main.py maintenance commands against a temporary SQLite file."""

from __future__ import annotations

import pytest

import main
from auth.store import UserStore
from core.config import get_settings


@pytest.fixture
def db_url(tmp_path, monkeypatch):
    url = f"sqlite:///{tmp_path / 'cli.db'}"
    monkeypatch.setenv("DATABASE_URL", url)
    get_settings.cache_clear()
    yield url
    get_settings.cache_clear()


def _answer(monkeypatch, *answers: str) -> None:
    replies = iter(answers)
    monkeypatch.setattr(main.getpass, "getpass", lambda prompt="": next(replies))


def test_create_user(db_url, monkeypatch, capsys) -> None:
    _answer(monkeypatch, "secret", "secret")
    assert main.main(["create-user", "a@x.com"]) == 0
    assert "Created a@x.com" in capsys.readouterr().out

    store = UserStore(db_url)
    try:
        assert store.get_by_email("a@x.com") is not None
    finally:
        store.close()


def test_create_user_twice_fails(db_url, monkeypatch, capsys) -> None:
    _answer(monkeypatch, "secret", "secret", "secret", "secret")
    assert main.main(["create-user", "a@x.com"]) == 0
    assert main.main(["create-user", "a@x.com"]) == 1
    assert "already registered" in capsys.readouterr().out


def test_create_user_password_mismatch(db_url, monkeypatch) -> None:
    _answer(monkeypatch, "secret", "typo")
    assert main.main(["create-user", "a@x.com"]) == 1


def test_purge_sessions_requires_database_backend(db_url, monkeypatch, capsys) -> None:
    monkeypatch.setenv("SESSION_BACKEND", "memory")
    get_settings.cache_clear()
    assert main.main(["purge-sessions"]) == 1


def test_init_db_and_purge_with_database_backend(db_url, monkeypatch, capsys) -> None:
    monkeypatch.setenv("SESSION_BACKEND", "database")
    get_settings.cache_clear()
    assert main.main(["init-db"]) == 0
    assert main.main(["purge-sessions"]) == 0
    assert "Removed 0 expired session(s)." in capsys.readouterr().out
