"""Tests for the background session purge loop in api/main.py."""

from __future__ import annotations

import asyncio
import logging
from types import SimpleNamespace

import pytest
from sqlalchemy.exc import OperationalError

from api.main import _purge_loop


class _FlakyStore:
    """Session store whose first purge fails the way a restarting database does."""

    def __init__(self) -> None:
        self.calls = 0

    def purge_expired(self) -> int:
        self.calls += 1
        if self.calls == 1:
            raise OperationalError("DELETE FROM sessions", {}, Exception("server has gone away"))
        return 2


def _run_until(store: _FlakyStore, calls: int) -> None:
    app = SimpleNamespace(state=SimpleNamespace(session_store=store))

    async def run() -> None:
        task = asyncio.create_task(_purge_loop(app, 0.01))
        for _ in range(200):
            await asyncio.sleep(0.01)
            if store.calls >= calls or task.done():
                break
        assert not task.done()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(run())


def test_purge_loop_survives_store_error(caplog) -> None:
    caplog.set_level(logging.INFO, logger="shopgate.api")
    store = _FlakyStore()
    _run_until(store, calls=3)
    assert store.calls >= 3
    assert "Session purge failed" in caplog.text
    assert "Purged 2 expired sessions" in caplog.text
