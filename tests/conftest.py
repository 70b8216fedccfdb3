"""Root conftest — shared fakes and fixtures."""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import pytest

from attachguard.engine._base import QueryResult
from attachguard.errors._types import EngineError

CORS_ERROR = "TypeError: Failed to fetch (CORS request did not succeed)"


class FakeEngine:
    """Engine double: records every statement and answers from a script.

    ``responses`` is consumed in order, one item per ``execute`` call. An
    item may be a ``QueryResult``, an exception (raised), or a callable
    taking the SQL (awaited if it returns a coroutine). Once the script is
    exhausted every call succeeds with an empty result.
    """

    def __init__(self, *responses: object) -> None:
        self.executed: list[str] = []
        self._responses = list(responses)

    async def execute(self, sql: str) -> QueryResult:
        self.executed.append(sql)
        if not self._responses:
            return QueryResult()
        item = self._responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        if callable(item):
            value = item(sql)
            if asyncio.iscoroutine(value):
                value = await value
            return value
        return item


class RecordingNotifier:
    def __init__(self) -> None:
        self.notices: list[tuple[str, str, int]] = []

    def notify(self, title: str, message: str, duration_ms: int) -> None:
        self.notices.append((title, message, duration_ms))


def cors_error() -> EngineError:
    return EngineError(CORS_ERROR)


def hang(seconds: float = 5) -> Callable[[str], object]:
    """Response that never settles within a short test timeout."""

    async def _slow(sql: str) -> QueryResult:
        await asyncio.sleep(seconds)
        return QueryResult()

    return _slow


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def fake_sleep(sleeps):
    """Backoff sleep that records the requested delay and returns at once."""

    async def _sleep(delay: float) -> None:
        sleeps.append(delay)

    return _sleep


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Keep config files and execution logs out of the real home directory."""
    monkeypatch.setattr("attachguard.proxy.config._CONFIG_FILE", tmp_path / "config.toml")
    monkeypatch.setattr("attachguard.querylog._LOG_ROOT", tmp_path / "logs")
    monkeypatch.delenv("ATTACHGUARD_PROXY_URL", raising=False)
    monkeypatch.delenv("ATTACHGUARD_PROXY_BEHAVIOR", raising=False)
    monkeypatch.delenv("ATTACHGUARD_DB", raising=False)
    return tmp_path
