"""Engine protocol — the boundary between the attach layer and the database."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable


@dataclass
class QueryResult:
    """Tabular result of one statement."""

    columns: list[str] = field(default_factory=list)
    rows: list[dict[str, object]] = field(default_factory=list)
    row_count: int = 0
    duration_ms: float | None = None


@runtime_checkable
class Engine(Protocol):
    """Executes SQL and raises on failure.

    Failures should carry a message and, where the driver exposes one, an
    HTTP-like ``status`` (see ``attachguard.errors.EngineError``).
    """

    async def execute(self, sql: str) -> QueryResult: ...
