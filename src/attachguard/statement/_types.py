"""Internal types for statement classification."""

from __future__ import annotations

import enum
from dataclasses import dataclass

# Reserved marker a user puts in front of a URL literal to force the proxy:
#   ATTACH 'proxy:https://example.com/db.duckdb' AS db
# Case-sensitive; never sent to the engine.
PROXY_PREFIX = "proxy:"


class StatementKind(enum.Enum):
    ATTACH = "attach"
    DETACH = "detach"
    OTHER = "other"


@dataclass(frozen=True)
class Span:
    start: int
    end: int

    def slice(self, sql: str) -> str:
        return sql[self.start : self.end]

    def __len__(self) -> int:
        return self.end - self.start


@dataclass(frozen=True)
class AttachStatement:
    """A parsed ATTACH statement.

    ``url_span`` covers the quoted URL literal in ``raw_text``, quotes
    included. ``target_url`` never carries the proxy marker.
    """

    raw_text: str
    target_url: str
    alias: str
    explicit_proxy_requested: bool
    url_span: Span
    quote_char: str = "'"
    if_not_exists: bool = False


@dataclass(frozen=True)
class ClassifiedStatement:
    kind: StatementKind
    attach: AttachStatement | None = None
    detach_name: str | None = None

    @property
    def is_attach(self) -> bool:
        return self.kind == StatementKind.ATTACH
