"""Statement classification: find ATTACH targets without executing SQL."""

from __future__ import annotations

from attachguard.statement._types import (
    PROXY_PREFIX,
    AttachStatement,
    ClassifiedStatement,
    Span,
    StatementKind,
)
from attachguard.statement.classify import (
    classify,
    is_attach_statement,
    parse_attach,
    parse_detach,
)

__all__ = [
    "PROXY_PREFIX",
    "AttachStatement",
    "ClassifiedStatement",
    "Span",
    "StatementKind",
    "classify",
    "is_attach_statement",
    "parse_attach",
    "parse_detach",
]
