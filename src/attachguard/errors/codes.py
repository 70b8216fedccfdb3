"""Stable, searchable error code registry.

Ranges:
- E01xx      — Cross-origin failures
- E02xx      — Timeouts and retry exhaustion
- E03xx      — Attach bookkeeping (duplicates)
- E09xx      — Everything else (surfaced verbatim)
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ErrorCode:
    value: int

    def __str__(self) -> str:
        return f"E{self.value:04d}"


# Cross-origin (E01xx)
CROSS_ORIGIN_EXPLICIT = ErrorCode(101)
CROSS_ORIGIN_OPAQUE = ErrorCode(102)

# Timeouts / retries (E02xx)
ATTEMPT_TIMEOUT = ErrorCode(201)
RETRIES_EXHAUSTED = ErrorCode(202)
PROXY_RETRY_FAILED = ErrorCode(203)

# Attach bookkeeping (E03xx)
DUPLICATE_ATTACH = ErrorCode(301)

# Other (E09xx)
UNCLASSIFIED = ErrorCode(901)
