"""Shared output formatting for CLI commands."""

from __future__ import annotations

import json

from attachguard.engine._base import QueryResult
from attachguard.errors._types import ClassifiedError
from attachguard.proxy.protocol import redact_sql
from attachguard.retry import ExecutionOutcome


def outcome_to_dict(outcome: ExecutionOutcome) -> dict[str, object]:
    data: dict[str, object] = {
        "success": outcome.success,
        "cancelled": outcome.cancelled,
        "attempts": outcome.attempts_made,
        "used_proxy": outcome.used_proxy,
        "statement": redact_sql(outcome.statement) if outcome.statement else None,
    }
    if isinstance(outcome.result, QueryResult):
        data["columns"] = outcome.result.columns
        data["rows"] = outcome.result.rows
        data["row_count"] = outcome.result.row_count
        data["duration_ms"] = outcome.result.duration_ms
    return data


def error_to_dict(error: ClassifiedError) -> dict[str, object]:
    return {
        "success": False,
        "error": error.message,
        "kind": error.kind.value,
        "code": str(error.code),
        "status": error.status,
    }


def format_outcome(outcome: ExecutionOutcome, *, output_format: str = "text") -> str:
    if output_format == "json":
        return json.dumps(outcome_to_dict(outcome), indent=2, default=str)

    if outcome.cancelled:
        return f"cancelled after {outcome.attempts_made} attempt(s)"

    lines: list[str] = []
    result = outcome.result
    if isinstance(result, QueryResult) and result.columns:
        lines.append(" | ".join(result.columns))
        lines.append("-+-".join("-" * max(len(c), 5) for c in result.columns))
        for row in result.rows:
            lines.append(" | ".join(str(row.get(c, "")) for c in result.columns))

    row_count = result.row_count if isinstance(result, QueryResult) else 0
    duration = ""
    if isinstance(result, QueryResult) and result.duration_ms is not None:
        duration = f", {result.duration_ms:.0f}ms"
    lines.append(f"\n({row_count} rows{duration})")
    if outcome.used_proxy:
        lines.append(f"via proxy: {redact_sql(outcome.statement or '')}")
    return "\n".join(lines)


def format_error(error: ClassifiedError, *, output_format: str = "text") -> str:
    if output_format == "json":
        return json.dumps(error_to_dict(error), indent=2, default=str)
    return f"error[{error.code}]: {error.message}"
