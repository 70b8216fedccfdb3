"""Execution logging — daily JSONL files per project, with automatic retention cleanup.

SQL is redacted before it is written: URLs lose passwords and signed query
parameters, inline secret options are masked.
"""

from __future__ import annotations

import contextlib
import json
import os
from datetime import UTC, date, datetime, timedelta
from pathlib import Path

from attachguard.proxy.protocol import redact_sql

DEFAULT_RETENTION_DAYS = 30
_LOG_ROOT = Path.home() / ".attachguard" / "logs"


def _project_dir() -> Path:
    """One directory per working directory, named after its path components."""
    parts = [part for part in os.getcwd().split(os.sep) if part]
    return _LOG_ROOT / "-".join(parts)


def _file_day(path: Path) -> date | None:
    """The day a log file covers, or None for files this module did not write."""
    try:
        return date.fromisoformat(path.stem)
    except ValueError:
        return None


def log_execution(
    *,
    sql: str,
    effective_sql: str | None = None,
    db: str | None = None,
    success: bool,
    attempts: int = 0,
    used_proxy: bool = False,
    cancelled: bool = False,
    error_kind: str | None = None,
    error_code: str | None = None,
    duration_ms: float | None = None,
) -> None:
    """Append an execution log entry to today's JSONL file."""
    now = datetime.now(UTC)
    entry = {
        "ts": now.isoformat(),
        "db": db,
        "sql": redact_sql(sql),
        "effective_sql": redact_sql(effective_sql) if effective_sql is not None else None,
        "success": success,
        "attempts": attempts,
        "used_proxy": used_proxy,
        "cancelled": cancelled,
        "error_kind": error_kind,
        "error_code": error_code,
        "duration_ms": duration_ms,
    }

    log_file = _project_dir() / f"{now.date().isoformat()}.jsonl"
    log_file.parent.mkdir(parents=True, exist_ok=True)
    with open(log_file, "a") as f:
        f.write(json.dumps(entry, default=str) + "\n")


def cleanup_old_logs(*, retention_days: int = DEFAULT_RETENTION_DAYS) -> int:
    """Remove this project's log files past retention. Returns how many went."""
    project_dir = _project_dir()
    if not project_dir.is_dir():
        return 0

    oldest_kept = datetime.now(UTC).date() - timedelta(days=retention_days)
    expired = []
    for path in project_dir.glob("*.jsonl"):
        day = _file_day(path)
        if day is not None and day < oldest_kept:
            expired.append(path)
    for path in expired:
        path.unlink()

    # Only succeeds once nothing is left.
    with contextlib.suppress(OSError):
        project_dir.rmdir()

    return len(expired)
