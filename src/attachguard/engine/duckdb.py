"""DuckDB engine — in-process; remote files are read through httpfs."""

from __future__ import annotations

import asyncio
import contextlib
import time

import duckdb as _duckdb

from attachguard.engine._base import QueryResult
from attachguard.errors._types import EngineError

USER_AGENT = "attachguard/0.1.0"


class DuckDBEngine:
    """DuckDB engine. Each statement runs on its own cursor in a worker thread."""

    def __init__(self, path: str = ":memory:") -> None:
        self._path = path
        self._conn: _duckdb.DuckDBPyConnection | None = None

    async def connect(self) -> None:
        try:
            self._conn = _duckdb.connect(self._path, config={"custom_user_agent": USER_AGENT})
        except Exception as e:
            raise EngineError(f"DuckDB connection failed: {e}") from e

    async def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    async def __aenter__(self) -> DuckDBEngine:
        await self.connect()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    def _ensure_conn(self) -> _duckdb.DuckDBPyConnection:
        if self._conn is None:
            raise EngineError("Not connected. Call connect() first.")
        return self._conn

    def _run(self, cursor: _duckdb.DuckDBPyConnection, sql: str) -> QueryResult:
        t0 = time.monotonic()
        try:
            result = cursor.execute(sql)
            columns = [desc[0] for desc in result.description] if result.description else []
            rows_raw = result.fetchall() if result.description else []
        except _duckdb.HTTPException as e:
            raise EngineError(
                f"DuckDB execution failed: {e}", status=getattr(e, "status_code", None) or None,
            ) from e
        except _duckdb.Error as e:
            raise EngineError(f"DuckDB execution failed: {e}") from e
        finally:
            cursor.close()
        duration_ms = (time.monotonic() - t0) * 1000

        rows = [dict(zip(columns, row, strict=True)) for row in rows_raw]
        return QueryResult(
            columns=columns, rows=rows, row_count=len(rows), duration_ms=duration_ms,
        )

    async def execute(self, sql: str) -> QueryResult:
        conn = self._ensure_conn()
        cursor = conn.cursor()
        try:
            return await asyncio.to_thread(self._run, cursor, sql)
        except asyncio.CancelledError:
            # Abort the statement still running in the worker thread.
            with contextlib.suppress(_duckdb.Error):
                cursor.interrupt()
            raise

    async def attached_databases(self) -> list[str]:
        result = await self.execute("SELECT database_name FROM duckdb_databases() ORDER BY 1")
        return [str(row["database_name"]) for row in result.rows]
