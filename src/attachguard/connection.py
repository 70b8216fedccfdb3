"""Connection helpers: retried execution, attach with retries, liveness probes."""

from __future__ import annotations

import logging
from dataclasses import replace

from attachguard.engine._base import Engine, QueryResult
from attachguard.errors._types import AttachError, RetriesExhaustedError, error_message
from attachguard.gateway import QueryGateway
from attachguard.proxy.protocol import redact_sql
from attachguard.retry import ExecutionOutcome, RetryExecutor, RetryPolicy
from attachguard.statement.build import build_detach_query, quote_literal

logger = logging.getLogger(__name__)


async def execute_with_retry(
    engine: Engine,
    sql: str,
    policy: RetryPolicy | None = None,
    *,
    executor: RetryExecutor | None = None,
) -> QueryResult:
    """Execute with timeout retries only; other failures raise immediately."""
    outcome = await (executor or RetryExecutor()).run(lambda: engine.execute(sql), policy)
    return outcome.unwrap()


async def attach_with_retry(
    gateway: QueryGateway,
    sql: str,
    policy: RetryPolicy | None = None,
    *,
    executor: RetryExecutor | None = None,
) -> ExecutionOutcome:
    """Attach through the gateway, re-running the whole attach when it times out.

    Each gateway attempt keeps its own per-attempt timer, so the outer loop
    runs without one. Inside one outer attempt the gateway makes at most a
    direct and a single proxied execution; the outer loop owns the budget.
    Exhausting it raises ``AttachError``.
    """
    policy = policy or RetryPolicy()
    single = replace(policy, max_attempts=1)
    outcome = await (executor or RetryExecutor()).run(
        lambda: gateway.execute(sql, policy=single),
        replace(policy, timeout_ms=0),
    )
    try:
        return outcome.unwrap()
    except RetriesExhaustedError as e:
        raise AttachError(
            f"Failed to attach database after {e.attempts} attempts: {error_message(e.last_error)}"
        ) from e


async def check_remote_connection(
    engine: Engine,
    db_name: str,
    policy: RetryPolicy | None = None,
    *,
    executor: RetryExecutor | None = None,
) -> bool:
    """True if ``db_name`` is attached and answers a catalog query."""
    probe = (
        "SELECT 1 FROM information_schema.schemata "
        f"WHERE catalog_name = {quote_literal(db_name)} LIMIT 1"
    )
    try:
        result = await execute_with_retry(engine, probe, policy, executor=executor)
    except Exception as e:
        logger.warning("connection check for %s failed: %s", db_name, e)
        return False
    return result.row_count > 0


async def detach(engine: Engine, db_name: str) -> None:
    sql = build_detach_query(db_name)
    logger.debug("detaching: %s", redact_sql(sql))
    await engine.execute(sql)
