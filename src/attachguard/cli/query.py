"""The `query` command: execute a statement through the gateway.

ATTACH statements that fail on a cross-origin restriction are retried once
through the CORS proxy (in auto mode). Everything else runs as-is.
"""

from __future__ import annotations

import asyncio
import time

import click

from attachguard.cli._output import format_error, format_outcome
from attachguard.cli._shared import BEHAVIOR_CHOICES, resolve_sql_stdin, settings_for
from attachguard.engine.duckdb import DuckDBEngine
from attachguard.errors._types import AttachGuardError
from attachguard.errors.classify import classify_error
from attachguard.gateway import QueryGateway
from attachguard.notify import ClickNotifier
from attachguard.proxy.config import ProxyBehavior, SettingsProvider
from attachguard.querylog import cleanup_old_logs, log_execution
from attachguard.retry import RetryPolicy


async def _run_query(
    sql: str,
    db: str,
    *,
    settings: SettingsProvider,
    policy: RetryPolicy,
    output_format: str,
) -> int:
    """Connect, execute through the gateway, render. Returns exit code."""
    engine = DuckDBEngine(db)
    await engine.connect()
    gateway = QueryGateway(engine, settings, notifier=ClickNotifier(), policy=policy)
    auto_mode = settings.get_proxy_config().behavior == ProxyBehavior.AUTO

    t0 = time.monotonic()
    try:
        outcome = await gateway.execute(sql)
    except AttachGuardError as e:
        classified = classify_error(e, auto_mode=auto_mode)
        click.echo(format_error(classified, output_format=output_format),
                   err=output_format != "json")
        log_execution(
            sql=sql,
            db=db,
            success=False,
            error_kind=classified.kind.value,
            error_code=str(classified.code),
            duration_ms=(time.monotonic() - t0) * 1000,
        )
        return 1
    finally:
        await engine.close()

    click.echo(format_outcome(outcome, output_format=output_format))
    log_execution(
        sql=sql,
        effective_sql=outcome.statement,
        db=db,
        success=outcome.success,
        attempts=outcome.attempts_made,
        used_proxy=outcome.used_proxy,
        cancelled=outcome.cancelled,
        duration_ms=(time.monotonic() - t0) * 1000,
    )
    return 0 if outcome.success else 1


@click.command()
@click.argument("sql", required=False, default=None)
@click.option("--from-stdin", is_flag=True, help="Read SQL from stdin instead of argument.")
@click.option(
    "--db", default=":memory:", envvar="ATTACHGUARD_DB", show_default=True,
    help="DuckDB database file.",
)
@click.option(
    "--proxy", "behavior", type=click.Choice(BEHAVIOR_CHOICES), default=None,
    help="Override the configured proxy behavior.",
)
@click.option("--proxy-url", default=None, help="Override the proxy base URL.")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["json", "text"]),
    default="json",
    help="Output format.",
)
@click.option("--timeout-ms", type=int, default=30_000, help="Per-attempt timeout (0 disables).")
@click.option("--max-attempts", type=click.IntRange(min=1), default=3,
              help="Total attempts per ATTACH, the direct attempt included.")
@click.option("--base-delay-ms", type=click.IntRange(min=0), default=1000,
              help="Delay between attempts.")
@click.option("--no-backoff", is_flag=True, help="Use a constant delay between attempts.")
def query(
    sql: str | None,
    from_stdin: bool,
    db: str,
    behavior: str | None,
    proxy_url: str | None,
    output_format: str,
    timeout_ms: int,
    max_attempts: int,
    base_delay_ms: int,
    no_backoff: bool,
) -> None:
    """Execute a statement, falling back to the CORS proxy for remote ATTACH."""
    cleanup_old_logs()
    sql = resolve_sql_stdin(sql, from_stdin)
    settings = settings_for(behavior, proxy_url)
    policy = RetryPolicy(
        max_attempts=max_attempts,
        base_delay_ms=base_delay_ms,
        exponential_backoff=not no_backoff,
        timeout_ms=timeout_ms,
    )

    try:
        exit_code = asyncio.run(
            _run_query(sql, db, settings=settings, policy=policy, output_format=output_format)
        )
    except AttachGuardError as e:
        # Connection failures happen before the gateway is involved.
        click.echo(f"error: {e}", err=True)
        raise SystemExit(1) from e

    if exit_code != 0:
        raise SystemExit(exit_code)
