"""QueryGateway — the single entry point for executing statements.

Per execution:

1. Classify. Non-ATTACH statements and managed (``md:``) targets execute
   directly: one attempt, never rewritten.
2. Explicit ``proxy:`` marker: strip it (wrapping where possible, whatever the
   configured behavior), execute exactly once, no fallback.
3. ``always``: force-wrap remote ATTACH targets up front, execute once.
4. Direct attempt with the statement unmodified.
5. ``auto`` only: a cross-origin failure is rewritten with ``force_wrap`` and
   retried once through the retry executor. Timeouts on the proxied statement
   may be retried, but the direct attempt counts against ``max_attempts``
   and at least one proxied attempt is always made.
6. Notify when the proxied statement is actually used.
7. A duplicate-attach failure on the proxied attempt counts as success.
8. A failed proxied attempt raises ``ProxyRetryError`` with both messages.

Any other failure is re-raised unchanged.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Any

from attachguard.engine._base import Engine, QueryResult
from attachguard.errors._types import ErrorKind, ProxyRetryError
from attachguard.errors.classify import ErrorClassifier
from attachguard.notify import (
    CLOUD_STORAGE_PROXY_NOTICE,
    HTTP_PROXY_NOTICE,
    Notifier,
    NullNotifier,
    send,
)
from attachguard.proxy.config import (
    FileSettingsProvider,
    ProxyBehavior,
    ProxyConfig,
    SettingsProvider,
)
from attachguard.proxy.protocol import CLOUD_STORAGE, Protocol, classify_url, redact_url
from attachguard.proxy.rewrite import rewrite_statement
from attachguard.retry import ExecutionOutcome, RetryExecutor, RetryPolicy
from attachguard.statement._types import AttachStatement
from attachguard.statement.classify import classify

logger = logging.getLogger(__name__)

_NO_RETRY: frozenset[ErrorKind] = frozenset()
_PROXY_RETRY_ON = frozenset({ErrorKind.TIMEOUT})


class QueryGateway:
    def __init__(
        self,
        engine: Engine,
        settings: SettingsProvider | None = None,
        *,
        notifier: Notifier | None = None,
        classifier: ErrorClassifier | None = None,
        executor: RetryExecutor | None = None,
        policy: RetryPolicy | None = None,
    ) -> None:
        self._engine = engine
        self._settings = settings or FileSettingsProvider()
        self._notifier = notifier or NullNotifier()
        self._classifier = classifier or ErrorClassifier()
        self._executor = executor or RetryExecutor(classifier=self._classifier)
        self._policy = policy or RetryPolicy()

    async def _once(
        self,
        sql: str,
        policy: RetryPolicy,
        cancel: asyncio.Event | None,
        *,
        auto_mode: bool,
        used_proxy: bool = False,
    ) -> ExecutionOutcome:
        """Exactly one attempt; failures are raised unchanged."""
        outcome = await self._executor.run(
            lambda: self._engine.execute(sql),
            replace(policy, max_attempts=1),
            cancel=cancel,
            retry_on=_NO_RETRY,
            auto_mode=auto_mode,
        )
        outcome.statement = sql
        outcome.used_proxy = used_proxy
        if outcome.error is not None:
            raise outcome.error.original
        return outcome

    async def execute(
        self,
        sql: str,
        *,
        policy: RetryPolicy | None = None,
        cancel: asyncio.Event | None = None,
    ) -> ExecutionOutcome:
        """Execute one statement. Returns a successful or cancelled outcome, or raises."""
        config = self._settings.get_proxy_config()
        policy = policy or self._policy
        auto = config.behavior == ProxyBehavior.AUTO

        stmt = classify(sql).attach
        if stmt is None:
            return await self._once(sql, policy, cancel, auto_mode=auto)

        if stmt.explicit_proxy_requested:
            rewritten = rewrite_statement(sql, config)
            logger.info(
                "explicit proxy requested for %s (wrapped=%s)",
                redact_url(stmt.target_url), rewritten.was_rewritten,
            )
            return await self._once(
                rewritten.rewritten_text, policy, cancel,
                auto_mode=auto, used_proxy=rewritten.was_rewritten,
            )

        target = classify_url(stmt.target_url)
        if target.protocol == Protocol.MANAGED:
            return await self._once(sql, policy, cancel, auto_mode=auto)

        if config.behavior == ProxyBehavior.ALWAYS and target.is_remote:
            rewritten = rewrite_statement(sql, config, force_wrap=True)
            return await self._once(
                rewritten.rewritten_text, policy, cancel,
                auto_mode=auto, used_proxy=rewritten.was_rewritten,
            )

        direct = await self._executor.run(
            lambda: self._engine.execute(sql),
            replace(policy, max_attempts=1),
            cancel=cancel,
            retry_on=_NO_RETRY,
            auto_mode=auto,
        )
        direct.statement = sql
        if direct.error is None:
            return direct

        first = direct.error
        if not auto or first.kind != ErrorKind.CROSS_ORIGIN:
            raise first.original

        return await self._retry_via_proxy(sql, stmt, config, policy, cancel, first.original)

    async def _retry_via_proxy(
        self,
        sql: str,
        stmt: AttachStatement,
        config: ProxyConfig,
        policy: RetryPolicy,
        cancel: asyncio.Event | None,
        original: BaseException,
    ) -> ExecutionOutcome:
        rewritten = rewrite_statement(sql, config, force_wrap=True)
        if not rewritten.was_rewritten or rewritten.rewritten_text == sql:
            # Nothing the proxy can do (already proxied, unresolvable, local).
            raise original

        target = redact_url(stmt.target_url)
        logger.info("cross-origin failure attaching %s; retrying via proxy", target)
        self._notify(stmt)

        proxied_sql = rewritten.rewritten_text
        # The direct attempt already spent one unit of the budget.
        retry = await self._executor.run(
            lambda: self._engine.execute(proxied_sql),
            replace(policy, max_attempts=max(1, policy.max_attempts - 1)),
            cancel=cancel,
            retry_on=_PROXY_RETRY_ON,
        )
        attempts = 1 + retry.attempts_made

        if retry.cancelled:
            return ExecutionOutcome(
                success=False, cancelled=True, attempts_made=attempts,
                used_proxy=True, statement=proxied_sql,
            )

        if retry.success:
            return ExecutionOutcome(
                success=True, result=retry.result, attempts_made=attempts,
                used_proxy=True, statement=proxied_sql,
            )

        assert retry.error is not None
        if retry.error.kind == ErrorKind.DUPLICATE_ATTACH:
            logger.info("database %s already attached via proxy, continuing", stmt.alias)
            return ExecutionOutcome(
                success=True, result=QueryResult(), attempts_made=attempts,
                used_proxy=True, statement=proxied_sql,
            )

        logger.error("proxy retry failed for %s: %s", target, retry.error.code)
        raise ProxyRetryError(original, retry.error.original) from retry.error.original

    def _notify(self, stmt: AttachStatement) -> None:
        if classify_url(stmt.target_url).protocol in CLOUD_STORAGE:
            send(self._notifier, CLOUD_STORAGE_PROXY_NOTICE)
        else:
            send(self._notifier, HTTP_PROXY_NOTICE)

    def execute_sync(self, sql: str, **kwargs: Any) -> ExecutionOutcome:
        """Blocking wrapper around ``execute`` for synchronous callers."""
        return asyncio.run(self.execute(sql, **kwargs))
