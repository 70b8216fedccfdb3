"""Shared helpers for CLI commands."""

from __future__ import annotations

import sys
from dataclasses import replace

import click

from attachguard.proxy.config import (
    ConfigError,
    ProxyBehavior,
    ProxyConfig,
    StaticSettingsProvider,
    load_proxy_config,
)

BEHAVIOR_CHOICES = [b.value for b in ProxyBehavior]


def resolve_sql_stdin(sql: str | None, from_stdin: bool) -> str:
    """Resolve SQL from positional argument or stdin. Exactly one source required."""
    if sql and from_stdin:
        raise click.UsageError("Provide SQL as an argument or --from-stdin, not both.")
    if from_stdin:
        if sys.stdin.isatty():
            raise click.UsageError("--from-stdin requires piped input (stdin is a terminal).")
        text = sys.stdin.read().strip()
        if not text:
            raise click.UsageError("--from-stdin: stdin was empty.")
        return text
    if not sql:
        raise click.UsageError("Missing argument 'SQL'. Provide SQL or use --from-stdin.")
    return sql


def resolve_config(behavior: str | None, proxy_url: str | None = None) -> ProxyConfig:
    """Load the proxy config and apply command-line overrides."""
    try:
        config = load_proxy_config()
    except ConfigError as e:
        raise click.ClickException(str(e)) from e
    if behavior is not None:
        config = config.with_behavior(behavior)
    if proxy_url:
        config = replace(config, proxy_base_url=proxy_url.rstrip("/"))
    return config


def settings_for(behavior: str | None, proxy_url: str | None = None) -> StaticSettingsProvider:
    return StaticSettingsProvider(resolve_config(behavior, proxy_url))
