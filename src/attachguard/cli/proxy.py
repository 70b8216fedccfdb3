"""The `proxy` command group: manage proxy settings (~/.attachguard/config.toml)."""

from __future__ import annotations

import click

from attachguard.cli._shared import resolve_config
from attachguard.proxy.config import (
    ConfigError,
    read_proxy_settings,
    reset_proxy_settings,
    save_proxy_setting,
)
from attachguard.proxy.protocol import redact_url


@click.group()
def proxy() -> None:
    """Manage CORS proxy settings."""


@proxy.command("show")
def proxy_show() -> None:
    """Show the effective proxy settings (file + environment)."""
    config = resolve_config(None)
    click.echo(f"  behavior: {config.behavior.value}")
    click.echo(f"  url: {redact_url(config.proxy_base_url)}")
    click.echo(f"  s3_endpoint: {config.custom_s3_endpoint or '-'}")
    click.echo(f"  azure_account: {config.azure_account or '-'}")
    click.echo(f"  path_based: {'true' if config.path_based else 'false'}")
    if not read_proxy_settings():
        click.echo("(defaults; set values with: attachguard proxy set <key> <value>)")


@proxy.command("set")
@click.argument("key")
@click.argument("value")
def proxy_set(key: str, value: str) -> None:
    """Set a proxy setting.

    \b
    Examples:
      attachguard proxy set behavior never
      attachguard proxy set url https://proxy.internal.example.com
      attachguard proxy set s3_endpoint https://minio.example.com
    """
    try:
        path = save_proxy_setting(key, value)
    except ConfigError as e:
        raise click.BadParameter(str(e)) from e
    click.echo(f"Saved {key} to {path}")


@proxy.command("reset")
def proxy_reset() -> None:
    """Remove all proxy settings."""
    if not reset_proxy_settings():
        click.echo("No proxy settings configured.")
        return
    click.echo("Removed proxy settings.")
