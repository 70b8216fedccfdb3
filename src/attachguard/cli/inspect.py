"""The `classify` and `rewrite` commands: inspect SQL without executing it."""

from __future__ import annotations

import json

import click

from attachguard.cli._shared import BEHAVIOR_CHOICES, resolve_config
from attachguard.proxy.protocol import classify_url, redact_url
from attachguard.proxy.rewrite import rewrite_statement
from attachguard.statement.classify import classify


@click.command("classify")
@click.argument("sql")
def classify_cmd(sql: str) -> None:
    """Show how a statement is classified (always JSON)."""
    classified = classify(sql)
    data: dict[str, object] = {"kind": classified.kind.value}
    if classified.attach is not None:
        stmt = classified.attach
        url_class = classify_url(stmt.target_url)
        data.update({
            "target_url": redact_url(stmt.target_url),
            "alias": stmt.alias,
            "explicit_proxy": stmt.explicit_proxy_requested,
            "protocol": url_class.protocol.value,
            "remote": url_class.is_remote,
        })
    if classified.detach_name is not None:
        data["name"] = classified.detach_name
    click.echo(json.dumps(data, indent=2))


@click.command("rewrite")
@click.argument("sql")
@click.option("--force", is_flag=True, help="Wrap even without the proxy: marker.")
@click.option(
    "--proxy", "behavior", type=click.Choice(BEHAVIOR_CHOICES), default=None,
    help="Override the configured proxy behavior.",
)
@click.option("--proxy-url", default=None, help="Override the proxy base URL.")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["json", "text"]),
    default="text",
    help="Output format.",
)
def rewrite_cmd(
    sql: str,
    force: bool,
    behavior: str | None,
    proxy_url: str | None,
    output_format: str,
) -> None:
    """Preview the proxy rewrite of an ATTACH statement."""
    config = resolve_config(behavior, proxy_url)
    result = rewrite_statement(sql, config, force_wrap=force)
    if output_format == "json":
        click.echo(json.dumps({
            "rewritten": result.rewritten_text,
            "was_rewritten": result.was_rewritten,
        }, indent=2))
    else:
        click.echo(result.rewritten_text)
