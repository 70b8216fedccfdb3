"""CLI entry point. Both `attachguard` and `attg` resolve here."""

from __future__ import annotations

import logging

import click

from attachguard.cli.inspect import classify_cmd, rewrite_cmd
from attachguard.cli.proxy import proxy
from attachguard.cli.query import query


@click.group()
@click.version_option(package_name="attachguard")
@click.option("-v", "--verbose", count=True, help="Log to stderr (-v info, -vv debug).")
def main(verbose: int) -> None:
    """attachguard: attach remote databases through a CORS-aware gateway."""
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


main.add_command(query)
main.add_command(classify_cmd)
main.add_command(rewrite_cmd)
main.add_command(proxy)
