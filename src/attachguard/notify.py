"""User notifications — fire-and-forget messages about proxy use."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import click

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notice:
    title: str
    message: str
    duration_ms: int


CLOUD_STORAGE_PROXY_NOTICE = Notice(
    title="Using CORS proxy for cloud storage",
    message=(
        "Cloud storage URL converted to HTTPS and accessed via CORS proxy. "
        "For better performance, configure CORS on your bucket."
    ),
    duration_ms=5000,
)

HTTP_PROXY_NOTICE = Notice(
    title="Using CORS proxy",
    message="Remote database accessed via CORS proxy for compatibility",
    duration_ms=3000,
)


@runtime_checkable
class Notifier(Protocol):
    def notify(self, title: str, message: str, duration_ms: int) -> None: ...


class NullNotifier:
    def notify(self, title: str, message: str, duration_ms: int) -> None:
        return None


class ClickNotifier:
    """Prints notices to stderr; the duration is meaningless on a terminal."""

    def notify(self, title: str, message: str, duration_ms: int) -> None:
        click.echo(f"info: {title}: {message}", err=True)


def send(notifier: Notifier, notice: Notice) -> None:
    """Deliver a notice without letting a broken sink affect execution."""
    try:
        notifier.notify(notice.title, notice.message, notice.duration_ms)
    except Exception:
        logger.exception("notification sink failed")
