"""Exception hierarchy and classification result types."""

from __future__ import annotations

import enum
from dataclasses import dataclass

from attachguard.errors.codes import ErrorCode


class ErrorKind(enum.Enum):
    CROSS_ORIGIN = "cross_origin"
    TIMEOUT = "timeout"
    DUPLICATE_ATTACH = "duplicate_attach"
    OTHER = "other"


class AttachGuardError(Exception):
    """Base class for errors raised by this package."""


class EngineError(AttachGuardError):
    """Raised by engines for execution failures.

    ``status`` carries an HTTP-like status when the underlying failure
    exposed one (None for opaque network failures).
    """

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class AttemptTimeoutError(AttachGuardError):
    """An attempt did not settle within the per-attempt timeout."""

    def __init__(self, timeout_ms: int) -> None:
        super().__init__(f"Query timed out after {timeout_ms}ms")
        self.timeout_ms = timeout_ms


class RetriesExhaustedError(AttachGuardError):
    """All attempts failed; wraps the last underlying error."""

    def __init__(self, attempts: int, last_error: BaseException) -> None:
        super().__init__(
            f"Failed after {attempts} attempt{'s' if attempts != 1 else ''}: "
            f"{error_message(last_error)}"
        )
        self.attempts = attempts
        self.last_error = last_error


class ProxyRetryError(AttachGuardError):
    """The direct attempt failed cross-origin and the proxied retry failed too."""

    def __init__(self, original: BaseException, proxy_error: BaseException) -> None:
        super().__init__(
            "Failed to connect via CORS proxy. "
            f"Original error: {error_message(original)}. "
            f"Proxy error: {error_message(proxy_error)}"
        )
        self.original = original
        self.proxy_error = proxy_error


class AttachError(AttachGuardError):
    """Attaching a database failed after retries."""


@dataclass(frozen=True)
class ClassifiedError:
    kind: ErrorKind
    original: BaseException
    code: ErrorCode
    status: int | None = None

    @property
    def message(self) -> str:
        return error_message(self.original)


def error_message(error: BaseException) -> str:
    """Best-effort human-readable message for any exception."""
    text = str(error)
    return text if text else type(error).__name__
