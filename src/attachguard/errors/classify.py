"""Classify execution failures (cross-origin, timeout, duplicate attach, other).

Cross-origin detection is heuristic: sandboxed runtimes deliberately hide the
details of a blocked cross-origin request, so the best signal is the wording
of the failure. The signature table below is the whole of that heuristic.
New runtime wordings are added by passing extra signatures to
``ErrorClassifier``; retry logic never inspects messages itself.

Default signatures, in match order:

=================  ===========================================  =====================
kind               pattern                                      condition
=================  ===========================================  =====================
DUPLICATE_ATTACH   ``already attached``                         always
DUPLICATE_ATTACH   ``unique file handle conflict``              always
DUPLICATE_ATTACH   ``database with name ... already exists``    always
CROSS_ORIGIN       ``cors`` / ``cross-origin`` /                always
                   ``access-control-allow-origin``
CROSS_ORIGIN       ``failed to fetch`` / ``networkerror when    auto mode, no status
                   attempting to fetch`` / ``load failed`` /
                   ``network error``
=================  ===========================================  =====================

Signatures are matched against the message with URLs masked out, so a
server error on a URL that happens to contain "cors" is not mistaken for a
cross-origin block.

Timeouts are never matched by text: only ``AttemptTimeoutError`` raised by
the retry executor's timer classifies as TIMEOUT. The package's own
compound errors (``ProxyRetryError``, ``RetriesExhaustedError``) are also
recognised by type, since their messages quote the failures they wrap.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass

from attachguard.errors import codes
from attachguard.errors._types import (
    AttemptTimeoutError,
    ClassifiedError,
    ErrorKind,
    ProxyRetryError,
    RetriesExhaustedError,
    error_message,
)
from attachguard.errors.codes import ErrorCode

_STATUS_RE = re.compile(
    r"\bHTTP(?:/\d(?:\.\d)?)?\s+([1-5]\d\d)\b"
    r"|\bstatus(?:\s+code)?\s*[:=]?\s*([1-5]\d\d)\b",
    re.IGNORECASE,
)

_URL_RE = re.compile(
    r"'[^']*://[^']*'"
    r"|\"[^\"]*://[^\"]*\""
    r"|\b[a-zA-Z][a-zA-Z0-9+.-]*://[^\s'\"]+"
)


@dataclass(frozen=True)
class Signature:
    """One recognisable failure wording.

    ``requires_auto``: only counts when the caller runs in auto proxy mode.
    ``requires_no_status``: only counts when no HTTP status could be found.
    """

    kind: ErrorKind
    pattern: re.Pattern[str]
    code: ErrorCode
    requires_auto: bool = False
    requires_no_status: bool = False

    def matches(self, message: str, *, status: int | None, auto_mode: bool) -> bool:
        if self.requires_auto and not auto_mode:
            return False
        if self.requires_no_status and status is not None:
            return False
        return self.pattern.search(message) is not None


DEFAULT_SIGNATURES: tuple[Signature, ...] = (
    Signature(
        ErrorKind.DUPLICATE_ATTACH,
        re.compile(r"already attached", re.IGNORECASE),
        codes.DUPLICATE_ATTACH,
    ),
    Signature(
        ErrorKind.DUPLICATE_ATTACH,
        re.compile(r"unique file handle conflict", re.IGNORECASE),
        codes.DUPLICATE_ATTACH,
    ),
    Signature(
        ErrorKind.DUPLICATE_ATTACH,
        re.compile(r"database with name \S+ already exists", re.IGNORECASE),
        codes.DUPLICATE_ATTACH,
    ),
    Signature(
        ErrorKind.CROSS_ORIGIN,
        re.compile(r"\bcors\b|cross[- ]origin|access-control-allow-origin", re.IGNORECASE),
        codes.CROSS_ORIGIN_EXPLICIT,
    ),
    Signature(
        ErrorKind.CROSS_ORIGIN,
        re.compile(
            r"failed to fetch|networkerror when attempting to fetch|load failed|network ?error",
            re.IGNORECASE,
        ),
        codes.CROSS_ORIGIN_OPAQUE,
        requires_auto=True,
        requires_no_status=True,
    ),
)


def extract_status(error: BaseException) -> int | None:
    """Find an HTTP-like status on the error or in its message."""
    for attr in ("status", "status_code"):
        value = getattr(error, attr, None)
        if isinstance(value, int) and not isinstance(value, bool) and value > 0:
            return value

    match = _STATUS_RE.search(error_message(error))
    if match is None:
        return None
    return int(match.group(1) or match.group(2))


class ErrorClassifier:
    """Maps exceptions onto an ``ErrorKind`` using an ordered signature list."""

    def __init__(
        self,
        signatures: Iterable[Signature] | None = None,
        *,
        extra: Iterable[Signature] = (),
    ) -> None:
        base = tuple(signatures) if signatures is not None else DEFAULT_SIGNATURES
        self._signatures: tuple[Signature, ...] = (*tuple(extra), *base)

    @property
    def signatures(self) -> tuple[Signature, ...]:
        return self._signatures

    def classify(self, error: BaseException, *, auto_mode: bool = True) -> ClassifiedError:
        if isinstance(error, AttemptTimeoutError):
            return ClassifiedError(ErrorKind.TIMEOUT, error, codes.ATTEMPT_TIMEOUT)
        if isinstance(error, ProxyRetryError):
            return ClassifiedError(
                ErrorKind.OTHER, error, codes.PROXY_RETRY_FAILED,
                status=extract_status(error.proxy_error),
            )
        if isinstance(error, RetriesExhaustedError):
            last = self.classify(error.last_error, auto_mode=auto_mode)
            return ClassifiedError(last.kind, error, codes.RETRIES_EXHAUSTED, status=last.status)

        status = extract_status(error)
        message = _URL_RE.sub("<url>", error_message(error))
        for sig in self._signatures:
            if sig.matches(message, status=status, auto_mode=auto_mode):
                return ClassifiedError(sig.kind, error, sig.code, status=status)

        return ClassifiedError(ErrorKind.OTHER, error, codes.UNCLASSIFIED, status=status)


_DEFAULT = ErrorClassifier()


def classify_error(error: BaseException, *, auto_mode: bool = True) -> ClassifiedError:
    """Classify with the default signature table."""
    return _DEFAULT.classify(error, auto_mode=auto_mode)


def is_cross_origin_error(error: BaseException, *, auto_mode: bool = True) -> bool:
    return classify_error(error, auto_mode=auto_mode).kind == ErrorKind.CROSS_ORIGIN


def is_duplicate_attach_error(error: BaseException) -> bool:
    return classify_error(error).kind == ErrorKind.DUPLICATE_ATTACH
