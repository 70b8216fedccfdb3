"""URL protocol classification, proxy-marker normalisation, and log redaction."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from urllib.parse import parse_qsl, unquote, urlencode, urlsplit, urlunsplit

from attachguard.statement._types import PROXY_PREFIX


class Protocol(enum.Enum):
    HTTP = "http"
    HTTPS = "https"
    S3 = "s3"
    GCS = "gcs"
    AZURE = "azure"
    MANAGED = "managed"
    LOCAL = "local"


# Fixed allow-list, matched case-insensitively against the start of the URL.
_SCHEMES: tuple[tuple[str, Protocol], ...] = (
    ("https://", Protocol.HTTPS),
    ("http://", Protocol.HTTP),
    ("s3://", Protocol.S3),
    ("gcs://", Protocol.GCS),
    ("gs://", Protocol.GCS),
    ("azure://", Protocol.AZURE),
    ("az://", Protocol.AZURE),
    ("md:", Protocol.MANAGED),
)

CLOUD_STORAGE = frozenset({Protocol.S3, Protocol.GCS, Protocol.AZURE})
WEB = frozenset({Protocol.HTTP, Protocol.HTTPS})


@dataclass(frozen=True)
class UrlClass:
    is_remote: bool
    protocol: Protocol


@dataclass(frozen=True)
class NormalizedUrl:
    url: str
    had_proxy_prefix: bool
    is_remote: bool


def classify_url(url: str) -> UrlClass:
    """Which protocol family a URL uses. Pure; no I/O."""
    lowered = url.strip().lower()
    for prefix, protocol in _SCHEMES:
        if lowered.startswith(prefix):
            return UrlClass(is_remote=True, protocol=protocol)
    return UrlClass(is_remote=False, protocol=Protocol.LOCAL)


def is_remote_url(url: str) -> bool:
    return classify_url(url).is_remote


def normalize_remote_url(url: str) -> NormalizedUrl:
    """Strip the (case-sensitive) proxy marker and report remoteness."""
    had_prefix = url.startswith(PROXY_PREFIX)
    bare = url[len(PROXY_PREFIX):] if had_prefix else url
    return NormalizedUrl(url=bare, had_proxy_prefix=had_prefix, is_remote=is_remote_url(bare))


# -- Redaction ----------------------------------------------------------------

_SENSITIVE_PARAMS = frozenset({
    "x-amz-signature",
    "x-amz-credential",
    "x-amz-security-token",
    "x-goog-signature",
    "x-goog-credential",
    "sig",
    "signature",
    "token",
    "access_token",
    "sas",
    "se",
    "sp",
    "sv",
    "key",
    "password",
    "secret",
})
_SENSITIVE_KV = re.compile(r"(?i)\b(secret|key_id|password|token)(\s+|\s*=\s*)'[^']*'")
_MASK = "****"


def redact_url(url: str) -> str:
    """Mask credentials in a URL for logs.

    Passwords in userinfo and signed query parameters are replaced with
    ``****``. A proxy-wrapped URL has its embedded target redacted too.
    """
    try:
        parts = urlsplit(url)
    except ValueError:
        return _MASK

    netloc = parts.netloc
    if "@" in netloc:
        userinfo, host = netloc.rsplit("@", 1)
        user = userinfo.split(":", 1)[0]
        netloc = f"{user}:{_MASK}@{host}" if ":" in userinfo else f"{user}@{host}"

    query = parts.query
    if query:
        pairs = parse_qsl(query, keep_blank_values=True)
        redacted = []
        for k, v in pairs:
            if k.lower() in _SENSITIVE_PARAMS:
                v = _MASK
            elif k == "url" and "://" in v:
                v = redact_url(unquote(v))
            redacted.append((k, v))
        query = urlencode(redacted, safe="*:/")

    return urlunsplit((parts.scheme, netloc, parts.path, query, parts.fragment))


def redact_sql(sql: str) -> str:
    """Redact every URL-looking literal and inline secret option in a statement."""

    def _sub(match: re.Match[str]) -> str:
        return match.group(1) + redact_url(match.group(2)) + match.group(1)

    sql = re.sub(r"(['\"])([a-zA-Z][a-zA-Z0-9+.-]*:(?://)?[^'\"]*)\1", _sub, sql)
    return _SENSITIVE_KV.sub(lambda m: f"{m.group(1)}{m.group(2)}'{_MASK}'", sql)
