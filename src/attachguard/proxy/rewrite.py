"""Rewrite remote URLs (and ATTACH statements) to route through the CORS proxy.

Rules, in order:

1. An already-proxied URL is returned as-is with ``was_rewritten=True``.
2. Without a wrap request (``force_wrap`` or the ``proxy:`` marker) nothing
   changes.
3. Managed (``md:``) and local paths are never wrapped; the proxy only helps
   plain HTTP(S) fetches.
4. Cloud object storage (S3/GCS/Azure) is converted to its HTTPS form first.
   If that is impossible the URL comes back unchanged with
   ``was_rewritten=False`` so the caller can fall back to the native protocol.
5. HTTP(S) URLs are wrapped.

The ``proxy:`` marker is stripped from every result. Inputs are never mutated.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from urllib.parse import quote, urlsplit

from attachguard.proxy.config import ProxyConfig
from attachguard.proxy.protocol import (
    CLOUD_STORAGE,
    Protocol,
    classify_url,
    normalize_remote_url,
    redact_url,
)
from attachguard.statement._types import AttachStatement
from attachguard.statement.classify import classify

logger = logging.getLogger(__name__)

PROXY_PATH = "/proxy"
PROXY_QUERY_MARKER = f"{PROXY_PATH}?url="

_S3_DEFAULT_HOST = "s3.amazonaws.com"
_GCS_HOST = "storage.googleapis.com"
_AZURE_BLOB_SUFFIX = ".blob.core.windows.net"


@dataclass(frozen=True)
class RewriteResult:
    rewritten_text: str
    was_rewritten: bool


def is_proxied(url: str, config: ProxyConfig) -> bool:
    """True if the URL already routes through a proxy (query or path form)."""
    if PROXY_QUERY_MARKER in url:
        return True
    base = config.proxy_base_url.rstrip("/")
    return url.startswith(f"{base}{PROXY_PATH}/")


def _with_suffix(url: str, query: str, fragment: str) -> str:
    if query:
        url = f"{url}?{query}"
    if fragment:
        url = f"{url}#{fragment}"
    return url


def to_https(url: str, config: ProxyConfig) -> str | None:
    """Equivalent HTTPS URL for an S3/GCS/Azure URL, or None if unresolvable.

    >>> to_https("s3://bucket/db.duckdb", ProxyConfig())
    'https://bucket.s3.amazonaws.com/db.duckdb'
    """
    try:
        parts = urlsplit(url.strip())
    except ValueError:
        return None

    protocol = classify_url(url).protocol
    bucket = parts.netloc
    key = parts.path.lstrip("/")
    if not bucket or "@" in bucket or " " in bucket:
        return None

    if protocol == Protocol.S3:
        if config.custom_s3_endpoint:
            endpoint = config.custom_s3_endpoint.rstrip("/")
            if "://" not in endpoint:
                endpoint = f"https://{endpoint}"
            base = f"{endpoint}/{bucket}/{key}"
        elif "." in bucket:
            # Dotted bucket names break virtual-hosted TLS; use path style.
            base = f"https://{_S3_DEFAULT_HOST}/{bucket}/{key}"
        else:
            base = f"https://{bucket}.{_S3_DEFAULT_HOST}/{key}"
    elif protocol == Protocol.GCS:
        base = f"https://{_GCS_HOST}/{bucket}/{key}"
    elif protocol == Protocol.AZURE:
        if bucket.lower().endswith(_AZURE_BLOB_SUFFIX):
            base = f"https://{bucket}/{key}"
        elif config.azure_account:
            base = f"https://{config.azure_account}{_AZURE_BLOB_SUFFIX}/{bucket}/{key}"
        else:
            return None
    else:
        return None

    return _with_suffix(base, parts.query, parts.fragment)


def wrap_with_proxy(url: str, config: ProxyConfig) -> str:
    """Query form: ``{base}/proxy?url=<percent-encoded url>``."""
    base = config.proxy_base_url.rstrip("/")
    return f"{base}{PROXY_QUERY_MARKER}{quote(url, safe='')}"


def wrap_path_based(url: str, config: ProxyConfig) -> str:
    """Path form: ``{base}/proxy/<scheme>/<host><path>``.

    The target's path survives verbatim, so files the database references
    relative to itself resolve through the proxy as well.
    """
    base = config.proxy_base_url.rstrip("/")
    parts = urlsplit(url)
    wrapped = f"{base}{PROXY_PATH}/{parts.scheme}/{parts.netloc}{parts.path}"
    return _with_suffix(wrapped, parts.query, "")


def _wrap(url: str, config: ProxyConfig) -> str:
    return wrap_path_based(url, config) if config.path_based else wrap_with_proxy(url, config)


def rewrite(url: str, config: ProxyConfig, force_wrap: bool = False) -> RewriteResult:
    """Rewrite a single URL. Never raises."""
    normalized = normalize_remote_url(url)
    target = normalized.url

    if is_proxied(target, config):
        return RewriteResult(target, True)

    if not (force_wrap or normalized.had_proxy_prefix):
        return RewriteResult(target, False)

    protocol = classify_url(target).protocol
    if protocol in (Protocol.MANAGED, Protocol.LOCAL):
        return RewriteResult(target, False)

    if protocol in CLOUD_STORAGE:
        https_url = to_https(target, config)
        if https_url is None:
            logger.info("cannot resolve %s to HTTPS; leaving it native", redact_url(target))
            return RewriteResult(target, False)
        target = https_url

    wrapped = _wrap(target, config)
    logger.debug("proxy rewrite %s -> %s", redact_url(url), redact_url(wrapped))
    return RewriteResult(wrapped, True)


def replace_url(statement: AttachStatement, url: str) -> str:
    """Swap the statement's URL literal for ``url``, keeping its quote style."""
    q = statement.quote_char
    literal = q + url.replace(q, q + q) + q
    raw = statement.raw_text
    span = statement.url_span
    return raw[: span.start] + literal + raw[span.end :]


def rewrite_statement(sql: str, config: ProxyConfig, force_wrap: bool = False) -> RewriteResult:
    """Rewrite the URL of an ATTACH statement; any other SQL passes through.

    A statement carrying the ``proxy:`` marker always comes back without it,
    whether or not its URL could be wrapped.
    """
    stmt = classify(sql).attach
    if stmt is None:
        return RewriteResult(sql, False)

    result = rewrite(stmt.target_url, config, force_wrap or stmt.explicit_proxy_requested)
    if result.rewritten_text == stmt.target_url and not stmt.explicit_proxy_requested:
        return RewriteResult(sql, result.was_rewritten)

    return RewriteResult(replace_url(stmt, result.rewritten_text), result.was_rewritten)
