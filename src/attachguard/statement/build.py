"""Build ATTACH / DETACH statements with proper quoting."""

from __future__ import annotations

import re

from attachguard.proxy.config import ProxyConfig
from attachguard.proxy.protocol import CLOUD_STORAGE, WEB, classify_url
from attachguard.proxy.rewrite import to_https, wrap_path_based

_VALID_DB_NAME = re.compile(r"^[a-zA-Z0-9_-]+$")


def is_valid_database_name(name: str) -> bool:
    """Alphanumerics, underscores and hyphens only."""
    return _VALID_DB_NAME.match(name) is not None


def quote_literal(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def quote_identifier(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def build_attach_query(
    path: str,
    db_name: str,
    *,
    read_only: bool = False,
    use_proxy: bool = False,
    config: ProxyConfig | None = None,
    secret_name: str | None = None,
    attach_type: str | None = None,
) -> str:
    """ATTACH '<path>' AS "<db_name>" [(TYPE ..., SECRET ..., READ_ONLY)].

    With ``use_proxy`` a remote path is converted to HTTPS where needed and
    wrapped in the path-preserving proxy form, so companion files the
    database references relatively stay reachable.
    """
    final_path = path
    protocol = classify_url(path).protocol
    if use_proxy and protocol in WEB | CLOUD_STORAGE:
        config = config or ProxyConfig()
        https_url = to_https(path, config) if protocol in CLOUD_STORAGE else path
        if https_url is not None:
            final_path = wrap_path_based(https_url, config)

    clauses: list[str] = []
    if attach_type:
        clauses.append(f"TYPE {attach_type}")
    if secret_name:
        clauses.append(f"SECRET {quote_identifier(secret_name)}")
    if read_only:
        clauses.append("READ_ONLY")
    suffix = f" ({', '.join(clauses)})" if clauses else ""

    return f"ATTACH {quote_literal(final_path)} AS {quote_identifier(db_name)}{suffix}"


def build_detach_query(db_name: str, if_exists: bool = True) -> str:
    if_exists_clause = "IF EXISTS " if if_exists else ""
    return f"DETACH DATABASE {if_exists_clause}{quote_identifier(db_name)}"
