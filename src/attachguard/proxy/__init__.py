"""CORS proxy: configuration, protocol classification, URL rewriting."""

from attachguard.proxy.config import (
    DEFAULT_PROXY_URL,
    ConfigError,
    FileSettingsProvider,
    ProxyBehavior,
    ProxyConfig,
    SettingsProvider,
    StaticSettingsProvider,
    load_proxy_config,
)
from attachguard.proxy.protocol import (
    Protocol,
    UrlClass,
    classify_url,
    is_remote_url,
    normalize_remote_url,
    redact_sql,
    redact_url,
)
from attachguard.proxy.rewrite import (
    RewriteResult,
    is_proxied,
    rewrite,
    rewrite_statement,
    to_https,
    wrap_path_based,
    wrap_with_proxy,
)

__all__ = [
    "DEFAULT_PROXY_URL",
    "ConfigError",
    "FileSettingsProvider",
    "Protocol",
    "ProxyBehavior",
    "ProxyConfig",
    "RewriteResult",
    "SettingsProvider",
    "StaticSettingsProvider",
    "UrlClass",
    "classify_url",
    "is_proxied",
    "is_remote_url",
    "load_proxy_config",
    "normalize_remote_url",
    "redact_sql",
    "redact_url",
    "rewrite",
    "rewrite_statement",
    "to_https",
    "wrap_path_based",
    "wrap_with_proxy",
]
