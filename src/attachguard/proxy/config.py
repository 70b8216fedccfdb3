"""Proxy configuration — ~/.attachguard/config.toml plus environment overrides.

The config is a value: settings providers hand out a fresh ``ProxyConfig`` on
every call, and the gateway reads it once per execution.
"""

from __future__ import annotations

import enum
import os
import stat
import tomllib
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Protocol, runtime_checkable

_CONFIG_FILE = Path.home() / ".attachguard" / "config.toml"

DEFAULT_PROXY_URL = "https://cors-proxy.pondpilot.io"

ENV_PROXY_URL = "ATTACHGUARD_PROXY_URL"
ENV_PROXY_BEHAVIOR = "ATTACHGUARD_PROXY_BEHAVIOR"

_KEYS = ("behavior", "url", "s3_endpoint", "azure_account", "path_based")


class ProxyBehavior(enum.Enum):
    AUTO = "auto"      # try direct, fall back to the proxy on cross-origin failure
    ALWAYS = "always"  # route every remote ATTACH through the proxy
    NEVER = "never"    # only the explicit proxy: marker engages the proxy


@dataclass(frozen=True)
class ProxyConfig:
    behavior: ProxyBehavior = ProxyBehavior.AUTO
    proxy_base_url: str = DEFAULT_PROXY_URL
    custom_s3_endpoint: str | None = None
    azure_account: str | None = None
    path_based: bool = False

    def with_behavior(self, behavior: ProxyBehavior | str) -> ProxyConfig:
        return replace(self, behavior=ProxyBehavior(behavior))


@runtime_checkable
class SettingsProvider(Protocol):
    def get_proxy_config(self) -> ProxyConfig: ...


class StaticSettingsProvider:
    """Serves a fixed config; ``update`` swaps it for the next execution."""

    def __init__(self, config: ProxyConfig | None = None) -> None:
        self._config = config or ProxyConfig()

    def get_proxy_config(self) -> ProxyConfig:
        return self._config

    def update(self, config: ProxyConfig) -> None:
        self._config = config


class FileSettingsProvider:
    """Reads the config file and environment on every call (never cached)."""

    def get_proxy_config(self) -> ProxyConfig:
        return load_proxy_config()


class ConfigError(ValueError):
    """Raised for invalid values in the config file or environment."""


def _escape_toml_value(v: str) -> str:
    """Escape a string for safe inclusion in a TOML double-quoted value."""
    return v.replace("\\", "\\\\").replace('"', '\\"')


def _load_file() -> dict:
    if not _CONFIG_FILE.exists():
        return {}
    return tomllib.loads(_CONFIG_FILE.read_text())


def _write_toml(proxy: dict[str, object]) -> None:
    """Serialize the [proxy] table and write it with restricted permissions."""
    lines = ["[proxy]"]
    for k, v in proxy.items():
        if isinstance(v, bool):
            lines.append(f"{k} = {'true' if v else 'false'}")
        else:
            lines.append(f'{k} = "{_escape_toml_value(str(v))}"')
    lines.append("")

    _CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True, mode=0o700)
    _CONFIG_FILE.write_text("\n".join(lines))
    os.chmod(_CONFIG_FILE, stat.S_IRUSR | stat.S_IWUSR)  # 0600


def _parse_behavior(value: object, source: str) -> ProxyBehavior:
    try:
        return ProxyBehavior(str(value).strip().lower())
    except ValueError as e:
        valid = ", ".join(b.value for b in ProxyBehavior)
        raise ConfigError(f"Invalid proxy behavior '{value}' in {source}. Valid: {valid}") from e


def load_proxy_config() -> ProxyConfig:
    """Build a ProxyConfig from the config file, then environment overrides."""
    proxy = _load_file().get("proxy", {})

    config = ProxyConfig()
    if "behavior" in proxy:
        config = replace(config, behavior=_parse_behavior(proxy["behavior"], str(_CONFIG_FILE)))
    if proxy.get("url"):
        config = replace(config, proxy_base_url=str(proxy["url"]).rstrip("/"))
    if proxy.get("s3_endpoint"):
        config = replace(config, custom_s3_endpoint=str(proxy["s3_endpoint"]).rstrip("/"))
    if proxy.get("azure_account"):
        config = replace(config, azure_account=str(proxy["azure_account"]))
    if "path_based" in proxy:
        config = replace(config, path_based=bool(proxy["path_based"]))

    env_url = os.environ.get(ENV_PROXY_URL)
    if env_url:
        config = replace(config, proxy_base_url=env_url.rstrip("/"))
    env_behavior = os.environ.get(ENV_PROXY_BEHAVIOR)
    if env_behavior:
        config = replace(config, behavior=_parse_behavior(env_behavior, ENV_PROXY_BEHAVIOR))

    return config


def read_proxy_settings() -> dict[str, object]:
    """Raw [proxy] table from the config file."""
    return dict(_load_file().get("proxy", {}))


def save_proxy_setting(key: str, value: str) -> Path:
    """Set one key of the [proxy] table."""
    if key not in _KEYS:
        raise ConfigError(f"Unknown proxy setting '{key}'. Valid: {', '.join(_KEYS)}")

    stored: object = value
    if key == "behavior":
        stored = _parse_behavior(value, "argument").value
    elif key == "path_based":
        stored = value.strip().lower() in ("1", "true", "yes", "on")

    proxy = read_proxy_settings()
    proxy[key] = stored
    _write_toml(proxy)
    return _CONFIG_FILE


def reset_proxy_settings() -> bool:
    """Delete the config file. Returns True if it existed."""
    if not _CONFIG_FILE.exists():
        return False
    _CONFIG_FILE.unlink()
    return True
