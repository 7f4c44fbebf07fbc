"""
Configuration Module

Architectural Intent:
- Centralized configuration loading for the edge server, fetch client and TUI
- Provides typed access to all gmdash settings
- Falls back to sensible defaults when config file is absent
- Environment variables override file-based config

Design Decisions:
- Config is a frozen dataclass built once at process start and injected;
  business logic never reads os.environ directly
- Nested config sections map to sub-dataclasses
- PORT is honoured as an alias for GMDASH_SERVER_PORT (hosting platforms set it)
"""

from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
import dataclasses
import json
import logging
import os

logger = logging.getLogger(__name__)

DEFAULT_UPSTREAM_URL = "https://n8n-v2.mcp.hyperplane.dev"


class ConfigurationError(Exception):
    """Fatal misconfiguration detected at startup."""


@dataclass(frozen=True)
class ServerConfig:
    """Edge server configuration."""
    host: str = "0.0.0.0"
    port: int = 5173
    asset_root: str = "dist"


@dataclass(frozen=True)
class ProxyConfig:
    """Reverse proxy configuration."""
    upstream_url: str = DEFAULT_UPSTREAM_URL
    timeout_seconds: float = 90.0


@dataclass(frozen=True)
class EndpointsConfig:
    """Upstream workflow endpoint URLs, one per data family."""
    ticket_sales: str = ""
    season_pass_sales: str = ""
    labor: str = ""
    nps: str = ""


@dataclass(frozen=True)
class ClientConfig:
    """Fetch client configuration."""
    api_key: str = ""
    timeout_seconds: float = 90.0
    proxy_base_url: str = ""
    use_local_data: bool = False
    refresh_interval_seconds: float = 300.0


@dataclass(frozen=True)
class SalesConfig:
    """Season labels used to pick comparison records."""
    season_pass_current: str = "FY26"
    season_pass_previous: str = "FY25"


@dataclass(frozen=True)
class DashboardConfig:
    """Root configuration for the gmdash application."""
    server: ServerConfig = field(default_factory=ServerConfig)
    proxy: ProxyConfig = field(default_factory=ProxyConfig)
    endpoints: EndpointsConfig = field(default_factory=EndpointsConfig)
    client: ClientConfig = field(default_factory=ClientConfig)
    sales: SalesConfig = field(default_factory=SalesConfig)
    log_level: str = "INFO"
    log_json: bool = False


_ENDPOINT_ENV_NAMES = {
    "ticket_sales": "GMDASH_ENDPOINTS_TICKET_SALES",
    "season_pass_sales": "GMDASH_ENDPOINTS_SEASON_PASS_SALES",
    "labor": "GMDASH_ENDPOINTS_LABOR",
    "nps": "GMDASH_ENDPOINTS_NPS",
}


def _env_override(data: dict, prefix: str = "GMDASH") -> dict:
    """Override config values with environment variables.

    Environment variables follow the pattern GMDASH_SECTION_KEY.
    For example: GMDASH_SERVER_PORT=8080, GMDASH_ENDPOINTS_LABOR=https://...
    Top-level keys (log_level, log_json) are matched whole.
    """
    top_level = {"log_level", "log_json"}
    for key, value in os.environ.items():
        if not key.startswith(f"{prefix}_"):
            continue
        name = key[len(prefix) + 1:].lower()
        if name in top_level:
            data[name] = value
            continue
        parts = name.split("_", 1)
        if len(parts) == 2:
            section, field_name = parts
            if not isinstance(data.get(section), dict):
                data[section] = {}
            data[section][field_name] = value
    if "PORT" in os.environ and f"{prefix}_SERVER_PORT" not in os.environ:
        data.setdefault("server", {})["port"] = os.environ["PORT"]
    return data


def _parse_config_file(path: Path) -> dict:
    """Parse a JSON config file. Returns empty dict on failure."""
    try:
        with open(path) as f:
            return json.load(f)
    except FileNotFoundError:
        logger.debug("Config file not found: %s", path)
        return {}
    except json.JSONDecodeError as e:
        logger.warning("Invalid config file %s: %s", path, e)
        return {}


def _coerce(value, type_name: str):
    if not isinstance(value, str):
        return value
    if type_name == "int":
        return int(value)
    if type_name == "float":
        return float(value)
    if type_name == "bool":
        return value.lower() in ("true", "1", "yes")
    return value


def _build_sub_config(cls, data: dict):
    """Build a sub-config dataclass from a dict, ignoring unknown keys."""
    valid_fields = {f.name: f for f in dataclasses.fields(cls)}
    filtered = {k: v for k, v in data.items() if k in valid_fields}
    try:
        for name in filtered:
            filtered[name] = _coerce(filtered[name], valid_fields[name].type)
    except ValueError as e:
        raise ConfigurationError(f"Invalid value in {cls.__name__}: {e}") from e
    return cls(**filtered)


def load_config(
    path: Optional[str] = None,
    env_prefix: str = "GMDASH",
) -> DashboardConfig:
    """Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables (GMDASH_SECTION_KEY)
    2. Config file values
    3. Defaults

    Args:
        path: Path to config file (JSON). Defaults to gmdash.json in CWD.
        env_prefix: Environment variable prefix. Defaults to GMDASH.
    """
    config_path = Path(path) if path else Path("gmdash.json")
    data = _parse_config_file(config_path)
    data = _env_override(data, env_prefix)

    return DashboardConfig(
        server=_build_sub_config(ServerConfig, data.get("server", {})),
        proxy=_build_sub_config(ProxyConfig, data.get("proxy", {})),
        endpoints=_build_sub_config(EndpointsConfig, data.get("endpoints", {})),
        client=_build_sub_config(ClientConfig, data.get("client", {})),
        sales=_build_sub_config(SalesConfig, data.get("sales", {})),
        log_level=str(data.get("log_level", "INFO")).upper(),
        log_json=_coerce(data.get("log_json", False), "bool"),
    )


def require_endpoints(endpoints: EndpointsConfig) -> EndpointsConfig:
    """Fail fast when any upstream endpoint URL is missing."""
    status = {
        name: "set" if getattr(endpoints, name) not in ("", "undefined") else "missing"
        for name in _ENDPOINT_ENV_NAMES
    }
    # URLs are never logged, only presence.
    logger.info("API endpoints configured: %s", status)
    missing = [_ENDPOINT_ENV_NAMES[n] for n, s in status.items() if s == "missing"]
    if missing:
        raise ConfigurationError(
            "Missing required environment variable(s): " + ", ".join(missing)
        )
    return endpoints


def require_assets(server: ServerConfig) -> Path:
    """Return the asset root, failing if it or its index.html is missing."""
    root = Path(server.asset_root).resolve()
    if not root.is_dir():
        raise ConfigurationError(f"Asset root not found: {root}")
    if not (root / "index.html").is_file():
        raise ConfigurationError(f"index.html not found in asset root: {root}")
    return root
