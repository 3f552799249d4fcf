"""YAML configuration for the hub server."""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Config sections
# ---------------------------------------------------------------------------


@dataclass
class ServerConfig:
    """HTTP listener settings."""

    host: str = "127.0.0.1"
    port: int = 8080

    def to_dict(self) -> dict:
        return {"host": self.host, "port": self.port}

    @classmethod
    def from_dict(cls, data: dict) -> ServerConfig:
        return cls(
            host=data.get("host", "127.0.0.1"),
            port=int(data.get("port", 8080)),
        )


@dataclass
class DatabaseConfig:
    """Record store location."""

    path: Path = field(default_factory=lambda: Path("state/hub.db"))

    def to_dict(self) -> dict:
        return {"path": str(self.path)}

    @classmethod
    def from_dict(cls, data: dict) -> DatabaseConfig:
        if "path" in data:
            return cls(path=Path(data["path"]).expanduser())
        return cls()


@dataclass
class SearchConfig:
    """Search endpoint limits."""

    default_limit: int = 20
    max_limit: int = 50
    max_query_length: int = 200
    excerpt_length: int = 150
    rate_limit: int = 30  # requests per window per IP
    rate_window_seconds: int = 60

    def to_dict(self) -> dict:
        return {
            "default_limit": self.default_limit,
            "max_limit": self.max_limit,
            "max_query_length": self.max_query_length,
            "excerpt_length": self.excerpt_length,
            "rate_limit": self.rate_limit,
            "rate_window_seconds": self.rate_window_seconds,
        }

    @classmethod
    def from_dict(cls, data: dict) -> SearchConfig:
        defaults = cls()
        return cls(
            default_limit=int(data.get("default_limit", defaults.default_limit)),
            max_limit=int(data.get("max_limit", defaults.max_limit)),
            max_query_length=int(data.get("max_query_length", defaults.max_query_length)),
            excerpt_length=int(data.get("excerpt_length", defaults.excerpt_length)),
            rate_limit=int(data.get("rate_limit", defaults.rate_limit)),
            rate_window_seconds=int(data.get("rate_window_seconds", defaults.rate_window_seconds)),
        )


@dataclass
class MetricsConfig:
    """Metrics endpoint defaults."""

    default_range_days: int = 30
    default_granularity: str = "day"
    rate_limit: int = 30
    rate_window_seconds: int = 60

    def to_dict(self) -> dict:
        return {
            "default_range_days": self.default_range_days,
            "default_granularity": self.default_granularity,
            "rate_limit": self.rate_limit,
            "rate_window_seconds": self.rate_window_seconds,
        }

    @classmethod
    def from_dict(cls, data: dict) -> MetricsConfig:
        defaults = cls()
        return cls(
            default_range_days=int(data.get("default_range_days", defaults.default_range_days)),
            default_granularity=data.get("default_granularity", defaults.default_granularity),
            rate_limit=int(data.get("rate_limit", defaults.rate_limit)),
            rate_window_seconds=int(data.get("rate_window_seconds", defaults.rate_window_seconds)),
        )


@dataclass
class AuthConfig:
    """Where the authenticated user id is read from.

    Authentication happens upstream (reverse proxy or gateway); the hub
    trusts the header it sets.
    """

    user_header: str = "X-User-Id"

    def to_dict(self) -> dict:
        return {"user_header": self.user_header}

    @classmethod
    def from_dict(cls, data: dict) -> AuthConfig:
        return cls(user_header=data.get("user_header", "X-User-Id"))


@dataclass
class LoggingConfig:
    level: str = "INFO"

    def to_dict(self) -> dict:
        return {"level": self.level}

    @classmethod
    def from_dict(cls, data: dict) -> LoggingConfig:
        return cls(level=str(data.get("level", "INFO")).upper())


@dataclass
class HubConfig:
    """Complete server configuration."""

    server: ServerConfig = field(default_factory=ServerConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    metrics: MetricsConfig = field(default_factory=MetricsConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def to_dict(self) -> dict:
        """Serialize to dict for YAML storage."""
        return {
            "server": self.server.to_dict(),
            "database": self.database.to_dict(),
            "search": self.search.to_dict(),
            "metrics": self.metrics.to_dict(),
            "auth": self.auth.to_dict(),
            "logging": self.logging.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> HubConfig:
        """Deserialize from dict. Missing sections get defaults."""
        return cls(
            server=ServerConfig.from_dict(data.get("server") or {}),
            database=DatabaseConfig.from_dict(data.get("database") or {}),
            search=SearchConfig.from_dict(data.get("search") or {}),
            metrics=MetricsConfig.from_dict(data.get("metrics") or {}),
            auth=AuthConfig.from_dict(data.get("auth") or {}),
            logging=LoggingConfig.from_dict(data.get("logging") or {}),
        )


# ---------------------------------------------------------------------------
# Loading and saving
# ---------------------------------------------------------------------------


def load_config(config_path: Path) -> HubConfig:
    """Load configuration from a YAML file.

    Args:
        config_path: Path to config.yaml.

    Returns:
        HubConfig; all defaults if the file doesn't exist or is empty.
    """
    if not config_path.exists():
        logger.info(f"No config file at {config_path}, using defaults")
        return HubConfig()

    with open(config_path, encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if not data:
        return HubConfig()
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping: {config_path}")

    return HubConfig.from_dict(data)


def save_config(config: HubConfig, config_path: Path) -> None:
    """Write configuration to YAML atomically (temp file + rename)."""
    config_path.parent.mkdir(parents=True, exist_ok=True)

    fd, temp_path = tempfile.mkstemp(
        dir=config_path.parent,
        prefix=".config_",
        suffix=".yaml.tmp",
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            yaml.safe_dump(config.to_dict(), f, default_flow_style=False)
        os.replace(temp_path, config_path)
    except Exception:
        if os.path.exists(temp_path):
            os.unlink(temp_path)
        raise


def apply_env_overrides(config: HubConfig, environ: dict[str, str] | None = None) -> HubConfig:
    """Override config values from HUB_* environment variables.

    Supported: HUB_HOST, HUB_PORT, HUB_DB_PATH, HUB_LOG_LEVEL, HUB_USER_HEADER.

    Args:
        config: Configuration to update in place.
        environ: Environment mapping (defaults to os.environ).

    Returns:
        The same config object.
    """
    env = os.environ if environ is None else environ

    if env.get("HUB_HOST"):
        config.server.host = env["HUB_HOST"]
    if env.get("HUB_PORT"):
        config.server.port = int(env["HUB_PORT"])
    if env.get("HUB_DB_PATH"):
        config.database.path = Path(env["HUB_DB_PATH"]).expanduser()
    if env.get("HUB_LOG_LEVEL"):
        config.logging.level = env["HUB_LOG_LEVEL"].upper()
    if env.get("HUB_USER_HEADER"):
        config.auth.user_header = env["HUB_USER_HEADER"]

    return config
