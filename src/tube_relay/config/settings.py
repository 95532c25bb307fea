"""Application settings loaded from environment variables and config files.

Configuration is loaded from (highest priority first):
1. Environment variables (prefix: ``TUBERELAY_``, nested via ``__``)
2. YAML config file (``TUBERELAY_CONFIG_PATH`` env var)
3. Defaults defined here
"""

from __future__ import annotations

import enum
from pathlib import Path
from typing import Any, Self

import yaml
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ---------------------------------------------------------------------------
# Enums for validated choices
# ---------------------------------------------------------------------------


class DatabaseEngine(enum.StrEnum):
    """Supported database engines."""

    SQLITE = "sqlite"
    POSTGRESQL = "postgresql"


# ---------------------------------------------------------------------------
# Sub-config models
# ---------------------------------------------------------------------------


class ServerConfig(BaseSettings):
    """HTTP server settings."""

    model_config = SettingsConfigDict(
        env_prefix="TUBERELAY_SERVER__",
        case_sensitive=False,
    )

    host: str = "0.0.0.0"  # noqa: S104
    port: int = Field(default=3000, ge=1024, le=65535)


class DatabaseConfig(BaseSettings):
    """Database settings."""

    model_config = SettingsConfigDict(
        env_prefix="TUBERELAY_DB__",
        case_sensitive=False,
    )

    engine: DatabaseEngine = Field(
        default=DatabaseEngine.SQLITE,
        description="Database backend: sqlite or postgresql",
    )
    dsn: str = Field(
        default="sqlite+aiosqlite:///./tube_relay.db",
        description="Async database connection string",
    )
    max_idle_connections: int = 5
    max_open_connections: int = 10
    debug_sql: bool = False


class HubConfig(BaseSettings):
    """PubSubHubbub hub settings."""

    model_config = SettingsConfigDict(
        env_prefix="TUBERELAY_HUB__",
        case_sensitive=False,
    )

    hub_url: str = "https://pubsubhubbub.appspot.com/subscribe"
    topic_url_template: str = "https://www.youtube.com/xml/feeds/videos.xml?channel_id={channel_id}"
    callback_path: str = "/google/subscription"
    request_timeout: float = 30.0


class SchedulerConfig(BaseSettings):
    """Resubscription scheduler settings."""

    model_config = SettingsConfigDict(
        env_prefix="TUBERELAY_SCHEDULER__",
        case_sensitive=False,
    )

    safety_buffer_seconds: int = 3600
    min_delay_seconds: int = 5
    queue_size: int = 100


class RedditConfig(BaseSettings):
    """Reddit application credentials and endpoints."""

    model_config = SettingsConfigDict(
        env_prefix="TUBERELAY_REDDIT__",
        case_sensitive=False,
    )

    client_id: str = ""
    client_secret: str = ""
    redirect_url: str = "http://localhost:3000/reddit/callback"
    user_agent: str = "tube-relay/0.1.0"
    auth_url: str = "https://www.reddit.com"
    api_url: str = "https://oauth.reddit.com"


class MetricsConfig(BaseSettings):
    """Prometheus metrics settings."""

    model_config = SettingsConfigDict(
        env_prefix="TUBERELAY_METRICS__",
        case_sensitive=False,
    )

    enabled: bool = True


class TaskConfig(BaseSettings):
    """Background cron job settings."""

    model_config = SettingsConfigDict(
        env_prefix="TUBERELAY_TASK__",
        case_sensitive=False,
    )

    enabled: bool = True
    resubscribe_sweep_period: float = 6 * 3600
    metrics_period: float = 60


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------


def _load_yaml(path: str | Path) -> dict[str, Any]:
    """Load a YAML configuration file and return its contents as a dict.

    Returns an empty dict if the file doesn't exist or is empty.
    """
    p = Path(path)
    if not p.exists():
        return {}
    text = p.read_text(encoding="utf-8")
    data = yaml.safe_load(text)
    return data if isinstance(data, dict) else {}


class AppConfig(BaseSettings):
    """Top-level application configuration.

    Loads settings from environment variables (``TUBERELAY_`` prefix),
    an optional YAML file, and built-in defaults.
    """

    model_config = SettingsConfigDict(
        env_prefix="TUBERELAY_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    debug: bool = False
    config_path: str = ""

    server: ServerConfig = Field(default_factory=ServerConfig)
    db: DatabaseConfig = Field(default_factory=DatabaseConfig)
    hub: HubConfig = Field(default_factory=HubConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    reddit: RedditConfig = Field(default_factory=RedditConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)
    task: TaskConfig = Field(default_factory=TaskConfig)

    @model_validator(mode="before")
    @classmethod
    def _merge_yaml(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Merge YAML config file contents under the env var overrides."""
        config_path = values.get("config_path", "")
        if not config_path:
            return values
        yaml_data = _load_yaml(config_path)
        for key, val in yaml_data.items():
            if key not in values or values[key] is None:
                values[key] = val
            elif isinstance(val, dict) and isinstance(values.get(key), dict):
                values[key] = {**val, **values[key]}
        return values

    @classmethod
    def from_yaml(cls, path: str | Path) -> Self:
        """Construct ``AppConfig`` loading defaults from a YAML file.

        Environment variables still override YAML values.
        """
        return cls(config_path=str(path))
