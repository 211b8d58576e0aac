"""Dataclass-based RouteKit configuration.

Every tunable of the resilience core lives in a frozen dataclass:
- StorageConfig: where the durable store lives
- EventQueueConfig: queue capacity and retention of processed events
- RetryPolicy / ReconnectionConfig: backoff budgets (see routekit.resilience)

Defaults are sensible out of the box; from_env() applies ROUTEKIT_* overrides.
"""

import os
from dataclasses import dataclass, field, replace
from pathlib import Path

from routekit.resilience.reconnection import ReconnectionConfig
from routekit.resilience.retry import RetryPolicy

DEFAULT_DB_FILENAME = "routekit.db"


def default_storage_path() -> Path:
    """Database file in the current working directory."""
    return Path.cwd() / DEFAULT_DB_FILENAME


def sqlite_url(path: str | Path) -> str:
    return f"sqlite+aiosqlite:///{path}"


# ---------------------------------------------------------------------------
# Nested config sections
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StorageConfig:
    """Database connection settings."""

    database_url: str = field(default_factory=lambda: sqlite_url(default_storage_path()))
    echo: bool = False
    pool_size: int = 5
    max_overflow: int = 10


@dataclass(frozen=True)
class EventQueueConfig:
    """Event queue capacity and cleanup."""

    max_queue_size: int = 1000  # across all routes
    retention_seconds: float = 7 * 24 * 60 * 60  # processed events


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RouteKitConfig:
    """Complete configuration for a RouteKit instance.

    Usage::

        config = RouteKitConfig.from_env()
        sdk = await RouteKit.create(config=config)
    """

    storage: StorageConfig = field(default_factory=StorageConfig)
    events: EventQueueConfig = field(default_factory=EventQueueConfig)
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)
    reconnection: ReconnectionConfig = field(default_factory=ReconnectionConfig)

    @classmethod
    def default(cls) -> "RouteKitConfig":
        """Create config with all defaults."""
        return cls()

    @classmethod
    def for_database(cls, database_url: str) -> "RouteKitConfig":
        return cls(storage=StorageConfig(database_url=database_url))

    @classmethod
    def from_env(cls, prefix: str = "ROUTEKIT_") -> "RouteKitConfig":
        """Create config from environment variables.

        Example: ROUTEKIT_MAX_QUEUE_SIZE=5000
        """
        config = cls()

        storage = config.storage
        database_url = os.getenv(f"{prefix}DATABASE_URL")
        if database_url:
            storage = replace(storage, database_url=database_url)
        echo = os.getenv(f"{prefix}DB_ECHO")
        if echo:
            storage = replace(storage, echo=echo.lower() == "true")

        events = config.events
        max_queue = os.getenv(f"{prefix}MAX_QUEUE_SIZE")
        if max_queue:
            events = replace(events, max_queue_size=int(max_queue))
        retention = os.getenv(f"{prefix}EVENT_RETENTION_SECONDS")
        if retention:
            events = replace(events, retention_seconds=float(retention))

        retry_policy = config.retry_policy
        retry_attempts = os.getenv(f"{prefix}RETRY_MAX_ATTEMPTS")
        if retry_attempts:
            retry_policy = replace(retry_policy, max_attempts=int(retry_attempts))

        reconnection = config.reconnection
        reconnect_attempts = os.getenv(f"{prefix}RECONNECT_MAX_ATTEMPTS")
        if reconnect_attempts:
            reconnection = replace(reconnection, max_attempts=int(reconnect_attempts))
        reconnect_enabled = os.getenv(f"{prefix}RECONNECT_ENABLED")
        if reconnect_enabled:
            reconnection = replace(reconnection, enabled=reconnect_enabled.lower() == "true")

        return cls(
            storage=storage,
            events=events,
            retry_policy=retry_policy,
            reconnection=reconnection,
        )
