"""Configuration models for the Payload sync system."""

from datetime import timedelta
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from payload_sync.errors import ConfigurationError

DEFAULT_SYNC_INTERVAL_MS = 60 * 1000

_FIELD_MESSAGES = {
    "api_path": "api_path is required and cannot be empty",
    "sync_interval": "sync_interval must be a non-negative number",
    "depth": "depth must be a non-negative integer",
}


class SyncConfig(BaseModel):
    """Per-collection sync settings.

    Instances are immutable. Use :meth:`create` when a ``ConfigurationError``
    is wanted instead of pydantic's ``ValidationError``.
    """

    model_config = ConfigDict(frozen=True)

    api_path: str = Field(default=..., description="Payload collection slug (e.g. 'posts')")
    sync_interval: int = Field(
        default=DEFAULT_SYNC_INTERVAL_MS,
        ge=0,
        description="Minimum milliseconds between two refreshes of the collection",
    )
    depth: int | None = Field(
        default=None, ge=0, description="Relationship depth passed to the Payload query"
    )

    @field_validator("api_path")
    @classmethod
    def validate_api_path(cls, v: str) -> str:
        """Reject blank paths and strip surrounding whitespace."""
        if not v or not v.strip():
            raise ValueError(_FIELD_MESSAGES["api_path"])
        return v.strip()

    @classmethod
    def create(
        cls,
        api_path: Any,
        sync_interval: Any = DEFAULT_SYNC_INTERVAL_MS,
        depth: Any = None,
    ) -> "SyncConfig":
        """Build a SyncConfig, raising ConfigurationError on invalid input.

        Args:
            api_path: Collection slug, must be non-empty after trimming
            sync_interval: Milliseconds between refreshes, must be >= 0
            depth: Optional relationship depth, must be >= 0

        Returns:
            Validated SyncConfig

        Raises:
            ConfigurationError: If any value is invalid
        """
        try:
            return cls(api_path=api_path, sync_interval=sync_interval, depth=depth)
        except ValidationError as e:
            field = e.errors()[0]["loc"][0] if e.errors() else None
            message = _FIELD_MESSAGES.get(str(field), f"Invalid sync configuration: {e}")
            raise ConfigurationError(message) from e

    @property
    def interval(self) -> timedelta:
        """Sync interval as a timedelta."""
        return timedelta(milliseconds=self.sync_interval)

    @property
    def loader_name(self) -> str:
        """Name used to identify the collection in logs and the store."""
        return f"payload-{self.api_path}"

    @property
    def metadata_namespace(self) -> str:
        """Store namespace holding this collection's records and metadata."""
        return self.api_path


class PayloadConfig(BaseModel):
    """Configuration for the Payload API connection."""

    base_url: HttpUrl = Field(default=..., description="Payload instance URL")
    timeout_seconds: float = Field(
        default=30.0, gt=0.0, le=300.0, description="HTTP request timeout in seconds"
    )


class StoreConfig(BaseModel):
    """Configuration for the local record store."""

    path: str | None = Field(
        default=None,
        description="JSON file backing the store. If None, records are kept in memory.",
    )


class SchedulerConfig(BaseModel):
    """Configuration for the periodic sync runner."""

    poll_seconds: float = Field(
        default=30.0, gt=0.0, description="Seconds between two scheduler passes"
    )
    max_retries: int = Field(
        default=3, ge=0, le=10, description="Retries after a transport failure"
    )
    base_delay: float = Field(default=1.0, ge=0.0, description="Initial backoff delay in seconds")
    max_delay: float = Field(default=60.0, ge=0.0, description="Maximum backoff delay in seconds")


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    json_logs: bool = Field(
        default=True,
        description="If True, output JSON logs. If False, use console format.",
    )
    log_file: str | None = Field(
        default=None,
        description="Optional path to log file. If None, logs only to stdout.",
    )


class AppConfig(BaseSettings):
    """Main application configuration.

    This class uses pydantic-settings to load configuration from environment
    variables with the APP_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    payload: PayloadConfig
    collections: list[SyncConfig] = Field(
        default=..., min_length=1, description="Collections to keep in sync"
    )
    store: StoreConfig = Field(default_factory=StoreConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
