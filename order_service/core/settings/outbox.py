"""Transactional outbox dispatcher settings."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class OutboxSettings(BaseSettings):
    """Outbox dispatcher configuration.

    Environment variables use OUTBOX_ prefix.
    Example: OUTBOX_POLL_INTERVAL=3, OUTBOX_BATCH_SIZE=50

    The poll interval doubles as the retry interval for records that
    failed to publish; there is no separate backoff schedule.
    """

    enabled: bool = Field(
        default=True,
        description="Start the outbox dispatcher with the application.",
    )
    poll_interval: float = Field(
        default=5.0,
        gt=0,
        le=3600.0,
        description="Seconds between dispatch cycles.",
    )
    batch_size: int = Field(
        default=100,
        ge=1,
        le=10_000,
        description="Maximum number of pending records read per cycle.",
    )
    shutdown_timeout: float = Field(
        default=30.0,
        ge=0.0,
        le=600.0,
        description="Seconds to wait for the in-flight cycle on shutdown before cancelling.",
    )
    content_type: str = Field(
        default="application/json",
        min_length=1,
        max_length=100,
        description="Content type declared on captured payloads.",
    )

    model_config = SettingsConfigDict(
        env_prefix="OUTBOX_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )
