"""Configuration models."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field


class PeerConfig(BaseModel):
    """Where the editor listener lives and how patiently we talk to it."""

    host: str = "127.0.0.1"
    port: int = Field(default=38910, ge=1, le=65535)
    protocol: Literal["stream", "datagram"] = "stream"
    connect_backoff: float = Field(default=3.0, gt=0)
    response_timeout: float = Field(default=5.0, gt=0)
    # None keeps resending until the peer answers
    resend_attempts: int | None = Field(default=None, ge=1)
    send_retries: int = Field(default=3, ge=1)


class WatchConfig(BaseModel):
    """Watch mode configuration."""

    assets_dir: str = "Assets"
    delay: float = Field(default=1.0, ge=0)
    max_delay: float = Field(default=10.0, gt=0)
    tick: float = Field(default=0.25, gt=0)
    force_polling: bool | None = None


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["debug", "info", "warning", "error"] = "info"
    file: Path | None = None


class Config(BaseModel):
    """Main configuration."""

    peer: PeerConfig = Field(default_factory=PeerConfig)
    watch: WatchConfig = Field(default_factory=WatchConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
