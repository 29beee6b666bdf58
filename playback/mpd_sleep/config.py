"""
Configuration models for the sleep timer
"""

from pydantic import BaseModel, Field
from typing import Optional, Literal
import os
import logging

logger = logging.getLogger(__name__)


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning(f"Ignoring invalid value for {name}: {value!r}")
        return default


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Ignoring invalid value for {name}: {value!r}")
        return default


class PlayerEndpoint(BaseModel):
    """Where to reach the MPD daemon"""
    host: str = Field(default="127.0.0.1", description="MPD host name or IP")
    port: int = Field(default=6600, ge=1, le=65535, description="MPD TCP port")
    password: Optional[str] = Field(None, description="MPD password, if the daemon requires one")
    timeout_s: float = Field(default=5.0, gt=0, le=60.0, description="Socket timeout for each MPD command")

    @classmethod
    def from_env(cls) -> "PlayerEndpoint":
        """Create PlayerEndpoint from environment variables"""
        return cls(
            host=os.getenv("MPD_HOST", "127.0.0.1"),
            port=_env_int("MPD_PORT", 6600),
            password=os.getenv("MPD_PASSWORD") or None,
            timeout_s=_env_float("MPD_TIMEOUT_S", 5.0),
        )


class FadeSettings(BaseModel):
    """Volume ramp used when the sleep timer fires"""
    floor_volume: int = Field(default=40, ge=0, le=100, description="Volume the ramp stops at before pausing")
    step_interval_s: float = Field(default=0.1, ge=0, le=5.0, description="Sleep between single-unit volume steps")

    @classmethod
    def from_env(cls) -> "FadeSettings":
        """Create FadeSettings from environment variables"""
        return cls(
            floor_volume=_env_int("SLEEP_FADE_FLOOR", 40),
            step_interval_s=_env_float("SLEEP_FADE_STEP_S", 0.1),
        )


class ServerSettings(BaseModel):
    """HTTP listener configuration"""
    listen_host: str = Field(default="0.0.0.0", description="Interface the HTTP service binds to")
    listen_port: int = Field(default=5613, ge=1, le=65535, description="Port the HTTP service binds to")

    @classmethod
    def from_env(cls) -> "ServerSettings":
        """Create ServerSettings from environment variables"""
        return cls(
            listen_host=os.getenv("LISTEN_HOST", "0.0.0.0"),
            listen_port=_env_int("LISTEN_PORT", 5613),
        )


class SleepTimerConfig(BaseModel):
    """Main configuration for the sleep timer service"""
    player: PlayerEndpoint = Field(default_factory=PlayerEndpoint, description="MPD connection settings")
    fade: FadeSettings = Field(default_factory=FadeSettings, description="Fade-and-pause settings")
    server: ServerSettings = Field(default_factory=ServerSettings, description="HTTP listener settings")
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: Literal["json", "text", "simple"] = Field(default="text", description="Log format (json|text|simple)")

    @classmethod
    def from_env(cls) -> "SleepTimerConfig":
        """Create configuration from environment variables"""
        log_format = os.getenv("LOG_FORMAT", "text").lower()
        if log_format not in ("json", "text", "simple"):
            logger.warning(f"Unknown LOG_FORMAT {log_format!r}, using text")
            log_format = "text"
        return cls(
            player=PlayerEndpoint.from_env(),
            fade=FadeSettings.from_env(),
            server=ServerSettings.from_env(),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=log_format,
        )
