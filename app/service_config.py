"""
Unified configuration for the sleep timer service
Merges environment variables (and an optional .env file) with the playback module configuration
"""

import os
import logging
from dataclasses import dataclass
from dotenv import load_dotenv

from mpd_sleep.config import SleepTimerConfig

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


@dataclass
class ServiceConfig:
    """Configuration for the HTTP service"""

    timer: SleepTimerConfig
    app_title: str
    enable_docs: bool

    @classmethod
    def from_env(cls) -> "ServiceConfig":
        """Create configuration from environment variables"""
        return cls(
            timer=SleepTimerConfig.from_env(),
            app_title=os.environ.get("APP_TITLE", "MPD Sleep Timer"),
            enable_docs=os.environ.get("ENABLE_DOCS", "false").lower() == "true",
        )


def load_service_config() -> ServiceConfig:
    """Load service configuration"""
    config = ServiceConfig.from_env()
    logger.debug(
        f"Loaded configuration: MPD at {config.timer.player.host}:{config.timer.player.port}, "
        f"fade floor {config.timer.fade.floor_volume}"
    )
    return config
