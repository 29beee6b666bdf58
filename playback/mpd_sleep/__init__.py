"""
MPD Sleep Timer

Arm a countdown that fades out and pauses an MPD player when it expires.
"""

__version__ = "1.0.0"

from .coordinator import SleepTimerCoordinator
from .config import SleepTimerConfig, PlayerEndpoint, FadeSettings, ServerSettings
from .inbox import Inbox, InboxSender, ChannelDisconnected
from .models import PlayerStatus, PlayState, StartTimer, Cancel
from .player_control import PlayerControl, PlayerError, PlayerConnectionError, PlayerCommandError

__all__ = [
    "SleepTimerCoordinator",
    "SleepTimerConfig",
    "PlayerEndpoint",
    "FadeSettings",
    "ServerSettings",
    "Inbox",
    "InboxSender",
    "ChannelDisconnected",
    "PlayerStatus",
    "PlayState",
    "StartTimer",
    "Cancel",
    "PlayerControl",
    "PlayerError",
    "PlayerConnectionError",
    "PlayerCommandError",
]
