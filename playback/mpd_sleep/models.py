"""
Data models and enums for the sleep timer
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Dict, Any, List, Union
import time


class PlayState(Enum):
    """Playback state as reported by MPD"""
    PLAY = "play"
    PAUSE = "pause"
    STOP = "stop"

    @classmethod
    def from_mpd(cls, value: Optional[str]) -> "PlayState":
        """Parse MPD's state string, treating unknown values as stopped"""
        try:
            return cls(value)
        except ValueError:
            return cls.STOP


def _optional_int(value: Optional[str]) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _optional_float(value: Optional[str]) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except ValueError:
        return None


@dataclass
class PlayerStatus:
    """Snapshot of the player status, read fresh on each access"""
    volume: int
    state: PlayState
    repeat: bool = False
    random: bool = False
    single: bool = False
    consume: bool = False
    song: Optional[int] = None
    elapsed: Optional[float] = None
    duration: Optional[float] = None
    playlist_length: Optional[int] = None

    @classmethod
    def from_mpd(cls, status: Dict[str, str]) -> "PlayerStatus":
        """Create PlayerStatus from an MPD status response"""
        # MPD omits volume (or reports -1) when no mixer is configured
        volume = _optional_int(status.get("volume"))
        return cls(
            volume=-1 if volume is None else volume,
            state=PlayState.from_mpd(status.get("state")),
            repeat=status.get("repeat") == "1",
            random=status.get("random") == "1",
            single=status.get("single") == "1",
            consume=status.get("consume") == "1",
            song=_optional_int(status.get("song")),
            elapsed=_optional_float(status.get("elapsed")),
            duration=_optional_float(status.get("duration")),
            playlist_length=_optional_int(status.get("playlistlength")),
        )

    @property
    def has_mixer(self) -> bool:
        return self.volume >= 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging and API replies"""
        return {
            "volume": self.volume,
            "state": self.state.value,
            "repeat": self.repeat,
            "random": self.random,
            "single": self.single,
            "consume": self.consume,
            "song": self.song,
            "elapsed": self.elapsed,
            "duration": self.duration,
            "playlist_length": self.playlist_length,
        }


@dataclass(frozen=True)
class StartTimer:
    """Arm (or re-arm) the sleep timer for `duration` seconds"""
    duration: float

    def __post_init__(self):
        try:
            float(self.duration)
        except OverflowError:
            raise ValueError("Timer duration is too large")
        if self.duration < 0:
            raise ValueError(f"Timer duration must not be negative, got {self.duration}")


@dataclass(frozen=True)
class Cancel:
    """Disarm a pending sleep timer"""


ControlMessage = Union[StartTimer, Cancel]


@dataclass(frozen=True)
class Idle:
    """No timer is armed"""

    @property
    def name(self) -> str:
        return "IDLE"


@dataclass(frozen=True)
class Armed:
    """A timer armed at monotonic instant `start_time` for `duration` seconds"""
    duration: float
    start_time: float

    @property
    def name(self) -> str:
        return "ARMED"

    @property
    def deadline(self) -> float:
        return self.start_time + self.duration

    def remaining(self, now: float) -> float:
        """Seconds left before expiry, never negative"""
        return max(0.0, self.duration - (now - self.start_time))


TimerState = Union[Idle, Armed]


@dataclass
class FadeMetrics:
    """Timing and outcome of a single fade-and-pause run"""
    start_volume: Optional[int] = None
    floor_volume: Optional[int] = None
    steps: List[int] = field(default_factory=list)
    paused: bool = False
    restored: bool = False
    duration_ms: Optional[int] = None
    error: Optional[str] = None
    started_at: float = field(default_factory=time.time)

    @property
    def ramp_skipped(self) -> bool:
        return self.start_volume is not None and not self.steps

    @property
    def succeeded(self) -> bool:
        return self.paused and self.restored and self.error is None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging"""
        return {
            "start_volume": self.start_volume,
            "floor_volume": self.floor_volume,
            "step_count": len(self.steps),
            "paused": self.paused,
            "restored": self.restored,
            "duration_ms": self.duration_ms,
            "error": self.error,
        }
