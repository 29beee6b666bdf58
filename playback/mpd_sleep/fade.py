"""
Fade-and-pause sequence run when the sleep timer expires
"""

import time
from typing import Callable, Optional

from .config import FadeSettings
from .models import FadeMetrics
from .player_control import PlayerConnection, PlayerControl, PlayerError
from .logging_utils import get_logger, log_fade_step, log_metrics

logger = get_logger(__name__)


def fade_and_pause(conn: PlayerConnection, settings: Optional[FadeSettings] = None,
                   sleep: Callable[[float], None] = time.sleep) -> FadeMetrics:
    """
    Ramp the volume down to the floor, pause, then restore the volume.

    The ramp is only an audible cue: once paused the original volume is put
    back so the next play starts where the listener left it. A failing step
    aborts the rest of the sequence and a partial fade is left as is.

    Args:
        conn: Open player connection
        settings: Floor volume and step interval
        sleep: Sleep function used between steps

    Returns:
        FadeMetrics describing what was done

    Raises:
        PlayerError: If any command fails; the metrics so far are attached
            as the exception's `metrics` attribute
    """
    settings = settings or FadeSettings()
    metrics = FadeMetrics(floor_volume=settings.floor_volume)
    start = time.monotonic()

    try:
        volume = conn.status().volume
        metrics.start_volume = volume

        if volume > settings.floor_volume:
            total = volume - settings.floor_volume
            logger.info(f"Fading volume from {volume} to {settings.floor_volume}")
            for step, level in enumerate(range(volume - 1, settings.floor_volume - 1, -1), start=1):
                conn.set_volume(level)
                metrics.steps.append(level)
                log_fade_step(logger, level, step, total)
                sleep(settings.step_interval_s)
        else:
            logger.info(f"Volume {volume} is at or below floor {settings.floor_volume}, skipping ramp")

        conn.set_pause(True)
        metrics.paused = True

        if volume >= 0:
            conn.set_volume(volume)
        # Without a mixer there is no volume to put back
        metrics.restored = True
    except PlayerError as e:
        metrics.error = str(e)
        e.metrics = metrics
        raise
    finally:
        metrics.duration_ms = int((time.monotonic() - start) * 1000)

    logger.info(f"Paused playback and restored volume to {volume}" if volume >= 0
                else "Paused playback (player has no mixer)")
    return metrics


def run_fade(player: PlayerControl, settings: Optional[FadeSettings] = None,
             sleep: Callable[[float], None] = time.sleep) -> FadeMetrics:
    """
    Open a fresh connection and run the fade-and-pause sequence on it.

    Raises:
        PlayerConnectionError: If the player cannot be reached
        PlayerCommandError: If a command fails part way through
    """
    with player.open() as conn:
        metrics = fade_and_pause(conn, settings, sleep=sleep)
    log_metrics(logger, "fade_and_pause", metrics.to_dict())
    return metrics
