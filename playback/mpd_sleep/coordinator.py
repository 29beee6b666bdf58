"""
Coordinator owning the single sleep timer slot
"""

import threading
import time
from typing import Callable, Optional

from .config import FadeSettings
from .fade import run_fade
from .inbox import ChannelDisconnected, Inbox, InboxSender, InboxTimeout
from .models import Cancel, StartTimer, TimerState
from .player_control import PlayerControl, PlayerError
from .state_machine import IDLE, on_message, on_timeout, wait_timeout
from .logging_utils import get_logger, log_error, log_state_change

logger = get_logger(__name__)


class SleepTimerCoordinator:
    """
    Single reader of the control inbox and sole owner of the timer state.

    Request handlers talk to the coordinator only by sending StartTimer and
    Cancel messages; its effects are visible through the player and the logs.
    The fade runs on the coordinator thread, so messages that arrive while
    it is in progress wait until it has finished.
    """

    def __init__(self, player: PlayerControl, fade: Optional[FadeSettings] = None,
                 inbox: Optional[Inbox] = None,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], None] = time.sleep):
        """
        Initialize the coordinator.

        Args:
            player: Player used for the fade-and-pause sequence
            fade: Fade settings (floor volume, step interval)
            inbox: Inbox to read from; a new one is created if omitted
            clock: Monotonic clock in seconds
            sleep: Sleep function used between fade steps
        """
        self.player = player
        self.fade = fade or FadeSettings()
        self.inbox = inbox or Inbox()
        self._clock = clock
        self._sleep = sleep
        self._sender = self.inbox.sender()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def sender(self) -> InboxSender:
        """Hand out a sender handle for a request handler"""
        return self._sender.clone()

    def start_timer(self, seconds: float) -> None:
        """Arm (or re-arm) the timer; returns immediately"""
        self._sender.send(StartTimer(seconds))

    def cancel(self) -> None:
        """Cancel a pending timer; returns immediately"""
        self._sender.send(Cancel())

    def start(self) -> None:
        """Start the coordinator thread"""
        if self.is_running:
            logger.warning("Sleep timer coordinator is already running")
            return
        self._thread = threading.Thread(target=self.run, name="SleepTimerCoordinator", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        """Close the inbox and wait for the coordinator thread to exit"""
        self.inbox.close()
        if self._thread is None:
            return
        self._thread.join(timeout=timeout)
        if self._thread.is_alive():
            logger.warning(f"Sleep timer coordinator did not exit within {timeout}s (fade still running?)")

    def _fire(self) -> None:
        logger.info("Sleep timer expired, starting fade-and-pause")
        try:
            run_fade(self.player, self.fade, sleep=self._sleep)
        except PlayerError as e:
            # Partial progress travels on the exception
            metrics = getattr(e, "metrics", None)
            log_error(logger, "fade_and_pause", e, {
                "floor_volume": self.fade.floor_volume,
                "metrics": metrics.to_dict() if metrics is not None else None,
            })
        except Exception:
            logger.exception("Unexpected error during fade-and-pause")

    def run(self) -> None:
        """Coordinator loop; returns once the inbox is closed"""
        state: TimerState = IDLE
        logger.info("Sleep timer coordinator started")

        while True:
            # Recompute from the arm's start time on every pass
            timeout = wait_timeout(state, self._clock())
            try:
                message = self.inbox.receive(timeout)
            except InboxTimeout:
                transition = on_timeout(state)
                if transition.fire:
                    self._fire()
                log_state_change(logger, state.name, transition.state.name, reason="expired")
                state = transition.state
                continue
            except ChannelDisconnected:
                logger.info("Inbox closed, sleep timer coordinator stopping")
                return

            try:
                new_state = on_message(state, message, self._clock())
            except TypeError as e:
                logger.error(f"Dropping control message: {e}")
                continue
            if isinstance(message, StartTimer):
                logger.info(f"Sleep timer armed for {message.duration:g}s")
            if new_state != state:
                log_state_change(logger, state.name, new_state.name,
                                 reason=type(message).__name__,
                                 remaining_s=wait_timeout(new_state, self._clock()))
            state = new_state
