"""
Pure transitions for the sleep timer state machine
"""

from dataclasses import dataclass
from typing import Optional

from .models import Armed, Cancel, ControlMessage, Idle, StartTimer, TimerState

IDLE = Idle()


@dataclass(frozen=True)
class Transition:
    """Result of handling an event: the next state and whether to run the fade"""
    state: TimerState
    fire: bool = False


def wait_timeout(state: TimerState, now: float) -> Optional[float]:
    """
    How long the coordinator may wait for the next message.

    Always derived from the arm's start time so time spent elsewhere is
    not lost.

    Returns:
        None to wait indefinitely, otherwise seconds until expiry (0 when overdue)
    """
    if isinstance(state, Armed):
        return state.remaining(now)
    return None


def on_message(state: TimerState, message: ControlMessage, now: float) -> TimerState:
    """Apply an inbound control message"""
    if isinstance(message, StartTimer):
        # A new arm replaces any pending one
        return Armed(duration=message.duration, start_time=now)
    if isinstance(message, Cancel):
        return IDLE
    raise TypeError(f"Unsupported control message: {message!r}")


def on_timeout(state: TimerState) -> Transition:
    """Handle expiry of the wait; only an armed timer fires"""
    return Transition(state=IDLE, fire=isinstance(state, Armed))
