"""
Shared fakes for the sleep timer tests
"""

import threading
import time
from contextlib import contextmanager

import pytest

from mpd_sleep.models import PlayState, PlayerStatus
from mpd_sleep.player_control import PlayerCommandError, PlayerConnectionError


class FakeConnection:
    """In-memory stand-in for an open MPD connection that records every command"""

    def __init__(self, volume=45, state=PlayState.PLAY, fail_on=None, clock=time.monotonic):
        self.volume = volume
        self.state = state
        self.fail_on = fail_on
        self.calls = []
        self.times = []
        self.clock = clock
        self.paused = threading.Event()
        self.finished = threading.Event()

    def _record(self, *call):
        self.calls.append(call)
        self.times.append(self.clock())
        if self.fail_on is not None and call == self.fail_on:
            raise PlayerCommandError(call[0], RuntimeError("simulated failure"))

    def status(self):
        self._record("status")
        return PlayerStatus(volume=self.volume, state=self.state)

    def set_volume(self, value):
        self._record("setvol", value)
        self.volume = value
        if self.paused.is_set():
            self.finished.set()

    def set_pause(self, paused):
        self._record("pause", paused)
        self.state = PlayState.PAUSE if paused else PlayState.PLAY
        self.paused.set()
        if self.volume < 0:
            self.finished.set()

    def toggle_pause(self):
        self._record("toggle")
        self.state = PlayState.PLAY if self.state == PlayState.PAUSE else PlayState.PAUSE

    @property
    def volume_calls(self):
        return [c[1] for c in self.calls if c[0] == "setvol"]


class FakePlayer:
    """PlayerControl stand-in handing out a shared FakeConnection"""

    def __init__(self, connection=None, unreachable_times=0):
        self.connection = connection or FakeConnection()
        self.unreachable_times = unreachable_times
        self.open_attempts = 0
        self.failed = threading.Event()

    @contextmanager
    def open(self):
        self.open_attempts += 1
        if self.unreachable_times > 0:
            self.unreachable_times -= 1
            self.failed.set()
            raise PlayerConnectionError("Could not connect to MPD at 127.0.0.1:6600: refused")
        yield self.connection

    def read_status(self):
        with self.open() as conn:
            return conn.status()

    def toggle_pause(self):
        with self.open() as conn:
            conn.toggle_pause()
            return conn.status().state


@pytest.fixture
def connection():
    return FakeConnection()


@pytest.fixture
def player(connection):
    return FakePlayer(connection)
