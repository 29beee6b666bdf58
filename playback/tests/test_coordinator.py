"""
Tests for the sleep timer coordinator

Timing tests use scaled-down durations with generous tolerances; the
deterministic ones drive the loop with a scripted inbox and a fake clock.
"""

import logging
import time
from unittest.mock import patch

import pytest

from mpd_sleep.config import FadeSettings
from mpd_sleep.coordinator import SleepTimerCoordinator
from mpd_sleep.inbox import ChannelDisconnected, InboxTimeout
from mpd_sleep.models import Cancel, StartTimer

from conftest import FakeConnection, FakePlayer

INSTANT_FADE = FadeSettings(floor_volume=40, step_interval_s=0)


@pytest.fixture
def running():
    """Start coordinators and make sure they are stopped afterwards"""
    started = []

    def _start(player, fade=INSTANT_FADE):
        coordinator = SleepTimerCoordinator(player, fade)
        coordinator.start()
        started.append(coordinator)
        return coordinator

    yield _start
    for coordinator in started:
        coordinator.stop(timeout=2.0)


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


class ScriptedInbox:
    """Inbox replaying a script of (advance_clock_by, message or exception)"""

    def __init__(self, clock, script):
        self.clock = clock
        self.script = list(script)
        self.waits = []

    def sender(self):
        return None

    def close(self):
        pass

    def receive(self, timeout=None):
        self.waits.append(timeout)
        if not self.script:
            raise ChannelDisconnected()
        advance, outcome = self.script.pop(0)
        self.clock.now += advance
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class TestCoordinatorTiming:
    """End-to-end behavior against a fake player, in real (scaled) time"""

    def test_fires_after_duration(self, running, player, connection):
        coordinator = running(player)
        armed_at = time.monotonic()
        coordinator.start_timer(0.2)

        assert connection.finished.wait(timeout=2.0)
        fired_at = connection.times[0]
        assert fired_at - armed_at >= 0.18
        assert fired_at - armed_at < 1.0
        assert connection.volume_calls == [44, 43, 42, 41, 40, 45]
        assert ("pause", True) in connection.calls

    def test_cancel_before_expiry_prevents_fade(self, running, player, connection):
        coordinator = running(player)
        coordinator.start_timer(0.3)
        time.sleep(0.1)
        coordinator.cancel()

        time.sleep(0.5)
        assert connection.calls == []
        assert player.open_attempts == 0

    def test_later_shorter_arm_replaces_earlier(self, running, player, connection):
        coordinator = running(player)
        armed_at = time.monotonic()
        coordinator.start_timer(0.8)
        coordinator.start_timer(0.2)

        assert connection.finished.wait(timeout=2.0)
        assert connection.times[0] - armed_at < 0.7
        # No second fire when the first deadline passes
        time.sleep(0.9)
        assert connection.calls.count(("pause", True)) == 1

    def test_rearm_restarts_countdown(self, running, player, connection):
        """Re-arming part way through counts from the second arm"""
        coordinator = running(player)
        first_arm = time.monotonic()
        coordinator.start_timer(0.3)
        time.sleep(0.1)
        coordinator.start_timer(0.3)

        assert connection.finished.wait(timeout=2.0)
        assert connection.times[0] - first_arm >= 0.38

    def test_unrelated_player_access_does_not_shift_deadline(self, running, player, connection):
        coordinator = running(player)
        armed_at = time.monotonic()
        coordinator.start_timer(0.5)
        time.sleep(0.35)
        player.read_status()

        assert connection.finished.wait(timeout=2.0)
        fade_started = connection.times[1]
        assert 0.45 <= fade_started - armed_at < 0.8

    def test_cancel_while_idle_is_harmless(self, running, player, connection):
        coordinator = running(player)
        coordinator.cancel()
        coordinator.cancel()
        coordinator.start_timer(0.05)

        assert connection.finished.wait(timeout=2.0)
        assert coordinator.is_running

    def test_unreachable_player_returns_to_idle(self, running, connection):
        player = FakePlayer(connection, unreachable_times=1)
        coordinator = running(player)
        coordinator.start_timer(0.05)

        assert player.failed.wait(timeout=2.0)
        assert coordinator.is_running
        assert connection.calls == []

        coordinator.start_timer(0.05)
        assert connection.finished.wait(timeout=2.0)
        assert player.open_attempts == 2

    def test_failed_command_does_not_stop_coordinator(self, running):
        connection = FakeConnection(volume=45, fail_on=("setvol", 43))
        player = FakePlayer(connection)
        coordinator = running(player)
        coordinator.start_timer(0.05)

        time.sleep(0.4)
        assert connection.volume_calls == [44, 43]
        assert coordinator.is_running

    def test_unexpected_error_in_fade_is_contained(self, running, player):
        coordinator = running(player)
        with patch("mpd_sleep.coordinator.run_fade", side_effect=RuntimeError("boom")) as mock_fade:
            coordinator.start_timer(0.01)
            time.sleep(0.3)
        assert mock_fade.call_count == 1
        assert coordinator.is_running

    def test_huge_duration_keeps_coordinator_alive(self, running, player, connection):
        coordinator = running(player)
        coordinator.start_timer(10_000_000_000)
        time.sleep(0.2)
        assert coordinator.is_running

        # A later short arm replaces the huge one and still fires
        coordinator.start_timer(0.05)
        assert connection.finished.wait(timeout=2.0)
        assert connection.volume_calls == [44, 43, 42, 41, 40, 45]

    def test_cancel_during_fade_has_no_effect(self, running):
        connection = FakeConnection(volume=45)
        player = FakePlayer(connection)
        coordinator = running(player, FadeSettings(floor_volume=40, step_interval_s=0.05))
        coordinator.start_timer(0.01)

        time.sleep(0.08)
        coordinator.cancel()
        assert connection.finished.wait(timeout=2.0)
        assert connection.volume_calls == [44, 43, 42, 41, 40, 45]

    def test_stop_terminates_and_rejects_new_timers(self, player):
        coordinator = SleepTimerCoordinator(player, INSTANT_FADE)
        coordinator.start()
        sender = coordinator.sender()
        assert coordinator.is_running

        coordinator.stop(timeout=2.0)
        assert not coordinator.is_running
        with pytest.raises(ChannelDisconnected):
            sender.send(StartTimer(1))

    def test_stop_with_pending_timer_does_not_fire(self, player, connection):
        coordinator = SleepTimerCoordinator(player, INSTANT_FADE)
        coordinator.start()
        coordinator.start_timer(0.2)
        coordinator.stop(timeout=2.0)

        time.sleep(0.3)
        assert connection.calls == []


class TestCoordinatorLoop:
    """Deterministic loop checks with a scripted inbox and fake clock"""

    def _coordinator(self, script, connection=None):
        clock = FakeClock()
        inbox = ScriptedInbox(clock, script)
        connection = connection or FakeConnection(volume=45, clock=clock)
        coordinator = SleepTimerCoordinator(
            FakePlayer(connection), INSTANT_FADE, inbox=inbox,
            clock=clock, sleep=lambda _s: None,
        )
        return coordinator, inbox, connection

    def test_rearm_uses_new_start_time(self):
        """StartTimer(3) at t=0, again at t=1: fade at t=4"""
        coordinator, inbox, connection = self._coordinator([
            (0, StartTimer(3)),
            (1, StartTimer(3)),
            (3, InboxTimeout()),
        ])
        coordinator.run()

        assert inbox.waits[:3] == [None, 3, 3]
        assert connection.times[0] == 4
        assert connection.volume_calls == [44, 43, 42, 41, 40, 45]

    def test_timeout_recomputed_after_each_wait(self):
        """Cancel then re-arm leaves no stale timeout behind"""
        coordinator, inbox, connection = self._coordinator([
            (0, StartTimer(10)),
            (2, Cancel()),
            (5, StartTimer(4)),
            (4, InboxTimeout()),
        ])
        coordinator.run()

        assert inbox.waits == [None, 10, None, 4, None]
        assert connection.times[0] == 11

    def test_idle_after_fire(self):
        coordinator, inbox, connection = self._coordinator([
            (0, StartTimer(1)),
            (1, InboxTimeout()),
        ])
        coordinator.run()

        # After firing, the next wait is indefinite
        assert inbox.waits == [None, 1, None]
        assert connection.calls.count(("pause", True)) == 1

    def test_disconnect_ends_loop(self):
        coordinator, inbox, connection = self._coordinator([
            (0, StartTimer(5)),
            (1, ChannelDisconnected()),
        ])
        coordinator.run()

        assert connection.calls == []
        assert inbox.waits == [None, 5]

    def test_fade_failure_logs_partial_metrics(self, caplog):
        connection = FakeConnection(volume=45, fail_on=("setvol", 43))
        coordinator, inbox, connection = self._coordinator([
            (0, StartTimer(1)),
            (1, InboxTimeout()),
        ], connection=connection)
        with caplog.at_level(logging.ERROR, logger="mpd_sleep.coordinator"):
            coordinator.run()

        records = [r for r in caplog.records if getattr(r, "operation", None) == "fade_and_pause"]
        assert len(records) == 1
        metrics = records[0].context["metrics"]
        assert metrics["start_volume"] == 45
        assert metrics["step_count"] == 1
        assert metrics["paused"] is False
        assert metrics["error"]

    def test_unknown_message_is_dropped(self):
        coordinator, inbox, connection = self._coordinator([
            (0, "bogus"),
            (0, StartTimer(2)),
            (2, InboxTimeout()),
        ])
        coordinator.run()

        assert inbox.waits == [None, None, 2, None]
        assert connection.calls.count(("pause", True)) == 1

