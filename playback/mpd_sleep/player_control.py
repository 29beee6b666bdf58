"""
Synchronous MPD client used by the coordinator and the HTTP handlers
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from mpd import MPDClient, MPDError
from mpd import CommandError as MPDCommandError
from mpd import ConnectionError as MPDConnectionError

from .config import PlayerEndpoint
from .models import PlayState, PlayerStatus

logger = logging.getLogger(__name__)


class PlayerError(Exception):
    """Base class for failures talking to the player"""


class PlayerConnectionError(PlayerError):
    """The player daemon could not be reached"""


class PlayerCommandError(PlayerError):
    """A command failed after the connection was established"""

    def __init__(self, command: str, cause: Exception):
        super().__init__(f"MPD command '{command}' failed: {cause}")
        self.command = command
        self.cause = cause


class PlayerConnection:
    """An open MPD connection exposing the commands the sleep timer needs"""

    def __init__(self, client: MPDClient, endpoint: PlayerEndpoint):
        self._client = client
        self.endpoint = endpoint

    def _call(self, command: str, *args):
        try:
            return getattr(self._client, command)(*args)
        except MPDCommandError as e:
            raise PlayerCommandError(command, e) from e
        except (MPDConnectionError, MPDError, OSError) as e:
            # Includes the daemon dropping the connection mid-operation
            logger.warning(f"Connection to MPD failed during '{command}': {e}")
            raise PlayerCommandError(command, e) from e

    def status(self) -> PlayerStatus:
        """Read the current volume and play state"""
        return PlayerStatus.from_mpd(self._call("status"))

    def set_volume(self, value: int) -> None:
        value = max(0, min(100, int(value)))
        logger.debug(f"setvol {value}")
        self._call("setvol", value)

    def set_pause(self, paused: bool) -> None:
        logger.debug(f"pause {int(paused)}")
        self._call("pause", 1 if paused else 0)

    def toggle_pause(self) -> None:
        # `pause` without an argument toggles
        logger.debug("pause (toggle)")
        self._call("pause")


class PlayerControl:
    """
    Opens fresh MPD connections for single operations.

    Connections are never kept open between operations, so a daemon
    restart only affects the operation in flight.
    """

    def __init__(self, endpoint: Optional[PlayerEndpoint] = None):
        self.endpoint = endpoint or PlayerEndpoint()

    def _connect(self) -> MPDClient:
        client = MPDClient()
        client.timeout = self.endpoint.timeout_s
        try:
            client.connect(self.endpoint.host, self.endpoint.port)
        except (MPDError, OSError) as e:
            raise PlayerConnectionError(
                f"Could not connect to MPD at {self.endpoint.host}:{self.endpoint.port}: {e}"
            ) from e

        if self.endpoint.password:
            try:
                client.password(self.endpoint.password)
            except (MPDError, OSError) as e:
                self._disconnect(client)
                raise PlayerConnectionError(f"MPD rejected the configured password: {e}") from e
        return client

    @staticmethod
    def _disconnect(client: MPDClient) -> None:
        try:
            client.disconnect()
        except (MPDError, OSError) as e:
            logger.debug(f"Ignoring error while disconnecting from MPD: {e}")

    @contextmanager
    def open(self) -> Iterator[PlayerConnection]:
        """
        Open a connection for the duration of a with-block.

        Raises:
            PlayerConnectionError: If the daemon cannot be reached
        """
        client = self._connect()
        logger.debug(f"Connected to MPD at {self.endpoint.host}:{self.endpoint.port}")
        try:
            yield PlayerConnection(client, self.endpoint)
        finally:
            self._disconnect(client)

    def read_status(self) -> PlayerStatus:
        """Open a connection, read the status and close it again"""
        with self.open() as conn:
            return conn.status()

    def toggle_pause(self) -> PlayState:
        """Toggle pause and return the resulting play state"""
        with self.open() as conn:
            conn.toggle_pause()
            return conn.status().state
