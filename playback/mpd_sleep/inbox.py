"""
In-process message channel between request handlers and the sleep timer coordinator
"""

import logging
import queue
import threading
import time
from typing import Optional

from .models import Cancel, ControlMessage, StartTimer

logger = logging.getLogger(__name__)

_CLOSED = object()


class ChannelDisconnected(Exception):
    """The inbox is closed and will never deliver another message"""


class InboxTimeout(Exception):
    """No message arrived before the receive timeout elapsed"""


class Inbox:
    """
    Multi-producer, single-consumer FIFO channel.

    Any number of senders may hold an InboxSender handle; exactly one
    consumer calls receive(). Messages from one sender are delivered in
    the order they were sent.
    """

    def __init__(self):
        self._queue: "queue.Queue[object]" = queue.Queue()
        self._lock = threading.Lock()
        self._closed = False
        self._drained = False

    @property
    def closed(self) -> bool:
        return self._closed

    def sender(self) -> "InboxSender":
        """Create a new sender handle for this inbox"""
        return InboxSender(self)

    def _put(self, message: ControlMessage) -> None:
        # The lock keeps a send from slipping in behind the close marker
        with self._lock:
            if self._closed:
                raise ChannelDisconnected("Inbox is closed")
            self._queue.put(message)

    def close(self) -> None:
        """Close the inbox; messages already sent are still delivered"""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._queue.put(_CLOSED)
        logger.debug("Inbox closed")

    def receive(self, timeout: Optional[float] = None) -> ControlMessage:
        """
        Wait for the next message.

        Args:
            timeout: Seconds to wait, or None to wait indefinitely

        Returns:
            The next message

        Raises:
            InboxTimeout: If the timeout elapsed before a message arrived
            ChannelDisconnected: If the inbox is closed and drained
        """
        if self._drained:
            raise ChannelDisconnected("Inbox is closed")
        if timeout is not None and timeout <= 0:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                raise InboxTimeout()
        elif timeout is None:
            item = self._queue.get()
        else:
            item = self._wait(timeout)
        if item is _CLOSED:
            self._drained = True
            raise ChannelDisconnected("Inbox is closed")
        return item

    def _wait(self, timeout: float) -> object:
        # Condition.wait overflows past threading.TIMEOUT_MAX, so wait in chunks
        deadline = time.monotonic() + timeout
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise InboxTimeout()
            try:
                return self._queue.get(timeout=min(remaining, threading.TIMEOUT_MAX))
            except queue.Empty:
                continue


class InboxSender:
    """Cloneable, thread-safe handle for sending messages into an Inbox"""

    def __init__(self, inbox: Inbox):
        self._inbox = inbox

    def send(self, message: ControlMessage) -> None:
        """
        Enqueue a message without waiting for it to be processed.

        Raises:
            ChannelDisconnected: If the inbox has been closed
            TypeError: If message is not a StartTimer or Cancel
        """
        if not isinstance(message, (StartTimer, Cancel)):
            raise TypeError(f"Unsupported control message: {message!r}")
        self._inbox._put(message)

    def clone(self) -> "InboxSender":
        return InboxSender(self._inbox)

    @property
    def closed(self) -> bool:
        return self._inbox.closed
