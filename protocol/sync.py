"""Deciding when a reply has finished arriving.

The device sends no length field and no end-of-message marker, so the
default strategy watches the inbound buffer and calls the reply complete
once its size stops growing between two polls. A device that pauses
mid-reply will be cut in two, and one that never stops talking keeps
the caller waiting unless ``max_wait`` is set.

A command that expects a reply and the background listener both drain
the same buffer. The command holds the synchronizer's exchange from its
write until its reply is drained; the listener only drains when it can
take the exchange without waiting.
"""

import threading
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Callable, Optional

from serialcli.utils.constants import DEFAULT_POLL_INTERVAL, DEFAULT_REPLY_TIMEOUT, READ_CHUNK
from .channel import DeviceChannel


class CompletionStrategy(ABC):

    def __init__(self, poll_interval: float = DEFAULT_POLL_INTERVAL, max_wait: Optional[float] = None,
                 sleep: Callable[[float], None] = time.sleep, clock: Callable[[], float] = time.monotonic):
        self.poll_interval = poll_interval
        self.max_wait = max_wait
        self._sleep = sleep
        self._clock = clock

    def _deadline(self, seconds: Optional[float]) -> Optional[float]:
        if seconds is None:
            return None
        return self._clock() + seconds

    def _expired(self, deadline: Optional[float]) -> bool:
        return deadline is not None and self._clock() >= deadline

    def has_pending(self) -> bool:
        """True when a complete reply is already buffered by the strategy."""
        return False

    @abstractmethod
    def wait_for_completion(self, channel: DeviceChannel, idle_timeout: Optional[float] = None) -> bool:
        """Block until a reply is complete.

        False means ``max_wait`` ran out, or nothing at all arrived within
        ``idle_timeout``.
        """

    @abstractmethod
    def drain_one(self, channel: DeviceChannel) -> str:
        """Read and decode one reply."""


class GrowthStabilizedStrategy(CompletionStrategy):

    def wait_for_completion(self, channel: DeviceChannel, idle_timeout: Optional[float] = None) -> bool:
        deadline = self._deadline(self.max_wait)
        idle_deadline = self._deadline(idle_timeout)
        baseline = channel.bytes_available()

        while True:
            if channel.bytes_available() == 0:
                if self._expired(deadline) or self._expired(idle_deadline):
                    return False
                self._sleep(self.poll_interval)
                continue

            current = channel.bytes_available()
            while current > baseline:
                if self._expired(deadline):
                    return False
                baseline = current
                self._sleep(self.poll_interval)
                current = channel.bytes_available()
            return True

    def drain_one(self, channel: DeviceChannel) -> str:
        with channel.guarded():
            size = max(READ_CHUNK, channel.bytes_available())
            return channel.read(size)


class TerminatedStrategy(CompletionStrategy):
    """For devices that end every reply with a known terminator.

    Bytes are kept undecoded until a whole unit is taken, so a character
    split across two reads still decodes.
    """

    def __init__(self, terminator: str = "\n", **kwargs):
        super().__init__(**kwargs)
        if not terminator:
            raise ValueError("terminator must not be empty")
        self.terminator = terminator
        self._marker = terminator.encode("utf-8")
        self._pending = bytearray()
        self._lock = threading.Lock()

    def _has_unit(self) -> bool:
        with self._lock:
            return self._marker in self._pending

    def _buffered(self) -> bool:
        with self._lock:
            return bool(self._pending)

    def has_pending(self) -> bool:
        return self._has_unit()

    def wait_for_completion(self, channel: DeviceChannel, idle_timeout: Optional[float] = None) -> bool:
        deadline = self._deadline(self.max_wait)
        idle_deadline = self._deadline(idle_timeout)
        while not self._has_unit():
            count = channel.bytes_available()
            if count:
                data = channel.read_bytes(count)
                with self._lock:
                    self._pending.extend(data)
                continue
            if self._expired(deadline):
                return False
            if not self._buffered() and self._expired(idle_deadline):
                return False
            self._sleep(self.poll_interval)
        return True

    def drain_one(self, channel: DeviceChannel) -> str:
        with self._lock:
            idx = self._pending.find(self._marker)
            end = len(self._pending) if idx < 0 else idx + len(self._marker)
            unit = bytes(self._pending[:end])
            del self._pending[:end]
        if not unit:
            return ""
        return channel.decode(unit)


class ResponseSynchronizer:
    """Binds a completion strategy to the session's channel."""

    def __init__(self, channel: DeviceChannel, strategy: Optional[CompletionStrategy] = None,
                 reply_timeout: Optional[float] = DEFAULT_REPLY_TIMEOUT):
        self.channel = channel
        self.strategy = strategy or GrowthStabilizedStrategy()
        self.reply_timeout = reply_timeout
        self._exchange = threading.Lock()

    @contextmanager
    def exchange(self, blocking: bool = True):
        """Own the inbound stream for one request and its reply.

        Yields whether it was taken; with ``blocking`` it always is.
        """
        acquired = self._exchange.acquire(blocking)
        try:
            yield acquired
        finally:
            if acquired:
                self._exchange.release()

    def wait_for_completion(self, idle_timeout: Optional[float] = None) -> bool:
        return self.strategy.wait_for_completion(self.channel, idle_timeout=idle_timeout)

    def wait_for_reply(self) -> bool:
        return self.wait_for_completion(idle_timeout=self.reply_timeout)

    def drain_one(self) -> str:
        return self.strategy.drain_one(self.channel)

    def has_pending(self) -> bool:
        return self.strategy.has_pending()

    def receive(self) -> str:
        self.wait_for_completion()
        return self.drain_one()
