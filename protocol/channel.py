import threading
from contextlib import contextmanager
from typing import Optional

from serialcli.transport import Transport
from serialcli.utils.exceptions import DecodeError, TransportError
from serialcli.utils.constants import DEFAULT_READ_TIMEOUT, READ_CHUNK


class DeviceChannel:
    """The one connection to the device, shared by every thread of a session.

    Every operation takes the guard for exactly one transport call. Callers
    that poll (the listener, read commands) release it between probes, so
    a concurrent writer waits for at most one short read.
    """

    def __init__(self, transport: Transport, read_timeout: float = DEFAULT_READ_TIMEOUT, encoding: str = "utf-8"):
        self._transport = transport
        self._guard = threading.RLock()
        self.read_timeout = read_timeout
        self.encoding = encoding
        self._identity = transport.port or repr(transport)
        self._generation = 0
        self._degraded_reason: Optional[str] = None

    @contextmanager
    def guarded(self):
        """Hold the guard across several calls; each call re-enters it."""
        with self._guard:
            yield self

    def write(self, data: bytes) -> int:
        with self._guard:
            return self._transport.write(data)

    def bytes_available(self) -> int:
        with self._guard:
            return self._transport.in_waiting()

    def read_bytes(self, max_bytes: int = READ_CHUNK) -> bytes:
        with self._guard:
            return self._transport.read(max_bytes)

    def decode(self, data: bytes) -> str:
        try:
            return data.decode(self.encoding)
        except UnicodeDecodeError as e:
            raise DecodeError(f"Invalid {self.encoding} from {self._identity}: {e.reason}", raw=data) from e

    def read(self, max_bytes: int = READ_CHUNK) -> str:
        data = self.read_bytes(max_bytes)
        if not data:
            return ""
        return self.decode(data)

    def replace(self, transport: Transport) -> Transport:
        """Swap in a new transport and close the old one. Returns the old one."""
        with self._guard:
            old = self._transport
            self._transport = transport
            self._identity = transport.port or repr(transport)
            self._generation += 1
            self._degraded_reason = None
        try:
            old.close()
        except TransportError:
            pass
        return old

    def identity(self) -> str:
        return self._identity

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def degraded(self) -> bool:
        return self._degraded_reason is not None

    @property
    def degraded_reason(self) -> Optional[str]:
        return self._degraded_reason

    def mark_degraded(self, reason: str, generation: Optional[int] = None) -> bool:
        """Flag the channel as unusable until the next replace().

        With ``generation`` set, an error raised by a transport that has
        since been replaced is ignored.
        """
        with self._guard:
            if generation is not None and generation != self._generation:
                return False
            self._degraded_reason = reason
            return True

    @property
    def is_open(self) -> bool:
        with self._guard:
            return self._transport.is_open

    def close(self) -> None:
        with self._guard:
            self._transport.close()
