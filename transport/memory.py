"""In-memory transport used by the ``mock://`` connection and by the tests."""

import random
import threading
from typing import Callable, List, Optional

from .base import Transport
from serialcli.utils.exceptions import TransportError


class MemoryTransport(Transport):
    """A transport whose inbound side is fed by the caller.

    ``responder`` is called with every written payload; whatever it
    returns is queued as inbound data, like a device answering a request.
    """

    def __init__(self, port: str = "memory", responder: Optional[Callable[[bytes], Optional[bytes]]] = None):
        self.port = port
        self.responder = responder
        self.written: List[bytes] = []
        self._inbound = bytearray()
        self._lock = threading.Lock()
        self._open = True

    def feed(self, data: bytes) -> None:
        with self._lock:
            self._inbound.extend(data)

    def write(self, data: bytes) -> int:
        if not self._open:
            raise TransportError(f"{self.port} is closed")
        with self._lock:
            self.written.append(bytes(data))
        if self.responder is not None:
            reply = self.responder(bytes(data))
            if reply:
                self.feed(reply)
        return len(data)

    def read(self, size: int = 1) -> bytes:
        if not self._open:
            raise TransportError(f"{self.port} is closed")
        with self._lock:
            chunk = bytes(self._inbound[:size])
            del self._inbound[:size]
        return chunk

    def in_waiting(self) -> int:
        if not self._open:
            raise TransportError(f"{self.port} is closed")
        with self._lock:
            return len(self._inbound)

    def close(self) -> None:
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open


class MockDevice:
    """Replies like a small I/O board speaking the numeric command codes."""

    def __init__(self, seed: Optional[int] = None):
        self._random = random.Random(seed)
        self._digital = {}
        self._analog = {}

    def __call__(self, data: bytes) -> Optional[bytes]:
        text = data.decode("utf-8", errors="replace").strip()
        if not text:
            return None
        code, _, rest = text.partition(" ")
        args = rest.split()
        pin = args[0] if args else "0"

        if code == "3" and len(args) >= 2:
            self._digital[pin] = args[1]
            return None
        if code == "2" and len(args) >= 2:
            self._analog[pin] = args[1]
            return None
        if code == "1":
            value = self._digital.get(pin, str(self._random.randint(0, 1)))
            return f"D{pin}={value}\r\n".encode()
        if code == "0":
            value = self._analog.get(pin, str(self._random.randint(0, 1023)))
            return f"A{pin}={value}\r\n".encode()
        return f"? {text}\r\n".encode()
