import threading
import time
from dataclasses import dataclass, field
from typing import List, Tuple


OUTPUT = "output"
ERROR = "error"
STATUS = "status"


@dataclass(frozen=True)
class OutputEvent:
    kind: str
    text: str
    timestamp: float = field(default_factory=time.time)


class OutputSink:
    """Append-only event log shared by the listener, commands and the console.

    Readers keep their own index and ask for everything after it. Nothing
    is ever removed except by reset(); there is no size limit.
    """

    def __init__(self):
        self._events: List[OutputEvent] = []
        self._cond = threading.Condition()

    def append(self, event: OutputEvent) -> None:
        with self._cond:
            self._events.append(event)
            self._cond.notify_all()

    def publish(self, text: str) -> None:
        self.append(OutputEvent(OUTPUT, text))

    def error(self, text: str) -> None:
        self.append(OutputEvent(ERROR, text))

    def status(self, text: str) -> None:
        self.append(OutputEvent(STATUS, text))

    def events_since(self, index: int) -> Tuple[List[OutputEvent], int]:
        with self._cond:
            if index > len(self._events):
                # reset() happened behind the reader
                index = 0
            return self._events[index:], len(self._events)

    def wait(self, index: int, timeout: float = None) -> bool:
        """Block until there are events past ``index``."""
        with self._cond:
            return self._cond.wait_for(lambda: len(self._events) != index, timeout=timeout)

    def snapshot(self) -> List[OutputEvent]:
        with self._cond:
            return list(self._events)

    def texts(self, kind: str = OUTPUT) -> List[str]:
        return [e.text for e in self.snapshot() if e.kind == kind]

    def reset(self) -> None:
        with self._cond:
            self._events = []
            self._cond.notify_all()

    def __len__(self):
        with self._cond:
            return len(self._events)
