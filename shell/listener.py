import threading
from typing import Callable, Optional

from serialcli.protocol import DeviceChannel, ResponseSynchronizer
from serialcli.utils.exceptions import DecodeError, FatalError, TransportError
from serialcli.utils.constants import DEFAULT_POLL_INTERVAL
from .sink import OutputSink


IDLE = "idle"
DRAINING = "draining"
DEGRADED = "degraded"
STOPPED = "stopped"


class BackgroundListener:
    """Drains whatever the device sends into the output sink.

    Each probe and read takes the channel guard on its own; the guard is
    free while the listener sleeps, so command writes are never held up
    for a whole reply.
    """

    def __init__(
        self,
        channel: DeviceChannel,
        synchronizer: ResponseSynchronizer,
        sink: OutputSink,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        fatal_on_read_error: bool = False,
        on_fatal: Optional[Callable[[FatalError], None]] = None,
    ):
        self.channel = channel
        self.synchronizer = synchronizer
        self.sink = sink
        self.poll_interval = poll_interval
        self.fatal_on_read_error = fatal_on_read_error
        self.on_fatal = on_fatal
        self.state = STOPPED

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop_event.clear()
        self.state = IDLE
        self._thread = threading.Thread(
            target=self._run,
            daemon=True,
            name=f'Device-Listener-{self.channel.identity()}'
        )
        self._thread.start()

    def stop(self, timeout: float = 1.0) -> None:
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=timeout)
            self._thread = None
        self.state = STOPPED

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self) -> None:
        while not self._stop_event.is_set():
            if self.channel.degraded:
                self.state = DEGRADED
                self._stop_event.wait(self.poll_interval)
                continue

            generation = self.channel.generation
            try:
                self.poll_once()
            except DecodeError as e:
                self.state = IDLE
                self.sink.error(f"{e.message}: {e.raw.decode('utf-8', errors='replace')!r}")
            except TransportError as e:
                self._handle_read_error(e, generation)

    def poll_once(self) -> bool:
        """One Idle -> Draining -> Publish -> Idle pass. True if text was published.

        While a command owns the exchange its reply is left alone.
        """
        with self.synchronizer.exchange(blocking=False) as owned:
            if owned and (self.channel.bytes_available() or self.synchronizer.has_pending()):
                self.state = DRAINING
                self.synchronizer.wait_for_completion()
                text = self.synchronizer.drain_one()
                self.state = IDLE
                if text:
                    self.sink.publish(text)
                    return True
                return False

        self.state = IDLE
        self._stop_event.wait(self.poll_interval)
        return False

    def _handle_read_error(self, error: TransportError, generation: int) -> None:
        if self.fatal_on_read_error:
            self.sink.error(f"Error reading serial port: {error.message}")
            self._stop_event.set()
            self.state = STOPPED
            if self.on_fatal is not None:
                self.on_fatal(FatalError(error.message))
            return

        if self.channel.mark_degraded(error.message, generation=generation):
            self.state = DEGRADED
            self.sink.status(
                f"Lost {self.channel.identity()}: {error.message}. "
                "Use 'chdev' to connect to a device."
            )
