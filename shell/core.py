import threading
from dataclasses import dataclass
from typing import Callable, List, Optional

from serialcli import __version__
from serialcli.protocol import (
    CompletionStrategy, DeviceChannel, GrowthStabilizedStrategy,
    ResponseSynchronizer, TerminatedStrategy,
)
from serialcli.transport import Transport, create_transport, list_serial_ports
from serialcli.utils.exceptions import FatalError, NoDeviceFoundError
from serialcli.utils.constants import (
    DEFAULT_BAUDRATE, DEFAULT_MAX_PENDING, DEFAULT_POLL_INTERVAL,
    DEFAULT_READ_TIMEOUT, DEFAULT_REPLY_TIMEOUT, DEFAULT_WORKERS,
)
from .command_table import CommandTable
from .dispatcher import Dispatcher
from .handlers import build_default_table
from .listener import BackgroundListener
from .sink import OutputSink


@dataclass
class SessionConfig:
    port: Optional[str] = None
    baudrate: int = DEFAULT_BAUDRATE
    read_timeout: float = DEFAULT_READ_TIMEOUT
    poll_interval: float = DEFAULT_POLL_INTERVAL
    max_wait: Optional[float] = None
    # read commands stop waiting when nothing arrives this long after the request
    reply_timeout: Optional[float] = DEFAULT_REPLY_TIMEOUT
    terminator: str = ""
    # When set, replies are split on this instead of watching buffer growth
    reply_terminator: Optional[str] = None
    workers: int = DEFAULT_WORKERS
    max_pending: int = DEFAULT_MAX_PENDING
    sync: bool = False
    fatal_on_read_error: bool = False


def make_strategy(config: SessionConfig) -> CompletionStrategy:
    if config.reply_terminator:
        return TerminatedStrategy(
            config.reply_terminator,
            poll_interval=config.poll_interval,
            max_wait=config.max_wait,
        )
    return GrowthStabilizedStrategy(poll_interval=config.poll_interval, max_wait=config.max_wait)


class ShellSession:
    """One connected device plus everything that talks to it."""

    def __init__(
        self,
        config: SessionConfig,
        transport: Optional[Transport] = None,
        table: Optional[CommandTable] = None,
        sink: Optional[OutputSink] = None,
        selector: Optional[Callable[[List[str]], Optional[str]]] = None,
        lister: Callable[[], List[str]] = list_serial_ports,
        opener: Optional[Callable[[str], Transport]] = None,
        strategy: Optional[CompletionStrategy] = None,
    ):
        self.config = config
        self.sink = sink if sink is not None else OutputSink()
        self._selector = selector
        self._lister = lister
        self._opener = opener or self._default_opener

        if transport is None:
            if not config.port:
                raise NoDeviceFoundError("No device selected")
            transport = self._opener(config.port)

        self.channel = DeviceChannel(transport, read_timeout=config.read_timeout)
        self.synchronizer = ResponseSynchronizer(
            self.channel, strategy or make_strategy(config), reply_timeout=config.reply_timeout,
        )

        self.table = (table if table is not None else build_default_table()).freeze()
        for name in self.table.shadowed():
            self.sink.status(f"Warning: command '{name}' is registered more than once, only the first is used")

        self.dispatcher = Dispatcher(
            self.table, self.channel, self.synchronizer, self.sink,
            terminator=config.terminator,
            workers=config.workers,
            max_pending=config.max_pending,
            sync=config.sync,
            session=self,
        )
        self.listener = BackgroundListener(
            self.channel, self.synchronizer, self.sink,
            poll_interval=config.poll_interval,
            fatal_on_read_error=config.fatal_on_read_error,
            on_fatal=self._on_fatal,
        )

        self.exit_code: Optional[int] = None
        self._finished = threading.Event()

    def _default_opener(self, port: str) -> Transport:
        return create_transport(port, baudrate=self.config.baudrate, timeout=self.config.read_timeout)

    def banner(self) -> str:
        return f"SerialCLI v{__version__}\nConnected to: {self.channel.identity()}"

    def start(self) -> None:
        self.listener.start()

    def dispatch(self, line: str):
        return self.dispatcher.dispatch(line)

    def list_ports(self) -> List[str]:
        return self._lister()

    def select_port(self, ports: List[str]) -> Optional[str]:
        if self._selector is None:
            return None
        return self._selector(ports)

    def change_device(self, port: str) -> None:
        transport = self._opener(port)
        self.channel.replace(transport)

    def _on_fatal(self, error: FatalError) -> None:
        self.exit_code = 1
        self._finished.set()

    @property
    def finished(self) -> bool:
        return self._finished.is_set()

    def close(self) -> None:
        self._finished.set()
        self.listener.stop()
        self.dispatcher.shutdown(wait=False)
        self.channel.close()
