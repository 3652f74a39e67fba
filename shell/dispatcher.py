import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import List, Optional, Tuple

from serialcli.protocol import DeviceChannel, ResponseSynchronizer
from serialcli.utils.exceptions import (
    DecodeError, DispatchRejected, ShellExit, TransportError,
)
from serialcli.utils.constants import DEFAULT_MAX_PENDING, DEFAULT_WORKERS
from .command_table import Command, CommandTable
from .sink import OutputSink


class CommandContext:
    def __init__(
        self,
        channel: DeviceChannel,
        synchronizer: ResponseSynchronizer,
        sink: OutputSink,
        terminator: str = "",
        session=None,
        line: str = "",
        table: Optional[CommandTable] = None,
    ):
        self.channel = channel
        self.synchronizer = synchronizer
        self.sink = sink
        self.terminator = terminator
        self.session = session
        self.line = line
        self.table = table

    def send(self, payload: str) -> int:
        return self.channel.write((payload + self.terminator).encode("utf-8"))


class Dispatcher:
    """Turns input lines into built-in command runs or raw writes.

    Built-ins run on a small worker pool so a slow read never blocks the
    input loop; commands marked inline (and everything in sync mode) run
    on the caller's thread. Commands in flight at the same time are not
    ordered relative to each other, only each single write is atomic.
    """

    def __init__(
        self,
        table: CommandTable,
        channel: DeviceChannel,
        synchronizer: ResponseSynchronizer,
        sink: OutputSink,
        terminator: str = "",
        workers: int = DEFAULT_WORKERS,
        max_pending: int = DEFAULT_MAX_PENDING,
        sync: bool = False,
        session=None,
    ):
        self.table = table
        self.channel = channel
        self.synchronizer = synchronizer
        self.sink = sink
        self.terminator = terminator
        self.session = session
        self.max_pending = max_pending

        self._executor: Optional[ThreadPoolExecutor] = None
        if not sync and workers > 0:
            self._executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="Command-Worker")
        self._slots = threading.BoundedSemaphore(max_pending)
        self._pending = 0
        self._pending_lock = threading.Lock()

    @staticmethod
    def parse(line: str) -> Tuple[str, List[str]]:
        tokens = line.rstrip("\r\n").split(" ")
        return tokens[0].strip(), tokens[1:]

    @property
    def pending(self) -> int:
        with self._pending_lock:
            return self._pending

    def dispatch(self, line: str) -> Optional[Future]:
        line = line.rstrip("\r\n")
        if not line.strip():
            return None

        name, args = self.parse(line)
        command = self.table.resolve(name)
        if command is None:
            self._passthrough(line.strip())
            return None

        ctx = CommandContext(
            self.channel, self.synchronizer, self.sink,
            terminator=self.terminator, session=self.session,
            line=line, table=self.table,
        )

        if command.inline or self._executor is None:
            self._run(command, args, ctx)
            return None

        return self._submit(command, args, ctx)

    def _submit(self, command: Command, args: List[str], ctx: CommandContext) -> Optional[Future]:
        if not self._slots.acquire(blocking=False):
            self.sink.error(str(DispatchRejected(
                f"{command.name} dropped: {self.max_pending} commands already pending"
            )))
            return None

        with self._pending_lock:
            self._pending += 1
        try:
            future = self._executor.submit(self._run, command, args, ctx)
        except RuntimeError as e:
            self._release_slot()
            self.sink.error(f"Command {command.name} not started: {e}")
            return None
        future.add_done_callback(lambda _f: self._release_slot())
        return future

    def _release_slot(self):
        with self._pending_lock:
            self._pending -= 1
        self._slots.release()

    def _run(self, command: Command, args: List[str], ctx: CommandContext) -> None:
        try:
            command.exec(args, ctx)
        except ShellExit:
            raise
        except TransportError as e:
            self.sink.error(f"Command error: {e.message}")
        except DecodeError as e:
            self.sink.error(f"Decode error: {e.message}")
        except Exception as e:
            self.sink.error(f"Command {command.name} failed: {e}")

    def _passthrough(self, text: str) -> None:
        try:
            self.channel.write((text + self.terminator).encode("utf-8"))
        except TransportError as e:
            self.sink.error(f"Command error: {e.message}")

    def shutdown(self, wait: bool = True) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
