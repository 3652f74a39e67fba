import threading
from typing import Optional

import typer

from serialcli.shell import OutputSink, ShellSession
from serialcli.terminal import enable_line_history
from serialcli.utils.constants import PROMPT
from serialcli.utils.exceptions import NoDeviceFoundError, ShellExit, TransportError
from ..app import app
from ..config import GLOBAL_OPTIONS, STATE, ConfigManager
from ..helpers import DeviceScanner, OutputHelper


class ConsoleRenderer:
    """Follows the output sink and prints each new event."""

    def __init__(self, sink: OutputSink, prompt: str = PROMPT, poll: float = 0.1):
        self.sink = sink
        self.prompt = prompt
        self.poll = poll
        self._index = 0
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self):
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, daemon=True, name='Console-Renderer')
        self._thread.start()

    def stop(self, timeout: float = 1.0):
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=timeout)
            self._thread = None
        self.render_pending()

    def render_pending(self) -> int:
        events, self._index = self.sink.events_since(self._index)
        for event in events:
            OutputHelper.print_event(event, self.prompt)
        return len(events)

    def _run(self):
        while not self._stop_event.is_set():
            if self.sink.wait(self._index, timeout=self.poll):
                self.render_pending()


def _open_session() -> ShellSession:
    config = ConfigManager.resolve(GLOBAL_OPTIONS.get(), STATE.env_path)

    if not config.port:
        ports = DeviceScanner.require_ports()
        config.port = DeviceScanner.select_port(ports)
        if not config.port:
            raise typer.Exit(1)
        if STATE.env_path:
            ConfigManager.set_default_port(STATE.env_path, config.port)

    return ShellSession(
        config,
        selector=DeviceScanner.select_port,
        lister=DeviceScanner.list_ports,
    )


def run_shell():
    try:
        session = _open_session()
    except (NoDeviceFoundError, TransportError, ValueError) as e:
        if not OutputHelper.handle_error(e, "Connection Failed"):
            raise
        raise typer.Exit(1)

    STATE.session = session
    STATE.port = session.channel.identity()

    enable_line_history()
    OutputHelper.print_panel(
        session.banner() + "\n\n[dim]Type 'help' for built-in commands, anything else goes to the device.[/dim]",
        title="SerialCLI",
        border_style="green"
    )

    renderer = ConsoleRenderer(session.sink)
    renderer.start()
    session.start()

    exit_code = 0
    try:
        while not session.finished:
            try:
                line = input(PROMPT)
            except EOFError:
                print()
                break
            try:
                session.dispatch(line)
            except ShellExit as e:
                print(e.message)
                exit_code = e.code
                break
    except KeyboardInterrupt:
        print()
    finally:
        session.close()
        renderer.stop()
        STATE.session = None

    if session.exit_code:
        exit_code = session.exit_code
    if exit_code:
        raise typer.Exit(exit_code)


@app.command(rich_help_panel="Interactive")
def shell():
    """
    Open the device and start the interactive shell.
    Built-in commands run against the device; any other line is written to it as typed.
    """
    run_shell()
