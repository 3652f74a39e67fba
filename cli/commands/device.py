import typer

from serialcli.utils.exceptions import TransportError
from ..app import app
from ..config import STATE, ConfigManager
from ..helpers import DeviceScanner, OutputHelper


@app.command(rich_help_panel="Connection")
def scan():
    """
    List the serial ports available on this machine.
    """
    try:
        ports = DeviceScanner.list_ports()
    except TransportError as e:
        OutputHelper.handle_error(e, "Scan Failed")
        raise typer.Exit(1)

    if not ports:
        OutputHelper.print_panel("No serial devices found", title="Serial Ports", border_style="yellow")
        return

    default_port = None
    if STATE.env_path:
        default_port = ConfigManager.read(STATE.env_path)['default'].get('PORT')

    lines = []
    for i, port in enumerate(ports, 1):
        marker = "  [dim](default)[/dim]" if port == default_port else ""
        lines.append(f"[bright_cyan]{i:>2}[/bright_cyan]  [bright_green]{port}[/bright_green]{marker}")

    OutputHelper.print_panel("\n".join(lines), title="Serial Ports", border_style="cyan")
