from typing import List, Optional

from rich.console import Console

from serialcli.transport import list_serial_ports
from serialcli.utils.exceptions import NoDeviceFoundError
from . import CONSOLE_WIDTH
from .output import OutputHelper


class DeviceScanner:

    @staticmethod
    def list_ports() -> List[str]:
        """Serial port names the OS reports (e.g. 'COM3', '/dev/ttyUSB0')."""
        return list_serial_ports()

    @staticmethod
    def require_ports() -> List[str]:
        ports = DeviceScanner.list_ports()
        if not ports:
            raise NoDeviceFoundError("No serial devices found")
        return ports

    @staticmethod
    def print_ports(ports: List[str], title: str = "Serial Ports found"):
        lines = [f"[bright_cyan]{i:>2}[/bright_cyan]  {port}" for i, port in enumerate(ports, 1)]
        OutputHelper.print_panel("\n".join(lines) or "[dim]none[/dim]", title=title, border_style="cyan")

    @staticmethod
    def select_port(ports: List[str], console: Optional[Console] = None) -> Optional[str]:
        """Ask for a 1-based index into ``ports``. Empty input or 'q' cancels."""
        console = console or Console(width=CONSOLE_WIDTH)
        DeviceScanner.print_ports(ports)

        while True:
            try:
                choice = console.input("[bright_cyan]Select a port: [/bright_cyan]").strip().lower()
            except (KeyboardInterrupt, EOFError):
                console.print()
                return None

            if choice in ('', 'q'):
                return None

            try:
                index = int(choice)
            except ValueError:
                console.print("[red]Enter a valid port[/red]")
                continue

            if 1 <= index <= len(ports):
                return ports[index - 1]
            console.print("[red]Select a port listed above[/red]")
