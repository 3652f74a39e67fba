"""Output formatting and display utilities."""
import sys

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from serialcli.terminal import output_lock, write_output
from serialcli.shell.sink import ERROR, OUTPUT, STATUS, OutputEvent
from serialcli.utils.constants import PROMPT
from serialcli.utils.exceptions import NoDeviceFoundError, TransportError
from . import get_panel_box, CONSOLE_WIDTH


class OutputHelper:
    """Output formatting and display utilities."""

    # Ensure stdout uses UTF-8 encoding
    if hasattr(sys.stdout, 'reconfigure'):
        sys.stdout.reconfigure(encoding='utf-8', errors='replace')

    _console = Console()
    _err_console = Console(stderr=True)
    PANEL_WIDTH = None

    @staticmethod
    def _get_panel_width():
        """Get panel width."""
        if OutputHelper.PANEL_WIDTH is None:
            OutputHelper.PANEL_WIDTH = CONSOLE_WIDTH
        return OutputHelper.PANEL_WIDTH

    @staticmethod
    def print_panel(content: str, title: str = "", border_style: str = "blue"):
        """Print content in a rich panel box."""
        width = OutputHelper._get_panel_width()
        OutputHelper._console.print(Panel(content, title=title, title_align="left", border_style=border_style, box=get_panel_box(), expand=True, width=width))

    @staticmethod
    def print_event(event: OutputEvent, prompt: str = PROMPT):
        """Render one sink event: device text on stdout, diagnostics on stderr."""
        if event.kind == OUTPUT:
            write_output(event.text, prompt)
            return

        style = "red" if event.kind == ERROR else "cyan"
        with output_lock():
            sys.stdout.write("\r")
            sys.stdout.flush()
            OutputHelper._err_console.print(f"[{style}]{escape(event.text)}[/{style}]")
            sys.stdout.write(prompt)
            sys.stdout.flush()

    @staticmethod
    def handle_error(error: Exception, context: str = "Error") -> bool:
        """
        Handle common errors with user-friendly messages.

        Args:
            error: The exception to handle
            context: Context string for the error (e.g., "Connection")

        Returns:
            True if error was handled, False if it should be re-raised
        """
        if isinstance(error, NoDeviceFoundError):
            OutputHelper.print_panel(
                f"{escape(error.message)}.\n\n"
                "Please check:\n"
                "  • Device is powered on and connected\n"
                "  • The driver for its USB-serial adapter is installed\n\n"
                "[dim]Try 'serialcli --port mock:// shell' to explore without hardware.[/dim]",
                title="No Device",
                border_style="red"
            )
            return True
        elif isinstance(error, TransportError):
            OutputHelper.print_panel(
                f"[yellow]Error details:[/yellow] {escape(error.message)}\n\n"
                "Please check:\n"
                "  • Device is powered on and connected\n"
                "  • Serial cable is properly attached\n"
                "  • Port is not in use by another program (PuTTY, Arduino IDE, etc.)",
                title=context,
                border_style="red"
            )
            return True
        elif isinstance(error, ValueError):
            OutputHelper.print_panel(
                escape(str(error)),
                title="Configuration",
                border_style="red"
            )
            return True

        return False
