import sys
from typing import Optional

import click
import typer
from rich.console import Console
from rich.panel import Panel

from serialcli import __version__
from .helpers import OutputHelper, get_panel_box, CONSOLE_WIDTH
from .config import GLOBAL_OPTIONS, STATE, ConfigManager, parse_terminator


def _handle_usage_error(e):
    console = Console(width=CONSOLE_WIDTH, file=sys.stderr)

    error_msg = str(e.format_message()) if hasattr(e, 'format_message') else str(e)
    error_lines = []

    cmd_name = None
    if e.ctx and e.ctx.info_name and e.ctx.info_name != 'serialcli':
        cmd_name = e.ctx.info_name

    if cmd_name:
        error_lines.append(f"[bold cyan]Usage:[/bold cyan] serialcli {cmd_name} [OPTIONS] [ARGS]...")
    else:
        error_lines.append("[bold cyan]Usage:[/bold cyan] serialcli [OPTIONS] COMMAND [ARGS]...")
    error_lines.append("")
    error_lines.append(f"[red]{error_msg}[/red]")

    console.print(Panel(
        "\n".join(error_lines),
        title="Error",
        border_style="red",
        box=get_panel_box(),
        width=CONSOLE_WIDTH
    ))


app = typer.Typer(
    rich_markup_mode="rich",
    add_completion=False,
    no_args_is_help=False,
    pretty_exceptions_show_locals=False,
    pretty_exceptions_enable=False,
    help="Interactive terminal for devices on a serial line."
)


# =============================================================================
# App Callback
# =============================================================================

@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    port: Optional[str] = typer.Option(None, "--port", "-p", help="Serial port (COM3, /dev/ttyUSB0) or URL (loop://, mock://)"),
    baudrate: Optional[int] = typer.Option(None, "--baud", "-b", help="Baud rate (default 9600)"),
    terminator: Optional[str] = typer.Option(None, "--terminator", "-t", help="Appended to every write: none, lf, cr, crlf"),
    reply_terminator: Optional[str] = typer.Option(None, "--reply-terminator", help="Split replies on lf, cr or crlf instead of waiting for quiet"),
    max_wait: Optional[float] = typer.Option(None, "--max-wait", help="Give up waiting for a reply after this many seconds"),
    reply_timeout: Optional[float] = typer.Option(None, "--reply-timeout", help="Read commands give up when nothing arrives for this many seconds (default 2)"),
    workers: Optional[int] = typer.Option(None, "--workers", help="Threads running built-in commands"),
    sync: bool = typer.Option(False, "--sync", help="Run every command on the input thread"),
):
    try:
        parsed_terminator = parse_terminator(terminator) if terminator is not None else None
        parsed_reply = (parse_terminator(reply_terminator) or None) if reply_terminator is not None else None
    except ValueError as e:
        raise typer.BadParameter(str(e))

    GLOBAL_OPTIONS.set(
        port=port,
        baudrate=baudrate,
        terminator=parsed_terminator,
        reply_terminator=parsed_reply,
        max_wait=max_wait,
        reply_timeout=reply_timeout,
        workers=workers,
        sync=True if sync else None,
    )
    STATE.env_path = ConfigManager.find_env_file()

    if ctx.invoked_subcommand is None:
        from .commands.shell import run_shell
        run_shell()


@app.command(rich_help_panel="Info")
def version():
    """Show the serialcli version."""
    OutputHelper.print_panel(
        f"[bright_blue]serialcli[/bright_blue] version [bright_green]{__version__}[/bright_green]",
        title="Version",
        border_style="green"
    )


def main():
    try:
        rv = app(standalone_mode=False)
        exit_code = rv if isinstance(rv, int) else 0
    except click.exceptions.UsageError as e:
        # Handle UsageError with our custom formatter
        _handle_usage_error(e)
        exit_code = 2
    except click.exceptions.Abort:
        print()
        exit_code = 1
    except KeyboardInterrupt:
        print()
        exit_code = 130
    sys.exit(exit_code)


if __name__ == '__main__':
    main()
