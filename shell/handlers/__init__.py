from serialcli.commands import Cmd, CmdGroups
from ..command_table import CommandTable
from .device_io import (
    format_payload,
    write_digital, write_analog, read_digital, read_analog,
)
from .admin import lsdev, chdev, exit_shell, show_help


_BUILTINS = (
    (Cmd.WRITE_DIGITAL, write_digital, "write-digital PIN VALUE"),
    (Cmd.WRITE_ANALOG, write_analog, "write-analog PIN VALUE"),
    (Cmd.READ_DIGITAL, read_digital, "read-digital PIN  (waits for the reply)"),
    (Cmd.READ_ANALOG, read_analog, "read-analog PIN  (waits for the reply)"),
    (Cmd.LSDEV, lsdev, "List serial ports"),
    (Cmd.CHDEV, chdev, "chdev [PORT]  Switch to another device"),
    (Cmd.HELP, show_help, "Show this list"),
    (Cmd.EXIT, exit_shell, "Leave the shell"),
)


def build_default_table() -> CommandTable:
    table = CommandTable()
    for name, handler, help_text in _BUILTINS:
        table.register(name, handler, inline=name in CmdGroups.ADMIN, help=help_text)
    return table


__all__ = [
    'build_default_table',
    'format_payload',
    'write_digital', 'write_analog', 'read_digital', 'read_analog',
    'lsdev', 'chdev', 'exit_shell', 'show_help',
]
