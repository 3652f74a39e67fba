"""Shell Layer - command dispatch, background listener and output sink."""

from .command_table import Command, CommandTable
from .dispatcher import CommandContext, Dispatcher
from .listener import BackgroundListener
from .sink import OutputEvent, OutputSink
from .handlers import build_default_table
from .core import SessionConfig, ShellSession, make_strategy

__all__ = [
    "Command",
    "CommandTable",
    "CommandContext",
    "Dispatcher",
    "BackgroundListener",
    "OutputEvent",
    "OutputSink",
    "build_default_table",
    "SessionConfig",
    "ShellSession",
    "make_strategy",
]
