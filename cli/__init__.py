from .config import (
    RuntimeState, STATE, GLOBAL_OPTIONS, GlobalOptions,
    ConfigManager, parse_terminator,
)
from .app import app, main
from . import commands

__all__ = [
    'RuntimeState', 'STATE', 'GLOBAL_OPTIONS', 'GlobalOptions',
    'ConfigManager', 'parse_terminator',
    'app', 'main',
]
