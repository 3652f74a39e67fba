from . import device
from . import shell

from ..helpers import OutputHelper, CONSOLE_WIDTH

__all__ = [
    'OutputHelper',
    'CONSOLE_WIDTH',
]
