import sys
import platform
import threading
from contextlib import contextmanager

from .utils.constants import PROMPT

IS_WINDOWS: bool = platform.system() == "Windows"
CR, LF = "\r", "\n"

_stdout_lock = threading.Lock()


@contextmanager
def output_lock():
    """Hold the console while writing so lines from different threads don't mix."""
    with _stdout_lock:
        yield


def write_output(text: str, prompt: str = PROMPT) -> None:
    """Print device text above the input line and redraw the prompt."""
    if not text:
        return
    text = text.rstrip(CR + LF)
    with _stdout_lock:
        sys.stdout.write(f"{CR}{text}{LF}{prompt}")
        sys.stdout.flush()


def enable_line_history() -> bool:
    """Arrow-key recall of earlier lines through the platform line editor."""
    if IS_WINDOWS:
        # the Windows console keeps its own history for input()
        return True
    try:
        import readline  # noqa: F401
    except ImportError:
        return False
    return True
