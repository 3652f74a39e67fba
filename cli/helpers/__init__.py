"""
Helpers Package

This package contains domain-separated helper utilities for the CLI.
"""
from rich.box import ROUNDED, HORIZONTALS

# Panel box style: "rounded" (4-side box) or "horizontals" (top/bottom only)
PANEL_BOX_STYLE = "rounded"  # Options: "rounded", "horizontals"
CONSOLE_WIDTH = 100  # Global console/panel width


def get_panel_box():
    """Get panel box style based on PANEL_BOX_STYLE setting."""
    return HORIZONTALS if PANEL_BOX_STYLE == "horizontals" else ROUNDED


from .output import OutputHelper
from .scanner import DeviceScanner

__all__ = [
    # Constants and utilities
    'PANEL_BOX_STYLE', 'CONSOLE_WIDTH', 'get_panel_box',
    # Classes
    'OutputHelper',
    'DeviceScanner',
]
