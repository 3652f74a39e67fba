"""Protocol Layer - guarded device channel and reply synchronization."""

from .channel import DeviceChannel
from .sync import (
    CompletionStrategy,
    GrowthStabilizedStrategy,
    TerminatedStrategy,
    ResponseSynchronizer,
)

__all__ = [
    "DeviceChannel",
    # Reply completion
    "CompletionStrategy",
    "GrowthStabilizedStrategy",
    "TerminatedStrategy",
    "ResponseSynchronizer",
]
