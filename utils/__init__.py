from .exceptions import (
    SerialCliException, TransportError, DecodeError, NoDeviceFoundError,
    DispatchRejected, FatalError, ShellExit,
)

__all__ = [
    'SerialCliException', 'TransportError', 'DecodeError', 'NoDeviceFoundError',
    'DispatchRejected', 'FatalError', 'ShellExit',
]
