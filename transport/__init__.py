from .base import Transport
from .memory import MemoryTransport, MockDevice
from .serial import SerialTransport, list_serial_ports
from serialcli.utils.constants import (
    DEFAULT_BAUDRATE, DEFAULT_READ_TIMEOUT, MOCK_SCHEME, SERIAL_PREFIX,
)


def create_transport(connection_string: str, baudrate: int = DEFAULT_BAUDRATE,
                     timeout: float = DEFAULT_READ_TIMEOUT) -> Transport:
    """Create a transport for the given connection string.

    Args:
        connection_string: Serial port name ('COM3', '/dev/ttyUSB0', 'serial:COM3'),
            a pyserial URL ('loop://', 'socket://host:port') or 'mock://'
        baudrate: Serial baud rate (default: 9600)
        timeout: Read timeout in seconds (default: 0.01)

    Returns:
        Transport instance
    """
    if connection_string.startswith(MOCK_SCHEME):
        return MemoryTransport(port=connection_string, responder=MockDevice())

    # Strip "serial:" prefix if present
    port = connection_string
    if connection_string.startswith(SERIAL_PREFIX):
        port = connection_string[len(SERIAL_PREFIX):]

    return SerialTransport(port=port, baudrate=baudrate, timeout=timeout)


__all__ = [
    'Transport',
    'SerialTransport',
    'MemoryTransport',
    'MockDevice',
    'create_transport',
    'list_serial_ports',
]
