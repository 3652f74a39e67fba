import re

from .base import Transport
from serialcli.utils.exceptions import TransportError
from serialcli.utils.constants import DEFAULT_BAUDRATE, DEFAULT_READ_TIMEOUT

try:
    import serial
except ImportError:
    raise ImportError("pyserial is required. Install with: pip install pyserial")


_DISCONNECT_HINTS = (
    "clearcommerror", "not exist", "cannot find", "access is denied",
    "errno 6", "device not configured", "no such device",
    "device reports readiness to read but returned no data",
)


def _is_disconnect(error: Exception) -> bool:
    error_msg = str(error).lower()
    return any(hint in error_msg for hint in _DISCONNECT_HINTS)


def list_serial_ports() -> list:
    """Names of the serial ports the OS reports, in natural order."""
    from serial.tools.list_ports import comports as list_ports_comports

    try:
        ports = [p.device for p in list_ports_comports()]
    except OSError as e:
        raise TransportError(f"Error reading ports: {e}") from e
    return sorted(ports, key=_port_sort_key)


def _port_sort_key(port: str):
    match = re.search(r'(\d+)$', port)
    if match:
        return (port[:match.start()], int(match.group(1)))
    return (port, 0)


class SerialTransport(Transport):

    def __init__(self, port: str, baudrate: int = DEFAULT_BAUDRATE, timeout: float = DEFAULT_READ_TIMEOUT):
        self.port = port
        self.baudrate = baudrate
        self._default_timeout = timeout
        self._serial = None

        try:
            if "://" in port:
                # loop://, socket://, rfc2217:// and friends
                self._serial = serial.serial_for_url(
                    port,
                    baudrate=baudrate,
                    timeout=timeout,
                    write_timeout=1.0,
                )
            else:
                self._serial = serial.Serial(
                    port=port,
                    baudrate=baudrate,
                    timeout=timeout,
                    write_timeout=1.0,
                )
        except (serial.SerialException, ValueError) as e:
            raise TransportError(f"Failed to open serial port {port}: {e}") from e

    def _require_open(self):
        if self._serial is None or not self._serial.is_open:
            raise TransportError(f"Serial port {self.port} is closed")
        return self._serial

    def write(self, data: bytes) -> int:
        ser = self._require_open()
        try:
            written = ser.write(data)
            ser.flush()
            return written if written is not None else len(data)
        except serial.SerialException as e:
            raise TransportError(f"Serial write error: {e}") from e
        except OSError as e:
            raise TransportError(f"Serial write error: {e}") from e

    def read(self, size: int = 1) -> bytes:
        ser = self._require_open()
        try:
            return ser.read(size)
        except serial.SerialException as e:
            raise TransportError(f"Serial read error: {e}") from e
        except OSError as e:
            raise TransportError(f"Serial read error: {e}") from e

    def in_waiting(self) -> int:
        ser = self._require_open()
        try:
            return ser.in_waiting
        except serial.SerialTimeoutException:
            return 0
        except (serial.SerialException, OSError) as e:
            if _is_disconnect(e):
                raise TransportError("Serial port disconnected (device removed or cable unplugged)") from e
            return 0

    def close(self) -> None:
        if self._serial:
            try:
                if self._serial.is_open:
                    try:
                        self._serial.cancel_read()
                    except (AttributeError, serial.SerialException, OSError):
                        pass
                    self._serial.close()
            except (serial.SerialException, OSError):
                pass
            finally:
                self._serial = None

    @property
    def is_open(self) -> bool:
        return self._serial.is_open if self._serial else False
