DEFAULT_BAUDRATE = 9600
DEFAULT_READ_TIMEOUT = 0.01      # seconds, per blocking read
DEFAULT_POLL_INTERVAL = 0.03     # seconds between buffer probes
DEFAULT_REPLY_TIMEOUT = 2.0      # read commands give up if nothing at all arrives
READ_CHUNK = 1000                # bytes per drain

DEFAULT_WORKERS = 4
DEFAULT_MAX_PENDING = 16

PROMPT = ">> "
ENV_FILE_NAME = ".serialcli"

TERMINATORS = {
    "none": "",
    "lf": "\n",
    "cr": "\r",
    "crlf": "\r\n",
}

MOCK_SCHEME = "mock://"
SERIAL_PREFIX = "serial:"
