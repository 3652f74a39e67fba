"""
Configuration management for the serialcli CLI.

Handles:
- .serialcli INI file reading/writing
- Global CLI options
- Session settings resolution (CLI option -> per-port section -> [DEFAULT] -> built-in)
"""

import os
from dataclasses import dataclass, fields
from typing import Optional, Dict, Any

from serialcli.shell import SessionConfig
from serialcli.utils.constants import ENV_FILE_NAME, TERMINATORS


# ============================================================================
# Runtime State
# ============================================================================

@dataclass
class RuntimeState:
    """Global runtime state for the current process."""
    port: str = ""
    env_path: Optional[str] = None
    session: Any = None


# Singleton instance
STATE = RuntimeState()


# ============================================================================
# Global Options (set by CLI callback)
# ============================================================================

class GlobalOptions:
    """Global CLI options storage."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._values = {}
        return cls._instance

    @property
    def port(self) -> Optional[str]:
        return self._values.get('port')

    def set(self, **values):
        """Set global options; None means 'not given'."""
        self._values = {k: v for k, v in values.items() if v is not None}

    def get(self) -> Dict[str, Any]:
        """Get all global options as dict."""
        return dict(self._values)

    def clear(self):
        """Clear all global options."""
        self._values = {}


# Singleton instance
GLOBAL_OPTIONS = GlobalOptions()


# ============================================================================
# Config File Management
# ============================================================================

def parse_terminator(value: str) -> str:
    """Map 'none' / 'lf' / 'cr' / 'crlf' to the characters they stand for."""
    key = value.strip().lower()
    if key not in TERMINATORS:
        raise ValueError(f"Unknown terminator '{value}' (expected one of: {', '.join(TERMINATORS)})")
    return TERMINATORS[key]


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _parse_optional_float(value: str) -> Optional[float]:
    value = value.strip().lower()
    if value in ('', 'none', 'off'):
        return None
    return float(value)


def _parse_optional_terminator(value: str) -> Optional[str]:
    return parse_terminator(value) or None


# Config file key -> (SessionConfig field, parser)
_KEYS = {
    'PORT': ('port', str.strip),
    'BAUDRATE': ('baudrate', int),
    'READ_TIMEOUT': ('read_timeout', float),
    'POLL_INTERVAL': ('poll_interval', float),
    'MAX_WAIT': ('max_wait', _parse_optional_float),
    'REPLY_TIMEOUT': ('reply_timeout', _parse_optional_float),
    'TERMINATOR': ('terminator', parse_terminator),
    'REPLY_TERMINATOR': ('reply_terminator', _parse_optional_terminator),
    'WORKERS': ('workers', int),
    'MAX_PENDING': ('max_pending', int),
    'SYNC': ('sync', _parse_bool),
    'FATAL_ON_READ_ERROR': ('fatal_on_read_error', _parse_bool),
}


class ConfigManager:
    """
    Manages the .serialcli configuration file (INI format).

    File format:
        [DEFAULT]
        PORT=/dev/ttyACM0
        TERMINATOR=lf

        [/dev/ttyUSB0]
        BAUDRATE=115200
    """

    @staticmethod
    def find_env_file(start: Optional[str] = None) -> Optional[str]:
        """Find .serialcli by searching up from the current directory."""
        current = os.path.realpath(start or os.getcwd())

        visited = set()
        while current not in visited:
            visited.add(current)
            env_path = os.path.join(current, ENV_FILE_NAME)
            if os.path.isfile(env_path):
                return env_path
            parent = os.path.dirname(current)
            if parent == current:
                break
            current = parent
        return None

    @staticmethod
    def read(env_path: str) -> dict:
        """
        Read INI-style .serialcli file.

        Returns:
            dict with structure:
            {
                'default': {'PORT': '...', ...},
                'ports': {'/dev/ttyUSB0': {'BAUDRATE': '115200'}, ...}
            }
        """
        result = {
            'default': {},
            'ports': {},
        }

        if not env_path or not os.path.exists(env_path):
            return result

        with open(env_path, 'r', encoding='utf-8') as f:
            content = f.read()

        section = result['default']
        for line in content.splitlines():
            line = line.strip()

            # Skip empty lines and comments
            if not line or line.startswith('#') or line.startswith(';'):
                continue

            # Section header
            if line.startswith('[') and line.endswith(']'):
                name = line[1:-1].strip()
                if name.upper() == 'DEFAULT':
                    section = result['default']
                else:
                    section = result['ports'].setdefault(name, {})
                continue

            # Key=Value pairs
            if '=' in line:
                key, value = line.split('=', 1)
                section[key.strip().upper()] = value.strip()

        return result

    @staticmethod
    def write(env_path: str, data: dict):
        """Write INI-style .serialcli file from the structure read() returns."""
        lines = []

        if data.get('default'):
            lines.append('[DEFAULT]')
            for key, value in data['default'].items():
                lines.append(f'{key}={value}')
            lines.append('')

        for port, values in data.get('ports', {}).items():
            lines.append(f'[{port}]')
            for key, value in values.items():
                lines.append(f'{key}={value}')
            lines.append('')

        with open(env_path, 'w', encoding='utf-8') as f:
            f.write('\n'.join(lines))

    @staticmethod
    def set_default_port(env_path: str, port: str):
        """Remember ``port`` as the one to open next time."""
        data = ConfigManager.read(env_path)
        data['default']['PORT'] = port
        ConfigManager.write(env_path, data)

    @staticmethod
    def _apply(values: Dict[str, str], settings: Dict[str, Any], source: str):
        for key, raw in values.items():
            if key not in _KEYS:
                continue
            field_name, parser = _KEYS[key]
            try:
                settings[field_name] = parser(raw)
            except ValueError as e:
                raise ValueError(f"{source}: bad value for {key}: {e}") from e

    @staticmethod
    def resolve(options: Optional[Dict[str, Any]] = None, env_path: Optional[str] = None) -> SessionConfig:
        """Build the SessionConfig for this run."""
        options = options or {}
        settings: Dict[str, Any] = {}

        data = ConfigManager.read(env_path) if env_path else {'default': {}, 'ports': {}}
        ConfigManager._apply(data['default'], settings, env_path or ENV_FILE_NAME)

        port = options.get('port') or settings.get('port')
        if port and port in data['ports']:
            ConfigManager._apply(data['ports'][port], settings, f"{env_path} [{port}]")

        known = {f.name for f in fields(SessionConfig)}
        for name, value in options.items():
            if name in known and value is not None:
                settings[name] = value

        return SessionConfig(**settings)
