"""
Server configuration and application settings models
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from models.errors import InvalidConfigurationError

DEFAULT_PORT = 8095


@dataclass(frozen=True)
class ServerConfig:
    """Host/port of the Music Assistant server"""

    host: str
    port: int = DEFAULT_PORT

    @property
    def url(self) -> str:
        return f"ws://{self.host}:{self.port}/ws"

    def validation_error(self) -> Optional[str]:
        """Return a user-facing message if invalid, otherwise None"""
        if not is_valid_host(self.host):
            return "Invalid host address. Please enter a valid IP address or hostname."
        if not is_valid_port(self.port):
            return "Invalid port number. Must be between 1 and 65535."
        return None

    def validate(self) -> None:
        message = self.validation_error()
        if message:
            raise InvalidConfigurationError(message)

    def to_dict(self) -> dict:
        return {'host': self.host, 'port': self.port}

    @classmethod
    def from_dict(cls, data: dict) -> Optional['ServerConfig']:
        """None when no host is configured"""
        host = str(data.get('host') or '').strip()
        if not host:
            return None
        try:
            port = int(data.get('port', DEFAULT_PORT))
        except (TypeError, ValueError):
            port = DEFAULT_PORT
        return cls(host=host, port=port)


@dataclass(frozen=True)
class AppSettings:
    """Feature toggles"""

    local_player_enabled: bool = False
    local_player_name: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            'local_player_enabled': self.local_player_enabled,
            'local_player_name': self.local_player_name or '',
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'AppSettings':
        return cls(
            local_player_enabled=bool(data.get('local_player_enabled', False)),
            local_player_name=data.get('local_player_name') or None,
        )


def is_valid_port(port: int) -> bool:
    return 1 <= port <= 65535


def is_valid_host(host: str) -> bool:
    """IPv4 address or hostname"""
    if not host:
        return False
    if all(c in "0123456789.-" for c in host):
        return _is_valid_ipv4(host)
    return _is_valid_hostname(host)


def _is_valid_ipv4(address: str) -> bool:
    parts = address.split(".")
    if len(parts) != 4:
        return False
    for part in parts:
        if not part.isdigit() or str(int(part)) != part or int(part) > 255:
            return False
    return True


def _is_valid_hostname(hostname: str) -> bool:
    if ".." in hostname:
        return False
    if hostname[0] in ".-" or hostname[-1] in ".-":
        return False
    for label in hostname.split("."):
        if not label or label.startswith("-") or label.endswith("-"):
            return False
        if not all(c.isalnum() or c == "-" for c in label):
            return False
    return True
