"""
Connection state model
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ConnectionStatus(Enum):
    """Server connection status"""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    ERROR = "error"


@dataclass(frozen=True)
class ConnectionState:
    """
    Connection state

    `message` is only set for the ERROR status and carries the cause.
    """

    status: ConnectionStatus = ConnectionStatus.DISCONNECTED
    message: Optional[str] = None

    @classmethod
    def disconnected(cls) -> "ConnectionState":
        return cls(ConnectionStatus.DISCONNECTED)

    @classmethod
    def error(cls, message: str) -> "ConnectionState":
        return cls(ConnectionStatus.ERROR, message or "Unknown error")

    @property
    def is_connected(self) -> bool:
        return self.status == ConnectionStatus.CONNECTED

    @property
    def display_text(self) -> str:
        """Human readable status"""
        if self.status == ConnectionStatus.CONNECTING:
            return "Connecting..."
        if self.status == ConnectionStatus.RECONNECTING:
            return "Reconnecting..."
        if self.status == ConnectionStatus.ERROR:
            return f"Error: {self.message}"
        return self.status.value.capitalize()


class ConnectivityEvent(Enum):
    """Connectivity changes reported by the transport feed"""
    CONNECTED = "connected"
    DROPPED = "dropped"
    CLOSED = "closed"
