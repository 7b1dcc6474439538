# -*- coding: utf-8 -*-
"""
Protocols Definition Module

Interfaces the facade and the composition root depend on. Uses Protocol
instead of ABC to support structural subtyping checks.

Design Decisions:
- Default to using Protocol + @runtime_checkable
- Runtime checks are performed as one-time assertions during container assembly or testing
- Collaborators of the client core (transport, library query) live in core.ports
"""

from __future__ import annotations

from concurrent.futures import Future
from enum import Enum
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    List,
    Optional,
    Protocol,
    runtime_checkable,
)

from core.ports import ILibraryQuery, ITransport, TransportEvent

if TYPE_CHECKING:
    from models.playback import EditOutcome, PlaybackSnapshot
    from models.server_config import ServerConfig


# =============================================================================
# Event Bus Protocol
# =============================================================================

@runtime_checkable
class IEventBus(Protocol):
    """Event Bus Interface

    Provides a publish-subscribe pattern event system.
    """

    def subscribe(
        self,
        event_type: Enum,
        callback: Callable[[Any], None]
    ) -> str:
        """Subscribe to an event

        Returns:
            Subscription ID, used to unsubscribe
        """
        ...

    def unsubscribe(self, subscription_id: str) -> bool:
        """Unsubscribe from an event"""
        ...

    def publish(self, event_type: Enum, data: Any = None) -> None:
        """Publish an event"""
        ...

    def publish_sync(
        self,
        event_type: Enum,
        data: Any = None,
        timeout: Optional[float] = None
    ) -> bool:
        """Publish an event synchronously

        Returns:
            True if completed before timeout
        """
        ...


# =============================================================================
# Configuration Service Protocol
# =============================================================================

@runtime_checkable
class IConfigService(Protocol):
    """Configuration Service Interface"""

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value

        Args:
            key: Configuration key, supports dot-separated nested keys
            default: Default value
        """
        ...

    def set(self, key: str, value: Any) -> None:
        """Set a configuration value"""
        ...

    def save(self) -> bool:
        """Save configuration to file"""
        ...

    def get_server_config(self) -> Optional["ServerConfig"]:
        """Configured server, None when no host is set"""
        ...

    def set_server_config(self, server: "ServerConfig") -> None:
        """Validate and store the server address"""
        ...


# =============================================================================
# Playback Control Protocol
# =============================================================================

@runtime_checkable
class IPlaybackControl(Protocol):
    """Playback intents of one player, as offered to the UI"""

    @property
    def view(self) -> "PlaybackSnapshot":
        """Merged now-playing view"""
        ...

    def set_volume(self, volume: float) -> "Future[EditOutcome]":
        ...

    def seek(self, position: float) -> "Future[EditOutcome]":
        ...

    def set_shuffle(self, enabled: bool) -> "Future[EditOutcome]":
        ...

    def cycle_repeat_mode(self) -> "Future[EditOutcome]":
        ...

    def toggle_favorite(self) -> "Future[EditOutcome]":
        ...

    def play(self) -> Future:
        ...

    def pause(self) -> Future:
        ...

    def next_track(self) -> Future:
        ...

    def previous_track(self) -> Future:
        ...


__all__: List[str] = [
    "IEventBus",
    "IConfigService",
    "IPlaybackControl",
    "ITransport",
    "TransportEvent",
    "ILibraryQuery",
]
