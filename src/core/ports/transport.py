# -*- coding: utf-8 -*-
"""
Transport Port Interface

The connection to the Music Assistant server. The client services treat it
as an abstract request/response boundary plus a push-event feed; the wire
encoding is the implementation's business.
"""

from __future__ import annotations

from concurrent.futures import Future
from typing import Any, Callable, Dict, Protocol, Union, runtime_checkable

from models.connection import ConnectivityEvent
from models.playback import PlaybackSnapshot
from models.queue import QueueUpdate

# Push events are already decoded into typed values at the transport boundary
TransportEvent = Union[PlaybackSnapshot, ConnectivityEvent, QueueUpdate]


@runtime_checkable
class ITransport(Protocol):
    """Server Transport Interface

    All network operations are asynchronous and return a Future.
    """

    def connect(self) -> "Future[None]":
        """Open the connection

        Returns:
            Future that fails with ServerConnectionError when the connection
            cannot be established
        """
        ...

    def disconnect(self) -> None:
        """Close the connection"""
        ...

    def send_command(self, name: str, args: Dict[str, Any]) -> "Future[Any]":
        """Send a command

        Args:
            name: Command name, e.g. "players/cmd/volume_set"
            args: Command arguments

        Returns:
            Future resolving with the server response, failing with
            CommandError when rejected or timed out
        """
        ...

    def subscribe(self, callback: Callable[[TransportEvent], None]) -> str:
        """Register a push event callback

        Returns:
            Subscription ID
        """
        ...

    def unsubscribe(self, subscription_id: str) -> bool:
        """Remove a push event callback"""
        ...
