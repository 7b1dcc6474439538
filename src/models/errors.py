"""
Error types shared by the client services

Every failure the services report derives from PlayerClientError so the
presentation layer can catch a single base class and show `user_message`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from models.connection import ConnectionState


class PlayerClientError(RuntimeError):
    """Base error of the player client"""

    user_message = "Something went wrong. Please try again."

    def __init__(self, details: str = ""):
        super().__init__(details)
        self.details = details

    @property
    def technical_details(self) -> str:
        return self.details


class ServerConnectionError(PlayerClientError):
    """Connecting to the server failed or the connection is unusable"""

    user_message = "Unable to connect to the server. Please check your connection."


class NotConnectedError(ServerConnectionError):
    """An operation was attempted while the connection is not established"""

    def __init__(self, state: Optional["ConnectionState"] = None):
        self.state = state
        text = state.display_text if state is not None else "Disconnected"
        super().__init__(f"Not connected (state: {text})")


class CommandError(PlayerClientError):
    """A player command was rejected by the server or timed out"""

    def __init__(self, command: str, reason: str = ""):
        self.command = command
        self.reason = reason
        super().__init__(f"Command '{command}' failed: {reason}")

    @property
    def user_message(self) -> str:  # type: ignore[override]
        return f"Unable to {self.command}. The player may be offline."


class QueryError(PlayerClientError):
    """Fetching a library page failed"""

    user_message = "Unable to load the library. Please try again."

    def __init__(self, category: str, reason: str = ""):
        self.category = category
        self.reason = reason
        super().__init__(f"Library query for '{category}' failed: {reason}")


class DecodeError(PlayerClientError):
    """Artwork bytes could not be decoded into an image"""

    user_message = "Unable to display artwork."

    def __init__(self, key: str, reason: str = ""):
        self.key = key
        self.reason = reason
        super().__init__(f"Could not decode artwork {key}: {reason}")


class ArtworkFetchError(PlayerClientError):
    """Artwork bytes could not be downloaded"""

    user_message = "Unable to download artwork."

    def __init__(self, key: str, reason: str = ""):
        self.key = key
        self.reason = reason
        super().__init__(f"Could not fetch artwork {key}: {reason}")


class InvalidConfigurationError(PlayerClientError):
    """Server configuration is invalid"""

    user_message = "Server configuration is invalid. Please check your settings."


class InvalidSortOptionError(ValueError):
    """A sort option was requested for a category that does not support it"""

    def __init__(self, category, sort):
        self.category = category
        self.sort = sort
        super().__init__(
            f"Sort option '{sort.value}' is not available for {category.display_name}"
        )


class QueueError(PlayerClientError):
    """A queue command failed or the queue could not be read"""

    user_message = "Unable to update the queue. Please try again."

    def __init__(self, command: str, reason: str = ""):
        self.command = command
        self.reason = reason
        super().__init__(f"Queue command '{command}' failed: {reason}")
