"""
Data Models Module
"""

from .track import Track
from .connection import ConnectionState, ConnectionStatus, ConnectivityEvent
from .playback import (
    EditOutcome,
    OptimisticEdit,
    PlaybackField,
    PlaybackSnapshot,
    PlaybackStatus,
    Player,
    RepeatMode,
)
from .library import (
    LibraryCategory,
    LibraryFilter,
    LibraryQueryState,
    LibrarySortOption,
    PageCursor,
    PageResult,
)
from .queue import QueueItem, QueueUpdate
from .server_config import AppSettings, ServerConfig

__all__ = [
    'Track',
    'ConnectionState', 'ConnectionStatus', 'ConnectivityEvent',
    'EditOutcome', 'OptimisticEdit', 'PlaybackField', 'PlaybackSnapshot',
    'PlaybackStatus', 'Player', 'RepeatMode',
    'LibraryCategory', 'LibraryFilter', 'LibraryQueryState', 'LibrarySortOption',
    'PageCursor', 'PageResult',
    'QueueItem', 'QueueUpdate',
    'AppSettings', 'ServerConfig',
]
