"""
Service Layer Module
"""

from .config_service import ConfigService
from .connection_lifecycle import ConnectionEvent, ConnectionLifecycle
from .playback_reconciler import PlaybackReconciler
from .library_browser import LibraryBrowser
from .color_extractor import extract_dominant_color, extract_palette
from .artwork_cache import ArtworkCache
from .artwork_loader import ArtworkLoader
from .queue_service import QueueService
from .player_client_facade import NoPlayerSelectedError, PlayerClientFacade

__all__ = [
    'ConfigService',
    'ConnectionEvent',
    'ConnectionLifecycle',
    'PlaybackReconciler',
    'LibraryBrowser',
    'extract_dominant_color',
    'extract_palette',
    'ArtworkCache',
    'ArtworkLoader',
    'QueueService',
    'NoPlayerSelectedError',
    'PlayerClientFacade',
]
