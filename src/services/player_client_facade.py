# -*- coding: utf-8 -*-
"""
Player Client Facade Module

Provides a unified interface for the UI layer to access the client services,
narrowing the dependency surface.

Design Principles:
- UI components should only depend on this Facade, not directly on underlying services.
- The Facade only exposes "use-case level methods" actually needed by the UI.
- Transport push events enter the client core here and are routed to the
  component that owns them.
"""

from __future__ import annotations

import concurrent.futures
import logging
import threading
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

from core.event_bus import EventType
from models.connection import ConnectionState, ConnectivityEvent
from models.errors import PlayerClientError
from models.library import LibraryCategory
from models.playback import PlaybackSnapshot
from models.queue import QueueUpdate
from services.playback_reconciler import PlaybackReconciler

if TYPE_CHECKING:
    from enum import Enum
    from app.protocols import IConfigService, IEventBus
    from core.ports.transport import ITransport, TransportEvent
    from core.scheduler import IScheduler
    from models.artwork import CachedArtwork
    from models.library import LibraryFilter, LibrarySortOption
    from models.playback import EditOutcome
    from models.queue import QueueItem
    from models.server_config import ServerConfig
    from services.artwork_cache import ArtworkCache
    from services.artwork_loader import ArtworkLoader
    from services.connection_lifecycle import ConnectionLifecycle
    from services.library_browser import LibraryBrowser
    from services.queue_service import QueueService

logger = logging.getLogger(__name__)


class NoPlayerSelectedError(PlayerClientError):
    """A playback intent was issued before a player was selected"""

    user_message = "Select a player first."


class PlayerClientFacade:
    """Player Client Facade

    UI Use-Case Facade - narrows the dependency surface between UI and service layers.
    Sub-components should only receive this Facade rather than the AppContainer or individual services.

    Usage Example:
        facade.start()
        facade.connect().result(timeout=10)
        facade.select_player("kitchen")

        facade.subscribe(EventType.NOW_PLAYING_CHANGED, on_now_playing)
        facade.set_volume(40)
    """

    def __init__(
        self,
        transport: "ITransport",
        lifecycle: "ConnectionLifecycle",
        library: "LibraryBrowser",
        artwork_cache: "ArtworkCache",
        artwork_loader: "ArtworkLoader",
        config: "IConfigService",
        event_bus: "IEventBus",
        queue: Optional["QueueService"] = None,
        scheduler: Optional["IScheduler"] = None,
        reconciler_factory: Optional[Callable[[str], PlaybackReconciler]] = None,
    ):
        """Initialize the facade.

        Args:
            transport: Server transport
            lifecycle: Connection state machine
            library: Library browser
            artwork_cache: Artwork cache
            artwork_loader: Artwork downloader
            config: Configuration service
            event_bus: Event bus
            queue: Queue service (created on the same transport when None)
            scheduler: Timer scheduler shared by the reconcilers
            reconciler_factory: Creates the reconciler of a player id
        """
        self._transport = transport
        self._lifecycle = lifecycle
        self._library = library
        self._artwork_cache = artwork_cache
        self._artwork_loader = artwork_loader
        self._config = config
        self._event_bus = event_bus
        if queue is None:
            from services.queue_service import QueueService
            queue = QueueService(transport, lifecycle, event_bus)
        self._queue = queue
        self._scheduler = scheduler
        self._reconciler_factory = reconciler_factory or self._create_reconciler

        self._lock = threading.RLock()
        self._reconcilers: Dict[str, PlaybackReconciler] = {}
        self._latest_snapshots: Dict[str, PlaybackSnapshot] = {}
        self._active_player_id: Optional[str] = None
        self._transport_subscription: Optional[str] = None

    def _create_reconciler(self, player_id: str) -> PlaybackReconciler:
        return PlaybackReconciler.from_config(
            player_id,
            self._transport,
            self._lifecycle,
            self._config,
            event_bus=self._event_bus,
            scheduler=self._scheduler,
        )

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self) -> None:
        """Start receiving transport push events."""
        with self._lock:
            if self._transport_subscription is None:
                self._transport_subscription = self._transport.subscribe(self.handle_transport_event)

    def stop(self) -> None:
        """Stop receiving push events and close every reconciler."""
        with self._lock:
            subscription = self._transport_subscription
            self._transport_subscription = None
            reconcilers = list(self._reconcilers.values())
            self._reconcilers.clear()
            self._active_player_id = None
        if subscription is not None:
            self._transport.unsubscribe(subscription)
        for reconciler in reconcilers:
            reconciler.close()

    def handle_transport_event(self, event: "TransportEvent") -> None:
        """Route one push event to the component that owns it."""
        if isinstance(event, ConnectivityEvent):
            self._lifecycle.handle_connectivity_event(event)
            return
        if isinstance(event, PlaybackSnapshot):
            with self._lock:
                self._latest_snapshots[event.player_id] = event
                reconciler = self._reconcilers.get(event.player_id)
            if reconciler is not None:
                reconciler.apply_snapshot(event)
            return
        if isinstance(event, QueueUpdate):
            self._queue.apply_update(event)
            return
        logger.warning("Ignoring unknown transport event: %r", event)

    # =========================================================================
    # Connection
    # =========================================================================

    def connect(self) -> "concurrent.futures.Future[ConnectionState]":
        """Connect to the configured server."""
        return self._lifecycle.connect()

    def disconnect(self) -> None:
        self._lifecycle.disconnect()

    @property
    def connection_state(self) -> ConnectionState:
        return self._lifecycle.state

    def is_server_configured(self) -> bool:
        """Whether a server host is configured."""
        return self._config.get_server_config() is not None

    def get_server_config(self) -> Optional["ServerConfig"]:
        return self._config.get_server_config()

    def set_server_config(self, server: "ServerConfig") -> None:
        """Validate, store and save the server address.

        Raises:
            InvalidConfigurationError: host or port is invalid
        """
        self._config.set_server_config(server)
        self.save_config()

    # =========================================================================
    # Player Selection
    # =========================================================================

    def select_player(self, player_id: str) -> PlaybackReconciler:
        """Make a player the playback target.

        Reconcilers are kept per player, so switching back keeps pending state.
        """
        with self._lock:
            reconciler = self._reconcilers.get(player_id)
            created = reconciler is None
            if created:
                reconciler = self._reconciler_factory(player_id)
                self._reconcilers[player_id] = reconciler
            self._active_player_id = player_id
            latest = self._latest_snapshots.get(player_id)

        logger.info("Selected player %s", player_id)
        if created and latest is not None:
            reconciler.apply_snapshot(latest)
        return reconciler

    @property
    def active_player_id(self) -> Optional[str]:
        with self._lock:
            return self._active_player_id

    def reconciler(self, player_id: Optional[str] = None) -> PlaybackReconciler:
        """Reconciler of a player (the active one by default).

        Raises:
            NoPlayerSelectedError: no such player has been selected
        """
        with self._lock:
            player_id = player_id or self._active_player_id
            reconciler = self._reconcilers.get(player_id) if player_id else None
        if reconciler is None:
            raise NoPlayerSelectedError("No player selected")
        return reconciler

    @property
    def now_playing(self) -> Optional[PlaybackSnapshot]:
        """Merged view of the active player."""
        with self._lock:
            player_id = self._active_player_id
            reconciler = self._reconcilers.get(player_id) if player_id else None
        return reconciler.view if reconciler else None

    # =========================================================================
    # Playback Control
    # =========================================================================

    def play(self) -> concurrent.futures.Future:
        return self.reconciler().play()

    def pause(self) -> concurrent.futures.Future:
        return self.reconciler().pause()

    def stop_playback(self) -> concurrent.futures.Future:
        return self.reconciler().stop()

    def toggle_play(self) -> concurrent.futures.Future:
        return self.reconciler().toggle_play()

    def next_track(self) -> concurrent.futures.Future:
        return self.reconciler().next_track()

    def previous_track(self) -> concurrent.futures.Future:
        return self.reconciler().previous_track()

    def set_volume(self, volume: float) -> "concurrent.futures.Future[EditOutcome]":
        """Set volume (0 - 100)."""
        return self.reconciler().set_volume(volume)

    def seek(self, position: float) -> "concurrent.futures.Future[EditOutcome]":
        """Seek to a position in seconds."""
        return self.reconciler().seek(position)

    def set_shuffle(self, enabled: bool) -> "concurrent.futures.Future[EditOutcome]":
        return self.reconciler().set_shuffle(enabled)

    def cycle_repeat_mode(self) -> "concurrent.futures.Future[EditOutcome]":
        return self.reconciler().cycle_repeat_mode()

    def toggle_favorite(self) -> "concurrent.futures.Future[EditOutcome]":
        return self.reconciler().toggle_favorite()

    # =========================================================================
    # Library Operations
    # =========================================================================

    def set_sort(self, category: "LibraryCategory", sort: "LibrarySortOption") -> None:
        self._library.set_sort(category, sort)

    def set_filter(self, category: "LibraryCategory", library_filter: "LibraryFilter") -> None:
        self._library.set_filter(category, library_filter)

    def set_search(self, category: "LibraryCategory", search: str) -> None:
        self._library.set_search(category, search)

    def load_first_page(self, category: "LibraryCategory") -> "concurrent.futures.Future[List[Any]]":
        return self._library.load_first_page(category)

    def load_next_page(self, category: "LibraryCategory") -> "concurrent.futures.Future[List[Any]]":
        return self._library.load_next_page(category)

    def library_items(self, category: "LibraryCategory") -> List[Any]:
        return self._library.items(category)

    def has_more(self, category: "LibraryCategory") -> bool:
        return self._library.has_more(category)

    def sort_options(self, category: "LibraryCategory") -> List["LibrarySortOption"]:
        return self._library.sort_options(category)

    @property
    def default_library_category(self) -> LibraryCategory:
        """Category the library opens on (`library.default_category`)."""
        value = self._config.get("library.default_category", LibraryCategory.ARTISTS.value)
        try:
            return LibraryCategory(value)
        except ValueError:
            logger.warning("Unknown library.default_category %r, using artists", value)
            return LibraryCategory.ARTISTS

    # =========================================================================
    # Queue
    # =========================================================================

    def _active_queue_id(self) -> str:
        with self._lock:
            player_id = self._active_player_id
        if player_id is None:
            raise NoPlayerSelectedError("No player selected")
        return player_id

    def fetch_queue(self) -> "concurrent.futures.Future[List[QueueItem]]":
        """Fetch the queue of the active player."""
        return self._queue.fetch_queue(self._active_queue_id())

    @property
    def queue_items(self) -> List["QueueItem"]:
        return self._queue.items

    def clear_queue(self) -> "concurrent.futures.Future[List[QueueItem]]":
        return self._queue.clear_queue(self._active_queue_id())

    def remove_queue_item(self, item_id: str) -> "concurrent.futures.Future[List[QueueItem]]":
        return self._queue.remove_item(item_id, self._active_queue_id())

    def move_queue_item(
        self, item_id: str, old_index: int, new_index: int
    ) -> "concurrent.futures.Future[List[QueueItem]]":
        return self._queue.move_item(item_id, old_index, new_index, self._active_queue_id())

    def add_to_queue(
        self, uri: str, insert_at_index: Optional[int] = None
    ) -> "concurrent.futures.Future[List[QueueItem]]":
        """Add a media item to the active player's queue."""
        return self._queue.add_to_queue(uri, self._active_queue_id(), insert_at_index)

    # =========================================================================
    # Artwork
    # =========================================================================

    def load_artwork(self, url: str) -> "concurrent.futures.Future[CachedArtwork]":
        """Cached artwork, downloading it on a miss."""
        return self._artwork_loader.load(url)

    def cached_artwork(self, url: str) -> Optional["CachedArtwork"]:
        return self._artwork_cache.get(url)

    def clear_artwork_cache(self) -> None:
        self._artwork_cache.clear()

    # =========================================================================
    # Configuration Operations
    # =========================================================================

    def get_config(self, key: str, default: Any = None) -> Any:
        """Get a configuration value."""
        return self._config.get(key, default)

    def set_config(self, key: str, value: Any) -> None:
        """Set a configuration value."""
        self._config.set(key, value)
        self._event_bus.publish_sync(EventType.CONFIG_CHANGED, key)

    def save_config(self) -> bool:
        """Save configuration to file."""
        return self._config.save()

    # =========================================================================
    # Event Subscription
    # =========================================================================

    def subscribe(
        self,
        event_type: "Enum",
        callback: Callable[[Any], None]
    ) -> str:
        """Subscribe to an event.

        Returns:
            Subscription ID.
        """
        return self._event_bus.subscribe(event_type, callback)

    def unsubscribe(self, subscription_id: str) -> bool:
        return self._event_bus.unsubscribe(subscription_id)

    def publish(self, event_type: "Enum", data: Any = None) -> None:
        self._event_bus.publish(event_type, data)
