# -*- coding: utf-8 -*-
"""
Event Bus Module - Publish-Subscribe Pattern Implementation

Carries state updates from the client services (merged now-playing view,
connection state, library pages, artwork) to whoever renders them.

Design Notes:
- Pure Python, does not depend on any UI framework
- Qt main thread delivery lives in ui/qt_bridge.py
- Instances are constructed by AppContainerFactory and injected; there is no
  process-wide instance
"""

from typing import Dict, Callable, Any, Optional
from enum import Enum
import threading
import uuid
import logging
from concurrent.futures import ThreadPoolExecutor

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Event type enumeration"""

    # Playback events
    NOW_PLAYING_CHANGED = "now_playing_changed"  # data: (player_id, PlaybackSnapshot)
    EDIT_DISPATCHED = "edit_dispatched"
    EDIT_FAILED = "edit_failed"

    # Connection events
    CONNECTION_STATE_CHANGED = "connection_state_changed"

    # Library events
    LIBRARY_RESET = "library_reset"
    LIBRARY_PAGE_LOADED = "library_page_loaded"
    LIBRARY_QUERY_FAILED = "library_query_failed"

    # Artwork events
    ARTWORK_CACHED = "artwork_cached"
    ARTWORK_CLEARED = "artwork_cleared"

    # Queue events
    QUEUE_CHANGED = "queue_changed"  # data: (queue_id, List[QueueItem])
    QUEUE_COMMAND_FAILED = "queue_command_failed"  # data: (queue_id, QueueError)

    # System events
    CONFIG_CHANGED = "config_changed"


class EventBus:
    """
    Event Bus

    Provides publish-subscribe pattern event system, supports asynchronous event handling.

    Usage example:
        event_bus = EventBus()

        def on_now_playing(data):
            player_id, view = data
            logger.info("%s volume: %s", player_id, view.volume)

        sub_id = event_bus.subscribe(EventType.NOW_PLAYING_CHANGED, on_now_playing)
        event_bus.publish_sync(EventType.NOW_PLAYING_CHANGED, ("kitchen", view))
        event_bus.unsubscribe(sub_id)
    """

    def __init__(self, max_workers: int = 4):
        self._subscribers: Dict[EventType, Dict[str, Callable]] = {}
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="EventBus")
        self._sub_lock = threading.Lock()

    def subscribe(
        self,
        event_type: EventType,
        callback: Callable[[Any], None]
    ) -> str:
        """
        Subscribe to event

        Args:
            event_type: Event type
            callback: Callback function, receiving event data as an argument

        Returns:
            str: Subscription ID, used for unsubscription
        """
        subscription_id = str(uuid.uuid4())

        with self._sub_lock:
            if event_type not in self._subscribers:
                self._subscribers[event_type] = {}
            self._subscribers[event_type][subscription_id] = callback

        return subscription_id

    def unsubscribe(self, subscription_id: str) -> bool:
        """
        Unsubscribe

        Args:
            subscription_id: The ID returned when subscribing

        Returns:
            bool: Whether the unsubscription was successful
        """
        with self._sub_lock:
            for event_type in self._subscribers:
                if subscription_id in self._subscribers[event_type]:
                    del self._subscribers[event_type][subscription_id]
                    return True
        return False

    def publish(self, event_type: EventType, data: Any = None) -> None:
        """
        Publish event asynchronously

        The callback function will be executed asynchronously in the thread pool.
        """
        with self._sub_lock:
            callbacks = list(self._subscribers.get(event_type, {}).values())

        for callback in callbacks:
            self._executor.submit(self._safe_call, callback, data)

    def publish_sync(
        self,
        event_type: EventType,
        data: Any = None,
        timeout: Optional[float] = 5.0,
    ) -> bool:
        """
        Publish event synchronously

        All callbacks are executed in the current thread, in subscription order.
        `timeout` is accepted for interface compatibility with the Qt bridge.

        Returns:
            bool: Always True
        """
        with self._sub_lock:
            callbacks = list(self._subscribers.get(event_type, {}).values())

        for callback in callbacks:
            self._safe_call(callback, data)

        return True

    def subscriber_count(self, event_type: EventType) -> int:
        with self._sub_lock:
            return len(self._subscribers.get(event_type, {}))

    def _safe_call(self, callback: Callable, data: Any) -> None:
        """Safely call a callback function"""
        try:
            callback(data)
        except Exception as e:
            # Avoid loop: Do not use publish to report error events
            logger.error("Event callback execution error: %s", e)

    def clear(self) -> None:
        """Clear all subscriptions"""
        with self._sub_lock:
            self._subscribers.clear()

    def shutdown(self) -> None:
        """Shutdown the event bus"""
        self._executor.shutdown(wait=True)
