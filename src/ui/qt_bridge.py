# -*- coding: utf-8 -*-
"""
Qt View Bridge

Re-emits client core events as Qt signals so widgets can bind to them with
plain signal/slot connections, decoupling the core layer from Qt.

Design Principles:
- The core layer's EventBus remains pure Python and does not depend on Qt.
- Events may be published from any thread (timers, transport callbacks);
  signals are delivered to slots on the receiver's thread, normally the
  Qt main thread.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, List

from PyQt6.QtCore import QObject, QThread, pyqtSignal

from core.event_bus import EventType

if TYPE_CHECKING:
    from app.protocols import IEventBus

logger = logging.getLogger(__name__)


class QtViewBridge(QObject):
    """Qt View Bridge

    Usage Example:
        bridge = QtViewBridge(container.event_bus)
        bridge.now_playing_changed.connect(self._on_now_playing)
        bridge.connection_state_changed.connect(self._on_connection_state)
    """

    # (player_id, PlaybackSnapshot)
    now_playing_changed = pyqtSignal(str, object)
    # (player_id, PlaybackField, error)
    edit_failed = pyqtSignal(str, object, object)
    # ConnectionState
    connection_state_changed = pyqtSignal(object)
    # LibraryCategory
    library_reset = pyqtSignal(object)
    # (LibraryCategory, items)
    library_page_loaded = pyqtSignal(object, list)
    # (LibraryCategory, QueryError)
    library_query_failed = pyqtSignal(object, object)
    # artwork key
    artwork_cached = pyqtSignal(str)
    artwork_cleared = pyqtSignal()
    # (queue_id, items)
    queue_changed = pyqtSignal(str, list)
    # (queue_id, QueueError)
    queue_command_failed = pyqtSignal(str, object)

    def __init__(self, event_bus: "IEventBus", parent: QObject = None):
        """Initialize the bridge.

        Args:
            event_bus: The pure Python event bus to forward from.

        Raises:
            RuntimeError: If no Qt application instance is running.
        """
        super().__init__(parent)

        from PyQt6.QtCore import QCoreApplication
        app = QCoreApplication.instance()
        if app is None:
            raise RuntimeError(
                "QtViewBridge requires a running QApplication instance. "
                "Please create a QApplication before initializing the bridge."
            )
        if parent is None and QThread.currentThread() != app.thread():
            self.moveToThread(app.thread())
            logger.debug("QtViewBridge moved to Qt main thread")

        self._bus = event_bus
        self._subscriptions: List[str] = []

        self._forward(EventType.NOW_PLAYING_CHANGED, lambda d: self.now_playing_changed.emit(d[0], d[1]))
        self._forward(EventType.EDIT_FAILED, lambda d: self.edit_failed.emit(d[0], d[1], d[2]))
        self._forward(EventType.CONNECTION_STATE_CHANGED, self.connection_state_changed.emit)
        self._forward(EventType.LIBRARY_RESET, self.library_reset.emit)
        self._forward(EventType.LIBRARY_PAGE_LOADED, lambda d: self.library_page_loaded.emit(d[0], list(d[1])))
        self._forward(EventType.LIBRARY_QUERY_FAILED, lambda d: self.library_query_failed.emit(d[0], d[1]))
        self._forward(EventType.ARTWORK_CACHED, lambda key: self.artwork_cached.emit(str(key)))
        self._forward(EventType.ARTWORK_CLEARED, lambda _: self.artwork_cleared.emit())
        self._forward(EventType.QUEUE_CHANGED, lambda d: self.queue_changed.emit(d[0], list(d[1])))
        self._forward(EventType.QUEUE_COMMAND_FAILED, lambda d: self.queue_command_failed.emit(d[0], d[1]))

    def _forward(self, event_type: EventType, emit: Callable[[Any], None]) -> None:
        self._subscriptions.append(self._bus.subscribe(event_type, emit))

    def detach(self) -> None:
        """Stop forwarding events."""
        for subscription_id in self._subscriptions:
            self._bus.unsubscribe(subscription_id)
        self._subscriptions.clear()
