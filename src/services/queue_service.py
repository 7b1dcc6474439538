"""
Queue Service Module

Reads and edits the play queue of a player. Every edit is sent to the server
and the queue is fetched again afterwards, so the local list only ever shows
what the server reported.
"""

from __future__ import annotations

import concurrent.futures
import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from core.event_bus import EventBus, EventType
from core.ports.transport import ITransport
from models.errors import NotConnectedError, QueueError
from models.queue import QueueItem, QueueUpdate, format_total_duration, parse_queue_items
from services.connection_lifecycle import ConnectionLifecycle

logger = logging.getLogger(__name__)


class QueueService:
    """
    Queue Service

    Tracks one queue at a time, the one last passed to fetch_queue(). The
    queue id of a player queue is the player id.

    Example:
        queue = QueueService(transport, lifecycle, event_bus)
        items = queue.fetch_queue("kitchen").result()

        queue.move_item(items[3].queue_item_id, 3, 0)
        queue.add_to_queue("library://track/42", insert_at_index=1)
    """

    def __init__(
        self,
        transport: ITransport,
        lifecycle: ConnectionLifecycle,
        event_bus: Optional[EventBus] = None,
    ):
        self._transport = transport
        self._lifecycle = lifecycle
        self._event_bus = event_bus or EventBus()

        self._lock = threading.RLock()
        self._queue_id: Optional[str] = None
        self._items: List[QueueItem] = []
        self._last_error: Optional[QueueError] = None

    # ===== Read access =====

    @property
    def queue_id(self) -> Optional[str]:
        with self._lock:
            return self._queue_id

    @property
    def items(self) -> List[QueueItem]:
        with self._lock:
            return list(self._items)

    @property
    def last_error(self) -> Optional[QueueError]:
        with self._lock:
            return self._last_error

    @property
    def track_count(self) -> int:
        with self._lock:
            return len(self._items)

    @property
    def total_duration(self) -> int:
        """Total duration of the queued tracks in whole seconds"""
        with self._lock:
            return int(sum(item.track.duration for item in self._items))

    @property
    def formatted_total_duration(self) -> str:
        return format_total_duration(self.total_duration)

    # ===== Reading the queue =====

    def fetch_queue(self, queue_id: str) -> "concurrent.futures.Future[List[QueueItem]]":
        """
        Fetch the items of a queue and make it the tracked queue.

        Returns:
            Future resolving with the items, failing with QueueError

        Raises:
            NotConnectedError: the connection is not established
        """
        self._lifecycle.require_connected()
        with self._lock:
            if queue_id != self._queue_id:
                self._queue_id = queue_id
                self._items = []

        result: concurrent.futures.Future = concurrent.futures.Future()

        def on_done(response: Any) -> None:
            try:
                items = parse_queue_items(response)
            except ValueError as e:
                self._fail(result, queue_id, QueueError("fetch queue", f"malformed response: {e}"))
                return
            self._store(queue_id, items)
            result.set_result(items)

        self._send(result, queue_id, "fetch queue", "player_queues/items", {"queue_id": queue_id}, on_done)
        return result

    def apply_update(self, update: QueueUpdate) -> bool:
        """
        Take over items pushed by the server.

        Returns:
            bool: True if the update was for the tracked queue
        """
        return self._store(update.queue_id, list(update.items))

    # ===== Editing the queue =====

    def clear_queue(self, queue_id: Optional[str] = None) -> "concurrent.futures.Future[List[QueueItem]]":
        """
        Remove every item of the queue.

        Raises:
            QueueError: no queue id was given and none is tracked
            NotConnectedError: the connection is not established
        """
        queue_id = self._resolve_queue_id(queue_id, "clear queue")
        self._lifecycle.require_connected()
        logger.info("Clearing queue %s", queue_id)
        result: concurrent.futures.Future = concurrent.futures.Future()

        def on_done(_response: Any) -> None:
            self._store(queue_id, [])
            result.set_result([])

        self._send(result, queue_id, "clear queue", "player_queues/clear", {"queue_id": queue_id}, on_done)
        return result

    def remove_item(
        self, item_id: str, queue_id: Optional[str] = None
    ) -> "concurrent.futures.Future[List[QueueItem]]":
        """Remove one item; resolves with the refreshed items"""
        queue_id = self._resolve_queue_id(queue_id, "remove item")
        logger.info("Removing item %s from queue %s", item_id, queue_id)
        return self._queue_command("remove item", {
            "queue_id": queue_id,
            "command": "delete",
            "item_id": item_id,
        })

    def move_item(
        self,
        item_id: str,
        old_index: int,
        new_index: int,
        queue_id: Optional[str] = None,
    ) -> "concurrent.futures.Future[List[QueueItem]]":
        """
        Move one item from old_index to new_index.

        The server takes the move as a relative shift. Moving an item onto
        its own index sends nothing and resolves with the current items.
        """
        queue_id = self._resolve_queue_id(queue_id, "move item")
        if old_index < 0 or new_index < 0:
            raise ValueError(f"Queue indexes must not be negative, got {old_index} -> {new_index}")
        if old_index == new_index:
            done: concurrent.futures.Future = concurrent.futures.Future()
            done.set_result(self.items)
            return done
        logger.info("Moving item %s from index %d to %d", item_id, old_index, new_index)
        return self._queue_command("move item", {
            "queue_id": queue_id,
            "command": "move",
            "queue_item_id": item_id,
            "pos_shift": new_index - old_index,
        })

    def add_to_queue(
        self,
        uri: str,
        queue_id: Optional[str] = None,
        insert_at_index: Optional[int] = None,
    ) -> "concurrent.futures.Future[List[QueueItem]]":
        """Add a media item, at the end unless insert_at_index is given"""
        queue_id = self._resolve_queue_id(queue_id, "add to queue")
        if insert_at_index is not None and insert_at_index < 0:
            raise ValueError(f"insert_at_index must not be negative, got {insert_at_index}")
        logger.info(
            "Adding %s to queue %s at %s",
            uri, queue_id, "end" if insert_at_index is None else insert_at_index,
        )
        args: Dict[str, Any] = {
            "queue_id": queue_id,
            "command": "add",
            "media_items": [uri],
        }
        if insert_at_index is not None:
            args["insert_at_index"] = insert_at_index
        return self._queue_command("add to queue", args)

    # ===== Helpers =====

    def _resolve_queue_id(self, queue_id: Optional[str], action: str) -> str:
        queue_id = queue_id or self.queue_id
        if not queue_id:
            raise QueueError(action, "no queue selected")
        return queue_id

    def _queue_command(self, action: str, args: Dict[str, Any]) -> concurrent.futures.Future:
        """Send a queue_command, then resolve with the refetched queue"""
        self._lifecycle.require_connected()
        queue_id = args["queue_id"]
        result: concurrent.futures.Future = concurrent.futures.Future()

        def on_done(_response: Any) -> None:
            try:
                refreshed = self.fetch_queue(queue_id)
            except NotConnectedError as e:
                self._fail(result, queue_id, QueueError(action, str(e)))
                return
            refreshed.add_done_callback(lambda f: _copy_outcome(f, result))

        self._send(result, queue_id, action, "player_queues/queue_command", args, on_done)
        return result

    def _send(
        self,
        result: concurrent.futures.Future,
        queue_id: str,
        action: str,
        name: str,
        args: Dict[str, Any],
        on_success: Callable[[Any], None],
    ) -> None:
        def on_done(f: concurrent.futures.Future) -> None:
            error = _future_error(f)
            if error is None:
                on_success(f.result())
            else:
                self._fail(result, queue_id, _as_queue_error(action, error))

        try:
            pending = self._transport.send_command(name, args)
        except Exception as e:
            self._fail(result, queue_id, _as_queue_error(action, e))
            return
        pending.add_done_callback(on_done)

    def _store(self, queue_id: str, items: List[QueueItem]) -> bool:
        with self._lock:
            if queue_id != self._queue_id:
                stored = False
            else:
                stored = True
                self._items = list(items)
                self._last_error = None
        if not stored:
            logger.debug("Ignoring items of untracked queue %s", queue_id)
            return False
        self._event_bus.publish_sync(EventType.QUEUE_CHANGED, (queue_id, list(items)))
        return True

    def _fail(self, result: concurrent.futures.Future, queue_id: str, error: QueueError) -> None:
        logger.error("%s (queue %s)", error, queue_id)
        with self._lock:
            if queue_id == self._queue_id:
                self._last_error = error
        if not result.done():
            result.set_exception(error)
        self._event_bus.publish_sync(EventType.QUEUE_COMMAND_FAILED, (queue_id, error))


def _copy_outcome(source: concurrent.futures.Future, target: concurrent.futures.Future) -> None:
    if target.done():
        return
    error = _future_error(source)
    if error is None:
        target.set_result(source.result())
    else:
        target.set_exception(error)


def _future_error(future: concurrent.futures.Future) -> Optional[BaseException]:
    if future.cancelled():
        return concurrent.futures.CancelledError()
    return future.exception()


def _as_queue_error(action: str, error: BaseException) -> QueueError:
    if isinstance(error, QueueError):
        return error
    return QueueError(action, str(error) or type(error).__name__)
