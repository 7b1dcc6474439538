"""
Playback Reconciler Module

Keeps the local now-playing view of one player consistent with the server
while the user changes volume, position, shuffle, repeat and favorite
before the server has confirmed anything.
"""

from __future__ import annotations

import concurrent.futures
import logging
import math
import threading
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional, Tuple

from core.event_bus import EventBus, EventType
from core.scheduler import IScheduledCall, IScheduler, ThreadingScheduler
from core.ports.transport import ITransport
from models.errors import CommandError, NotConnectedError
from models.playback import (
    EditOutcome,
    OptimisticEdit,
    PlaybackField,
    PlaybackSnapshot,
    RepeatMode,
)
from services.connection_lifecycle import ConnectionLifecycle

logger = logging.getLogger(__name__)


# Human readable command names, used in CommandError messages
_FIELD_ACTIONS = {
    PlaybackField.VOLUME: "set volume",
    PlaybackField.POSITION: "seek",
    PlaybackField.SHUFFLE: "set shuffle",
    PlaybackField.REPEAT: "set repeat mode",
    PlaybackField.FAVORITE: "update favorite",
}

_PLAYER_COMMANDS = {
    "play": "players/cmd/play",
    "pause": "players/cmd/pause",
    "stop": "players/cmd/stop",
    "play_pause": "players/cmd/play_pause",
    "skip next": "players/cmd/next",
    "skip previous": "players/cmd/previous",
}


class PlaybackReconciler:
    """
    Playback Reconciler

    Owns the merged view of one playback target: the last server snapshot
    with the user's pending edits laid over it.

    - Volume and seek edits are debounced (300 ms / 500 ms by default); only
      the last value in a window is sent.
    - Shuffle, repeat and favorite are sent immediately.
    - A pending field keeps its optimistic value until a snapshot reports
      the same value, a newer edit replaces it, or the track changes.
    - A failed dispatch rolls the field back to the snapshot value and fails
      the edit's future with CommandError.

    Example:
        reconciler = PlaybackReconciler("kitchen", transport, lifecycle)
        reconciler.subscribe(lambda view: print(view.volume))

        future = reconciler.set_volume(55)
        future.result()  # EditOutcome.DISPATCHED
    """

    def __init__(
        self,
        player_id: str,
        transport: ITransport,
        lifecycle: ConnectionLifecycle,
        event_bus: Optional[EventBus] = None,
        scheduler: Optional[IScheduler] = None,
        volume_window: float = 0.3,
        seek_window: float = 0.5,
        confirmation_timeout: float = 5.0,
        seek_tolerance: float = 2.0,
    ):
        self._player_id = player_id
        self._transport = transport
        self._lifecycle = lifecycle
        self._event_bus = event_bus or EventBus()
        self._scheduler = scheduler or ThreadingScheduler(f"Playback-{player_id}")
        self._windows: Dict[PlaybackField, float] = {
            PlaybackField.VOLUME: volume_window,
            PlaybackField.POSITION: seek_window,
        }
        self._confirmation_timeout = confirmation_timeout
        self._seek_tolerance = seek_tolerance

        self._lock = threading.RLock()
        self._snapshot = PlaybackSnapshot(player_id=player_id)
        self._has_snapshot = False
        self._view = self._snapshot
        self._pending: Dict[PlaybackField, OptimisticEdit] = {}
        self._sequence: Dict[PlaybackField, int] = {f: 0 for f in PlaybackField}
        self._timers: Dict[PlaybackField, IScheduledCall] = {}
        self._subscriptions: List[str] = []
        self._closed = False

    @classmethod
    def from_config(
        cls,
        player_id: str,
        transport: ITransport,
        lifecycle: ConnectionLifecycle,
        config,
        event_bus: Optional[EventBus] = None,
        scheduler: Optional[IScheduler] = None,
    ) -> "PlaybackReconciler":
        """Create a reconciler with the windows from the configuration service."""
        return cls(
            player_id,
            transport,
            lifecycle,
            event_bus=event_bus,
            scheduler=scheduler,
            volume_window=float(config.get("playback.volume_debounce_ms", 300)) / 1000.0,
            seek_window=float(config.get("playback.seek_debounce_ms", 500)) / 1000.0,
            confirmation_timeout=float(config.get("playback.confirmation_timeout_ms", 5000)) / 1000.0,
            seek_tolerance=float(config.get("playback.seek_tolerance_seconds", 2.0)),
        )

    # =========================================================================
    # Read access
    # =========================================================================

    @property
    def player_id(self) -> str:
        return self._player_id

    @property
    def view(self) -> PlaybackSnapshot:
        """Merged view: snapshot plus pending optimistic values"""
        with self._lock:
            return self._view

    @property
    def snapshot(self) -> Optional[PlaybackSnapshot]:
        """Last snapshot received from the server"""
        with self._lock:
            return self._snapshot if self._has_snapshot else None

    def pending_fields(self) -> List[PlaybackField]:
        with self._lock:
            return list(self._pending.keys())

    def subscribe(self, callback: Callable[[PlaybackSnapshot], None]) -> str:
        """Receive the merged view every time it changes"""
        def on_change(data: Tuple[str, PlaybackSnapshot]) -> None:
            player_id, view = data
            if player_id == self._player_id:
                callback(view)

        subscription_id = self._event_bus.subscribe(EventType.NOW_PLAYING_CHANGED, on_change)
        with self._lock:
            self._subscriptions.append(subscription_id)
        return subscription_id

    def unsubscribe(self, subscription_id: str) -> bool:
        with self._lock:
            if subscription_id in self._subscriptions:
                self._subscriptions.remove(subscription_id)
        return self._event_bus.unsubscribe(subscription_id)

    # =========================================================================
    # Optimistic edits
    # =========================================================================

    def submit_edit(
        self,
        field: PlaybackField,
        value: Any,
        target_track_id: Optional[str],
    ) -> "concurrent.futures.Future[EditOutcome]":
        """
        Apply an edit to the view now and schedule its dispatch.

        Args:
            field: Field being edited
            value: New value
            target_track_id: Track the user was looking at when editing

        Returns:
            Future resolving with an EditOutcome, or failing with
            CommandError / NotConnectedError when the dispatch fails

        Raises:
            NotConnectedError: the connection is not established
            ValueError: the value is invalid for the field, or a favorite
                edit has no target track
        """
        self._lifecycle.require_connected()
        value = self._normalize(field, value)
        if field == PlaybackField.FAVORITE and target_track_id is None:
            raise ValueError("Cannot change favorite without a current track")

        superseded: Optional[OptimisticEdit] = None
        with self._lock:
            if self._closed:
                raise RuntimeError(f"Reconciler for {self._player_id} is closed")

            self._sequence[field] += 1
            edit = OptimisticEdit(field, value, target_track_id, self._sequence[field])

            prior = self._pending.get(field)
            if prior is not None:
                self._cancel_timer(field)
                if not prior.dispatched:
                    superseded = prior
            self._pending[field] = edit
            view = self._rebuild_view()

            window = self._windows.get(field, 0.0)
            if window > 0:
                self._timers[field] = self._scheduler.call_later(
                    window, self._flush, field, edit.sequence
                )

        if superseded is not None:
            logger.debug("%s edit %d superseded by %d", field.value, superseded.sequence, edit.sequence)
            superseded.resolve(EditOutcome.SUPERSEDED)
        if view is not None:
            self._publish_view(view)
        if window <= 0:
            self._flush(field, edit.sequence)
        return edit.future

    def set_volume(self, volume: float) -> "concurrent.futures.Future[EditOutcome]":
        """Set volume (0 - 100)"""
        return self.submit_edit(PlaybackField.VOLUME, volume, self.view.track_id)

    def seek(self, position: float) -> "concurrent.futures.Future[EditOutcome]":
        """Seek to a position in seconds"""
        return self.submit_edit(PlaybackField.POSITION, position, self.view.track_id)

    def set_shuffle(self, enabled: bool) -> "concurrent.futures.Future[EditOutcome]":
        return self.submit_edit(PlaybackField.SHUFFLE, enabled, self.view.track_id)

    def set_repeat(self, mode: RepeatMode) -> "concurrent.futures.Future[EditOutcome]":
        return self.submit_edit(PlaybackField.REPEAT, mode, self.view.track_id)

    def cycle_repeat_mode(self) -> "concurrent.futures.Future[EditOutcome]":
        """off -> all -> one -> off"""
        view = self.view
        return self.submit_edit(PlaybackField.REPEAT, view.repeat.next(), view.track_id)

    def toggle_favorite(self) -> "concurrent.futures.Future[EditOutcome]":
        view = self.view
        return self.submit_edit(PlaybackField.FAVORITE, not view.favorite, view.track_id)

    # =========================================================================
    # Snapshots
    # =========================================================================

    def apply_snapshot(self, snapshot: PlaybackSnapshot) -> bool:
        """
        Replace the canonical snapshot and re-merge pending edits.

        Applying the same snapshot twice leaves the view unchanged.

        Returns:
            bool: True if the merged view changed
        """
        if snapshot.player_id and snapshot.player_id != self._player_id:
            logger.debug("Ignoring snapshot for player %s", snapshot.player_id)
            return False
        if not snapshot.player_id:
            snapshot = replace(snapshot, player_id=self._player_id)

        dropped: List[OptimisticEdit] = []
        confirmed: List[OptimisticEdit] = []
        with self._lock:
            previous = self._snapshot if self._has_snapshot else None
            self._snapshot = snapshot
            self._has_snapshot = True

            track_changed = previous is not None and previous.track_id != snapshot.track_id
            if track_changed:
                logger.info(
                    "Track changed on %s: %s -> %s",
                    self._player_id, previous.track_id, snapshot.track_id,
                )

            for field, edit in list(self._pending.items()):
                if track_changed or edit.target_track_id != snapshot.track_id:
                    del self._pending[field]
                    self._cancel_timer(field)
                    dropped.append(edit)
                elif self._confirms(field, snapshot, edit):
                    del self._pending[field]
                    self._cancel_timer(field)
                    confirmed.append(edit)

            view = self._rebuild_view()

        for edit in dropped:
            logger.debug("Dropping %s edit %d: track changed", edit.field.value, edit.sequence)
            edit.resolve(EditOutcome.DROPPED)
        for edit in confirmed:
            edit.resolve(EditOutcome.CONFIRMED)
        if view is not None:
            self._publish_view(view)
        return view is not None

    # =========================================================================
    # Plain player commands
    # =========================================================================

    def play(self) -> concurrent.futures.Future:
        return self._send_player_command("play")

    def pause(self) -> concurrent.futures.Future:
        return self._send_player_command("pause")

    def stop(self) -> concurrent.futures.Future:
        return self._send_player_command("stop")

    def toggle_play(self) -> concurrent.futures.Future:
        return self._send_player_command("play_pause")

    def next_track(self) -> concurrent.futures.Future:
        return self._send_player_command("skip next")

    def previous_track(self) -> concurrent.futures.Future:
        return self._send_player_command("skip previous")

    def _send_player_command(self, action: str) -> concurrent.futures.Future:
        """Send a non-optimistic command; failures surface as CommandError"""
        self._lifecycle.require_connected()
        result: concurrent.futures.Future = concurrent.futures.Future()

        def on_done(f: concurrent.futures.Future) -> None:
            error = _future_error(f)
            if error is None:
                result.set_result(f.result())
                return
            logger.error("Player command %s failed on %s: %s", action, self._player_id, error)
            result.set_exception(_as_command_error(action, error))

        try:
            pending = self._transport.send_command(
                _PLAYER_COMMANDS[action], {"player_id": self._player_id}
            )
        except Exception as e:
            result.set_exception(_as_command_error(action, e))
            return result
        pending.add_done_callback(on_done)
        return result

    # =========================================================================
    # Dispatch
    # =========================================================================

    def _flush(self, field: PlaybackField, sequence: int) -> None:
        """Window elapsed (or immediate field): dispatch the latest edit"""
        drop_reason: Optional[str] = None
        not_connected: Optional[NotConnectedError] = None
        view: Optional[PlaybackSnapshot] = None
        with self._lock:
            edit = self._pending.get(field)
            if edit is None or edit.sequence != sequence or edit.dispatched:
                return
            self._timers.pop(field, None)

            if edit.target_track_id != self._snapshot.track_id:
                drop_reason = "target track is no longer current"
            elif not self._lifecycle.is_connected:
                not_connected = NotConnectedError(self._lifecycle.state)

            if drop_reason or not_connected:
                del self._pending[field]
                view = self._rebuild_view()
            else:
                edit.dispatched = True
                name, args = self._build_command(edit)

        if drop_reason:
            logger.debug("Dropping %s edit %d: %s", field.value, sequence, drop_reason)
            edit.resolve(EditOutcome.DROPPED)
            if view is not None:
                self._publish_view(view)
            return
        if not_connected is not None:
            self._report_failure(edit, not_connected, view)
            return

        logger.debug("Dispatching %s=%r to %s", field.value, edit.value, self._player_id)
        try:
            pending = self._transport.send_command(name, args)
        except Exception as e:
            self._on_dispatch_done(edit, error=e)
            return
        pending.add_done_callback(lambda f: self._on_dispatch_done(edit, error=_future_error(f)))

    def _on_dispatch_done(self, edit: OptimisticEdit, error: Optional[BaseException]) -> None:
        if error is not None:
            view = None
            with self._lock:
                if self._pending.get(edit.field) is edit:
                    del self._pending[edit.field]
                    self._cancel_timer(edit.field)
                    view = self._rebuild_view()
            self._report_failure(edit, _as_command_error(_FIELD_ACTIONS[edit.field], error), view)
            return

        with self._lock:
            if (
                self._pending.get(edit.field) is edit
                and self._confirmation_timeout > 0
                and not self._closed
            ):
                self._timers[edit.field] = self._scheduler.call_later(
                    self._confirmation_timeout, self._expire, edit.field, edit.sequence
                )
        edit.resolve(EditOutcome.DISPATCHED)
        self._event_bus.publish_sync(
            EventType.EDIT_DISPATCHED, (self._player_id, edit.field, edit.value)
        )

    def _report_failure(
        self,
        edit: OptimisticEdit,
        error: Exception,
        view: Optional[PlaybackSnapshot],
    ) -> None:
        logger.error("%s edit failed on %s: %s", edit.field.value, self._player_id, error)
        if view is not None:
            self._publish_view(view)
        edit.fail(error)
        self._event_bus.publish_sync(EventType.EDIT_FAILED, (self._player_id, edit.field, error))

    def _expire(self, field: PlaybackField, sequence: int) -> None:
        """An acknowledged edit was never echoed back; fall back to the snapshot"""
        with self._lock:
            edit = self._pending.get(field)
            if edit is None or edit.sequence != sequence:
                return
            self._timers.pop(field, None)
            del self._pending[field]
            view = self._rebuild_view()
        logger.warning("%s edit %d was not confirmed by the server", field.value, sequence)
        if view is not None:
            self._publish_view(view)

    def _build_command(self, edit: OptimisticEdit) -> Tuple[str, Dict[str, Any]]:
        field = edit.field
        if field == PlaybackField.VOLUME:
            return "players/cmd/volume_set", {
                "player_id": self._player_id,
                "volume_level": int(round(edit.value)),
            }
        if field == PlaybackField.POSITION:
            return "players/cmd/seek", {"player_id": self._player_id, "position": int(edit.value)}
        if field == PlaybackField.SHUFFLE:
            return "player_queues/shuffle", {"queue_id": self._player_id, "shuffle_enabled": edit.value}
        if field == PlaybackField.REPEAT:
            return "player_queues/repeat", {"queue_id": self._player_id, "repeat_mode": edit.value.value}
        name = "music/favorites/add_item" if edit.value else "music/favorites/remove_item"
        return name, {"item": edit.target_track_id}

    # =========================================================================
    # Helpers (call with the lock held unless noted)
    # =========================================================================

    def _rebuild_view(self) -> Optional[PlaybackSnapshot]:
        """Recompute the merged view; return it only if it changed"""
        view = self._snapshot
        for field, edit in self._pending.items():
            view = view.with_field(field, edit.value)
        if view == self._view:
            return None
        self._view = view
        return view

    def _cancel_timer(self, field: PlaybackField) -> None:
        timer = self._timers.pop(field, None)
        if timer is not None:
            timer.cancel()

    def _confirms(self, field: PlaybackField, snapshot: PlaybackSnapshot, edit: OptimisticEdit) -> bool:
        # Playback moves the position on its own, so an unsent seek is never
        # confirmed by a snapshot that merely drifted into tolerance.
        if field == PlaybackField.POSITION and not edit.dispatched:
            return False
        return self._matches(field, snapshot.value_of(field), edit.value)

    def _matches(self, field: PlaybackField, server_value: Any, local_value: Any) -> bool:
        if field == PlaybackField.POSITION:
            return abs(float(server_value) - float(local_value)) <= self._seek_tolerance
        if field == PlaybackField.VOLUME:
            return math.isclose(float(server_value), float(local_value), abs_tol=0.5)
        return server_value == local_value

    @staticmethod
    def _normalize(field: PlaybackField, value: Any) -> Any:
        if field in (PlaybackField.VOLUME, PlaybackField.POSITION):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"{field.value} must be a number, got {value!r}")
            value = float(value)
            if field == PlaybackField.VOLUME and not 0.0 <= value <= 100.0:
                raise ValueError(f"Volume must be between 0 and 100, got {value}")
            if field == PlaybackField.POSITION and value < 0:
                raise ValueError(f"Position must not be negative, got {value}")
            return value
        if field == PlaybackField.REPEAT:
            return value if isinstance(value, RepeatMode) else RepeatMode(value)
        if not isinstance(value, bool):
            raise ValueError(f"{field.value} must be a bool, got {value!r}")
        return value

    def _publish_view(self, view: PlaybackSnapshot) -> None:
        """Notify subscribers (call without the lock)"""
        self._event_bus.publish_sync(EventType.NOW_PLAYING_CHANGED, (self._player_id, view))

    def close(self) -> None:
        """Cancel timers and drop undispatched edits"""
        with self._lock:
            self._closed = True
            pending = list(self._pending.values())
            self._pending.clear()
            for field in list(self._timers):
                self._cancel_timer(field)
            subscriptions = list(self._subscriptions)
            self._subscriptions.clear()
        for edit in pending:
            edit.resolve(EditOutcome.DROPPED)
        for subscription_id in subscriptions:
            self._event_bus.unsubscribe(subscription_id)


def _future_error(future: concurrent.futures.Future) -> Optional[BaseException]:
    if future.cancelled():
        return concurrent.futures.CancelledError()
    return future.exception()


def _as_command_error(action: str, error: BaseException) -> Exception:
    if isinstance(error, (CommandError, NotConnectedError)):
        return error
    return CommandError(action, str(error) or type(error).__name__)
