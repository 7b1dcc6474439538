"""
Connection Lifecycle Module

Tracks the server connection state and gates remote operations on it.

    Disconnected --connect--> Connecting --success--> Connected
    Connecting --failure--> Error --connect--> Connecting
    Connected --drop--> Reconnecting --success--> Connected
    Reconnecting --retries exhausted--> Error
    any --disconnect--> Disconnected

Error never clears by itself; only an explicit connect leaves it.
"""

from __future__ import annotations

import concurrent.futures
import logging
import threading
from enum import Enum
from typing import Callable, Dict, Optional, Tuple

from core.event_bus import EventBus, EventType
from core.scheduler import IScheduler, ThreadingScheduler
from core.ports.transport import ITransport
from models.connection import ConnectionState, ConnectionStatus, ConnectivityEvent
from models.errors import NotConnectedError, ServerConnectionError

logger = logging.getLogger(__name__)


class ConnectionEvent(Enum):
    """Inputs of the connection state machine"""
    CONNECT_REQUESTED = "connect_requested"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TRANSPORT_DROPPED = "transport_dropped"
    RETRIES_EXHAUSTED = "retries_exhausted"
    DISCONNECT = "disconnect"


_TRANSITIONS: Dict[Tuple[ConnectionStatus, ConnectionEvent], ConnectionStatus] = {
    (ConnectionStatus.DISCONNECTED, ConnectionEvent.CONNECT_REQUESTED): ConnectionStatus.CONNECTING,
    (ConnectionStatus.CONNECTING, ConnectionEvent.SUCCEEDED): ConnectionStatus.CONNECTED,
    (ConnectionStatus.CONNECTING, ConnectionEvent.FAILED): ConnectionStatus.ERROR,
    (ConnectionStatus.CONNECTED, ConnectionEvent.TRANSPORT_DROPPED): ConnectionStatus.RECONNECTING,
    (ConnectionStatus.RECONNECTING, ConnectionEvent.SUCCEEDED): ConnectionStatus.CONNECTED,
    (ConnectionStatus.RECONNECTING, ConnectionEvent.RETRIES_EXHAUSTED): ConnectionStatus.ERROR,
    (ConnectionStatus.ERROR, ConnectionEvent.CONNECT_REQUESTED): ConnectionStatus.CONNECTING,
}


class ConnectionLifecycle:
    """
    Connection Lifecycle

    Owns the single ConnectionState instance of the client. The playback and
    library services call require_connected() before any remote operation.

    Example:
        lifecycle = ConnectionLifecycle(transport, event_bus)
        lifecycle.connect().result(timeout=10)

        if lifecycle.is_connected:
            ...
    """

    def __init__(
        self,
        transport: Optional[ITransport] = None,
        event_bus: Optional[EventBus] = None,
        scheduler: Optional[IScheduler] = None,
        max_reconnect_attempts: int = 5,
        reconnect_delay: float = 2.0,
    ):
        self._transport = transport
        self._event_bus = event_bus or EventBus()
        self._scheduler = scheduler or ThreadingScheduler("Reconnect")
        self._max_reconnect_attempts = max(0, int(max_reconnect_attempts))
        self._reconnect_delay = max(0.0, float(reconnect_delay))

        self._lock = threading.RLock()
        self._state = ConnectionState.disconnected()
        # Bumped by disconnect() so in-flight connect/reconnect attempts are ignored
        self._attempt_generation = 0
        self._connect_future: Optional[concurrent.futures.Future] = None

    @property
    def state(self) -> ConnectionState:
        with self._lock:
            return self._state

    @property
    def is_connected(self) -> bool:
        return self.state.is_connected

    def require_connected(self) -> None:
        """Raise NotConnectedError unless the state is Connected"""
        state = self.state
        if not state.is_connected:
            raise NotConnectedError(state)

    def subscribe(self, callback: Callable[[ConnectionState], None]) -> str:
        """Receive every new ConnectionState"""
        return self._event_bus.subscribe(EventType.CONNECTION_STATE_CHANGED, callback)

    def unsubscribe(self, subscription_id: str) -> bool:
        return self._event_bus.unsubscribe(subscription_id)

    # ===== State machine =====

    def fire(self, event: ConnectionEvent, message: Optional[str] = None) -> bool:
        """
        Apply an event to the state machine.

        Args:
            event: The connection event
            message: Error cause for FAILED / RETRIES_EXHAUSTED

        Returns:
            bool: False if the event is not valid in the current state
        """
        with self._lock:
            previous = self._state
            if event == ConnectionEvent.DISCONNECT:
                target = ConnectionStatus.DISCONNECTED
            else:
                target = _TRANSITIONS.get((previous.status, event))
                if target is None:
                    logger.warning(
                        "Rejected connection event %s in state %s",
                        event.value, previous.status.value,
                    )
                    return False

            if target == ConnectionStatus.ERROR:
                new_state = ConnectionState.error(message or "Connection failed")
            else:
                new_state = ConnectionState(target)
            self._state = new_state

        if new_state != previous:
            logger.info("Connection state: %s -> %s", previous.display_text, new_state.display_text)
            self._event_bus.publish_sync(EventType.CONNECTION_STATE_CHANGED, new_state)
        return True

    # ===== Driving the transport =====

    def connect(self) -> "concurrent.futures.Future[ConnectionState]":
        """
        Explicit connect attempt (from Disconnected or Error).

        Returns:
            Future resolving with the Connected state, or failing with
            ServerConnectionError. While already connecting, the in-flight
            attempt's future is returned. When already connected, a completed
            future holding the current state is returned. While the reconnect
            loop is running, the future fails with ServerConnectionError.
        """
        with self._lock:
            status = self._state.status
            if status == ConnectionStatus.CONNECTING and self._connect_future is not None:
                return self._connect_future
            if status == ConnectionStatus.CONNECTED:
                done: concurrent.futures.Future = concurrent.futures.Future()
                done.set_result(self._state)
                return done
            if not self.fire(ConnectionEvent.CONNECT_REQUESTED):
                rejected: concurrent.futures.Future = concurrent.futures.Future()
                rejected.set_exception(
                    ServerConnectionError(f"Cannot connect while {self._state.display_text}")
                )
                return rejected
            generation = self._attempt_generation
            result: concurrent.futures.Future = concurrent.futures.Future()
            self._connect_future = result

        if self._transport is None:
            self._finish_connect(result, generation, ServerConnectionError("No transport configured"))
            return result

        try:
            pending = self._transport.connect()
        except Exception as e:
            self._finish_connect(result, generation, e)
            return result

        pending.add_done_callback(
            lambda f: self._finish_connect(result, generation, f.exception())
        )
        return result

    def _finish_connect(
        self,
        result: concurrent.futures.Future,
        generation: int,
        error: Optional[BaseException],
    ) -> None:
        with self._lock:
            if self._connect_future is result:
                self._connect_future = None
            stale = generation != self._attempt_generation

        if stale:
            logger.debug("Ignoring result of an abandoned connect attempt")
            result.set_result(self.state)
            return

        if error is not None:
            logger.error("Connect failed: %s", error)
            self.fire(ConnectionEvent.FAILED, str(error) or type(error).__name__)
            if isinstance(error, ServerConnectionError):
                result.set_exception(error)
            else:
                result.set_exception(ServerConnectionError(str(error)))
            return

        self.fire(ConnectionEvent.SUCCEEDED)
        result.set_result(self.state)

    def disconnect(self) -> None:
        """Explicit disconnect; abandons connect and reconnect attempts"""
        with self._lock:
            self._attempt_generation += 1
        self.fire(ConnectionEvent.DISCONNECT)
        if self._transport is not None:
            try:
                self._transport.disconnect()
            except Exception as e:
                logger.warning("Transport disconnect failed: %s", e)

    def handle_connectivity_event(self, event: ConnectivityEvent) -> None:
        """Feed a connectivity change reported by the transport"""
        if event == ConnectivityEvent.CONNECTED:
            status = self.state.status
            if status in (ConnectionStatus.CONNECTING, ConnectionStatus.RECONNECTING):
                self.fire(ConnectionEvent.SUCCEEDED)
        else:
            self.handle_transport_drop()

    def handle_transport_drop(self) -> None:
        """Connected -> Reconnecting, then retry with linear backoff"""
        if not self.fire(ConnectionEvent.TRANSPORT_DROPPED):
            return
        with self._lock:
            self._attempt_generation += 1
            generation = self._attempt_generation
        if self._max_reconnect_attempts == 0:
            self.fire(ConnectionEvent.RETRIES_EXHAUSTED, "Connection lost")
            return
        self._scheduler.call_later(self._reconnect_delay, self._attempt_reconnect, 1, generation)

    def _attempt_reconnect(self, attempt: int, generation: int) -> None:
        with self._lock:
            if generation != self._attempt_generation:
                return
            if self._state.status != ConnectionStatus.RECONNECTING:
                return

        logger.info("Reconnect attempt %d/%d", attempt, self._max_reconnect_attempts)
        if self._transport is None:
            self._on_reconnect_done(attempt, generation, ServerConnectionError("No transport configured"))
            return
        try:
            pending = self._transport.connect()
        except Exception as e:
            self._on_reconnect_done(attempt, generation, e)
            return
        pending.add_done_callback(
            lambda f: self._on_reconnect_done(attempt, generation, f.exception())
        )

    def _on_reconnect_done(self, attempt: int, generation: int, error: Optional[BaseException]) -> None:
        with self._lock:
            if generation != self._attempt_generation:
                return

        if error is None:
            self.fire(ConnectionEvent.SUCCEEDED)
            return

        logger.warning("Reconnect attempt %d failed: %s", attempt, error)
        if attempt >= self._max_reconnect_attempts:
            self.fire(
                ConnectionEvent.RETRIES_EXHAUSTED,
                f"Reconnect failed after {attempt} attempts: {error}",
            )
            return
        self._scheduler.call_later(
            self._reconnect_delay * (attempt + 1),
            self._attempt_reconnect, attempt + 1, generation,
        )
