# -*- coding: utf-8 -*-
"""
Scheduler Module

Delayed callbacks for debounce windows, confirmation timeouts and reconnect
backoff. Services depend on the IScheduler protocol so tests can drive a
virtual clock instead of sleeping.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Protocol, Set, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class IScheduledCall(Protocol):
    """Handle of a scheduled callback"""

    def cancel(self) -> None:
        """Prevent the callback from running if it has not started"""
        ...


@runtime_checkable
class IScheduler(Protocol):
    """Delayed callback scheduler"""

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> IScheduledCall:
        """Run `callback(*args)` after `delay` seconds

        Returns:
            A handle whose cancel() prevents the call.
        """
        ...


class ThreadingScheduler:
    """
    Scheduler backed by threading.Timer

    Each call runs on its own daemon timer thread; callers must guard shared
    state with their own locks.
    """

    def __init__(self, name: str = "Scheduler"):
        self._name = name
        self._lock = threading.Lock()
        self._timers: Set[threading.Timer] = set()
        self._closed = False

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> threading.Timer:
        timer: threading.Timer

        def run() -> None:
            with self._lock:
                self._timers.discard(timer)
            try:
                callback(*args)
            except Exception as e:
                logger.error("Scheduled callback failed: %s", e)

        timer = threading.Timer(max(0.0, delay), run)
        timer.daemon = True
        timer.name = f"{self._name}-{id(timer):x}"
        with self._lock:
            if self._closed:
                raise RuntimeError("Scheduler is shut down")
            self._timers.add(timer)
        timer.start()
        return timer

    def shutdown(self) -> None:
        """Cancel every pending call"""
        with self._lock:
            self._closed = True
            timers = list(self._timers)
            self._timers.clear()
        for timer in timers:
            timer.cancel()
