"""
Fakes of the client core collaborators

ManualScheduler is a virtual clock: nothing runs until a test calls
advance(). FakeTransport and FakeLibraryQuery record every request and hand
back futures the test controls.
"""

from __future__ import annotations

import uuid
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from models.errors import CommandError
from models.library import LibraryCategory, LibraryFilter, LibrarySortOption, PageResult
from models.playback import PlaybackSnapshot, PlaybackStatus


class _ScheduledCall:
    def __init__(self, due: float, order: int, callback: Callable[..., Any], args: tuple):
        self.due = due
        self.order = order
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Scheduler driven by advance(seconds)"""

    def __init__(self):
        self.now = 0.0
        self._calls: List[_ScheduledCall] = []
        self._order = 0

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> _ScheduledCall:
        self._order += 1
        call = _ScheduledCall(self.now + max(0.0, delay), self._order, callback, args)
        self._calls.append(call)
        return call

    @property
    def pending(self) -> int:
        return sum(1 for call in self._calls if not call.cancelled)

    def advance(self, seconds: float) -> None:
        """Move the clock forward, running due callbacks in time order"""
        target = self.now + seconds
        while True:
            due = [c for c in self._calls if not c.cancelled and c.due <= target + 1e-9]
            if not due:
                break
            call = min(due, key=lambda c: (c.due, c.order))
            self._calls.remove(call)
            self.now = max(self.now, call.due)
            call.callback(*call.args)
        self._calls = [c for c in self._calls if not c.cancelled]
        self.now = target


@dataclass
class SentCommand:
    name: str
    args: Dict[str, Any]
    future: Future


class FakeTransport:
    """
    Transport double

    Commands are acknowledged immediately unless `auto_ack` is False, in
    which case the test resolves `commands[i].future` itself.
    """

    def __init__(self, auto_ack: bool = True, auto_connect: bool = True):
        self.auto_ack = auto_ack
        self.auto_connect = auto_connect
        self.fail_commands = False
        self.connect_error: Optional[Exception] = None
        self.commands: List[SentCommand] = []
        self.connect_futures: List[Future] = []
        self.disconnect_calls = 0
        self._subscribers: Dict[str, Callable[[Any], None]] = {}

    def connect(self) -> Future:
        future: Future = Future()
        self.connect_futures.append(future)
        if self.connect_error is not None:
            future.set_exception(self.connect_error)
        elif self.auto_connect:
            future.set_result(None)
        return future

    def disconnect(self) -> None:
        self.disconnect_calls += 1

    def send_command(self, name: str, args: Dict[str, Any]) -> Future:
        future: Future = Future()
        self.commands.append(SentCommand(name, dict(args), future))
        if self.fail_commands:
            future.set_exception(CommandError(name, "rejected by server"))
        elif self.auto_ack:
            future.set_result({})
        return future

    def subscribe(self, callback: Callable[[Any], None]) -> str:
        subscription_id = str(uuid.uuid4())
        self._subscribers[subscription_id] = callback
        return subscription_id

    def unsubscribe(self, subscription_id: str) -> bool:
        return self._subscribers.pop(subscription_id, None) is not None

    def push(self, event: Any) -> None:
        for callback in list(self._subscribers.values()):
            callback(event)

    def sent(self, name: str) -> List[SentCommand]:
        return [c for c in self.commands if c.name == name]


@dataclass
class PageRequest:
    category: LibraryCategory
    sort: LibrarySortOption
    filter: LibraryFilter
    search: str
    offset: int
    page_size: int
    future: Future = field(default_factory=Future)


class FakeLibraryQuery:
    """Library query double; pages stay pending until complete() or fail()"""

    def __init__(self):
        self.requests: List[PageRequest] = []

    def fetch_page(self, category, sort, filter, search, offset, page_size) -> Future:
        request = PageRequest(category, sort, filter, search, offset, page_size)
        self.requests.append(request)
        return request.future

    def complete(self, index: int, items: List[Any], total_known: bool = False) -> None:
        self.requests[index].future.set_result(PageResult(list(items), total_known))

    def fail(self, index: int, error: Exception) -> None:
        self.requests[index].future.set_exception(error)


def make_snapshot(
    track_id: Optional[str] = "track-x",
    player_id: str = "kitchen",
    **overrides: Any,
) -> PlaybackSnapshot:
    values: Dict[str, Any] = dict(
        player_id=player_id,
        track_id=track_id,
        title=f"Title of {track_id}",
        artist="Artist",
        album="Album",
        duration=240.0,
        position=10.0,
        status=PlaybackStatus.PLAYING,
        volume=50.0,
    )
    values.update(overrides)
    return PlaybackSnapshot(**values)
