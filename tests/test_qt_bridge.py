"""
Qt View Bridge Tests
"""

import pytest


@pytest.fixture
def bridge(qapp, event_bus):
    from ui.qt_bridge import QtViewBridge

    bridge = QtViewBridge(event_bus)
    yield bridge
    bridge.detach()


class TestQtViewBridge:
    """Core events re-emitted as Qt signals"""

    def test_now_playing_signal(self, bridge, event_bus):
        from core.event_bus import EventType
        from fakes import make_snapshot

        received = []
        bridge.now_playing_changed.connect(lambda player_id, view: received.append((player_id, view)))
        view = make_snapshot()

        event_bus.publish_sync(EventType.NOW_PLAYING_CHANGED, ("kitchen", view))

        assert received == [("kitchen", view)]

    def test_edit_failed_signal(self, bridge, event_bus):
        from core.event_bus import EventType
        from models.errors import CommandError
        from models.playback import PlaybackField

        received = []
        bridge.edit_failed.connect(lambda *args: received.append(args))
        error = CommandError("set volume", "timeout")

        event_bus.publish_sync(EventType.EDIT_FAILED, ("kitchen", PlaybackField.VOLUME, error))

        assert received == [("kitchen", PlaybackField.VOLUME, error)]

    def test_connection_and_library_signals(self, bridge, event_bus):
        from core.event_bus import EventType
        from models.connection import ConnectionState
        from models.library import LibraryCategory

        states = []
        resets = []
        pages = []
        bridge.connection_state_changed.connect(states.append)
        bridge.library_reset.connect(resets.append)
        bridge.library_page_loaded.connect(lambda category, items: pages.append((category, items)))

        event_bus.publish_sync(EventType.CONNECTION_STATE_CHANGED, ConnectionState.error("refused"))
        event_bus.publish_sync(EventType.LIBRARY_RESET, LibraryCategory.ALBUMS)
        event_bus.publish_sync(EventType.LIBRARY_PAGE_LOADED, (LibraryCategory.ALBUMS, ("a", "b")))

        assert states == [ConnectionState.error("refused")]
        assert resets == [LibraryCategory.ALBUMS]
        assert pages == [(LibraryCategory.ALBUMS, ["a", "b"])]

    def test_artwork_signals(self, bridge, event_bus):
        from core.event_bus import EventType

        cached = []
        cleared = []
        bridge.artwork_cached.connect(cached.append)
        bridge.artwork_cleared.connect(lambda: cleared.append(True))

        event_bus.publish_sync(EventType.ARTWORK_CACHED, "http://server/a.png")
        event_bus.publish_sync(EventType.ARTWORK_CLEARED, 4)

        assert cached == ["http://server/a.png"]
        assert cleared == [True]

    def test_queue_signals(self, bridge, event_bus):
        from core.event_bus import EventType
        from models.errors import QueueError

        changes = []
        failures = []
        bridge.queue_changed.connect(lambda queue_id, items: changes.append((queue_id, items)))
        bridge.queue_command_failed.connect(lambda queue_id, error: failures.append((queue_id, error)))
        error = QueueError("clear queue", "offline")

        event_bus.publish_sync(EventType.QUEUE_CHANGED, ("kitchen", ("a",)))
        event_bus.publish_sync(EventType.QUEUE_COMMAND_FAILED, ("kitchen", error))

        assert changes == [("kitchen", ["a"])]
        assert failures == [("kitchen", error)]

    def test_detach_stops_forwarding(self, bridge, event_bus):
        from core.event_bus import EventType

        cached = []
        bridge.artwork_cached.connect(cached.append)

        bridge.detach()
        event_bus.publish_sync(EventType.ARTWORK_CACHED, "key")

        assert cached == []
        assert event_bus.subscriber_count(EventType.ARTWORK_CACHED) == 0
