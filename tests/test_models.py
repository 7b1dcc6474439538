"""
Data Model Tests
"""

import pytest


class TestPlaybackSnapshot:
    """Decoding the player payload"""

    def test_from_player_data(self):
        from models.playback import PlaybackSnapshot, PlaybackStatus, RepeatMode

        snapshot = PlaybackSnapshot.from_player_data({
            "player_id": "kitchen",
            "state": "playing",
            "elapsed_time": 42,
            "volume_level": 35,
            "current_media": {
                "uri": "library://track/7",
                "title": "Blue in Green",
                "artist": "Miles Davis",
                "album": "Kind of Blue",
                "duration": 337,
                "image_url": "http://server/art/7.jpg",
            },
            "queue_settings": {"shuffle": True, "repeat": "all"},
        })

        assert snapshot.player_id == "kitchen"
        assert snapshot.track_id == "library://track/7"
        assert snapshot.title == "Blue in Green"
        assert snapshot.status == PlaybackStatus.PLAYING
        assert snapshot.position == 42.0
        assert snapshot.volume == 35.0
        assert snapshot.shuffle is True
        assert snapshot.repeat == RepeatMode.ALL
        assert snapshot.track.duration_str == "5:37"

    def test_defaults_for_missing_fields(self):
        from models.playback import DEFAULT_VOLUME, PlaybackSnapshot, PlaybackStatus, RepeatMode

        snapshot = PlaybackSnapshot.from_player_data({"player_id": "p", "state": "buffering"})

        assert snapshot.track_id is None
        assert snapshot.track is None
        assert snapshot.status == PlaybackStatus.STOPPED
        assert snapshot.volume == DEFAULT_VOLUME
        assert snapshot.repeat == RepeatMode.OFF
        assert snapshot.shuffle is False

    def test_top_level_settings_win(self):
        from models.playback import PlaybackSnapshot, RepeatMode

        snapshot = PlaybackSnapshot.from_player_data({
            "player_id": "p",
            "shuffle": False,
            "repeat": "one",
            "queue_settings": {"shuffle": True, "repeat": "all"},
        })

        assert snapshot.shuffle is False
        assert snapshot.repeat == RepeatMode.ONE

    def test_queue_item_media_nesting(self):
        from models.track import Track

        track = Track.from_media({"queue_item_id": "q1", "media_item": {"uri": "u1", "title": "T"}})

        assert track.id == "u1"
        assert track.title == "T"
        assert track.artist == "Unknown Artist"

    def test_with_field_returns_copy(self):
        from models.playback import PlaybackField, PlaybackSnapshot

        original = PlaybackSnapshot(player_id="p", volume=10.0)
        changed = original.with_field(PlaybackField.VOLUME, 20.0)

        assert original.volume == 10.0
        assert changed.value_of(PlaybackField.VOLUME) == 20.0

    def test_repeat_cycle(self):
        from models.playback import RepeatMode

        assert RepeatMode.OFF.next() == RepeatMode.ALL
        assert RepeatMode.ALL.next() == RepeatMode.ONE
        assert RepeatMode.ONE.next() == RepeatMode.OFF

    def test_player_from_dict(self):
        from models.playback import Player

        group = Player.from_dict({
            "player_id": "g1",
            "display_name": "Downstairs",
            "type": "group",
            "group_childs": ["a", "b"],
        })

        assert group.is_group
        assert group.group_child_ids == ("a", "b")
        assert group.name == "Downstairs"


class TestLibraryModels:
    """Categories, sort options, filters and cursors"""

    def test_api_media_type(self):
        from models.library import LibraryCategory

        assert LibraryCategory.ARTISTS.api_media_type == "artist"
        assert LibraryCategory.PLAYLISTS.api_media_type == "playlist"
        assert LibraryCategory.RADIO.api_media_type == "radio"

    def test_sort_options_per_category(self):
        from models.library import LibraryCategory, LibrarySortOption

        assert LibrarySortOption.ALBUM_COUNT.is_valid_for(LibraryCategory.ARTISTS)
        assert not LibrarySortOption.ALBUM_COUNT.is_valid_for(LibraryCategory.ALBUMS)
        assert LibrarySortOption.DURATION.is_valid_for(LibraryCategory.PLAYLISTS)
        assert LibrarySortOption.options_for(LibraryCategory.GENRES)[0] == LibrarySortOption.NAME_ASC
        assert LibrarySortOption.PLAY_COUNT.display_name == "Most Played"

    def test_filter_cache_key_and_api_args(self):
        from models.library import LibraryFilter

        assert LibraryFilter().is_empty
        assert LibraryFilter().cache_key == "default"

        library_filter = LibraryFilter(provider="spotify", year_range=(1990, 1999), favorite_only=True)
        assert library_filter.cache_key == "p:spotify_y:1990-1999_fav"
        assert library_filter.to_api_args() == {
            "provider": "spotify",
            "year_min": 1990,
            "year_max": 1999,
            "favorite": True,
        }

    def test_inverted_year_range_rejected(self):
        from models.library import LibraryFilter

        with pytest.raises(ValueError):
            LibraryFilter(year_range=(2000, 1990))

    def test_query_state_reset_bumps_generation(self):
        from models.library import LibraryCategory, LibraryQueryState, PageCursor

        state = LibraryQueryState(LibraryCategory.TRACKS, cursor=PageCursor(offset=40, page_size=20, total_known=True))
        state.items = ["x"]

        state.reset()

        assert state.generation == 1
        assert state.items == []
        assert state.cursor == PageCursor(offset=0, page_size=20, total_known=False)


class TestConnectionState:
    """Display text"""

    @pytest.mark.parametrize("status_name,text", [
        ("DISCONNECTED", "Disconnected"),
        ("CONNECTING", "Connecting..."),
        ("CONNECTED", "Connected"),
        ("RECONNECTING", "Reconnecting..."),
    ])
    def test_display_text(self, status_name, text):
        from models.connection import ConnectionState, ConnectionStatus

        assert ConnectionState(ConnectionStatus[status_name]).display_text == text

    def test_error_text(self):
        from models.connection import ConnectionState

        assert ConnectionState.error("timed out").display_text == "Error: timed out"


class TestServerConfig:
    """Host and port validation"""

    @pytest.mark.parametrize("host", ["192.168.1.10", "music.local", "nas", "my-server.home.lan"])
    def test_valid_hosts(self, host):
        from models.server_config import ServerConfig

        assert ServerConfig(host).validation_error() is None

    @pytest.mark.parametrize("host", ["", "256.1.1.1", "192.168.01.1", "1.2.3", "-bad.host", "a..b", "under_score"])
    def test_invalid_hosts(self, host):
        from models.server_config import ServerConfig

        assert ServerConfig(host).validation_error() is not None

    @pytest.mark.parametrize("port,valid", [(1, True), (65535, True), (0, False), (65536, False)])
    def test_port_range(self, port, valid):
        from models.server_config import ServerConfig

        assert (ServerConfig("nas", port).validation_error() is None) == valid

    def test_url_and_from_dict(self):
        from models.server_config import ServerConfig

        server = ServerConfig.from_dict({"host": " nas ", "port": "9000"})

        assert server == ServerConfig("nas", 9000)
        assert server.url == "ws://nas:9000/ws"
        assert ServerConfig.from_dict({"host": ""}) is None


class TestQueueModels:
    """Queue item decoding"""

    def test_items_from_list_or_wrapper(self):
        from models.queue import parse_queue_items

        raw = [{"queue_item_id": "q1", "media": {"uri": "library://track/1", "title": "One"}}]

        assert parse_queue_items(raw) == parse_queue_items({"items": raw})
        assert parse_queue_items(raw)[0].track.title == "One"
        assert parse_queue_items(None) == []

    def test_item_id_falls_back_to_uri(self):
        from models.queue import QueueItem

        item = QueueItem.from_dict({"uri": "library://track/3", "duration": 61})

        assert item.queue_item_id == "library://track/3"
        assert item.track.duration_str == "1:01"

    def test_non_list_payload_rejected(self):
        from models.queue import parse_queue_items

        with pytest.raises(ValueError):
            parse_queue_items(42)

    @pytest.mark.parametrize("seconds,text", [(59, "0:59"), (3600, "1:00:00"), (3725.9, "1:02:05")])
    def test_format_total_duration(self, seconds, text):
        from models.queue import format_total_duration

        assert format_total_duration(seconds) == text


class TestErrors:
    """User facing messages"""

    def test_command_error_message(self):
        from models.errors import CommandError, PlayerClientError

        error = CommandError("set volume", "timeout")

        assert isinstance(error, PlayerClientError)
        assert error.user_message == "Unable to set volume. The player may be offline."
        assert "timeout" in error.technical_details

    def test_not_connected_is_connection_error(self):
        from models.connection import ConnectionState
        from models.errors import NotConnectedError, ServerConnectionError

        error = NotConnectedError(ConnectionState.error("refused"))

        assert isinstance(error, ServerConnectionError)
        assert str(error) == "Not connected (state: Error: refused)"

    def test_queue_error_message(self):
        from models.errors import QueueError

        error = QueueError("remove item", "busy")

        assert error.user_message == "Unable to update the queue. Please try again."
        assert str(error) == "Queue command 'remove item' failed: busy"
