"""
Library Browser Tests
"""

import pytest


@pytest.fixture
def query():
    from fakes import FakeLibraryQuery

    return FakeLibraryQuery()


@pytest.fixture
def browser(query, lifecycle, event_bus):
    from services.library_browser import LibraryBrowser

    return LibraryBrowser(query, lifecycle, event_bus, page_size=2)


class TestQueryParameters:
    """Sort, filter and search"""

    def test_sort_option_must_match_category(self, browser):
        from models.errors import InvalidSortOptionError
        from models.library import LibraryCategory, LibrarySortOption

        browser.set_sort(LibraryCategory.ARTISTS, LibrarySortOption.ALBUM_COUNT)
        assert browser.query_state(LibraryCategory.ARTISTS).sort == LibrarySortOption.ALBUM_COUNT

        with pytest.raises(InvalidSortOptionError):
            browser.set_sort(LibraryCategory.ALBUMS, LibrarySortOption.ALBUM_COUNT)
        assert browser.query_state(LibraryCategory.ALBUMS).sort == LibrarySortOption.NAME_ASC

    def test_parameter_change_resets_without_fetching(self, browser, query):
        from models.library import LibraryCategory, LibraryFilter

        browser.load_first_page(LibraryCategory.TRACKS)
        query.complete(0, ["a", "b"])
        assert browser.items(LibraryCategory.TRACKS) == ["a", "b"]

        browser.set_filter(LibraryCategory.TRACKS, LibraryFilter(favorite_only=True))

        state = browser.query_state(LibraryCategory.TRACKS)
        assert state.items == []
        assert state.cursor.offset == 0
        assert state.cursor.total_known is False
        assert len(query.requests) == 1

    def test_search_is_passed_to_query(self, browser, query):
        from models.library import LibraryCategory

        browser.set_search(LibraryCategory.ALBUMS, "  blue  ")
        browser.load_first_page(LibraryCategory.ALBUMS)

        assert query.requests[0].search == "blue"
        assert query.requests[0].category == LibraryCategory.ALBUMS

    def test_sort_options_are_category_scoped(self, browser):
        from models.library import LibraryCategory, LibrarySortOption

        assert LibrarySortOption.YEAR in browser.sort_options(LibraryCategory.ALBUMS)
        assert LibrarySortOption.YEAR not in browser.sort_options(LibraryCategory.ARTISTS)
        assert browser.sort_options(LibraryCategory.RADIO) == [
            LibrarySortOption.NAME_ASC,
            LibrarySortOption.NAME_DESC,
        ]


class TestPagination:
    """First page, next page and the end of results"""

    def test_first_then_next_page(self, browser, query):
        from models.library import LibraryCategory

        first = browser.load_first_page(LibraryCategory.ARTISTS)
        assert browser.is_loading(LibraryCategory.ARTISTS)
        query.complete(0, ["a", "b"])
        assert first.result(timeout=0) == ["a", "b"]

        following = browser.load_next_page(LibraryCategory.ARTISTS)
        assert query.requests[1].offset == 2
        assert query.requests[1].page_size == 2
        query.complete(1, ["c"], total_known=True)

        assert following.result(timeout=0) == ["a", "b", "c"]
        state = browser.query_state(LibraryCategory.ARTISTS)
        assert state.cursor.offset == 3
        assert browser.has_more(LibraryCategory.ARTISTS) is False
        assert browser.is_loading(LibraryCategory.ARTISTS) is False

    def test_next_page_after_end_is_noop(self, browser, query):
        from models.library import LibraryCategory

        browser.load_first_page(LibraryCategory.ARTISTS)
        query.complete(0, ["a"], total_known=True)
        before = browser.query_state(LibraryCategory.ARTISTS)

        result = browser.load_next_page(LibraryCategory.ARTISTS)

        assert result.result(timeout=0) == ["a"]
        assert len(query.requests) == 1
        after = browser.query_state(LibraryCategory.ARTISTS)
        assert after.items == before.items
        assert after.cursor == before.cursor

    def test_next_page_while_loading_returns_same_future(self, browser, query):
        from models.library import LibraryCategory

        browser.load_first_page(LibraryCategory.ARTISTS)
        query.complete(0, ["a", "b"])

        first_call = browser.load_next_page(LibraryCategory.ARTISTS)
        second_call = browser.load_next_page(LibraryCategory.ARTISTS)

        assert first_call is second_call
        assert len(query.requests) == 2

    def test_first_page_replaces_results(self, browser, query):
        from models.library import LibraryCategory

        browser.load_first_page(LibraryCategory.ARTISTS)
        query.complete(0, ["a", "b"])
        browser.load_next_page(LibraryCategory.ARTISTS)
        query.complete(1, ["c", "d"])

        browser.load_first_page(LibraryCategory.ARTISTS)
        assert query.requests[2].offset == 0
        query.complete(2, ["x", "y"])

        assert browser.items(LibraryCategory.ARTISTS) == ["x", "y"]
        assert browser.query_state(LibraryCategory.ARTISTS).cursor.offset == 2

    def test_page_loaded_event(self, browser, query, event_bus):
        from core.event_bus import EventType
        from models.library import LibraryCategory

        loaded = []
        event_bus.subscribe(EventType.LIBRARY_PAGE_LOADED, loaded.append)

        browser.load_first_page(LibraryCategory.PLAYLISTS)
        query.complete(0, ["p1"])

        assert loaded == [(LibraryCategory.PLAYLISTS, ["p1"])]


class TestGenerationFence:
    """Stale pages never overwrite newer state"""

    def test_stale_fetch_after_filter_change_is_discarded(self, browser, query):
        from models.library import LibraryCategory, LibraryFilter

        stale = browser.load_first_page(LibraryCategory.ALBUMS)
        browser.set_filter(LibraryCategory.ALBUMS, LibraryFilter(genre="Jazz"))

        query.complete(0, ["old-1", "old-2"])

        assert stale.cancelled()
        assert browser.items(LibraryCategory.ALBUMS) == []
        assert browser.query_state(LibraryCategory.ALBUMS).cursor.offset == 0

        fresh = browser.load_first_page(LibraryCategory.ALBUMS)
        assert query.requests[1].filter == LibraryFilter(genre="Jazz")
        query.complete(1, ["jazz-1"])
        assert fresh.result(timeout=0) == ["jazz-1"]

    def test_slow_first_page_cannot_overwrite_newer_one(self, browser, query):
        from models.library import LibraryCategory

        slow = browser.load_first_page(LibraryCategory.TRACKS)
        fast = browser.load_first_page(LibraryCategory.TRACKS)

        query.complete(1, ["new"])
        query.complete(0, ["old"])

        assert fast.result(timeout=0) == ["new"]
        assert slow.cancelled()
        assert browser.items(LibraryCategory.TRACKS) == ["new"]

    def test_stale_next_page_is_discarded(self, browser, query):
        from models.library import LibraryCategory

        browser.load_first_page(LibraryCategory.TRACKS)
        query.complete(0, ["a", "b"])
        browser.load_next_page(LibraryCategory.TRACKS)

        browser.set_search(LibraryCategory.TRACKS, "new search")
        query.complete(1, ["c", "d"])

        assert browser.items(LibraryCategory.TRACKS) == []

    def test_categories_are_independent(self, browser, query):
        from models.library import LibraryCategory

        artists = browser.load_first_page(LibraryCategory.ARTISTS)
        browser.set_search(LibraryCategory.ALBUMS, "x")
        query.complete(0, ["artist"])

        assert artists.result(timeout=0) == ["artist"]
        assert browser.items(LibraryCategory.ARTISTS) == ["artist"]


class TestFailures:
    """Query failures and connection gating"""

    def test_failure_keeps_items_and_cursor(self, browser, query, event_bus):
        from core.event_bus import EventType
        from models.errors import QueryError
        from models.library import LibraryCategory

        failures = []
        event_bus.subscribe(EventType.LIBRARY_QUERY_FAILED, failures.append)

        browser.load_first_page(LibraryCategory.ARTISTS)
        query.complete(0, ["a", "b"])
        before = browser.query_state(LibraryCategory.ARTISTS)

        future = browser.load_next_page(LibraryCategory.ARTISTS)
        query.fail(1, RuntimeError("server busy"))

        with pytest.raises(QueryError):
            future.result(timeout=0)
        after = browser.query_state(LibraryCategory.ARTISTS)
        assert after.items == ["a", "b"]
        assert after.cursor == before.cursor
        assert after.is_loading is False
        assert isinstance(browser.last_error(LibraryCategory.ARTISTS), QueryError)
        assert failures[0][0] == LibraryCategory.ARTISTS

    def test_retry_after_failure_succeeds(self, browser, query):
        from models.library import LibraryCategory

        browser.load_first_page(LibraryCategory.GENRES)
        query.fail(0, RuntimeError("timeout"))

        retry = browser.load_first_page(LibraryCategory.GENRES)
        query.complete(1, ["rock"])

        assert retry.result(timeout=0) == ["rock"]
        assert browser.last_error(LibraryCategory.GENRES) is None

    def test_rejects_fetch_when_not_connected(self, browser, query, lifecycle):
        from models.errors import NotConnectedError
        from models.library import LibraryCategory

        lifecycle.disconnect()

        with pytest.raises(NotConnectedError):
            browser.load_first_page(LibraryCategory.ARTISTS)
        with pytest.raises(NotConnectedError):
            browser.load_next_page(LibraryCategory.ARTISTS)
        assert query.requests == []
