"""
Library Browser Module

Paged, sorted, filtered and searched browsing of the remote library. Each
category keeps its own query state and is browsed independently.
"""

from __future__ import annotations

import concurrent.futures
import logging
import threading
from typing import Any, Dict, List, Optional, Tuple

from core.event_bus import EventBus, EventType
from core.ports.library import ILibraryQuery
from models.errors import InvalidSortOptionError, QueryError
from models.library import (
    LibraryCategory,
    LibraryFilter,
    LibraryQueryState,
    LibrarySortOption,
    PageCursor,
    PageResult,
)
from services.connection_lifecycle import ConnectionLifecycle

logger = logging.getLogger(__name__)


class LibraryBrowser:
    """
    Library Browser

    Changing sort, filter or search resets the category (empty results,
    cursor at offset 0) without fetching. Every reset and every first-page
    load bumps the category's generation; a page that arrives for an older
    generation is discarded and its future is cancelled.

    Example:
        browser = LibraryBrowser(query, lifecycle)
        browser.set_sort(LibraryCategory.ARTISTS, LibrarySortOption.ALBUM_COUNT)

        artists = browser.load_first_page(LibraryCategory.ARTISTS).result()
        while browser.has_more(LibraryCategory.ARTISTS):
            artists = browser.load_next_page(LibraryCategory.ARTISTS).result()
    """

    def __init__(
        self,
        query: ILibraryQuery,
        lifecycle: ConnectionLifecycle,
        event_bus: Optional[EventBus] = None,
        page_size: int = 50,
    ):
        if page_size <= 0:
            raise ValueError(f"page_size must be positive, got {page_size}")
        self._query = query
        self._lifecycle = lifecycle
        self._event_bus = event_bus or EventBus()
        self._page_size = page_size

        self._lock = threading.RLock()
        self._states: Dict[LibraryCategory, LibraryQueryState] = {
            category: LibraryQueryState(category, cursor=PageCursor(page_size=page_size))
            for category in LibraryCategory
        }
        # category -> (generation, caller future) of the fetch in flight
        self._in_flight: Dict[LibraryCategory, Tuple[int, concurrent.futures.Future]] = {}
        self._errors: Dict[LibraryCategory, Optional[QueryError]] = {}

    @property
    def page_size(self) -> int:
        return self._page_size

    # ===== Query parameters =====

    def set_sort(self, category: LibraryCategory, sort: LibrarySortOption) -> None:
        """
        Change the sort option of a category.

        Raises:
            InvalidSortOptionError: the option is not offered for the category
        """
        if not sort.is_valid_for(category):
            raise InvalidSortOptionError(category, sort)
        with self._lock:
            self._states[category].sort = sort
            stale = self._reset(category)
        self._after_reset(category, stale)

    def set_filter(self, category: LibraryCategory, library_filter: LibraryFilter) -> None:
        with self._lock:
            self._states[category].filter = library_filter
            stale = self._reset(category)
        self._after_reset(category, stale)

    def set_search(self, category: LibraryCategory, search: str) -> None:
        with self._lock:
            self._states[category].search = (search or "").strip()
            stale = self._reset(category)
        self._after_reset(category, stale)

    def sort_options(self, category: LibraryCategory) -> List[LibrarySortOption]:
        return LibrarySortOption.options_for(category)

    def _reset(self, category: LibraryCategory) -> Optional[concurrent.futures.Future]:
        """Reset state (lock held); returns the now-stale in-flight future"""
        self._states[category].reset()
        self._errors[category] = None
        in_flight = self._in_flight.pop(category, None)
        return in_flight[1] if in_flight else None

    def _after_reset(self, category: LibraryCategory, stale: Optional[concurrent.futures.Future]) -> None:
        if stale is not None:
            logger.debug("Abandoning in-flight %s fetch", category.value)
            stale.cancel()
        self._event_bus.publish_sync(EventType.LIBRARY_RESET, category)

    # ===== Loading =====

    def load_first_page(self, category: LibraryCategory) -> "concurrent.futures.Future[List[Any]]":
        """
        Fetch page 1 with the current parameters, replacing accumulated results.

        Returns:
            Future resolving with the category's items, failing with QueryError.
            Cancelled if a newer reset or first-page load supersedes it.

        Raises:
            NotConnectedError: the connection is not established
        """
        self._lifecycle.require_connected()
        with self._lock:
            state = self._states[category]
            state.generation += 1
            state.is_loading = True
            stale = self._in_flight.pop(category, None)
            result: concurrent.futures.Future = concurrent.futures.Future()
            self._in_flight[category] = (state.generation, result)
            request = (state.generation, state.sort, state.filter, state.search, 0)

        if stale is not None:
            logger.debug("First page of %s supersedes an in-flight fetch", category.value)
            stale[1].cancel()
        self._fetch(category, result, *request, replace=True)
        return result

    def load_next_page(self, category: LibraryCategory) -> "concurrent.futures.Future[List[Any]]":
        """
        Fetch the page after the cursor and append it.

        A no-op returning the current items when the server has reported the
        end of the results. While a fetch for the category is in flight the
        same future is returned.

        Raises:
            NotConnectedError: the connection is not established
        """
        self._lifecycle.require_connected()
        with self._lock:
            state = self._states[category]
            if state.cursor.total_known:
                done: concurrent.futures.Future = concurrent.futures.Future()
                done.set_result(list(state.items))
                return done

            in_flight = self._in_flight.get(category)
            if in_flight is not None:
                return in_flight[1]

            state.is_loading = True
            result = concurrent.futures.Future()
            self._in_flight[category] = (state.generation, result)
            request = (state.generation, state.sort, state.filter, state.search, state.cursor.offset)

        self._fetch(category, result, *request, replace=False)
        return result

    def _fetch(
        self,
        category: LibraryCategory,
        result: concurrent.futures.Future,
        generation: int,
        sort: LibrarySortOption,
        library_filter: LibraryFilter,
        search: str,
        offset: int,
        replace: bool,
    ) -> None:
        logger.debug(
            "Fetching %s offset=%d sort=%s filter=%s search=%r",
            category.value, offset, sort.value, library_filter.cache_key, search,
        )
        try:
            pending = self._query.fetch_page(
                category, sort, library_filter, search, offset, self._page_size
            )
        except Exception as e:
            self._on_page(category, result, generation, replace, None, e)
            return
        pending.add_done_callback(
            lambda f: self._on_page(category, result, generation, replace, f, None)
        )

    def _on_page(
        self,
        category: LibraryCategory,
        result: concurrent.futures.Future,
        generation: int,
        replace: bool,
        future: Optional[concurrent.futures.Future],
        error: Optional[BaseException],
    ) -> None:
        page: Optional[PageResult] = None
        if error is None and future is not None:
            if future.cancelled():
                error = concurrent.futures.CancelledError()
            else:
                error = future.exception()
                if error is None:
                    page = future.result()

        with self._lock:
            state = self._states[category]
            current = self._in_flight.get(category)
            if (
                state.generation != generation
                or current is None
                or current[1] is not result
            ):
                stale = True
            else:
                stale = False
                del self._in_flight[category]
                state.is_loading = False
                if page is None:
                    query_error = _as_query_error(category, error)
                    self._errors[category] = query_error
                else:
                    self._errors[category] = None
                    if replace:
                        state.items = list(page.items)
                        state.cursor = PageCursor(page_size=self._page_size).advanced(
                            len(page.items), page.total_known
                        )
                    else:
                        state.items.extend(page.items)
                        state.cursor = state.cursor.advanced(len(page.items), page.total_known)
                    items = list(state.items)

        if stale:
            logger.warning("Discarding stale %s page (generation %d)", category.value, generation)
            result.cancel()
            return

        if page is None:
            logger.error("%s", query_error)
            if not result.done():
                result.set_exception(query_error)
            self._event_bus.publish_sync(EventType.LIBRARY_QUERY_FAILED, (category, query_error))
            return

        logger.debug("Loaded %d %s (total %d)", len(page.items), category.value, len(items))
        if not result.done():
            result.set_result(items)
        self._event_bus.publish_sync(EventType.LIBRARY_PAGE_LOADED, (category, items))

    # ===== Read access =====

    def items(self, category: LibraryCategory) -> List[Any]:
        with self._lock:
            return list(self._states[category].items)

    def query_state(self, category: LibraryCategory) -> LibraryQueryState:
        """Copy of the category's query state"""
        with self._lock:
            return self._states[category].copy()

    def has_more(self, category: LibraryCategory) -> bool:
        with self._lock:
            return self._states[category].has_more

    def is_loading(self, category: LibraryCategory) -> bool:
        with self._lock:
            return self._states[category].is_loading

    def last_error(self, category: LibraryCategory) -> Optional[QueryError]:
        with self._lock:
            return self._errors.get(category)


def _as_query_error(category: LibraryCategory, error: Optional[BaseException]) -> QueryError:
    if isinstance(error, QueryError):
        return error
    reason = str(error) if error is not None else ""
    return QueryError(category.value, reason or type(error).__name__)
