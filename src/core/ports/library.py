# -*- coding: utf-8 -*-
"""
Library Query Port Interface

Paged access to the remote media library.
"""

from __future__ import annotations

from concurrent.futures import Future
from typing import Protocol, runtime_checkable

from models.library import LibraryCategory, LibraryFilter, LibrarySortOption, PageResult


@runtime_checkable
class ILibraryQuery(Protocol):
    """Library Query Interface"""

    def fetch_page(
        self,
        category: LibraryCategory,
        sort: LibrarySortOption,
        filter: LibraryFilter,
        search: str,
        offset: int,
        page_size: int,
    ) -> "Future[PageResult]":
        """Fetch one page of a category

        Args:
            category: Library category
            sort: Sort option (valid for the category)
            filter: Active filters
            search: Free-text search term, empty for none
            offset: Index of the first item
            page_size: Maximum number of items

        Returns:
            Future resolving with a PageResult, failing with QueryError
        """
        ...
