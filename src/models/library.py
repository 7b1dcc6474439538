"""
Library browsing models

Categories, sort options, filters and the per-category query state
(parameters + pagination cursor + accumulated results).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class LibraryCategory(Enum):
    """Library browsing categories"""
    ARTISTS = "artists"
    ALBUMS = "albums"
    TRACKS = "tracks"
    PLAYLISTS = "playlists"
    RADIO = "radio"
    GENRES = "genres"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()

    @property
    def api_media_type(self) -> str:
        """Media type name used by the server API"""
        if self == LibraryCategory.RADIO:
            return "radio"
        return self.value[:-1]


class LibrarySortOption(Enum):
    """Sort criteria; not every option is valid for every category"""
    NAME_ASC = "name"
    NAME_DESC = "name_desc"
    RECENTLY_ADDED = "timestamp_added"
    RECENTLY_PLAYED = "timestamp_played"
    PLAY_COUNT = "play_count"
    ALBUM_COUNT = "album_count"  # Artists only
    YEAR = "year"                # Albums only
    DURATION = "duration"

    @property
    def display_name(self) -> str:
        return _SORT_NAMES[self]

    @staticmethod
    def options_for(category: LibraryCategory) -> List["LibrarySortOption"]:
        """Sort options available for a category, in menu order"""
        return list(_SORT_OPTIONS[category])

    def is_valid_for(self, category: LibraryCategory) -> bool:
        return self in _SORT_OPTIONS[category]


_SORT_NAMES = {
    LibrarySortOption.NAME_ASC: "Name (A-Z)",
    LibrarySortOption.NAME_DESC: "Name (Z-A)",
    LibrarySortOption.RECENTLY_ADDED: "Recently Added",
    LibrarySortOption.RECENTLY_PLAYED: "Recently Played",
    LibrarySortOption.PLAY_COUNT: "Most Played",
    LibrarySortOption.ALBUM_COUNT: "Album Count",
    LibrarySortOption.YEAR: "Year",
    LibrarySortOption.DURATION: "Duration",
}

_SORT_OPTIONS = {
    LibraryCategory.ARTISTS: (
        LibrarySortOption.NAME_ASC, LibrarySortOption.NAME_DESC,
        LibrarySortOption.RECENTLY_ADDED, LibrarySortOption.PLAY_COUNT,
        LibrarySortOption.ALBUM_COUNT,
    ),
    LibraryCategory.ALBUMS: (
        LibrarySortOption.NAME_ASC, LibrarySortOption.NAME_DESC,
        LibrarySortOption.RECENTLY_ADDED, LibrarySortOption.YEAR,
        LibrarySortOption.RECENTLY_PLAYED,
    ),
    LibraryCategory.TRACKS: (
        LibrarySortOption.NAME_ASC, LibrarySortOption.NAME_DESC,
        LibrarySortOption.RECENTLY_ADDED, LibrarySortOption.RECENTLY_PLAYED,
        LibrarySortOption.PLAY_COUNT,
    ),
    LibraryCategory.PLAYLISTS: (
        LibrarySortOption.NAME_ASC, LibrarySortOption.NAME_DESC,
        LibrarySortOption.RECENTLY_ADDED, LibrarySortOption.DURATION,
    ),
    LibraryCategory.RADIO: (LibrarySortOption.NAME_ASC, LibrarySortOption.NAME_DESC),
    LibraryCategory.GENRES: (LibrarySortOption.NAME_ASC, LibrarySortOption.NAME_DESC),
}


@dataclass(frozen=True)
class LibraryFilter:
    """Filters narrowing library results"""

    provider: Optional[str] = None
    genre: Optional[str] = None
    year_range: Optional[Tuple[int, int]] = None  # inclusive
    favorite_only: bool = False

    def __post_init__(self):
        if self.year_range is not None and self.year_range[0] > self.year_range[1]:
            raise ValueError(f"Invalid year range: {self.year_range}")

    @property
    def is_empty(self) -> bool:
        return (
            self.provider is None
            and self.genre is None
            and self.year_range is None
            and not self.favorite_only
        )

    @property
    def cache_key(self) -> str:
        """Stable key describing the active filters"""
        components = []
        if self.provider is not None:
            components.append(f"p:{self.provider}")
        if self.genre is not None:
            components.append(f"g:{self.genre}")
        if self.year_range is not None:
            components.append(f"y:{self.year_range[0]}-{self.year_range[1]}")
        if self.favorite_only:
            components.append("fav")
        return "_".join(components) if components else "default"

    def to_api_args(self) -> Dict[str, Any]:
        """Arguments for the server's library listing commands"""
        args: Dict[str, Any] = {}
        if self.provider is not None:
            args["provider"] = self.provider
        if self.genre is not None:
            args["genre"] = self.genre
        if self.year_range is not None:
            args["year_min"] = self.year_range[0]
            args["year_max"] = self.year_range[1]
        if self.favorite_only:
            args["favorite"] = True
        return args


@dataclass(frozen=True)
class PageCursor:
    """Pagination position of one category"""

    offset: int = 0
    page_size: int = 50
    total_known: bool = False  # True once the server reported no more results

    def advanced(self, received: int, total_known: bool) -> "PageCursor":
        return PageCursor(self.offset + received, self.page_size, total_known)


@dataclass(frozen=True)
class PageResult:
    """One page returned by the library query collaborator"""

    items: List[Any] = field(default_factory=list)
    total_known: bool = False


@dataclass
class LibraryQueryState:
    """
    Query state of one category

    `generation` increases on every reset and every first-page load;
    a fetch whose generation no longer matches is stale.
    """

    category: LibraryCategory
    sort: LibrarySortOption = LibrarySortOption.NAME_ASC
    filter: LibraryFilter = field(default_factory=LibraryFilter)
    search: str = ""
    cursor: PageCursor = field(default_factory=PageCursor)
    items: List[Any] = field(default_factory=list)
    generation: int = 0
    is_loading: bool = False

    @property
    def has_more(self) -> bool:
        return not self.cursor.total_known

    def reset(self) -> None:
        """Back to the initial cursor with no accumulated results"""
        self.cursor = PageCursor(page_size=self.cursor.page_size)
        self.items = []
        self.generation += 1
        self.is_loading = False

    def copy(self) -> "LibraryQueryState":
        return LibraryQueryState(
            category=self.category,
            sort=self.sort,
            filter=self.filter,
            search=self.search,
            cursor=self.cursor,
            items=list(self.items),
            generation=self.generation,
            is_loading=self.is_loading,
        )
