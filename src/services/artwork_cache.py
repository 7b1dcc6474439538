"""
Artwork Cache Module

Bounded in-memory store of decoded album artwork with a lazily computed
dominant color per entry.
"""

from __future__ import annotations

import io
import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, List, Optional

from PIL import Image

from core.event_bus import EventBus, EventType
from models.artwork import CachedArtwork, RGBColor
from models.errors import DecodeError
from services.color_extractor import DEFAULT_STRIDE, extract_dominant_color

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    image: Image.Image
    size: int
    color: Optional[RGBColor] = None
    color_ready: bool = False


def image_size_bytes(image: Image.Image) -> int:
    """Approximate decoded size: width * height * bands"""
    width, height = image.size
    return width * height * len(image.getbands())


class ArtworkCache:
    """
    Artwork Cache

    Least-recently-used eviction over a maximum entry count and an optional
    byte budget. `get` refreshes recency; `clear` is the only other way
    entries leave the cache. A miss returns None.

    Example:
        cache = ArtworkCache(max_entries=50)
        cache.put_bytes(url, data)

        hit = cache.get(url)
        if hit is not None:
            show(hit.image, hit.color)
    """

    def __init__(
        self,
        max_entries: int = 50,
        max_bytes: Optional[int] = None,
        sample_stride: int = DEFAULT_STRIDE,
        event_bus: Optional[EventBus] = None,
    ):
        if max_entries <= 0:
            raise ValueError(f"max_entries must be positive, got {max_entries}")
        if sample_stride <= 0:
            raise ValueError(f"sample_stride must be positive, got {sample_stride}")
        self._max_entries = max_entries
        self._max_bytes = max_bytes if max_bytes and max_bytes > 0 else None
        self._sample_stride = sample_stride
        self._event_bus = event_bus

        self._lock = threading.RLock()
        self._entries: "OrderedDict[str, _Entry]" = OrderedDict()
        self._total_bytes = 0

    @classmethod
    def from_config(cls, config, event_bus: Optional[EventBus] = None) -> "ArtworkCache":
        return cls(
            max_entries=int(config.get("artwork.max_entries", 50)),
            max_bytes=config.get("artwork.max_bytes"),
            sample_stride=int(config.get("artwork.sample_stride", DEFAULT_STRIDE)),
            event_bus=event_bus,
        )

    @property
    def max_entries(self) -> int:
        return self._max_entries

    @property
    def total_bytes(self) -> int:
        with self._lock:
            return self._total_bytes

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        """Membership test; does not touch recency"""
        with self._lock:
            return key in self._entries

    def keys(self) -> List[str]:
        """Keys from least to most recently used"""
        with self._lock:
            return list(self._entries.keys())

    def get(self, key: str) -> Optional[CachedArtwork]:
        """
        Look up an entry and mark it most recently used.

        The dominant color is extracted on the first get of an entry and
        memoized with it.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            self._entries.move_to_end(key)
            if entry.color_ready:
                return CachedArtwork(entry.image, entry.color)

        # Extract without holding the lock; the entry itself is immutable
        color = extract_dominant_color(entry.image, self._sample_stride)
        with self._lock:
            if self._entries.get(key) is entry:
                entry.color = color
                entry.color_ready = True
        return CachedArtwork(entry.image, color)

    def put(self, key: str, image: Image.Image) -> None:
        """Store a decoded image, evicting least recently used entries"""
        size = image_size_bytes(image)
        evicted: List[str] = []
        with self._lock:
            previous = self._entries.pop(key, None)
            if previous is not None:
                self._total_bytes -= previous.size
            self._entries[key] = _Entry(image, size)
            self._total_bytes += size

            while len(self._entries) > self._max_entries or (
                self._max_bytes is not None
                and self._total_bytes > self._max_bytes
                and len(self._entries) > 1
            ):
                old_key, old_entry = self._entries.popitem(last=False)
                self._total_bytes -= old_entry.size
                evicted.append(old_key)

        for old_key in evicted:
            logger.debug("Evicted artwork %s", old_key)
        if self._event_bus is not None:
            self._event_bus.publish_sync(EventType.ARTWORK_CACHED, key)

    def put_bytes(self, key: str, data: bytes) -> Image.Image:
        """
        Decode encoded image bytes and store the result.

        Raises:
            DecodeError: the bytes are not a readable image; nothing is stored
        """
        image = decode_image(key, data)
        self.put(key, image)
        return image

    def get_or_load(self, key: str, fetch: Callable[[str], bytes]) -> CachedArtwork:
        """
        Return the cached entry, or fetch, decode and store it on a miss.

        Raises:
            DecodeError: fetched bytes could not be decoded
            Whatever `fetch` raises
        """
        hit = self.get(key)
        if hit is not None:
            return hit
        image = self.put_bytes(key, fetch(key))
        hit = self.get(key)
        if hit is None:
            # Evicted by a concurrent put before we could read it back
            return CachedArtwork(image, extract_dominant_color(image, self._sample_stride))
        return hit

    def clear(self) -> None:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            self._total_bytes = 0
        logger.info("Artwork cache cleared (%d entries)", count)
        if self._event_bus is not None:
            self._event_bus.publish_sync(EventType.ARTWORK_CLEARED, count)


def decode_image(key: str, data: bytes) -> Image.Image:
    """Decode image bytes with Pillow, raising DecodeError on failure"""
    if not data:
        raise DecodeError(key, "empty data")
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            image = img.copy()
    except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as e:
        logger.error("Failed to decode artwork %s: %s", key, e)
        raise DecodeError(key, str(e)) from e
    return image
