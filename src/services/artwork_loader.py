"""
Artwork Loader

Downloads artwork on a small thread pool and populates the ArtworkCache.
Concurrent requests for the same URL share one download.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Dict, Optional
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from models.artwork import CachedArtwork
from models.errors import ArtworkFetchError
from services.artwork_cache import ArtworkCache

logger = logging.getLogger(__name__)

USER_AGENT = "music-assistant-player/1.0"


class ArtworkLoader:
    """
    Artwork Loader

    load(url) resolves with a CachedArtwork. Cache hits complete
    immediately; misses are fetched, decoded and stored. A failed download
    raises ArtworkFetchError and a failed decode raises DecodeError; in both
    cases nothing is cached, so a later load retries.
    """

    def __init__(
        self,
        cache: ArtworkCache,
        timeout: float = 10.0,
        max_workers: int = 2,
        fetcher: Optional[Callable[[str], bytes]] = None,
    ):
        self._cache = cache
        self._timeout = timeout
        self._fetcher = fetcher or self._download
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="ArtworkLoader")
        self._lock = threading.Lock()
        self._in_flight: Dict[str, Future] = {}

    @staticmethod
    def from_config(cache: ArtworkCache, config) -> "ArtworkLoader":
        """Create a loader from the configuration service."""
        return ArtworkLoader(
            cache,
            timeout=float(config.get("artwork.fetch_timeout_seconds", 10.0)),
            max_workers=int(config.get("artwork.loader_workers", 2)),
        )

    def load(self, url: str) -> "Future[CachedArtwork]":
        hit = self._cache.get(url)
        if hit is not None:
            done: Future = Future()
            done.set_result(hit)
            return done

        with self._lock:
            pending = self._in_flight.get(url)
            if pending is not None:
                return pending
            pending = self._executor.submit(self._cache.get_or_load, url, self._fetcher)
            self._in_flight[url] = pending

        pending.add_done_callback(lambda f: self._finished(url, f))
        return pending

    def _finished(self, url: str, future: Future) -> None:
        with self._lock:
            if self._in_flight.get(url) is future:
                del self._in_flight[url]
        if not future.cancelled() and future.exception() is not None:
            logger.warning("Artwork load failed for %s: %s", url, future.exception())

    def _download(self, url: str) -> bytes:
        req = Request(url, headers={"User-Agent": USER_AGENT})
        logger.debug("Downloading artwork %s", url)
        try:
            with urlopen(req, timeout=self._timeout) as resp:
                return resp.read()
        except HTTPError as e:
            raise ArtworkFetchError(url, f"HTTP {e.code}: {e.reason}") from e
        except URLError as e:
            raise ArtworkFetchError(url, str(e.reason)) from e
        except OSError as e:
            raise ArtworkFetchError(url, str(e)) from e

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)
