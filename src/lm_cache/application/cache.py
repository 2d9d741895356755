"""Offline listing cache for buyer clients.

A ListingCache is an explicit handle over one key of a KeyValueStore; there
is no module-level cache. Reads never raise and never touch the network:
an absent, empty or unreadable snapshot reads as "no listings".

Refreshing is separate and explicit: `refresh()` pulls every page through an
injected fetcher and swaps the snapshot only when all pages arrived.
"""

import logging
from collections.abc import Awaitable, Callable, Sequence
from datetime import datetime, timedelta

from pydantic import BaseModel, Field

from config.settings import settings
from src.lm_cache.domain.filter_engine import apply_filters
from src.lm_cache.infrastructure.store import KeyValueStore
from src.lm_common.datetime_utils import ensure_utc, utc_now
from src.lm_listing.application.schemas import ListingPageResponse, PublicListing
from src.lm_listing.domain.models import ListingFilter

logger = logging.getLogger(__name__)

DEFAULT_CACHE_KEY = "marketplace:listings"

# (page, page_size, filters) -> one page of the public listing search
PageFetcher = Callable[[int, int, ListingFilter | None], Awaitable[ListingPageResponse]]


class CacheSnapshot(BaseModel):
    fetched_at: datetime
    listings: list[PublicListing] = Field(default_factory=list)


class ListingCache:
    def __init__(
        self,
        store: KeyValueStore,
        clock: Callable[[], datetime] = utc_now,
        key: str = DEFAULT_CACHE_KEY,
    ) -> None:
        self._store = store
        self._clock = clock
        self._key = key

    def _read(self) -> CacheSnapshot | None:
        try:
            raw = self._store.get(self._key)
        except (OSError, ValueError) as exc:
            logger.warning("Listing cache store unreadable (%s): %s", self._key, exc)
            return None
        if not raw:
            return None
        try:
            return CacheSnapshot.model_validate_json(raw)
        except ValueError as exc:
            logger.warning("Discarding corrupt listing cache blob (%s): %s", self._key, exc)
            return None

    def get_cached_listings(self, filters: ListingFilter | None = None) -> list[PublicListing]:
        snapshot = self._read()
        if snapshot is None:
            return []
        return apply_filters(snapshot.listings, filters or ListingFilter())

    def replace_snapshot(self, listings: Sequence[PublicListing]) -> CacheSnapshot:
        snapshot = CacheSnapshot(fetched_at=self._clock(), listings=list(listings))
        self._store.set(self._key, snapshot.model_dump_json())
        return snapshot

    def clear(self) -> None:
        self._store.delete(self._key)

    def snapshot_age(self) -> timedelta | None:
        snapshot = self._read()
        if snapshot is None:
            return None
        return ensure_utc(self._clock()) - ensure_utc(snapshot.fetched_at)

    def is_stale(self, max_age: timedelta | None = None) -> bool:
        """No snapshot counts as stale."""
        limit = max_age if max_age is not None else timedelta(minutes=settings.CACHE_MAX_AGE_MINUTES)
        age = self.snapshot_age()
        return age is None or age > limit

    async def refresh(
        self,
        fetch_page: PageFetcher,
        filters: ListingFilter | None = None,
        page_size: int = settings.MAX_PAGE_SIZE,
        max_pages: int | None = None,
    ) -> int:
        """Fetch pages 1..N and replace the snapshot. Returns the number cached.

        Any fetch error propagates and leaves the previous snapshot in place.
        """
        collected: list[PublicListing] = []
        seen: set[str] = set()
        page = 1
        while True:
            result = await fetch_page(page, page_size, filters)
            for listing in result.data:
                # A write between page requests can shift a row onto the next page
                if listing.id not in seen:
                    seen.add(listing.id)
                    collected.append(listing)
            if not result.data or page >= result.total_pages:
                break
            if max_pages is not None and page >= max_pages:
                break
            page += 1

        self.replace_snapshot(collected)
        logger.info("Listing cache refreshed: %d listings over %d pages", len(collected), page)
        return len(collected)
