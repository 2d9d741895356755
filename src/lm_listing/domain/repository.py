# src/lm_listing/domain/repository.py
"""Repository Protocol — dependency inversion for testability.

Unit tests inject a mock or in-memory fake that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from datetime import datetime
from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.lm_listing.domain.models import (
    ExpiringListing,
    Listing,
    ListingFilter,
    ListingPage,
    NewListing,
)


class ListingRepositoryProtocol(Protocol):
    async def insert_listing(self, db: AsyncSession, listing: NewListing) -> str: ...

    async def get_listing_by_id(
        self, db: AsyncSession, listing_id: str
    ) -> Listing | None: ...

    async def get_listings(
        self,
        db: AsyncSession,
        filters: ListingFilter,
        page: int,
        page_size: int,
        now: datetime,
        sort: str = "newest",
    ) -> ListingPage: ...

    async def get_listings_in_bounding_box(
        self,
        db: AsyncSession,
        box: tuple[float, float, float, float],
        filters: ListingFilter,
        now: datetime,
    ) -> list[Listing]: ...

    async def get_listings_by_seller(
        self, db: AsyncSession, seller_id: str, status: str | None
    ) -> list[Listing]: ...

    async def update_listing_fields(
        self, db: AsyncSession, listing_id: str, fields: dict[str, Any], now: datetime
    ) -> None: ...

    async def update_status(
        self,
        db: AsyncSession,
        listing_id: str,
        from_status: str,
        to_status: str,
        expires_at: datetime,
        now: datetime,
    ) -> bool: ...

    async def soft_delete_listing(
        self, db: AsyncSession, listing_id: str, now: datetime
    ) -> bool: ...

    async def mark_expired_listings(self, db: AsyncSession, now: datetime) -> int: ...

    async def get_expiring_listings(
        self, db: AsyncSession, now: datetime, window_end: datetime
    ) -> list[ExpiringListing]: ...
