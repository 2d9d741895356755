"""In-memory repositories and fixed clocks for service-level tests.

FakeListingRepository / FakeEngagementRepository share one FakeMarketplace
so counter bumps from the engagement side are visible on listings, the way
the real tables are.
"""

import random
import uuid
from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime, timedelta
from typing import Any

import pytest

from src.lm_cache.domain.filter_engine import matches
from src.lm_common.errors import ListingNotFoundError
from src.lm_engagement.domain.models import ContactRequest, CounterMismatch, NewContactRequest
from src.lm_listing.domain.lifecycle import check_listing_invariants
from src.lm_listing.domain.models import (
    ExpiringListing,
    Listing,
    ListingFilter,
    ListingPage,
    NewListing,
)

T0 = datetime(2026, 3, 10, 9, 0, tzinfo=UTC)


class FixedClock:
    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


@dataclass
class FakeMarketplace:
    listings: dict[str, Listing] = field(default_factory=dict)
    views: set[tuple[str, str, date]] = field(default_factory=set)
    contacts: dict[tuple[str, str], ContactRequest] = field(default_factory=dict)


class FakeListingRepository:
    def __init__(self, state: FakeMarketplace) -> None:
        self.state = state

    def _visible(self, m: Listing, now: datetime) -> bool:
        return m.status == "active" and m.deleted_at is None and m.expires_at >= now

    async def insert_listing(self, db: Any, listing: NewListing) -> str:
        check_listing_invariants(
            listing.quantity, listing.min_price, listing.max_price,
            listing.created_at, listing.expires_at,
        )
        listing_id = str(uuid.uuid4())
        self.state.listings[listing_id] = Listing(
            id=listing_id,
            status="active",
            view_count=0,
            contact_count=0,
            updated_at=listing.created_at,
            **{k: v for k, v in vars(listing).items()},
        )
        return listing_id

    async def get_listing_by_id(self, db: Any, listing_id: str) -> Listing | None:
        m = self.state.listings.get(listing_id)
        if m is None or m.deleted_at is not None:
            return None
        return replace(m, photo_urls=list(m.photo_urls))

    async def get_listings(
        self, db: Any, filters: ListingFilter, page: int, page_size: int,
        now: datetime, sort: str = "newest",
    ) -> ListingPage:
        rows = [
            m for m in self.state.listings.values()
            if self._visible(m, now) and matches(m, filters)
        ]
        # Stable two-pass sort reproduces "ORDER BY key, id DESC"
        rows.sort(key=lambda m: m.id, reverse=True)
        if sort == "price_asc":
            rows.sort(key=lambda m: m.min_price)
        elif sort == "price_desc":
            rows.sort(key=lambda m: m.max_price, reverse=True)
        else:
            rows.sort(key=lambda m: m.created_at, reverse=True)
        start = (page - 1) * page_size
        return ListingPage(data=rows[start:start + page_size], total=len(rows))

    async def get_listings_in_bounding_box(
        self, db: Any, box: tuple[float, float, float, float],
        filters: ListingFilter, now: datetime,
    ) -> list[Listing]:
        min_lat, max_lat, min_lng, max_lng = box
        return [
            m for m in self.state.listings.values()
            if self._visible(m, now) and matches(m, filters)
            and min_lat <= m.public_latitude <= max_lat
            and min_lng <= m.public_longitude <= max_lng
        ]

    async def get_listings_by_seller(
        self, db: Any, seller_id: str, status: str | None
    ) -> list[Listing]:
        return [
            m for m in self.state.listings.values()
            if m.seller_id == seller_id and m.deleted_at is None
            and (status is None or m.status == status)
        ]

    async def update_listing_fields(
        self, db: Any, listing_id: str, fields: dict[str, Any], now: datetime
    ) -> None:
        m = self.state.listings[listing_id]
        for name, value in fields.items():
            setattr(m, name, value)
        m.updated_at = now

    async def update_status(
        self, db: Any, listing_id: str, from_status: str, to_status: str,
        expires_at: datetime, now: datetime,
    ) -> bool:
        m = self.state.listings.get(listing_id)
        if m is None or m.deleted_at is not None or m.status != from_status:
            return False
        m.status = to_status
        m.expires_at = expires_at
        m.updated_at = now
        return True

    async def soft_delete_listing(self, db: Any, listing_id: str, now: datetime) -> bool:
        m = self.state.listings.get(listing_id)
        if m is None or m.deleted_at is not None:
            return False
        m.deleted_at = now
        return True

    async def mark_expired_listings(self, db: Any, now: datetime) -> int:
        count = 0
        for m in self.state.listings.values():
            if m.status == "active" and m.deleted_at is None and m.expires_at < now:
                m.status = "expired"
                count += 1
        return count

    async def get_expiring_listings(
        self, db: Any, now: datetime, window_end: datetime
    ) -> list[ExpiringListing]:
        return [
            ExpiringListing(id=m.id, seller_id=m.seller_id, species=m.species, expires_at=m.expires_at)
            for m in self.state.listings.values()
            if m.status == "active" and m.deleted_at is None and now < m.expires_at <= window_end
        ]


class FakeEngagementRepository:
    def __init__(self, state: FakeMarketplace) -> None:
        self.state = state

    def _live(self, listing_id: str) -> Listing | None:
        m = self.state.listings.get(listing_id)
        return m if m is not None and m.deleted_at is None else None

    def _joined(self, r: ContactRequest) -> ContactRequest:
        m = self.state.listings[r.listing_id]
        return replace(r, seller_id=m.seller_id, listing_species=m.species)

    async def record_listing_view(
        self, db: Any, listing_id: str, viewer_key: str, viewer_id: str | None,
        viewer_ip: str | None, view_date: date, viewed_at: datetime,
    ) -> bool:
        m = self._live(listing_id)
        key = (listing_id, viewer_key, view_date)
        if m is None or key in self.state.views:
            return False
        self.state.views.add(key)
        m.view_count += 1
        return True

    async def insert_contact_request(
        self, db: Any, request: NewContactRequest
    ) -> tuple[str, bool]:
        m = self._live(request.listing_id)
        key = (request.listing_id, request.buyer_id)
        existing = self.state.contacts.get(key)
        if existing is not None:
            return existing.id, False
        if m is None:
            raise ListingNotFoundError(request.listing_id)
        created = ContactRequest(
            id=str(uuid.uuid4()),
            listing_id=request.listing_id,
            buyer_id=request.buyer_id,
            message=request.message,
            contact_method=request.contact_method,
            phone_number=request.phone_number,
            email=request.email,
            status="pending",
            response_message=None,
            responded_at=None,
            created_at=request.created_at,
        )
        self.state.contacts[key] = created
        m.contact_count += 1
        return created.id, True

    async def has_existing_contact_request(self, db: Any, listing_id: str, buyer_id: str) -> bool:
        return (listing_id, buyer_id) in self.state.contacts

    async def get_contact_request_by_id(self, db: Any, request_id: str) -> ContactRequest | None:
        for r in self.state.contacts.values():
            if r.id == request_id:
                return self._joined(r)
        return None

    async def find_contact_request(
        self, db: Any, listing_id: str, buyer_id: str
    ) -> ContactRequest | None:
        r = self.state.contacts.get((listing_id, buyer_id))
        return self._joined(r) if r else None

    async def update_contact_request_status(
        self, db: Any, request_id: str, to_status: str,
        response_message: str | None, now: datetime,
    ) -> bool:
        for r in self.state.contacts.values():
            if r.id == request_id and r.status == "pending":
                r.status = to_status
                r.response_message = response_message
                r.responded_at = now
                return True
        return False

    async def list_requests_for_seller(
        self, db: Any, seller_id: str, status: str | None
    ) -> list[ContactRequest]:
        return [
            self._joined(r) for r in self.state.contacts.values()
            if self.state.listings[r.listing_id].seller_id == seller_id
            and self.state.listings[r.listing_id].deleted_at is None
            and (status is None or r.status == status)
        ]

    async def list_requests_for_buyer(self, db: Any, buyer_id: str) -> list[ContactRequest]:
        return [self._joined(r) for r in self.state.contacts.values() if r.buyer_id == buyer_id]

    async def get_pending_requester_ids(self, db: Any, listing_id: str) -> list[str]:
        return [
            r.buyer_id for r in self.state.contacts.values()
            if r.listing_id == listing_id and r.status == "pending"
        ]

    async def find_counter_mismatches(self, db: Any) -> list[CounterMismatch]:
        out = []
        for m in self.state.listings.values():
            view_rows = sum(1 for (lid, _, _) in self.state.views if lid == m.id)
            contact_rows = sum(1 for (lid, _) in self.state.contacts if lid == m.id)
            if view_rows != m.view_count or contact_rows != m.contact_count:
                out.append(CounterMismatch(m.id, m.view_count, view_rows, m.contact_count, contact_rows))
        return out


class RecordingNotifier:
    def __init__(self) -> None:
        self.sent: list[tuple[Any, ...]] = []

    def contact_requested(self, seller_id: str, listing_id: str, request_id: str) -> None:
        self.sent.append(("contact_requested", seller_id, listing_id, request_id))

    def request_answered(self, buyer_id: str, request_id: str, status: str) -> None:
        self.sent.append(("request_answered", buyer_id, request_id, status))

    def listing_removed(self, listing_id: str, buyer_ids: list[str]) -> None:
        self.sent.append(("listing_removed", listing_id, tuple(buyer_ids)))

    def listing_expiring(self, seller_id: str, listing_id: str, expires_at: datetime) -> None:
        self.sent.append(("listing_expiring", seller_id, listing_id, expires_at))


@pytest.fixture
def db():
    # Fakes never touch the session
    return object()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def marketplace() -> FakeMarketplace:
    return FakeMarketplace()


@pytest.fixture
def listing_repo(marketplace: FakeMarketplace) -> FakeListingRepository:
    return FakeListingRepository(marketplace)


@pytest.fixture
def engagement_repo(marketplace: FakeMarketplace) -> FakeEngagementRepository:
    return FakeEngagementRepository(marketplace)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(42)
