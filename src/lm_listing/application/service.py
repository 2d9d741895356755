"""ListingApplicationService — seller and buyer use cases for listings.

The caller (router) passes the db session and owns the transaction; every
mutating method here is expected to run inside `async with db.begin()`.

Clock, random source and gazetteer are injected so tests are deterministic.
"""

import logging
import random
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.lm_common.datetime_utils import utc_now
from src.lm_common.enums import ContactPreference, ListingSort, ListingStatus
from src.lm_common.errors import (
    ConstraintViolationError,
    InvalidCoordinatesError,
    InvalidTransitionError,
    ListingNotFoundError,
    NotListingOwnerError,
)
from src.lm_common.notifier import LoggingNotifier, Notifier
from src.lm_engagement.domain.repository import EngagementRepositoryProtocol
from src.lm_engagement.infrastructure.persistence import EngagementRepository
from src.lm_geo.domain.fuzzer import FuzzedLocation, fuzz_location
from src.lm_geo.domain.gazetteer import Gazetteer
from src.lm_geo.domain.geodesy import bounding_box, haversine_km, validate_coordinates
from src.lm_listing.application.schemas import (
    CreateListingRequest,
    DeleteListingResponse,
    ListingDraftResponse,
    ListingPageResponse,
    OwnerListingDetail,
    PrefillRequest,
    PublicListing,
    UpdateListingRequest,
)
from src.lm_listing.domain.lifecycle import (
    calculate_expiration_date,
    check_listing_invariants,
    ensure_transition,
    generate_listing_from_batch,
)
from src.lm_listing.domain.models import BatchSnapshot, Listing, ListingFilter, NewListing
from src.lm_listing.domain.repository import ListingRepositoryProtocol
from src.lm_listing.infrastructure.persistence import ListingRepository

logger = logging.getLogger(__name__)

# Fields copied straight from an UpdateListingRequest onto the row
_PLAIN_UPDATE_FIELDS = (
    "species", "quantity", "min_price", "max_price",
    "description", "photo_urls", "contact_preference",
)


def _location_columns(fuzzed: FuzzedLocation, latitude: float, longitude: float) -> dict[str, Any]:
    return {
        "latitude": latitude,
        "longitude": longitude,
        "public_latitude": fuzzed.public_lat,
        "public_longitude": fuzzed.public_lng,
        "country": fuzzed.country,
        "region": fuzzed.region,
        "locality": fuzzed.locality,
        "formatted_address": fuzzed.formatted_address,
        "fuzzing_level": fuzzed.level.value,
    }


class ListingApplicationService:
    def __init__(
        self,
        repo: ListingRepositoryProtocol | None = None,
        engagement_repo: EngagementRepositoryProtocol | None = None,
        notifier: Notifier | None = None,
        clock: Callable[[], datetime] = utc_now,
        rng: random.Random | None = None,
        gazetteer: Gazetteer | None = None,
    ) -> None:
        self._repo: ListingRepositoryProtocol = repo or ListingRepository()
        self._engagement: EngagementRepositoryProtocol = engagement_repo or EngagementRepository()
        self._notifier: Notifier = notifier or LoggingNotifier()
        self._clock = clock
        self._rng = rng
        self._gazetteer = gazetteer

    def _fuzz(self, latitude: float, longitude: float, level: str) -> FuzzedLocation:
        return fuzz_location(
            latitude, longitude, level, rng=self._rng, gazetteer=self._gazetteer
        )

    async def _load_owned(self, db: AsyncSession, listing_id: str, seller_id: str) -> Listing:
        listing = await self._repo.get_listing_by_id(db, listing_id)
        if listing is None:
            raise ListingNotFoundError(listing_id)
        if listing.seller_id != seller_id:
            raise NotListingOwnerError(listing_id)
        return listing

    async def _reload(self, db: AsyncSession, listing_id: str) -> Listing:
        listing = await self._repo.get_listing_by_id(db, listing_id)
        if listing is None:
            raise ListingNotFoundError(listing_id)
        return listing

    # ------------------------------------------------------------------
    # Seller
    # ------------------------------------------------------------------

    async def create_listing(
        self, db: AsyncSession, seller_id: str, req: CreateListingRequest
    ) -> OwnerListingDetail:
        now = self._clock()
        fuzzed = self._fuzz(req.location.latitude, req.location.longitude, req.fuzzing_level)
        expires_at = calculate_expiration_date(
            now, req.expiration_days or settings.LISTING_PERIOD_DAYS
        )
        check_listing_invariants(req.quantity, req.min_price, req.max_price, now, expires_at)

        new_listing = NewListing(
            seller_id=seller_id,
            livestock_type=req.livestock_type.value,
            species=req.species.strip(),
            quantity=req.quantity,
            min_price=req.min_price,
            max_price=req.max_price,
            currency=req.currency.upper(),
            latitude=req.location.latitude,
            longitude=req.location.longitude,
            public_latitude=fuzzed.public_lat,
            public_longitude=fuzzed.public_lng,
            country=fuzzed.country,
            region=fuzzed.region,
            locality=fuzzed.locality,
            formatted_address=fuzzed.formatted_address,
            fuzzing_level=fuzzed.level.value,
            created_at=now,
            expires_at=expires_at,
            description=req.description,
            photo_urls=list(req.photo_urls),
            contact_preference=req.contact_preference.value,
            batch_id=req.batch_id,
        )
        listing_id = await self._repo.insert_listing(db, new_listing)
        logger.info(
            "Listing %s created by seller=%s (%s, level=%s, expires %s)",
            listing_id, seller_id, fuzzed.locality, fuzzed.level.value, expires_at.isoformat(),
        )
        return OwnerListingDetail.from_domain(await self._reload(db, listing_id))

    async def get_my_listings(
        self, db: AsyncSession, seller_id: str, status: str | None
    ) -> list[OwnerListingDetail]:
        # status=None or 'all' → every non-deleted listing
        sql_status = None if status in (None, "all") else ListingStatus(status).value
        listings = await self._repo.get_listings_by_seller(db, seller_id, sql_status)
        return [OwnerListingDetail.from_domain(m) for m in listings]

    async def update_listing(
        self,
        db: AsyncSession,
        listing_id: str,
        seller_id: str,
        req: UpdateListingRequest,
    ) -> OwnerListingDetail:
        listing = await self._load_owned(db, listing_id, seller_id)
        now = self._clock()
        changes = req.model_dump(exclude_unset=True)

        fields: dict[str, Any] = {
            name: changes[name] for name in _PLAIN_UPDATE_FIELDS if name in changes
        }
        # Explicit nulls on NOT NULL columns mean "leave as is"
        for name in ("species", "contact_preference"):
            if name in fields and fields[name] is None:
                del fields[name]
        if "species" in fields:
            fields["species"] = fields["species"].strip()
        if "contact_preference" in fields:
            fields["contact_preference"] = ContactPreference(fields["contact_preference"]).value
        if "photo_urls" in fields and fields["photo_urls"] is None:
            fields["photo_urls"] = []

        # New coordinates or a new privacy level both re-run the fuzzer
        if req.location is not None or req.fuzzing_level is not None:
            latitude = req.location.latitude if req.location else listing.latitude
            longitude = req.location.longitude if req.location else listing.longitude
            level = req.fuzzing_level or listing.fuzzing_level
            fields.update(_location_columns(self._fuzz(latitude, longitude, level), latitude, longitude))

        expires_at = listing.expires_at
        if req.expiration_days is not None:
            # Expired listings come back only through republish; sold is terminal
            if listing.status in (ListingStatus.EXPIRED, ListingStatus.SOLD):
                raise ConstraintViolationError(
                    [f"expiration of a {ListingStatus(listing.status).value} listing cannot be changed; "
                     "only republish extends it"]
                )
            expires_at = calculate_expiration_date(now, req.expiration_days)
            fields["expires_at"] = expires_at

        check_listing_invariants(
            fields.get("quantity", listing.quantity),
            fields.get("min_price", listing.min_price),
            fields.get("max_price", listing.max_price),
            listing.created_at,
            expires_at,
        )
        await self._repo.update_listing_fields(db, listing_id, fields, now)
        return OwnerListingDetail.from_domain(await self._reload(db, listing_id))

    async def change_status(
        self, db: AsyncSession, listing_id: str, seller_id: str, to_status: str
    ) -> OwnerListingDetail:
        listing = await self._load_owned(db, listing_id, seller_id)
        target = ensure_transition(listing.status, to_status)
        now = self._clock()

        expires_at = listing.expires_at
        if listing.status == ListingStatus.EXPIRED and target == ListingStatus.ACTIVE:
            # Republish starts a fresh listing period
            expires_at = calculate_expiration_date(now, settings.LISTING_PERIOD_DAYS)
        elif target == ListingStatus.EXPIRED:
            # Still strictly after created_at, even when expired at the instant of creation
            floor = listing.created_at + timedelta(microseconds=1)
            expires_at = max(floor, min(listing.expires_at, now))

        updated = await self._repo.update_status(
            db, listing_id, listing.status, target.value, expires_at, now
        )
        if not updated:
            # Someone else moved the listing since we read it
            current = await self._reload(db, listing_id)
            raise InvalidTransitionError(current.status, target.value)

        logger.info(
            "Listing %s status %s → %s by seller=%s",
            listing_id, listing.status, target.value, seller_id,
        )
        return OwnerListingDetail.from_domain(await self._reload(db, listing_id))

    async def delete_listing(
        self, db: AsyncSession, listing_id: str, seller_id: str
    ) -> DeleteListingResponse:
        await self._load_owned(db, listing_id, seller_id)
        requesters = await self._engagement.get_pending_requester_ids(db, listing_id)
        deleted = await self._repo.soft_delete_listing(db, listing_id, self._clock())
        if not deleted:
            raise ListingNotFoundError(listing_id)
        self._notifier.listing_removed(listing_id, requesters)
        logger.info(
            "Listing %s soft-deleted by seller=%s (%d pending requesters)",
            listing_id, seller_id, len(requesters),
        )
        return DeleteListingResponse(
            listing_id=listing_id, deleted=True, notified_buyers=len(requesters)
        )

    def prefill_from_batch(self, req: PrefillRequest) -> ListingDraftResponse:
        batch = BatchSnapshot(
            id=req.batch_id,
            livestock_type=req.livestock_type.value,
            species=req.species,
            current_quantity=req.current_quantity,
            market_price=req.market_price,
        )
        return ListingDraftResponse.from_domain(generate_listing_from_batch(batch))

    # ------------------------------------------------------------------
    # Buyer
    # ------------------------------------------------------------------

    async def get_listings(
        self,
        db: AsyncSession,
        filters: ListingFilter,
        page: int,
        page_size: int,
        sort: str = ListingSort.NEWEST,
    ) -> ListingPageResponse:
        result = await self._repo.get_listings(
            db, filters, page, page_size, self._clock(), sort
        )
        return ListingPageResponse(
            data=[PublicListing.from_domain(m) for m in result.data],
            total=result.total,
            page=page,
            page_size=page_size,
            total_pages=(result.total + page_size - 1) // page_size,
        )

    async def search_nearby(
        self,
        db: AsyncSession,
        latitude: float,
        longitude: float,
        radius_km: float,
        filters: ListingFilter,
    ) -> list[PublicListing]:
        """Listings whose public point lies within radius_km, nearest first."""
        if not validate_coordinates(latitude, longitude):
            raise InvalidCoordinatesError(latitude, longitude)
        candidates = await self._repo.get_listings_in_bounding_box(
            db, bounding_box(latitude, longitude, radius_km), filters, self._clock()
        )
        hits: list[tuple[float, Listing]] = []
        for m in candidates:
            d = haversine_km(latitude, longitude, m.public_latitude, m.public_longitude)
            if d <= radius_km:
                hits.append((d, m))
        hits.sort(key=lambda h: (h[0], h[1].id))
        return [PublicListing.from_domain(m, distance_km=round(d, 2)) for d, m in hits]

    async def get_listing_detail(
        self, db: AsyncSession, listing_id: str, viewer_id: str | None
    ) -> PublicListing:
        listing = await self._repo.get_listing_by_id(db, listing_id)
        if listing is None:
            raise ListingNotFoundError(listing_id)
        if viewer_id is not None and viewer_id == listing.seller_id:
            return OwnerListingDetail.from_domain(listing)
        return PublicListing.from_domain(listing)
