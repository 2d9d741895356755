"""ListingRepository — concrete implementation of ListingRepositoryProtocol.

All queries use raw text() SQL (no ORM).
asyncpg NULL parameter pattern: CAST(:param AS TYPE) IS NULL required for None values.

view_count / contact_count never appear in an UPDATE here; they are owned by
lm_engagement's dedup-gated statements.
"""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.lm_common.enums import ListingSort, ListingStatus
from src.lm_common.errors import ConstraintViolationError, InternalError
from src.lm_listing.domain.lifecycle import check_listing_invariants
from src.lm_listing.domain.models import (
    ExpiringListing,
    Listing,
    ListingFilter,
    ListingPage,
    NewListing,
)

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_SELECT_COLUMNS = """
    id, seller_id, livestock_type, species, quantity,
    min_price, max_price, currency,
    latitude, longitude, public_latitude, public_longitude,
    country, region, locality, formatted_address, fuzzing_level,
    description, photo_urls, contact_preference, batch_id,
    status, expires_at, view_count, contact_count,
    created_at, updated_at, deleted_at
"""

# Visible to buyers: active, not soft-deleted, not yet expired
# (the sweep may not have run yet).
_PUBLIC_FILTER_SQL = """
    status = 'active'
    AND deleted_at IS NULL
    AND expires_at >= :now
    AND (CAST(:livestock_type AS TEXT) IS NULL
         OR livestock_type = CAST(:livestock_type AS TEXT))
    AND (CAST(:species_like AS TEXT) IS NULL
         OR species ILIKE CAST(:species_like AS TEXT) ESCAPE '\\')
    AND (CAST(:min_price AS BIGINT) IS NULL OR min_price >= CAST(:min_price AS BIGINT))
    AND (CAST(:max_price AS BIGINT) IS NULL OR max_price <= CAST(:max_price AS BIGINT))
    AND (CAST(:region_like AS TEXT) IS NULL
         OR region ILIKE CAST(:region_like AS TEXT) ESCAPE '\\')
    AND (CAST(:location_like AS TEXT) IS NULL
         OR country ILIKE CAST(:location_like AS TEXT) ESCAPE '\\'
         OR region ILIKE CAST(:location_like AS TEXT) ESCAPE '\\'
         OR locality ILIKE CAST(:location_like AS TEXT) ESCAPE '\\'
         OR formatted_address ILIKE CAST(:location_like AS TEXT) ESCAPE '\\')
"""

# id is the final tie-breaker so pages never overlap.
_ORDER_BY = {
    ListingSort.NEWEST: "created_at DESC, id DESC",
    ListingSort.PRICE_ASC: "min_price ASC, id DESC",
    ListingSort.PRICE_DESC: "max_price DESC, id DESC",
}

_COUNT_LISTINGS_SQL = text(f"""
    SELECT COUNT(*) AS total
    FROM marketplace_listings
    WHERE {_PUBLIC_FILTER_SQL}
""")

_LIST_LISTINGS_SQL = {
    sort: text(f"""
        SELECT {_SELECT_COLUMNS}
        FROM marketplace_listings
        WHERE {_PUBLIC_FILTER_SQL}
        ORDER BY {order_by}
        LIMIT :limit OFFSET :offset
    """)
    for sort, order_by in _ORDER_BY.items()
}

_LIST_IN_BOX_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM marketplace_listings
    WHERE {_PUBLIC_FILTER_SQL}
      AND public_latitude BETWEEN :min_lat AND :max_lat
      AND public_longitude BETWEEN :min_lng AND :max_lng
""")

_GET_LISTING_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM marketplace_listings
    WHERE id = :listing_id AND deleted_at IS NULL
""")

_LIST_BY_SELLER_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM marketplace_listings
    WHERE seller_id = :seller_id
      AND deleted_at IS NULL
      AND (CAST(:status AS TEXT) IS NULL OR status = CAST(:status AS TEXT))
    ORDER BY created_at DESC, id DESC
""")

_INSERT_LISTING_SQL = text("""
    INSERT INTO marketplace_listings (
        id, seller_id, livestock_type, species, quantity,
        min_price, max_price, currency,
        latitude, longitude, public_latitude, public_longitude,
        country, region, locality, formatted_address, fuzzing_level,
        description, photo_urls, contact_preference, batch_id,
        status, expires_at, view_count, contact_count,
        created_at, updated_at
    ) VALUES (
        :id, :seller_id, :livestock_type, :species, :quantity,
        :min_price, :max_price, :currency,
        :latitude, :longitude, :public_latitude, :public_longitude,
        :country, :region, :locality, :formatted_address, :fuzzing_level,
        :description, :photo_urls, :contact_preference, :batch_id,
        'active', :expires_at, 0, 0,
        :created_at, :created_at
    )
    RETURNING id
""")

# Conditional on the status we validated against: a concurrent change makes
# this a no-op instead of silently overwriting it.
_UPDATE_STATUS_SQL = text("""
    UPDATE marketplace_listings
    SET status = :to_status, expires_at = :expires_at, updated_at = :now
    WHERE id = :listing_id
      AND status = :from_status
      AND deleted_at IS NULL
    RETURNING id
""")

_SOFT_DELETE_SQL = text("""
    UPDATE marketplace_listings
    SET deleted_at = :now, updated_at = :now
    WHERE id = :listing_id AND deleted_at IS NULL
    RETURNING id
""")

_MARK_EXPIRED_SQL = text("""
    UPDATE marketplace_listings
    SET status = 'expired', updated_at = :now
    WHERE status = 'active'
      AND deleted_at IS NULL
      AND expires_at < :now
""")

_EXPIRING_SQL = text("""
    SELECT id, seller_id, species, expires_at
    FROM marketplace_listings
    WHERE status = 'active'
      AND deleted_at IS NULL
      AND expires_at >= :now
      AND expires_at <= :window_end
    ORDER BY expires_at ASC, id ASC
""")

# Columns a seller may edit. Status goes through update_status; counters
# are never edited here.
_UPDATABLE_COLUMNS = frozenset({
    "livestock_type", "species", "quantity", "min_price", "max_price",
    "description", "photo_urls", "contact_preference",
    "latitude", "longitude", "public_latitude", "public_longitude",
    "country", "region", "locality", "formatted_address", "fuzzing_level",
    "expires_at",
})

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def like_pattern(term: str | None) -> str | None:
    """Substring ILIKE pattern with LIKE metacharacters escaped."""
    if term is None:
        return None
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _filter_params(filters: ListingFilter, now: datetime) -> dict[str, Any]:
    return {
        "now": now,
        "livestock_type": filters.livestock_type,
        "species_like": like_pattern(filters.species),
        "min_price": filters.min_price,
        "max_price": filters.max_price,
        "region_like": like_pattern(filters.region),
        "location_like": like_pattern(filters.location),
    }


def _row_to_listing(row: Any) -> Listing:
    return Listing(
        id=row.id,
        seller_id=row.seller_id,
        livestock_type=row.livestock_type,
        species=row.species,
        quantity=row.quantity,
        min_price=row.min_price,
        max_price=row.max_price,
        currency=row.currency,
        latitude=row.latitude,
        longitude=row.longitude,
        public_latitude=row.public_latitude,
        public_longitude=row.public_longitude,
        country=row.country,
        region=row.region,
        locality=row.locality,
        formatted_address=row.formatted_address,
        fuzzing_level=row.fuzzing_level,
        description=row.description,
        photo_urls=list(row.photo_urls or []),
        contact_preference=row.contact_preference,
        batch_id=row.batch_id,
        status=row.status,
        expires_at=row.expires_at,
        view_count=row.view_count,
        contact_count=row.contact_count,
        created_at=row.created_at,
        updated_at=row.updated_at,
        deleted_at=row.deleted_at,
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class ListingRepository:
    """Concrete repository for the marketplace_listings table."""

    async def insert_listing(self, db: AsyncSession, listing: NewListing) -> str:
        check_listing_invariants(
            listing.quantity,
            listing.min_price,
            listing.max_price,
            listing.created_at,
            listing.expires_at,
        )
        try:
            result = await db.execute(
                _INSERT_LISTING_SQL,
                {
                    "id": str(uuid.uuid4()),
                    "seller_id": listing.seller_id,
                    "livestock_type": listing.livestock_type,
                    "species": listing.species,
                    "quantity": listing.quantity,
                    "min_price": listing.min_price,
                    "max_price": listing.max_price,
                    "currency": listing.currency,
                    "latitude": listing.latitude,
                    "longitude": listing.longitude,
                    "public_latitude": listing.public_latitude,
                    "public_longitude": listing.public_longitude,
                    "country": listing.country,
                    "region": listing.region,
                    "locality": listing.locality,
                    "formatted_address": listing.formatted_address,
                    "fuzzing_level": listing.fuzzing_level,
                    "description": listing.description,
                    "photo_urls": list(listing.photo_urls),
                    "contact_preference": listing.contact_preference,
                    "batch_id": listing.batch_id,
                    "expires_at": listing.expires_at,
                    "created_at": listing.created_at,
                },
            )
        except IntegrityError as exc:
            # DB CHECK constraints are the backstop for the checks above
            raise ConstraintViolationError([str(exc.orig)]) from exc
        row = result.fetchone()
        if row is None:
            raise InternalError("Listing insert returned no rows")
        return str(row.id)

    async def get_listing_by_id(
        self, db: AsyncSession, listing_id: str
    ) -> Listing | None:
        result = await db.execute(_GET_LISTING_SQL, {"listing_id": listing_id})
        row = result.fetchone()
        return _row_to_listing(row) if row else None

    async def get_listings(
        self,
        db: AsyncSession,
        filters: ListingFilter,
        page: int,
        page_size: int,
        now: datetime,
        sort: str = ListingSort.NEWEST,
    ) -> ListingPage:
        if page < 1 or page_size < 1:
            raise ValueError(f"page and page_size must be >= 1, got {page}/{page_size}")
        params = _filter_params(filters, now)

        count_result = await db.execute(_COUNT_LISTINGS_SQL, params)
        total = int(count_result.scalar_one())

        list_result = await db.execute(
            _LIST_LISTINGS_SQL[ListingSort(sort)],
            {**params, "limit": page_size, "offset": (page - 1) * page_size},
        )
        rows = list_result.fetchall()
        return ListingPage(data=[_row_to_listing(r) for r in rows], total=total)

    async def get_listings_in_bounding_box(
        self,
        db: AsyncSession,
        box: tuple[float, float, float, float],
        filters: ListingFilter,
        now: datetime,
    ) -> list[Listing]:
        min_lat, max_lat, min_lng, max_lng = box
        result = await db.execute(
            _LIST_IN_BOX_SQL,
            {
                **_filter_params(filters, now),
                "min_lat": min_lat,
                "max_lat": max_lat,
                "min_lng": min_lng,
                "max_lng": max_lng,
            },
        )
        return [_row_to_listing(r) for r in result.fetchall()]

    async def get_listings_by_seller(
        self, db: AsyncSession, seller_id: str, status: str | None
    ) -> list[Listing]:
        result = await db.execute(
            _LIST_BY_SELLER_SQL, {"seller_id": seller_id, "status": status}
        )
        return [_row_to_listing(r) for r in result.fetchall()]

    async def update_listing_fields(
        self, db: AsyncSession, listing_id: str, fields: dict[str, Any], now: datetime
    ) -> None:
        unknown = set(fields) - _UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Columns not updatable: {sorted(unknown)}")
        if not fields:
            return
        assignments = ", ".join(f"{col} = :{col}" for col in sorted(fields))
        stmt = text(f"""
            UPDATE marketplace_listings
            SET {assignments}, updated_at = :now
            WHERE id = :listing_id AND deleted_at IS NULL
        """)
        try:
            await db.execute(stmt, {**fields, "listing_id": listing_id, "now": now})
        except IntegrityError as exc:
            raise ConstraintViolationError([str(exc.orig)]) from exc

    async def update_status(
        self,
        db: AsyncSession,
        listing_id: str,
        from_status: str,
        to_status: str,
        expires_at: datetime,
        now: datetime,
    ) -> bool:
        try:
            result = await db.execute(
                _UPDATE_STATUS_SQL,
                {
                    "listing_id": listing_id,
                    "from_status": ListingStatus(from_status).value,
                    "to_status": ListingStatus(to_status).value,
                    "expires_at": expires_at,
                    "now": now,
                },
            )
        except IntegrityError as exc:
            raise ConstraintViolationError([str(exc.orig)]) from exc
        return result.fetchone() is not None

    async def soft_delete_listing(
        self, db: AsyncSession, listing_id: str, now: datetime
    ) -> bool:
        result = await db.execute(
            _SOFT_DELETE_SQL, {"listing_id": listing_id, "now": now}
        )
        return result.fetchone() is not None

    async def mark_expired_listings(self, db: AsyncSession, now: datetime) -> int:
        result = await db.execute(_MARK_EXPIRED_SQL, {"now": now})
        return int(result.rowcount or 0)

    async def get_expiring_listings(
        self, db: AsyncSession, now: datetime, window_end: datetime
    ) -> list[ExpiringListing]:
        result = await db.execute(
            _EXPIRING_SQL, {"now": now, "window_end": window_end}
        )
        return [
            ExpiringListing(
                id=r.id, seller_id=r.seller_id, species=r.species, expires_at=r.expires_at
            )
            for r in result.fetchall()
        ]
