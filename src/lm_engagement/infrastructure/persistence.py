"""EngagementRepository — dedup-gated counter mutations.

Each gated mutation is ONE statement: an INSERT ... ON CONFLICT DO NOTHING
in a data-modifying CTE feeds the counter UPDATE. The unique constraint
decides; if the insert produced no row the UPDATE touches nothing. There is
no window between check and increment, and a cancelled statement leaves
neither half behind.

    listing_views             UNIQUE (listing_id, viewer_key, view_date)
    listing_contact_requests  UNIQUE (listing_id, buyer_id)
"""

import uuid
from datetime import date, datetime
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.lm_common.errors import ListingNotFoundError
from src.lm_engagement.domain.models import (
    ContactRequest,
    CounterMismatch,
    NewContactRequest,
)

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_RECORD_VIEW_SQL = text("""
    WITH target AS (
        SELECT id FROM marketplace_listings
        WHERE id = :listing_id AND deleted_at IS NULL
    ),
    inserted AS (
        INSERT INTO listing_views
            (listing_id, viewer_id, viewer_ip, viewer_key, view_date, viewed_at)
        SELECT target.id,
               CAST(:viewer_id AS TEXT), CAST(:viewer_ip AS TEXT), CAST(:viewer_key AS TEXT),
               CAST(:view_date AS DATE), CAST(:viewed_at AS TIMESTAMPTZ)
        FROM target
        ON CONFLICT (listing_id, viewer_key, view_date) DO NOTHING
        RETURNING listing_id
    )
    UPDATE marketplace_listings
    SET view_count = view_count + 1
    WHERE id IN (SELECT listing_id FROM inserted)
    RETURNING view_count
""")

# The `bumped` CTE runs even though the outer SELECT never reads it.
_INSERT_CONTACT_REQUEST_SQL = text("""
    WITH target AS (
        SELECT id FROM marketplace_listings
        WHERE id = :listing_id AND deleted_at IS NULL
    ),
    inserted AS (
        INSERT INTO listing_contact_requests
            (id, listing_id, buyer_id, message, contact_method,
             phone_number, email, status, created_at)
        SELECT CAST(:id AS TEXT), target.id, CAST(:buyer_id AS TEXT),
               CAST(:message AS TEXT), CAST(:contact_method AS TEXT),
               CAST(:phone_number AS TEXT), CAST(:email AS TEXT),
               'pending', CAST(:created_at AS TIMESTAMPTZ)
        FROM target
        ON CONFLICT (listing_id, buyer_id) DO NOTHING
        RETURNING id, listing_id
    ),
    bumped AS (
        UPDATE marketplace_listings
        SET contact_count = contact_count + 1
        WHERE id IN (SELECT listing_id FROM inserted)
        RETURNING id
    )
    SELECT id FROM inserted
""")

_CONTACT_COLUMNS = """
    c.id, c.listing_id, c.buyer_id, c.message, c.contact_method,
    c.phone_number, c.email, c.status, c.response_message,
    c.responded_at, c.created_at,
    l.seller_id, l.species AS listing_species
"""

_FIND_CONTACT_REQUEST_SQL = text(f"""
    SELECT {_CONTACT_COLUMNS}
    FROM listing_contact_requests c
    JOIN marketplace_listings l ON l.id = c.listing_id
    WHERE c.listing_id = :listing_id AND c.buyer_id = :buyer_id
""")

_EXISTS_CONTACT_REQUEST_SQL = text("""
    SELECT 1 FROM listing_contact_requests
    WHERE listing_id = :listing_id AND buyer_id = :buyer_id
""")

_GET_CONTACT_REQUEST_SQL = text(f"""
    SELECT {_CONTACT_COLUMNS}
    FROM listing_contact_requests c
    JOIN marketplace_listings l ON l.id = c.listing_id
    WHERE c.id = :request_id
""")

_RESPOND_SQL = text("""
    UPDATE listing_contact_requests
    SET status = :to_status, response_message = :response_message, responded_at = :now
    WHERE id = :request_id AND status = 'pending'
    RETURNING id
""")

_LIST_FOR_SELLER_SQL = text(f"""
    SELECT {_CONTACT_COLUMNS}
    FROM listing_contact_requests c
    JOIN marketplace_listings l ON l.id = c.listing_id
    WHERE l.seller_id = :seller_id
      AND l.deleted_at IS NULL
      AND (CAST(:status AS TEXT) IS NULL OR c.status = CAST(:status AS TEXT))
    ORDER BY c.created_at DESC, c.id DESC
""")

_LIST_FOR_BUYER_SQL = text(f"""
    SELECT {_CONTACT_COLUMNS}
    FROM listing_contact_requests c
    JOIN marketplace_listings l ON l.id = c.listing_id
    WHERE c.buyer_id = :buyer_id
    ORDER BY c.created_at DESC, c.id DESC
""")

_PENDING_REQUESTERS_SQL = text("""
    SELECT buyer_id FROM listing_contact_requests
    WHERE listing_id = :listing_id AND status = 'pending'
    ORDER BY created_at ASC
""")

_COUNTER_AUDIT_SQL = text("""
    SELECT * FROM (
        SELECT l.id AS listing_id,
               l.view_count,
               l.contact_count,
               (SELECT COUNT(*) FROM listing_views v
                WHERE v.listing_id = l.id) AS view_rows,
               (SELECT COUNT(*) FROM listing_contact_requests c
                WHERE c.listing_id = l.id) AS contact_rows
        FROM marketplace_listings l
    ) audit
    WHERE view_count <> view_rows OR contact_count <> contact_rows
    ORDER BY listing_id
""")


def _row_to_contact_request(row: Any) -> ContactRequest:
    return ContactRequest(
        id=row.id,
        listing_id=row.listing_id,
        buyer_id=row.buyer_id,
        message=row.message,
        contact_method=row.contact_method,
        phone_number=row.phone_number,
        email=row.email,
        status=row.status,
        response_message=row.response_message,
        responded_at=row.responded_at,
        created_at=row.created_at,
        seller_id=row.seller_id,
        listing_species=row.listing_species,
    )


class EngagementRepository:
    """Concrete repository for listing_views / listing_contact_requests."""

    async def record_listing_view(
        self,
        db: AsyncSession,
        listing_id: str,
        viewer_key: str,
        viewer_id: str | None,
        viewer_ip: str | None,
        view_date: date,
        viewed_at: datetime,
    ) -> bool:
        """True iff this call inserted the day's view row and bumped view_count.

        False for a same-day duplicate and for a missing or deleted listing.
        """
        result = await db.execute(
            _RECORD_VIEW_SQL,
            {
                "listing_id": listing_id,
                "viewer_id": viewer_id,
                "viewer_ip": viewer_ip,
                "viewer_key": viewer_key,
                "view_date": view_date,
                "viewed_at": viewed_at,
            },
        )
        return result.fetchone() is not None

    async def insert_contact_request(
        self, db: AsyncSession, request: NewContactRequest
    ) -> tuple[str, bool]:
        """Return (id, created). A repeat call returns the existing id, created=False.

        Raises:
            ListingNotFoundError: listing missing or soft-deleted.
        """
        result = await db.execute(
            _INSERT_CONTACT_REQUEST_SQL,
            {
                "id": str(uuid.uuid4()),
                "listing_id": request.listing_id,
                "buyer_id": request.buyer_id,
                "message": request.message,
                "contact_method": request.contact_method,
                "phone_number": request.phone_number,
                "email": request.email,
                "created_at": request.created_at,
            },
        )
        row = result.fetchone()
        if row is not None:
            return str(row.id), True

        # Conflict: ON CONFLICT waited for the competing insert to commit, so
        # this new statement's snapshot sees it.
        existing = await db.execute(
            _FIND_CONTACT_REQUEST_SQL,
            {"listing_id": request.listing_id, "buyer_id": request.buyer_id},
        )
        existing_row = existing.fetchone()
        if existing_row is None:
            raise ListingNotFoundError(request.listing_id)
        return str(existing_row.id), False

    async def has_existing_contact_request(
        self, db: AsyncSession, listing_id: str, buyer_id: str
    ) -> bool:
        result = await db.execute(
            _EXISTS_CONTACT_REQUEST_SQL, {"listing_id": listing_id, "buyer_id": buyer_id}
        )
        return result.fetchone() is not None

    async def get_contact_request_by_id(
        self, db: AsyncSession, request_id: str
    ) -> ContactRequest | None:
        result = await db.execute(_GET_CONTACT_REQUEST_SQL, {"request_id": request_id})
        row = result.fetchone()
        return _row_to_contact_request(row) if row else None

    async def find_contact_request(
        self, db: AsyncSession, listing_id: str, buyer_id: str
    ) -> ContactRequest | None:
        result = await db.execute(
            _FIND_CONTACT_REQUEST_SQL, {"listing_id": listing_id, "buyer_id": buyer_id}
        )
        row = result.fetchone()
        return _row_to_contact_request(row) if row else None

    async def update_contact_request_status(
        self,
        db: AsyncSession,
        request_id: str,
        to_status: str,
        response_message: str | None,
        now: datetime,
    ) -> bool:
        result = await db.execute(
            _RESPOND_SQL,
            {
                "request_id": request_id,
                "to_status": to_status,
                "response_message": response_message,
                "now": now,
            },
        )
        return result.fetchone() is not None

    async def list_requests_for_seller(
        self, db: AsyncSession, seller_id: str, status: str | None
    ) -> list[ContactRequest]:
        result = await db.execute(
            _LIST_FOR_SELLER_SQL, {"seller_id": seller_id, "status": status}
        )
        return [_row_to_contact_request(r) for r in result.fetchall()]

    async def list_requests_for_buyer(
        self, db: AsyncSession, buyer_id: str
    ) -> list[ContactRequest]:
        result = await db.execute(_LIST_FOR_BUYER_SQL, {"buyer_id": buyer_id})
        return [_row_to_contact_request(r) for r in result.fetchall()]

    async def get_pending_requester_ids(
        self, db: AsyncSession, listing_id: str
    ) -> list[str]:
        result = await db.execute(_PENDING_REQUESTERS_SQL, {"listing_id": listing_id})
        return [r.buyer_id for r in result.fetchall()]

    async def find_counter_mismatches(self, db: AsyncSession) -> list[CounterMismatch]:
        result = await db.execute(_COUNTER_AUDIT_SQL)
        return [
            CounterMismatch(
                listing_id=r.listing_id,
                view_count=r.view_count,
                view_rows=r.view_rows,
                contact_count=r.contact_count,
                contact_rows=r.contact_rows,
            )
            for r in result.fetchall()
        ]
