"""EngagementService — one view per viewer per day, one contact request per buyer.

Policy on top of EngagementRepository's atomic statements. The repository's
answer is authoritative: a False/existing-id result is a normal outcome,
never retried and never logged as a failure.
"""

import logging
from collections.abc import Callable
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.lm_common.datetime_utils import utc_day, utc_now
from src.lm_common.enums import ContactRequestStatus, ListingStatus
from src.lm_common.errors import (
    ContactOwnListingError,
    ContactRequestNotFoundError,
    ListingNotFoundError,
    NotListingOwnerError,
    RequestAlreadyRespondedError,
)
from src.lm_common.notifier import LoggingNotifier, Notifier
from src.lm_engagement.application.schemas import (
    ContactRequestCreate,
    ContactRequestCreated,
    ContactRequestOut,
    ContactStatusOut,
    ListingAnalytics,
)
from src.lm_engagement.domain.models import NewContactRequest
from src.lm_engagement.domain.repository import EngagementRepositoryProtocol
from src.lm_engagement.infrastructure.persistence import EngagementRepository
from src.lm_listing.domain.lifecycle import is_listing_expired
from src.lm_listing.domain.repository import ListingRepositoryProtocol
from src.lm_listing.infrastructure.persistence import ListingRepository

logger = logging.getLogger(__name__)


def viewer_key(viewer_id: str | None, viewer_ip: str | None) -> str | None:
    """Dedup identity: the user id when known, else the client IP."""
    if viewer_id:
        return viewer_id
    if viewer_ip:
        return f"ip:{viewer_ip}"
    return None


def conversion_rate(view_count: int, contact_count: int) -> float:
    if view_count <= 0:
        return 0.0
    return round(contact_count * 100 / view_count, 2)


class EngagementService:
    def __init__(
        self,
        repo: EngagementRepositoryProtocol | None = None,
        listing_repo: ListingRepositoryProtocol | None = None,
        notifier: Notifier | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._repo: EngagementRepositoryProtocol = repo or EngagementRepository()
        self._listings: ListingRepositoryProtocol = listing_repo or ListingRepository()
        self._notifier: Notifier = notifier or LoggingNotifier()
        self._clock = clock

    async def record_view(
        self,
        db: AsyncSession,
        listing_id: str,
        viewer_id: str | None,
        viewer_ip: str | None,
    ) -> bool:
        """True iff this view was counted. Anonymous callers without an IP are not."""
        key = viewer_key(viewer_id, viewer_ip)
        if key is None:
            return False
        now = self._clock()
        return await self._repo.record_listing_view(
            db, listing_id, key, viewer_id, viewer_ip, utc_day(now), now
        )

    async def request_contact(
        self,
        db: AsyncSession,
        listing_id: str,
        buyer_id: str,
        req: ContactRequestCreate,
    ) -> ContactRequestCreated:
        listing = await self._listings.get_listing_by_id(db, listing_id)
        if listing is None:
            raise ListingNotFoundError(listing_id)
        now = self._clock()
        if listing.status == ListingStatus.EXPIRED or is_listing_expired(listing.expires_at, now):
            raise ListingNotFoundError(listing_id)
        if listing.seller_id == buyer_id:
            raise ContactOwnListingError()

        request_id, created = await self._repo.insert_contact_request(
            db,
            NewContactRequest(
                listing_id=listing_id,
                buyer_id=buyer_id,
                contact_method=req.contact_method.value,
                created_at=now,
                message=req.message,
                phone_number=req.phone_number,
                email=str(req.email) if req.email else None,
            ),
        )
        if created:
            self._notifier.contact_requested(listing.seller_id, listing_id, request_id)
        return ContactRequestCreated(request_id=request_id, created=created)

    async def has_contacted(
        self, db: AsyncSession, listing_id: str, buyer_id: str
    ) -> ContactStatusOut:
        request = await self._repo.find_contact_request(db, listing_id, buyer_id)
        if request is None:
            return ContactStatusOut(has_contacted=False)
        return ContactStatusOut(has_contacted=True, request=ContactRequestOut.from_domain(request))

    async def respond_to_request(
        self,
        db: AsyncSession,
        request_id: str,
        seller_id: str,
        approved: bool,
        message: str | None,
    ) -> ContactRequestOut:
        request = await self._repo.get_contact_request_by_id(db, request_id)
        if request is None:
            raise ContactRequestNotFoundError(request_id)
        if request.seller_id != seller_id:
            raise NotListingOwnerError(request.listing_id)
        if request.status != ContactRequestStatus.PENDING:
            raise RequestAlreadyRespondedError(request_id, request.status)

        to_status = ContactRequestStatus.APPROVED if approved else ContactRequestStatus.DENIED
        updated = await self._repo.update_contact_request_status(
            db, request_id, to_status.value, message, self._clock()
        )
        if not updated:
            current = await self._repo.get_contact_request_by_id(db, request_id)
            raise RequestAlreadyRespondedError(
                request_id, current.status if current else "removed"
            )

        logger.info("Contact request %s %s by seller=%s", request_id, to_status.value, seller_id)
        self._notifier.request_answered(request.buyer_id, request_id, to_status.value)
        refreshed = await self._repo.get_contact_request_by_id(db, request_id)
        if refreshed is None:
            raise ContactRequestNotFoundError(request_id)
        return ContactRequestOut.from_domain(refreshed)

    async def list_requests_for_seller(
        self, db: AsyncSession, seller_id: str, status: str | None
    ) -> list[ContactRequestOut]:
        sql_status = None if status in (None, "all") else ContactRequestStatus(status).value
        requests = await self._repo.list_requests_for_seller(db, seller_id, sql_status)
        return [ContactRequestOut.from_domain(r) for r in requests]

    async def list_requests_for_buyer(
        self, db: AsyncSession, buyer_id: str
    ) -> list[ContactRequestOut]:
        requests = await self._repo.list_requests_for_buyer(db, buyer_id)
        return [ContactRequestOut.from_domain(r) for r in requests]

    async def get_analytics(
        self, db: AsyncSession, listing_id: str, seller_id: str
    ) -> ListingAnalytics:
        listing = await self._listings.get_listing_by_id(db, listing_id)
        if listing is None:
            raise ListingNotFoundError(listing_id)
        if listing.seller_id != seller_id:
            raise NotListingOwnerError(listing_id)
        return ListingAnalytics(
            listing_id=listing_id,
            view_count=listing.view_count,
            contact_count=listing.contact_count,
            conversion_rate=conversion_rate(listing.view_count, listing.contact_count),
        )
