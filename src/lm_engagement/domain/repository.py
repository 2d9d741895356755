"""Repository Protocol for views and contact requests."""

from datetime import date, datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.lm_engagement.domain.models import (
    ContactRequest,
    CounterMismatch,
    NewContactRequest,
)


class EngagementRepositoryProtocol(Protocol):
    async def record_listing_view(
        self,
        db: AsyncSession,
        listing_id: str,
        viewer_key: str,
        viewer_id: str | None,
        viewer_ip: str | None,
        view_date: date,
        viewed_at: datetime,
    ) -> bool: ...

    async def insert_contact_request(
        self, db: AsyncSession, request: NewContactRequest
    ) -> tuple[str, bool]: ...

    async def has_existing_contact_request(
        self, db: AsyncSession, listing_id: str, buyer_id: str
    ) -> bool: ...

    async def get_contact_request_by_id(
        self, db: AsyncSession, request_id: str
    ) -> ContactRequest | None: ...

    async def find_contact_request(
        self, db: AsyncSession, listing_id: str, buyer_id: str
    ) -> ContactRequest | None: ...

    async def update_contact_request_status(
        self,
        db: AsyncSession,
        request_id: str,
        to_status: str,
        response_message: str | None,
        now: datetime,
    ) -> bool: ...

    async def list_requests_for_seller(
        self, db: AsyncSession, seller_id: str, status: str | None
    ) -> list[ContactRequest]: ...

    async def list_requests_for_buyer(
        self, db: AsyncSession, buyer_id: str
    ) -> list[ContactRequest]: ...

    async def get_pending_requester_ids(
        self, db: AsyncSession, listing_id: str
    ) -> list[str]: ...

    async def find_counter_mismatches(self, db: AsyncSession) -> list[CounterMismatch]: ...
