"""Admin application service: expiration sweep, expiry warnings, counter audit."""

import logging
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.lm_common.notifier import LoggingNotifier, Notifier
from src.lm_engagement.domain.repository import EngagementRepositoryProtocol
from src.lm_engagement.infrastructure.persistence import EngagementRepository
from src.lm_listing.domain.lifecycle import should_notify_expiration
from src.lm_listing.domain.repository import ListingRepositoryProtocol
from src.lm_listing.infrastructure.persistence import ListingRepository

logger = logging.getLogger(__name__)


class AdminService:
    def __init__(
        self,
        listing_repo: ListingRepositoryProtocol | None = None,
        engagement_repo: EngagementRepositoryProtocol | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self._listings: ListingRepositoryProtocol = listing_repo or ListingRepository()
        self._engagement: EngagementRepositoryProtocol = engagement_repo or EngagementRepository()
        self._notifier: Notifier = notifier or LoggingNotifier()

    async def run_expiration_sweep(self, db: AsyncSession, now: datetime) -> dict[str, Any]:
        """Flip every active listing with expires_at < now to expired."""
        expired = await self._listings.mark_expired_listings(db, now)
        logger.info("Expiration sweep at %s: %d listings expired", now.isoformat(), expired)
        return {"expired": expired, "swept_at": now.isoformat()}

    async def check_expiring_listings(
        self, db: AsyncSession, now: datetime, window_days: int | None = None
    ) -> dict[str, Any]:
        days = settings.EXPIRY_WARNING_DAYS if window_days is None else window_days
        window_end = now + timedelta(days=days)
        expiring = await self._listings.get_expiring_listings(db, now, window_end)

        notified: list[str] = []
        for listing in expiring:
            if not should_notify_expiration(listing.expires_at, now, days):
                continue
            self._notifier.listing_expiring(listing.seller_id, listing.id, listing.expires_at)
            notified.append(listing.id)
        logger.info("Expiring-listing check: %d sellers notified (window %dd)", len(notified), days)
        return {"notified": len(notified), "listing_ids": notified, "window_days": days}

    async def verify_engagement_counters(self, db: AsyncSession) -> dict[str, Any]:
        """Compare view_count / contact_count against the engagement rows."""
        mismatches = await self._engagement.find_counter_mismatches(db)
        for m in mismatches:
            logger.error(
                "Counter mismatch on listing %s: view_count=%d rows=%d, "
                "contact_count=%d rows=%d",
                m.listing_id, m.view_count, m.view_rows, m.contact_count, m.contact_rows,
            )
        return {
            "ok": not mismatches,
            "violations": [
                {
                    "listing_id": m.listing_id,
                    "view_count": m.view_count,
                    "view_rows": m.view_rows,
                    "contact_count": m.contact_count,
                    "contact_rows": m.contact_rows,
                }
                for m in mismatches
            ],
        }
