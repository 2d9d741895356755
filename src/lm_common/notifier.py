"""Outbound notifications to sellers and buyers.

Delivery (push, SMS, in-app inbox) belongs to the messaging layer, which is
not part of this service. LoggingNotifier records what would be sent.
"""

import logging
from datetime import datetime
from typing import Protocol

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def contact_requested(self, seller_id: str, listing_id: str, request_id: str) -> None: ...

    def request_answered(self, buyer_id: str, request_id: str, status: str) -> None: ...

    def listing_removed(self, listing_id: str, buyer_ids: list[str]) -> None: ...

    def listing_expiring(
        self, seller_id: str, listing_id: str, expires_at: datetime
    ) -> None: ...


class LoggingNotifier:
    def contact_requested(self, seller_id: str, listing_id: str, request_id: str) -> None:
        logger.info(
            "notify seller=%s: new contact request %s on listing %s",
            seller_id, request_id, listing_id,
        )

    def request_answered(self, buyer_id: str, request_id: str, status: str) -> None:
        logger.info("notify buyer=%s: contact request %s %s", buyer_id, request_id, status)

    def listing_removed(self, listing_id: str, buyer_ids: list[str]) -> None:
        for buyer_id in buyer_ids:
            logger.info("notify buyer=%s: listing %s no longer available", buyer_id, listing_id)

    def listing_expiring(
        self, seller_id: str, listing_id: str, expires_at: datetime
    ) -> None:
        logger.info(
            "notify seller=%s: listing %s expires at %s",
            seller_id, listing_id, expires_at.isoformat(),
        )
