"""Domain models for lm_engagement."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class ContactRequest:
    id: str
    listing_id: str
    buyer_id: str
    message: str | None
    contact_method: str
    phone_number: str | None
    email: str | None
    status: str
    response_message: str | None
    responded_at: datetime | None
    created_at: datetime
    # Joined from marketplace_listings when the query needs it
    seller_id: str | None = None
    listing_species: str | None = None


@dataclass
class NewContactRequest:
    listing_id: str
    buyer_id: str
    contact_method: str
    created_at: datetime
    message: str | None = None
    phone_number: str | None = None
    email: str | None = None


@dataclass
class CounterMismatch:
    """A listing whose counters disagree with its engagement rows."""

    listing_id: str
    view_count: int
    view_rows: int
    contact_count: int
    contact_rows: int
