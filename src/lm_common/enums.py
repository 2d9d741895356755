"""Global enums — must match DB CHECK constraints exactly.

See alembic/versions/001_create_marketplace_listings.py and
003_create_listing_contact_requests.py.
"""

from enum import Enum


class ListingStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    SOLD = "sold"
    EXPIRED = "expired"


class LivestockType(str, Enum):
    POULTRY = "poultry"
    FISH = "fish"
    CATTLE = "cattle"
    GOATS = "goats"
    SHEEP = "sheep"
    BEES = "bees"


class FuzzingLevel(str, Enum):
    """How far public coordinates are pushed away from the precise point."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ContactPreference(str, Enum):
    APP = "app"
    PHONE = "phone"
    BOTH = "both"


class ContactMethod(str, Enum):
    APP = "app"
    PHONE = "phone"
    EMAIL = "email"


class ContactRequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"


class ListingSort(str, Enum):
    NEWEST = "newest"
    PRICE_ASC = "price_asc"
    PRICE_DESC = "price_desc"
