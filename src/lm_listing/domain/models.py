"""Domain models for lm_listing — pure dataclasses, no business logic."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class Listing:
    id: str
    seller_id: str
    livestock_type: str
    species: str
    quantity: int
    min_price: int                 # minor units
    max_price: int                 # minor units
    currency: str
    latitude: float                # precise, owner-only
    longitude: float               # precise, owner-only
    public_latitude: float
    public_longitude: float
    country: str
    region: str
    locality: str
    formatted_address: str
    fuzzing_level: str
    status: str
    expires_at: datetime
    view_count: int
    contact_count: int
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None = None
    description: str | None = None
    photo_urls: list[str] = field(default_factory=list)
    contact_preference: str = "app"
    batch_id: str | None = None


@dataclass
class NewListing:
    """Insert payload.

    No status and no counters: the repository always inserts status=active
    with view_count = contact_count = 0.
    """

    seller_id: str
    livestock_type: str
    species: str
    quantity: int
    min_price: int
    max_price: int
    currency: str
    latitude: float
    longitude: float
    public_latitude: float
    public_longitude: float
    country: str
    region: str
    locality: str
    formatted_address: str
    fuzzing_level: str
    created_at: datetime
    expires_at: datetime
    description: str | None = None
    photo_urls: list[str] = field(default_factory=list)
    contact_preference: str = "app"
    batch_id: str | None = None


@dataclass(frozen=True)
class ListingFilter:
    """Search criteria. Every dimension is optional; None means "no constraint".

    Present dimensions combine with AND:
      livestock_type  exact match
      species         case-insensitive substring of species
      min_price       listing.min_price >= min_price
      max_price       listing.max_price <= max_price
      region          case-insensitive substring of region
      location        case-insensitive substring of country/region/locality/address
    """

    livestock_type: str | None = None
    species: str | None = None
    min_price: int | None = None
    max_price: int | None = None
    region: str | None = None
    location: str | None = None

    @property
    def is_empty(self) -> bool:
        return all(
            v is None
            for v in (
                self.livestock_type, self.species, self.min_price,
                self.max_price, self.region, self.location,
            )
        )


@dataclass
class ListingPage:
    data: list[Listing]
    total: int


@dataclass
class ExpiringListing:
    id: str
    seller_id: str
    species: str
    expires_at: datetime


@dataclass
class BatchSnapshot:
    """What the farm-management side tells us about a production batch."""

    id: str
    livestock_type: str
    species: str
    current_quantity: int
    market_price: int | None = None


@dataclass
class ListingDraft:
    """Pre-filled, incomplete listing. Location and privacy level stay seller input."""

    livestock_type: str
    species: str
    quantity: int
    batch_id: str
    min_price: int | None = None
    max_price: int | None = None
