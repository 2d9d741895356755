"""Pydantic schemas for lm_listing requests and responses.

All responses are wrapped in ApiResponse at the router layer.

Coordinates, quantity and prices are left unconstrained here on purpose:
the fuzzer and lifecycle checks own those rules and raise the coded errors
(2001 InvalidCoordinates, 3003 ConstraintViolation) callers expect.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from config.settings import settings
from src.lm_common.enums import ContactPreference, FuzzingLevel, LivestockType
from src.lm_common.money import format_price
from src.lm_listing.domain.models import Listing, ListingDraft

# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class LocationIn(BaseModel):
    latitude: float
    longitude: float


class CreateListingRequest(BaseModel):
    livestock_type: LivestockType
    species: str = Field(..., min_length=1, max_length=100)
    quantity: int
    min_price: int
    max_price: int
    currency: str = Field(settings.DEFAULT_CURRENCY, min_length=3, max_length=3)
    location: LocationIn
    # str, not FuzzingLevel: an unknown level must surface as InvalidPrivacyLevel
    fuzzing_level: str = FuzzingLevel.MEDIUM.value
    description: str | None = Field(None, max_length=2000)
    photo_urls: list[str] = Field(default_factory=list, max_length=settings.MAX_PHOTOS)
    contact_preference: ContactPreference = ContactPreference.APP
    expiration_days: int | None = Field(None, ge=1, le=settings.MAX_LISTING_PERIOD_DAYS)
    batch_id: str | None = None


class UpdateListingRequest(BaseModel):
    """Partial update; only fields present in the body are applied."""

    species: str | None = Field(None, min_length=1, max_length=100)
    quantity: int | None = None
    min_price: int | None = None
    max_price: int | None = None
    description: str | None = Field(None, max_length=2000)
    photo_urls: list[str] | None = Field(None, max_length=settings.MAX_PHOTOS)
    contact_preference: ContactPreference | None = None
    location: LocationIn | None = None
    fuzzing_level: str | None = None
    # Extends from now, not from the current expires_at
    expiration_days: int | None = Field(None, ge=1, le=settings.MAX_LISTING_PERIOD_DAYS)


class ChangeStatusRequest(BaseModel):
    status: str


class PrefillRequest(BaseModel):
    """Snapshot of a production batch, sent by the farm-management side."""

    batch_id: str
    livestock_type: LivestockType
    species: str
    current_quantity: int
    market_price: int | None = None


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class PublicListing(BaseModel):
    """What any buyer may see. Never carries the precise coordinates.

    Also the record stored in the client offline cache snapshot.
    """

    id: str
    seller_id: str
    livestock_type: str
    species: str
    quantity: int
    min_price: int
    max_price: int
    currency: str
    price_display: str
    public_latitude: float
    public_longitude: float
    country: str
    region: str
    locality: str
    formatted_address: str
    fuzzing_level: str
    description: str | None = None
    photo_urls: list[str] = Field(default_factory=list)
    contact_preference: str
    status: str
    expires_at: datetime
    view_count: int
    contact_count: int
    created_at: datetime
    distance_km: float | None = None

    @classmethod
    def from_domain(cls, listing: Listing, distance_km: float | None = None) -> "PublicListing":
        return cls(**_public_fields(listing), distance_km=distance_km)


class OwnerListingDetail(PublicListing):
    """Seller's own view: adds the precise location and bookkeeping fields."""

    latitude: float
    longitude: float
    updated_at: datetime
    batch_id: str | None = None

    @classmethod
    def from_domain(cls, listing: Listing, distance_km: float | None = None) -> "OwnerListingDetail":
        return cls(
            **_public_fields(listing),
            distance_km=distance_km,
            latitude=listing.latitude,
            longitude=listing.longitude,
            updated_at=listing.updated_at,
            batch_id=listing.batch_id,
        )


def _public_fields(m: Listing) -> dict[str, object]:
    if m.min_price == m.max_price:
        price_display = format_price(m.min_price, m.currency)
    else:
        price_display = (
            f"{format_price(m.min_price, m.currency)} - {format_price(m.max_price, m.currency)}"
        )
    return {
        "id": m.id,
        "seller_id": m.seller_id,
        "livestock_type": m.livestock_type,
        "species": m.species,
        "quantity": m.quantity,
        "min_price": m.min_price,
        "max_price": m.max_price,
        "currency": m.currency,
        "price_display": price_display,
        "public_latitude": m.public_latitude,
        "public_longitude": m.public_longitude,
        "country": m.country,
        "region": m.region,
        "locality": m.locality,
        "formatted_address": m.formatted_address,
        "fuzzing_level": m.fuzzing_level,
        "description": m.description,
        "photo_urls": list(m.photo_urls),
        "contact_preference": m.contact_preference,
        "status": m.status,
        "expires_at": m.expires_at,
        "view_count": m.view_count,
        "contact_count": m.contact_count,
        "created_at": m.created_at,
    }


class ListingPageResponse(BaseModel):
    data: list[PublicListing]
    total: int
    page: int
    page_size: int
    total_pages: int


class ListingDraftResponse(BaseModel):
    livestock_type: str
    species: str
    quantity: int
    batch_id: str
    min_price: int | None
    max_price: int | None

    @classmethod
    def from_domain(cls, draft: ListingDraft) -> "ListingDraftResponse":
        return cls(
            livestock_type=draft.livestock_type,
            species=draft.species,
            quantity=draft.quantity,
            batch_id=draft.batch_id,
            min_price=draft.min_price,
            max_price=draft.max_price,
        )


class DeleteListingResponse(BaseModel):
    listing_id: str
    deleted: bool
    notified_buyers: int
