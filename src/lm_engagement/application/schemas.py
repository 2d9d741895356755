"""Pydantic schemas for lm_engagement requests and responses."""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from src.lm_common.enums import ContactMethod
from src.lm_engagement.domain.models import ContactRequest


class ContactRequestCreate(BaseModel):
    message: str | None = Field(None, max_length=1000)
    contact_method: ContactMethod = ContactMethod.APP
    phone_number: str | None = Field(None, max_length=32)
    email: EmailStr | None = None


class RespondRequest(BaseModel):
    approved: bool
    message: str | None = Field(None, max_length=1000)


class ViewRecorded(BaseModel):
    listing_id: str
    counted: bool


class ContactRequestCreated(BaseModel):
    request_id: str
    created: bool


class ContactRequestOut(BaseModel):
    id: str
    listing_id: str
    listing_species: str | None
    buyer_id: str
    message: str | None
    contact_method: str
    phone_number: str | None
    email: str | None
    status: str
    response_message: str | None
    responded_at: datetime | None
    created_at: datetime

    @classmethod
    def from_domain(cls, r: ContactRequest) -> "ContactRequestOut":
        return cls(
            id=r.id,
            listing_id=r.listing_id,
            listing_species=r.listing_species,
            buyer_id=r.buyer_id,
            message=r.message,
            contact_method=r.contact_method,
            phone_number=r.phone_number,
            email=r.email,
            status=r.status,
            response_message=r.response_message,
            responded_at=r.responded_at,
            created_at=r.created_at,
        )


class ContactStatusOut(BaseModel):
    has_contacted: bool
    request: ContactRequestOut | None = None


class ListingAnalytics(BaseModel):
    listing_id: str
    view_count: int
    contact_count: int
    # Percentage of views that turned into a contact request, 2 d.p.
    conversion_rate: float
