"""lm_listing REST endpoints.

POST   /listings                — create (seller)
GET    /listings                — public search, page/page_size pagination
GET    /listings/nearby         — public search by distance from a point
GET    /listings/mine           — seller's own listings
POST   /listings/prefill        — draft listing from a production batch
GET    /listings/{listing_id}   — detail (precise location for the owner only)
PATCH  /listings/{listing_id}   — partial update (seller)
POST   /listings/{listing_id}/status — lifecycle transition (seller)
DELETE /listings/{listing_id}   — soft delete (seller)
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.lm_common.database import get_db_session
from src.lm_common.enums import LivestockType, ListingSort
from src.lm_common.response import ApiResponse, success_response
from src.lm_gateway.auth.dependencies import (
    Principal,
    get_current_principal,
    get_optional_principal,
)
from src.lm_listing.application.schemas import (
    ChangeStatusRequest,
    CreateListingRequest,
    PrefillRequest,
    UpdateListingRequest,
)
from src.lm_listing.application.service import ListingApplicationService
from src.lm_listing.domain.models import ListingFilter

router = APIRouter(prefix="/listings", tags=["listings"])

_service = ListingApplicationService()


def get_listing_service() -> ListingApplicationService:
    return _service


ServiceDep = Annotated[ListingApplicationService, Depends(get_listing_service)]


def listing_filter(
    livestock_type: LivestockType | None = Query(None),
    species: str | None = Query(None, max_length=100),
    min_price: int | None = Query(None, ge=0, description="Keep listings whose floor is >= this"),
    max_price: int | None = Query(None, ge=0, description="Keep listings whose ceiling is <= this"),
    region: str | None = Query(None, max_length=100),
    location: str | None = Query(None, max_length=100),
) -> ListingFilter:
    return ListingFilter(
        livestock_type=livestock_type.value if livestock_type else None,
        species=species or None,
        min_price=min_price,
        max_price=max_price,
        region=region or None,
        location=location or None,
    )


FilterDep = Annotated[ListingFilter, Depends(listing_filter)]


@router.post("", status_code=201)
async def create_listing(
    body: CreateListingRequest,
    request: Request,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: ServiceDep,
) -> ApiResponse:
    async with db.begin():
        result = await service.create_listing(db, principal.user_id, body)
    return success_response(result.model_dump(mode="json"), request)


@router.get("")
async def list_listings(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: ServiceDep,
    filters: FilterDep,
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    sort: ListingSort = Query(ListingSort.NEWEST),
) -> ApiResponse:
    result = await service.get_listings(db, filters, page, page_size, sort)
    return success_response(result.model_dump(mode="json"), request)


@router.get("/nearby")
async def list_nearby(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: ServiceDep,
    filters: FilterDep,
    lat: float = Query(...),
    lng: float = Query(...),
    radius_km: float = Query(25.0, gt=0, le=500),
) -> ApiResponse:
    result = await service.search_nearby(db, lat, lng, radius_km, filters)
    return success_response([m.model_dump(mode="json") for m in result], request)


@router.get("/mine")
async def list_my_listings(
    request: Request,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: ServiceDep,
    status: str = Query("all", pattern="^(all|active|paused|sold|expired)$"),
) -> ApiResponse:
    result = await service.get_my_listings(db, principal.user_id, status)
    return success_response([m.model_dump(mode="json") for m in result], request)


@router.post("/prefill")
async def prefill_listing(
    body: PrefillRequest,
    request: Request,
    principal: Annotated[Principal, Depends(get_current_principal)],
    service: ServiceDep,
) -> ApiResponse:
    result = service.prefill_from_batch(body)
    return success_response(result.model_dump(), request)


@router.get("/{listing_id}")
async def get_listing(
    listing_id: str,
    request: Request,
    principal: Annotated[Principal | None, Depends(get_optional_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: ServiceDep,
) -> ApiResponse:
    viewer_id = principal.user_id if principal else None
    result = await service.get_listing_detail(db, listing_id, viewer_id)
    return success_response(result.model_dump(mode="json"), request)


@router.patch("/{listing_id}")
async def update_listing(
    listing_id: str,
    body: UpdateListingRequest,
    request: Request,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: ServiceDep,
) -> ApiResponse:
    async with db.begin():
        result = await service.update_listing(db, listing_id, principal.user_id, body)
    return success_response(result.model_dump(mode="json"), request)


@router.post("/{listing_id}/status")
async def change_listing_status(
    listing_id: str,
    body: ChangeStatusRequest,
    request: Request,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: ServiceDep,
) -> ApiResponse:
    async with db.begin():
        result = await service.change_status(db, listing_id, principal.user_id, body.status)
    return success_response(result.model_dump(mode="json"), request)


@router.delete("/{listing_id}")
async def delete_listing(
    listing_id: str,
    request: Request,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: ServiceDep,
) -> ApiResponse:
    async with db.begin():
        result = await service.delete_listing(db, listing_id, principal.user_id)
    return success_response(result.model_dump(), request)
