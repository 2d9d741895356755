"""lm_engagement REST endpoints.

POST /listings/{listing_id}/views                  — count a view (anonymous ok)
POST /listings/{listing_id}/contact-requests       — idempotent contact request
GET  /listings/{listing_id}/contact-requests/mine  — has the caller contacted?
GET  /listings/{listing_id}/analytics              — seller's engagement numbers
GET  /contact-requests/received                    — requests on my listings
GET  /contact-requests/sent                        — requests I made
POST /contact-requests/{request_id}/respond        — approve / deny (seller)
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from src.lm_common.database import get_db_session
from src.lm_common.response import ApiResponse, success_response
from src.lm_engagement.application.schemas import (
    ContactRequestCreate,
    RespondRequest,
    ViewRecorded,
)
from src.lm_engagement.application.service import EngagementService
from src.lm_gateway.auth.dependencies import (
    Principal,
    client_ip,
    get_current_principal,
    get_optional_principal,
)

router = APIRouter(tags=["engagement"])

_service = EngagementService()


def get_engagement_service() -> EngagementService:
    return _service


ServiceDep = Annotated[EngagementService, Depends(get_engagement_service)]


@router.post("/listings/{listing_id}/views")
async def record_view(
    listing_id: str,
    request: Request,
    principal: Annotated[Principal | None, Depends(get_optional_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: ServiceDep,
) -> ApiResponse:
    viewer_id = principal.user_id if principal else None
    async with db.begin():
        counted = await service.record_view(db, listing_id, viewer_id, client_ip(request))
    return success_response(
        ViewRecorded(listing_id=listing_id, counted=counted).model_dump(), request
    )


@router.post("/listings/{listing_id}/contact-requests")
async def request_contact(
    listing_id: str,
    body: ContactRequestCreate,
    request: Request,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: ServiceDep,
    response: Response,
) -> ApiResponse:
    async with db.begin():
        result = await service.request_contact(db, listing_id, principal.user_id, body)
    # 201 for a new request, 200 when the existing one is returned
    response.status_code = 201 if result.created else 200
    return success_response(result.model_dump(), request)


@router.get("/listings/{listing_id}/contact-requests/mine")
async def my_contact_status(
    listing_id: str,
    request: Request,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: ServiceDep,
) -> ApiResponse:
    result = await service.has_contacted(db, listing_id, principal.user_id)
    return success_response(result.model_dump(mode="json"), request)


@router.get("/listings/{listing_id}/analytics")
async def listing_analytics(
    listing_id: str,
    request: Request,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: ServiceDep,
) -> ApiResponse:
    result = await service.get_analytics(db, listing_id, principal.user_id)
    return success_response(result.model_dump(), request)


@router.get("/contact-requests/received")
async def received_requests(
    request: Request,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: ServiceDep,
    status: str = Query("all", pattern="^(all|pending|approved|denied)$"),
) -> ApiResponse:
    result = await service.list_requests_for_seller(db, principal.user_id, status)
    return success_response([r.model_dump(mode="json") for r in result], request)


@router.get("/contact-requests/sent")
async def sent_requests(
    request: Request,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: ServiceDep,
) -> ApiResponse:
    result = await service.list_requests_for_buyer(db, principal.user_id)
    return success_response([r.model_dump(mode="json") for r in result], request)


@router.post("/contact-requests/{request_id}/respond")
async def respond_to_request(
    request_id: str,
    body: RespondRequest,
    request: Request,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: ServiceDep,
) -> ApiResponse:
    async with db.begin():
        result = await service.respond_to_request(
            db, request_id, principal.user_id, body.approved, body.message
        )
    return success_response(result.model_dump(mode="json"), request)
