# src/lm_admin/api/router.py
"""Admin REST API. Every endpoint needs a token with role=admin."""
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.lm_admin.application.service import AdminService
from src.lm_common.database import get_db_session
from src.lm_common.datetime_utils import utc_now
from src.lm_common.response import ApiResponse, success_response
from src.lm_gateway.auth.dependencies import Principal, require_admin

router = APIRouter(prefix="/admin", tags=["admin"])
_service = AdminService()


def get_admin_service() -> AdminService:
    return _service


ServiceDep = Annotated[AdminService, Depends(get_admin_service)]


@router.post("/listings/expire")
async def expire_listings(
    request: Request,
    admin: Annotated[Principal, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: ServiceDep,
) -> ApiResponse:
    async with db.begin():
        result = await service.run_expiration_sweep(db, utc_now())
    return success_response(result, request)


@router.post("/listings/expiring-notices")
async def expiring_notices(
    request: Request,
    admin: Annotated[Principal, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: ServiceDep,
    window_days: int | None = Query(None, ge=1, le=30),
) -> ApiResponse:
    result = await service.check_expiring_listings(db, utc_now(), window_days)
    return success_response(result, request)


@router.get("/engagement/verify")
async def verify_engagement(
    request: Request,
    admin: Annotated[Principal, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: ServiceDep,
) -> ApiResponse:
    result = await service.verify_engagement_counters(db)
    return success_response(result, request)
