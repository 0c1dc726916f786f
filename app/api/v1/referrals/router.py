"""
Referral API routes
"""

from typing import Optional
import logging
import uuid

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.exceptions import AccessDeniedException
from app.core.security import get_current_user
from app.middleware.rate_limit import tracking_limiter
from app.models import ReferralStatus, ConfirmationStatus
from app.services.referral_service import ReferralService
from app.utils.dependencies import get_pagination_params
from app.utils.pagination import PaginationParams
from app.utils.validators import parse_uuid
from app.api.v1.host.schemas import ConfirmationResponse
from .schemas import (
    GenerateReferralRequest,
    ReferralResponse,
    ReferralPublicResponse,
    ReferralMutationResponse,
    TrackCounterResponse,
    UserReferralItem,
    UserReferralList,
    ReferralStatsResponse,
    TrackClickRequest,
    TrackViewRequest,
    TrackBookingRequest,
    TrackBookingResponse,
    LandingResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()

@router.post(
    "/generate",
    response_model=ReferralMutationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Generate referral link",
    description="Create a referral link with a fresh unique code"
)
async def generate_referral(
    payload: GenerateReferralRequest,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Generate a referral link for the current user"""
    service = ReferralService(db)
    referral = await service.create_referral(
        current_user["id"],
        listing_id=payload.listing_id,
        base_url=payload.base_url
    )

    return ReferralMutationResponse(
        referral=ReferralResponse.model_validate(referral),
        message="Referral link created"
    )

@router.get(
    "/stats",
    response_model=ReferralStatsResponse,
    summary="Referral statistics",
    description="Aggregate referral counts for the dashboard"
)
async def get_referral_stats(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Dashboard counts, zeros when the aggregate cannot be computed"""
    service = ReferralService(db)
    try:
        stats = await service.get_referral_stats(current_user["id"])
    except Exception:
        logger.exception(f"Referral stats failed for user {current_user['id']}")
        await db.rollback()
        return ReferralStatsResponse()

    return ReferralStatsResponse(**stats)

@router.get(
    "/user/{user_id}",
    response_model=UserReferralList,
    summary="List user referrals",
    description="List the caller's own referrals with their latest booking status"
)
async def get_user_referrals(
    user_id: uuid.UUID,
    referral_status: Optional[ReferralStatus] = Query(None, alias="status"),
    confirmation_status: Optional[ConfirmationStatus] = Query(None),
    pagination: PaginationParams = Depends(get_pagination_params),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """List referrals owned by user_id, which must be the caller"""
    if user_id != parse_uuid(current_user["id"], "user_id"):
        raise AccessDeniedException("You can only list your own referrals")

    service = ReferralService(db)
    rows = await service.get_user_referrals(
        user_id,
        status=referral_status.value if referral_status else None,
        confirmation_status=confirmation_status.value if confirmation_status else None,
        skip=pagination.skip,
        limit=pagination.limit,
    )

    items = [
        UserReferralItem(
            **ReferralResponse.model_validate(row["referral"]).model_dump(),
            confirmation_status=row["confirmation_status"],
        )
        for row in rows
    ]
    return UserReferralList(items=items, count=len(items))

@router.post(
    "/track-click",
    response_model=TrackCounterResponse,
    summary="Track referral click",
    description="Count a click on a referral link, optionally remembering the visitor's email"
)
@tracking_limiter
async def track_click(
    request: Request,
    payload: TrackClickRequest,
    db: AsyncSession = Depends(get_db)
):
    """Public click tracking"""
    service = ReferralService(db)
    referral = await service.track_click(payload.referral_code, payload.email)

    return TrackCounterResponse(
        referral=ReferralPublicResponse.model_validate(referral),
        click_count=referral.click_count,
        view_count=referral.view_count,
        message="Click tracked"
    )

@router.post(
    "/track-view",
    response_model=TrackCounterResponse,
    summary="Track referral view",
    description="Count a view of a referral link"
)
@tracking_limiter
async def track_view(
    request: Request,
    payload: TrackViewRequest,
    db: AsyncSession = Depends(get_db)
):
    """Public view tracking"""
    service = ReferralService(db)
    referral = await service.track_view(payload.referral_code)

    return TrackCounterResponse(
        referral=ReferralPublicResponse.model_validate(referral),
        click_count=referral.click_count,
        view_count=referral.view_count,
        message="View tracked"
    )

@router.get(
    "/code/{code}",
    response_model=LandingResponse,
    summary="Referral landing page",
    description="Public landing data for a referral link. Every call also counts one view."
)
@tracking_limiter
async def get_landing(
    request: Request,
    code: str,
    db: AsyncSession = Depends(get_db)
):
    """Landing fetch, increments view_count"""
    service = ReferralService(db)
    landing = await service.get_landing(code)

    return LandingResponse(
        referral=ReferralPublicResponse.model_validate(landing["referral"]),
        listing=landing["listing"],
    )

@router.post(
    "/track-booking",
    response_model=TrackBookingResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Report booking",
    description="Report a booking made through a referral link and open a host confirmation"
)
async def track_booking(
    payload: TrackBookingRequest,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Report a booking for host confirmation"""
    service = ReferralService(db)
    result = await service.report_booking(
        payload.referral_code,
        guest_email=payload.guest_email,
        check_in=payload.check_in,
        check_out=payload.check_out,
        reported_by=payload.reported_by,
        booking_confirmation=payload.booking_confirmation,
        booking_value=payload.booking_value,
    )

    logger.info(f"User {current_user['id']} reported booking on {payload.referral_code}")

    return TrackBookingResponse(
        referral=ReferralResponse.model_validate(result["referral"]),
        confirmation=ConfirmationResponse.model_validate(result["confirmation"]),
        message="Booking reported, awaiting host confirmation"
    )

@router.get(
    "/{referral_id}",
    response_model=ReferralResponse,
    summary="Get referral",
    description="Fetch one referral owned by the caller"
)
async def get_referral(
    referral_id: uuid.UUID,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get referral by ID"""
    service = ReferralService(db)
    return await service.get_referral_for_owner(referral_id, current_user["id"])
