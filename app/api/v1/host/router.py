"""
Host API routes
"""

from typing import Optional, List
import logging
import uuid

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.security import get_current_user
from app.models import ConfirmationStatus
from app.services.host_service import HostService
from app.api.v1.referrals.schemas import ReferralResponse
from app.api.v1.rewards.schemas import RewardResponse
from .schemas import (
    ConfirmationResponse,
    HostConfirmationItem,
    HostConfirmationList,
    HostDashboardStats,
    HostListingWithStats,
    RejectRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()

class ConfirmDecisionResponse(BaseModel):
    confirmation: ConfirmationResponse
    referral: Optional[ReferralResponse] = None
    reward: Optional[RewardResponse] = None
    message: str

class RejectDecisionResponse(BaseModel):
    confirmation: ConfirmationResponse
    referral: Optional[ReferralResponse] = None
    message: str

def _confirmation_list(rows) -> HostConfirmationList:
    items = [
        HostConfirmationItem(
            confirmation=ConfirmationResponse.model_validate(row["confirmation"]),
            listing=row["listing"],
        )
        for row in rows
    ]
    return HostConfirmationList(items=items, count=len(items))

@router.get(
    "/dashboard",
    response_model=HostDashboardStats,
    summary="Host dashboard",
    description="Listing, booking and revenue totals for the calling host"
)
async def get_dashboard(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Dashboard totals"""
    service = HostService(db)
    return await service.get_dashboard_stats(current_user["id"])

@router.get(
    "/listings",
    response_model=List[HostListingWithStats],
    summary="Host listings",
    description="Newest listings of the calling host with referral figures"
)
async def get_listings(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Listings with per-listing referral stats"""
    service = HostService(db)
    return await service.get_listings_with_stats(current_user["id"])

@router.get(
    "/confirmations/pending",
    response_model=HostConfirmationList,
    summary="Pending confirmations",
    description="Bookings waiting on the calling host, newest first"
)
async def get_pending_confirmations(
    limit: Optional[int] = Query(None, ge=1, description="Page size, capped at the configured maximum"),
    skip: int = Query(0, ge=0),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """List pending confirmations"""
    service = HostService(db)
    rows = await service.list_pending_confirmations(current_user["id"], limit=limit, skip=skip)
    return _confirmation_list(rows)

@router.get(
    "/confirmations",
    response_model=HostConfirmationList,
    summary="All confirmations",
    description="Every booking reported against the calling host's listings"
)
async def get_confirmations(
    confirmation_status: Optional[ConfirmationStatus] = Query(None, alias="status"),
    limit: Optional[int] = Query(None, ge=1),
    skip: int = Query(0, ge=0),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """List confirmations, optionally by status"""
    service = HostService(db)
    rows = await service.get_host_confirmations(
        current_user["id"],
        status=confirmation_status.value if confirmation_status else None,
        limit=limit,
        skip=skip,
    )
    return _confirmation_list(rows)

@router.post(
    "/confirmations/{confirmation_id}/confirm",
    response_model=ConfirmDecisionResponse,
    summary="Confirm booking",
    description="Accept a reported booking, complete the referral and credit the referrer"
)
async def confirm_booking(
    confirmation_id: uuid.UUID,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Confirm a pending booking"""
    service = HostService(db)
    result = await service.confirm_referral(current_user["id"], confirmation_id)

    message = "Booking confirmed"
    if result["reward"] is None:
        message = "Booking confirmed, reward is being processed"

    return ConfirmDecisionResponse(
        confirmation=ConfirmationResponse.model_validate(result["confirmation"]),
        referral=ReferralResponse.model_validate(result["referral"]) if result["referral"] else None,
        reward=RewardResponse.model_validate(result["reward"]) if result["reward"] else None,
        message=message,
    )

@router.post(
    "/confirmations/{confirmation_id}/reject",
    response_model=RejectDecisionResponse,
    summary="Reject booking",
    description="Decline a reported booking and reopen the referral"
)
async def reject_booking(
    confirmation_id: uuid.UUID,
    payload: Optional[RejectRequest] = None,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Reject a pending booking"""
    service = HostService(db)
    result = await service.reject_referral(
        current_user["id"],
        confirmation_id,
        reason=payload.rejection_reason if payload else None,
    )

    return RejectDecisionResponse(
        confirmation=ConfirmationResponse.model_validate(result["confirmation"]),
        referral=ReferralResponse.model_validate(result["referral"]) if result["referral"] else None,
        message="Booking rejected",
    )
