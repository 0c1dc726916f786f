"""
Pending confirmation CRUD operations
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func
from typing import Optional, List, Dict, Any, Tuple
from datetime import date
import uuid

from app.models import PendingConfirmation, ConfirmationStatus, Listing
from app.models.base import utcnow


async def create_confirmation(
    db: AsyncSession,
    referral_id: uuid.UUID,
    referral_code: str,
    guest_email: str,
    check_in: date,
    check_out: date,
    reported_by: str,
    listing_id: Optional[uuid.UUID] = None,
    host_id: Optional[uuid.UUID] = None,
    booking_confirmation: Optional[str] = None,
) -> PendingConfirmation:
    """Create a booking report awaiting host decision"""
    confirmation = PendingConfirmation(
        referral_id=referral_id,
        referral_code=referral_code,
        listing_id=listing_id,
        host_id=host_id,
        guest_email=guest_email,
        booking_confirmation=booking_confirmation,
        check_in=check_in,
        check_out=check_out,
        reported_by=reported_by,
        status=ConfirmationStatus.PENDING_HOST_CONFIRMATION.value,
    )
    db.add(confirmation)
    await db.flush()
    return confirmation


async def get_confirmation_by_id(
    db: AsyncSession,
    confirmation_id: uuid.UUID
) -> Optional[PendingConfirmation]:
    """Get confirmation by ID"""
    stmt = (
        select(PendingConfirmation)
        .where(PendingConfirmation.id == confirmation_id)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def resolve_pending(
    db: AsyncSession,
    confirmation_id: uuid.UUID,
    new_status: ConfirmationStatus,
    rejected_reason: Optional[str] = None,
) -> int:
    """
    Compare-and-swap a confirmation out of pending.

    Returns 1 when this call made the transition, 0 when another writer
    already resolved it.
    """
    values: Dict[str, Any] = {
        "status": new_status.value,
        "host_confirmed_at": utcnow(),
    }
    if new_status == ConfirmationStatus.HOST_REJECTED:
        values["host_rejected_reason"] = rejected_reason

    stmt = (
        update(PendingConfirmation)
        .where(
            PendingConfirmation.id == confirmation_id,
            PendingConfirmation.status == ConfirmationStatus.PENDING_HOST_CONFIRMATION.value,
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    return result.rowcount


async def get_host_confirmations(
    db: AsyncSession,
    host_id: uuid.UUID,
    status: Optional[str] = None,
    skip: int = 0,
    limit: int = 50
) -> List[Tuple[PendingConfirmation, Optional[str], Optional[str], Optional[str]]]:
    """
    Get a host's confirmations newest first, joined with listing display fields.

    Only title, city and country are selected from the listing.
    """
    stmt = (
        select(PendingConfirmation, Listing.title, Listing.city, Listing.country)
        .outerjoin(Listing, Listing.id == PendingConfirmation.listing_id)
        .where(PendingConfirmation.host_id == host_id)
    )

    if status:
        stmt = stmt.where(PendingConfirmation.status == status)

    stmt = stmt.order_by(PendingConfirmation.created_at.desc()).offset(skip).limit(limit)
    result = await db.execute(stmt)
    return [tuple(row) for row in result.all()]


async def count_host_confirmations(db: AsyncSession, host_id: uuid.UUID) -> Dict[str, int]:
    """Get confirmation counts by status for a host"""
    stmt = (
        select(PendingConfirmation.status, func.count(PendingConfirmation.id))
        .where(PendingConfirmation.host_id == host_id)
        .group_by(PendingConfirmation.status)
    )
    return {status: count for status, count in (await db.execute(stmt)).all()}


async def get_listing_confirmation_counts(
    db: AsyncSession,
    listing_ids: List[uuid.UUID]
) -> Dict[uuid.UUID, Dict[str, int]]:
    """Get confirmation counts by status for each listing"""
    if not listing_ids:
        return {}

    stmt = (
        select(PendingConfirmation.listing_id, PendingConfirmation.status, func.count(PendingConfirmation.id))
        .where(PendingConfirmation.listing_id.in_(listing_ids))
        .group_by(PendingConfirmation.listing_id, PendingConfirmation.status)
    )

    counts: Dict[uuid.UUID, Dict[str, int]] = {}
    for listing_id, status, count in (await db.execute(stmt)).all():
        counts.setdefault(listing_id, {})[status] = count
    return counts


async def get_referral_confirmation_statuses(
    db: AsyncSession,
    referral_ids: List[uuid.UUID]
) -> Dict[uuid.UUID, str]:
    """Get the status of the latest confirmation for each referral"""
    if not referral_ids:
        return {}

    stmt = (
        select(PendingConfirmation.referral_id, PendingConfirmation.status)
        .where(PendingConfirmation.referral_id.in_(referral_ids))
        .order_by(PendingConfirmation.created_at.asc())
    )

    # Later rows overwrite earlier ones
    return {referral_id: status for referral_id, status in (await db.execute(stmt)).all()}


async def get_confirmed_ids(db: AsyncSession, skip: int = 0, limit: int = 500) -> List[uuid.UUID]:
    """Get ids of confirmed bookings, oldest first"""
    stmt = (
        select(PendingConfirmation.id)
        .where(PendingConfirmation.status == ConfirmationStatus.HOST_CONFIRMED.value)
        .order_by(PendingConfirmation.host_confirmed_at.asc())
        .offset(skip)
        .limit(limit)
    )
    return list((await db.execute(stmt)).scalars().all())
