"""
Referral CRUD operations

Counters and status moves are single UPDATE statements so concurrent
requests never lose writes. They return the affected row count; callers
decide what a zero means.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func, exists
from typing import Optional, List, Dict, Any
from datetime import date
from decimal import Decimal
import uuid

from app.models import Referral, ReferralEmail, ReferralStatus, PendingConfirmation
from app.models.base import utcnow


async def get_referral_by_id(db: AsyncSession, referral_id: uuid.UUID) -> Optional[Referral]:
    """Get referral by ID"""
    stmt = (
        select(Referral)
        .where(Referral.id == referral_id)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def get_referral_by_code(db: AsyncSession, code: str) -> Optional[Referral]:
    """Get referral by its code"""
    stmt = (
        select(Referral)
        .where(Referral.referral_code == code)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def referral_code_exists(db: AsyncSession, code: str) -> bool:
    """Check whether a code is already taken"""
    result = await db.execute(select(exists().where(Referral.referral_code == code)))
    return bool(result.scalar())


async def create_referral(
    db: AsyncSession,
    user_id: uuid.UUID,
    referral_code: str,
    referral_link: str,
    listing_id: Optional[uuid.UUID] = None,
) -> Referral:
    """
    Insert a new active referral.

    Raises IntegrityError when the code collides with an existing one.
    """
    referral = Referral(
        user_id=user_id,
        listing_id=listing_id,
        referral_code=referral_code,
        referral_link=referral_link,
        status=ReferralStatus.ACTIVE.value,
        click_count=0,
        view_count=0,
    )
    db.add(referral)
    await db.flush()
    return referral


async def increment_click_count(db: AsyncSession, code: str) -> int:
    """Atomically add one click"""
    stmt = (
        update(Referral)
        .where(Referral.referral_code == code)
        .values(click_count=Referral.click_count + 1)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    return result.rowcount


async def increment_view_count(db: AsyncSession, code: str) -> int:
    """Atomically add one view"""
    stmt = (
        update(Referral)
        .where(Referral.referral_code == code)
        .values(view_count=Referral.view_count + 1)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    return result.rowcount


async def mark_booked(
    db: AsyncSession,
    referral_id: uuid.UUID,
    check_in: date,
    check_out: date,
    booking_value: Optional[Decimal] = None,
) -> int:
    """Move an active referral to booked"""
    values: Dict[str, Any] = {
        "status": ReferralStatus.BOOKED.value,
        "booking_date": utcnow(),
        "check_in_date": check_in,
        "check_out_date": check_out,
    }
    if booking_value is not None:
        values["booking_value"] = booking_value

    stmt = (
        update(Referral)
        .where(Referral.id == referral_id, Referral.status == ReferralStatus.ACTIVE.value)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    return result.rowcount


async def transition_status(
    db: AsyncSession,
    referral_id: uuid.UUID,
    from_status: ReferralStatus,
    to_status: ReferralStatus,
) -> int:
    """Change referral status only if it is still in from_status"""
    stmt = (
        update(Referral)
        .where(Referral.id == referral_id, Referral.status == from_status.value)
        .values(status=to_status.value)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    return result.rowcount


async def record_referral_email(db: AsyncSession, email: str, code: str) -> ReferralEmail:
    """Store the email that clicked a referral link"""
    touch = ReferralEmail(email=email.strip().lower(), referral_code=code, clicked_at=utcnow())
    db.add(touch)
    await db.flush()
    return touch


async def get_user_referrals(
    db: AsyncSession,
    user_id: uuid.UUID,
    status: Optional[str] = None,
    confirmation_status: Optional[str] = None,
    skip: int = 0,
    limit: int = 50
) -> List[Referral]:
    """Get a user's referrals, newest first"""
    stmt = select(Referral).where(Referral.user_id == user_id)

    if status:
        stmt = stmt.where(Referral.status == status)

    if confirmation_status:
        stmt = stmt.where(
            exists().where(
                PendingConfirmation.referral_id == Referral.id,
                PendingConfirmation.status == confirmation_status,
            )
        )

    stmt = stmt.order_by(Referral.created_at.desc()).offset(skip).limit(limit)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_user_referral_stats(db: AsyncSession, user_id: uuid.UUID) -> Dict[str, int]:
    """Get status counts and counter totals for a user's referrals"""
    stmt = (
        select(
            Referral.status,
            func.count(Referral.id),
            func.coalesce(func.sum(Referral.click_count), 0),
            func.coalesce(func.sum(Referral.view_count), 0),
        )
        .where(Referral.user_id == user_id)
        .group_by(Referral.status)
    )
    rows = (await db.execute(stmt)).all()

    by_status = {row[0]: row[1] for row in rows}
    return {
        "total_referrals": sum(by_status.values()),
        "active_referrals": by_status.get(ReferralStatus.ACTIVE.value, 0),
        "booked_referrals": by_status.get(ReferralStatus.BOOKED.value, 0),
        "completed_referrals": by_status.get(ReferralStatus.COMPLETED.value, 0),
        "total_clicks": int(sum(row[2] for row in rows)),
        "total_views": int(sum(row[3] for row in rows)),
    }


async def count_completed_referrals(db: AsyncSession, user_id: uuid.UUID) -> int:
    """Count a user's completed referrals"""
    stmt = select(func.count(Referral.id)).where(
        Referral.user_id == user_id,
        Referral.status == ReferralStatus.COMPLETED.value,
    )
    return (await db.execute(stmt)).scalar_one()


async def get_listing_referral_counts(
    db: AsyncSession,
    listing_ids: List[uuid.UUID]
) -> Dict[uuid.UUID, Dict[str, int]]:
    """Get referral counts by status for each listing"""
    if not listing_ids:
        return {}

    stmt = (
        select(Referral.listing_id, Referral.status, func.count(Referral.id))
        .where(Referral.listing_id.in_(listing_ids))
        .group_by(Referral.listing_id, Referral.status)
    )

    counts: Dict[uuid.UUID, Dict[str, int]] = {}
    for listing_id, status, count in (await db.execute(stmt)).all():
        counts.setdefault(listing_id, {})[status] = count
    return counts


async def sum_completed_booking_value(db: AsyncSession, listing_ids: List[uuid.UUID]) -> Decimal:
    """Sum booking values of completed referrals for the given listings"""
    if not listing_ids:
        return Decimal("0")

    stmt = select(func.coalesce(func.sum(Referral.booking_value), 0)).where(
        Referral.listing_id.in_(listing_ids),
        Referral.status == ReferralStatus.COMPLETED.value,
    )
    return Decimal(str((await db.execute(stmt)).scalar_one()))
