"""
Reward ledger CRUD operations
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from typing import Optional, List, Dict, Any, Iterable
from decimal import Decimal
import uuid

from app.models import Reward, RewardStatus


async def create_reward(
    db: AsyncSession,
    user_id: uuid.UUID,
    type: str,
    amount: Decimal,
    currency: str,
    referral_id: Optional[uuid.UUID] = None,
    booking_id: Optional[str] = None,
    notes: Optional[str] = None,
    idempotency_key: Optional[str] = None,
) -> Reward:
    """
    Insert a pending reward.

    Raises IntegrityError when idempotency_key is already used.
    """
    reward = Reward(
        user_id=user_id,
        referral_id=referral_id,
        booking_id=booking_id,
        type=type,
        amount=amount,
        currency=currency,
        status=RewardStatus.PENDING.value,
        notes=notes,
        idempotency_key=idempotency_key,
    )
    db.add(reward)
    await db.flush()
    return reward


async def get_reward_by_id(db: AsyncSession, reward_id: uuid.UUID) -> Optional[Reward]:
    """Get reward by ID"""
    stmt = (
        select(Reward)
        .where(Reward.id == reward_id)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def get_reward_by_idempotency_key(db: AsyncSession, key: str) -> Optional[Reward]:
    """Get the reward issued for an idempotency key"""
    result = await db.execute(select(Reward).where(Reward.idempotency_key == key))
    return result.scalar_one_or_none()


async def get_existing_idempotency_keys(db: AsyncSession, keys: Iterable[str]) -> set:
    """Return which of the given keys already have a reward"""
    keys = list(keys)
    if not keys:
        return set()

    result = await db.execute(select(Reward.idempotency_key).where(Reward.idempotency_key.in_(keys)))
    return set(result.scalars().all())


async def get_user_rewards(
    db: AsyncSession,
    user_id: uuid.UUID,
    status: Optional[str] = None,
    reward_type: Optional[str] = None,
    skip: int = 0,
    limit: int = 50
) -> List[Reward]:
    """Get a user's rewards, newest first"""
    stmt = select(Reward).where(Reward.user_id == user_id)

    if status:
        stmt = stmt.where(Reward.status == status)
    if reward_type:
        stmt = stmt.where(Reward.type == reward_type)

    stmt = stmt.order_by(Reward.created_at.desc()).offset(skip).limit(limit)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_user_reward_amounts(db: AsyncSession, user_id: uuid.UUID) -> List[Dict[str, Any]]:
    """Get amount, currency and status of every reward for a user in creation order"""
    stmt = (
        select(Reward.amount, Reward.currency, Reward.status)
        .where(Reward.user_id == user_id)
        .order_by(Reward.created_at.asc())
    )
    return [dict(row._mapping) for row in (await db.execute(stmt)).all()]


async def transition_reward(
    db: AsyncSession,
    reward_id: uuid.UUID,
    from_statuses: Iterable[RewardStatus],
    values: Dict[str, Any],
) -> int:
    """Update a reward only while it is in one of from_statuses"""
    stmt = (
        update(Reward)
        .where(Reward.id == reward_id, Reward.status.in_([s.value for s in from_statuses]))
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    return result.rowcount
