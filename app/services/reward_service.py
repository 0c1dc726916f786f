"""Reward ledger service"""

from typing import Dict, Any, Optional, List, Union
from decimal import Decimal, ROUND_HALF_UP
from collections import Counter
import logging
import uuid

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import NotFoundException, AccessDeniedException, InvalidStateException, ValidationException
from app.core.monitoring import rewards_issued
from app.crud import rewards as reward_store
from app.crud import referrals as referral_store
from app.models import Reward, RewardType, RewardStatus
from app.models.base import utcnow
from app.services.state_machine import reward_state_machine
from app.utils.validators import parse_uuid

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")

def round_amount(value) -> float:
    """Round to 2 decimals, halves away from zero"""
    return float(Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP))

def calculate_reward(booking_amount: float, commission_rate: Optional[float] = None) -> float:
    """Commission on a booking value, DEFAULT_COMMISSION_RATE when no rate is given"""
    rate = commission_rate or settings.DEFAULT_COMMISSION_RATE
    return round_amount(Decimal(str(booking_amount)) * Decimal(str(rate)))

class RewardService:
    """Service for issuing and reading rewards"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def issue_reward(
        self,
        user_id: Union[str, uuid.UUID],
        type: Union[str, RewardType],
        amount: Union[int, float, Decimal],
        currency: Optional[str] = None,
        referral_id: Optional[uuid.UUID] = None,
        booking_id: Optional[str] = None,
        notes: Optional[str] = None,
        idempotency_key: Optional[str] = None
    ) -> Reward:
        """
        Append a pending reward to the ledger

        With an idempotency_key the call is safe to repeat: the reward
        already issued under that key is returned instead of a new one.
        """
        try:
            reward_type = RewardType(type)
        except ValueError:
            raise ValidationException(f"Invalid reward type: {type}")

        amount = Decimal(str(amount))
        if amount < 0:
            raise ValidationException("Reward amount must not be negative")

        if idempotency_key:
            existing = await reward_store.get_reward_by_idempotency_key(self.db, idempotency_key)
            if existing:
                logger.info(f"Reward for {idempotency_key} already issued as {existing.id}")
                return existing

        try:
            reward = await reward_store.create_reward(
                self.db,
                user_id=parse_uuid(user_id, "user_id"),
                referral_id=referral_id,
                booking_id=booking_id,
                type=reward_type.value,
                amount=amount,
                currency=currency or settings.DEFAULT_REWARD_CURRENCY,
                notes=notes,
                idempotency_key=idempotency_key,
            )
            await self.db.commit()
        except IntegrityError:
            if not idempotency_key:
                raise
            # A concurrent issuer won the race for this key
            await self.db.rollback()
            existing = await reward_store.get_reward_by_idempotency_key(self.db, idempotency_key)
            if existing is None:
                raise
            return existing

        rewards_issued.labels(type=reward_type.value).inc()
        logger.info(f"Issued {reward_type.value} reward {reward.id} of {amount} {reward.currency} to user {user_id}")
        return reward

    async def get_reward_for_owner(
        self,
        reward_id: Union[str, uuid.UUID],
        user_id: Union[str, uuid.UUID]
    ) -> Reward:
        """Get a reward, only for its recipient"""
        reward = await reward_store.get_reward_by_id(self.db, parse_uuid(reward_id, "reward_id"))
        if not reward:
            raise NotFoundException("Reward not found")

        if reward.user_id != parse_uuid(user_id, "user_id"):
            raise AccessDeniedException("You do not have access to this reward")

        return reward

    async def get_history(
        self,
        user_id: Union[str, uuid.UUID],
        status: Optional[str] = None,
        reward_type: Optional[str] = None,
        skip: int = 0,
        limit: int = 50
    ) -> List[Reward]:
        """Get a user's rewards, newest first"""
        return await reward_store.get_user_rewards(
            self.db,
            parse_uuid(user_id, "user_id"),
            status=status,
            reward_type=reward_type,
            skip=skip,
            limit=limit,
        )

    async def get_balance(self, user_id: Union[str, uuid.UUID]) -> Dict[str, Any]:
        """
        Sum a user's rewards

        Returns:
            total_earned over every reward, pending over pending and validated
            rewards, paid over paid rewards, and the user's most frequent
            currency (first seen wins a tie)
        """
        rows = await reward_store.get_user_reward_amounts(self.db, parse_uuid(user_id, "user_id"))

        total_earned = Decimal("0")
        pending = Decimal("0")
        paid = Decimal("0")
        currencies = Counter()

        for row in rows:
            amount = Decimal(str(row["amount"]))
            total_earned += amount
            if row["status"] in (RewardStatus.PENDING.value, RewardStatus.VALIDATED.value):
                pending += amount
            elif row["status"] == RewardStatus.PAID.value:
                paid += amount
            currencies[row["currency"]] += 1

        # Counter keeps insertion order, so most_common breaks ties by first occurrence
        currency = currencies.most_common(1)[0][0] if currencies else settings.DEFAULT_REWARD_CURRENCY

        return {
            "total_earned": round_amount(total_earned),
            "pending": round_amount(pending),
            "paid": round_amount(paid),
            "currency": currency,
        }

    async def get_milestones(self, user_id: Union[str, uuid.UUID]) -> Dict[str, int]:
        """Progress towards free nights, one per MILESTONE_BOOKINGS completed referrals"""
        completed = await referral_store.count_completed_referrals(self.db, parse_uuid(user_id, "user_id"))
        step = settings.MILESTONE_BOOKINGS

        return {
            "completed_bookings": completed,
            "next_milestone": (completed // step + 1) * step,
            "free_nights_earned": completed // step,
        }

    async def validate_reward(self, reward_id: Union[str, uuid.UUID]) -> Reward:
        """pending -> validated"""
        return await self._transition(
            reward_id,
            RewardStatus.VALIDATED,
            {"validated_at": utcnow()},
            error="Reward is not in pending status",
        )

    async def mark_paid(self, reward_id: Union[str, uuid.UUID], transaction_id: str) -> Reward:
        """Record settlement of a pending or validated reward"""
        return await self._transition(
            reward_id,
            RewardStatus.PAID,
            {"paid_at": utcnow(), "transaction_id": transaction_id},
            error="Only pending or validated rewards can be paid",
        )

    async def cancel_reward(self, reward_id: Union[str, uuid.UUID]) -> Reward:
        """Cancel a reward that has not been paid"""
        return await self._transition(
            reward_id,
            RewardStatus.CANCELLED,
            {},
            error="Cannot cancel a paid or cancelled reward",
        )

    async def _transition(
        self,
        reward_id: Union[str, uuid.UUID],
        target: RewardStatus,
        values: Dict[str, Any],
        error: str
    ) -> Reward:
        reward_id = parse_uuid(reward_id, "reward_id")
        reward = await reward_store.get_reward_by_id(self.db, reward_id)
        if not reward:
            raise NotFoundException("Reward not found")

        sources = [
            status for status in RewardStatus
            if reward_state_machine.can_transition(status, target)
        ]
        changed = await reward_store.transition_reward(
            self.db, reward_id, sources, {**values, "status": target.value}
        )
        if changed != 1:
            await self.db.rollback()
            current = await reward_store.get_reward_by_id(self.db, reward_id)
            raise InvalidStateException(error, current_status=current.status if current else None)

        await self.db.commit()
        logger.info(f"Reward {reward_id} moved to {target.value}")
        return await reward_store.get_reward_by_id(self.db, reward_id)
