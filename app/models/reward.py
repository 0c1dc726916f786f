"""
Reward ledger model
"""

from sqlalchemy import Column, String, ForeignKey, DateTime, Index, CheckConstraint, Numeric, Uuid
import enum

from .base import Base, TimestampedModel, UUIDModel

class RewardType(str, enum.Enum):
    CASH = "cash"
    FREE_NIGHT = "free_night"
    BONUS = "bonus"

class RewardStatus(str, enum.Enum):
    PENDING = "pending"
    VALIDATED = "validated"
    PAID = "paid"
    CANCELLED = "cancelled"

class Reward(Base, TimestampedModel, UUIDModel):
    """A single ledger entry credited to a user"""

    __tablename__ = "rewards"

    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    referral_id = Column(Uuid(as_uuid=True), ForeignKey("referrals.id"), nullable=True, index=True)
    booking_id = Column(String(100), nullable=True)

    type = Column(String(20), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(10), nullable=False)
    status = Column(String(20), default=RewardStatus.PENDING.value, nullable=False)

    validated_at = Column(DateTime(timezone=True), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    transaction_id = Column(String(100), nullable=True)
    notes = Column(String(500), nullable=True)

    # Set for rewards that must be issued at most once per source event
    idempotency_key = Column(String(100), nullable=True)

    __table_args__ = (
        CheckConstraint("amount >= 0", name="check_non_negative_amount"),
        Index("uq_rewards_idempotency_key", "idempotency_key", unique=True),
        Index("idx_rewards_user_status", "user_id", "status"),
    )
