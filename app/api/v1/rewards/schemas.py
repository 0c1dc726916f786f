"""
Reward ledger schemas
"""

from pydantic import BaseModel, ConfigDict
from typing import Optional, List
from datetime import datetime
import uuid

from app.models import RewardType, RewardStatus

class RewardResponse(BaseModel):
    """A ledger entry"""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    referral_id: Optional[uuid.UUID] = None
    booking_id: Optional[str] = None
    type: RewardType
    amount: float
    currency: str
    status: RewardStatus
    validated_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    transaction_id: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime

class RewardHistoryResponse(BaseModel):
    items: List[RewardResponse]
    count: int

class RewardBalanceResponse(BaseModel):
    """Totals across a user's rewards"""
    total_earned: float
    pending: float
    paid: float
    currency: str

class MilestoneResponse(BaseModel):
    """Progress towards the next free night"""
    completed_bookings: int
    next_milestone: int
    free_nights_earned: int
