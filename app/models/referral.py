"""Referral system models"""

from sqlalchemy import (
    Column, String, Integer, ForeignKey, DateTime, Date, Numeric, Index, CheckConstraint, Uuid
)
from sqlalchemy.orm import relationship
import enum

from app.models.base import Base, TimestampedModel, UUIDModel, utcnow

class ReferralStatus(str, enum.Enum):
    ACTIVE = "active"
    BOOKED = "booked"
    COMPLETED = "completed"
    EXPIRED = "expired"

class Referral(Base, TimestampedModel, UUIDModel):
    """A shareable referral link owned by a user"""

    __tablename__ = "referrals"

    referral_code = Column(String(10), nullable=False)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    listing_id = Column(Uuid(as_uuid=True), ForeignKey("listings.id"), nullable=True, index=True)
    referral_link = Column(String(500), nullable=False)
    status = Column(String(20), default=ReferralStatus.ACTIVE.value, nullable=False, index=True)

    # Counters only ever move through atomic increments
    click_count = Column(Integer, default=0, nullable=False)
    view_count = Column(Integer, default=0, nullable=False)

    # Booking details
    booking_value = Column(Numeric(12, 2), nullable=True)
    booking_date = Column(DateTime(timezone=True), nullable=True)
    check_in_date = Column(Date, nullable=True)
    check_out_date = Column(Date, nullable=True)

    # Relationships
    user = relationship("User", back_populates="referrals", lazy="raise")

    __table_args__ = (
        Index("uq_referrals_referral_code", "referral_code", unique=True),
        Index("idx_referrals_user_status", "user_id", "status"),
        CheckConstraint("click_count >= 0", name="check_non_negative_clicks"),
        CheckConstraint("view_count >= 0", name="check_non_negative_views"),
    )

class ReferralEmail(Base, UUIDModel):
    """Email captured when a referral link is clicked"""

    __tablename__ = "referral_emails"

    email = Column(String(255), nullable=False, index=True)
    referral_code = Column(String(10), nullable=False, index=True)
    clicked_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
