"""Booking reports awaiting a host decision"""

from sqlalchemy import Column, String, ForeignKey, DateTime, Date, Index, CheckConstraint, Uuid
import enum

from .base import Base, TimestampedModel, UUIDModel

class ConfirmationStatus(str, enum.Enum):
    PENDING_HOST_CONFIRMATION = "pending_host_confirmation"
    HOST_CONFIRMED = "host_confirmed"
    HOST_REJECTED = "host_rejected"

class ReportedBy(str, enum.Enum):
    GUEST = "guest"
    REFERRER = "referrer"

class PendingConfirmation(Base, TimestampedModel, UUIDModel):
    """
    A reported booking against a referral.

    host_id is resolved from the listing when the report is created and kept
    as is afterwards, so a later change of listing ownership does not move the
    decision to another host.
    """

    __tablename__ = "pending_confirmations"

    referral_id = Column(Uuid(as_uuid=True), ForeignKey("referrals.id"), nullable=False, index=True)
    listing_id = Column(Uuid(as_uuid=True), ForeignKey("listings.id"), nullable=True)
    host_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True)
    referral_code = Column(String(10), nullable=False, index=True)

    guest_email = Column(String(255), nullable=False)
    booking_confirmation = Column(String(255), nullable=True)
    check_in = Column(Date, nullable=False)
    check_out = Column(Date, nullable=False)
    reported_by = Column(String(20), nullable=False)

    status = Column(
        String(40),
        default=ConfirmationStatus.PENDING_HOST_CONFIRMATION.value,
        nullable=False
    )
    host_confirmed_at = Column(DateTime(timezone=True), nullable=True)
    host_rejected_reason = Column(String(500), nullable=True)

    __table_args__ = (
        Index("idx_confirmations_host_status_created", "host_id", "status", "created_at"),
        CheckConstraint("check_in < check_out", name="check_booking_dates_order"),
    )
