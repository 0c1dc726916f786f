"""
Host dashboard and booking decision schemas
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from datetime import datetime, date
import uuid

from app.models import ConfirmationStatus, ReportedBy

class ConfirmationResponse(BaseModel):
    """A reported booking"""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    referral_id: uuid.UUID
    listing_id: Optional[uuid.UUID] = None
    host_id: Optional[uuid.UUID] = None
    referral_code: str
    guest_email: str
    booking_confirmation: Optional[str] = None
    check_in: date
    check_out: date
    reported_by: ReportedBy
    status: ConfirmationStatus
    host_confirmed_at: Optional[datetime] = None
    host_rejected_reason: Optional[str] = None
    created_at: datetime

class ConfirmationListingInfo(BaseModel):
    """Listing display fields shown next to a booking"""
    title: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None

class HostConfirmationItem(BaseModel):
    """Booking plus the listing it was made on"""
    confirmation: ConfirmationResponse
    listing: Optional[ConfirmationListingInfo] = None

class HostConfirmationList(BaseModel):
    items: List[HostConfirmationItem]
    count: int

class RejectRequest(BaseModel):
    """Optional reason given when declining a booking"""
    rejection_reason: Optional[str] = Field(None, max_length=500)

class HostDashboardStats(BaseModel):
    """Totals for the host dashboard"""
    total_listings: int
    active_listings: int
    pending_confirmations: int
    confirmed_bookings: int
    rejected_bookings: int
    total_revenue: float
    total_commissions_paid: float

class HostListingSummary(BaseModel):
    id: uuid.UUID
    title: str
    city: Optional[str] = None
    country: Optional[str] = None
    status: str
    created_at: datetime
    images: List[str] = Field(default_factory=list, description="First image only")

class HostListingStats(BaseModel):
    total_referrals: int
    active_referrals: int
    completed_referrals: int
    pending_confirmations: int
    confirmed_bookings: int

class HostListingWithStats(BaseModel):
    listing: HostListingSummary
    stats: HostListingStats
