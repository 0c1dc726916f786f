"""
Referral schemas for request/response validation
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List
from datetime import datetime, date
from decimal import Decimal
import uuid

from app.models import ReferralStatus, ReportedBy, ConfirmationStatus
from app.api.v1.host.schemas import ConfirmationResponse

class GenerateReferralRequest(BaseModel):
    """Request a new referral link"""
    listing_id: Optional[uuid.UUID] = None
    base_url: Optional[str] = Field(None, max_length=200, description="Defaults to the configured link base")

    @field_validator('base_url')
    @classmethod
    def validate_base_url(cls, v):
        if v is None:
            return v
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError("base_url must start with http:// or https://")
        return v

class ReferralResponse(BaseModel):
    """Referral as seen by its owner"""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    referral_code: str
    user_id: uuid.UUID
    listing_id: Optional[uuid.UUID] = None
    referral_link: str
    status: ReferralStatus
    click_count: int
    view_count: int
    booking_value: Optional[float] = None
    booking_date: Optional[datetime] = None
    check_in_date: Optional[date] = None
    check_out_date: Optional[date] = None
    created_at: datetime
    updated_at: datetime

class ReferralPublicResponse(BaseModel):
    """Referral fields safe to show to anyone holding the link"""
    model_config = ConfigDict(from_attributes=True)

    referral_code: str
    referral_link: str
    listing_id: Optional[uuid.UUID] = None
    status: ReferralStatus

class ReferralMutationResponse(BaseModel):
    referral: ReferralResponse
    message: str

class TrackCounterResponse(BaseModel):
    referral: ReferralPublicResponse
    click_count: int
    view_count: int
    message: str

class UserReferralItem(ReferralResponse):
    confirmation_status: Optional[ConfirmationStatus] = None

class UserReferralList(BaseModel):
    items: List[UserReferralItem]
    count: int

class ReferralStatsResponse(BaseModel):
    """Counts for the referral dashboard"""
    total_referrals: int = 0
    active_referrals: int = 0
    booked_referrals: int = 0
    completed_referrals: int = 0
    total_clicks: int = 0
    total_views: int = 0

class TrackClickRequest(BaseModel):
    referral_code: str = Field(..., min_length=1, max_length=64)
    email: Optional[str] = Field(None, max_length=255)

class TrackViewRequest(BaseModel):
    referral_code: str = Field(..., min_length=1, max_length=64)

class TrackBookingRequest(BaseModel):
    """Booking reported against a referral link"""
    referral_code: str = Field(..., min_length=1, max_length=64)
    guest_email: str = Field(..., max_length=255)
    check_in: date
    check_out: date
    booking_confirmation: Optional[str] = Field(None, max_length=255)
    reported_by: ReportedBy
    booking_value: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)

    model_config = {
        "json_schema_extra": {
            "example": {
                "referral_code": "K7QMZP3D",
                "guest_email": "guest@hostrefer.app",
                "check_in": "2024-06-15",
                "check_out": "2024-06-20",
                "reported_by": "guest"
            }
        }
    }

class TrackBookingResponse(BaseModel):
    referral: ReferralResponse
    confirmation: ConfirmationResponse
    message: str

class LandingListing(BaseModel):
    id: uuid.UUID
    title: str
    city: Optional[str] = None
    country: Optional[str] = None
    status: str

class LandingResponse(BaseModel):
    """What a visitor following a referral link sees"""
    referral: ReferralPublicResponse
    listing: Optional[LandingListing] = None
