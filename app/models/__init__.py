"""Models package initialization"""

from .base import Base, register_model
from .user import User, UserRole
from .listing import Listing, ListingStatus
from .referral import Referral, ReferralEmail, ReferralStatus
from .pending_confirmation import PendingConfirmation, ConfirmationStatus, ReportedBy
from .reward import Reward, RewardType, RewardStatus

# Register all models
register_model(User)
register_model(Listing)
register_model(Referral)
register_model(ReferralEmail)
register_model(PendingConfirmation)
register_model(Reward)

# Export all models
__all__ = [
    "Base",
    "User",
    "UserRole",
    "Listing",
    "ListingStatus",
    "Referral",
    "ReferralEmail",
    "ReferralStatus",
    "PendingConfirmation",
    "ConfirmationStatus",
    "ReportedBy",
    "Reward",
    "RewardType",
    "RewardStatus",
]
