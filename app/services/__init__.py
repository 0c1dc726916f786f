"""Services package"""

from .referral_service import ReferralService
from .reward_service import RewardService
from .host_service import HostService

__all__ = [
    "ReferralService",
    "RewardService",
    "HostService",
]
