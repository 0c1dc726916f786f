"""API v1 routes aggregation"""

from fastapi import APIRouter

from .auth.router import router as auth_router
from .referrals.router import router as referrals_router
from .host.router import router as host_router
from .rewards.router import router as rewards_router
from .listings.router import router as listings_router

# Create v1 router
api_router = APIRouter()

# Include all routers
api_router.include_router(auth_router, prefix="/auth", tags=["Authentication"])
api_router.include_router(referrals_router, prefix="/referrals", tags=["Referrals"])
api_router.include_router(host_router, prefix="/host", tags=["Host"])
api_router.include_router(rewards_router, prefix="/rewards", tags=["Rewards"])
api_router.include_router(listings_router, prefix="/listings", tags=["Listings"])

# Export router
router = api_router
