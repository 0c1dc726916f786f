"""
Listing API router

Listings are reference data for referrals: hosts create them and anyone can
read one back.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
import logging
import uuid

from app.core.database import get_db
from app.core.exceptions import NotFoundException, ValidationException
from app.core.security import require_host
from app.crud import listings as listing_store
from app.middleware.security import sanitize_text
from app.utils.validators import parse_uuid
from .schemas import ListingCreate, ListingResponse, ListingMutationResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "",
    response_model=ListingMutationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create listing"
)
async def create_listing(
    payload: ListingCreate,
    current_user: dict = Depends(require_host),
    db: AsyncSession = Depends(get_db)
):
    """Create a listing owned by the calling host"""
    title = sanitize_text(payload.title, max_length=200)
    if not title:
        raise ValidationException(
            "Invalid listing",
            errors=[{"field": "title", "message": "must contain text"}]
        )

    listing = await listing_store.create_listing(
        db,
        host_id=parse_uuid(current_user["id"], "host_id"),
        title=title,
        description=sanitize_text(payload.description, max_length=5000),
        city=sanitize_text(payload.city, max_length=100),
        country=sanitize_text(payload.country, max_length=100),
        images=payload.images,
    )
    await db.commit()

    logger.info(f"Host {current_user['id']} created listing {listing.id}")
    return ListingMutationResponse(
        listing=ListingResponse.model_validate(listing),
        message="Listing created"
    )


@router.get("/{listing_id}", response_model=ListingResponse, summary="Get listing")
async def get_listing(
    listing_id: uuid.UUID,
    db: AsyncSession = Depends(get_db)
):
    """Get listing by ID"""
    listing = await listing_store.get_listing_by_id(db, listing_id)
    if not listing:
        raise NotFoundException("Listing not found")
    return listing
