"""
Listing CRUD operations

Referral flows only ever read a listing through the column projections below;
full rows (with images) are loaded only by get_listing_by_id.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from typing import Optional, List, Dict, Any
import uuid

from app.models import Listing, ListingStatus


async def create_listing(
    db: AsyncSession,
    host_id: uuid.UUID,
    title: str,
    description: Optional[str] = None,
    city: Optional[str] = None,
    country: Optional[str] = None,
    images: Optional[List[str]] = None,
) -> Listing:
    """Create a listing for a host"""
    listing = Listing(
        host_id=host_id,
        title=title,
        description=description,
        city=city,
        country=country,
        images=images or [],
        status=ListingStatus.ACTIVE.value,
    )
    db.add(listing)
    await db.flush()
    return listing


async def get_listing_by_id(db: AsyncSession, listing_id: uuid.UUID) -> Optional[Listing]:
    """Get full listing by ID"""
    result = await db.execute(select(Listing).where(Listing.id == listing_id))
    return result.scalar_one_or_none()


async def get_listing_host_id(db: AsyncSession, listing_id: uuid.UUID) -> Optional[uuid.UUID]:
    """Get only the owning host id of a listing"""
    result = await db.execute(select(Listing.host_id).where(Listing.id == listing_id))
    return result.scalar_one_or_none()


async def get_listing_summary(db: AsyncSession, listing_id: uuid.UUID) -> Optional[Dict[str, Any]]:
    """Get display fields of a listing without its images"""
    stmt = select(
        Listing.id,
        Listing.title,
        Listing.city,
        Listing.country,
        Listing.status,
    ).where(Listing.id == listing_id)

    row = (await db.execute(stmt)).first()
    return dict(row._mapping) if row else None


async def count_host_listings(db: AsyncSession, host_id: uuid.UUID) -> Dict[str, int]:
    """Get total and active listing counts for a host"""
    stmt = (
        select(Listing.status, func.count(Listing.id))
        .where(Listing.host_id == host_id)
        .group_by(Listing.status)
    )
    counts = {status: count for status, count in (await db.execute(stmt)).all()}

    return {
        "total": sum(counts.values()),
        "active": counts.get(ListingStatus.ACTIVE.value, 0),
    }


async def get_host_listing_ids(db: AsyncSession, host_id: uuid.UUID) -> List[uuid.UUID]:
    """Get ids of every listing owned by a host"""
    result = await db.execute(select(Listing.id).where(Listing.host_id == host_id))
    return list(result.scalars().all())


async def get_host_listings_with_thumbnail(
    db: AsyncSession,
    host_id: uuid.UUID,
    limit: int = 10
) -> List[Dict[str, Any]]:
    """Get newest listings for a host with only the first image"""
    stmt = (
        select(
            Listing.id,
            Listing.title,
            Listing.city,
            Listing.country,
            Listing.status,
            Listing.created_at,
            Listing.images[0].label("thumbnail"),
        )
        .where(Listing.host_id == host_id)
        .order_by(Listing.created_at.desc())
        .limit(limit)
    )
    return [dict(row._mapping) for row in (await db.execute(stmt)).all()]
