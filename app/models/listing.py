"""Listing reference data owned by hosts"""

from sqlalchemy import Column, String, Text, ForeignKey, Index, Uuid, JSON
from sqlalchemy.orm import relationship
import enum

from .base import Base, TimestampedModel, UUIDModel

class ListingStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"

class Listing(Base, TimestampedModel, UUIDModel):
    """
    A property a host accepts bookings for.

    `images` can be large; queries serving referral flows select explicit
    columns instead of loading whole rows.
    """

    __tablename__ = "listings"

    host_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    city = Column(String(100), nullable=True)
    country = Column(String(100), nullable=True)
    images = Column(JSON, default=list, nullable=False)
    status = Column(String(20), default=ListingStatus.ACTIVE.value, nullable=False)

    # Relationships
    host = relationship("User", back_populates="listings", lazy="raise")

    __table_args__ = (
        Index("idx_listings_host_status", "host_id", "status"),
    )
