"""
User model
Holds credentials and the role the referral flows authorize against
"""

from sqlalchemy import Column, String, Boolean, DateTime, Enum
from sqlalchemy.orm import relationship
import enum

from .base import Base, TimestampedModel, UUIDModel

class UserRole(str, enum.Enum):
    TRAVELER = "traveler"
    HOST = "host"

class User(Base, TimestampedModel, UUIDModel):
    """Registered traveler or host"""

    __tablename__ = "users"

    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    phone = Column(String(20), nullable=True)
    role = Column(
        Enum(UserRole, values_callable=lambda roles: [role.value for role in roles], native_enum=False),
        default=UserRole.TRAVELER,
        nullable=False
    )

    is_active = Column(Boolean, default=True, nullable=False)
    last_login = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    listings = relationship("Listing", back_populates="host", lazy="raise")
    referrals = relationship("Referral", back_populates="user", lazy="raise")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_host(self) -> bool:
        return self.role == UserRole.HOST

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
