"""
User CRUD operations
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from typing import Optional
import uuid

from app.models import User, UserRole
from app.models.base import utcnow


async def get_user_by_id(db: AsyncSession, user_id: uuid.UUID) -> Optional[User]:
    """Get user by ID"""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    """Get user by email"""
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def get_user_role(db: AsyncSession, user_id: uuid.UUID) -> Optional[UserRole]:
    """Get only the role of a user"""
    result = await db.execute(select(User.role).where(User.id == user_id))
    return result.scalar_one_or_none()


async def create_user(
    db: AsyncSession,
    email: str,
    password_hash: str,
    first_name: str,
    last_name: str,
    role: UserRole = UserRole.TRAVELER,
    phone: Optional[str] = None,
) -> User:
    """Create a user; raises IntegrityError on a taken email"""
    user = User(
        email=email,
        password_hash=password_hash,
        first_name=first_name,
        last_name=last_name,
        role=role,
        phone=phone,
        is_active=True,
    )
    db.add(user)
    await db.flush()
    return user


async def touch_last_login(db: AsyncSession, user_id: uuid.UUID) -> None:
    """Stamp last login time"""
    await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(last_login=utcnow())
        .execution_options(synchronize_session=False)
    )
