"""
Authentication service layer
Handles business logic for authentication
"""

from typing import Union
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError
import logging
import uuid

from app.models import User
from app.core.security import SecurityUtils
from app.core.config import settings
from app.core.exceptions import UnauthorizedException, NotFoundException, DuplicateResourceException
from app.crud import users as user_store
from app.utils.validators import parse_uuid
from .schemas import RegisterRequest, TokenResponse

logger = logging.getLogger(__name__)

class AuthService:
    """Authentication service"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def register(self, request: RegisterRequest) -> User:
        """
        Create a new account

        Args:
            request: Registration data

        Returns:
            The created user

        Raises:
            DuplicateResourceException: email already registered
        """
        email = request.email.strip().lower()

        if await user_store.get_user_by_email(self.db, email):
            raise DuplicateResourceException("User", "email", email)

        try:
            user = await user_store.create_user(
                self.db,
                email=email,
                password_hash=SecurityUtils.hash_password(request.password),
                first_name=request.first_name,
                last_name=request.last_name,
                role=request.role,
                phone=request.phone,
            )
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise DuplicateResourceException("User", "email", email)

        logger.info(f"Registered {user.role.value} {user.id}")
        return user

    async def login(self, email: str, password: str) -> User:
        """Check credentials and return the user"""
        user = await user_store.get_user_by_email(self.db, email.strip().lower())

        if not user or not SecurityUtils.verify_password(password, user.password_hash):
            raise UnauthorizedException("Invalid email or password")

        if not user.is_active:
            raise UnauthorizedException("Account is disabled")

        await user_store.touch_last_login(self.db, user.id)
        await self.db.commit()

        return user

    async def get_profile(self, user_id: Union[str, uuid.UUID]) -> User:
        """Get the profile behind a token"""
        user = await user_store.get_user_by_id(self.db, parse_uuid(user_id, "user_id"))
        if not user:
            raise NotFoundException("User not found")
        return user

    def generate_tokens(self, user: User) -> TokenResponse:
        """Issue access and refresh tokens carrying the user's role"""
        claims = {
            "sub": str(user.id),
            "role": user.role.value,
            "email": user.email,
        }
        return TokenResponse(
            access_token=SecurityUtils.create_access_token(claims),
            refresh_token=SecurityUtils.create_refresh_token(claims),
            expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        )
