"""
Authentication API routes
"""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.security import get_current_user
from app.middleware.rate_limit import auth_limiter
from .schemas import (
    RegisterRequest,
    LoginRequest,
    AuthResponse,
    UserResponse,
)
from .services import AuthService

router = APIRouter()

@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register new user",
    description="Create a traveler or host account and return bearer tokens"
)
@auth_limiter
async def register(
    request: Request,
    payload: RegisterRequest,
    db: AsyncSession = Depends(get_db)
):
    """Register new user"""
    service = AuthService(db)
    user = await service.register(payload)

    return AuthResponse(
        user=UserResponse.model_validate(user),
        tokens=service.generate_tokens(user),
        message="Registration successful"
    )

@router.post(
    "/login",
    response_model=AuthResponse,
    status_code=status.HTTP_200_OK,
    summary="Login user",
    description="Login with email and password"
)
@auth_limiter
async def login(
    request: Request,
    payload: LoginRequest,
    db: AsyncSession = Depends(get_db)
):
    """Login with email and password"""
    service = AuthService(db)
    user = await service.login(payload.email, payload.password)

    return AuthResponse(
        user=UserResponse.model_validate(user),
        tokens=service.generate_tokens(user),
        message="Login successful"
    )

@router.get(
    "/me",
    response_model=UserResponse,
    summary="Get current user",
    description="Profile of the authenticated user"
)
async def get_me(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get current user profile"""
    service = AuthService(db)
    return await service.get_profile(current_user["id"])
