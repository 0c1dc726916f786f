"""
Authentication schemas for request/response validation
"""

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import Optional
from datetime import datetime
import uuid

from app.core.config import settings
from app.models import UserRole

class RegisterRequest(BaseModel):
    """Request to register a new account"""
    email: EmailStr
    password: str = Field(..., min_length=settings.PASSWORD_MIN_LENGTH, max_length=72)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=20)
    role: UserRole = UserRole.TRAVELER

    @field_validator('role', mode='before')
    @classmethod
    def map_legacy_role(cls, v):
        # Older clients still send "user" for travelers
        if isinstance(v, str) and v.lower() == "user":
            return UserRole.TRAVELER
        return v

    @field_validator('first_name', 'last_name')
    @classmethod
    def validate_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Name must not be blank")
        return v

    model_config = {
        "json_schema_extra": {
            "example": {
                "email": "jane@hostrefer.app",
                "password": "s3cure-pass",
                "first_name": "Jane",
                "last_name": "Doe",
                "role": "host"
            }
        }
    }

class LoginRequest(BaseModel):
    """Request to login with email and password"""
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=72)

class TokenResponse(BaseModel):
    """Bearer tokens issued on login"""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Access token lifetime in seconds")

class UserResponse(BaseModel):
    """Public user profile"""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    role: UserRole
    is_active: bool
    created_at: datetime

class AuthResponse(BaseModel):
    """Profile plus tokens"""
    user: UserResponse
    tokens: TokenResponse
    message: str
