"""
Listing schemas
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List
from datetime import datetime
import uuid

class ListingCreate(BaseModel):
    """Create a listing"""
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    city: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, max_length=100)
    images: List[str] = Field(default_factory=list, max_length=30)

    @field_validator('images')
    @classmethod
    def validate_images(cls, v):
        for url in v:
            if not url.startswith(("http://", "https://")):
                raise ValueError("Image URLs must start with http:// or https://")
        return v

class ListingResponse(BaseModel):
    """Listing as returned by the API"""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    host_id: uuid.UUID
    title: str
    description: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    images: List[str] = []
    status: str
    created_at: datetime

class ListingMutationResponse(BaseModel):
    listing: ListingResponse
    message: str
