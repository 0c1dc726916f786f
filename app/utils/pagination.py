"""
Pagination utilities
"""

from typing import Optional
from pydantic import BaseModel, Field

from app.core.config import settings

class PaginationParams(BaseModel):
    """Offset pagination parameters"""
    skip: int = Field(0, ge=0, description="Records to skip")
    limit: int = Field(settings.DEFAULT_PAGE_SIZE, ge=1, description="Page size")

def clamp_limit(limit: Optional[int] = None, maximum: Optional[int] = None) -> int:
    """
    Bound a requested page size

    Args:
        limit: Requested size, default page size when missing or not positive
        maximum: Hard cap, MAX_PAGE_SIZE when omitted

    Returns:
        Page size within [1, maximum]
    """
    maximum = maximum or settings.MAX_PAGE_SIZE
    if not limit or limit < 1:
        limit = settings.DEFAULT_PAGE_SIZE
    return min(limit, maximum)
