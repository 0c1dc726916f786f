"""
Common dependencies for FastAPI
"""

from typing import Optional
from fastapi import Query

from .pagination import PaginationParams, clamp_limit

def get_pagination_params(
    skip: int = Query(0, ge=0, description="Records to skip"),
    limit: Optional[int] = Query(None, ge=1, description="Page size, capped at the configured maximum")
) -> PaginationParams:
    """Get pagination parameters from query"""
    return PaginationParams(skip=skip, limit=clamp_limit(limit))
