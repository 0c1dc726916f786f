"""Utilities package"""

from .validators import validate_email_address, validate_booking_dates, parse_uuid
from .pagination import PaginationParams, clamp_limit
from .dependencies import get_pagination_params

__all__ = [
    "validate_email_address",
    "validate_booking_dates",
    "parse_uuid",
    "PaginationParams",
    "clamp_limit",
    "get_pagination_params",
]
