"""Custom validators and normalizers"""

from datetime import date
from typing import Union
import uuid

from email_validator import validate_email, EmailNotValidError

from app.core.exceptions import ValidationException

def validate_email_address(email: str, field: str = "email") -> str:
    """Validate and normalize email"""
    email = email.strip().lower()

    try:
        validation = validate_email(email, check_deliverability=False)
        return validation.normalized
    except EmailNotValidError as e:
        raise ValidationException(
            "Invalid email address",
            errors=[{"field": field, "message": str(e)}]
        )

def validate_booking_dates(check_in: date, check_out: date) -> None:
    """Check-in must be strictly before check-out"""
    if check_in >= check_out:
        raise ValidationException(
            "Check-out date must be after check-in date",
            errors=[{"field": "check_out", "message": "must be after check_in"}]
        )

def parse_uuid(value: Union[str, uuid.UUID], field: str = "id") -> uuid.UUID:
    """Coerce an id from a token or path into a UUID"""
    if isinstance(value, uuid.UUID):
        return value

    try:
        return uuid.UUID(str(value))
    except (ValueError, TypeError):
        raise ValidationException(
            f"Invalid {field}",
            errors=[{"field": field, "message": "must be a valid UUID"}]
        )
