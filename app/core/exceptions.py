"""
Custom exception classes and error handlers
Provides consistent error responses across the application
"""

from fastapi import HTTPException, status
from typing import Any, Dict, List, Optional

class HostReferException(HTTPException):
    """Base exception class for HostRefer application"""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: Optional[str] = None,
        headers: Optional[Dict[str, Any]] = None,
        errors: Optional[List[Dict[str, Any]]] = None,
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code
        self.errors = errors

class ValidationException(HostReferException):
    """400 Bad Request for malformed input"""

    def __init__(
        self,
        detail: str,
        error_code: str = "VALIDATION_ERROR",
        errors: Optional[List[Dict[str, Any]]] = None,
    ):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            error_code=error_code,
            errors=errors
        )

class UnauthorizedException(HostReferException):
    """401 Unauthorized"""

    def __init__(self, detail: str = "Unauthorized", error_code: str = "UNAUTHORIZED"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code=error_code,
            headers={"WWW-Authenticate": "Bearer"}
        )

class ForbiddenException(HostReferException):
    """403 Forbidden: principal lacks the required role"""

    def __init__(self, detail: str = "Forbidden", error_code: str = "FORBIDDEN"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
            error_code=error_code
        )

class AccessDeniedException(ForbiddenException):
    """403 Forbidden: principal has the role but does not own the resource"""

    def __init__(self, detail: str = "Access denied"):
        super().__init__(detail=detail, error_code="ACCESS_DENIED")

class NotFoundException(HostReferException):
    """404 Not Found"""

    def __init__(self, detail: str = "Not found", error_code: str = "NOT_FOUND"):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            error_code=error_code
        )

class ConflictException(HostReferException):
    """409 Conflict"""

    def __init__(self, detail: str, error_code: str = "CONFLICT"):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
            error_code=error_code
        )

class InternalServerException(HostReferException):
    """500 Internal Server Error"""

    def __init__(
        self,
        detail: str = "Internal server error",
        error_code: str = "INTERNAL_ERROR"
    ):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            error_code=error_code
        )

class UpstreamFailureException(HostReferException):
    """502 Bad Gateway: an external collaborator is unavailable

    Reserved for remote identity or listing providers; none is remote today.
    """

    def __init__(
        self,
        detail: str = "Upstream service unavailable",
        error_code: str = "UPSTREAM_FAILURE"
    ):
        super().__init__(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=detail,
            error_code=error_code
        )

class ServiceUnavailableException(HostReferException):
    """503 Service Unavailable"""

    def __init__(
        self,
        detail: str = "Service temporarily unavailable",
        error_code: str = "SERVICE_UNAVAILABLE"
    ):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=detail,
            error_code=error_code
        )

# Business logic exceptions
class InvalidStateException(HostReferException):
    """Requested transition is illegal from the current state"""

    def __init__(self, detail: str, current_status: Optional[str] = None):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            error_code="INVALID_STATE"
        )
        self.current_status = current_status

class CodeExhaustedException(InternalServerException):
    """Referral code uniqueness retries exhausted"""

    def __init__(self, attempts: int):
        super().__init__(
            detail=f"Failed to generate unique referral code after {attempts} attempts",
            error_code="CODE_EXHAUSTED"
        )
        self.attempts = attempts

class InvalidReferralCodeException(NotFoundException):
    """Referral code is malformed or unknown"""

    def __init__(self, detail: str = "Invalid referral code"):
        super().__init__(
            detail=detail,
            error_code="INVALID_REFERRAL_CODE"
        )

class DuplicateResourceException(ConflictException):
    """Resource already exists"""

    def __init__(self, resource: str, field: str, value: str):
        super().__init__(
            detail=f"{resource} with {field} '{value}' already exists",
            error_code="DUPLICATE_RESOURCE"
        )
