"""Rate limiting using slowapi"""

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded

from app.core.config import settings
from app.core.security import SecurityUtils
from app.core.exceptions import UnauthorizedException

# Custom key function that considers user authentication
def get_rate_limit_key(request: Request) -> str:
    """Get rate limit key based on user or IP"""
    auth_header = request.headers.get("Authorization", "")
    if auth_header.lower().startswith("bearer "):
        try:
            payload = SecurityUtils.decode_token(auth_header[7:])
            if payload.get("sub"):
                return f"user:{payload['sub']}"
        except UnauthorizedException:
            # Invalid tokens are rejected later by the route; key by IP here
            pass

    # Fall back to IP address
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        ip = forwarded.split(",")[0].strip()
    elif request.client:
        ip = request.client.host
    else:
        ip = "unknown"

    return f"ip:{ip}"

# Create limiter instance
limiter = Limiter(
    key_func=get_rate_limit_key,
    default_limits=[settings.RATE_LIMIT_DEFAULT],
    storage_uri=settings.RATE_LIMIT_STORAGE_URL,
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)

# Custom rate limit exceeded handler
async def custom_rate_limit_handler(request: Request, exc: RateLimitExceeded) -> Response:
    response = JSONResponse(
        status_code=429,
        content={
            "error": f"Too many requests. {exc.detail}",
            "code": "RATE_LIMITED"
        }
    )
    return response

# Rate limiting decorators for different endpoint groups
tracking_limiter = limiter.shared_limit(settings.RATE_LIMIT_TRACKING, scope="tracking")
auth_limiter = limiter.shared_limit(settings.RATE_LIMIT_AUTH, scope="auth")
