"""
Application middleware for request/response processing
Handles CORS, request IDs, logging, and error rendering
"""

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from sqlalchemy.exc import TimeoutError as PoolTimeoutError, OperationalError
import asyncio
import time
import uuid
import logging
from typing import Callable

from .config import settings
from .exceptions import HostReferException, ServiceUnavailableException

logger = logging.getLogger(__name__)

class RequestIDMiddleware(BaseHTTPMiddleware):
    """Add unique request ID to each request"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        return response

class LoggingMiddleware(BaseHTTPMiddleware):
    """Log all requests and responses"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()
        client_host = request.client.host if request.client else "unknown"

        logger.info(f"Request: {request.method} {request.url.path} from {client_host}")

        response = await call_next(request)

        process_time = time.time() - start_time
        logger.info(
            f"Response: {response.status_code} "
            f"Time: {process_time:.3f}s "
            f"Request ID: {getattr(request.state, 'request_id', 'N/A')}"
        )

        # Add process time header
        response.headers["X-Process-Time"] = f"{process_time:.4f}"

        return response

def error_body(message: str, code: str, errors=None) -> dict:
    """Error payload shared by every handler"""
    body = {"error": message, "code": code}
    if errors:
        body["errors"] = errors
    return body

async def hostrefer_exception_handler(request: Request, exc: HostReferException) -> JSONResponse:
    """Render domain exceptions"""
    if exc.status_code >= 500:
        logger.error(f"{exc.error_code}: {exc.detail}")

    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.detail, exc.error_code or "ERROR", exc.errors),
        headers=exc.headers
    )

async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render framework HTTP errors (404 routes, 405 methods)"""
    codes = {404: "NOT_FOUND", 405: "METHOD_NOT_ALLOWED", 401: "UNAUTHORIZED", 403: "FORBIDDEN"}
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail), codes.get(exc.status_code, "HTTP_ERROR")),
        headers=getattr(exc, "headers", None)
    )

async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Reshape pydantic request errors to a 400 with field details"""
    errors = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
            "message": error.get("msg", "Invalid value"),
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content=error_body("Validation failed", "VALIDATION_ERROR", errors)
    )

async def store_timeout_handler(request: Request, exc: Exception) -> JSONResponse:
    """Store did not answer in time"""
    logger.error(f"Store timeout on {request.method} {request.url.path}: {exc}")
    return await hostrefer_exception_handler(request, ServiceUnavailableException())

async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort handler; never leaks internals outside debug mode"""
    logger.exception(f"Unhandled exception: {exc}")

    detail = str(exc) if settings.DEBUG else "An unexpected error occurred"
    return JSONResponse(
        status_code=500,
        content=error_body(detail, "INTERNAL_ERROR")
    )

async def operational_error_handler(request: Request, exc: OperationalError) -> JSONResponse:
    # sqlite reports lock waits that ran out as "database is locked"
    if "locked" in str(exc.orig).lower() or "timeout" in str(exc.orig).lower():
        return await store_timeout_handler(request, exc)
    return await unhandled_exception_handler(request, exc)

def register_exception_handlers(app: FastAPI) -> None:
    """Install structured error handlers"""
    app.add_exception_handler(HostReferException, hostrefer_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(PoolTimeoutError, store_timeout_handler)
    app.add_exception_handler(asyncio.TimeoutError, store_timeout_handler)
    app.add_exception_handler(OperationalError, operational_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

def setup_middleware(app: FastAPI) -> None:
    """Configure all middleware for the application"""

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=settings.CORS_ALLOW_METHODS,
        allow_headers=settings.CORS_ALLOW_HEADERS,
    )

    # Add trusted host middleware for security
    if settings.ALLOWED_HOSTS != ["*"]:
        app.add_middleware(
            TrustedHostMiddleware,
            allowed_hosts=settings.ALLOWED_HOSTS
        )

    # Add custom middleware in order
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
