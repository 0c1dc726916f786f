"""Main FastAPI application with all middleware"""

from fastapi import FastAPI
from slowapi.errors import RateLimitExceeded

from app.core.config import settings
from app.core.events import lifespan
from app.core.middleware import setup_middleware, register_exception_handlers
from app.core.monitoring import setup_monitoring_middleware
from app.middleware.rate_limit import limiter, custom_rate_limit_handler
from app.middleware.security import SecurityMiddleware
from app.api.v1 import api_router
from app.api.health import router as health_router

# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    description="Referral rewards backend for short-stay hosts and travelers",
    version=settings.APP_VERSION,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan
)

# Add rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, custom_rate_limit_handler)

# Error rendering and middleware
register_exception_handlers(app)
setup_middleware(app)
app.add_middleware(SecurityMiddleware)

if settings.PROMETHEUS_ENABLED:
    setup_monitoring_middleware(app)

# Include routers
app.include_router(api_router, prefix="/api/v1")
app.include_router(health_router, tags=["Health"])

# Root endpoint
@app.get("/")
async def root():
    return {
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": "/api/docs",
        "health": "/health"
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        workers=1 if settings.DEBUG else settings.WORKERS
    )
