# File: app/core/limiter.py

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from app.core.config import settings

# Counters live in the shared store (redis by default) so limits hold across
# every worker process.
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=settings.limiter_storage_uri,
    default_limits=[settings.rate_limit_default],
    enabled=settings.rate_limit_enabled,
)


async def custom_rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """
    Custom exception handler for rate-limited requests to return a JSON response.
    """
    return JSONResponse(
        status_code=429,
        content={
            "error": "Too Many Requests",
            "message": f"Rate limit exceeded ({exc.detail}). Please try again later.",
        },
    )
