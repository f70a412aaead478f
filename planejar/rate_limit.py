"""
Rate limiting configuration.
"""
import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from planejar.config import settings

logger = logging.getLogger(__name__)

storage_uri = settings.REDIS_URL or "memory://"
if not settings.REDIS_URL:
    logger.warning("REDIS_URL not set, using memory storage for rate limiting")

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["200/minute"],
    storage_uri=storage_uri,
    strategy="fixed-window",
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.warning(
        f"Rate limit exceeded for {get_remote_address(request)}",
        extra={"path": request.url.path, "method": request.method},
    )
    return JSONResponse(
        status_code=429,
        content={
            "error_code": "RATE_LIMIT_EXCEEDED",
            "message": "Muitas requisições. Tente novamente em instantes.",
            "details": {"retry_after": "60 seconds"},
        },
    )


AUTH_RATE_LIMIT = "5/minute"
PASSWORD_RESET_RATE_LIMIT = "3/minute"
AI_RATE_LIMIT = "30/minute"
