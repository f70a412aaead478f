"""
JWT authentication with httpOnly cookies.
"""
from fastapi import Response, Request
from typing import Optional
import logging

from planejar.config import settings
from planejar.auth import create_access_token

logger = logging.getLogger(__name__)

COOKIE_NAME = "access_token"
COOKIE_MAX_AGE = settings.ACCESS_TOKEN_EXPIRE_HOURS * 3600


def set_auth_cookie(response: Response, email: str) -> str:
    """
    Create a JWT for ``email`` and set it as an httpOnly cookie.

    Returns the token so it can also be sent in the response body for
    bearer-header clients.
    """
    access_token = create_access_token(data={"sub": email})
    response.set_cookie(
        key=COOKIE_NAME,
        value=access_token,
        httponly=True,
        secure=settings.ENVIRONMENT == "production",
        samesite="lax",
        max_age=COOKIE_MAX_AGE,
        path="/"
    )
    logger.info("Auth cookie set", extra={"path": "/auth"})
    return access_token


def get_token_from_cookie(request: Request) -> Optional[str]:
    return request.cookies.get(COOKIE_NAME)


def clear_auth_cookie(response: Response):
    response.delete_cookie(key=COOKIE_NAME, path="/")
    logger.info("Auth cookie cleared")
