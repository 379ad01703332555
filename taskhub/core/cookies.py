"""
Cookie Management Utilities

Centralized handling of the session token cookie.
"""
from typing import Optional
from fastapi import Response
from starlette.requests import Request

from taskhub.core.config import settings


def set_session_cookie(response: Response, token: str) -> None:
    """
    Set the session token cookie on a response.

    HttpOnly so scripts cannot read it; the Swagger UI and browser clients
    pick it up automatically on the next call.
    """
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite=settings.COOKIE_SAMESITE,
        max_age=settings.SESSION_TOKEN_EXPIRE_HOURS * 60 * 60,
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    """Clear the session token cookie."""
    response.delete_cookie(key=settings.SESSION_COOKIE_NAME, path="/")


def get_session_token_from_cookie(request: Request) -> Optional[str]:
    """Extract session token from cookie."""
    return request.cookies.get(settings.SESSION_COOKIE_NAME)
