"""
Authentication gate

Runs once per request before any protected handler:
1. extract the session token (Authorization header first, then cookie)
2. check validity
3. opportunistically refresh a token close to expiry
4. resolve the token's user

Every failure ends in one of two rejections: MissingTokenError (401) or
InvalidOrExpiredTokenError (403). A failed refresh is not a failure; the
request continues on the original token.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi.security import HTTPAuthorizationCredentials
from starlette.requests import Request

from taskhub.core.cookies import get_session_token_from_cookie
from taskhub.core.exceptions import InvalidOrExpiredTokenError, MissingTokenError
from taskhub.models.user import User

logger = logging.getLogger(__name__)

NEW_TOKEN_HEADER = "X-New-Token"


@dataclass
class AuthenticationResult:
    user: User
    new_token: Optional[str] = None


def get_token_from_request(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = None,
) -> Optional[str]:
    """
    Extract session token from request.

    Priority:
    1. Authorization header (Bearer token)
    2. Session cookie

    Returns None if no token found.
    """
    if credentials and credentials.credentials:
        return credentials.credentials

    return get_session_token_from_cookie(request)


class Authenticator:
    """Straight-line request gate over the auth service."""

    def __init__(self, auth_service):
        self.auth_service = auth_service

    async def authenticate(self, token: Optional[str]) -> AuthenticationResult:
        if not token:
            raise MissingTokenError()

        validity = await self.auth_service.check_token_validity(token)
        if not validity.is_valid:
            raise InvalidOrExpiredTokenError()

        new_token = None
        refresh_window_ms = self.auth_service.refresh_window.total_seconds() * 1000
        if validity.time_remaining and validity.time_remaining <= refresh_window_ms:
            try:
                result = await self.auth_service.reset_token_if_active(token)
                new_token = result.new_token
            except Exception as e:
                logger.warning(f"Token refresh failed, continuing with original token: {e}")

        try:
            user = await self.auth_service.verify_token(token)
        except Exception as e:
            logger.info(f"Token identity resolution failed: {type(e).__name__}: {e}")
            raise InvalidOrExpiredTokenError() from e

        return AuthenticationResult(user=user, new_token=new_token)
