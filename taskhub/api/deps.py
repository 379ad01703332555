"""
API dependencies

Supports both header-based (Authorization: Bearer) and cookie-based auth.
When the gate refreshes a token, the new one is returned in the X-New-Token
header and re-set as the session cookie.
"""
from typing import Optional
from fastapi import Depends, Request, Response
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from taskhub.core.cookies import set_session_cookie
from taskhub.core.exceptions import AdminRequiredError
from taskhub.middleware.auth import Authenticator, NEW_TOKEN_HEADER, get_token_from_request
from taskhub.models.user import User
from taskhub.services.auth_service import AuthService

# Optional bearer - doesn't fail if no Authorization header
security = HTTPBearer(auto_error=False)


def get_auth_service(request: Request) -> AuthService:
    """The process-wide auth service built in taskhub.main."""
    return request.app.state.auth_service


def get_request_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[str]:
    return get_token_from_request(request, credentials)


async def get_current_user(
    request: Request,
    response: Response,
    token: Optional[str] = Depends(get_request_token),
    auth_service: AuthService = Depends(get_auth_service),
) -> User:
    """
    Get current authenticated user.

    Raises MissingTokenError (401) or InvalidOrExpiredTokenError (403).
    """
    result = await Authenticator(auth_service).authenticate(token)

    if result.new_token:
        response.headers[NEW_TOKEN_HEADER] = result.new_token
        set_session_cookie(response, result.new_token)

    request.state.user = result.user
    request.state.new_token = result.new_token
    return result.user


def ensure_admin(user: User, message: Optional[str] = None) -> None:
    """Raise AdminRequiredError (403) unless the user is an admin."""
    if not user.is_admin:
        raise AdminRequiredError(message) if message else AdminRequiredError()


async def get_current_admin(user: User = Depends(get_current_user)) -> User:
    """Require admin user"""
    ensure_admin(user)
    return user
