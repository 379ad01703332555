"""
Authentication routes

- Registration with email verification
- Login (token in body and HttpOnly cookie)
- Token status and sliding refresh
- Stateless logout (cookie cleared, token not revoked)

Register and login are rate limited to slow down brute force attempts.
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query, Request, Response, status

from taskhub.api.deps import get_auth_service, get_current_user, get_request_token
from taskhub.core.config import settings
from taskhub.core.cookies import clear_session_cookie, set_session_cookie
from taskhub.core.exceptions import MissingTokenError
from taskhub.core.rate_limit import limiter
from taskhub.middleware.auth import NEW_TOKEN_HEADER
from taskhub.models.user import User
from taskhub.schemas.auth import (
    LoginResult,
    MessageResponse,
    TokenRefreshResult,
    TokenValidity,
    VerificationResult,
)
from taskhub.schemas.user import UserLogin, UserPublic, UserRegister
from taskhub.services.auth_service import AuthService

router = APIRouter()


@router.post("/register", response_model=UserPublic, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.RATE_LIMIT_AUTH)
async def register(
    request: Request,
    user_data: UserRegister,
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Register a new user.

    A verification link is emailed to the address. The response never
    includes the password.
    """
    return await auth_service.register(
        name=user_data.name,
        email=user_data.email,
        password=user_data.password,
    )


@router.post("/login", response_model=LoginResult)
@limiter.limit(settings.RATE_LIMIT_AUTH)
async def login(
    request: Request,
    response: Response,
    credentials: UserLogin,
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Log in and receive a 24h session token.

    The token is returned in the body for API clients and set as an
    HttpOnly cookie for browsers.
    """
    result = await auth_service.login(credentials.email, credentials.password)
    set_session_cookie(response, result.token)
    return result


@router.get("/verify-email", response_model=VerificationResult)
async def verify_email(
    token: str = Query(..., min_length=1),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Confirm an email address from the link sent at registration."""
    return await auth_service.verify_email(token)


@router.get("/token-status", response_model=TokenValidity)
async def token_status(
    token: Optional[str] = Depends(get_request_token),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Report validity and remaining lifetime (ms) of the presented token."""
    if not token:
        return TokenValidity(is_valid=False)
    return await auth_service.check_token_validity(token)


@router.post("/refresh-token", response_model=TokenRefreshResult)
async def refresh_token(
    response: Response,
    token: Optional[str] = Depends(get_request_token),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Reissue the session token when less than an hour of validity remains."""
    if not token:
        raise MissingTokenError()

    result = await auth_service.reset_token_if_active(token)
    if result.new_token:
        response.headers[NEW_TOKEN_HEADER] = result.new_token
        set_session_cookie(response, result.new_token)
    return result


@router.post("/logout", response_model=MessageResponse)
async def logout(response: Response):
    """
    Clear the session cookie.

    Tokens are stateless; a copy held elsewhere stays valid until it expires.
    """
    clear_session_cookie(response)
    return MessageResponse(message="Logged out")


@router.get("/me", response_model=UserPublic)
async def get_me(current_user: User = Depends(get_current_user)):
    """Get the authenticated user's profile."""
    return current_user
