"""
Auth schemas
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from taskhub.schemas.user import UserPublic


class LoginResult(BaseModel):
    user: UserPublic
    token: str
    token_type: str = "bearer"


class VerificationResult(BaseModel):
    success: bool
    message: str


class TokenValidity(BaseModel):
    """expires_at and time_remaining (milliseconds) are only set when valid."""
    is_valid: bool
    expires_at: Optional[datetime] = None
    time_remaining: Optional[int] = None


class TokenRefreshResult(BaseModel):
    new_token: Optional[str] = None
    message: str


class MessageResponse(BaseModel):
    message: str
