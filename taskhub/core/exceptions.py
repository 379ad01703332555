"""
TaskHub Exception Hierarchy

Structured exception classes for the authentication core and the
persistence/email collaborators. All exceptions include code, message and
details so the HTTP layer can render them and logs stay consistent.

Exception Hierarchy:
    TaskHubError
    ├── TokenError
    │   ├── InvalidSignatureError
    │   └── TokenExpiredError
    ├── AuthError
    │   ├── DuplicateEmailError
    │   ├── InvalidCredentialsError
    │   ├── InvalidVerificationTokenError
    │   ├── ExpiredVerificationTokenError
    │   ├── UserNotFoundError
    │   ├── InvalidTokenError
    │   ├── MissingTokenError
    │   ├── InvalidOrExpiredTokenError
    │   └── AdminRequiredError
    ├── StoreError
    └── EmailDispatchError
"""
import logging
from typing import Optional, Dict, Any

logger = logging.getLogger(__name__)


class TaskHubError(Exception):
    """
    Base exception for all TaskHub custom errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code for programmatic handling
        details: Additional context for debugging
        status_code: HTTP status the API layer answers with
    """

    default_code: str = "TASKHUB_ERROR"
    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


# =============================================================================
# TOKEN CODEC ERRORS
# =============================================================================

class TokenError(TaskHubError):
    """Base exception for signed token failures."""
    default_code = "TOKEN_ERROR"
    status_code = 401


class InvalidSignatureError(TokenError):
    """Token is malformed, tampered with, or signed with another key."""
    default_code = "TOKEN_INVALID_SIGNATURE"

    def __init__(self, message: str = "Invalid token signature", **kwargs):
        super().__init__(message, **kwargs)


class TokenExpiredError(TokenError):
    """Token signature is valid but its expiry has passed."""
    default_code = "TOKEN_EXPIRED"

    def __init__(self, message: str = "Token has expired", **kwargs):
        super().__init__(message, **kwargs)


# =============================================================================
# AUTH ERRORS
# =============================================================================

class AuthError(TaskHubError):
    """Base exception for authentication failures."""
    default_code = "AUTH_ERROR"
    status_code = 401


class DuplicateEmailError(AuthError):
    """Registration conflict on email."""
    default_code = "DUPLICATE_EMAIL"
    status_code = 409

    def __init__(self, message: str = "User already exists with this email", **kwargs):
        super().__init__(message, **kwargs)


class InvalidCredentialsError(AuthError):
    """Unknown email or wrong password. Both cases share one message."""
    default_code = "INVALID_CREDENTIALS"
    status_code = 401

    def __init__(self, message: str = "Invalid credentials", **kwargs):
        super().__init__(message, **kwargs)


class InvalidVerificationTokenError(AuthError):
    default_code = "INVALID_VERIFICATION_TOKEN"
    status_code = 400

    def __init__(self, message: str = "Invalid verification token", **kwargs):
        super().__init__(message, **kwargs)


class ExpiredVerificationTokenError(AuthError):
    default_code = "EXPIRED_VERIFICATION_TOKEN"
    status_code = 400

    def __init__(self, message: str = "Verification token has expired", **kwargs):
        super().__init__(message, **kwargs)


class UserNotFoundError(AuthError):
    default_code = "USER_NOT_FOUND"
    status_code = 404

    def __init__(self, message: str = "User not found", **kwargs):
        super().__init__(message, **kwargs)


class InvalidTokenError(AuthError):
    """Session token failed verification (malformed, tampered or expired)."""
    default_code = "INVALID_TOKEN"
    status_code = 401

    def __init__(self, message: str = "Invalid token", **kwargs):
        super().__init__(message, **kwargs)


class MissingTokenError(AuthError):
    """Request gate found no token in header or cookie."""
    default_code = "MISSING_TOKEN"
    status_code = 401

    def __init__(self, message: str = "Access token required", **kwargs):
        super().__init__(message, **kwargs)


class InvalidOrExpiredTokenError(AuthError):
    """Request gate rejection for any token or identity failure."""
    default_code = "INVALID_OR_EXPIRED_TOKEN"
    status_code = 403

    def __init__(self, message: str = "Invalid or expired token", **kwargs):
        super().__init__(message, **kwargs)


class AdminRequiredError(AuthError):
    """Authenticated, but the action needs the admin role."""
    default_code = "ADMIN_REQUIRED"
    status_code = 403

    def __init__(self, message: str = "Admin access required", **kwargs):
        super().__init__(message, **kwargs)


# =============================================================================
# COLLABORATOR ERRORS
# =============================================================================

class StoreError(TaskHubError):
    """Persistence-layer failure. Not retried by the core."""
    default_code = "STORE_ERROR"
    status_code = 503

    def __init__(self, message: str = "Storage is temporarily unavailable", **kwargs):
        super().__init__(message, **kwargs)


class EmailDispatchError(TaskHubError):
    """Outbound email could not be sent."""
    default_code = "EMAIL_DISPATCH_FAILED"
    status_code = 502

    def __init__(
        self,
        message: str = "Failed to send email",
        recipient: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.pop("details", {})
        details["recipient"] = recipient
        super().__init__(message, details=details, **kwargs)
