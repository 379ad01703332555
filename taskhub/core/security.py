"""
Security utilities - password hashing, signed tokens

Tokens are compact HS256 JWTs. Session tokens and email verification tokens
are signed with different secrets; the caller picks the secret and checks
the purpose claim.
"""
import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from jose import JWTError, jwt

from taskhub.core.config import settings
from taskhub.core.exceptions import InvalidSignatureError, TokenExpiredError
from taskhub.core.utils import Clock

# Matches the prefix every bcrypt hash starts with, e.g. "$2b$12$"
BCRYPT_HASH_PATTERN = re.compile(r"^\$2[aby]\$\d{2}\$")

PURPOSE_SESSION = "session"
PURPOSE_EMAIL_VERIFICATION = "email-verification"


class PasswordHasher:
    """One-way bcrypt hash/verify."""

    def __init__(self, rounds: Optional[int] = None):
        self.rounds = rounds or settings.BCRYPT_ROUNDS

    def hash(self, password: str) -> str:
        """Generate password hash"""
        return bcrypt.hashpw(
            password.encode("utf-8"),
            bcrypt.gensalt(rounds=self.rounds)
        ).decode("utf-8")

    def verify(self, plain_password: str, hashed_password: str) -> bool:
        """Verify a password against its hash"""
        try:
            return bcrypt.checkpw(
                plain_password.encode("utf-8"),
                hashed_password.encode("utf-8")
            )
        except ValueError:
            # Stored value is not a bcrypt hash
            return False

    @staticmethod
    def is_hashed(value: Optional[str]) -> bool:
        return bool(value) and BCRYPT_HASH_PATTERN.match(value) is not None


@dataclass(frozen=True)
class TokenClaims:
    subject: str
    purpose: str
    issued_at: datetime
    expires_at: datetime
    token_id: Optional[str] = None


class TokenCodec:
    """
    Issue and verify expiring signed tokens.

    Expiry is evaluated against the injected clock, the same one used when
    issuing, so there is no skew between the two paths.
    """

    def __init__(self, clock: Optional[Clock] = None, algorithm: Optional[str] = None):
        self.clock = clock or Clock()
        self.algorithm = algorithm or settings.JWT_ALGORITHM

    def issue(self, subject: str, purpose: str, secret: str, ttl: timedelta) -> str:
        """Create a signed token carrying subject, purpose, issued-at and expiry."""
        now = self.clock.now()
        claims = {
            "sub": str(subject),
            "type": purpose,
            "iat": now,
            "exp": now + ttl,
            "jti": str(uuid.uuid4()),
        }
        return jwt.encode(claims, secret, algorithm=self.algorithm)

    def verify(self, token: str, secret: str) -> TokenClaims:
        """
        Decode and validate a token.

        Raises:
            InvalidSignatureError: malformed, tampered or wrong key
            TokenExpiredError: clock.now() is at or past the expiry
        """
        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[self.algorithm],
                # Expiry is checked below against our own clock
                options={"verify_exp": False, "verify_sub": False},
            )
        except JWTError as e:
            raise InvalidSignatureError(details={"reason": str(e)})

        subject = payload.get("sub")
        exp = payload.get("exp")
        if not subject or not isinstance(exp, (int, float)):
            raise InvalidSignatureError("Token is missing required claims")

        iat = payload.get("iat")
        expires_at = datetime.fromtimestamp(exp, tz=timezone.utc)
        issued_at = datetime.fromtimestamp(iat, tz=timezone.utc) if isinstance(iat, (int, float)) else expires_at

        if self.clock.now() >= expires_at:
            raise TokenExpiredError(details={"expired_at": expires_at.isoformat()})

        return TokenClaims(
            subject=subject,
            purpose=payload.get("type", ""),
            issued_at=issued_at,
            expires_at=expires_at,
            token_id=payload.get("jti"),
        )
