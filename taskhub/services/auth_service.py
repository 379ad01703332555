"""
Auth Service

Registration, login, email verification and the session token lifecycle
(validity check and sliding refresh).

Built once at process start with its collaborators injected; it holds no
mutable state of its own, so one instance serves all requests.
"""
import logging
import uuid
from datetime import timedelta
from typing import Optional

from taskhub.core.config import settings
from taskhub.core.exceptions import (
    DuplicateEmailError,
    ExpiredVerificationTokenError,
    InvalidCredentialsError,
    InvalidSignatureError,
    InvalidTokenError,
    InvalidVerificationTokenError,
    TokenError,
    TokenExpiredError,
    UserNotFoundError,
)
from taskhub.core.security import (
    PURPOSE_EMAIL_VERIFICATION,
    PURPOSE_SESSION,
    PasswordHasher,
    TokenClaims,
    TokenCodec,
)
from taskhub.core.utils import Clock
from taskhub.models.user import User, UserRole
from taskhub.schemas.auth import LoginResult, TokenRefreshResult, TokenValidity, VerificationResult
from taskhub.schemas.user import UserPublic
from taskhub.services.email_service import build_verification_email

logger = logging.getLogger(__name__)


class AuthService:
    """
    Service for authentication operations.

    Collaborators:
    - repository: find_by_email / find_by_id / insert / update
    - mailer: async send(EmailMessage)
    - codec: issues and verifies signed tokens
    - hasher: password verification (hashing itself happens in the store)
    - clock: now() shared by token issue and verify
    """

    def __init__(
        self,
        repository,
        mailer,
        codec: Optional[TokenCodec] = None,
        hasher: Optional[PasswordHasher] = None,
        clock: Optional[Clock] = None,
        session_secret: Optional[str] = None,
        verification_secret: Optional[str] = None,
        session_ttl: Optional[timedelta] = None,
        verification_ttl: Optional[timedelta] = None,
        refresh_window: Optional[timedelta] = None,
        email_dispatch_enabled: Optional[bool] = None,
    ):
        self.repository = repository
        self.mailer = mailer
        self.clock = clock or Clock()
        self.codec = codec or TokenCodec(clock=self.clock)
        self.hasher = hasher or PasswordHasher()
        self.session_secret = session_secret or settings.JWT_SECRET
        self.verification_secret = verification_secret or settings.EMAIL_VERIFICATION_SECRET
        self.session_ttl = session_ttl or timedelta(hours=settings.SESSION_TOKEN_EXPIRE_HOURS)
        self.verification_ttl = verification_ttl or timedelta(hours=settings.EMAIL_VERIFICATION_TOKEN_HOURS)
        self.refresh_window = refresh_window or timedelta(minutes=settings.TOKEN_REFRESH_WINDOW_MINUTES)
        if email_dispatch_enabled is None:
            email_dispatch_enabled = settings.email_dispatch_active
        self.email_dispatch_enabled = email_dispatch_enabled
        self._dummy_hash = self.hasher.hash(uuid.uuid4().hex)

    # ============================================================
    # Registration & login
    # ============================================================

    async def register(self, name: str, email: str, password: str) -> UserPublic:
        """
        Create an unverified user and send the verification email.

        The store hashes the password when the user is written. Email
        delivery is not part of the outcome: failures are logged only.

        Raises:
            DuplicateEmailError: email already registered (pre-check or
                unique index on insert)
        """
        existing = await self.repository.find_by_email(email)
        if existing is not None:
            raise DuplicateEmailError()

        verification_token = self.codec.issue(
            email,
            PURPOSE_EMAIL_VERIFICATION,
            self.verification_secret,
            self.verification_ttl,
        )

        user = User(
            id=uuid.uuid4(),
            name=name,
            email=email,
            password_hash=password,
            is_email_verified=False,
            email_verification_token=verification_token,
            role=UserRole.USER,
        )
        user = await self.repository.insert(user)
        logger.info(f"Registered user {user.id}")

        await self._send_verification_email(user, verification_token)

        return UserPublic.model_validate(user)

    async def login(self, email: str, password: str) -> LoginResult:
        """
        Authenticate by email and password.

        Raises:
            InvalidCredentialsError: same message for unknown email and
                wrong password
        """
        user = await self.repository.find_by_email(email)
        if user is None:
            # Unknown email pays the same bcrypt cost as a wrong password
            self.hasher.verify(password, self._dummy_hash)
            raise InvalidCredentialsError()
        if not self.hasher.verify(password, user.password_hash):
            raise InvalidCredentialsError()

        user.record_login(self.clock.now())
        user = await self.repository.update(user)

        token = self._issue_session_token(user.id)
        logger.info(f"User {user.id} logged in")

        return LoginResult(user=UserPublic.model_validate(user), token=token)

    async def _send_verification_email(self, user: User, verification_token: str) -> None:
        if not self.email_dispatch_enabled:
            logger.debug(f"Email dispatch disabled, skipping verification email for {user.email}")
            return

        message = build_verification_email(
            to_email=user.email,
            verification_token=verification_token,
            user_name=user.name,
            expire_hours=int(self.verification_ttl.total_seconds() // 3600),
        )
        try:
            await self.mailer.send(message)
            logger.info(f"Verification email sent to {user.email}")
        except Exception as e:
            # Registration stands even when the email cannot be delivered
            logger.error(f"Failed to send verification email to {user.email}: {e}")

    # ============================================================
    # Email verification
    # ============================================================

    async def verify_email(self, token: str) -> VerificationResult:
        """
        Confirm control of an email address.

        A second call with the same token is a soft no-op.

        Raises:
            InvalidVerificationTokenError: bad signature or wrong purpose
            ExpiredVerificationTokenError: token TTL elapsed
            UserNotFoundError: no user has the embedded email
        """
        try:
            claims = self.codec.verify(token, self.verification_secret)
        except TokenExpiredError as e:
            raise ExpiredVerificationTokenError() from e
        except InvalidSignatureError as e:
            raise InvalidVerificationTokenError() from e

        if claims.purpose != PURPOSE_EMAIL_VERIFICATION:
            raise InvalidVerificationTokenError()

        user = await self.repository.find_by_email(claims.subject)
        if user is None:
            raise UserNotFoundError()

        if user.is_email_verified:
            return VerificationResult(success=False, message="Email already verified")

        user.mark_email_verified()
        await self.repository.update(user)
        logger.info(f"Email verified for user {user.id}")

        return VerificationResult(success=True, message="Email verified successfully")

    # ============================================================
    # Session tokens
    # ============================================================

    def _issue_session_token(self, user_id) -> str:
        return self.codec.issue(str(user_id), PURPOSE_SESSION, self.session_secret, self.session_ttl)

    def _decode_session_token(self, token: str) -> TokenClaims:
        try:
            claims = self.codec.verify(token, self.session_secret)
        except TokenError as e:
            raise InvalidTokenError() from e
        if claims.purpose != PURPOSE_SESSION:
            raise InvalidTokenError()
        return claims

    async def check_token_validity(self, token: str) -> TokenValidity:
        """Report whether a session token is usable. Never raises."""
        try:
            claims = self._decode_session_token(token)
        except InvalidTokenError:
            return TokenValidity(is_valid=False)

        remaining = claims.expires_at - self.clock.now()
        time_remaining = max(0, int(remaining.total_seconds() * 1000))

        return TokenValidity(
            is_valid=True,
            expires_at=claims.expires_at,
            time_remaining=time_remaining,
        )

    async def reset_token_if_active(self, token: str) -> TokenRefreshResult:
        """
        Sliding refresh: reissue the session token when it is close to expiry.

        Raises:
            InvalidTokenError: any verification failure, expiry included
            UserNotFoundError: token subject no longer exists
        """
        claims = self._decode_session_token(token)

        now = self.clock.now()
        remaining = claims.expires_at - now
        if not (timedelta(0) < remaining <= self.refresh_window):
            return TokenRefreshResult(message="Token is still valid, no refresh needed")

        user = await self.repository.find_by_id(claims.subject)
        if user is None:
            raise UserNotFoundError()

        user.record_login(now)
        await self.repository.update(user)

        new_token = self._issue_session_token(user.id)
        logger.info(f"Session token refreshed for user {user.id}")

        return TokenRefreshResult(new_token=new_token, message="Token refreshed successfully")

    async def verify_token(self, token: str) -> User:
        """
        Resolve a session token to its user.

        Raises:
            InvalidTokenError: token fails verification or its user is gone
        """
        claims = self._decode_session_token(token)
        user = await self.repository.find_by_id(claims.subject)
        if user is None:
            raise InvalidTokenError("User not found for token")
        return user
