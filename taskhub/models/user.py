"""
User model

Passwords are hashed by a write-time hook on the mapper (before insert and
before update), so callers assign the plaintext and the store hashes it.
"""
import enum
import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Boolean, DateTime, Enum as SQLEnum, event
from sqlalchemy.dialects.postgresql import UUID, ARRAY

from taskhub.core.database import Base
from taskhub.core.security import PasswordHasher


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    USER = "user"


class User(Base):
    """
    User account model.

    email_verification_token is only set while is_email_verified is False.
    """
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    name = Column(String(100), nullable=False)
    email = Column(String(150), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)

    # Email verification
    is_email_verified = Column(Boolean, default=False, nullable=False)
    email_verification_token = Column(String(512), nullable=True)

    last_login_at = Column(DateTime(timezone=True), nullable=True)
    role = Column(
        SQLEnum(UserRole, name="user_role", values_callable=lambda e: [m.value for m in e]),
        default=UserRole.USER,
        nullable=False,
    )

    position = Column(ARRAY(String(100)), nullable=True)
    team = Column(ARRAY(String(100)), nullable=True)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}')>"

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def mark_email_verified(self) -> None:
        """Mark email as verified and drop the one-time token."""
        self.is_email_verified = True
        self.email_verification_token = None

    def record_login(self, at: datetime) -> None:
        self.last_login_at = at


_hasher = PasswordHasher()


def hash_password_on_write(user: User) -> None:
    """Hash user.password_hash unless it already holds a bcrypt hash."""
    if user.password_hash and not PasswordHasher.is_hashed(user.password_hash):
        user.password_hash = _hasher.hash(user.password_hash)


@event.listens_for(User, "before_insert")
@event.listens_for(User, "before_update")
def _hash_password_before_write(mapper, connection, target):
    hash_password_on_write(target)
