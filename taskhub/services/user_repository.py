"""
User Repository

Credential store used by the auth service. Every call opens its own short
session, so one repository instance is shared by all requests.
"""
import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from taskhub.core.database import get_db_session, is_unique_violation
from taskhub.core.exceptions import DuplicateEmailError, StoreError
from taskhub.models.user import User

logger = logging.getLogger(__name__)


class UserRepository:
    """
    Async SQLAlchemy access to the users table.

    Raises:
        StoreError: any persistence failure
        DuplicateEmailError: the unique email index rejected an insert/update
    """

    def __init__(self, session_factory=get_db_session):
        self._session_factory = session_factory

    async def find_by_email(self, email: str) -> Optional[User]:
        try:
            async with self._session_factory() as db:
                result = await db.execute(select(User).where(User.email == email))
                return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"User lookup by email failed: {e}")
            raise StoreError(details={"operation": "find_by_email"}) from e

    async def find_by_id(self, user_id) -> Optional[User]:
        if not isinstance(user_id, UUID):
            try:
                user_id = UUID(str(user_id))
            except ValueError:
                return None
        try:
            async with self._session_factory() as db:
                return await db.get(User, user_id)
        except SQLAlchemyError as e:
            logger.error(f"User lookup by id failed: {e}")
            raise StoreError(details={"operation": "find_by_id"}) from e

    async def insert(self, user: User) -> User:
        try:
            async with self._session_factory() as db:
                db.add(user)
                await db.flush()
                await db.refresh(user)
        except IntegrityError as e:
            if not is_unique_violation(e):
                logger.error(f"User insert violated a constraint: {e.orig}")
                raise StoreError(details={"operation": "insert"}) from e
            logger.warning(f"Insert rejected by unique constraint for {user.email}")
            raise DuplicateEmailError() from e
        except SQLAlchemyError as e:
            logger.error(f"User insert failed: {e}")
            raise StoreError(details={"operation": "insert"}) from e
        return user

    async def update(self, user: User) -> User:
        try:
            async with self._session_factory() as db:
                merged = await db.merge(user)
                await db.flush()
        except IntegrityError as e:
            if not is_unique_violation(e):
                logger.error(f"User update for {user.id} violated a constraint: {e.orig}")
                raise StoreError(details={"operation": "update"}) from e
            raise DuplicateEmailError() from e
        except SQLAlchemyError as e:
            logger.error(f"User update failed for {user.id}: {e}")
            raise StoreError(details={"operation": "update"}) from e
        return merged
