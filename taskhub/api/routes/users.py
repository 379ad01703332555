"""
User routes

CRUD over user records. Updates apply only the fields present in the
request body; a new password is hashed by the store hook on flush.
"""
import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.api.deps import ensure_admin, get_current_admin, get_current_user
from taskhub.core.database import get_db, is_unique_violation
from taskhub.core.exceptions import DuplicateEmailError
from taskhub.models.user import User
from taskhub.schemas.auth import MessageResponse
from taskhub.schemas.user import UserCreate, UserPublic, UserUpdate

logger = logging.getLogger(__name__)
router = APIRouter()


async def _get_user_or_404(db: AsyncSession, user_id: UUID) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    return user


async def _flush_user(db: AsyncSession) -> None:
    try:
        await db.flush()
    except IntegrityError as e:
        if is_unique_violation(e):
            raise DuplicateEmailError() from e
        raise


@router.get("", response_model=List[UserPublic])
async def list_users(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    """Get all users"""
    result = await db.execute(select(User).order_by(User.created_at))
    return result.scalars().all()


@router.post("", response_model=UserPublic, status_code=status.HTTP_201_CREATED)
async def create_user(
    user_data: UserCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Create a user directly (no verification email). Only admins may pick the role."""
    if "role" in user_data.model_fields_set:
        ensure_admin(current_user, "Only admins can assign roles")

    result = await db.execute(select(User).where(User.email == user_data.email))
    if result.scalar_one_or_none():
        raise DuplicateEmailError()

    payload = user_data.model_dump(exclude={"password"})
    user = User(**payload, password_hash=user_data.password, is_email_verified=False)
    db.add(user)
    await _flush_user(db)
    await db.refresh(user)

    logger.info(f"User {user.id} created")
    return user


@router.get("/{user_id}", response_model=UserPublic)
async def get_user(
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    return await _get_user_or_404(db, user_id)


@router.put("/{user_id}", response_model=UserPublic)
async def update_user(
    user_id: UUID,
    update_data: UserUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Update an existing user with the fields present in the body."""
    patch = update_data.model_dump(exclude_unset=True)
    if "role" in patch:
        ensure_admin(current_user, "Only admins can change roles")

    user = await _get_user_or_404(db, user_id)
    if "password" in patch:
        user.password_hash = patch.pop("password")
    for field, value in patch.items():
        setattr(user, field, value)

    await _flush_user(db)
    await db.refresh(user)
    return user


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    """Delete an existing user (admin only)."""
    user = await _get_user_or_404(db, user_id)
    await db.delete(user)
    await db.flush()

    logger.info(f"User {user_id} deleted by admin {admin.id}")
    return MessageResponse(message="User deleted successfully")
