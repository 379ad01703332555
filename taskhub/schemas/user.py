"""
User schemas

UserPublic is the only shape a user leaves the service in; it never carries
the password hash or the verification token.
"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID
from pydantic import BaseModel, EmailStr, field_validator

from taskhub.models.user import UserRole


class UserBase(BaseModel):
    email: EmailStr
    name: str


class UserRegister(UserBase):
    password: str


class UserCreate(UserBase):
    password: str
    role: UserRole = UserRole.USER
    position: Optional[List[str]] = None
    team: Optional[List[str]] = None


class UserUpdate(BaseModel):
    email: Optional[EmailStr] = None
    name: Optional[str] = None
    password: Optional[str] = None
    role: Optional[UserRole] = None
    position: Optional[List[str]] = None
    team: Optional[List[str]] = None

    @field_validator("email", "name", "password", "role")
    @classmethod
    def reject_null(cls, v):
        if v is None:
            raise ValueError("must not be null")
        return v


class UserPublic(UserBase):
    id: UUID
    is_email_verified: bool
    role: UserRole
    last_login_at: Optional[datetime] = None
    position: Optional[List[str]] = None
    team: Optional[List[str]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserLogin(BaseModel):
    email: EmailStr
    password: str
