"""
Project schemas
"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID
from pydantic import BaseModel, Field, field_validator


class ProjectCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    members: Optional[List[str]] = None
    tasks: Optional[List[str]] = None


class ProjectUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    members: Optional[List[str]] = None
    tasks: Optional[List[str]] = None

    @field_validator("name")
    @classmethod
    def reject_null(cls, v):
        if v is None:
            raise ValueError("must not be null")
        return v


class ProjectResponse(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    members: Optional[List[str]] = None
    tasks: Optional[List[str]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProjectMembersResponse(BaseModel):
    members: List[str]


class ProjectTasksResponse(BaseModel):
    tasks: List[str]
