"""
Project routes
"""
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.api.deps import get_current_user
from taskhub.core.database import get_db
from taskhub.models.project import Project
from taskhub.models.user import User
from taskhub.schemas.auth import MessageResponse
from taskhub.schemas.project import (
    ProjectCreate,
    ProjectMembersResponse,
    ProjectResponse,
    ProjectTasksResponse,
    ProjectUpdate,
)

router = APIRouter()


async def _get_project_or_404(db: AsyncSession, project_id: UUID) -> Project:
    project = await db.get(Project, project_id)
    if not project:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Project not found"
        )
    return project


@router.get("", response_model=List[ProjectResponse])
async def list_projects(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    result = await db.execute(select(Project).order_by(Project.created_at))
    return result.scalars().all()


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    project_data: ProjectCreate,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    project = Project(**project_data.model_dump())
    db.add(project)
    await db.flush()
    await db.refresh(project)
    return project


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: UUID,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    return await _get_project_or_404(db, project_id)


@router.get("/{project_id}/members", response_model=ProjectMembersResponse)
async def get_project_members(
    project_id: UUID,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    """User ids assigned to the project."""
    project = await _get_project_or_404(db, project_id)
    return ProjectMembersResponse(members=project.members or [])


@router.get("/{project_id}/tasks", response_model=ProjectTasksResponse)
async def get_project_tasks(
    project_id: UUID,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    """Task ids attached to the project."""
    project = await _get_project_or_404(db, project_id)
    return ProjectTasksResponse(tasks=project.tasks or [])


@router.put("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: UUID,
    update_data: ProjectUpdate,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    """Update a project with the fields present in the body."""
    project = await _get_project_or_404(db, project_id)
    for field, value in update_data.model_dump(exclude_unset=True).items():
        setattr(project, field, value)

    await db.flush()
    await db.refresh(project)
    return project


@router.delete("/{project_id}", response_model=MessageResponse)
async def delete_project(
    project_id: UUID,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    project = await _get_project_or_404(db, project_id)
    await db.delete(project)
    await db.flush()
    return MessageResponse(message="Project deleted successfully")
