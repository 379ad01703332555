"""
Task routes
"""
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.api.deps import get_current_user
from taskhub.core.database import get_db
from taskhub.models.task import Task
from taskhub.models.user import User
from taskhub.schemas.auth import MessageResponse
from taskhub.schemas.task import TaskCreate, TaskResponse, TaskUpdate

router = APIRouter()


async def _get_task_or_404(db: AsyncSession, task_id: UUID) -> Task:
    task = await db.get(Task, task_id)
    if not task:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task not found"
        )
    return task


@router.get("", response_model=List[TaskResponse])
async def list_tasks(
    include_archived: bool = False,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    """Get all tasks, archived ones only on request."""
    query = select(Task).order_by(Task.due_date)
    if not include_archived:
        query = query.where(Task.is_archive.is_(False))
    result = await db.execute(query)
    return result.scalars().all()


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    task_data: TaskCreate,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    payload = task_data.model_dump(exclude_none=True)
    task = Task(**payload)
    db.add(task)
    await db.flush()
    await db.refresh(task)
    return task


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: UUID,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    return await _get_task_or_404(db, task_id)


@router.put("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: UUID,
    update_data: TaskUpdate,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    """Update a task with the fields present in the body."""
    task = await _get_task_or_404(db, task_id)
    for field, value in update_data.model_dump(exclude_unset=True).items():
        setattr(task, field, value)

    await db.flush()
    await db.refresh(task)
    return task


@router.delete("/{task_id}", response_model=MessageResponse)
async def delete_task(
    task_id: UUID,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    task = await _get_task_or_404(db, task_id)
    await db.delete(task)
    await db.flush()
    return MessageResponse(message="Task deleted successfully")
