"""
Task model
"""
import enum
import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Text, Boolean, DateTime, Enum as SQLEnum
from sqlalchemy.dialects.postgresql import UUID

from taskhub.core.database import Base


class TaskPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TaskStatus(str, enum.Enum):
    TODO = "todo"
    IN_PROGRESS = "inprogress"
    DONE = "done"
    BLOCK = "block"
    IN_REVIEW = "inreview"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Task(Base):
    __tablename__ = "tasks"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    due_date = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    priority = Column(
        SQLEnum(TaskPriority, name="task_priority", values_callable=_enum_values),
        default=TaskPriority.HIGH,
        nullable=False,
    )
    status = Column(
        SQLEnum(TaskStatus, name="task_status", values_callable=_enum_values),
        default=TaskStatus.TODO,
        nullable=False,
    )
    is_archive = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    def __repr__(self):
        return f"<Task(id={self.id}, title='{self.title}', status={self.status})>"
