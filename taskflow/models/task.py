from sqlalchemy import Column, JSON
from sqlmodel import SQLModel, Field
from datetime import datetime
from typing import Any, Dict, List, Optional
import enum

from .common import new_id, utc_column, utcnow


class TaskStatus(str, enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class TaskPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Task(SQLModel, table=True):
    """Work item whose status and progress follow its checklist.

    ``assigned_to`` keeps the ordered assignee ids; ``task_assignments``
    mirrors them so assignee filters stay plain SQL.
    """
    __tablename__ = "tasks"

    id: str = Field(default_factory=new_id, primary_key=True)
    title: str
    description: str
    priority: str = Field(default=TaskPriority.LOW.value, index=True)
    status: str = Field(default=TaskStatus.PENDING.value, index=True)
    due_date: datetime = Field(default_factory=utcnow, sa_column=utc_column(index=True))
    assigned_to: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    created_by: Optional[str] = Field(default=None, index=True)
    attachments: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    todo_checklist: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    progress: int = Field(default=0)
    created_at: datetime = Field(default_factory=utcnow, sa_column=utc_column(index=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_column=utc_column())

    def assignee_ids(self) -> List[str]:
        """Assignees as a list, even if a single id was stored."""
        value = self.assigned_to
        if not value:
            return []
        if isinstance(value, (list, tuple)):
            return [str(user_id) for user_id in value]
        return [str(value)]

    def completed_todo_count(self) -> int:
        return sum(1 for item in self.todo_checklist or [] if item.get("completed"))


class TaskAssignment(SQLModel, table=True):
    """One row per (task, assignee) pair."""
    __tablename__ = "task_assignments"

    task_id: str = Field(foreign_key="tasks.id", primary_key=True)
    user_id: str = Field(primary_key=True, index=True)
