from pydantic import Field, field_validator
from datetime import datetime
from typing import List, Optional

from ..models.task import TaskPriority, TaskStatus
from .base import CamelModel


class ChecklistItem(CamelModel):
    """A titled boolean sub-step of a task."""
    title: str = Field(..., min_length=1)
    completed: bool = False


class UserSummary(CamelModel):
    """Assignee display fields."""
    id: str
    name: str
    email: str
    role: str
    profile_picture: Optional[str] = None


class TaskRead(CamelModel):
    """Task as stored, assignees as ids."""
    id: str
    title: str
    description: str
    priority: TaskPriority
    status: TaskStatus
    due_date: datetime
    assigned_to: List[str] = []
    created_by: Optional[str] = None
    attachments: List[str] = []
    todo_checklist: List[ChecklistItem] = []
    progress: int
    created_at: datetime
    updated_at: datetime

    @field_validator("assigned_to", mode="before")
    @classmethod
    def assignees_as_list(cls, value):
        # rows written before assignees were a list hold a single id
        if isinstance(value, str):
            return [value]
        return value


class TaskDetail(TaskRead):
    """Task with assignees resolved for display."""
    assigned_to: List[UserSummary] = []


class TaskListItem(TaskDetail):
    completed_todo_count: int = 0


class StatusSummary(CamelModel):
    all: int = 0
    pending_tasks: int = 0
    in_progress_tasks: int = 0
    completed_tasks: int = 0


class TaskListResponse(CamelModel):
    tasks: List[TaskListItem]
    status_summary: StatusSummary


class TaskMessage(CamelModel):
    message: str
    task: TaskRead


class TaskDetailMessage(CamelModel):
    message: str
    task: TaskDetail
