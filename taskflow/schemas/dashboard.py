from pydantic import Field
from datetime import datetime
from typing import List

from ..models.task import TaskPriority, TaskStatus
from .base import CamelModel


class DashboardStatistics(CamelModel):
    total_tasks: int = 0
    pending_tasks: int = 0
    in_progress_tasks: int = 0
    completed_tasks: int = 0
    overdue_tasks: int = 0


class TaskDistribution(CamelModel):
    pending: int = 0
    in_progress: int = Field(0, alias="in-progress")
    completed: int = 0
    all: int = Field(0, alias="All")


class TaskPriorityLevels(CamelModel):
    low: int = 0
    medium: int = 0
    high: int = 0


class DashboardCharts(CamelModel):
    task_distribution: TaskDistribution
    task_priority_levels: TaskPriorityLevels


class RecentTask(CamelModel):
    id: str
    title: str
    status: TaskStatus
    priority: TaskPriority
    due_date: datetime
    created_at: datetime


class DashboardData(CamelModel):
    """Aggregate counts over a task scope."""
    statistics: DashboardStatistics
    charts: DashboardCharts
    recent_tasks: List[RecentTask]
