"""Dashboard statistics over a task scope."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Optional

from ..config import RECENT_TASKS_LIMIT
from ..models.common import utcnow
from ..models.task import TaskPriority, TaskStatus
from ..schemas.dashboard import (
    DashboardCharts,
    DashboardData,
    DashboardStatistics,
    RecentTask,
    TaskDistribution,
    TaskPriorityLevels,
)
from ..schemas.task import StatusSummary
from .repository import TaskFilter, TaskRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatsScope:
    """Either every task or the tasks assigned to one user."""
    user_id: Optional[str] = None

    @classmethod
    def global_scope(cls) -> "StatsScope":
        return cls()

    @classmethod
    def for_user(cls, user_id: str) -> "StatsScope":
        return cls(user_id=user_id)

    @property
    def is_global(self) -> bool:
        return self.user_id is None

    def to_filter(self) -> TaskFilter:
        return TaskFilter(assigned_to=self.user_id)


class StatisticsAggregator:
    def __init__(
        self,
        repository: TaskRepository,
        clock: Callable[[], datetime] = utcnow,
        recent_limit: int = RECENT_TASKS_LIMIT,
    ):
        self.repository = repository
        self.clock = clock
        self.recent_limit = recent_limit

    def _distribution(self, field: str, enum_cls, base: TaskFilter) -> Dict[str, int]:
        raw = self.repository.aggregate_by(field, base)
        return {member.value: raw.get(member.value, 0) for member in enum_cls}

    def status_summary(self, scope: StatsScope) -> StatusSummary:
        base = scope.to_filter()
        by_status = self._distribution("status", TaskStatus, base)
        return StatusSummary(
            all=self.repository.count(base),
            pending_tasks=by_status[TaskStatus.PENDING.value],
            in_progress_tasks=by_status[TaskStatus.IN_PROGRESS.value],
            completed_tasks=by_status[TaskStatus.COMPLETED.value],
        )

    def summarize(self, scope: StatsScope, now: Optional[datetime] = None) -> DashboardData:
        """Counts by status and priority, overdue count and the newest tasks.

        A task is overdue when its due date is strictly before ``now`` and it
        is not completed.
        """
        now = now or self.clock()
        base = scope.to_filter()

        total = self.repository.count(base)
        by_status = self._distribution("status", TaskStatus, base)
        by_priority = self._distribution("priority", TaskPriority, base)
        overdue = self.repository.count(
            base.merge(due_before=now, exclude_status=TaskStatus.COMPLETED.value)
        )
        recent = self.repository.find_many(base, newest_first=True, limit=self.recent_limit)

        logger.debug(
            "Summarized scope=%s total=%s overdue=%s", scope.user_id or "global", total, overdue
        )
        return DashboardData(
            statistics=DashboardStatistics(
                total_tasks=total,
                pending_tasks=by_status[TaskStatus.PENDING.value],
                in_progress_tasks=by_status[TaskStatus.IN_PROGRESS.value],
                completed_tasks=by_status[TaskStatus.COMPLETED.value],
                overdue_tasks=overdue,
            ),
            charts=DashboardCharts(
                task_distribution=TaskDistribution(
                    pending=by_status[TaskStatus.PENDING.value],
                    in_progress=by_status[TaskStatus.IN_PROGRESS.value],
                    completed=by_status[TaskStatus.COMPLETED.value],
                    all=total,
                ),
                task_priority_levels=TaskPriorityLevels(**by_priority),
            ),
            recent_tasks=[RecentTask.model_validate(task) for task in recent],
        )
