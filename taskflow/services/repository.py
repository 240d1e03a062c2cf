"""Task storage behind a small query/update contract."""

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Dict, List, Optional, Protocol

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, col, select

from ..errors import RepositoryFailure
from ..models.task import Task, TaskAssignment

logger = logging.getLogger(__name__)

AGGREGATE_FIELDS = ("status", "priority")


@dataclass(frozen=True)
class TaskFilter:
    """Conjunction of optional conditions on tasks."""
    status: Optional[str] = None
    exclude_status: Optional[str] = None
    priority: Optional[str] = None
    assigned_to: Optional[str] = None
    due_before: Optional[datetime] = None
    due_after: Optional[datetime] = None

    def merge(self, **changes) -> "TaskFilter":
        return replace(self, **changes)


class TaskRepository(Protocol):
    def find_many(
        self, filter: TaskFilter = TaskFilter(), *, newest_first: bool = False, limit: Optional[int] = None
    ) -> List[Task]: ...

    def find_one(self, task_id: str) -> Optional[Task]: ...

    def count(self, filter: TaskFilter = TaskFilter()) -> int: ...

    def aggregate_by(self, field: str, filter: TaskFilter = TaskFilter()) -> Dict[str, int]: ...

    def insert(self, task: Task) -> Task: ...

    def save(self, task: Task) -> Task: ...

    def delete(self, task_id: str) -> None: ...


def _status_value(value) -> Optional[str]:
    return getattr(value, "value", value)


class SqlTaskRepository:
    """SQLModel-backed task repository bound to one session.

    Every SQLAlchemy error rolls the session back and surfaces as
    RepositoryFailure.
    """

    def __init__(self, session: Session):
        self.session = session

    def _where(self, statement, filter: TaskFilter):
        if filter.status is not None:
            statement = statement.where(Task.status == _status_value(filter.status))
        if filter.exclude_status is not None:
            statement = statement.where(Task.status != _status_value(filter.exclude_status))
        if filter.priority is not None:
            statement = statement.where(Task.priority == _status_value(filter.priority))
        if filter.assigned_to is not None:
            assigned = select(TaskAssignment.task_id).where(TaskAssignment.user_id == filter.assigned_to)
            statement = statement.where(col(Task.id).in_(assigned))
        if filter.due_before is not None:
            statement = statement.where(Task.due_date < filter.due_before)
        if filter.due_after is not None:
            statement = statement.where(Task.due_date >= filter.due_after)
        return statement

    def _fail(self, operation: str, exc: SQLAlchemyError) -> RepositoryFailure:
        logger.exception("Task repository %s failed", operation)
        self.session.rollback()
        return RepositoryFailure(f"Task repository {operation} failed")

    def find_many(
        self, filter: TaskFilter = TaskFilter(), *, newest_first: bool = False, limit: Optional[int] = None
    ) -> List[Task]:
        statement = self._where(select(Task), filter)
        if newest_first:
            statement = statement.order_by(col(Task.created_at).desc(), col(Task.id).desc())
        else:
            statement = statement.order_by(col(Task.created_at).asc(), col(Task.id).asc())
        if limit is not None:
            statement = statement.limit(limit)
        try:
            return list(self.session.exec(statement).all())
        except SQLAlchemyError as exc:
            raise self._fail("find_many", exc) from exc

    def find_one(self, task_id: str) -> Optional[Task]:
        try:
            return self.session.get(Task, task_id)
        except SQLAlchemyError as exc:
            raise self._fail("find_one", exc) from exc

    def count(self, filter: TaskFilter = TaskFilter()) -> int:
        statement = self._where(select(func.count()).select_from(Task), filter)
        try:
            return int(self.session.exec(statement).one())
        except SQLAlchemyError as exc:
            raise self._fail("count", exc) from exc

    def aggregate_by(self, field: str, filter: TaskFilter = TaskFilter()) -> Dict[str, int]:
        """Group tasks by ``field`` and count each group."""
        if field not in AGGREGATE_FIELDS:
            raise ValueError(f"Cannot aggregate tasks by {field!r}")
        column = getattr(Task, field)
        statement = self._where(select(column, func.count()).select_from(Task), filter).group_by(column)
        try:
            rows = self.session.exec(statement).all()
        except SQLAlchemyError as exc:
            raise self._fail("aggregate_by", exc) from exc
        return {str(value): int(count) for value, count in rows}

    def _sync_assignments(self, task: Task) -> None:
        existing = self.session.exec(
            select(TaskAssignment).where(TaskAssignment.task_id == task.id)
        ).all()
        wanted = set(task.assignee_ids())
        for row in existing:
            if row.user_id in wanted:
                wanted.discard(row.user_id)
            else:
                self.session.delete(row)
        for user_id in wanted:
            self.session.add(TaskAssignment(task_id=task.id, user_id=user_id))

    def _persist(self, task: Task, operation: str) -> Task:
        try:
            self.session.add(task)
            self.session.flush()
            self._sync_assignments(task)
            self.session.commit()
            self.session.refresh(task)
        except SQLAlchemyError as exc:
            raise self._fail(operation, exc) from exc
        return task

    def insert(self, task: Task) -> Task:
        return self._persist(task, "insert")

    def save(self, task: Task) -> Task:
        return self._persist(task, "save")

    def delete(self, task_id: str) -> None:
        try:
            task = self.session.get(Task, task_id)
            if task is None:
                return
            rows = self.session.exec(
                select(TaskAssignment).where(TaskAssignment.task_id == task_id)
            ).all()
            for row in rows:
                self.session.delete(row)
            self.session.flush()
            self.session.delete(task)
            self.session.commit()
        except SQLAlchemyError as exc:
            raise self._fail("delete", exc) from exc
