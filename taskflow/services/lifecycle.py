"""Task lifecycle: create, read, patch, status and checklist changes, delete.

Every operation takes the acting user first. Authorization goes through
``AccessPolicy``; status and progress always come from the checklist rules in
``services.checklist``. Input is validated before anything is written.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional

from pydantic import TypeAdapter, ValidationError

from ..errors import Forbidden, InvalidInput, NotFound
from ..models.common import as_utc, utcnow
from ..models.task import Task, TaskPriority, TaskStatus
from ..schemas.task import TaskDetail, TaskListItem, TaskRead, UserSummary
from .checklist import dump_checklist, evaluate, force_complete, validate_checklist
from .directory import UserDirectory
from .policy import AccessPolicy, Actor
from .repository import TaskFilter, TaskRepository

logger = logging.getLogger(__name__)

_datetime_adapter = TypeAdapter(datetime)


def _provided(value: Any) -> bool:
    """Whether a request value counts as given.

    null, false, 0 and "" count as absent, so a patch cannot clear a field by
    sending an empty value; an empty list does count as given.
    """
    if value is None or isinstance(value, bool):
        return bool(value)
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value != ""
    return True


def _text(value: Any, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidInput(f"'{field}' must be non-empty text")
    return value


def _priority(value: Any) -> TaskPriority:
    try:
        return TaskPriority(value)
    except ValueError:
        raise InvalidInput(f"Invalid priority: {value!r}") from None


def _status(value: Any) -> TaskStatus:
    try:
        return TaskStatus(value)
    except ValueError:
        raise InvalidInput(f"Invalid status: {value!r}") from None


def _due_date(value: Any) -> datetime:
    try:
        parsed = _datetime_adapter.validate_python(value)
    except ValidationError:
        raise InvalidInput(f"Invalid due date: {value!r}") from None
    return as_utc(parsed)


def _assignees(value: Any, message: str) -> List[str]:
    if not isinstance(value, list):
        raise InvalidInput(message)
    if not all(isinstance(user_id, str) and user_id for user_id in value):
        raise InvalidInput("'assignedTo' must contain user ids")
    return list(dict.fromkeys(value))


def _attachments(value: Any) -> List[str]:
    if not isinstance(value, list) or not all(isinstance(ref, str) for ref in value):
        raise InvalidInput("'attachments' must be a list of text references")
    return list(value)


class TaskService:
    def __init__(
        self,
        repository: TaskRepository,
        directory: UserDirectory,
        policy: Optional[AccessPolicy] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.repository = repository
        self.directory = directory
        self.policy = policy or AccessPolicy()
        self.clock = clock

    # ---- helpers ----

    def _require_admin(self, actor: Actor, action: str) -> None:
        if not self.policy.can_administer(actor):
            logger.warning("Denied %s actor=%s role=%s", action, actor.id, actor.role.value)
            raise Forbidden("Access denied, admin only")

    def _require_mutate(self, actor: Actor, task: Task, action: str) -> None:
        if not self.policy.can_mutate(actor, task):
            logger.warning("Denied %s task=%s actor=%s", action, task.id, actor.id)
            raise Forbidden("You are not authorized to update this task")

    def _load(self, task_id: str) -> Task:
        task = self.repository.find_one(task_id)
        if task is None:
            raise NotFound("Task not found")
        return task

    def _detail(
        self,
        task: Task,
        users: Optional[Dict[str, UserSummary]] = None,
        detail_cls=TaskDetail,
        **extra: Any,
    ):
        ids = task.assignee_ids()
        if users is None:
            resolved = self.directory.resolve(ids)
        else:
            resolved = [users[user_id] for user_id in ids if user_id in users]
        read = TaskRead.model_validate(task)
        return detail_cls(**read.model_dump(exclude={"assigned_to"}), assigned_to=resolved, **extra)

    # ---- operations ----

    def create_task(self, actor: Actor, fields: Mapping[str, Any]) -> TaskRead:
        self._require_admin(actor, "create")

        title = fields.get("title")
        description = fields.get("description")
        priority = fields.get("priority")
        assigned_to = fields.get("assigned_to")
        if not (_provided(title) and _provided(description) and _provided(priority)) or not isinstance(
            assigned_to, list
        ):
            raise InvalidInput("Missing required fields or 'assignedTo' is not an array")

        raw_checklist = fields.get("todo_checklist")
        checklist = validate_checklist(
            raw_checklist if _provided(raw_checklist) else [], require_completed=False
        )
        raw_attachments = fields.get("attachments")
        attachments = _attachments(raw_attachments) if _provided(raw_attachments) else []

        now = self.clock()
        raw_due = fields.get("due_date")
        due_date = _due_date(raw_due) if _provided(raw_due) else now

        progress, status = evaluate(checklist)
        task = Task(
            title=_text(title, "title"),
            description=_text(description, "description"),
            priority=_priority(priority).value,
            status=status.value,
            due_date=due_date,
            assigned_to=_assignees(assigned_to, "'assignedTo' is not an array"),
            created_by=actor.id,
            attachments=attachments,
            todo_checklist=dump_checklist(checklist),
            progress=progress,
            created_at=now,
            updated_at=now,
        )
        task = self.repository.insert(task)
        logger.info("Task created id=%s by=%s assignees=%s", task.id, actor.id, len(task.assigned_to))
        return TaskRead.model_validate(task)

    def get_task(self, actor: Actor, task_id: str) -> TaskDetail:
        task = self._load(task_id)
        if not self.policy.can_view(actor, task):
            logger.warning("Denied view task=%s actor=%s", task.id, actor.id)
            raise Forbidden("You are not authorized to view this task")
        return self._detail(task)

    def list_tasks(self, actor: Actor, status: Optional[str] = None) -> List[TaskListItem]:
        """Tasks visible to the actor, each with its completed checklist count."""
        base = TaskFilter(status=_status(status).value) if _provided(status) else TaskFilter()
        tasks = self.repository.find_many(self.policy.visible_filter(actor, base))

        ids = [user_id for task in tasks for user_id in task.assignee_ids()]
        users = {summary.id: summary for summary in self.directory.resolve(ids)}
        return [
            self._detail(task, users, TaskListItem, completed_todo_count=task.completed_todo_count())
            for task in tasks
        ]

    def update_task(self, actor: Actor, task_id: str, patch: Mapping[str, Any]) -> TaskRead:
        """Patch descriptive fields; values that are absent or empty keep the stored ones."""
        self._require_admin(actor, "update")
        task = self._load(task_id)

        changes: Dict[str, Any] = {}
        if _provided(patch.get("title")):
            changes["title"] = _text(patch["title"], "title")
        if _provided(patch.get("description")):
            changes["description"] = _text(patch["description"], "description")
        if _provided(patch.get("priority")):
            changes["priority"] = _priority(patch["priority"]).value
        if _provided(patch.get("due_date")):
            changes["due_date"] = _due_date(patch["due_date"])
        if _provided(patch.get("attachments")):
            changes["attachments"] = _attachments(patch["attachments"])
        if _provided(patch.get("assigned_to")):
            changes["assigned_to"] = _assignees(patch["assigned_to"], "'assignedTo' should be an array")
        if _provided(patch.get("todo_checklist")):
            checklist = validate_checklist(patch["todo_checklist"], require_completed=False)
            progress, status = evaluate(checklist)
            changes.update(todo_checklist=dump_checklist(checklist), progress=progress, status=status.value)

        for field, value in changes.items():
            setattr(task, field, value)
        task.updated_at = self.clock()

        task = self.repository.save(task)
        logger.info("Task updated id=%s by=%s fields=%s", task.id, actor.id, sorted(changes))
        return TaskRead.model_validate(task)

    def set_status(self, actor: Actor, task_id: str, status: Any) -> TaskRead:
        """Set the status directly; ``completed`` also completes every checklist item."""
        if not _provided(status):
            raise InvalidInput("Status is required")
        new_status = _status(status)

        task = self._load(task_id)
        self._require_mutate(actor, task, "status update")

        task.status = new_status.value
        if new_status == TaskStatus.COMPLETED:
            task.todo_checklist = dump_checklist(force_complete(task.todo_checklist))
            task.progress = 100
        task.updated_at = self.clock()

        task = self.repository.save(task)
        logger.info("Task status set id=%s status=%s by=%s", task.id, task.status, actor.id)
        return TaskRead.model_validate(task)

    def set_checklist(self, actor: Actor, task_id: str, checklist: Any) -> TaskDetail:
        """Replace the checklist and recompute progress and status."""
        items = validate_checklist(checklist)

        task = self._load(task_id)
        self._require_mutate(actor, task, "checklist update")

        progress, status = evaluate(items)
        task.todo_checklist = dump_checklist(items)
        task.progress = progress
        task.status = status.value
        task.updated_at = self.clock()

        task = self.repository.save(task)
        logger.info(
            "Task checklist set id=%s progress=%s status=%s by=%s", task.id, progress, status.value, actor.id
        )
        return self._detail(task)

    def delete_task(self, actor: Actor, task_id: str) -> None:
        self._require_admin(actor, "delete")
        task = self._load(task_id)
        self.repository.delete(task.id)
        logger.info("Task deleted id=%s by=%s", task.id, actor.id)
