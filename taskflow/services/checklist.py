"""Checklist validation and the progress/status rules derived from it."""

from collections.abc import Mapping
from typing import Any, Iterable, List, NamedTuple

from ..errors import InvalidInput
from ..models.task import TaskStatus
from ..schemas.task import ChecklistItem

INVALID_CHECKLIST = "Invalid checklist format"


class ChecklistProgress(NamedTuple):
    progress: int
    status: TaskStatus


def validate_checklist(items: Any, *, require_completed: bool = True) -> List[ChecklistItem]:
    """Parse raw checklist items, raising InvalidInput on any bad entry.

    Every item needs a non-empty string ``title``. ``completed`` must be a
    real boolean; with ``require_completed=False`` it may be omitted and
    defaults to False.
    """
    if not isinstance(items, (list, tuple)):
        raise InvalidInput(INVALID_CHECKLIST)

    parsed: List[ChecklistItem] = []
    for item in items:
        if isinstance(item, ChecklistItem):
            parsed.append(item)
            continue
        if not isinstance(item, Mapping):
            raise InvalidInput(INVALID_CHECKLIST)

        title = item.get("title")
        if not isinstance(title, str) or not title:
            raise InvalidInput(INVALID_CHECKLIST)

        if "completed" in item or require_completed:
            completed = item.get("completed")
            if not isinstance(completed, bool):
                raise InvalidInput(INVALID_CHECKLIST)
        else:
            completed = False

        parsed.append(ChecklistItem(title=title, completed=completed))
    return parsed


def status_for_progress(progress: int) -> TaskStatus:
    if progress >= 100:
        return TaskStatus.COMPLETED
    if progress > 0:
        return TaskStatus.IN_PROGRESS
    return TaskStatus.PENDING


def evaluate(checklist: Iterable[Any]) -> ChecklistProgress:
    items = validate_checklist(list(checklist))
    total = len(items)
    if total == 0:
        return ChecklistProgress(0, TaskStatus.PENDING)

    done = sum(1 for item in items if item.completed)
    # floor(100 * done / total + 0.5) in integer arithmetic
    progress = (200 * done + total) // (2 * total)
    return ChecklistProgress(progress, status_for_progress(progress))


def force_complete(checklist: Iterable[Any]) -> List[ChecklistItem]:
    """Copy of the checklist with every item marked completed."""
    return [
        item.model_copy(update={"completed": True})
        for item in validate_checklist(list(checklist), require_completed=False)
    ]


def dump_checklist(items: Iterable[ChecklistItem]) -> List[dict]:
    """Checklist in the shape stored on the task row."""
    return [{"title": item.title, "completed": item.completed} for item in items]
