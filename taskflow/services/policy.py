"""Who may read or change a task."""

from dataclasses import dataclass

from ..models.task import Task
from ..models.user import UserRole
from .repository import TaskFilter


@dataclass(frozen=True)
class Actor:
    """The authenticated user behind a request."""
    id: str
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @classmethod
    def from_user(cls, user) -> "Actor":
        try:
            role = UserRole(user.role)
        except ValueError:
            role = UserRole.MEMBER
        return cls(id=str(user.id), role=role)


class AccessPolicy:
    """Role and assignment checks shared by every task operation.

    Admins may do anything. Members may read a task and change its status or
    checklist only when they are assigned to it; field patches, creation and
    deletion stay admin-only.
    """

    def can_administer(self, actor: Actor) -> bool:
        return actor.is_admin

    def is_assignee(self, actor: Actor, task: Task) -> bool:
        return actor.id in task.assignee_ids()

    def can_view(self, actor: Actor, task: Task) -> bool:
        return self.can_administer(actor) or self.is_assignee(actor, task)

    def can_mutate(self, actor: Actor, task: Task) -> bool:
        return self.can_administer(actor) or self.is_assignee(actor, task)

    def visible_filter(self, actor: Actor, base: TaskFilter = TaskFilter()) -> TaskFilter:
        """Narrow a repository filter to the tasks the actor may see."""
        if self.can_administer(actor):
            return base
        return base.merge(assigned_to=actor.id)
