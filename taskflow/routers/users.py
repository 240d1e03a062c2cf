from typing import List

from fastapi import APIRouter, Depends
from sqlmodel import Session, select

from ..database import get_db
from ..errors import Forbidden, NotFound
from ..models import User, UserRole
from ..schemas.user import User as UserSchema, UserWithTaskCounts
from ..services.policy import AccessPolicy, Actor
from ..services.repository import SqlTaskRepository
from ..services.statistics import StatisticsAggregator, StatsScope
from .auth import get_current_actor

router = APIRouter()

policy = AccessPolicy()


def _require_admin(actor: Actor) -> None:
    if not policy.can_administer(actor):
        raise Forbidden("Access denied, admin only")


@router.get("/users", response_model=List[UserWithTaskCounts])
def get_users(
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Members with their pending, in-progress and completed task counts."""
    _require_admin(actor)
    stats = StatisticsAggregator(SqlTaskRepository(db))
    members = db.exec(
        select(User).where(User.role == UserRole.MEMBER.value).order_by(User.created_at)
    ).all()

    result = []
    for member in members:
        summary = stats.status_summary(StatsScope.for_user(member.id))
        result.append(
            UserWithTaskCounts(
                **UserSchema.model_validate(member).model_dump(),
                pending_tasks=summary.pending_tasks,
                in_progress_tasks=summary.in_progress_tasks,
                completed_tasks=summary.completed_tasks,
            )
        )
    return result


@router.get("/users/{user_id}", response_model=UserSchema)
def get_user(
    user_id: str,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    _require_admin(actor)
    user = db.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    return user
