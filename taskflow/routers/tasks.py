from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, status
from sqlmodel import Session

from ..database import get_db
from ..errors import Forbidden
from ..schemas.base import from_wire
from ..schemas.dashboard import DashboardData
from ..schemas.task import TaskDetailMessage, TaskListResponse, TaskMessage, TaskDetail
from ..services.directory import SqlUserDirectory
from ..services.lifecycle import TaskService
from ..services.policy import AccessPolicy, Actor
from ..services.repository import SqlTaskRepository
from ..services.statistics import StatisticsAggregator, StatsScope
from .auth import get_current_actor

router = APIRouter()

policy = AccessPolicy()


def get_task_service(db: Session = Depends(get_db)) -> TaskService:
    return TaskService(SqlTaskRepository(db), SqlUserDirectory(db), policy=policy)


def get_statistics(db: Session = Depends(get_db)) -> StatisticsAggregator:
    return StatisticsAggregator(SqlTaskRepository(db))


def _scope_for(actor: Actor) -> StatsScope:
    if policy.can_administer(actor):
        return StatsScope.global_scope()
    return StatsScope.for_user(actor.id)


@router.get("/tasks", response_model=TaskListResponse)
def get_tasks(
    status: Optional[str] = None,
    actor: Actor = Depends(get_current_actor),
    service: TaskService = Depends(get_task_service),
    stats: StatisticsAggregator = Depends(get_statistics),
):
    """Tasks visible to the caller plus a status summary over the same scope."""
    tasks = service.list_tasks(actor, status)
    return TaskListResponse(tasks=tasks, status_summary=stats.status_summary(_scope_for(actor)))


@router.get("/tasks/dashboard-data", response_model=DashboardData)
def get_dashboard_data(
    actor: Actor = Depends(get_current_actor),
    stats: StatisticsAggregator = Depends(get_statistics),
):
    """Statistics over every task (admin only)."""
    if not policy.can_administer(actor):
        raise Forbidden("Access denied, admin only")
    return stats.summarize(StatsScope.global_scope())


@router.get("/tasks/user-dashboard-data", response_model=DashboardData)
def get_user_dashboard_data(
    actor: Actor = Depends(get_current_actor),
    stats: StatisticsAggregator = Depends(get_statistics),
):
    """Statistics over the tasks assigned to the caller."""
    return stats.summarize(StatsScope.for_user(actor.id))


@router.get("/tasks/{task_id}", response_model=TaskDetail)
def get_task(
    task_id: str,
    actor: Actor = Depends(get_current_actor),
    service: TaskService = Depends(get_task_service),
):
    return service.get_task(actor, task_id)


@router.post("/tasks", response_model=TaskMessage, status_code=status.HTTP_201_CREATED)
def create_task(
    payload: Dict[str, Any] = Body(...),
    actor: Actor = Depends(get_current_actor),
    service: TaskService = Depends(get_task_service),
):
    task = service.create_task(actor, from_wire(payload))
    return TaskMessage(message="Task created successfully", task=task)


@router.put("/tasks/{task_id}", response_model=TaskMessage)
def update_task(
    task_id: str,
    payload: Dict[str, Any] = Body(...),
    actor: Actor = Depends(get_current_actor),
    service: TaskService = Depends(get_task_service),
):
    task = service.update_task(actor, task_id, from_wire(payload))
    return TaskMessage(message="Task updated successfully", task=task)


@router.delete("/tasks/{task_id}")
def delete_task(
    task_id: str,
    actor: Actor = Depends(get_current_actor),
    service: TaskService = Depends(get_task_service),
):
    service.delete_task(actor, task_id)
    return {"message": "Task deleted successfully"}


@router.put("/tasks/{task_id}/status", response_model=TaskMessage)
def update_task_status(
    task_id: str,
    payload: Dict[str, Any] = Body(...),
    actor: Actor = Depends(get_current_actor),
    service: TaskService = Depends(get_task_service),
):
    task = service.set_status(actor, task_id, payload.get("status"))
    return TaskMessage(message="Task status updated successfully", task=task)


@router.put("/tasks/{task_id}/todo", response_model=TaskDetailMessage)
def update_task_checklist(
    task_id: str,
    payload: Dict[str, Any] = Body(...),
    actor: Actor = Depends(get_current_actor),
    service: TaskService = Depends(get_task_service),
):
    task = service.set_checklist(actor, task_id, from_wire(payload).get("todo_checklist"))
    return TaskDetailMessage(message="Task checklist updated successfully", task=task)
