"""
Task endpoints (org-scoped by the caller's token)
"""

from typing import List, Optional

from fastapi import APIRouter, Query, Response, status

from app.core.deps import CurrentOrgDep, CurrentUserDep, TaskServiceDep
from app.core.errors import NotFoundError
from app.schemas.task import TaskCreate, TaskPriority, TaskResponse, TaskStatus, TaskUpdate

router = APIRouter()


@router.get("", response_model=List[TaskResponse])
async def list_tasks(
    org_id: CurrentOrgDep,
    tasks: TaskServiceDep,
    task_status: Optional[TaskStatus] = Query(None, alias="status"),
    priority: Optional[TaskPriority] = None,
    department: Optional[str] = None,
):
    return await tasks.get_tasks_by_org(
        org_id, status=task_status, priority=priority, department=department
    )


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    task_in: TaskCreate,
    org_id: CurrentOrgDep,
    user_id: CurrentUserDep,
    tasks: TaskServiceDep,
):
    """
    Create a task. Its embedding is synced in the background; a failed
    sync does not fail this request.
    """
    return await tasks.create_task(org_id, task_in, created_by=user_id)


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(task_id: str, org_id: CurrentOrgDep, tasks: TaskServiceDep):
    task = await tasks.get_task(task_id, org_id)
    if not task:
        raise NotFoundError("Task not found")
    return task


@router.patch("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: str,
    task_in: TaskUpdate,
    org_id: CurrentOrgDep,
    tasks: TaskServiceDep,
):
    return await tasks.update_task(org_id, task_id, task_in)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(task_id: str, org_id: CurrentOrgDep, tasks: TaskServiceDep):
    await tasks.delete_task(org_id, task_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
