"""
Task Service

Org-scoped task reads and writes. Every write publishes a content event
so the task's embedding follows it.
"""

from datetime import datetime, timezone
from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundError
from app.core.logging import get_logger
from app.models.task import Task
from app.schemas.rag import ContentEvent
from app.schemas.task import TaskCreate, TaskResponse, TaskUpdate
from app.services.rag.events import EmbeddingEventPublisher
from app.services.rag.vector_store import TASK_CONTENT_TYPE

logger = get_logger(__name__)


class TaskService:
    def __init__(
        self,
        session: AsyncSession,
        publisher: Optional[EmbeddingEventPublisher] = None,
    ):
        self.session = session
        self.publisher = publisher

    async def get_task(self, task_id: str, org_id: Optional[str] = None) -> Optional[Task]:
        stmt = select(Task).where(Task.id == task_id)
        if org_id is not None:
            stmt = stmt.where(Task.org_id == org_id)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_tasks_by_org(
        self,
        org_id: str,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        department: Optional[str] = None,
    ) -> List[Task]:
        stmt = select(Task).where(Task.org_id == org_id)
        if status:
            stmt = stmt.where(Task.status == status)
        if priority:
            stmt = stmt.where(Task.priority == priority)
        if department:
            stmt = stmt.where(Task.department == department)
        stmt = stmt.order_by(Task.created_at.desc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_tasks_by_ids(self, org_id: str, task_ids: Sequence[str]) -> List[Task]:
        if not task_ids:
            return []
        stmt = select(Task).where(Task.org_id == org_id, Task.id.in_(list(task_ids)))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_all_tasks(self) -> List[Task]:
        result = await self.session.execute(select(Task).order_by(Task.org_id, Task.created_at))
        return list(result.scalars().all())

    async def create_task(
        self, org_id: str, task_in: TaskCreate, created_by: Optional[str] = None
    ) -> Task:
        task = Task(
            org_id=org_id,
            title=task_in.title,
            description=task_in.description or None,
            priority=task_in.priority,
            department=task_in.department or None,
            requires_photo=task_in.requires_photo,
            due_date=task_in.due_date,
            assigned_to=task_in.assigned_to,
            created_by=created_by,
            status="pending",
            custom_data={},
        )
        self.session.add(task)
        await self.session.commit()
        await self.session.refresh(task)

        await self._publish_upsert(task)
        return task

    async def update_task(self, org_id: str, task_id: str, task_in: TaskUpdate) -> Task:
        task = await self.get_task(task_id, org_id)
        if not task:
            raise NotFoundError("Task not found")

        changes = task_in.model_dump(exclude_unset=True)
        for field, value in changes.items():
            setattr(task, field, value)
        if changes.get("status") == "completed":
            task.completed_at = datetime.now(timezone.utc)

        await self.session.commit()
        await self.session.refresh(task)

        await self._publish_upsert(task)
        return task

    async def delete_task(self, org_id: str, task_id: str) -> None:
        task = await self.get_task(task_id, org_id)
        if not task:
            raise NotFoundError("Task not found")

        await self.session.delete(task)
        await self.session.commit()

        await self._publish(
            ContentEvent(
                action="delete",
                content_type=TASK_CONTENT_TYPE,
                content_id=task_id,
                org_id=org_id,
            )
        )

    async def _publish_upsert(self, task: Task) -> None:
        await self._publish(
            ContentEvent(
                action="upsert",
                content_type=TASK_CONTENT_TYPE,
                content_id=task.id,
                org_id=task.org_id,
                task=TaskResponse.model_validate(task),
            )
        )

    async def _publish(self, event: ContentEvent) -> None:
        if self.publisher is None:
            return
        try:
            await self.publisher.publish(event)
        except Exception as e:
            # The task write already succeeded
            logger.error(f"Failed to publish {event.action} event for task {event.content_id}: {e}")
