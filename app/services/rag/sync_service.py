"""
Embedding Sync Service

Keeps one embedding per task in the vector store, in step with task
create/update/delete.
"""

import asyncio
from typing import Any, Callable, List, Optional, Protocol, Sequence

from app.core.config import settings
from app.core.errors import AppError, ConfigurationError
from app.core.logging import get_logger
from app.schemas.rag import BatchSyncReport, ContentEvent, SyncResult
from app.services.llm_clients.gemini_client import AnyEmbeddingClient
from app.services.rag.vector_store import TASK_CONTENT_TYPE, VectorStore

logger = get_logger(__name__)

ProgressCallback = Callable[[int, int], Any]


class TaskSource(Protocol):
    async def get_task(self, task_id: str, org_id: Optional[str] = None) -> Any: ...

    async def get_tasks_by_org(self, org_id: str) -> Sequence[Any]: ...

    async def get_tasks_by_ids(self, org_id: str, task_ids: Sequence[str]) -> Sequence[Any]: ...


def format_task_for_embedding(task: Any) -> str:
    """
    Canonical text a task is embedded as.

    Field order and labels are what the embedding model sees; changing
    them changes retrieval, so existing embeddings must be re-indexed.
    """
    parts: List[str] = [f"Task: {task.title}"]

    description = getattr(task, "description", None)
    if description:
        parts.append(f"Description: {description}")

    department = getattr(task, "department", None)
    if department:
        parts.append(f"Department: {department}")

    priority = getattr(task, "priority", None)
    if priority:
        parts.append(f"Priority: {priority}")

    status = getattr(task, "status", None)
    if status:
        parts.append(f"Status: {status}")

    return ". ".join(parts)


def _error_message(error: Exception) -> str:
    if isinstance(error, AppError):
        return error.message
    return str(error) or "Unknown error"


class EmbeddingSyncService:
    def __init__(
        self,
        embedding_client: AnyEmbeddingClient,
        vector_store: VectorStore,
        task_source: Optional[TaskSource] = None,
        delay_seconds: Optional[float] = None,
    ):
        self.embedding_client = embedding_client
        self.vector_store = vector_store
        self.task_source = task_source
        self.delay_seconds = (
            delay_seconds if delay_seconds is not None else settings.embedding_sync_delay_seconds
        )

    async def sync_task(self, task: Any) -> SyncResult:
        """Embed one task and upsert it. Failures are returned, not raised."""
        try:
            content_text = format_task_for_embedding(task)
            vector = await self.embedding_client.embed_document(content_text)
            await self.vector_store.upsert(
                org_id=str(task.org_id),
                content_type=TASK_CONTENT_TYPE,
                content_id=str(task.id),
                content_text=content_text,
                vector=vector,
            )
        except Exception as e:
            logger.error(f"Error syncing task embedding {task.id}: {e}")
            return SyncResult(success=False, error=_error_message(e))

        logger.debug(f"Synced embedding for task {task.id}")
        return SyncResult(success=True)

    async def sync_tasks(
        self,
        tasks: Sequence[Any],
        on_progress: Optional[ProgressCallback] = None,
    ) -> BatchSyncReport:
        """
        Sync tasks one at a time with a short pause between them.

        One task failing is recorded in the report and the batch carries on.
        `on_progress(completed, total)` runs after every task.
        """
        report = BatchSyncReport()
        total = len(tasks)

        for index, task in enumerate(tasks, start=1):
            result = await self.sync_task(task)
            if result.success:
                report.successful += 1
            else:
                report.failed += 1
                report.errors.append(f"Task {task.id}: {result.error}")

            if on_progress:
                on_progress(index, total)

            if self.delay_seconds and index < total:
                await asyncio.sleep(self.delay_seconds)

        logger.info(
            f"Batch embedding sync finished: {report.successful} ok, {report.failed} failed"
        )
        return report

    async def sync_org(
        self,
        org_id: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> BatchSyncReport:
        """Re-index every task of an organization"""
        if self.task_source is None:
            raise ConfigurationError("Embedding sync has no task source configured")

        try:
            tasks = await self.task_source.get_tasks_by_org(org_id)
        except Exception as e:
            logger.error(f"Failed to fetch tasks for org {org_id}: {e}")
            return BatchSyncReport(errors=[f"Failed to fetch tasks: {_error_message(e)}"])

        if not tasks:
            return BatchSyncReport()

        return await self.sync_tasks(tasks, on_progress)

    async def delete_task(self, task_id: str) -> SyncResult:
        """Remove a deleted task's embedding"""
        try:
            await self.vector_store.delete(TASK_CONTENT_TYPE, str(task_id))
        except Exception as e:
            logger.error(f"Error deleting task embedding {task_id}: {e}")
            return SyncResult(success=False, error=_error_message(e))
        return SyncResult(success=True)

    async def handle_event(self, event: ContentEvent) -> SyncResult:
        if event.content_type != TASK_CONTENT_TYPE:
            logger.warning(f"Ignoring content event for unsupported type '{event.content_type}'")
            return SyncResult(success=False, error=f"Unsupported content type: {event.content_type}")

        if event.action == "delete":
            result = await self.delete_task(event.content_id)
        else:
            task = event.task
            if task is None and self.task_source is not None:
                task = await self.task_source.get_task(event.content_id, event.org_id)
            if task is None:
                result = SyncResult(success=False, error="Task not found")
            else:
                result = await self.sync_task(task)

        if not result.success:
            logger.warning(
                f"Embedding sync failed for {event.action} task {event.content_id}: {result.error}"
            )
        return result
