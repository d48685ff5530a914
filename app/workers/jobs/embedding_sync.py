"""
Embedding Sync Jobs

RQ runs jobs in a sync context; each entry point wraps its async logic
with asyncio.run and builds its own clients.
"""

import asyncio
from typing import Any, Dict

from app.core.config import settings
from app.core.logging import get_logger
from app.infra.db import AsyncSessionLocal, close_db_connection
from app.infra.qdrant import close_qdrant_client, init_qdrant_client
from app.schemas.rag import ContentEvent
from app.services.llm_clients.gemini_client import build_embedding_client
from app.services.rag.sync_service import EmbeddingSyncService
from app.services.rag.vector_store import VectorStore
from app.services.task_service import TaskService

logger = get_logger(__name__)


async def _process_content_event(event_data: Dict[str, Any]) -> Dict[str, Any]:
    event = ContentEvent.model_validate(event_data)
    logger.info(f"Processing {event.action} event for {event.content_type} {event.content_id}")

    qdrant = await init_qdrant_client()
    try:
        async with AsyncSessionLocal() as session:
            service = EmbeddingSyncService(
                build_embedding_client(settings),
                VectorStore(qdrant),
                task_source=TaskService(session),
            )
            result = await service.handle_event(event)
    finally:
        await close_qdrant_client()
        await close_db_connection()

    return result.model_dump()


async def _reindex_org(org_id: str) -> Dict[str, Any]:
    logger.info(f"Re-indexing task embeddings for org {org_id}")

    qdrant = await init_qdrant_client()
    try:
        async with AsyncSessionLocal() as session:
            service = EmbeddingSyncService(
                build_embedding_client(settings),
                VectorStore(qdrant),
                task_source=TaskService(session),
            )
            report = await service.sync_org(
                org_id,
                on_progress=lambda done, total: logger.info(f"[{done}/{total}] org {org_id}"),
            )
    finally:
        await close_qdrant_client()
        await close_db_connection()

    return report.model_dump()


def process_content_event(event_data: Dict[str, Any]) -> Dict[str, Any]:
    """RQ Job entry point (Sync wrapper)"""
    return asyncio.run(_process_content_event(event_data))


def reindex_org(org_id: str) -> Dict[str, Any]:
    """RQ Job entry point (Sync wrapper)"""
    return asyncio.run(_reindex_org(org_id))
