"""
Dependency Injection

FastAPI dependencies for routes. Clients are built here and handed to
services, so tests can override any of them.
"""

from functools import lru_cache
from typing import Annotated, AsyncGenerator, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from qdrant_client import AsyncQdrantClient
from redis import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import AuthenticationError, PermissionDeniedError
from app.core.security import TokenClaims, decode_token
from app.infra.db import get_db
from app.infra.qdrant import get_qdrant
from app.infra.queue import JobQueue, QueueFactory
from app.services.llm_clients.gemini_client import (
    AnyEmbeddingClient,
    GenerationClient,
    build_embedding_client,
    build_generation_client,
)
from app.services.rag.events import EmbeddingEventPublisher
from app.services.rag.query_service import RagQueryService
from app.services.rag.sync_service import EmbeddingSyncService
from app.services.rag.vector_store import VectorStore
from app.services.task_service import TaskService

bearer_scheme = HTTPBearer(auto_error=False)

# Type aliases for common dependencies
SessionDep = Annotated[AsyncSession, Depends(get_db)]
QdrantDep = Annotated[AsyncQdrantClient, Depends(get_qdrant)]


# Auth ---------------------------------------------------------------
async def get_token_claims(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
) -> TokenClaims:
    if credentials is None:
        raise AuthenticationError("Unauthorized")

    claims = decode_token(credentials.credentials)
    if claims is None:
        raise AuthenticationError("Could not validate credentials")
    return claims


ClaimsDep = Annotated[TokenClaims, Depends(get_token_claims)]


async def get_current_user_id(claims: ClaimsDep) -> str:
    return claims.sub


async def get_current_org_id(claims: ClaimsDep) -> str:
    """Organization comes from the signed token only, never the request body"""
    if not claims.org_id:
        raise AuthenticationError("User profile has no organization")
    return claims.org_id


async def require_admin(claims: ClaimsDep) -> None:
    if not claims.is_admin:
        raise PermissionDeniedError("Admin role required")


CurrentUserDep = Annotated[str, Depends(get_current_user_id)]
CurrentOrgDep = Annotated[str, Depends(get_current_org_id)]


# Clients ------------------------------------------------------------
@lru_cache()
def get_embedding_client() -> AnyEmbeddingClient:
    return build_embedding_client(settings)


@lru_cache()
def get_generation_client() -> GenerationClient:
    return build_generation_client(settings)


async def get_vector_store(qdrant: QdrantDep) -> VectorStore:
    return VectorStore(qdrant)


def get_event_publisher(request: Request) -> Optional[EmbeddingEventPublisher]:
    """Publisher started in the app lifespan"""
    return getattr(request.app.state, "event_publisher", None)


EmbeddingClientDep = Annotated[AnyEmbeddingClient, Depends(get_embedding_client)]
GenerationClientDep = Annotated[GenerationClient, Depends(get_generation_client)]
VectorStoreDep = Annotated[VectorStore, Depends(get_vector_store)]
EventPublisherDep = Annotated[Optional[EmbeddingEventPublisher], Depends(get_event_publisher)]


# Services -----------------------------------------------------------
async def get_task_service(session: SessionDep, publisher: EventPublisherDep) -> TaskService:
    return TaskService(session, publisher)


TaskServiceDep = Annotated[TaskService, Depends(get_task_service)]


async def get_sync_service(
    embedding_client: EmbeddingClientDep,
    vector_store: VectorStoreDep,
    task_service: TaskServiceDep,
) -> EmbeddingSyncService:
    return EmbeddingSyncService(embedding_client, vector_store, task_source=task_service)


async def get_rag_query_service(
    embedding_client: EmbeddingClientDep,
    vector_store: VectorStoreDep,
    generation_client: GenerationClientDep,
    task_service: TaskServiceDep,
) -> RagQueryService:
    return RagQueryService(embedding_client, vector_store, generation_client, task_service)


SyncServiceDep = Annotated[EmbeddingSyncService, Depends(get_sync_service)]
RagQueryServiceDep = Annotated[RagQueryService, Depends(get_rag_query_service)]


# Queue --------------------------------------------------------------
async def get_queue() -> AsyncGenerator[JobQueue, None]:
    """RQ requires a sync Redis client"""
    connection = Redis.from_url(settings.redis_url)
    try:
        yield QueueFactory.get_queue(connection, settings.worker_queues[0])
    finally:
        connection.close()


QueueDep = Annotated[JobQueue, Depends(get_queue)]
