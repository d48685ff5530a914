"""
FastAPI Application Entry Point
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException

from app.api.v1.router import api_router
from app.core.config import settings
from app.core.deps import get_embedding_client
from app.core.errors import (
    AppError,
    app_exception_handler,
    general_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from app.core.logging import RequestIDMiddleware, get_logger, setup_logging
from app.infra.db import close_db_connection
from app.infra.qdrant import close_qdrant_client, ensure_collections_exist, init_qdrant_client
from app.services.rag.events import build_event_publisher
from app.services.rag.sync_service import EmbeddingSyncService
from app.services.rag.vector_store import VectorStore

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    setup_logging()
    qdrant = await init_qdrant_client()

    # In production, this might be better as a migration step
    try:
        await ensure_collections_exist(qdrant)
    except Exception as e:
        # Don't fail startup if qdrant is down, but log it
        logger.warning(f"Failed to initialize Qdrant collections: {e}")

    sync_service = EmbeddingSyncService(get_embedding_client(), VectorStore(qdrant))
    publisher = build_event_publisher(sync_service.handle_event)
    await publisher.start()
    app.state.event_publisher = publisher

    yield

    # Shutdown
    await publisher.stop()
    await close_qdrant_client()
    await close_db_connection()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Game Day Ops Backend",
        description="Task operations with a tenant-scoped RAG assistant",
        version="0.1.0",
        openapi_url=f"{settings.api_prefix}/openapi.json",
        lifespan=lifespan,
    )

    # Middleware
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_credentials,
        allow_methods=settings.cors_methods,
        allow_headers=settings.cors_headers,
    )

    # Routes
    app.include_router(api_router, prefix=settings.api_prefix)

    # Exception Handlers
    app.add_exception_handler(AppError, app_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    return app


app = create_app()
