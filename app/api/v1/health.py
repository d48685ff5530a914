"""
Health check endpoint
"""

from fastapi import APIRouter
from sqlalchemy import text

from app.core.config import settings
from app.core.deps import QdrantDep, SessionDep
from app.core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check(session: SessionDep, qdrant: QdrantDep):
    """Report API, database and vector store status"""
    status = {"api": "ok", "db": "ok", "qdrant": "ok"}

    try:
        await session.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning(f"Health check: database unavailable: {e}")
        status["db"] = "error"

    try:
        await qdrant.collection_exists(settings.embeddings_collection)
    except Exception as e:
        logger.warning(f"Health check: qdrant unavailable: {e}")
        status["qdrant"] = "error"

    return status
