"""
Vector Store

Tenant-scoped similarity search over the embeddings collection in Qdrant.
One point per (org_id, content_type, content_id).
"""

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from qdrant_client import AsyncQdrantClient, models

from app.core.config import settings
from app.core.errors import StorageError, ValidationError
from app.core.logging import get_logger
from app.schemas.rag import SearchResult

logger = get_logger(__name__)

TASK_CONTENT_TYPE = "task"

DEFAULT_MATCH_THRESHOLD = 0.5
DEFAULT_MATCH_COUNT = 5


def embedding_point_id(org_id: str, content_type: str, content_id: str) -> str:
    """Deterministic point ID so writes to the same key replace each other"""
    return str(uuid.uuid5(uuid.NAMESPACE_URL, f"{org_id}:{content_type}:{content_id}"))


def _match(key: str, value: str) -> models.FieldCondition:
    return models.FieldCondition(key=key, match=models.MatchValue(value=value))


class VectorStore:
    def __init__(self, qdrant: AsyncQdrantClient, collection_name: Optional[str] = None):
        self.qdrant = qdrant
        self.collection_name = collection_name or settings.embeddings_collection

    async def upsert(
        self,
        org_id: str,
        content_type: str,
        content_id: str,
        content_text: str,
        vector: List[float],
    ) -> str:
        """Insert or replace the embedding for (org_id, content_type, content_id)"""
        point_id = embedding_point_id(org_id, content_type, content_id)
        try:
            await self.qdrant.upsert(
                collection_name=self.collection_name,
                points=[
                    models.PointStruct(
                        id=point_id,
                        vector=vector,
                        payload={
                            "org_id": org_id,
                            "content_type": content_type,
                            "content_id": content_id,
                            "content_text": content_text,
                            "updated_at": datetime.now(timezone.utc).isoformat(),
                        },
                    )
                ],
            )
        except Exception as e:
            logger.error(f"Embedding upsert failed for {content_type}/{content_id}: {e}")
            raise StorageError(f"Failed to store embedding: {e}") from e
        return point_id

    async def delete(self, content_type: str, content_id: str) -> None:
        """Remove the embedding if present. Missing records are not an error."""
        try:
            await self.qdrant.delete(
                collection_name=self.collection_name,
                points_selector=models.FilterSelector(
                    filter=models.Filter(
                        must=[
                            _match("content_type", content_type),
                            _match("content_id", content_id),
                        ]
                    )
                ),
            )
        except Exception as e:
            logger.error(f"Embedding delete failed for {content_type}/{content_id}: {e}")
            raise StorageError(f"Failed to delete embedding: {e}") from e

    async def search(
        self,
        query_vector: List[float],
        org_id: str,
        threshold: float = DEFAULT_MATCH_THRESHOLD,
        limit: int = DEFAULT_MATCH_COUNT,
    ) -> List[SearchResult]:
        """
        Search one organization's embeddings.

        The org filter is part of the Qdrant query itself, so a point from
        another organization is never scored, whatever its similarity.
        Results are ordered by descending similarity.
        """
        if not org_id:
            raise ValidationError("Organization ID is required")

        try:
            response = await self.qdrant.query_points(
                collection_name=self.collection_name,
                query=query_vector,
                query_filter=models.Filter(must=[_match("org_id", org_id)]),
                score_threshold=threshold,
                limit=limit,
                with_payload=True,
            )
        except Exception as e:
            logger.error(f"Embedding search failed: {e}")
            raise StorageError(f"Failed to search documents: {e}") from e

        results = [
            SearchResult(
                id=str(point.id),
                content_type=point.payload["content_type"],
                content_id=point.payload["content_id"],
                content_text=point.payload.get("content_text", ""),
                similarity=point.score,
            )
            for point in response.points
        ]
        results.sort(key=lambda r: r.similarity, reverse=True)
        return results

    async def search_tasks(
        self,
        query_vector: List[float],
        org_id: str,
        threshold: float = DEFAULT_MATCH_THRESHOLD,
        limit: int = DEFAULT_MATCH_COUNT,
    ) -> List[SearchResult]:
        results = await self.search(query_vector, org_id, threshold=threshold, limit=limit)
        return [r for r in results if r.content_type == TASK_CONTENT_TYPE]

    async def get(self, org_id: str, content_type: str, content_id: str) -> Optional[SearchResult]:
        """Fetch a stored record by key (similarity is reported as 1.0)"""
        try:
            points = await self.qdrant.retrieve(
                collection_name=self.collection_name,
                ids=[embedding_point_id(org_id, content_type, content_id)],
                with_payload=True,
            )
        except Exception as e:
            raise StorageError(f"Failed to read embedding: {e}") from e

        if not points:
            return None
        point = points[0]
        return SearchResult(
            id=str(point.id),
            content_type=point.payload["content_type"],
            content_id=point.payload["content_id"],
            content_text=point.payload.get("content_text", ""),
            similarity=1.0,
        )

    async def count(self, org_id: Optional[str] = None) -> int:
        count_filter = models.Filter(must=[_match("org_id", org_id)]) if org_id else None
        try:
            result = await self.qdrant.count(
                collection_name=self.collection_name,
                count_filter=count_filter,
                exact=True,
            )
        except Exception as e:
            raise StorageError(f"Failed to count embeddings: {e}") from e
        return result.count
