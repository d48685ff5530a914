"""
Qdrant infrastructure configuration

Qdrant vector database client management.
"""

from typing import AsyncGenerator, Optional

from qdrant_client import AsyncQdrantClient, models

from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)

# Global client
client: Optional[AsyncQdrantClient] = None

# Payload fields filtered on by the embeddings collection
EMBEDDING_PAYLOAD_INDEXES = ("org_id", "content_type", "content_id")


async def init_qdrant_client() -> AsyncQdrantClient:
    """Initialize Qdrant client"""
    global client
    client = AsyncQdrantClient(
        url=settings.qdrant_url,
        api_key=settings.qdrant_api_key if settings.qdrant_api_key else None,
        timeout=settings.qdrant_timeout,
    )
    return client


async def close_qdrant_client():
    """Close Qdrant client"""
    global client
    if client:
        await client.close()
        client = None


async def get_qdrant() -> AsyncGenerator[AsyncQdrantClient, None]:
    """Dependency for getting Qdrant client"""
    if client is None:
        await init_qdrant_client()

    yield client


async def ensure_collections_exist(qdrant: Optional[AsyncQdrantClient] = None):
    """Ensure the embeddings collection and its payload indexes exist"""
    qdrant = qdrant or client
    if qdrant is None:
        qdrant = await init_qdrant_client()

    collection_name = settings.embeddings_collection
    if await qdrant.collection_exists(collection_name):
        return

    logger.info(f"Creating collection: {collection_name}")
    await qdrant.create_collection(
        collection_name=collection_name,
        vectors_config=models.VectorParams(
            size=settings.embedding_dimension,
            distance=models.Distance.COSINE,
        ),
    )

    for field_name in EMBEDDING_PAYLOAD_INDEXES:
        await qdrant.create_payload_index(
            collection_name=collection_name,
            field_name=field_name,
            field_schema=models.PayloadSchemaType.KEYWORD,
        )
