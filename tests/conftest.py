"""
Conftest
"""

import os

# Settings are read at import time
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-the-test-suite-0123456789")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("GEMINI_API_KEY", "")
os.environ.setdefault("USE_MOCK_EMBEDDING", "false")

from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from qdrant_client import AsyncQdrantClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.deps import (
    get_embedding_client,
    get_event_publisher,
    get_generation_client,
    get_qdrant,
)
from app.infra.db import get_db
from app.infra.qdrant import ensure_collections_exist
from app.main import app
from app.models import Organization
from app.models.base import Base
from app.services.rag.vector_store import VectorStore
from tests.helpers import ORG_A, ORG_B, FakeEmbeddingClient, FakeGenerationClient

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def test_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    async_session = async_sessionmaker(test_engine, expire_on_commit=False)
    async with async_session() as session:
        session.add_all(
            [
                Organization(id=ORG_A, name="Org A", slug="org-a"),
                Organization(id=ORG_B, name="Org B", slug="org-b"),
            ]
        )
        await session.commit()
        yield session


@pytest.fixture
async def qdrant() -> AsyncGenerator[AsyncQdrantClient, None]:
    client = AsyncQdrantClient(location=":memory:")
    await ensure_collections_exist(client)
    yield client
    await client.close()


@pytest.fixture
def vector_store(qdrant) -> VectorStore:
    return VectorStore(qdrant)


@pytest.fixture
def embedding_client() -> FakeEmbeddingClient:
    return FakeEmbeddingClient()


@pytest.fixture
def generation_client() -> FakeGenerationClient:
    return FakeGenerationClient()


@pytest.fixture
async def client(
    test_session, qdrant, embedding_client, generation_client
) -> AsyncGenerator[AsyncClient, None]:
    # Override dependency
    async def override_get_db():
        yield test_session

    async def override_get_qdrant():
        yield qdrant

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_qdrant] = override_get_qdrant
    app.dependency_overrides[get_embedding_client] = lambda: embedding_client
    app.dependency_overrides[get_generation_client] = lambda: generation_client
    app.dependency_overrides[get_event_publisher] = lambda: None

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
