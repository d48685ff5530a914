"""
Vector store tests against qdrant-client's in-memory mode
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from app.core.errors import StorageError, ValidationError
from app.services.rag.vector_store import (
    TASK_CONTENT_TYPE,
    VectorStore,
    embedding_point_id,
)
from tests.helpers import ORG_A, ORG_B, make_vector, vector_with_similarity


@pytest.mark.asyncio
async def test_search_never_crosses_organizations(vector_store: VectorStore):
    # Org B's vector matches the query exactly, org A's only closely
    await vector_store.upsert(ORG_A, "task", "a-1", "Task: Check gate", vector_with_similarity(0.95))
    await vector_store.upsert(ORG_B, "task", "b-1", "Task: Check gate", make_vector(1.0))

    results_a = await vector_store.search(make_vector(1.0), ORG_A, threshold=0.0, limit=10)
    results_b = await vector_store.search(make_vector(1.0), ORG_B, threshold=0.0, limit=10)

    assert [r.content_id for r in results_a] == ["a-1"]
    assert [r.content_id for r in results_b] == ["b-1"]


@pytest.mark.asyncio
async def test_search_requires_org_id(vector_store: VectorStore):
    with pytest.raises(ValidationError):
        await vector_store.search(make_vector(1.0), "")


@pytest.mark.asyncio
async def test_upsert_replaces_existing_record(vector_store: VectorStore):
    await vector_store.upsert(ORG_A, "task", "t-1", "Task: Old title", make_vector(1.0))
    await vector_store.upsert(ORG_A, "task", "t-1", "Task: New title", make_vector(1.0))

    assert await vector_store.count(ORG_A) == 1
    record = await vector_store.get(ORG_A, "task", "t-1")
    assert record.content_text == "Task: New title"


@pytest.mark.asyncio
async def test_same_content_id_in_two_orgs_is_two_records(vector_store: VectorStore):
    await vector_store.upsert(ORG_A, "task", "shared", "Task: A", make_vector(1.0))
    await vector_store.upsert(ORG_B, "task", "shared", "Task: B", make_vector(1.0))

    assert embedding_point_id(ORG_A, "task", "shared") != embedding_point_id(ORG_B, "task", "shared")
    assert await vector_store.count() == 2


@pytest.mark.asyncio
async def test_search_applies_threshold_order_and_limit(vector_store: VectorStore):
    for content_id, similarity in [("low", 0.3), ("mid", 0.6), ("high", 0.9), ("top", 0.99)]:
        await vector_store.upsert(
            ORG_A, "task", content_id, f"Task: {content_id}", vector_with_similarity(similarity)
        )

    results = await vector_store.search(make_vector(1.0), ORG_A, threshold=0.5, limit=2)

    assert [r.content_id for r in results] == ["top", "high"]
    assert results[0].similarity >= results[1].similarity
    assert all(r.content_type == TASK_CONTENT_TYPE for r in results)


@pytest.mark.asyncio
async def test_search_returns_empty_list_below_threshold(vector_store: VectorStore):
    await vector_store.upsert(ORG_A, "task", "t-1", "Task: Far away", vector_with_similarity(0.1))

    results = await vector_store.search(make_vector(1.0), ORG_A, threshold=0.5)

    assert results == []


@pytest.mark.asyncio
async def test_search_tasks_filters_other_content_types(vector_store: VectorStore):
    await vector_store.upsert(ORG_A, "task", "t-1", "Task: One", make_vector(1.0))
    await vector_store.upsert(ORG_A, "photo", "p-1", "Photo: One", make_vector(1.0))

    results = await vector_store.search_tasks(make_vector(1.0), ORG_A, threshold=0.5)

    assert [r.content_id for r in results] == ["t-1"]


@pytest.mark.asyncio
async def test_delete_removes_record_and_is_noop_when_absent(vector_store: VectorStore):
    await vector_store.upsert(ORG_A, "task", "t-1", "Task: One", make_vector(1.0))

    await vector_store.delete("task", "t-1")
    await vector_store.delete("task", "t-1")
    await vector_store.delete("task", "never-existed")

    assert await vector_store.get(ORG_A, "task", "t-1") is None
    assert await vector_store.count(ORG_A) == 0


@pytest.mark.asyncio
async def test_backend_failures_become_storage_errors():
    qdrant = MagicMock()
    qdrant.upsert = AsyncMock(side_effect=RuntimeError("connection refused"))
    qdrant.query_points = AsyncMock(side_effect=RuntimeError("connection refused"))
    qdrant.delete = AsyncMock(side_effect=RuntimeError("connection refused"))
    store = VectorStore(qdrant, collection_name="embeddings")

    with pytest.raises(StorageError):
        await store.upsert(ORG_A, "task", "t-1", "Task: One", make_vector(1.0))
    with pytest.raises(StorageError):
        await store.search(make_vector(1.0), ORG_A)
    with pytest.raises(StorageError):
        await store.delete("task", "t-1")
