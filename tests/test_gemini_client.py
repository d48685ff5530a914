"""
Gemini client tests (embedding dimension contract, modes, error mapping)
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from app.core.errors import ConfigurationError, UpstreamError
from app.services.llm_clients.gemini_client import (
    DOCUMENT_TASK_TYPE,
    QUERY_TASK_TYPE,
    EmbeddingClient,
    GenerationClient,
    MockEmbeddingClient,
    fit_to_dimension,
)


def fake_genai(values=None, text="answer", error=None):
    client = MagicMock()
    embed_response = MagicMock()
    embed_response.embeddings = [MagicMock(values=values)]
    client.aio.models.embed_content = AsyncMock(return_value=embed_response, side_effect=error)

    generate_response = MagicMock()
    generate_response.text = text
    client.aio.models.generate_content = AsyncMock(return_value=generate_response, side_effect=error)
    return client


def test_fit_to_dimension_truncates_longer_vectors():
    values = [float(i) for i in range(3072)]
    fitted = fit_to_dimension(values, 768)
    assert len(fitted) == 768
    assert fitted == values[:768]


def test_fit_to_dimension_keeps_exact_size():
    values = [0.5] * 768
    assert fit_to_dimension(values, 768) == values


def test_fit_to_dimension_rejects_short_vectors():
    with pytest.raises(ConfigurationError):
        fit_to_dimension([0.1] * 767, 768)


@pytest.mark.asyncio
async def test_embedding_truncation_is_deterministic():
    backend_values = [i / 3072 for i in range(3072)]
    client = EmbeddingClient(client=fake_genai(values=backend_values), dimension=768)

    first = await client.embed_document("Check gate")
    second = await client.embed_document("Check gate")

    assert len(first) == 768
    assert first == second
    assert first == backend_values[:768]


@pytest.mark.asyncio
async def test_document_and_query_use_different_task_types():
    genai_client = fake_genai(values=[0.1] * 768)
    client = EmbeddingClient(client=genai_client)

    await client.embed_document("doc")
    await client.embed_query("question")

    calls = genai_client.aio.models.embed_content.call_args_list
    assert calls[0].kwargs["config"].task_type == DOCUMENT_TASK_TYPE
    assert calls[1].kwargs["config"].task_type == QUERY_TASK_TYPE
    assert calls[0].kwargs["contents"] == "doc"
    assert calls[1].kwargs["contents"] == "question"


@pytest.mark.asyncio
async def test_embedding_without_api_key_is_configuration_error():
    client = EmbeddingClient(api_key=None)
    with pytest.raises(ConfigurationError):
        await client.embed_query("anything")


@pytest.mark.asyncio
async def test_embedding_backend_failure_is_upstream_error():
    client = EmbeddingClient(client=fake_genai(error=RuntimeError("boom")))
    with pytest.raises(UpstreamError):
        await client.embed_document("text")


@pytest.mark.asyncio
async def test_embedding_short_backend_vector_is_configuration_error():
    client = EmbeddingClient(client=fake_genai(values=[0.1] * 100), dimension=768)
    with pytest.raises(ConfigurationError):
        await client.embed_document("text")


@pytest.mark.asyncio
async def test_generation_passes_prompt_and_bounded_config():
    genai_client = fake_genai(text="Two tasks are pending.")
    client = GenerationClient(
        client=genai_client, temperature=0.3, max_output_tokens=500
    )

    answer = await client.generate("SYSTEM PROMPT", "what is pending")

    assert answer == "Two tasks are pending."
    kwargs = genai_client.aio.models.generate_content.call_args.kwargs
    assert "SYSTEM PROMPT" in repr(kwargs["config"].system_instruction)
    assert kwargs["config"].temperature == 0.3
    assert kwargs["config"].max_output_tokens == 500
    assert "what is pending" in kwargs["contents"]


@pytest.mark.asyncio
async def test_generation_failure_is_upstream_error():
    client = GenerationClient(client=fake_genai(error=RuntimeError("timeout")))
    with pytest.raises(UpstreamError):
        await client.generate("system", "question")


@pytest.mark.asyncio
async def test_generation_empty_text_is_upstream_error():
    client = GenerationClient(client=fake_genai(text=None))
    with pytest.raises(UpstreamError):
        await client.generate("system", "question")


@pytest.mark.asyncio
async def test_generation_without_api_key_is_configuration_error():
    client = GenerationClient(api_key=None)
    assert client.is_configured is False
    with pytest.raises(ConfigurationError):
        await client.generate("system", "question")


@pytest.mark.asyncio
async def test_mock_embedding_is_deterministic_and_lexical():
    client = MockEmbeddingClient(dimension=768)

    a = await client.embed_document("Fix sprinkler in the north field")
    b = await client.embed_document("Fix sprinkler in the north field")
    query = await client.embed_query("sprinkler")
    unrelated = await client.embed_query("jerseys")

    assert len(a) == 768
    assert a == b

    def dot(x, y):
        return sum(i * j for i, j in zip(x, y))

    assert dot(a, query) > dot(a, unrelated)


@pytest.mark.asyncio
async def test_mock_embedding_ignores_retrieval_mode():
    client = MockEmbeddingClient(dimension=768)

    document = await client.embed_document("Check gate")
    query = await client.embed_query("Check gate")

    assert document == query
