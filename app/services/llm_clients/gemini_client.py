"""
Gemini Client wrappers

Handles interactions with the Gemini API for embeddings and grounded answers.
Document and query embeddings use different task types on the same model.
"""

import asyncio
import hashlib
import re
from typing import List, Optional, Union

import numpy as np
from google import genai
from google.genai import types

from app.core.config import Settings, settings
from app.core.errors import ConfigurationError, UpstreamError
from app.core.logging import get_logger

logger = get_logger(__name__)

DOCUMENT_TASK_TYPE = "RETRIEVAL_DOCUMENT"
QUERY_TASK_TYPE = "RETRIEVAL_QUERY"


def fit_to_dimension(values: List[float], dimension: int) -> List[float]:
    """
    Keep the first `dimension` components of an embedding.

    Stored and query vectors are cut the same way so they stay comparable.
    Never padded, never re-normalized.
    """
    if len(values) < dimension:
        raise ConfigurationError(
            f"Embedding model returned {len(values)} dimensions, expected at least {dimension}"
        )
    return list(values[:dimension])


class GeminiClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[genai.Client] = None,
    ):
        self.api_key = api_key
        self.timeout = timeout if timeout is not None else settings.llm_timeout_seconds
        self._client = client

    @property
    def is_configured(self) -> bool:
        return self._client is not None or bool(self.api_key)

    def ensure_configured(self) -> None:
        if not self.is_configured:
            raise ConfigurationError("GEMINI_API_KEY environment variable is not set")

    def _get_client(self) -> genai.Client:
        self.ensure_configured()
        if self._client is None:
            self._client = genai.Client(
                api_key=self.api_key,
                http_options=types.HttpOptions(timeout=int(self.timeout * 1000)),
            )
        return self._client


class EmbeddingClient(GeminiClient):
    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        dimension: Optional[int] = None,
        timeout: Optional[float] = None,
        client: Optional[genai.Client] = None,
    ):
        super().__init__(api_key=api_key, timeout=timeout, client=client)
        self.model = model or settings.gemini_embedding_model
        self.dimension = dimension or settings.embedding_dimension

    async def embed_document(self, text: str) -> List[float]:
        """Embedding tuned for storage as a retrievable document"""
        return await self._embed(text, DOCUMENT_TASK_TYPE)

    async def embed_query(self, text: str) -> List[float]:
        """Embedding tuned for use as a search query"""
        return await self._embed(text, QUERY_TASK_TYPE)

    async def _embed(self, text: str, task_type: str) -> List[float]:
        client = self._get_client()

        try:
            response = await asyncio.wait_for(
                client.aio.models.embed_content(
                    model=self.model,
                    contents=text,
                    config=types.EmbedContentConfig(task_type=task_type),
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error(f"Gemini Embedding timed out after {self.timeout}s")
            raise UpstreamError("Embedding request timed out") from e
        except Exception as e:
            logger.error(f"Gemini Embedding Error: {e}")
            raise UpstreamError("Embedding request failed") from e

        if not response.embeddings or not response.embeddings[0].values:
            raise UpstreamError("Embedding response contained no values")

        return fit_to_dimension(response.embeddings[0].values, self.dimension)


class MockEmbeddingClient:
    """
    Deterministic local embedding for development without a Gemini key.

    Each token hashes to a fixed random direction; a text's vector is the
    normalized sum, so texts sharing words score as similar.

    Document and query modes return the same vector. Only the Gemini
    client models the two retrieval task types.
    """

    def __init__(self, dimension: Optional[int] = None):
        self.dimension = dimension or settings.embedding_dimension

    @property
    def is_configured(self) -> bool:
        return True

    def ensure_configured(self) -> None:
        return None

    async def embed_document(self, text: str) -> List[float]:
        return self._vector(text)

    async def embed_query(self, text: str) -> List[float]:
        return self._vector(text)

    def _vector(self, text: str) -> List[float]:
        tokens = re.findall(r"\w+", text.lower()) or [text]
        vector = np.zeros(self.dimension, dtype=np.float32)
        for token in tokens:
            seed = int(hashlib.md5(token.encode()).hexdigest(), 16) % (2**32)
            rng = np.random.default_rng(seed)
            vector += rng.standard_normal(self.dimension).astype(np.float32)

        norm = np.linalg.norm(vector)
        if norm > 0:
            vector = vector / norm
        return vector.tolist()


class GenerationClient(GeminiClient):
    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_output_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
        client: Optional[genai.Client] = None,
    ):
        super().__init__(api_key=api_key, timeout=timeout, client=client)
        self.model = model or settings.gemini_generation_model
        self.temperature = (
            temperature if temperature is not None else settings.generation_temperature
        )
        self.max_output_tokens = max_output_tokens or settings.generation_max_output_tokens

    async def generate(self, system_prompt: str, user_question: str) -> str:
        """Single grounded completion. No retries."""
        client = self._get_client()

        try:
            response = await asyncio.wait_for(
                client.aio.models.generate_content(
                    model=self.model,
                    contents=f"User Question: {user_question}",
                    config=types.GenerateContentConfig(
                        system_instruction=system_prompt,
                        temperature=self.temperature,
                        max_output_tokens=self.max_output_tokens,
                    ),
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error(f"Gemini Generation timed out after {self.timeout}s")
            raise UpstreamError("Generation request timed out") from e
        except Exception as e:
            logger.error(f"Gemini Generation Error: {e}")
            raise UpstreamError("Generation request failed") from e

        text = response.text
        if not text:
            raise UpstreamError("Generation returned no text")
        return text


AnyEmbeddingClient = Union[EmbeddingClient, MockEmbeddingClient]


def build_embedding_client(config: Settings = settings) -> AnyEmbeddingClient:
    if config.use_mock_embedding:
        return MockEmbeddingClient(dimension=config.embedding_dimension)
    return EmbeddingClient(
        api_key=config.gemini_api_key,
        model=config.gemini_embedding_model,
        dimension=config.embedding_dimension,
        timeout=config.llm_timeout_seconds,
    )


def build_generation_client(config: Settings = settings) -> GenerationClient:
    return GenerationClient(
        api_key=config.gemini_api_key,
        model=config.gemini_generation_model,
        temperature=config.generation_temperature,
        max_output_tokens=config.generation_max_output_tokens,
        timeout=config.llm_timeout_seconds,
    )
