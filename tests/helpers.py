"""
Test doubles and vector helpers shared by the test modules
"""

import math
from typing import Dict, List, Optional, Sequence, Tuple

from app.core.errors import ConfigurationError, UpstreamError
from app.core.security import create_access_token

DIM = 768

ORG_A = "00000000-0000-0000-0000-00000000000a"
ORG_B = "00000000-0000-0000-0000-00000000000b"


def make_vector(*components: float) -> List[float]:
    vector = [0.0] * DIM
    vector[: len(components)] = components
    return vector


def vector_with_similarity(similarity: float) -> List[float]:
    """Unit vector whose cosine similarity to make_vector(1.0) is `similarity`"""
    return make_vector(similarity, math.sqrt(1 - similarity**2))


def auth_headers(org_id: str, user_id: str = "user-1", role: Optional[str] = None) -> dict:
    token = create_access_token(user_id, org_id=org_id, role=role)
    return {"Authorization": f"Bearer {token}"}


class FakeEmbeddingClient:
    """
    Returns the vector of the first registered key contained in the text.
    Texts containing any `fail_on` marker raise UpstreamError.
    """

    def __init__(
        self,
        vectors: Optional[Dict[str, List[float]]] = None,
        default: Optional[List[float]] = None,
        fail_on: Sequence[str] = (),
        configured: bool = True,
    ):
        self.vectors = vectors or {}
        self.default = default or make_vector(0.0, 0.0, 1.0)
        self.fail_on = list(fail_on)
        self.configured = configured
        self.calls: List[Tuple[str, str]] = []

    @property
    def is_configured(self) -> bool:
        return self.configured

    def ensure_configured(self) -> None:
        if not self.configured:
            raise ConfigurationError("GEMINI_API_KEY environment variable is not set")

    async def embed_document(self, text: str) -> List[float]:
        return self._lookup("document", text)

    async def embed_query(self, text: str) -> List[float]:
        return self._lookup("query", text)

    def _lookup(self, mode: str, text: str) -> List[float]:
        self.calls.append((mode, text))
        if any(marker in text for marker in self.fail_on):
            raise UpstreamError("Embedding request failed")
        for key, vector in self.vectors.items():
            if key in text:
                return vector
        return self.default


class FakeGenerationClient:
    def __init__(self, answer: str = "Fix sprinkler is pending.", configured: bool = True, error=None):
        self.answer = answer
        self.configured = configured
        self.error = error
        self.calls: List[Tuple[str, str]] = []

    @property
    def is_configured(self) -> bool:
        return self.configured

    def ensure_configured(self) -> None:
        if not self.configured:
            raise ConfigurationError("GEMINI_API_KEY environment variable is not set")

    async def generate(self, system_prompt: str, user_question: str) -> str:
        self.calls.append((system_prompt, user_question))
        if self.error:
            raise self.error
        return self.answer
