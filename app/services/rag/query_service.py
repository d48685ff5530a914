"""
RAG Query Service

Answers natural-language questions about an organization's tasks:
embed question -> tenant-scoped search -> build context -> generate -> attribute.
"""

import math
from typing import Any, Dict, List, Optional, Sequence, Tuple

from app.core.config import settings
from app.core.errors import UpstreamError, ValidationError
from app.core.logging import get_logger
from app.schemas.rag import Confidence, RagAnswer, RagSource, SearchResult
from app.services.llm_clients.gemini_client import AnyEmbeddingClient, GenerationClient
from app.services.rag.sync_service import TaskSource
from app.services.rag.vector_store import TASK_CONTENT_TYPE, VectorStore

logger = get_logger(__name__)

SUGGESTED_QUESTIONS = (
    "What tasks are currently pending?",
    "Which tasks are marked as urgent?",
    "Summarize the tasks by priority",
    "What tasks are in progress?",
    "Are there any overdue tasks?",
    "What security-related tasks do we have?",
)

NO_CONTEXT_TEXT = "No relevant tasks found."

SYSTEM_PROMPT_TEMPLATE = """You are a helpful AI assistant for a game day operations platform.
You help users understand and manage their tasks.

You have access to the following task information from the organization's database:

{context}

Guidelines:
- Answer the question based ONLY on the provided task information
- If the information doesn't contain relevant data to answer the question, say so clearly
- Be concise and helpful
- Reference specific tasks by their titles when relevant
- If asked about task counts or summaries, use the actual data provided
- Do not make up information that isn't in the context"""


def get_suggested_questions() -> List[str]:
    return list(SUGGESTED_QUESTIONS)


def calculate_confidence(results: Sequence[SearchResult]) -> Confidence:
    """Ordinal confidence from retrieval scores only"""
    if not results:
        return "low"

    avg_similarity = sum(r.similarity for r in results) / len(results)

    if avg_similarity > 0.8 and len(results) >= 2:
        return "high"
    if avg_similarity > 0.6:
        return "medium"
    return "low"


def relevance_percent(similarity: float) -> int:
    # Round half up
    return math.floor(similarity * 100 + 0.5)


def format_due_date(task: Any) -> str:
    due_date = getattr(task, "due_date", None)
    if not due_date:
        return "Not set"
    return f"{due_date.month}/{due_date.day}/{due_date.year}"


def format_task_context(index: int, task: Any, similarity: float) -> str:
    lines = [
        f"Task {index} (Relevance: {relevance_percent(similarity)}%):",
        f"- Title: {task.title}",
        f"- Description: {task.description or 'No description'}",
        f"- Status: {task.status}",
        f"- Priority: {task.priority}",
        f"- Department: {task.department or 'Unassigned'}",
        f"- Due Date: {format_due_date(task)}",
        f"- Requires Photo: {'Yes' if task.requires_photo else 'No'}",
    ]
    return "\n".join(lines)


def build_context(
    results: Sequence[SearchResult], tasks: Sequence[Any]
) -> Tuple[str, List[Tuple[Any, float]]]:
    """
    Context blocks in search order (descending similarity).

    Returns the context text and the (task, similarity) pairs it contains.
    Results whose task no longer exists are skipped.
    """
    tasks_by_id: Dict[str, Any] = {str(task.id): task for task in tasks}

    included: List[Tuple[Any, float]] = []
    for result in results:
        task = tasks_by_id.get(result.content_id)
        if task is not None:
            included.append((task, result.similarity))

    blocks = [
        format_task_context(index, task, similarity)
        for index, (task, similarity) in enumerate(included, start=1)
    ]
    return "\n\n".join(blocks), included


def build_system_prompt(context_text: str) -> str:
    return SYSTEM_PROMPT_TEMPLATE.format(context=context_text or NO_CONTEXT_TEXT)


def build_sources(included: Sequence[Tuple[Any, float]]) -> List[RagSource]:
    sources = [
        RagSource(task_id=str(task.id), title=task.title, similarity=similarity)
        for task, similarity in included
    ]
    sources.sort(key=lambda s: s.similarity, reverse=True)
    return sources


class RagQueryService:
    def __init__(
        self,
        embedding_client: AnyEmbeddingClient,
        vector_store: VectorStore,
        generation_client: GenerationClient,
        task_source: TaskSource,
        match_threshold: Optional[float] = None,
        match_count: Optional[int] = None,
    ):
        self.embedding_client = embedding_client
        self.vector_store = vector_store
        self.generation_client = generation_client
        self.task_source = task_source
        self.match_threshold = (
            match_threshold if match_threshold is not None else settings.rag_match_threshold
        )
        self.match_count = match_count or settings.rag_match_count

    async def query(self, query: Optional[str], org_id: Optional[str]) -> RagAnswer:
        """
        Answer a question from one organization's tasks.

        Raises ValidationError for bad input, ConfigurationError when the
        Gemini credential is missing, UpstreamError/StorageError when a
        backend call fails. Nothing is retried here.
        """
        if not query or not query.strip():
            raise ValidationError("Query is required")
        if not org_id:
            raise ValidationError("Organization ID is required")

        self.generation_client.ensure_configured()
        self.embedding_client.ensure_configured()

        # 1. Embed the question
        query_vector = await self.embedding_client.embed_query(query)

        # 2. Tenant-scoped search
        results = await self.vector_store.search(
            query_vector,
            org_id,
            threshold=self.match_threshold,
            limit=self.match_count,
        )
        results = [r for r in results if r.content_type == TASK_CONTENT_TYPE]

        # 3. Confidence comes from retrieval scores alone
        confidence = calculate_confidence(results)

        # 4. Full task records for richer context
        tasks: Sequence[Any] = []
        if results:
            try:
                tasks = await self.task_source.get_tasks_by_ids(
                    org_id, [r.content_id for r in results]
                )
            except Exception as e:
                logger.error(f"Failed to load matched tasks for org {org_id}: {e}")
                raise UpstreamError("Failed to load matched tasks") from e
        context_text, included = build_context(results, tasks)

        # 5. Grounded answer
        answer = await self.generation_client.generate(build_system_prompt(context_text), query)

        response = RagAnswer(
            answer=answer,
            sources=build_sources(included),
            confidence=confidence,
        )
        logger.info(
            f"RAG query answered for org {org_id}: "
            f"confidence={confidence}, sources={len(response.sources)}"
        )
        return response
