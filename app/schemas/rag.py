"""
RAG Schemas

Models for RAG operations (search, query, embedding sync).
"""

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.schemas.task import TaskResponse

Confidence = Literal["high", "medium", "low"]


class SearchResult(BaseModel):
    id: str  # Point ID
    content_type: str
    content_id: str
    content_text: str
    similarity: float


# Query --------------------------------------------------------------
class RagQueryRequest(BaseModel):
    query: Optional[str] = None

    @field_validator("query", mode="before")
    @classmethod
    def non_string_query_is_missing(cls, v: Any) -> Any:
        # Rejected downstream as "Query is required"
        return v if isinstance(v, str) else None


class RagSource(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    task_id: str = Field(alias="taskId")
    title: str
    similarity: float


class RagAnswer(BaseModel):
    answer: str
    sources: List[RagSource] = []
    confidence: Confidence


class RagQueryResponse(RagAnswer):
    model_config = ConfigDict(populate_by_name=True)

    suggested_questions: List[str] = Field(default=[], alias="suggestedQuestions")


class SuggestedQuestionsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    suggested_questions: List[str] = Field(alias="suggestedQuestions")


class RagErrorResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    error: str
    code: Optional[str] = None
    suggested_questions: List[str] = Field(default=[], alias="suggestedQuestions")


# Sync ---------------------------------------------------------------
class SyncResult(BaseModel):
    success: bool
    error: Optional[str] = None


class BatchSyncReport(BaseModel):
    successful: int = 0
    failed: int = 0
    errors: List[str] = []


class ReindexJobResponse(BaseModel):
    job_id: str


class ContentEvent(BaseModel):
    """A task was created, updated or deleted"""

    action: Literal["upsert", "delete"]
    content_type: str = "task"
    content_id: str
    org_id: str
    task: Optional[TaskResponse] = None
