"""
RAG assistant endpoints
"""

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from app.core.deps import (
    CurrentOrgDep,
    QueueDep,
    RagQueryServiceDep,
    SyncServiceDep,
    TaskServiceDep,
    require_admin,
)
from app.core.errors import (
    ConfigurationError,
    NotFoundError,
    StorageError,
    UpstreamError,
    ValidationError,
)
from app.core.logging import get_logger
from app.schemas.rag import (
    BatchSyncReport,
    RagErrorResponse,
    RagQueryRequest,
    RagQueryResponse,
    ReindexJobResponse,
    SuggestedQuestionsResponse,
)
from app.services.rag.query_service import get_suggested_questions

logger = get_logger(__name__)

router = APIRouter()

NOT_CONFIGURED_MESSAGE = "AI Assistant is not configured. Please set GEMINI_API_KEY."
QUERY_FAILED_MESSAGE = "The assistant could not answer right now. Please try again."

REINDEX_ORG_JOB = "app.workers.jobs.embedding_sync.reindex_org"


def _error_response(status_code: int, message: str, code: str, with_suggestions: bool = True):
    body = RagErrorResponse(
        error=message,
        code=code,
        suggested_questions=get_suggested_questions() if with_suggestions else [],
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(by_alias=True))


@router.post(
    "/query",
    response_model=RagQueryResponse,
    responses={
        400: {"model": RagErrorResponse},
        502: {"model": RagErrorResponse},
        503: {"model": RagErrorResponse},
    },
)
async def query_rag(body: RagQueryRequest, org_id: CurrentOrgDep, rag: RagQueryServiceDep):
    """Answer a question about the caller's organization's tasks"""
    try:
        result = await rag.query(body.query, org_id)
    except ValidationError as e:
        return _error_response(e.status_code, e.message, e.code, with_suggestions=False)
    except ConfigurationError as e:
        logger.error(f"RAG query rejected, assistant not configured: {e.message}")
        return _error_response(status.HTTP_503_SERVICE_UNAVAILABLE, NOT_CONFIGURED_MESSAGE, e.code)
    except (UpstreamError, StorageError) as e:
        logger.error(f"RAG query failed for org {org_id}: {e.message}")
        return _error_response(e.status_code, QUERY_FAILED_MESSAGE, e.code)

    return RagQueryResponse(
        answer=result.answer,
        sources=result.sources,
        confidence=result.confidence,
        suggested_questions=get_suggested_questions(),
    )


@router.get("/query", response_model=SuggestedQuestionsResponse)
@router.get("/suggestions", response_model=SuggestedQuestionsResponse)
async def suggested_questions():
    return SuggestedQuestionsResponse(suggested_questions=get_suggested_questions())


@router.post(
    "/reindex",
    response_model=BatchSyncReport,
    dependencies=[Depends(require_admin)],
    responses={202: {"model": ReindexJobResponse}},
)
async def reindex_org(
    org_id: CurrentOrgDep,
    sync: SyncServiceDep,
    queue: QueueDep,
    background: bool = Query(False, description="Enqueue on the worker instead of waiting"),
):
    """Rebuild every task embedding of the caller's organization"""
    if background:
        job_id = queue.enqueue(REINDEX_ORG_JOB, org_id)
        return JSONResponse(
            status_code=status.HTTP_202_ACCEPTED,
            content=ReindexJobResponse(job_id=job_id).model_dump(),
        )
    return await sync.sync_org(org_id)


@router.post(
    "/reindex/tasks/{task_id}",
    response_model=BatchSyncReport,
    dependencies=[Depends(require_admin)],
)
async def reindex_task(
    task_id: str,
    org_id: CurrentOrgDep,
    tasks: TaskServiceDep,
    sync: SyncServiceDep,
):
    task = await tasks.get_task(task_id, org_id)
    if not task:
        raise NotFoundError("Task not found")
    return await sync.sync_tasks([task])
