"""
API Router configuration
"""

from fastapi import APIRouter

from app.api.v1 import (
    health,
    rag,
    tasks,
)

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(tasks.router, prefix="/tasks", tags=["tasks"])
api_router.include_router(rag.router, prefix="/rag", tags=["rag"])
