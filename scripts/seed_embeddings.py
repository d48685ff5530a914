"""
Script to (re)build task embeddings.

Usage:
    python scripts/seed_embeddings.py             # every organization
    python scripts/seed_embeddings.py --org-id ID # one organization

Requires GEMINI_API_KEY, database and Qdrant settings in the environment.
"""

import argparse
import asyncio
import os
import sys

sys.path.append(os.getcwd())

from app.core.config import settings
from app.core.logging import setup_logging
from app.infra.db import AsyncSessionLocal, close_db_connection
from app.infra.qdrant import close_qdrant_client, ensure_collections_exist, init_qdrant_client
from app.services.llm_clients.gemini_client import build_embedding_client
from app.services.rag.sync_service import EmbeddingSyncService
from app.services.rag.vector_store import VectorStore
from app.services.task_service import TaskService


def print_progress(done: int, total: int) -> None:
    print(f"[{done}/{total}] processed")


async def seed(org_id: str = None) -> int:
    setup_logging()

    if not settings.gemini_configured and not settings.use_mock_embedding:
        print("Missing GEMINI_API_KEY")
        return 1

    print("Starting embedding seed process...\n")

    qdrant = await init_qdrant_client()
    try:
        await ensure_collections_exist(qdrant)
        vector_store = VectorStore(qdrant)

        async with AsyncSessionLocal() as session:
            tasks = TaskService(session)
            service = EmbeddingSyncService(
                build_embedding_client(settings), vector_store, task_source=tasks
            )

            if org_id:
                report = await service.sync_org(org_id, on_progress=print_progress)
            else:
                all_tasks = await tasks.get_all_tasks()
                if not all_tasks:
                    print("No tasks found in the database.")
                    return 0
                print(f"Found {len(all_tasks)} tasks to process\n")
                report = await service.sync_tasks(all_tasks, on_progress=print_progress)

        print("\n--- Seed Complete ---")
        print(f"Successful: {report.successful}")
        print(f"Failed: {report.failed}")
        for error in report.errors:
            print(f"  {error}")

        total = await vector_store.count(org_id)
        print(f"\nTotal embeddings in store: {total}")
    finally:
        await close_qdrant_client()
        await close_db_connection()

    return 1 if report.failed else 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed task embeddings")
    parser.add_argument("--org-id", help="Only re-index this organization")
    args = parser.parse_args()

    sys.exit(asyncio.run(seed(args.org_id)))
