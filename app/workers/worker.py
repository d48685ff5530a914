"""
Worker Entry Point

Starts the Redis Queue (RQ) worker that consumes embedding sync jobs.
"""

import os
import sys

# Ensure app is in path
sys.path.append(os.getcwd())

from redis import Redis
from rq import Queue, Worker

from app.core.config import settings
from app.core.logging import get_logger, setup_logging

logger = get_logger(__name__)

listen = settings.worker_queues

if __name__ == "__main__":
    setup_logging()

    conn = Redis.from_url(settings.redis_url)
    worker = Worker([Queue(name, connection=conn) for name in listen], connection=conn)
    logger.info(f"Worker started. Listening on: {listen}")
    worker.work()
