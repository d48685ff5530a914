"""
Job queue infrastructure

Thin wrapper over Redis Queue (RQ). RQ needs a sync Redis connection.
"""

from typing import Any, Callable, Union

from redis import Redis
from rq import Queue

from app.core.logging import get_logger

logger = get_logger(__name__)


class JobQueue:
    def __init__(self, queue: Queue):
        self.queue = queue

    @property
    def name(self) -> str:
        return self.queue.name

    def enqueue(self, func: Union[str, Callable[..., Any]], *args: Any, **kwargs: Any) -> str:
        """Enqueue a job and return its id"""
        job = self.queue.enqueue(func, *args, **kwargs)
        logger.info(f"Enqueued job {job.id} on '{self.name}'")
        return job.id


class QueueFactory:
    @classmethod
    def get_queue(cls, connection: Redis, name: str = "default") -> JobQueue:
        return JobQueue(Queue(name, connection=connection))
