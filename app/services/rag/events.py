"""
Content events

Task mutations publish a ContentEvent; embedding sync consumes it outside
the request that changed the task. A failed sync never fails the mutation.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Optional

from redis import Redis

from app.core.config import Settings, settings
from app.core.logging import get_logger
from app.infra.queue import JobQueue, QueueFactory
from app.schemas.rag import ContentEvent

logger = get_logger(__name__)

EventHandler = Callable[[ContentEvent], Awaitable[Any]]

PROCESS_CONTENT_EVENT_JOB = "app.workers.jobs.embedding_sync.process_content_event"


class EmbeddingEventPublisher(ABC):
    async def start(self) -> None:
        return None

    async def stop(self) -> None:
        return None

    @abstractmethod
    async def publish(self, event: ContentEvent) -> None:
        """Hand the event off without waiting for it to be processed"""


class BackgroundEventPublisher(EmbeddingEventPublisher):
    """In-process queue drained by a single consumer task, in publish order"""

    def __init__(self, handler: EventHandler):
        self.handler = handler
        self.queue: asyncio.Queue = asyncio.Queue()
        self._consumer: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._consumer is not None and not self._consumer.done()

    async def start(self) -> None:
        if not self.running:
            self._consumer = asyncio.create_task(self._consume())

    async def publish(self, event: ContentEvent) -> None:
        if not self.running:
            await self.start()
        self.queue.put_nowait(event)

    async def join(self) -> None:
        """Wait until every published event has been handled"""
        await self.queue.join()

    async def stop(self, timeout: float = 10.0) -> None:
        if self._consumer is None:
            return

        try:
            await asyncio.wait_for(self.queue.join(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Stopping with {self.queue.qsize()} unprocessed content events")

        self._consumer.cancel()
        try:
            await self._consumer
        except asyncio.CancelledError:
            pass
        self._consumer = None

    async def _consume(self) -> None:
        while True:
            event = await self.queue.get()
            try:
                await self.handler(event)
            except Exception:
                logger.exception(
                    f"Content event handler failed for {event.content_type}/{event.content_id}"
                )
            finally:
                self.queue.task_done()


class QueueEventPublisher(EmbeddingEventPublisher):
    """Enqueue events on RQ for the worker process"""

    def __init__(self, queue: JobQueue, connection: Optional[Redis] = None):
        self.queue = queue
        self.connection = connection

    async def stop(self) -> None:
        if self.connection is not None:
            await asyncio.to_thread(self.connection.close)
            self.connection = None

    async def publish(self, event: ContentEvent) -> None:
        await asyncio.to_thread(
            self.queue.enqueue, PROCESS_CONTENT_EVENT_JOB, event.model_dump(mode="json")
        )


def build_event_publisher(
    handler: EventHandler, config: Settings = settings
) -> EmbeddingEventPublisher:
    if config.embedding_sync_mode == "queue":
        connection = Redis.from_url(config.redis_url)
        return QueueEventPublisher(
            QueueFactory.get_queue(connection, config.worker_queues[0]),
            connection=connection,
        )
    return BackgroundEventPublisher(handler)
