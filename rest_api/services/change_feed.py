"""
Cross-process change feed.

Every API process keeps its own LiveQueryHub. When several processes share
one database, ChangeFeedRelay publishes this process's commits to Redis and
feeds commits made elsewhere back into the local hub, so every live query
re-runs no matter which process wrote.
"""

from __future__ import annotations

import asyncio
import uuid
from concurrent.futures import Future

import redis.asyncio as redis

from shared.config.logging import live_query_logger as logger
from shared.infrastructure.events import ChangeEvent, get_redis_pool, publish_change, run_change_subscriber
from rest_api.services.store import LiveQueryHub


class ChangeFeedRelay:
    """
    Usage:
        relay = ChangeFeedRelay(store.hub)
        await relay.start()
        ...
        await relay.stop()
    """

    def __init__(
        self,
        hub: LiveQueryHub,
        redis_client: redis.Redis | None = None,
        origin: str | None = None,
    ):
        self._hub = hub
        self._redis = redis_client
        self.origin = origin or uuid.uuid4().hex
        self._loop: asyncio.AbstractEventLoop | None = None
        self._task: asyncio.Task | None = None
        self._remove_listener = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self._task is not None:
            return
        self._loop = asyncio.get_running_loop()
        if self._redis is None:
            self._redis = await get_redis_pool()
        self._remove_listener = self._hub.add_change_listener(self._publish)
        self._task = asyncio.create_task(run_change_subscriber(self.handle_event, self._redis))
        logger.info("Change feed relay started", origin=self.origin)

    async def stop(self) -> None:
        if self._remove_listener is not None:
            self._remove_listener()
            self._remove_listener = None
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Change feed relay stopped", origin=self.origin)

    # =========================================================================
    # Outbound: local commits -> Redis
    # =========================================================================

    def _publish(self, event_type: str, collection: str, document_id: str) -> None:
        # Called on the committing thread
        future = asyncio.run_coroutine_threadsafe(
            publish_change(self._redis, event_type, collection, document_id, self.origin),
            self._loop,
        )
        future.add_done_callback(self._log_publish_failure)

    @staticmethod
    def _log_publish_failure(future: Future) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.error("Failed to publish change", error=str(exc))

    # =========================================================================
    # Inbound: Redis -> local hub
    # =========================================================================

    async def handle_event(self, event: ChangeEvent) -> None:
        """Re-run local live queries for a commit made by another process."""
        if event.origin == self.origin:
            return
        await asyncio.to_thread(
            self._hub.notify,
            event.collection,
            event.document_id,
            event.type,
            False,
        )
