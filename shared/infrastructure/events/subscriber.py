"""
Redis pub/sub subscriber for the change feed.

Listens on every collection change channel and hands validated events
to a callback, reconnecting with backoff when Redis drops.
"""

from __future__ import annotations

import asyncio
import json
from typing import Awaitable, Callable

import redis.asyncio as redis
from redis.exceptions import ConnectionError as RedisConnectionError, TimeoutError as RedisTimeoutError

from shared.config.settings import settings
from shared.config.logging import get_logger
from .channels import channel_all_changes_pattern
from .event_schema import ChangeEvent
from .publisher import calculate_retry_delay_with_jitter
from .redis_pool import get_redis_pool

logger = get_logger(__name__)


async def _listen(
    redis_client: redis.Redis,
    pattern: str,
    on_event: Callable[[ChangeEvent], Awaitable[None]],
) -> None:
    pubsub = redis_client.pubsub()
    await pubsub.psubscribe(pattern)
    logger.info("Change feed subscriber started", pattern=pattern)

    try:
        async for msg in pubsub.listen():
            if msg is None or msg.get("type") not in ("message", "pmessage"):
                continue

            try:
                event = ChangeEvent.from_json(msg["data"])
            except (json.JSONDecodeError, TypeError, ValueError) as e:
                logger.warning("Invalid change event", error=str(e), channel=msg.get("channel"))
                continue

            try:
                await on_event(event)
            except Exception as e:
                logger.error("Error handling change event", error=str(e), exc_info=True)
    finally:
        await pubsub.punsubscribe(pattern)
        await pubsub.aclose()


async def run_change_subscriber(
    on_event: Callable[[ChangeEvent], Awaitable[None]],
    redis_client: redis.Redis | None = None,
) -> None:
    """
    Subscribe to all collection change channels until cancelled.

    Args:
        on_event: Async callback receiving each validated ChangeEvent.
        redis_client: Client to use; defaults to the shared pool.
    """
    pattern = channel_all_changes_pattern()
    attempt = 0

    while True:
        try:
            client = redis_client or await get_redis_pool()
            await _listen(client, pattern, on_event)
            attempt = 0
        except asyncio.CancelledError:
            logger.info("Change feed subscriber cancelled")
            raise
        except (RedisConnectionError, RedisTimeoutError) as e:
            attempt += 1
            if attempt > settings.redis_max_reconnect_attempts:
                logger.error(
                    "Change feed subscriber giving up",
                    attempts=attempt - 1,
                    error=str(e),
                )
                raise
            delay = calculate_retry_delay_with_jitter(attempt, 0.5)
            logger.warning(
                "Change feed connection lost, reconnecting",
                attempt=attempt,
                delay_seconds=round(delay, 2),
                error=str(e),
            )
            await asyncio.sleep(delay)
