"""
Change Event Publishing with Retry.

Publishes committed document writes so other API processes can re-run
their live queries.
"""

from __future__ import annotations

import asyncio
import random

import redis.asyncio as redis
from redis.exceptions import RedisError

from shared.config.settings import settings
from shared.config.logging import get_logger
from .channels import channel_collection_changes
from .event_schema import ChangeEvent

logger = get_logger(__name__)

# Events carry identifiers only, anything larger is a bug
MAX_EVENT_SIZE = 4 * 1024


def calculate_retry_delay_with_jitter(attempt: int, base_delay: float = 0.1) -> float:
    """
    Exponential backoff with jitter, capped at 10 seconds.

    Args:
        attempt: Current attempt number (0-indexed)
        base_delay: Base delay in seconds
    """
    exp_delay = min(base_delay * (2 ** attempt), 10.0)
    return random.uniform(base_delay, exp_delay)


async def publish_event(
    redis_client: redis.Redis,
    channel: str,
    event: ChangeEvent,
) -> int:
    """
    Publish an event to a Redis channel.

    Args:
        redis_client: Async Redis client.
        channel: Redis channel name.
        event: Event to publish.

    Returns:
        Number of subscribers that received the message.

    Raises:
        ValueError: If event is too large.
        RedisError: If all retries fail.
    """
    event_json = event.to_json()

    size = len(event_json.encode("utf-8"))
    if size > MAX_EVENT_SIZE:
        raise ValueError(
            f"Event {event.type} exceeds max size: {size} > {MAX_EVENT_SIZE} bytes"
        )

    last_error: Exception | None = None
    for attempt in range(settings.redis_publish_max_retries):
        try:
            return await redis_client.publish(channel, event_json)
        except RedisError as e:
            last_error = e
            if attempt < settings.redis_publish_max_retries - 1:
                delay = calculate_retry_delay_with_jitter(
                    attempt, settings.redis_publish_retry_delay
                )
                logger.warning(
                    "Redis publish failed, retrying",
                    channel=channel,
                    event_type=event.type,
                    attempt=attempt + 1,
                    max_retries=settings.redis_publish_max_retries,
                    delay_seconds=round(delay, 2),
                    error=str(e),
                )
                await asyncio.sleep(delay)

    logger.error(
        "Redis publish failed after all retries",
        channel=channel,
        event_type=event.type,
        error=str(last_error),
    )
    raise last_error  # type: ignore[misc]


async def publish_change(
    redis_client: redis.Redis,
    event_type: str,
    collection: str,
    document_id: str,
    origin: str,
) -> int:
    """Publish one committed write on its collection channel."""
    event = ChangeEvent(
        type=event_type,
        collection=collection,
        document_id=document_id,
        origin=origin,
    )
    return await publish_event(redis_client, channel_collection_changes(collection), event)
