"""
Change feed for cross-process live query fan-out via Redis pub/sub.

This package provides:
- ChangeEvent schema and validation (event_schema.py)
- Channel naming (channels.py)
- Redis connection pool management (redis_pool.py)
- Publishing with retry (publisher.py)
- Pattern subscriber with reconnect (subscriber.py)
"""

from .event_schema import ChangeEvent
from .channels import channel_collection_changes, channel_all_changes_pattern
from .redis_pool import get_redis_pool, close_redis_pool
from .publisher import (
    MAX_EVENT_SIZE,
    calculate_retry_delay_with_jitter,
    publish_event,
    publish_change,
)
from .subscriber import run_change_subscriber

__all__ = [
    "ChangeEvent",
    "channel_collection_changes",
    "channel_all_changes_pattern",
    "get_redis_pool",
    "close_redis_pool",
    "MAX_EVENT_SIZE",
    "calculate_retry_delay_with_jitter",
    "publish_event",
    "publish_change",
    "run_change_subscriber",
]
