"""
Redis Channel Naming.

One channel per collection under a shared prefix, so relays can
pattern-subscribe to every collection at once.
"""

from __future__ import annotations

from shared.config.settings import settings


def channel_collection_changes(collection: str) -> str:
    """Channel carrying change events for one collection."""
    if not collection or ":" in collection:
        raise ValueError(f"Invalid collection name for channel: {collection!r}")
    return f"{settings.redis_changes_channel}:{collection}"


def channel_all_changes_pattern() -> str:
    """Pattern matching every collection change channel."""
    return f"{settings.redis_changes_channel}:*"
