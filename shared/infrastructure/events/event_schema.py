"""
Event Schema.

Defines the ChangeEvent dataclass published on the Redis change feed.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import datetime, timezone

from shared.config.constants import Collections, EventType

_KNOWN_COLLECTIONS = frozenset(
    {Collections.ORDERS, Collections.TABLES, Collections.MENU_ITEMS, Collections.USERS}
)
_KNOWN_TYPES = frozenset({EventType.DOCUMENT_CREATED, EventType.DOCUMENT_UPDATED})


@dataclass
class ChangeEvent:
    """
    A committed write to one document.

    Carries identifiers only: receivers re-query the store, so the payload
    never becomes a second source of truth. 'origin' identifies the
    publishing process so it can ignore its own echoes.
    """

    type: str
    collection: str
    document_id: str
    origin: str
    ts: str | None = None
    v: int = 1  # Schema version for future compatibility

    def __post_init__(self) -> None:
        """Prevent malformed events from being published to Redis."""
        if self.type not in _KNOWN_TYPES:
            raise ValueError(f"Unknown event type: {self.type!r}")

        if self.collection not in _KNOWN_COLLECTIONS:
            raise ValueError(f"Unknown collection: {self.collection!r}")

        if not self.document_id or not isinstance(self.document_id, str):
            raise ValueError("Event document_id must be a non-empty string")

        if not self.origin or not isinstance(self.origin, str):
            raise ValueError("Event origin must be a non-empty string")

    def to_json(self) -> str:
        """Serialize event to JSON string."""
        data = asdict(self)
        data["ts"] = data["ts"] or datetime.now(timezone.utc).isoformat()
        return json.dumps(data, ensure_ascii=False)

    @classmethod
    def from_json(cls, json_str: str) -> "ChangeEvent":
        """Deserialize event from JSON string (validated in __post_init__)."""
        data = json.loads(json_str)
        return cls(**data)
