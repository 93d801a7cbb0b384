"""
Document store with live queries.
"""

from .document_store import DocumentStore
from .live_query import LiveQueryHub, Subscription
from .query import Filter, Ordering, Query

__all__ = [
    "DocumentStore",
    "LiveQueryHub",
    "Subscription",
    "Query",
    "Filter",
    "Ordering",
]
