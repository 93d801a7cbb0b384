"""
Live Query Hub.

Keeps every open subscription's result set current. After each committed
write the hub re-runs the queries of the affected collection and delivers
the new snapshot to subscribers whose result changed.

Delivery rules:
- A new subscription receives its first snapshot before subscribe() returns
  (unless another thread is delivering, in which case it is queued).
- Deliveries are serialized in commit order. A callback that writes to the
  store re-entrantly only queues the resulting notification; it is
  delivered once the current round finishes.
- A callback that raises is logged and does not affect other subscribers.
- A query that fails is reported to the subscription's on_error and the
  subscription is suspended until resume().

Change listeners receive (event_type, collection, document_id) for local
commits only. The Redis forwarder registers one to publish cross-process.
"""

from __future__ import annotations

import threading
from collections import deque
from typing import Any, Callable, Union

from shared.config.logging import live_query_logger as logger

from .query import Query

Snapshot = list[dict[str, Any]]
QueryRunner = Callable[[Query], Snapshot]
ChangeListener = Callable[[str, str, str], None]


class Subscription:
    """
    A registered live query.

    Calling the subscription (or unsubscribe()) detaches it. A suspended
    subscription stops receiving snapshots until resume() is called.
    """

    def __init__(
        self,
        hub: "LiveQueryHub",
        query: Query,
        on_change: Callable[[Snapshot], None],
        on_error: Callable[[Exception], None] | None,
    ) -> None:
        self._hub = hub
        self.query = query
        self.on_change = on_change
        self.on_error = on_error
        self.last_snapshot: Snapshot | None = None
        self.suspended = False
        self.active = True

    @property
    def collection(self) -> str:
        return self.query.collection

    def unsubscribe(self) -> None:
        self._hub._remove(self)

    __call__ = unsubscribe

    def resume(self) -> None:
        """Re-run the query after a failure and deliver the current snapshot."""
        if not self.active:
            return
        self.suspended = False
        self.last_snapshot = None
        self._hub._enqueue(self)


# A queued delivery: a whole collection after a write, or one subscription
_Work = Union[str, Subscription]


class LiveQueryHub:
    """
    In-process fan-out of committed writes to live queries.

    Thread-safe: the registry and the delivery queue are guarded by locks,
    and only one thread delivers at a time.
    """

    def __init__(self, runner: QueryRunner | None = None) -> None:
        self._runner = runner
        self._subscriptions: dict[str, list[Subscription]] = {}
        self._registry_lock = threading.Lock()
        self._queue: deque[_Work] = deque()
        self._queue_lock = threading.Lock()
        self._delivering = False
        self._listeners: list[ChangeListener] = []

    def bind(self, runner: QueryRunner) -> None:
        """Attach the function used to evaluate queries (the store's query)."""
        self._runner = runner

    # =========================================================================
    # Subscriptions
    # =========================================================================

    def subscribe(
        self,
        query: Query,
        on_change: Callable[[Snapshot], None],
        on_error: Callable[[Exception], None] | None = None,
    ) -> Subscription:
        subscription = Subscription(self, query, on_change, on_error)
        with self._registry_lock:
            self._subscriptions.setdefault(query.collection, []).append(subscription)
        logger.debug("Live query subscribed", collection=query.collection)
        self._enqueue(subscription)
        return subscription

    def subscription_count(self, collection: str | None = None) -> int:
        with self._registry_lock:
            if collection is not None:
                return len(self._subscriptions.get(collection, []))
            return sum(len(subs) for subs in self._subscriptions.values())

    def _remove(self, subscription: Subscription) -> None:
        with self._registry_lock:
            subs = self._subscriptions.get(subscription.collection, [])
            if subscription in subs:
                subs.remove(subscription)
            subscription.active = False
        logger.debug("Live query unsubscribed", collection=subscription.collection)

    # =========================================================================
    # Change notification
    # =========================================================================

    def add_change_listener(self, listener: ChangeListener) -> Callable[[], None]:
        """Register a listener for local commits. Returns a remover."""
        with self._registry_lock:
            self._listeners.append(listener)

        def remove() -> None:
            with self._registry_lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return remove

    def notify(
        self,
        collection: str,
        document_id: str,
        event_type: str,
        local: bool = True,
    ) -> None:
        """
        Signal a committed write to one document.

        Args:
            collection: Collection written to.
            document_id: Id of the written document.
            event_type: DOCUMENT_CREATED or DOCUMENT_UPDATED.
            local: False for writes relayed from another process; those
                are not passed to change listeners again.
        """
        if local:
            with self._registry_lock:
                listeners = list(self._listeners)
            for listener in listeners:
                try:
                    listener(event_type, collection, document_id)
                except Exception as e:
                    logger.error(
                        "Change listener failed",
                        collection=collection,
                        document_id=document_id,
                        error=str(e),
                        exc_info=True,
                    )
        self._enqueue(collection)

    # =========================================================================
    # Delivery
    # =========================================================================

    def _enqueue(self, work: _Work) -> None:
        if self._runner is None:
            raise RuntimeError("LiveQueryHub has no query runner bound")
        with self._queue_lock:
            self._queue.append(work)
            if self._delivering:
                return
            self._delivering = True
        self._drain()

    def _drain(self) -> None:
        while True:
            with self._queue_lock:
                if not self._queue:
                    self._delivering = False
                    return
                work = self._queue.popleft()

            if isinstance(work, Subscription):
                self._refresh(work)
            else:
                with self._registry_lock:
                    subs = list(self._subscriptions.get(work, []))
                for subscription in subs:
                    self._refresh(subscription)

    def _refresh(self, subscription: Subscription) -> None:
        if not subscription.active or subscription.suspended:
            return

        try:
            snapshot = self._runner(subscription.query)
        except Exception as e:
            subscription.suspended = True
            logger.warning(
                "Live query failed, subscription suspended",
                collection=subscription.collection,
                error=str(e),
            )
            if subscription.on_error is not None:
                try:
                    subscription.on_error(e)
                except Exception as handler_error:
                    logger.error(
                        "Live query error handler failed",
                        collection=subscription.collection,
                        error=str(handler_error),
                        exc_info=True,
                    )
            return

        if snapshot == subscription.last_snapshot:
            return
        subscription.last_snapshot = snapshot

        try:
            subscription.on_change(snapshot)
        except Exception as e:
            logger.error(
                "Live query callback failed",
                collection=subscription.collection,
                error=str(e),
                exc_info=True,
            )
