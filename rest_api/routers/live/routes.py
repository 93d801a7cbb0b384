"""
Live order feed.

One WebSocket per open order board. The board's live query pushes a new
snapshot after every committed change; the latest snapshot is forwarded to
the client as {"type": "orders", "orders": [...]}. Only the newest snapshot
matters, so when the send queue is full the oldest one is dropped.

Client messages:
    "ping"   -> "pong"
    "retry"  -> resume live updates after a query failure
"""

from __future__ import annotations

import asyncio
from typing import Any

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect

from shared.config.constants import WSCloseCode
from shared.config.logging import live_query_logger as logger
from shared.config.settings import settings
from shared.infrastructure.correlation import HEADER_NAME, bind_request_id
from shared.security.auth import verify_jwt
from shared.utils.exceptions import AppException
from rest_api.core.dependencies import get_store
from rest_api.routers._common import BoardParams, to_order_output
from rest_api.services.identity import SessionIdentity
from rest_api.services.store import DocumentStore
from rest_api.services.views import VIEW_CLASSES, OrderBoard


router = APIRouter(tags=["live"])


def _serialize(orders: list[dict[str, Any]]) -> dict[str, Any]:
    return {
        "type": "orders",
        "orders": [to_order_output(order).model_dump(mode="json") for order in orders],
    }


def _offer(queue: asyncio.Queue, message: dict[str, Any]) -> None:
    """Enqueue on the event loop, replacing the oldest snapshot when full."""
    if queue.full():
        queue.get_nowait()
    queue.put_nowait(message)


async def _send_snapshots(websocket: WebSocket, queue: asyncio.Queue) -> None:
    while True:
        message = await queue.get()
        await websocket.send_json(message)


async def _receive_commands(websocket: WebSocket, board: OrderBoard) -> None:
    while True:
        data = await websocket.receive_text()
        if data == "ping":
            await websocket.send_text("pong")
        elif data == "retry":
            await asyncio.to_thread(board.retry)
        else:
            logger.debug("Unknown live feed message", role=board.identity.role, message=data[:50])


@router.websocket("/ws/orders")
async def orders_feed(
    websocket: WebSocket,
    token: str = Query(default=""),
    sort: str = Query(default="newest"),
    search: str | None = Query(default=None),
    status: str | None = Query(default=None),
    table: int | None = Query(default=None),
    customer: str | None = Query(default=None),
    store: DocumentStore = Depends(get_store),
):
    """Stream the caller's role projection, filtered and sorted like the HTTP listings."""
    try:
        identity = SessionIdentity.from_claims(verify_jwt(token))
    except AppException as e:
        await websocket.close(code=WSCloseCode.AUTH_FAILED, reason=e.message)
        return

    view_class = VIEW_CLASSES.get(identity.role)
    if view_class is None:
        await websocket.close(code=WSCloseCode.FORBIDDEN, reason="No order board for this role")
        return

    board = view_class(store, identity)
    try:
        BoardParams(sort=sort, search=search, status=status, table=table, customer=customer).apply(board)
    except ValueError as e:
        await websocket.close(code=WSCloseCode.POLICY_VIOLATION, reason=str(e))
        return

    with bind_request_id(websocket.headers.get(HEADER_NAME)):
        await _stream(websocket, board)


async def _stream(websocket: WebSocket, board: OrderBoard) -> None:
    identity = board.identity
    await websocket.accept()
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue(maxsize=settings.ws_send_queue_size)

    def on_orders(orders: list[dict[str, Any]]) -> None:
        # Runs on whichever thread committed the write
        loop.call_soon_threadsafe(_offer, queue, _serialize(orders))

    board.add_listener(on_orders)
    tasks: list[asyncio.Task] = []
    try:
        await asyncio.to_thread(board.open)
        logger.info("Live feed opened", role=identity.role, user_id=identity.uid)
        tasks = [
            asyncio.create_task(_send_snapshots(websocket, queue)),
            asyncio.create_task(_receive_commands(websocket, board)),
        ]
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                raise exc
    except WebSocketDisconnect:
        pass
    finally:
        for task in tasks:
            task.cancel()
        board.close()
        logger.info("Live feed closed", role=identity.role, user_id=identity.uid)
