"""
Waiter router.
Handles operations performed by waiters: confirming, cancelling and
serving orders, editing pending orders, ordering on a customer's behalf,
table occupancy and the per-customer dashboard.
"""

from fastapi import APIRouter, Depends, Path, status

from shared.config.constants import Roles
from shared.config.logging import waiter_logger as logger
from shared.utils.schemas import (
    CustomerSummaryOutput,
    EditItemQuantityRequest,
    OrderOutput,
    SetTableStatusRequest,
    TableOutput,
    TransitionRequest,
    WaiterPlaceOrderRequest,
)
from rest_api.core.dependencies import (
    get_order_service,
    get_store,
    get_table_service,
    identity_with_role,
)
from rest_api.routers._common import (
    BoardParams,
    get_board_params,
    list_board_orders,
    load_board,
    to_order_output,
)
from rest_api.services.domain import OrderService, TableService
from rest_api.services.identity import SessionIdentity
from rest_api.services.store import DocumentStore


router = APIRouter(prefix="/api/waiter", tags=["waiter"])

waiter_identity = identity_with_role(Roles.WAITER)
table_manager_identity = identity_with_role(Roles.WAITER, Roles.ADMIN)


def _expected(body: TransitionRequest | None) -> str | None:
    return body.expected_status if body else None


# =============================================================================
# Orders
# =============================================================================


@router.get("/orders", response_model=list[OrderOutput])
def list_orders(
    params: BoardParams = Depends(get_board_params),
    identity: SessionIdentity = Depends(waiter_identity),
    store: DocumentStore = Depends(get_store),
) -> list[OrderOutput]:
    """Every table order, with sort, search and table/customer/status filters."""
    return list_board_orders(store, identity, params)


@router.get("/orders/ready", response_model=dict[int, list[OrderOutput]])
def list_ready_to_serve(
    identity: SessionIdentity = Depends(waiter_identity),
    store: DocumentStore = Depends(get_store),
) -> dict[int, list[OrderOutput]]:
    """Ready orders grouped by table, oldest first."""
    board = load_board(store, identity)
    return {
        table_number: [to_order_output(o) for o in orders]
        for table_number, orders in board.ready_to_serve().items()
    }


@router.post("/orders", response_model=OrderOutput, status_code=status.HTTP_201_CREATED)
def place_order(
    body: WaiterPlaceOrderRequest,
    identity: SessionIdentity = Depends(waiter_identity),
    order_service: OrderService = Depends(get_order_service),
) -> OrderOutput:
    """Order on a customer's behalf. The order skips pending and starts confirmed."""
    order = order_service.place_waiter_order(identity, body.table_number, body.customer_name, body.items)
    return to_order_output(order)


@router.post("/orders/{order_id}/confirm", response_model=OrderOutput)
def confirm_order(
    order_id: str,
    body: TransitionRequest | None = None,
    identity: SessionIdentity = Depends(waiter_identity),
    order_service: OrderService = Depends(get_order_service),
) -> OrderOutput:
    return to_order_output(order_service.confirm(order_id, identity, _expected(body)))


@router.post("/orders/{order_id}/cancel", response_model=OrderOutput)
def cancel_order(
    order_id: str,
    body: TransitionRequest | None = None,
    identity: SessionIdentity = Depends(waiter_identity),
    order_service: OrderService = Depends(get_order_service),
) -> OrderOutput:
    """Cancel any order that has not been served yet."""
    order = order_service.cancel(order_id, identity, _expected(body))
    logger.info("Waiter cancelled order", order_id=order_id, actor=identity.uid)
    return to_order_output(order)


@router.post("/orders/{order_id}/serve", response_model=OrderOutput)
def serve_order(
    order_id: str,
    body: TransitionRequest | None = None,
    identity: SessionIdentity = Depends(waiter_identity),
    order_service: OrderService = Depends(get_order_service),
) -> OrderOutput:
    return to_order_output(order_service.serve(order_id, identity, _expected(body)))


@router.patch("/orders/{order_id}/items/{item_index}", response_model=OrderOutput)
def edit_item_quantity(
    order_id: str,
    body: EditItemQuantityRequest,
    item_index: int = Path(ge=0),
    identity: SessionIdentity = Depends(waiter_identity),
    order_service: OrderService = Depends(get_order_service),
) -> OrderOutput:
    """
    Change one line of a pending order.

    Quantity 0 removes the line; removing the last line cancels the order.
    Pass expected_revision to refuse the edit if the order changed meanwhile.
    """
    order = order_service.edit_item_quantity(
        order_id, item_index, body.quantity, identity, expected_revision=body.expected_revision
    )
    return to_order_output(order)


@router.get("/customers", response_model=list[CustomerSummaryOutput])
def list_customers(
    identity: SessionIdentity = Depends(waiter_identity),
    store: DocumentStore = Depends(get_store),
) -> list[CustomerSummaryOutput]:
    """Per-customer order count, revenue and active orders."""
    board = load_board(store, identity)
    return [
        CustomerSummaryOutput.model_validate(summary, from_attributes=True)
        for summary in board.customer_summaries()
    ]


# =============================================================================
# Tables
# =============================================================================


@router.get("/tables", response_model=list[TableOutput])
def list_tables(
    identity: SessionIdentity = Depends(table_manager_identity),
    table_service: TableService = Depends(get_table_service),
) -> list[TableOutput]:
    return [TableOutput.model_validate(table) for table in table_service.list_tables()]


@router.put("/tables/{table_id}/status", response_model=TableOutput)
def set_table_status(
    table_id: str,
    body: SetTableStatusRequest,
    identity: SessionIdentity = Depends(table_manager_identity),
    table_service: TableService = Depends(get_table_service),
) -> TableOutput:
    """Waiters toggle available/occupied; only an admin may reserve."""
    return TableOutput.model_validate(table_service.set_status(table_id, body.status, identity))
