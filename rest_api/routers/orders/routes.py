"""
Customer orders router.
Placing orders, the customer's own order list, cancellation, the bill
request and rating.
"""

from fastapi import APIRouter, Depends, status

from shared.config.constants import Roles
from shared.config.logging import orders_logger as logger
from shared.utils.schemas import (
    OrderOutput,
    PlaceOrderRequest,
    RatingRequest,
    TransitionRequest,
)
from rest_api.core.dependencies import get_order_service, get_store, identity_with_role
from rest_api.routers._common import BoardParams, get_board_params, list_board_orders, to_order_output
from rest_api.services.domain import OrderService
from rest_api.services.identity import SessionIdentity
from rest_api.services.store import DocumentStore


router = APIRouter(prefix="/api/orders", tags=["orders"])

customer_identity = identity_with_role(Roles.CUSTOMER)


@router.post("", response_model=OrderOutput, status_code=status.HTTP_201_CREATED)
def place_order(
    body: PlaceOrderRequest,
    identity: SessionIdentity = Depends(customer_identity),
    order_service: OrderService = Depends(get_order_service),
) -> OrderOutput:
    """
    Place a pending order at a table.

    Item names and prices are copied from the menu at this moment; later
    menu edits do not change the order.
    """
    order = order_service.place_customer_order(identity, body.table_number, body.items)
    return to_order_output(order)


@router.get("/mine", response_model=list[OrderOutput])
def list_my_orders(
    params: BoardParams = Depends(get_board_params),
    identity: SessionIdentity = Depends(customer_identity),
    store: DocumentStore = Depends(get_store),
) -> list[OrderOutput]:
    """The caller's orders, newest first unless another sort is asked for."""
    return list_board_orders(store, identity, params)


@router.get("/{order_id}", response_model=OrderOutput)
def get_my_order(
    order_id: str,
    identity: SessionIdentity = Depends(customer_identity),
    order_service: OrderService = Depends(get_order_service),
) -> OrderOutput:
    order = order_service.get_owned_order(order_id, identity)
    return to_order_output(order)


@router.post("/{order_id}/cancel", response_model=OrderOutput)
def cancel_order(
    order_id: str,
    body: TransitionRequest | None = None,
    identity: SessionIdentity = Depends(customer_identity),
    order_service: OrderService = Depends(get_order_service),
) -> OrderOutput:
    """Cancel one of the caller's orders while it is still pending."""
    expected = body.expected_status if body else None
    order = order_service.cancel(order_id, identity, expected)
    logger.info("Customer cancelled order", order_id=order_id, actor=identity.uid)
    return to_order_output(order)


@router.post("/{order_id}/request-bill", response_model=OrderOutput)
def request_bill(
    order_id: str,
    identity: SessionIdentity = Depends(customer_identity),
    order_service: OrderService = Depends(get_order_service),
) -> OrderOutput:
    """Flag a served order so the cashier knows the customer wants to pay."""
    return to_order_output(order_service.request_bill(order_id, identity))


@router.post("/{order_id}/rating", response_model=OrderOutput)
def rate_order(
    order_id: str,
    body: RatingRequest,
    identity: SessionIdentity = Depends(customer_identity),
    order_service: OrderService = Depends(get_order_service),
) -> OrderOutput:
    """Rate a completed order (1 to 5). Each order can be rated once."""
    order = order_service.submit_rating(order_id, identity, body.rating, body.comment)
    return to_order_output(order)
