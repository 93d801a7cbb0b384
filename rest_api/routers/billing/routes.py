"""
Billing router.
The cashier's view of orders between confirmation and completion,
grouped per customer, with single-order billing, bulk settlement and
counter sales.
"""

from fastapi import APIRouter, Depends, status

from shared.config.constants import Roles
from shared.config.logging import billing_logger as logger
from shared.utils.schemas import (
    CounterSaleRequest,
    CustomerBillOutput,
    OrderOutput,
    SettleFailure,
    SettleResultOutput,
    TransitionRequest,
)
from rest_api.core.dependencies import get_order_service, get_store, identity_with_role
from rest_api.routers._common import (
    BoardParams,
    get_board_params,
    list_board_orders,
    load_board,
    to_order_output,
)
from rest_api.services.domain import OrderService
from rest_api.services.identity import SessionIdentity
from rest_api.services.store import DocumentStore


router = APIRouter(prefix="/api/billing", tags=["billing"])

cashier_identity = identity_with_role(Roles.CASHIER)


@router.get("/orders", response_model=list[OrderOutput])
def list_orders(
    params: BoardParams = Depends(get_board_params),
    identity: SessionIdentity = Depends(cashier_identity),
    store: DocumentStore = Depends(get_store),
) -> list[OrderOutput]:
    return list_board_orders(store, identity, params)


@router.get("/customers", response_model=list[CustomerBillOutput])
def list_customer_bills(
    params: BoardParams = Depends(get_board_params),
    identity: SessionIdentity = Depends(cashier_identity),
    store: DocumentStore = Depends(get_store),
) -> list[CustomerBillOutput]:
    """Visible orders grouped per customer (case-insensitive), with totals."""
    board = params.apply(load_board(store, identity))
    return [
        CustomerBillOutput(
            customer_name=bill.customer_name,
            orders=[to_order_output(o) for o in bill.orders],
            total_cents=bill.total_cents,
        )
        for bill in board.group_by_customer()
    ]


@router.post("/counter-sales", response_model=OrderOutput, status_code=status.HTTP_201_CREATED)
def ring_up_counter_sale(
    body: CounterSaleRequest,
    identity: SessionIdentity = Depends(cashier_identity),
    order_service: OrderService = Depends(get_order_service),
) -> OrderOutput:
    """Walk-in sale with no table. It starts in billing; complete it to close."""
    return to_order_output(order_service.place_counter_sale(identity, body.customer_name, body.items))


@router.post("/orders/{order_id}/bill", response_model=OrderOutput)
def process_bill(
    order_id: str,
    body: TransitionRequest | None = None,
    identity: SessionIdentity = Depends(cashier_identity),
    order_service: OrderService = Depends(get_order_service),
) -> OrderOutput:
    """Move a served order to billing."""
    expected = body.expected_status if body else None
    return to_order_output(order_service.process_bill(order_id, identity, expected))


@router.post("/orders/{order_id}/complete", response_model=OrderOutput)
def mark_complete(
    order_id: str,
    body: TransitionRequest | None = None,
    identity: SessionIdentity = Depends(cashier_identity),
    order_service: OrderService = Depends(get_order_service),
) -> OrderOutput:
    """Close a billed order. Served orders must be billed first."""
    expected = body.expected_status if body else None
    return to_order_output(order_service.mark_complete(order_id, identity, expected))


@router.post("/customers/{customer_name}/settle", response_model=SettleResultOutput)
def settle_customer(
    customer_name: str,
    identity: SessionIdentity = Depends(cashier_identity),
    order_service: OrderService = Depends(get_order_service),
) -> SettleResultOutput:
    """
    Bill and complete every served or billing order of one customer.

    Orders still in the kitchen are skipped. A failure on one order does
    not stop the others; failures are listed in the response.
    """
    result = order_service.settle_customer(customer_name, identity)
    if result.failed:
        logger.warning(
            "Settle finished with failures",
            customer=customer_name,
            failed=len(result.failed),
            actor=identity.uid,
        )
    return SettleResultOutput(
        customer_name=result.customer_name,
        completed=result.completed,
        skipped=result.skipped,
        failed=[SettleFailure(order_id=order_id, error=error) for order_id, error in result.failed],
    )
