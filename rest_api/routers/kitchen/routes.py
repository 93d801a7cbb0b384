"""
Kitchen router.
The chef's queue of confirmed and in-progress orders, and menu availability.
"""

from fastapi import APIRouter, Depends

from shared.config.constants import Roles
from shared.utils.schemas import (
    MenuAvailabilityRequest,
    MenuItemOutput,
    OrderOutput,
    TransitionRequest,
)
from rest_api.core.dependencies import (
    get_menu_service,
    get_order_service,
    get_store,
    identity_with_role,
)
from rest_api.routers._common import BoardParams, get_board_params, list_board_orders, to_order_output
from rest_api.services.domain import MenuService, OrderService
from rest_api.services.identity import SessionIdentity
from rest_api.services.store import DocumentStore


router = APIRouter(prefix="/api/kitchen", tags=["kitchen"])

chef_identity = identity_with_role(Roles.CHEF)


@router.get("/orders", response_model=list[OrderOutput])
def list_orders(
    params: BoardParams = Depends(get_board_params),
    identity: SessionIdentity = Depends(chef_identity),
    store: DocumentStore = Depends(get_store),
) -> list[OrderOutput]:
    """Confirmed, preparing and ready orders."""
    return list_board_orders(store, identity, params)


@router.post("/orders/{order_id}/start", response_model=OrderOutput)
def start_preparing(
    order_id: str,
    body: TransitionRequest | None = None,
    identity: SessionIdentity = Depends(chef_identity),
    order_service: OrderService = Depends(get_order_service),
) -> OrderOutput:
    expected = body.expected_status if body else None
    return to_order_output(order_service.start_preparing(order_id, identity, expected))


@router.post("/orders/{order_id}/ready", response_model=OrderOutput)
def mark_ready(
    order_id: str,
    body: TransitionRequest | None = None,
    identity: SessionIdentity = Depends(chef_identity),
    order_service: OrderService = Depends(get_order_service),
) -> OrderOutput:
    expected = body.expected_status if body else None
    return to_order_output(order_service.mark_ready(order_id, identity, expected))


@router.patch("/menu-items/{item_id}/availability", response_model=MenuItemOutput)
def set_menu_item_availability(
    item_id: str,
    body: MenuAvailabilityRequest,
    identity: SessionIdentity = Depends(chef_identity),
    menu_service: MenuService = Depends(get_menu_service),
) -> MenuItemOutput:
    """Mark an item sold out (or back in stock). Existing orders keep their items."""
    item = menu_service.set_availability(item_id, body.available, identity)
    return MenuItemOutput.model_validate(item)
