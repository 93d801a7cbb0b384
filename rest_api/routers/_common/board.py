"""
Board listing helpers for the role routers.

Usage:
    @router.get("/orders", response_model=list[OrderOutput])
    def list_orders(
        params: BoardParams = Depends(get_board_params),
        identity: SessionIdentity = Depends(identity_with_role(Roles.CHEF)),
        store: DocumentStore = Depends(get_store),
    ):
        return list_board_orders(store, identity, params)
"""

from dataclasses import dataclass
from typing import Any

from fastapi import Query

from shared.config.constants import Limits
from shared.utils.exceptions import ValidationError
from shared.utils.schemas import OrderOutput, OrderStatusLiteral, SortKey
from rest_api.services.identity import SessionIdentity
from rest_api.services.store import DocumentStore
from rest_api.services.views import VIEW_CLASSES, OrderBoard


@dataclass
class BoardParams:
    """Sorting and filters applied on top of a role projection."""

    sort: str = "newest"
    search: str | None = None
    status: str | None = None
    table: int | None = None
    customer: str | None = None

    def apply(self, board: OrderBoard) -> OrderBoard:
        board.set_sort(self.sort)
        board.set_search(self.search)
        board.set_status_filter(self.status)
        board.set_table_filter(self.table)
        board.set_customer_filter(self.customer)
        return board


def get_board_params(
    sort: SortKey = Query(default="newest"),
    search: str | None = Query(default=None, max_length=Limits.MAX_SEARCH_TERM_LENGTH),
    status: OrderStatusLiteral | None = Query(default=None),
    table: int | None = Query(default=None, ge=1),
    customer: str | None = Query(default=None, max_length=Limits.MAX_NAME_LENGTH),
) -> BoardParams:
    return BoardParams(sort=sort, search=search, status=status, table=table, customer=customer)


def to_order_output(order: dict[str, Any]) -> OrderOutput:
    return OrderOutput.model_validate(order)


def load_board(store: DocumentStore, identity: SessionIdentity) -> OrderBoard:
    """The role's board with a one-shot projection (no live subscription)."""
    view_class = VIEW_CLASSES.get(identity.role)
    if view_class is None:
        raise ValidationError(f"No order board for role '{identity.role}'")
    return view_class(store, identity).load()


def list_board_orders(
    store: DocumentStore,
    identity: SessionIdentity,
    params: BoardParams,
) -> list[OrderOutput]:
    board = params.apply(load_board(store, identity))
    return [to_order_output(order) for order in board.visible_orders()]
