"""
Client session state.

Everything that belongs to one signed-in user lives in an explicit
ClientSession: the identity, the cart (customers only), the chosen table
and the open boards. AppState creates the session when the identity
provider reports a sign-in and tears it down on sign-out, so no cart or
subscription survives a change of user.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from shared.config.constants import Roles
from shared.config.logging import get_logger
from shared.utils.exceptions import AuthenticationError, InsufficientRoleError

from rest_api.services.cart import Cart
from rest_api.services.domain import TableService
from rest_api.services.identity import IdentityProvider, SessionIdentity
from rest_api.services.store import DocumentStore
from rest_api.services.views import ActionResult, CustomerView, OrderBoard, open_board

logger = get_logger(__name__)


@dataclass
class ClientSession:
    identity: SessionIdentity
    cart: Cart | None = None
    selected_table: int | None = None
    boards: list[OrderBoard] = field(default_factory=list)

    def close(self) -> None:
        if self.cart is not None:
            self.cart.clear()
        for board in self.boards:
            board.close()
        self.boards.clear()
        self.selected_table = None


class AppState:
    """
    Usage:
        state = AppState(store, IdentityProvider(store))
        state.sign_in("ann@example.com", "secret")
        state.cart.add(menu_item)
        state.select_table(4)
        state.place_order()
        state.sign_out()
    """

    def __init__(self, store: DocumentStore, identity_provider: IdentityProvider):
        self._store = store
        self.identity_provider = identity_provider
        self.session: ClientSession | None = None
        self._unsubscribe = identity_provider.on_auth_state_changed(self._on_auth_state_changed)

    def _on_auth_state_changed(self, identity: SessionIdentity | None) -> None:
        if self.session is not None:
            logger.debug("Closing client session", user_id=self.session.identity.uid)
            self.session.close()
            self.session = None
        if identity is not None:
            cart = Cart() if identity.role == Roles.CUSTOMER else None
            self.session = ClientSession(identity=identity, cart=cart)
            logger.debug("Client session started", user_id=identity.uid, role=identity.role)

    def dispose(self) -> None:
        self._on_auth_state_changed(None)
        self._unsubscribe()

    # =========================================================================
    # Authentication
    # =========================================================================

    def sign_in(self, email: str, password: str) -> SessionIdentity:
        return self.identity_provider.sign_in(email, password)

    def sign_out(self) -> None:
        self.identity_provider.sign_out()

    def _require_session(self) -> ClientSession:
        if self.session is None:
            raise AuthenticationError()
        return self.session

    @property
    def identity(self) -> SessionIdentity | None:
        return self.session.identity if self.session else None

    @property
    def cart(self) -> Cart:
        session = self._require_session()
        if session.cart is None:
            raise InsufficientRoleError([Roles.CUSTOMER], user_id=session.identity.uid)
        return session.cart

    # =========================================================================
    # Views
    # =========================================================================

    def open_board(self) -> OrderBoard:
        """Open the role's board; it is closed automatically on sign-out."""
        session = self._require_session()
        board = open_board(self._store, session.identity)
        session.boards.append(board)
        return board

    def select_table(self, table_number: int) -> dict[str, Any]:
        """
        Customer table choice (checked now, not reserved).

        Raises:
            TableNotFoundError, TableUnavailableError
        """
        session = self._require_session()
        table = TableService(self._store).select_table(table_number)
        session.selected_table = table_number
        return table

    def place_order(self) -> ActionResult:
        """Place the cart at the selected table through the customer board."""
        session = self._require_session()
        if session.identity.role != Roles.CUSTOMER or session.cart is None:
            return ActionResult(False, "Only customers can place orders from a cart")
        if session.cart.is_empty():
            return ActionResult(False, "Add at least one item before placing an order")

        board = next((b for b in session.boards if isinstance(b, CustomerView)), None)
        if board is None:
            board = self.open_board()
        return board.place_order(session.cart, session.selected_table)
