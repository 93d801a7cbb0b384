"""
Shared Pydantic schemas used across the application.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from shared.config.constants import Limits


# =============================================================================
# Common Types
# =============================================================================

Role = Literal["admin", "waiter", "chef", "cashier", "customer"]
OrderStatusLiteral = Literal[
    "pending", "confirmed", "preparing", "ready", "served", "billing", "completed", "cancelled"
]
TableStatusLiteral = Literal["available", "occupied", "reserved"]
SortKey = Literal["newest", "oldest", "status", "table"]


# =============================================================================
# Authentication Schemas
# =============================================================================


class LoginRequest(BaseModel):
    """Login request body."""

    email: EmailStr
    password: str = Field(min_length=1)


class RegisterRequest(BaseModel):
    """Customer self sign-up."""

    email: EmailStr
    password: str = Field(min_length=6, max_length=128)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)


class StaffRegisterRequest(RegisterRequest):
    """Staff sign-up; the account waits for an admin's approval."""

    role: Literal["waiter", "chef", "cashier"]


class StaffAccountOutput(BaseModel):
    """A staff profile as the approval screen sees it."""

    id: str
    email: str
    first_name: str
    last_name: str | None = None
    role: Role
    approved: bool
    created_at: datetime
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None


class ApprovalRequest(BaseModel):
    approved: bool


class UserInfo(BaseModel):
    """Basic user information included in auth responses."""

    id: str
    email: str
    role: Role
    display_name: str


class LoginResponse(BaseModel):
    """Login response with JWT token."""

    access_token: str
    token_type: str = "Bearer"
    expires_in: int  # seconds
    user: UserInfo


# =============================================================================
# Menu and Table Schemas
# =============================================================================


class MenuItemOutput(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: str | None = None
    price_cents: int
    category: str
    available: bool


class MenuOutput(BaseModel):
    """Visible catalog plus its category list (for the category filter)."""

    categories: list[str]
    items: list[MenuItemOutput]


class MenuAvailabilityRequest(BaseModel):
    """Kitchen stock toggle."""

    available: bool


class TableOutput(BaseModel):
    id: str
    table_number: int
    capacity: int
    status: TableStatusLiteral
    last_updated: datetime | None = None


class SetTableStatusRequest(BaseModel):
    """Waiters toggle available/occupied; only an admin may reserve."""

    status: TableStatusLiteral


# =============================================================================
# Order Schemas
# =============================================================================


class CartLineInput(BaseModel):
    """One cart line: a menu item and how many."""

    menu_item_id: str = Field(min_length=1)
    quantity: int = Field(ge=Limits.MIN_QUANTITY, le=Limits.MAX_QUANTITY)


class PlaceOrderRequest(BaseModel):
    """Customer order placement."""

    table_number: int = Field(ge=1)
    items: list[CartLineInput] = Field(min_length=1)


class WaiterPlaceOrderRequest(PlaceOrderRequest):
    """Order placed by a waiter on a customer's behalf."""

    customer_name: str = Field(min_length=1, max_length=Limits.MAX_NAME_LENGTH)


class CounterSaleRequest(BaseModel):
    """Walk-in sale rung up by the cashier; no table."""

    customer_name: str = Field(min_length=1, max_length=Limits.MAX_NAME_LENGTH)
    items: list[CartLineInput] = Field(min_length=1)


class OrderItemOutput(BaseModel):
    menu_item_id: str
    name: str
    price_cents: int
    quantity: int


class OrderOutput(BaseModel):
    """Full order document as seen by the role boards."""

    id: str
    table_number: int | None = None
    is_counter_sale: bool = False
    customer_name: str
    items: list[OrderItemOutput]
    total_cents: int
    status: OrderStatusLiteral
    revision: int
    created_at: datetime
    last_updated: datetime
    updated_by: str | None = None
    placed_by: str | None = None
    waiter_name: str | None = None
    confirmed_by: str | None = None
    confirmed_at: datetime | None = None
    prepared_by: str | None = None
    prepared_at: datetime | None = None
    ready_by: str | None = None
    ready_at: datetime | None = None
    served_by: str | None = None
    served_at: datetime | None = None
    billed_by: str | None = None
    billed_at: datetime | None = None
    completed_by: str | None = None
    completed_at: datetime | None = None
    cancelled_by: str | None = None
    cancelled_at: datetime | None = None
    bill_requested: bool = False
    bill_requested_at: datetime | None = None
    rating: int | None = None
    rating_comment: str | None = None
    rated_at: datetime | None = None


class TransitionRequest(BaseModel):
    """
    Optional body for status actions.

    expected_status is the status the caller saw; when omitted the
    order's current status is used.
    """

    expected_status: OrderStatusLiteral | None = None


class EditItemQuantityRequest(BaseModel):
    """quantity 0 removes the line."""

    quantity: int = Field(ge=0, le=Limits.MAX_QUANTITY)
    expected_revision: int | None = None


class RatingRequest(BaseModel):
    rating: int = Field(ge=Limits.MIN_RATING, le=Limits.MAX_RATING)
    comment: str | None = Field(default=None, max_length=Limits.MAX_RATING_COMMENT_LENGTH)


# =============================================================================
# Waiter / Billing Summaries
# =============================================================================


class CustomerSummaryOutput(BaseModel):
    """Per-customer totals on the waiter dashboard."""

    customer_name: str
    order_count: int
    revenue_cents: int
    active_orders: int
    last_order_at: datetime | None = None


class CustomerBillOutput(BaseModel):
    """Cashier grouping: one customer's orders in the billing pipeline."""

    customer_name: str
    orders: list[OrderOutput]
    total_cents: int


class SettleFailure(BaseModel):
    order_id: str
    error: str


class SettleResultOutput(BaseModel):
    """Outcome of "bill and complete all" for one customer."""

    customer_name: str
    completed: list[str]
    skipped: list[str]
    failed: list[SettleFailure]
