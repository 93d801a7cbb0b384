"""
Centralized HTTP exceptions for consistent error handling.
Standardized HTTP status codes and user-facing messages.

Usage:
    from shared.utils.exceptions import NotFoundError, ForbiddenError, StaleOrderError

    raise OrderNotFoundError(order_id)
    raise InsufficientRoleError(["waiter"])
    raise StaleOrderError(order_id, expected="ready", actual="cancelled")
"""

from typing import Any

from fastapi import HTTPException, status

from shared.config.logging import get_logger

logger = get_logger(__name__)


class AppException(HTTPException):
    """
    Base exception with automatic logging.

    All custom exceptions should inherit from this class
    to ensure consistent logging and response format.
    """

    def __init__(
        self,
        status_code: int,
        detail: str,
        log_level: str = "warning",
        headers: dict[str, str] | None = None,
        **log_context: Any,
    ):
        log_fn = getattr(logger, log_level, logger.warning)
        log_fn(detail, status_code=status_code, **log_context)

        super().__init__(status_code=status_code, detail=detail, headers=headers)

    @property
    def message(self) -> str:
        """User-facing message."""
        return str(self.detail)


# =============================================================================
# 401 Unauthorized Errors
# =============================================================================


class AuthenticationError(AppException):
    """Missing or invalid session (401)."""

    def __init__(self, detail: str = "Please sign in to continue", **log_context: Any):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            log_level="warning",
            headers={"WWW-Authenticate": "Bearer"},
            **log_context,
        )


# =============================================================================
# 404 Not Found Errors
# =============================================================================


class NotFoundError(AppException):
    """
    Entity not found error (404).

    Usage:
        raise NotFoundError("Table", table_id)
    """

    def __init__(self, entity: str, entity_id: int | str | None = None, **log_context: Any):
        if entity_id is not None:
            detail = f"{entity} {entity_id} not found"
        else:
            detail = f"{entity} not found"

        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            log_level="warning",
            entity=entity,
            entity_id=entity_id,
            **log_context,
        )


class OrderNotFoundError(NotFoundError):
    """Order not found."""

    def __init__(self, order_id: str | None = None, **log_context: Any):
        super().__init__("Order", order_id, **log_context)


class TableNotFoundError(NotFoundError):
    """Dining table not found."""

    def __init__(self, table_ref: int | str | None = None, **log_context: Any):
        super().__init__("Table", table_ref, **log_context)


class MenuItemNotFoundError(NotFoundError):
    """Menu item not found."""

    def __init__(self, item_id: str | None = None, **log_context: Any):
        super().__init__("Menu item", item_id, **log_context)


# =============================================================================
# 403 Forbidden Errors
# =============================================================================


class ForbiddenError(AppException):
    """
    Authorization/permission error (403).

    Usage:
        raise ForbiddenError("cancel this order")
    """

    def __init__(self, action: str | None = None, **log_context: Any):
        if action:
            detail = f"Not allowed to {action}"
        else:
            detail = "Access denied"

        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
            log_level="warning",
            action=action,
            **log_context,
        )


class InsufficientRoleError(ForbiddenError):
    """User doesn't have the required role."""

    def __init__(self, required_roles: list[str] | frozenset[str], **log_context: Any):
        roles_str = ", ".join(sorted(required_roles))
        super().__init__(
            f"perform this action (requires role: {roles_str})",
            required_roles=sorted(required_roles),
            **log_context,
        )


class NotApprovedError(ForbiddenError):
    """Staff account exists but has not been approved yet."""

    def __init__(self, **log_context: Any):
        super().__init__("sign in until an administrator approves this account", **log_context)


class NotOrderOwnerError(ForbiddenError):
    """Customer acting on an order placed by someone else."""

    def __init__(self, order_id: str, **log_context: Any):
        super().__init__("act on an order placed by another customer", order_id=order_id, **log_context)


# =============================================================================
# 400 Bad Request Errors
# =============================================================================


class ValidationError(AppException):
    """
    Input validation error (400).

    Usage:
        raise ValidationError("Quantity must be positive", field="quantity", value=-1)
    """

    def __init__(self, detail: str, **log_context: Any):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            log_level="warning",
            **log_context,
        )


class InvalidStateError(ValidationError):
    """Entity is in an invalid state for the operation."""

    def __init__(self, entity: str, current_state: str, expected_states: list[str] | None = None, **log_context: Any):
        if expected_states:
            states_str = ", ".join(expected_states)
            detail = f"{entity} is '{current_state}', expected: {states_str}"
        else:
            detail = f"{entity} cannot be '{current_state}' for this operation"

        super().__init__(detail, entity=entity, current_state=current_state, **log_context)


class InvalidTransitionError(ValidationError):
    """Invalid status transition."""

    def __init__(self, entity: str, from_status: str, to_status: str, **log_context: Any):
        detail = f"Invalid transition from '{from_status}' to '{to_status}' for {entity}"
        super().__init__(detail, entity=entity, from_status=from_status, to_status=to_status, **log_context)


class EmptyCartError(ValidationError):
    """Order placement with no items."""

    def __init__(self, **log_context: Any):
        super().__init__("Add at least one item before placing an order", **log_context)


class ProductNotAvailableError(ValidationError):
    """Menu item hidden, out of stock, or deleted."""

    def __init__(self, item_id: str, **log_context: Any):
        self.item_id = item_id
        super().__init__(f"Menu item {item_id} is not available", item_id=item_id, **log_context)


class TableUnavailableError(ValidationError):
    """Table is not available for selection."""

    def __init__(self, table_number: int, current_status: str, **log_context: Any):
        super().__init__(
            f"Table {table_number} is {current_status}, please choose another table",
            table_number=table_number,
            current_status=current_status,
            **log_context,
        )


# =============================================================================
# 409 Conflict Errors
# =============================================================================


class ConflictError(AppException):
    """
    Resource conflict error (409).

    Usage:
        raise ConflictError("Email already registered")
    """

    def __init__(self, detail: str, **log_context: Any):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
            log_level="warning",
            **log_context,
        )


class StaleOrderError(ConflictError):
    """Conditional write lost against a concurrent change."""

    def __init__(self, order_id: str, expected: Any, actual: Any, **log_context: Any):
        self.order_id = order_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            "This order was changed by someone else. Please refresh, the action could not be completed",
            order_id=order_id,
            expected=expected,
            actual=actual,
            **log_context,
        )


class RatingAlreadySubmittedError(ConflictError):
    """Rating already present on the order."""

    def __init__(self, order_id: str, **log_context: Any):
        super().__init__(f"Order {order_id} has already been rated", order_id=order_id, **log_context)


class DuplicateEntityError(ConflictError):
    """Entity already exists."""

    def __init__(self, entity: str, identifier: str | None = None, **log_context: Any):
        if identifier:
            detail = f"{entity} '{identifier}' already exists"
        else:
            detail = f"{entity} already exists"

        super().__init__(detail, entity=entity, identifier=identifier, **log_context)


# =============================================================================
# 500 Internal Server Errors
# =============================================================================


class InternalError(AppException):
    """
    Internal server error (500).
    """

    def __init__(self, detail: str = "Internal server error", **log_context: Any):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            log_level="error",
            **log_context,
        )


class DatabaseError(InternalError):
    """Store write or read failed."""

    def __init__(self, operation: str, **log_context: Any):
        detail = f"Could not {operation}. Please try again."
        super().__init__(detail, operation=operation, **log_context)
