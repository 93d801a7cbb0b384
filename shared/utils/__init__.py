"""
Utilities module: Exceptions and validators.
"""

from shared.utils.exceptions import (
    AppException,
    NotFoundError,
    ForbiddenError,
    ValidationError,
    ConflictError,
    StaleOrderError,
)
from shared.utils.validators import (
    normalize_name,
    sanitize_search_term,
    validate_quantity,
    validate_rating,
)

__all__ = [
    # exceptions
    "AppException",
    "NotFoundError",
    "ForbiddenError",
    "ValidationError",
    "ConflictError",
    "StaleOrderError",
    # validators
    "normalize_name",
    "sanitize_search_term",
    "validate_quantity",
    "validate_rating",
]
