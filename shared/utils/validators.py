"""
Input validation helpers shared by schemas, services and views.
"""

import re

from shared.config.constants import Limits


def validate_quantity(
    quantity: int,
    min_val: int = Limits.MIN_QUANTITY,
    max_val: int = Limits.MAX_QUANTITY,
) -> int:
    """
    Validate quantity is within acceptable range.

    Raises:
        ValueError: If quantity is outside allowed range
    """
    if quantity < min_val:
        raise ValueError(f"Minimum quantity is {min_val}")
    if quantity > max_val:
        raise ValueError(f"Maximum quantity is {max_val}")
    return quantity


def validate_rating(rating: int) -> int:
    """
    Raises:
        ValueError: If rating is outside 1..5
    """
    if not Limits.MIN_RATING <= rating <= Limits.MAX_RATING:
        raise ValueError(f"Rating must be between {Limits.MIN_RATING} and {Limits.MAX_RATING}")
    return rating


def sanitize_search_term(term: str | None, max_length: int = Limits.MAX_SEARCH_TERM_LENGTH) -> str:
    """
    Sanitize a free-text search term.

    Args:
        term: The search term to sanitize
        max_length: Maximum allowed length

    Returns:
        Sanitized, lower-cased search term ("" matches everything)
    """
    if not term:
        return ""

    term = term.strip()

    if len(term) > max_length:
        term = term[:max_length]

    # Remove null bytes and other control characters
    term = re.sub(r"[\x00-\x1f\x7f-\x9f]", "", term)

    return term.lower()


def normalize_name(name: str | None) -> str:
    """Case- and whitespace-insensitive key for customer name matching."""
    return " ".join((name or "").split()).lower()
