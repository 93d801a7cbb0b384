"""
Common utilities shared across routers.
"""

from .board import BoardParams, get_board_params, list_board_orders, load_board, to_order_output

__all__ = [
    "BoardParams",
    "get_board_params",
    "list_board_orders",
    "load_board",
    "to_order_output",
]
