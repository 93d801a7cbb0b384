"""
Kitchen view: confirmed work through to ready, plus stock toggles.
"""

from __future__ import annotations

from typing import Any

from shared.config.constants import OrderStatus

from .board import ActionResult, OrderBoard
from .capabilities import Action


class ChefView(OrderBoard):
    """Orders past confirmation that have a table, excluding cancelled."""

    def queue(self) -> list[dict[str, Any]]:
        """Orders the kitchen still has to act on, oldest first."""
        return sorted(
            (o for o in self.orders if o["status"] in (OrderStatus.CONFIRMED, OrderStatus.PREPARING)),
            key=lambda o: o["created_at"],
        )

    def start_preparing(self, order_id: str) -> ActionResult:
        return self.transition(Action.START_PREPARING, order_id, OrderStatus.PREPARING)

    def mark_ready(self, order_id: str) -> ActionResult:
        return self.transition(Action.MARK_READY, order_id, OrderStatus.READY)

    def toggle_availability(self, item_id: str, available: bool) -> ActionResult:
        return self.perform(
            Action.TOGGLE_AVAILABILITY,
            item_id,
            lambda: self.menu_service.set_availability(item_id, available, self.identity),
        )

