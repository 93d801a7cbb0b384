"""
Tests for the role views: projections, cross-view agreement, actions
and the per-role dashboards.
"""

from datetime import datetime, timedelta, timezone

import pytest

from shared.config.constants import Collections, OrderStatus, Roles, TableStatus
from shared.utils.exceptions import InsufficientRoleError
from rest_api.services.cart import Cart
from rest_api.services.views import (
    Action,
    CashierView,
    ChefView,
    CustomerView,
    WaiterView,
    capabilities_for,
    matches_search,
    open_board,
    sort_orders,
    summarize_customers,
)
from tests.conftest import advance, line


@pytest.fixture
def boards(store, customer, waiter, chef, cashier):
    """One open board per role; closed after the test."""
    opened = {
        "customer": open_board(store, customer),
        "waiter": open_board(store, waiter),
        "chef": open_board(store, chef),
        "cashier": open_board(store, cashier),
    }
    yield opened
    for board in opened.values():
        board.close()


def ids(orders):
    return [o["id"] for o in orders]


def _order(order_id, status, minutes_ago, table_number=1, customer_name="Ann Smith", items=()):
    return {
        "id": order_id,
        "status": status,
        "table_number": table_number,
        "customer_name": customer_name,
        "items": [{"name": name} for name in items],
        "total_cents": 1000,
        "created_at": datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc) - timedelta(minutes=minutes_ago),
    }


class TestOpenBoard:
    def test_each_role_gets_its_view(self, boards):
        assert isinstance(boards["customer"], CustomerView)
        assert isinstance(boards["waiter"], WaiterView)
        assert isinstance(boards["chef"], ChefView)
        assert isinstance(boards["cashier"], CashierView)

    def test_admin_has_no_board(self, store, admin):
        with pytest.raises(InsufficientRoleError):
            open_board(store, admin)

    def test_close_releases_subscriptions(self, store, waiter):
        board = open_board(store, waiter)
        assert store.hub.subscription_count() == 2  # orders and tables
        board.close()
        assert store.hub.subscription_count() == 0
        assert not board.is_open


class TestCrossViewAgreement:
    """Every board reflects a committed write without refreshing."""

    def test_order_moves_through_every_view(self, boards, customer, tables, menu):
        cart = Cart()
        cart.add(menu["pizza"], 2)
        placed = boards["customer"].place_order(cart, 1)
        assert placed.ok
        order_id = placed.value["id"]
        assert cart.is_empty()

        assert ids(boards["customer"].orders) == [order_id]
        assert ids(boards["waiter"].orders) == [order_id]
        assert boards["chef"].orders == []
        assert boards["cashier"].orders == []

        assert boards["waiter"].confirm(order_id).ok
        assert boards["chef"].get(order_id)["status"] == OrderStatus.CONFIRMED
        assert boards["customer"].get(order_id)["status"] == OrderStatus.CONFIRMED
        assert boards["cashier"].get(order_id)["status"] == OrderStatus.CONFIRMED

        assert boards["chef"].start_preparing(order_id).ok
        assert boards["chef"].mark_ready(order_id).ok
        assert boards["waiter"].ready_to_serve() == {1: [boards["waiter"].get(order_id)]}

        assert boards["waiter"].serve(order_id).ok
        assert boards["customer"].request_bill(order_id).ok
        assert boards["cashier"].get(order_id)["bill_requested"] is True

        assert boards["cashier"].process_bill(order_id).ok
        assert boards["cashier"].mark_complete(order_id).ok

        assert boards["cashier"].orders == []
        assert boards["chef"].get(order_id)["status"] == OrderStatus.COMPLETED
        assert boards["customer"].rate(order_id, 5, "Lovely").ok
        assert boards["waiter"].get(order_id)["rating"] == 5

    def test_total_is_stable_along_the_kitchen_path(self, store, boards, customer, waiter):
        """Status changes never touch the items or the total."""
        store.create(Collections.TABLES, {"table_number": 5, "capacity": 2, "status": TableStatus.AVAILABLE})
        burger = store.create(Collections.MENU_ITEMS, {
            "name": "Burger", "price_cents": 1299, "category": "Mains", "available": True, "is_visible": True,
        })
        cart = Cart()
        cart.add(burger, 2)
        order_id = boards["customer"].place_order(cart, 5).value["id"]
        seen = boards["waiter"].get(order_id)
        assert seen["status"] == OrderStatus.PENDING
        assert seen["total_cents"] == 2598

        assert boards["waiter"].confirm(order_id).ok
        assert boards["waiter"].get(order_id)["total_cents"] == 2598
        assert boards["chef"].start_preparing(order_id).ok
        assert boards["waiter"].get(order_id)["total_cents"] == 2598
        assert boards["chef"].mark_ready(order_id).ok

        final = boards["waiter"].get(order_id)
        assert final["status"] == OrderStatus.READY
        assert final["total_cents"] == 2598
        assert final["items"] == seen["items"]

    def test_cancelled_order_leaves_kitchen_and_billing(self, boards, tables, menu):
        cart = Cart()
        cart.add(menu["salad"])
        order_id = boards["customer"].place_order(cart, 2).value["id"]
        boards["waiter"].confirm(order_id)
        assert boards["chef"].get(order_id) is not None

        assert boards["waiter"].cancel(order_id).ok

        assert boards["chef"].get(order_id) is None
        assert boards["cashier"].get(order_id) is None
        assert boards["customer"].get(order_id)["status"] == OrderStatus.CANCELLED

    def test_customer_sees_only_own_orders(self, store, boards, other_customer, tables, menu):
        bob_board = open_board(store, other_customer)
        try:
            cart = Cart()
            cart.add(menu["soda"])
            bob_board.place_order(cart, 3)
        finally:
            bob_board.close()

        assert boards["customer"].orders == []
        assert len(boards["waiter"].orders) == 1


class TestActions:
    def test_customer_cannot_cancel_confirmed_order(self, boards, tables, menu):
        cart = Cart()
        cart.add(menu["pizza"])
        order_id = boards["customer"].place_order(cart, 1).value["id"]
        boards["waiter"].confirm(order_id)

        result = boards["customer"].cancel(order_id)

        assert not result.ok
        assert result.error
        assert boards["customer"].get(order_id)["status"] == OrderStatus.CONFIRMED

    def test_role_without_action_is_refused(self, boards, tables, menu):
        cart = Cart()
        cart.add(menu["pizza"])
        order_id = boards["customer"].place_order(cart, 1).value["id"]

        result = boards["chef"].transition(Action.CONFIRM, order_id, OrderStatus.CONFIRMED)

        assert not result.ok
        assert "cannot confirm" in result.error

    def test_stale_board_reports_failure(self, store, customer, waiter, tables, menu):
        customer_board = open_board(store, customer)
        waiter_board = open_board(store, waiter)
        cart = Cart()
        cart.add(menu["pizza"])
        order_id = customer_board.place_order(cart, 1).value["id"]

        # The customer's board stops receiving updates, then the waiter confirms
        customer_board.close()
        waiter_board.confirm(order_id)

        result = customer_board.cancel(order_id)
        waiter_board.close()

        assert not result.ok
        assert store.get(Collections.ORDERS, order_id)["status"] == OrderStatus.CONFIRMED

    def test_duplicate_action_refused_while_in_flight(self, boards):
        board = boards["waiter"]
        inner = []

        def write():
            assert board.is_in_flight("order-1", Action.CONFIRM)
            inner.append(board.perform(Action.CONFIRM, "order-1", lambda: "second"))
            return "first"

        result = board.perform(Action.CONFIRM, "order-1", write)

        assert result.ok and result.value == "first"
        assert not inner[0].ok
        assert "already in progress" in inner[0].error
        assert not board.is_in_flight("order-1", Action.CONFIRM)

    def test_place_order_without_table(self, boards, menu):
        cart = Cart()
        cart.add(menu["pizza"])

        result = boards["customer"].place_order(cart, None)

        assert not result.ok
        assert len(cart) == 1

    def test_failed_placement_keeps_cart(self, store, boards, tables, menu):
        cart = Cart()
        cart.add(menu["pizza"])
        store.update(Collections.MENU_ITEMS, menu["pizza"]["id"], {"available": False})

        result = boards["customer"].place_order(cart, 1)

        assert not result.ok
        assert len(cart) == 1

    def test_waiter_order_starts_confirmed_and_reaches_kitchen(self, boards, tables, menu):
        result = boards["waiter"].place_order(2, "Walk-in Guest", [line(menu["pizza"])])

        assert result.ok
        assert result.value["status"] == OrderStatus.CONFIRMED
        assert ids(boards["chef"].queue()) == [result.value["id"]]

    def test_waiter_edits_pending_quantity(self, boards, tables, menu):
        cart = Cart()
        cart.add(menu["pizza"], 1)
        order_id = boards["customer"].place_order(cart, 1).value["id"]

        result = boards["waiter"].edit_quantity(order_id, 0, 3)

        assert result.ok
        assert boards["customer"].get(order_id)["total_cents"] == 3600

    def test_chef_toggles_availability(self, store, boards, menu):
        result = boards["chef"].toggle_availability(menu["salad"]["id"], False)

        assert result.ok
        assert store.get(Collections.MENU_ITEMS, menu["salad"]["id"])["available"] is False

    def test_waiter_sets_table_status(self, boards, tables):
        result = boards["waiter"].set_table_status(tables[0]["id"], TableStatus.OCCUPIED)

        assert result.ok
        assert boards["waiter"].tables[0]["status"] == TableStatus.OCCUPIED

    def test_malformed_line_is_reported_not_raised(self, boards, tables, menu):
        result = boards["waiter"].place_order(1, "Dana", [{"menu_item_id": menu["pizza"]["id"], "quantity": "two"}])
        assert not result.ok
        assert result.error

    def test_unexpected_value_error_is_reported(self, boards):
        def write():
            raise ValueError("bad input")

        result = boards["waiter"].perform(Action.CONFIRM, "order-1", write)

        assert not result.ok
        assert not boards["waiter"].is_in_flight("order-1", Action.CONFIRM)

    def test_table_list_follows_live_updates(self, store, boards, tables):
        board = boards["waiter"]
        assert [t["table_number"] for t in board.tables] == [1, 2, 3, 4]

        store.update(Collections.TABLES, tables[1]["id"], {"status": TableStatus.OCCUPIED})

        assert board.tables[1]["status"] == TableStatus.OCCUPIED
        board.tables.clear()
        assert len(board.tables) == 4

    def test_waiter_cannot_reserve(self, boards, tables):
        result = boards["waiter"].set_table_status(tables[0]["id"], TableStatus.RESERVED)
        assert not result.ok


class TestAvailableActions:
    def test_pending_order_per_role(self, boards, tables, menu):
        cart = Cart()
        cart.add(menu["pizza"])
        order = boards["customer"].place_order(cart, 1).value

        assert boards["customer"].available_actions(order) == {Action.CANCEL}
        assert boards["waiter"].available_actions(order) == {
            Action.CONFIRM, Action.CANCEL, Action.EDIT_QUANTITY,
        }

    def test_served_order_offers_bill_request(self, service, boards, staff, tables, menu):
        cart = Cart()
        cart.add(menu["pizza"])
        order_id = boards["customer"].place_order(cart, 1).value["id"]
        advance(service, order_id, OrderStatus.SERVED, staff)

        order = boards["customer"].get(order_id)
        assert boards["customer"].available_actions(order) == {Action.REQUEST_BILL}
        assert boards["cashier"].available_actions(order) == {Action.PROCESS_BILL}

    def test_completed_order_offers_rating_once(self, service, boards, staff, tables, menu):
        cart = Cart()
        cart.add(menu["pizza"])
        order_id = boards["customer"].place_order(cart, 1).value["id"]
        advance(service, order_id, OrderStatus.COMPLETED, staff)

        board = boards["customer"]
        assert board.available_actions(board.get(order_id)) == {Action.RATE}
        board.rate(order_id, 4)
        assert board.available_actions(board.get(order_id)) == frozenset()


class TestCashierView:
    def test_group_by_customer_and_settle(self, service, boards, customer, other_customer, staff, tables, menu):
        first = service.place_customer_order(customer, 1, [line(menu["pizza"])])
        second = service.place_customer_order(customer, 1, [line(menu["soda"], 2)])
        other = service.place_customer_order(other_customer, 2, [line(menu["salad"])])
        for order in (first, second, other):
            advance(service, order["id"], OrderStatus.SERVED, staff)

        bills = boards["cashier"].group_by_customer()
        assert [b.customer_name for b in bills] == ["Ann Smith", "Bob Jones"]
        assert bills[0].total_cents == 1200 + 600
        assert len(bills[0].orders) == 2

        result = boards["cashier"].settle_customer("Ann Smith")

        assert result.ok
        assert sorted(result.value.completed) == sorted([first["id"], second["id"]])
        assert [b.customer_name for b in boards["cashier"].group_by_customer()] == ["Bob Jones"]

    def test_settle_covers_the_whole_group(self, service, boards, customer, waiter, staff, tables, menu):
        own = service.place_customer_order(customer, 1, [line(menu["pizza"])])
        for_them = service.place_waiter_order(waiter, 2, "ann smith", [line(menu["soda"])])
        for order in (own, for_them):
            advance(service, order["id"], OrderStatus.SERVED, staff)

        bills = boards["cashier"].group_by_customer()
        assert len(bills) == 1
        assert len(bills[0].orders) == 2

        result = boards["cashier"].settle_customer(bills[0].customer_name)

        assert result.ok
        assert sorted(result.value.completed) == sorted([own["id"], for_them["id"]])
        assert boards["cashier"].group_by_customer() == []

    def test_billable(self, service, boards, staff, customer, tables, menu):
        served = service.place_customer_order(customer, 1, [line(menu["pizza"])])
        advance(service, served["id"], OrderStatus.SERVED, staff)
        cooking = service.place_customer_order(customer, 1, [line(menu["soda"])])
        advance(service, cooking["id"], OrderStatus.PREPARING, staff)

        assert ids(boards["cashier"].billable()) == [served["id"]]


class TestCounterSales:
    def test_only_the_cashier_board_shows_counter_sales(self, boards, menu):
        result = boards["cashier"].ring_up("Walk-in", [line(menu["pizza"])])

        assert result.ok
        order_id = result.value["id"]
        assert boards["cashier"].get(order_id)["is_counter_sale"] is True
        assert boards["waiter"].get(order_id) is None
        assert boards["chef"].get(order_id) is None

        assert boards["cashier"].mark_complete(order_id).ok
        assert boards["cashier"].get(order_id) is None

    def test_other_roles_cannot_ring_up(self, boards, menu):
        result = boards["waiter"].perform(Action.COUNTER_SALE, "walk-in", lambda: None)
        assert not result.ok

    def test_failed_sale_reports_message(self, boards, menu):
        result = boards["cashier"].ring_up("Walk-in", [line(menu["soup"])])
        assert not result.ok
        assert result.error


class TestWaiterDashboard:
    def test_customer_summaries(self, service, boards, customer, other_customer, staff, tables, menu):
        pending = service.place_customer_order(customer, 1, [line(menu["pizza"])])
        served = service.place_customer_order(customer, 1, [line(menu["salad"], 2)])
        advance(service, served["id"], OrderStatus.SERVED, staff)
        service.place_customer_order(other_customer, 2, [line(menu["soda"])])

        summaries = {s.customer_name: s for s in boards["waiter"].customer_summaries()}

        ann = summaries["Ann Smith"]
        assert ann.order_count == 2
        assert ann.revenue_cents == 1500
        assert ann.active_orders == 2
        assert summaries["Bob Jones"].revenue_cents == 0
        assert pending["id"] in ids(boards["waiter"].orders)

    def test_select_table_and_customer_filters(self, service, boards, customer, other_customer, tables, menu):
        service.place_customer_order(customer, 1, [line(menu["pizza"])])
        bob = service.place_customer_order(other_customer, 2, [line(menu["soda"])])
        board = boards["waiter"]

        board.select_table(2)
        assert ids(board.visible_orders()) == [bob["id"]]

        board.select_table(None)
        board.select_customer("  BOB   jones ")
        assert ids(board.visible_orders()) == [bob["id"]]


class TestSortingAndSearch:
    ORDERS = [
        _order("a", OrderStatus.READY, minutes_ago=5, table_number=3, items=["Pizza"]),
        _order("b", OrderStatus.PENDING, minutes_ago=1, table_number=1, customer_name="Bob Jones", items=["Soda"]),
        _order("c", OrderStatus.CONFIRMED, minutes_ago=10, table_number=None, items=["Salad"]),
    ]

    def test_newest_and_oldest(self):
        assert ids(sort_orders(self.ORDERS, "newest")) == ["b", "a", "c"]
        assert ids(sort_orders(self.ORDERS, "oldest")) == ["c", "a", "b"]

    def test_by_status_follows_lifecycle(self):
        assert ids(sort_orders(self.ORDERS, "status")) == ["b", "c", "a"]

    def test_by_table_puts_missing_tables_last(self):
        assert ids(sort_orders(self.ORDERS, "table")) == ["b", "a", "c"]

    def test_search_matches_customer_item_and_table(self):
        assert matches_search(self.ORDERS[1], "bob")
        assert matches_search(self.ORDERS[0], "pizz")
        assert matches_search(self.ORDERS[0], "3")
        assert not matches_search(self.ORDERS[0], "soda")
        assert matches_search(self.ORDERS[0], "")

    def test_board_rejects_unknown_sort_and_status(self, boards):
        with pytest.raises(ValueError):
            boards["waiter"].set_sort("price")
        with pytest.raises(ValueError):
            boards["waiter"].set_status_filter("lost")

    def test_summaries_sorted_by_latest_order(self):
        summaries = summarize_customers(self.ORDERS)
        assert [s.customer_name for s in summaries] == ["Bob Jones", "Ann Smith"]
        assert summaries[1].order_count == 2


class TestCapabilities:
    def test_admin_has_no_capabilities(self):
        with pytest.raises(InsufficientRoleError):
            capabilities_for(Roles.ADMIN)

    def test_chef_predicate_hides_pending_and_cancelled(self, chef):
        caps = capabilities_for(Roles.CHEF)
        assert not caps.predicate(_order("x", OrderStatus.PENDING, 0), chef)
        assert not caps.predicate(_order("x", OrderStatus.CANCELLED, 0), chef)
        assert caps.predicate(_order("x", OrderStatus.SERVED, 0), chef)
