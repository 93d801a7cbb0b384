"""
Tests for OrderService: placement, conditional transitions, edits,
bill requests, ratings and bulk settlement.
"""

import pytest

from shared.config.constants import Collections, OrderStatus, TableStatus
from shared.config.settings import Settings
from shared.utils.exceptions import (
    EmptyCartError,
    InsufficientRoleError,
    InvalidStateError,
    InvalidTransitionError,
    NotOrderOwnerError,
    OrderNotFoundError,
    ProductNotAvailableError,
    RatingAlreadySubmittedError,
    StaleOrderError,
    TableNotFoundError,
    ValidationError,
)
from rest_api.services.domain import OrderService, compute_total
from tests.conftest import advance, line


@pytest.fixture
def pending_order(service, customer, tables, menu):
    return service.place_customer_order(customer, 1, [line(menu["pizza"], 2), line(menu["soda"])])


class TestPlacement:
    """Creating orders from cart lines."""

    def test_customer_order_starts_pending(self, pending_order, customer):
        assert pending_order["status"] == OrderStatus.PENDING
        assert pending_order["customer_name"] == "Ann Smith"
        assert pending_order["customer_uid"] == customer.uid
        assert pending_order["placed_by"] == customer.uid
        assert pending_order["table_number"] == 1
        assert pending_order["revision"] == 1
        assert pending_order["confirmed_by"] is None

    def test_items_snapshot_name_and_price(self, pending_order):
        assert [(i["name"], i["price_cents"], i["quantity"]) for i in pending_order["items"]] == [
            ("Margherita Pizza", 1200, 2),
            ("Lemon Soda", 300, 1),
        ]
        assert pending_order["total_cents"] == 2 * 1200 + 300

    def test_total_matches_items(self, pending_order):
        assert pending_order["total_cents"] == compute_total(pending_order["items"])

    def test_menu_change_does_not_touch_existing_order(self, store, service, pending_order, menu):
        store.update(Collections.MENU_ITEMS, menu["pizza"]["id"], {"price_cents": 9999, "name": "Renamed"})

        order = service.get_order(pending_order["id"])
        assert order["items"][0]["name"] == "Margherita Pizza"
        assert order["total_cents"] == 2700

    def test_repeated_item_lines_are_merged(self, service, customer, tables, menu):
        order = service.place_customer_order(customer, 2, [line(menu["salad"]), line(menu["salad"], 2)])
        assert len(order["items"]) == 1
        assert order["items"][0]["quantity"] == 3

    def test_empty_cart_rejected(self, service, customer, tables):
        with pytest.raises(EmptyCartError):
            service.place_customer_order(customer, 1, [])

    def test_sold_out_item_rejected(self, service, customer, tables, menu):
        with pytest.raises(ProductNotAvailableError):
            service.place_customer_order(customer, 1, [line(menu["pizza"]), line(menu["soup"])])

    def test_hidden_item_rejected(self, store, service, customer, tables, menu):
        store.update(Collections.MENU_ITEMS, menu["soda"]["id"], {"is_visible": False})
        with pytest.raises(ProductNotAvailableError):
            service.place_customer_order(customer, 1, [line(menu["soda"])])

    def test_unknown_table_rejected(self, service, customer, tables, menu):
        with pytest.raises(TableNotFoundError):
            service.place_customer_order(customer, 99, [line(menu["pizza"])])

    def test_quantity_out_of_range_rejected(self, service, customer, tables, menu):
        with pytest.raises(ValidationError):
            service.place_customer_order(customer, 1, [line(menu["pizza"], 100)])

    @pytest.mark.parametrize("bad_line", [
        {"quantity": 1},
        {"menu_item_id": "x", "quantity": "lots"},
        {"menu_item_id": "x", "quantity": None},
        "pizza",
    ])
    def test_malformed_line_rejected(self, service, customer, tables, bad_line):
        with pytest.raises(ValidationError):
            service.place_customer_order(customer, 1, [bad_line])

    def test_staff_cannot_place_customer_order(self, service, chef, tables, menu):
        with pytest.raises(InsufficientRoleError):
            service.place_customer_order(chef, 1, [line(menu["pizza"])])

    def test_waiter_order_starts_confirmed(self, service, waiter, tables, menu):
        order = service.place_waiter_order(waiter, 3, "  Carla  ", [line(menu["pizza"])])

        assert order["status"] == OrderStatus.CONFIRMED
        assert order["customer_name"] == "Carla"
        assert order["customer_uid"] is None
        assert order["waiter_name"] == waiter.display_name
        assert order["confirmed_by"] == waiter.uid
        assert order["confirmed_at"] is not None

    def test_waiter_order_needs_customer_name(self, service, waiter, tables, menu):
        with pytest.raises(ValidationError):
            service.place_waiter_order(waiter, 3, "   ", [line(menu["pizza"])])


class TestTransitions:
    """Conditional status writes."""

    def test_full_lifecycle_records_audit_fields(self, service, pending_order, staff):
        order = advance(service, pending_order["id"], OrderStatus.COMPLETED, staff)

        assert order["status"] == OrderStatus.COMPLETED
        assert order["confirmed_by"] == staff["waiter"].uid
        assert order["prepared_by"] == staff["chef"].uid
        assert order["ready_by"] == staff["chef"].uid
        assert order["served_by"] == staff["waiter"].uid
        assert order["billed_by"] == staff["cashier"].uid
        assert order["completed_by"] == staff["cashier"].uid
        assert order["completed_at"] is not None
        assert order["updated_by"] == staff["cashier"].uid

    def test_each_write_bumps_revision(self, service, pending_order, waiter):
        confirmed = service.confirm(pending_order["id"], waiter)
        assert confirmed["revision"] == pending_order["revision"] + 1

    def test_unknown_order(self, service, waiter):
        with pytest.raises(OrderNotFoundError):
            service.confirm("no-such-order", waiter)

    def test_wrong_role_refused(self, service, pending_order, chef):
        with pytest.raises(InsufficientRoleError):
            service.confirm(pending_order["id"], chef)

    def test_skipping_a_step_refused(self, service, pending_order, staff):
        advance(service, pending_order["id"], OrderStatus.SERVED, staff)
        with pytest.raises(InvalidTransitionError):
            service.mark_complete(pending_order["id"], staff["cashier"])

    def test_same_target_is_a_no_op(self, service, pending_order, waiter):
        first = service.confirm(pending_order["id"], waiter)
        second = service.confirm(pending_order["id"], waiter)

        assert second["status"] == OrderStatus.CONFIRMED
        assert second["revision"] == first["revision"]

    def test_no_op_still_checks_role(self, service, pending_order, waiter, chef):
        service.confirm(pending_order["id"], waiter)
        with pytest.raises(InsufficientRoleError):
            service.confirm(pending_order["id"], chef)

    def test_stale_expected_status_refused(self, service, pending_order, waiter, customer):
        service.confirm(pending_order["id"], waiter)

        with pytest.raises(StaleOrderError):
            service.cancel(pending_order["id"], customer, expected_status=OrderStatus.PENDING)
        assert service.get_order(pending_order["id"])["status"] == OrderStatus.CONFIRMED

    def test_lost_race_raises_stale(self, store, service, pending_order, waiter, monkeypatch):
        """Another writer commits between the read and the conditional write."""
        real_compare_and_set = store.compare_and_set

        def racing(collection, document_id, expected, changes):
            store.update(Collections.ORDERS, document_id, {"status": OrderStatus.CANCELLED})
            return real_compare_and_set(collection, document_id, expected, changes)

        monkeypatch.setattr(store, "compare_and_set", racing)
        with pytest.raises(StaleOrderError):
            service.confirm(pending_order["id"], waiter)
        assert service.get_order(pending_order["id"])["status"] == OrderStatus.CANCELLED

    def test_lost_race_to_same_target_is_not_an_error(self, store, service, pending_order, waiter, monkeypatch):
        real_compare_and_set = store.compare_and_set

        def racing(collection, document_id, expected, changes):
            store.update(Collections.ORDERS, document_id, {"status": OrderStatus.CONFIRMED})
            return real_compare_and_set(collection, document_id, expected, changes)

        monkeypatch.setattr(store, "compare_and_set", racing)
        order = service.confirm(pending_order["id"], waiter)
        assert order["status"] == OrderStatus.CONFIRMED


class TestCancellation:
    def test_customer_cancels_pending(self, service, pending_order, customer):
        order = service.cancel(pending_order["id"], customer)
        assert order["status"] == OrderStatus.CANCELLED
        assert order["cancelled_by"] == customer.uid

    def test_customer_cannot_cancel_after_confirmation(self, service, pending_order, waiter, customer):
        service.confirm(pending_order["id"], waiter)
        with pytest.raises(InsufficientRoleError):
            service.cancel(pending_order["id"], customer)

    def test_other_customer_cannot_cancel(self, service, pending_order, other_customer):
        with pytest.raises(NotOrderOwnerError):
            service.cancel(pending_order["id"], other_customer)

    def test_waiter_cancels_until_ready(self, service, pending_order, staff):
        advance(service, pending_order["id"], OrderStatus.READY, staff)
        order = service.cancel(pending_order["id"], staff["waiter"])
        assert order["status"] == OrderStatus.CANCELLED

    def test_served_order_cannot_be_cancelled(self, service, pending_order, staff):
        advance(service, pending_order["id"], OrderStatus.SERVED, staff)
        with pytest.raises(InvalidTransitionError):
            service.cancel(pending_order["id"], staff["waiter"])


class TestEditItemQuantity:
    """Waiter edits on pending orders."""

    def test_change_quantity_recomputes_total(self, service, pending_order, waiter):
        order = service.edit_item_quantity(pending_order["id"], 0, 3, waiter)

        assert order["items"][0]["quantity"] == 3
        assert order["total_cents"] == 3 * 1200 + 300
        assert order["revision"] == pending_order["revision"] + 1
        assert order["status"] == OrderStatus.PENDING

    def test_zero_removes_line(self, service, pending_order, waiter):
        order = service.edit_item_quantity(pending_order["id"], 1, 0, waiter)
        assert [i["name"] for i in order["items"]] == ["Margherita Pizza"]
        assert order["total_cents"] == 2400

    def test_removing_last_line_cancels_order(self, service, pending_order, waiter):
        service.edit_item_quantity(pending_order["id"], 1, 0, waiter)
        order = service.edit_item_quantity(pending_order["id"], 0, 0, waiter)

        assert order["status"] == OrderStatus.CANCELLED
        assert order["items"] == []
        assert order["total_cents"] == 0
        assert order["cancelled_by"] == waiter.uid

    def test_only_pending_orders(self, service, pending_order, waiter):
        service.confirm(pending_order["id"], waiter)
        with pytest.raises(InvalidStateError):
            service.edit_item_quantity(pending_order["id"], 0, 1, waiter)

    def test_stale_revision_refused(self, service, pending_order, waiter):
        service.edit_item_quantity(pending_order["id"], 0, 3, waiter)
        with pytest.raises(StaleOrderError):
            service.edit_item_quantity(
                pending_order["id"], 0, 5, waiter, expected_revision=pending_order["revision"]
            )

    def test_bad_index(self, service, pending_order, waiter):
        with pytest.raises(ValidationError):
            service.edit_item_quantity(pending_order["id"], 5, 1, waiter)

    def test_only_waiters(self, service, pending_order, customer):
        with pytest.raises(InsufficientRoleError):
            service.edit_item_quantity(pending_order["id"], 0, 1, customer)


class TestBillRequestAndRating:
    def test_request_bill_on_served_order(self, service, pending_order, staff, customer):
        advance(service, pending_order["id"], OrderStatus.SERVED, staff)

        order = service.request_bill(pending_order["id"], customer)
        assert order["bill_requested"] is True
        assert order["bill_requested_at"] is not None
        assert order["status"] == OrderStatus.SERVED

    def test_request_bill_twice_is_a_no_op(self, service, pending_order, staff, customer):
        advance(service, pending_order["id"], OrderStatus.SERVED, staff)
        first = service.request_bill(pending_order["id"], customer)
        second = service.request_bill(pending_order["id"], customer)
        assert second["revision"] == first["revision"]

    def test_request_bill_before_serving_refused(self, service, pending_order, customer):
        with pytest.raises(InvalidStateError):
            service.request_bill(pending_order["id"], customer)

    def test_request_bill_for_someone_else_refused(self, service, pending_order, staff, other_customer):
        advance(service, pending_order["id"], OrderStatus.SERVED, staff)
        with pytest.raises(NotOrderOwnerError):
            service.request_bill(pending_order["id"], other_customer)

    def test_rate_completed_order_once(self, service, pending_order, staff, customer):
        advance(service, pending_order["id"], OrderStatus.COMPLETED, staff)

        order = service.submit_rating(pending_order["id"], customer, 5, "  Lovely  ")
        assert order["rating"] == 5
        assert order["rating_comment"] == "Lovely"
        assert order["rated_at"] is not None

        with pytest.raises(RatingAlreadySubmittedError):
            service.submit_rating(pending_order["id"], customer, 4)

    def test_rating_requires_completed(self, service, pending_order, staff, customer):
        advance(service, pending_order["id"], OrderStatus.BILLING, staff)
        with pytest.raises(InvalidStateError):
            service.submit_rating(pending_order["id"], customer, 4)

    @pytest.mark.parametrize("rating", [0, 6])
    def test_rating_range(self, service, pending_order, staff, customer, rating):
        advance(service, pending_order["id"], OrderStatus.COMPLETED, staff)
        with pytest.raises(ValidationError):
            service.submit_rating(pending_order["id"], customer, rating)


class TestSettleCustomer:
    """Cashier bulk 'bill and complete all'."""

    def test_settles_served_and_billing_orders_and_skips_kitchen(self, service, waiter, staff, tables, menu):
        served = service.place_waiter_order(waiter, 1, "Dana", [line(menu["pizza"])])
        billing = service.place_waiter_order(waiter, 1, "Dana", [line(menu["soda"])])
        cooking = service.place_waiter_order(waiter, 1, "Dana", [line(menu["salad"])])
        other = service.place_waiter_order(waiter, 2, "Eve", [line(menu["salad"])])
        advance(service, served["id"], OrderStatus.SERVED, staff)
        advance(service, billing["id"], OrderStatus.BILLING, staff)
        advance(service, cooking["id"], OrderStatus.PREPARING, staff)
        advance(service, other["id"], OrderStatus.SERVED, staff)

        result = service.settle_customer("Dana", staff["cashier"])

        assert result.ok
        assert sorted(result.completed) == sorted([served["id"], billing["id"]])
        assert result.skipped == [cooking["id"]]
        assert service.get_order(served["id"])["status"] == OrderStatus.COMPLETED
        assert service.get_order(served["id"])["billed_by"] == staff["cashier"].uid
        assert service.get_order(cooking["id"])["status"] == OrderStatus.PREPARING
        assert service.get_order(other["id"])["status"] == OrderStatus.SERVED

    def test_failure_on_one_order_does_not_stop_the_batch(self, store, service, waiter, staff, tables, menu, monkeypatch):
        first = service.place_waiter_order(waiter, 1, "Dana", [line(menu["pizza"])])
        second = service.place_waiter_order(waiter, 1, "Dana", [line(menu["soda"])])
        advance(service, first["id"], OrderStatus.SERVED, staff)
        advance(service, second["id"], OrderStatus.SERVED, staff)

        real_compare_and_set = store.compare_and_set

        def flaky(collection, document_id, expected, changes):
            if document_id == first["id"]:
                return False
            return real_compare_and_set(collection, document_id, expected, changes)

        monkeypatch.setattr(store, "compare_and_set", flaky)
        result = service.settle_customer("Dana", staff["cashier"])

        assert not result.ok
        assert [order_id for order_id, _ in result.failed] == [first["id"]]
        assert result.completed == [second["id"]]

    def test_matches_names_ignoring_case(self, service, customer, waiter, staff, tables, menu):
        """The same customer grouping the cashier board shows."""
        own = service.place_customer_order(customer, 1, [line(menu["pizza"])])
        for_them = service.place_waiter_order(waiter, 2, "  ann   SMITH ", [line(menu["soda"])])
        advance(service, own["id"], OrderStatus.SERVED, staff)
        advance(service, for_them["id"], OrderStatus.SERVED, staff)

        result = service.settle_customer("ann smith", staff["cashier"])

        assert result.ok
        assert sorted(result.completed) == sorted([own["id"], for_them["id"]])
        assert service.get_order(own["id"])["status"] == OrderStatus.COMPLETED
        assert service.get_order(for_them["id"])["status"] == OrderStatus.COMPLETED

    def test_only_cashiers(self, service, waiter):
        with pytest.raises(InsufficientRoleError):
            service.settle_customer("Dana", waiter)


class TestCounterSale:
    """Walk-in sales rung up by the cashier: no table, no kitchen."""

    def test_starts_in_billing_without_table(self, service, cashier, menu):
        order = service.place_counter_sale(cashier, "Walk-in", [line(menu["pizza"]), line(menu["soda"], 2)])

        assert order["table_number"] is None
        assert order["is_counter_sale"] is True
        assert order["status"] == OrderStatus.BILLING
        assert order["billed_by"] == cashier.uid
        assert order["total_cents"] == 1200 + 600
        assert order["placed_by"] == cashier.uid

    def test_cashier_completes_it(self, service, cashier, menu):
        order = service.place_counter_sale(cashier, "Walk-in", [line(menu["pizza"])])
        completed = service.mark_complete(order["id"], cashier)
        assert completed["status"] == OrderStatus.COMPLETED

    def test_only_cashiers(self, service, waiter, menu):
        with pytest.raises(InsufficientRoleError):
            service.place_counter_sale(waiter, "Walk-in", [line(menu["pizza"])])

    def test_needs_customer_name(self, service, cashier, menu):
        with pytest.raises(ValidationError):
            service.place_counter_sale(cashier, "  ", [line(menu["pizza"])])

    def test_rejects_empty_and_sold_out(self, service, cashier, menu):
        with pytest.raises(EmptyCartError):
            service.place_counter_sale(cashier, "Walk-in", [])
        with pytest.raises(ProductNotAvailableError):
            service.place_counter_sale(cashier, "Walk-in", [line(menu["soup"])])


class TestTableRelease:
    """Optional auto-release of a table when its last order completes."""

    @pytest.fixture
    def releasing_service(self, store):
        return OrderService(store, config=Settings(auto_release_table_on_complete=True))

    def _occupy(self, store, tables, number):
        table = next(t for t in tables if t["table_number"] == number)
        store.update(Collections.TABLES, table["id"], {"status": TableStatus.OCCUPIED})
        return table

    def test_disabled_by_default(self, store, service, waiter, staff, tables, menu):
        table = self._occupy(store, tables, 1)
        order = service.place_waiter_order(waiter, 1, "Dana", [line(menu["pizza"])])
        advance(service, order["id"], OrderStatus.COMPLETED, staff)

        assert store.get(Collections.TABLES, table["id"])["status"] == TableStatus.OCCUPIED

    def test_released_when_last_order_completes(self, store, releasing_service, waiter, staff, tables, menu):
        table = self._occupy(store, tables, 1)
        order = releasing_service.place_waiter_order(waiter, 1, "Dana", [line(menu["pizza"])])
        advance(releasing_service, order["id"], OrderStatus.COMPLETED, staff)

        assert store.get(Collections.TABLES, table["id"])["status"] == TableStatus.AVAILABLE

    def test_kept_while_other_orders_are_active(self, store, releasing_service, waiter, staff, tables, menu):
        table = self._occupy(store, tables, 1)
        done = releasing_service.place_waiter_order(waiter, 1, "Dana", [line(menu["pizza"])])
        releasing_service.place_waiter_order(waiter, 1, "Eve", [line(menu["soda"])])
        advance(releasing_service, done["id"], OrderStatus.COMPLETED, staff)

        assert store.get(Collections.TABLES, table["id"])["status"] == TableStatus.OCCUPIED
