"""Tests for order placement and the role-gated lifecycle."""

from decimal import Decimal

import pytest

from restohub.core.errors import (
    AlreadyProcessedError,
    ForbiddenError,
    NoBranchAssignedError,
    NotFoundError,
    StaleStateError,
    ValidationError,
)
from restohub.models.order import OrderChannel, OrderStatus, PaymentMethod
from restohub.services.inventory_ledger import LineRequest
from restohub.services.order_service import OrderService

from conftest import principal, stock_of


@pytest.fixture
def service(db_session):
    return OrderService(db_session)


@pytest.fixture
def pending_order(service, world):
    return service.place_customer_order(
        principal(world["customer"]),
        world["downtown"].id,
        PaymentMethod.CREDIT_CARD,
        [LineRequest(world["burger"].id, 2)],
    )


class TestEndToEnd:

    def test_customer_order_full_lifecycle(self, db_session, service, world):
        customer = principal(world["customer"])
        burger = world["burger"]

        order = service.place_customer_order(
            customer, world["downtown"].id, "CASH", [LineRequest(burger.id, 2)]
        )
        assert order.status == OrderStatus.PENDING
        assert order.channel == OrderChannel.CUSTOMER
        assert order.total_amount == Decimal("24.00")
        assert order.customer_name == "Cara Customer"
        assert stock_of(db_session, burger) == 3

        order = service.cashier_confirm(principal(world["cashier1"]), order.id)
        assert order.status == OrderStatus.CONFIRMED
        assert order.cashier_id == world["cashier1"].id

        chef = principal(world["chef1"])
        assert service.advance_kitchen_status(chef, order.id, "PREPARING").status == OrderStatus.PREPARING
        assert service.advance_kitchen_status(chef, order.id, OrderStatus.READY).status == OrderStatus.READY

        order = service.customer_confirm_collection(customer, order.id)
        assert order.status == OrderStatus.COMPLETED

        with pytest.raises(AlreadyProcessedError):
            service.customer_confirm_collection(customer, order.id)


class TestWalkIn:

    def test_walk_in_is_completed_at_cashier_branch(self, db_session, service, world):
        order = service.place_walk_in_order(
            principal(world["cashier1"]),
            [LineRequest(world["burger"].id, 1), LineRequest(world["fries"].id, 2)],
        )

        assert order.status == OrderStatus.COMPLETED
        assert order.channel == OrderChannel.WALK_IN
        assert order.branch_id == world["downtown"].id
        assert order.cashier_id == world["cashier1"].id
        assert order.customer_id is None
        assert order.customer_name == "Walk-in Customer"
        assert order.total_amount == Decimal("21.00")
        assert [line.position for line in order.lines] == [0, 1]

    def test_walk_in_keeps_given_customer_name(self, service, world):
        order = service.place_walk_in_order(
            principal(world["cashier1"]), [LineRequest(world["fries"].id, 1)], customer_name="Dana"
        )
        assert order.customer_name == "Dana"

    def test_branch_manager_can_ring_up(self, service, world):
        order = service.place_walk_in_order(
            principal(world["bm2"]), [LineRequest(world["salad"].id, 1)]
        )
        assert order.branch_id == world["uptown"].id

    def test_unassigned_cashier_cannot_sell(self, service, world):
        with pytest.raises(NoBranchAssignedError):
            service.place_walk_in_order(
                principal(world["cashier_unassigned"]), [LineRequest(world["fries"].id, 1)]
            )

    def test_walk_in_never_enters_queues(self, service, world):
        service.place_walk_in_order(principal(world["cashier1"]), [LineRequest(world["fries"].id, 1)])
        assert service.pending_orders(principal(world["cashier1"])) == []
        assert service.kitchen_orders(principal(world["chef1"])) == []


class TestCustomerPlacement:

    def test_invalid_payment_method(self, service, world):
        with pytest.raises(ValidationError) as exc_info:
            service.place_customer_order(
                principal(world["customer"]), world["downtown"].id, "BITCOIN",
                [LineRequest(world["burger"].id, 1)],
            )
        assert exc_info.value.extra["field"] == "payment_method"

    def test_missing_payment_method(self, service, world):
        with pytest.raises(ValidationError):
            service.place_customer_order(
                principal(world["customer"]), world["downtown"].id, None,
                [LineRequest(world["burger"].id, 1)],
            )

    def test_unknown_branch(self, service, world):
        with pytest.raises(NotFoundError):
            service.place_customer_order(
                principal(world["customer"]), 9999, "CASH", [LineRequest(world["burger"].id, 1)]
            )


class TestPaymentConfirmation:

    def test_sets_timestamp_and_keeps_pending(self, service, world, pending_order):
        order = service.confirm_payment_by_customer(principal(world["customer"]), pending_order.id)
        assert order.status == OrderStatus.PENDING
        first = order.payment_confirmed_at
        assert first is not None

        again = service.confirm_payment_by_customer(principal(world["customer"]), pending_order.id)
        assert again.payment_confirmed_at == first

    def test_other_customer_forbidden(self, service, world, pending_order):
        with pytest.raises(ForbiddenError):
            service.confirm_payment_by_customer(principal(world["customer2"]), pending_order.id)

    def test_after_cashier_confirm_is_already_processed(self, service, world, pending_order):
        service.cashier_confirm(principal(world["cashier1"]), pending_order.id)
        with pytest.raises(AlreadyProcessedError):
            service.confirm_payment_by_customer(principal(world["customer"]), pending_order.id)

    def test_unknown_order(self, service, world):
        with pytest.raises(NotFoundError):
            service.confirm_payment_by_customer(principal(world["customer"]), 9999)


class TestCashierConfirm:

    def test_other_branch_forbidden(self, service, world, pending_order):
        with pytest.raises(ForbiddenError):
            service.cashier_confirm(principal(world["cashier2"]), pending_order.id)

    def test_branch_manager_may_confirm(self, service, world, pending_order):
        order = service.cashier_confirm(principal(world["bm1"]), pending_order.id)
        assert order.cashier_id == world["bm1"].id

    def test_double_confirm_is_already_processed(self, service, world, pending_order):
        service.cashier_confirm(principal(world["cashier1"]), pending_order.id)
        with pytest.raises(AlreadyProcessedError):
            service.cashier_confirm(principal(world["cashier1"]), pending_order.id)


class TestKitchen:

    def test_chef_can_confirm_pending_order(self, service, world, pending_order):
        order = service.advance_kitchen_status(principal(world["chef1"]), pending_order.id, "CONFIRMED")
        assert order.status == OrderStatus.CONFIRMED
        assert order.cashier_id is None

    def test_chef_can_start_pending_order(self, service, world, pending_order):
        order = service.advance_kitchen_status(principal(world["chef1"]), pending_order.id, "PREPARING")
        assert order.status == OrderStatus.PREPARING

    def test_same_status_returns_order_unchanged(self, service, world, pending_order):
        chef = principal(world["chef1"])
        service.cashier_confirm(principal(world["cashier1"]), pending_order.id)
        first = service.advance_kitchen_status(chef, pending_order.id, "PREPARING")
        updated_at = first.updated_at

        again = service.advance_kitchen_status(chef, pending_order.id, "PREPARING")
        assert again.status == OrderStatus.PREPARING
        assert again.updated_at == updated_at

    def test_pending_is_not_a_kitchen_target(self, service, world, pending_order):
        with pytest.raises(ValidationError):
            service.advance_kitchen_status(principal(world["chef1"]), pending_order.id, "PENDING")

    def test_unknown_status_value(self, service, world, pending_order):
        with pytest.raises(ValidationError):
            service.advance_kitchen_status(principal(world["chef1"]), pending_order.id, "COOKING")

    def test_other_branch_chef_forbidden(self, service, world, pending_order):
        service.cashier_confirm(principal(world["cashier1"]), pending_order.id)
        with pytest.raises(ForbiddenError):
            service.advance_kitchen_status(principal(world["chef2"]), pending_order.id, "PREPARING")

    def test_ready_cannot_go_back(self, service, world, pending_order):
        chef = principal(world["chef1"])
        service.cashier_confirm(principal(world["cashier1"]), pending_order.id)
        service.advance_kitchen_status(chef, pending_order.id, "READY")

        with pytest.raises(AlreadyProcessedError) as exc_info:
            service.advance_kitchen_status(chef, pending_order.id, "CONFIRMED")
        assert exc_info.value.extra["current_status"] == "READY"

    def test_kitchen_queue_tracks_confirmed_work(self, service, world, pending_order):
        chef = principal(world["chef1"])
        assert service.kitchen_orders(chef) == []

        service.cashier_confirm(principal(world["cashier1"]), pending_order.id)
        assert [o.id for o in service.kitchen_orders(chef)] == [pending_order.id]

        service.advance_kitchen_status(chef, pending_order.id, "COMPLETED")
        assert service.kitchen_orders(chef) == []


class TestCollection:

    def test_not_ready_is_stale(self, service, world, pending_order):
        with pytest.raises(StaleStateError) as exc_info:
            service.customer_confirm_collection(principal(world["customer"]), pending_order.id)
        assert not isinstance(exc_info.value, AlreadyProcessedError)

    def test_other_customer_forbidden(self, service, world, pending_order):
        with pytest.raises(ForbiddenError):
            service.customer_confirm_collection(principal(world["customer2"]), pending_order.id)


class TestReads:

    def test_customer_history_newest_first(self, service, world):
        customer = principal(world["customer"])
        first = service.place_customer_order(
            customer, world["downtown"].id, "CASH", [LineRequest(world["fries"].id, 1)]
        )
        second = service.place_customer_order(
            customer, world["uptown"].id, "CASH", [LineRequest(world["salad"].id, 1)]
        )
        assert [o.id for o in service.customer_orders(customer)] == [second.id, first.id]
        assert service.customer_orders(principal(world["customer2"])) == []

    def test_staff_list_filters_and_pages(self, service, world):
        cashier = principal(world["cashier1"])
        for _ in range(3):
            service.place_walk_in_order(cashier, [LineRequest(world["fries"].id, 1)])
        service.place_customer_order(
            principal(world["customer"]), world["downtown"].id, "CASH",
            [LineRequest(world["fries"].id, 1)],
        )

        page, total = service.staff_orders(cashier, skip=0, limit=2)
        assert total == 4
        assert len(page) == 2

        completed, total = service.staff_orders(cashier, status=OrderStatus.COMPLETED)
        assert total == 3
        assert all(o.status == OrderStatus.COMPLETED for o in completed)

        _, uptown_total = service.staff_orders(principal(world["cashier2"]))
        assert uptown_total == 0

    def test_get_order_visibility(self, service, world, pending_order):
        assert service.get_order_for(principal(world["customer"]), pending_order.id).id == pending_order.id
        assert service.get_order_for(principal(world["hq"]), pending_order.id).id == pending_order.id
        assert service.get_order_for(principal(world["chef1"]), pending_order.id).id == pending_order.id

        with pytest.raises(ForbiddenError):
            service.get_order_for(principal(world["customer2"]), pending_order.id)
        with pytest.raises(ForbiddenError):
            service.get_order_for(principal(world["cashier2"]), pending_order.id)
