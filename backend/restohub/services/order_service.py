"""Order aggregate: placement and role-gated status changes.

Two entry paths create orders:

- walk-in checkout by a cashier (or branch manager) at the till, written
  directly as COMPLETED because the customer is served on the spot;
- self-service customer orders, written as PENDING and then moved along
  by the cashier (confirm), the kitchen (preparing/ready) and finally the
  customer (collection).

Stock reservation and the order insert are one unit of work. Status
changes re-read the order inside the unit of work and are applied with a
compare-and-set, so a retried or concurrent request never skips a check.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple, Union

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from restohub.core.config import settings
from restohub.core.errors import (
    AlreadyProcessedError,
    ForbiddenError,
    NotFoundError,
    StaleStateError,
    ValidationError,
)
from restohub.core.rbac import Principal, UserRole
from restohub.db.session import run_in_transaction
from restohub.models.branch import Branch
from restohub.models.order import Order, OrderChannel, OrderLine, OrderStatus, PaymentMethod
from restohub.models.user import User
from restohub.services import order_queries
from restohub.services.branch_scope import require_home_branch, scope_for
from restohub.services.inventory_ledger import InventoryLedger, LineRequest, ReservedLine
from restohub.services.order_state_machine import (
    KITCHEN_TARGETS,
    compare_and_set,
    ensure_kitchen_move,
    transition,
)

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def _parse_payment_method(value: Union[str, PaymentMethod, None]) -> PaymentMethod:
    if value is None or value == "":
        raise ValidationError("Payment method is required", field="payment_method")
    try:
        return PaymentMethod(value)
    except ValueError:
        allowed = ", ".join(m.value for m in PaymentMethod)
        raise ValidationError(
            f"Invalid payment method '{value}'. Expected one of: {allowed}",
            field="payment_method",
        )


def _parse_status(value: Union[str, OrderStatus]) -> OrderStatus:
    try:
        status = OrderStatus(value)
    except ValueError:
        status = None
    if status not in KITCHEN_TARGETS:
        allowed = ", ".join(s.value for s in OrderStatus if s in KITCHEN_TARGETS)
        raise ValidationError(
            f"Invalid status '{value}'. Expected one of: {allowed}", field="status"
        )
    return status


class OrderService:
    """Order placement and lifecycle operations for one request/session."""

    def __init__(self, db: Session):
        self.db = db
        self.ledger = InventoryLedger(db)

    # ===== PLACEMENT =====

    def place_walk_in_order(
        self,
        cashier: Principal,
        lines: Iterable[LineRequest],
        customer_name: Optional[str] = None,
    ) -> Order:
        """Ring up a till order against the cashier's own branch."""
        branch_id = require_home_branch(self.db, cashier)
        lines = list(lines)

        def work() -> Order:
            reserved = self.ledger.reserve(branch_id, lines)
            return self._write_order(
                branch_id,
                reserved,
                customer_name=customer_name or settings.walk_in_customer_name,
                cashier_id=cashier.id,
                channel=OrderChannel.WALK_IN,
                status=OrderStatus.COMPLETED,
            )

        order = run_in_transaction(self.db, work)
        logger.info(
            f"Walk-in order {order.id} by cashier {cashier.id} at branch {branch_id}: "
            f"total {order.total_amount}"
        )
        return order

    def place_customer_order(
        self,
        customer: Principal,
        branch_id: int,
        payment_method: Union[str, PaymentMethod, None],
        lines: Iterable[LineRequest],
    ) -> Order:
        """Place a self-service order; it waits in PENDING for a cashier."""
        method = _parse_payment_method(payment_method)
        if branch_id is None:
            raise ValidationError("Branch selection is required", field="branch_id")
        if self.db.get(Branch, branch_id) is None:
            raise NotFoundError(f"Branch {branch_id} not found")

        display_name = (
            self.db.scalar(select(User.name).where(User.id == customer.id))
            or customer.name
            or settings.default_customer_name
        )
        lines = list(lines)

        def work() -> Order:
            reserved = self.ledger.reserve(branch_id, lines)
            return self._write_order(
                branch_id,
                reserved,
                customer_name=display_name,
                customer_id=customer.id,
                payment_method=method,
                channel=OrderChannel.CUSTOMER,
                status=OrderStatus.PENDING,
            )

        order = run_in_transaction(self.db, work)
        logger.info(
            f"Customer order {order.id} by user {customer.id} at branch {branch_id}: "
            f"total {order.total_amount}, payment {method.value}"
        )
        return order

    def _write_order(self, branch_id: int, reserved: List[ReservedLine], **fields) -> Order:
        total = sum((line.subtotal for line in reserved), Decimal("0")).quantize(CENT)
        order = Order(branch_id=branch_id, total_amount=total, **fields)
        order.lines = [
            OrderLine(
                position=position,
                menu_item_id=line.menu_item_id,
                quantity=line.quantity,
                unit_price=line.unit_price,
            )
            for position, line in enumerate(reserved)
        ]
        self.db.add(order)
        self.db.flush()
        return order

    # ===== STATUS CHANGES =====

    def confirm_payment_by_customer(self, customer: Principal, order_id: int) -> Order:
        """Acknowledge payment on a PENDING order; the status stays PENDING."""

        def work() -> Order:
            order = self._owned_order(customer, order_id)
            if order.status != OrderStatus.PENDING:
                raise AlreadyProcessedError(
                    "Order has already been processed", current_status=order.status.value
                )
            compare_and_set(
                self.db,
                order.id,
                OrderStatus.PENDING,
                OrderStatus.PENDING,
                payment_confirmed_at=func.coalesce(
                    Order.payment_confirmed_at, datetime.now(timezone.utc)
                ),
            )
            return order

        return run_in_transaction(self.db, work)

    def cashier_confirm(self, cashier: Principal, order_id: int) -> Order:
        """Accept a PENDING customer order for the kitchen and take ownership of it."""
        branch_id = require_home_branch(self.db, cashier)

        def work() -> Order:
            order = self._get_order(order_id)
            if order.branch_id != branch_id:
                raise ForbiddenError("You can only confirm orders for your branch")
            if order.status != OrderStatus.PENDING:
                raise AlreadyProcessedError(
                    "Order has already been processed", current_status=order.status.value
                )
            transition(self.db, order, OrderStatus.CONFIRMED, cashier_id=cashier.id)
            return order

        return run_in_transaction(self.db, work)

    def advance_kitchen_status(
        self,
        chef: Principal,
        order_id: int,
        target: Union[str, OrderStatus],
    ) -> Order:
        """Set an order's status from the kitchen.

        Any status not behind the current one is accepted; repeating the
        current status leaves the order unchanged.
        """
        target = _parse_status(target)
        branch_id = require_home_branch(self.db, chef)

        def work() -> Order:
            order = self._get_order(order_id)
            if order.branch_id != branch_id:
                raise ForbiddenError("You can only update orders for your branch")
            current = order.status
            if ensure_kitchen_move(order.id, current, target):
                compare_and_set(self.db, order.id, current, target)
                self.db.expire(order)
            return order

        return run_in_transaction(self.db, work)

    def customer_confirm_collection(self, customer: Principal, order_id: int) -> Order:
        """Customer picked the order up: READY -> COMPLETED."""

        def work() -> Order:
            order = self._owned_order(customer, order_id)
            if order.status == OrderStatus.COMPLETED:
                raise AlreadyProcessedError(
                    "Order has already been collected", current_status=order.status.value
                )
            if order.status != OrderStatus.READY:
                raise StaleStateError(
                    "Order is not ready for collection yet", current_status=order.status.value
                )
            transition(self.db, order, OrderStatus.COMPLETED)
            return order

        return run_in_transaction(self.db, work)

    # ===== READS =====

    def get_order_for(self, principal: Principal, order_id: int) -> Order:
        """One order, if the caller may see it."""
        if principal.role == UserRole.CUSTOMER:
            self._owned_order(principal, order_id)
        else:
            order = self._get_order(order_id)
            if not scope_for(self.db, principal).allows(order.branch_id):
                raise ForbiddenError("You can only view orders for your branch")
        return order_queries.load_order(self.db, order_id)

    def pending_orders(self, principal: Principal) -> List[Order]:
        return order_queries.pending_queue(self.db, scope_for(self.db, principal))

    def kitchen_orders(self, principal: Principal) -> List[Order]:
        return order_queries.kitchen_queue(self.db, scope_for(self.db, principal))

    def customer_orders(self, customer: Principal) -> List[Order]:
        return order_queries.customer_history(self.db, customer.id)

    def staff_orders(
        self,
        principal: Principal,
        status: Optional[OrderStatus] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> Tuple[List[Order], int]:
        scope = scope_for(self.db, principal)
        return order_queries.staff_orders(self.db, scope, status=status, skip=skip, limit=limit)

    # ===== HELPERS =====

    def _get_order(self, order_id: int) -> Order:
        order = self.db.get(Order, order_id, populate_existing=True)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")
        return order

    def _owned_order(self, customer: Principal, order_id: int) -> Order:
        order = self._get_order(order_id)
        if order.customer_id != customer.id:
            raise ForbiddenError("You are not authorized to access this order")
        return order
