"""Role-specific order views and the order projection.

Every branch-bound view is filtered through ``BranchScope``; the customer
history is filtered by ownership instead.
"""

from typing import List, Optional, Tuple

from sqlalchemy.orm import Query, Session, selectinload

from restohub.core.config import settings
from restohub.models.order import Order, OrderLine, OrderStatus
from restohub.schemas.order import OrderLineResponse, OrderResponse
from restohub.services.branch_scope import BranchScope
from restohub.services.order_state_machine import KITCHEN_QUEUE_STATUSES


def _base_query(db: Session) -> Query:
    return db.query(Order).options(
        selectinload(Order.lines).selectinload(OrderLine.menu_item),
        selectinload(Order.branch),
        selectinload(Order.customer),
        selectinload(Order.cashier),
    )


def _oldest_first(query: Query) -> Query:
    return query.order_by(Order.created_at.asc(), Order.id.asc())


def _newest_first(query: Query) -> Query:
    return query.order_by(Order.created_at.desc(), Order.id.desc())


def load_order(db: Session, order_id: int) -> Optional[Order]:
    """Fetch one order with everything the projection needs."""
    return _base_query(db).filter(Order.id == order_id).populate_existing().first()


def pending_queue(db: Session, scope: BranchScope) -> List[Order]:
    """Customer orders awaiting cashier confirmation, oldest first."""
    query = _base_query(db).filter(
        Order.status == OrderStatus.PENDING,
        Order.customer_id.is_not(None),
    )
    return _oldest_first(scope.apply(query, Order.branch_id)).all()


def kitchen_queue(db: Session, scope: BranchScope) -> List[Order]:
    """Confirmed orders the kitchen still has to finish or hand over, oldest first."""
    query = _base_query(db).filter(Order.status.in_(KITCHEN_QUEUE_STATUSES))
    return _oldest_first(scope.apply(query, Order.branch_id)).all()


def customer_history(db: Session, customer_id: int) -> List[Order]:
    """All orders placed by one customer, newest first."""
    query = _base_query(db).filter(Order.customer_id == customer_id)
    return _newest_first(query).all()


def staff_orders(
    db: Session,
    scope: BranchScope,
    status: Optional[OrderStatus] = None,
    skip: int = 0,
    limit: int = 50,
) -> Tuple[List[Order], int]:
    """Orders visible to a staff member, newest first, with the total count."""
    query = scope.apply(_base_query(db), Order.branch_id)
    if status is not None:
        query = query.filter(Order.status == status)
    total = query.count()
    page = _newest_first(query).offset(skip).limit(limit).all()
    return page, total


def project_order(order: Order) -> OrderResponse:
    """Build the response view of an order."""
    customer_name = order.customer_name
    if not customer_name and order.customer is not None:
        customer_name = order.customer.name
    return OrderResponse(
        id=order.id,
        branch_id=order.branch_id,
        branch_name=order.branch.name if order.branch else None,
        customer_id=order.customer_id,
        customer_name=customer_name or settings.default_customer_name,
        cashier_id=order.cashier_id,
        cashier_name=order.cashier.name if order.cashier else None,
        channel=order.channel,
        payment_method=order.payment_method,
        status=order.status,
        total_amount=order.total_amount,
        payment_confirmed_at=order.payment_confirmed_at,
        created_at=order.created_at,
        lines=[
            OrderLineResponse(
                menu_item_id=line.menu_item_id,
                name=line.menu_item.name if line.menu_item else f"Item {line.menu_item_id}",
                quantity=line.quantity,
                unit_price=line.unit_price,
                subtotal=line.subtotal,
            )
            for line in order.lines
        ],
    )


def project_orders(orders: List[Order]) -> List[OrderResponse]:
    return [project_order(order) for order in orders]
