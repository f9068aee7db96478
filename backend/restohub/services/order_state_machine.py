"""Order status lifecycle.

    PENDING -> CONFIRMED -> PREPARING -> READY -> COMPLETED

Only forward moves exist and COMPLETED is terminal. The table below governs
the cashier and collection paths. Kitchen updates are looser: any status
not behind the current one may be named, including PENDING -> CONFIRMED,
and naming the current status is a no-op.

Transitions are applied as a compare-and-set on the status column so two
concurrent updates cannot both succeed from the same starting state.
"""

import logging
from typing import Any, Dict, FrozenSet

from sqlalchemy.orm import Session

from restohub.core.errors import AlreadyProcessedError, StaleStateError
from restohub.models.order import Order, OrderStatus

logger = logging.getLogger(__name__)

ORDER_STATUS_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PREPARING, OrderStatus.READY, OrderStatus.COMPLETED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.READY, OrderStatus.COMPLETED}),
    OrderStatus.READY: frozenset({OrderStatus.COMPLETED}),
    OrderStatus.COMPLETED: frozenset(),
}

# Targets a kitchen update may name; see ensure_kitchen_move
KITCHEN_TARGETS: FrozenSet[OrderStatus] = frozenset({
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.COMPLETED,
})

# Statuses shown on the kitchen display
KITCHEN_QUEUE_STATUSES: FrozenSet[OrderStatus] = frozenset({
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
})

_RANK = {status: position for position, status in enumerate(OrderStatus)}


def rank(status: OrderStatus) -> int:
    """Position of ``status`` in the lifecycle."""
    return _RANK[status]


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in ORDER_STATUS_TRANSITIONS[current]


def ensure_transition(order_id: int, current: OrderStatus, target: OrderStatus) -> None:
    """Raise unless ``current -> target`` is a legal move."""
    if can_transition(current, target):
        return
    if current == OrderStatus.COMPLETED or rank(target) <= rank(current):
        raise AlreadyProcessedError(
            f"Order {order_id} is already {current.value}; cannot move to {target.value}",
            current_status=current.value,
        )
    raise StaleStateError(
        f"Order {order_id} cannot move from {current.value} to {target.value}",
        current_status=current.value,
    )


def ensure_kitchen_move(order_id: int, current: OrderStatus, target: OrderStatus) -> bool:
    """Check a kitchen update, which may name any status not behind the current one.

    Returns False when ``target`` equals ``current`` (nothing to write).
    """
    if rank(target) < rank(current):
        raise AlreadyProcessedError(
            f"Order {order_id} is already {current.value}; cannot move back to {target.value}",
            current_status=current.value,
        )
    return target != current


def compare_and_set(
    db: Session,
    order_id: int,
    expected: OrderStatus,
    target: OrderStatus,
    **values: Any,
) -> None:
    """Write ``target`` only if the row still holds ``expected``.

    ``values`` are extra columns set in the same statement. Zero affected
    rows means someone else moved the order first; that is reported as
    ``StaleStateError`` and never retried here.
    """
    rows = (
        db.query(Order)
        .filter(Order.id == order_id, Order.status == expected)
        .update({Order.status: target, **{getattr(Order, k): v for k, v in values.items()}},
                synchronize_session=False)
    )
    if rows != 1:
        raise StaleStateError(
            f"Order {order_id} changed concurrently; expected {expected.value}"
        )
    logger.info(f"Order {order_id}: {expected.value} -> {target.value}")


def transition(db: Session, order: Order, target: OrderStatus, **values: Any) -> None:
    """Validate and apply ``order.status -> target``, then refresh ``order``."""
    ensure_transition(order.id, order.status, target)
    compare_and_set(db, order.id, order.status, target, **values)
    db.expire(order)
