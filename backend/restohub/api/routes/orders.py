"""Order placement, lifecycle and queue routes."""

from typing import Optional

from fastapi import APIRouter, Query, Request, status

from restohub.core.rate_limit import READ_LIMIT, WRITE_LIMIT, limiter
from restohub.core.rbac import CurrentPrincipal, RequireCustomer, RequireKitchen, RequireStaff, RequireTill
from restohub.db.session import DbSession
from restohub.models.order import Order, OrderStatus
from restohub.schemas.order import (
    CustomerOrderCreate,
    OrderLineCreate,
    OrderResponse,
    OrderStatusUpdate,
    WalkInOrderCreate,
)
from restohub.schemas.pagination import ListResponse, PaginatedResponse
from restohub.services.inventory_ledger import LineRequest
from restohub.services.order_queries import load_order, project_order, project_orders
from restohub.services.order_service import OrderService


router = APIRouter()


def _lines(items: list[OrderLineCreate]) -> list[LineRequest]:
    return [LineRequest(menu_item_id=i.menu_item_id, quantity=i.quantity) for i in items]


def _respond(db: DbSession, order: Order) -> OrderResponse:
    return project_order(load_order(db, order.id))


# ==================== PLACEMENT ====================


@router.post("/walk-in", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(WRITE_LIMIT)
def create_walk_in_order(
    request: Request,
    body: WalkInOrderCreate,
    db: DbSession,
    current_user: RequireTill,
):
    """Ring up a walk-in order at the caller's branch."""
    order = OrderService(db).place_walk_in_order(
        current_user, _lines(body.items), customer_name=body.customer_name
    )
    return _respond(db, order)


@router.post("/customer", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(WRITE_LIMIT)
def create_customer_order(
    request: Request,
    body: CustomerOrderCreate,
    db: DbSession,
    current_user: RequireCustomer,
):
    """Place a self-service order for pickup at a branch."""
    order = OrderService(db).place_customer_order(
        current_user, body.branch_id, body.payment_method, _lines(body.items)
    )
    return _respond(db, order)


# ==================== QUEUES AND LISTS ====================


@router.get("/pending", response_model=ListResponse[OrderResponse])
@limiter.limit(READ_LIMIT)
def list_pending_orders(request: Request, db: DbSession, current_user: RequireTill):
    """Customer orders waiting for cashier confirmation, oldest first."""
    orders = OrderService(db).pending_orders(current_user)
    return ListResponse.of(project_orders(orders))


@router.get("/kitchen", response_model=ListResponse[OrderResponse])
@limiter.limit(READ_LIMIT)
def list_kitchen_orders(request: Request, db: DbSession, current_user: RequireKitchen):
    """Confirmed orders still in the kitchen, oldest first."""
    orders = OrderService(db).kitchen_orders(current_user)
    return ListResponse.of(project_orders(orders))


@router.get("/my-orders", response_model=ListResponse[OrderResponse])
@limiter.limit(READ_LIMIT)
def list_my_orders(request: Request, db: DbSession, current_user: RequireCustomer):
    orders = OrderService(db).customer_orders(current_user)
    return ListResponse.of(project_orders(orders))


@router.get("", response_model=PaginatedResponse[OrderResponse])
@limiter.limit(READ_LIMIT)
def list_orders(
    request: Request,
    db: DbSession,
    current_user: RequireStaff,
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
):
    """Orders visible to the caller's branch scope, newest first."""
    orders, total = OrderService(db).staff_orders(
        current_user, status=status_filter, skip=skip, limit=limit
    )
    return PaginatedResponse.create(project_orders(orders), total, skip, limit)


@router.get("/{order_id}", response_model=OrderResponse)
@limiter.limit(READ_LIMIT)
def get_order(request: Request, order_id: int, db: DbSession, current_user: CurrentPrincipal):
    return project_order(OrderService(db).get_order_for(current_user, order_id))


# ==================== LIFECYCLE ====================


@router.post("/{order_id}/confirm-payment", response_model=OrderResponse)
@limiter.limit(WRITE_LIMIT)
def confirm_payment(request: Request, order_id: int, db: DbSession, current_user: RequireCustomer):
    """Customer acknowledges payment for a pending order."""
    order = OrderService(db).confirm_payment_by_customer(current_user, order_id)
    return _respond(db, order)


@router.post("/{order_id}/cashier-confirm", response_model=OrderResponse)
@limiter.limit(WRITE_LIMIT)
def cashier_confirm(request: Request, order_id: int, db: DbSession, current_user: RequireTill):
    """Cashier accepts a pending customer order and sends it to the kitchen."""
    order = OrderService(db).cashier_confirm(current_user, order_id)
    return _respond(db, order)


@router.post("/{order_id}/update-status", response_model=OrderResponse)
@limiter.limit(WRITE_LIMIT)
def update_order_status(
    request: Request,
    order_id: int,
    body: OrderStatusUpdate,
    db: DbSession,
    current_user: RequireKitchen,
):
    """Kitchen moves an order of its branch forward."""
    order = OrderService(db).advance_kitchen_status(current_user, order_id, body.status)
    return _respond(db, order)


@router.post("/{order_id}/confirm-collection", response_model=OrderResponse)
@limiter.limit(WRITE_LIMIT)
def confirm_collection(
    request: Request, order_id: int, db: DbSession, current_user: RequireCustomer
):
    """Customer confirms pickup of a ready order."""
    order = OrderService(db).customer_confirm_collection(current_user, order_id)
    return _respond(db, order)
