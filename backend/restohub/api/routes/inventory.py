"""Menu item inventory routes, branch-scoped."""

import logging
from typing import Optional

from fastapi import APIRouter, Query, Request, Response, status

from restohub.core.errors import ForbiddenError, NotFoundError, ValidationError
from restohub.core.rate_limit import READ_LIMIT, WRITE_LIMIT, limiter
from restohub.core.rbac import Principal, RequireManagement, RequireStaff, UserRole
from restohub.db.session import DbSession, run_in_transaction
from restohub.models.branch import Branch
from restohub.models.menu_item import MenuItem
from restohub.schemas.inventory import (
    MenuItemCreate,
    MenuItemResponse,
    MenuItemUpdate,
    RestockRequest,
    RestockResponse,
)
from restohub.schemas.pagination import PaginatedResponse
from restohub.services.branch_scope import require_home_branch, scope_for
from restohub.services.inventory_ledger import InventoryLedger

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_item(db: DbSession, principal: Principal, item_id: int) -> MenuItem:
    item = (
        db.query(MenuItem)
        .filter(MenuItem.id == item_id, MenuItem.not_deleted())
        .first()
    )
    if item is None:
        raise NotFoundError(f"Menu item {item_id} not found")
    if not scope_for(db, principal).allows(item.branch_id):
        raise ForbiddenError("You can only manage inventory for your branch")
    return item


@router.get("", response_model=PaginatedResponse[MenuItemResponse])
@limiter.limit(READ_LIMIT)
def list_menu_items(
    request: Request,
    db: DbSession,
    current_user: RequireStaff,
    branch_id: Optional[int] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
):
    """List menu items in the caller's scope.

    Headquarters roles may narrow to one branch with ``branch_id``; for
    everyone else the filter is their own branch regardless.
    """
    scope = scope_for(db, current_user)
    query = scope.apply(db.query(MenuItem).filter(MenuItem.not_deleted()), MenuItem.branch_id)
    if scope.is_all and branch_id is not None:
        query = query.filter(MenuItem.branch_id == branch_id)

    total = query.count()
    items = query.order_by(MenuItem.name.asc(), MenuItem.id.asc()).offset(skip).limit(limit).all()
    return PaginatedResponse.create(
        [MenuItemResponse.model_validate(i) for i in items], total, skip, limit
    )


@router.post("", response_model=MenuItemResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(WRITE_LIMIT)
def create_menu_item(
    request: Request,
    body: MenuItemCreate,
    db: DbSession,
    current_user: RequireManagement,
):
    if current_user.role == UserRole.BRANCH_MANAGER:
        branch_id = require_home_branch(db, current_user)
    elif body.branch_id is None:
        raise ValidationError("branch_id is required", field="branch_id")
    else:
        branch_id = body.branch_id

    def work() -> MenuItem:
        if db.get(Branch, branch_id) is None:
            raise NotFoundError(f"Branch {branch_id} not found")
        item = MenuItem(
            name=body.name,
            description=body.description,
            price=body.price,
            quantity=body.quantity,
            branch_id=branch_id,
        )
        db.add(item)
        return item

    item = run_in_transaction(db, work)
    logger.info(f"Menu item {item.id} '{item.name}' created at branch {branch_id}")
    return item


@router.put("/{item_id}", response_model=MenuItemResponse)
@limiter.limit(WRITE_LIMIT)
def update_menu_item(
    request: Request,
    item_id: int,
    body: MenuItemUpdate,
    db: DbSession,
    current_user: RequireManagement,
):
    """Edit name, description or price. Existing order lines keep their price."""
    item = _get_item(db, current_user, item_id)

    def work() -> MenuItem:
        for field, value in body.model_dump(exclude_unset=True).items():
            if field in ("name", "price") and value is None:
                raise ValidationError(f"{field} cannot be null", field=field)
            setattr(item, field, value)
        return item

    return run_in_transaction(db, work)


@router.post("/{item_id}/restock", response_model=RestockResponse)
@limiter.limit(WRITE_LIMIT)
def restock_menu_item(
    request: Request,
    item_id: int,
    body: RestockRequest,
    db: DbSession,
    current_user: RequireManagement,
):
    item = _get_item(db, current_user, item_id)
    ledger = InventoryLedger(db)
    new_level = run_in_transaction(db, lambda: ledger.restock(item, body.quantity))
    return RestockResponse(id=item_id, quantity=new_level)


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit(WRITE_LIMIT)
def delete_menu_item(
    request: Request,
    item_id: int,
    db: DbSession,
    current_user: RequireManagement,
):
    """Remove an item from sale; items with order history are soft-deleted."""
    item = _get_item(db, current_user, item_id)
    ledger = InventoryLedger(db)
    run_in_transaction(db, lambda: ledger.retire(item))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
