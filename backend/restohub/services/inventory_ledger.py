"""Inventory Ledger - race-safe stock reservation for orders.

Stock is never read, checked in Python and written back. Each line is
reserved with one conditional UPDATE:

    UPDATE menu_items SET quantity = quantity - :q
    WHERE id = :id AND branch_id = :branch AND quantity >= :q AND NOT is_deleted

Zero affected rows means the item is missing (or sold elsewhere) or short
on stock; the row is then re-read only to report which. The database
guarantees two concurrent reservations cannot both pass the predicate when
only one fits, so stock never goes negative and nothing is oversold.

All lines of one call run inside a savepoint: if any line fails, every
decrement made by the call is undone. The caller owns the outer
transaction and writes the order in the same unit of work.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List

from sqlalchemy import select
from sqlalchemy.orm import Session

from restohub.core.errors import (
    InsufficientStockError,
    ItemNotFoundError,
    NotFoundError,
    ValidationError,
)
from restohub.models.menu_item import MenuItem
from restohub.models.order import OrderLine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LineRequest:
    """A requested (menu item, quantity) pair."""

    menu_item_id: int
    quantity: int


@dataclass(frozen=True)
class ReservedLine:
    """A successfully reserved line with the unit price captured at decrement time."""

    menu_item_id: int
    name: str
    quantity: int
    unit_price: Decimal

    @property
    def subtotal(self) -> Decimal:
        return self.unit_price * self.quantity


class InventoryLedger:
    """Stock mutations for menu items."""

    def __init__(self, db: Session):
        self.db = db

    # ===== RESERVATION (ORDER PLACEMENT) =====

    def reserve(self, branch_id: int, lines: Iterable[LineRequest]) -> List[ReservedLine]:
        """Decrement stock for every line, all-or-nothing.

        Every line is attempted so the error lists all shortages at once.

        Raises:
            ValidationError: no lines, or a non-positive quantity.
            ItemNotFoundError: an item does not exist at ``branch_id``.
            InsufficientStockError: an item has less than requested.
        """
        lines = list(lines)
        if not lines:
            raise ValidationError("At least one item is required", field="items")
        for line in lines:
            if line.quantity <= 0:
                raise ValidationError(
                    f"Quantity for menu item {line.menu_item_id} must be positive",
                    field="items.quantity",
                )

        reserved: List[ReservedLine] = []
        missing: List[dict] = []
        short: List[dict] = []

        savepoint = self.db.begin_nested()
        try:
            for line in lines:
                if self._decrement(branch_id, line.menu_item_id, line.quantity):
                    reserved.append(self._capture(line))
                    continue

                current = self.db.execute(
                    select(MenuItem.name, MenuItem.quantity).where(
                        MenuItem.id == line.menu_item_id,
                        MenuItem.branch_id == branch_id,
                        MenuItem.not_deleted(),
                    )
                ).one_or_none()
                if current is None:
                    missing.append({"menu_item_id": line.menu_item_id, "requested": line.quantity})
                else:
                    short.append({
                        "menu_item_id": line.menu_item_id,
                        "name": current.name,
                        "requested": line.quantity,
                        "available": current.quantity,
                    })

            if missing:
                raise ItemNotFoundError(missing, branch_id)
            if short:
                raise InsufficientStockError(short)
        except Exception:
            savepoint.rollback()
            if missing or short:
                logger.info(
                    f"Reservation at branch {branch_id} rejected: missing={missing} short={short}"
                )
            raise

        savepoint.commit()
        return reserved

    def _decrement(self, branch_id: int, menu_item_id: int, quantity: int) -> bool:
        rows = (
            self.db.query(MenuItem)
            .filter(
                MenuItem.id == menu_item_id,
                MenuItem.branch_id == branch_id,
                MenuItem.not_deleted(),
                MenuItem.quantity >= quantity,
            )
            .update({MenuItem.quantity: MenuItem.quantity - quantity}, synchronize_session=False)
        )
        return rows == 1

    def _capture(self, line: LineRequest) -> ReservedLine:
        # The row is write-locked by our UPDATE until commit, so this is the
        # price in effect at the moment of the decrement.
        row = self.db.execute(
            select(MenuItem.name, MenuItem.price).where(MenuItem.id == line.menu_item_id)
        ).one()
        return ReservedLine(
            menu_item_id=line.menu_item_id,
            name=row.name,
            quantity=line.quantity,
            unit_price=Decimal(row.price),
        )

    # ===== RESTOCK / RETIREMENT =====

    def restock(self, item: MenuItem, quantity: int) -> int:
        """Atomically add ``quantity`` to an item. Returns the new stock level."""
        if quantity <= 0:
            raise ValidationError("Restock quantity must be positive", field="quantity")

        rows = (
            self.db.query(MenuItem)
            .filter(MenuItem.id == item.id, MenuItem.not_deleted())
            .update({MenuItem.quantity: MenuItem.quantity + quantity}, synchronize_session=False)
        )
        if rows == 0:
            raise NotFoundError("Menu item not found")

        self.db.expire(item, ["quantity"])
        new_level = self.db.scalar(select(MenuItem.quantity).where(MenuItem.id == item.id))
        logger.info(f"Restocked menu item {item.id} by {quantity} (now {new_level})")
        return new_level

    def is_referenced(self, item: MenuItem) -> bool:
        """True when any historical order line points at ``item``."""
        return self.db.scalar(
            select(OrderLine.id).where(OrderLine.menu_item_id == item.id).limit(1)
        ) is not None

    def retire(self, item: MenuItem) -> bool:
        """Remove an item from sale.

        Items referenced by order lines are soft-deleted so history stays
        intact; unreferenced items are deleted. Returns True on a hard delete.
        """
        if self.is_referenced(item):
            item.soft_delete()
            logger.info(f"Menu item {item.id} retired (soft delete, referenced by orders)")
            return False
        self.db.delete(item)
        logger.info(f"Menu item {item.id} deleted")
        return True
