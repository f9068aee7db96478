"""Menu item model (the unit of inventory)."""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from sqlalchemy import CheckConstraint, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from restohub.db.base import Base, SoftDeleteMixin, TimestampMixin
from restohub.models.validators import non_negative, positive


class MenuItem(Base, TimestampMixin, SoftDeleteMixin):
    """A dish sold at one branch, with its stock on hand.

    ``quantity`` only changes through the inventory ledger's conditional
    updates (reservation and restock).
    """

    __tablename__ = "menu_items"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_menu_items_quantity_non_negative"),
        CheckConstraint("price > 0", name="ck_menu_items_price_positive"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    branch_id: Mapped[int] = mapped_column(
        ForeignKey("branches.id", ondelete="CASCADE"), nullable=False, index=True
    )

    branch: Mapped["Branch"] = relationship("Branch", back_populates="menu_items")

    @validates("price")
    def _validate_price(self, key, value):
        return positive(key, value)

    @validates("quantity")
    def _validate_quantity(self, key, value):
        return non_negative(key, value)

    def __repr__(self) -> str:
        return f"<MenuItem {self.id} {self.name} x{self.quantity} @branch {self.branch_id}>"


from restohub.models.branch import Branch
