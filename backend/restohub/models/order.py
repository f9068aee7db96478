"""Customer and walk-in order models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Enum as SQLEnum, ForeignKey, Integer, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from restohub.db.base import Base


class OrderStatus(str, Enum):
    """Fulfillment status, in lifecycle order."""

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PREPARING = "PREPARING"
    READY = "READY"
    COMPLETED = "COMPLETED"


class PaymentMethod(str, Enum):
    """How the customer intends to pay. A label only, no gateway behind it."""

    CASH = "CASH"
    CREDIT_CARD = "CREDIT_CARD"
    DEBIT_CARD = "DEBIT_CARD"
    ONLINE_PAYMENT = "ONLINE_PAYMENT"


class OrderChannel(str, Enum):
    """Entry path of an order."""

    WALK_IN = "WALK_IN"  # rung up by a cashier at the till
    CUSTOMER = "CUSTOMER"  # self-service, awaits cashier confirmation


class Order(Base):
    """An order placed against one branch's inventory.

    ``total_amount`` is computed from the captured line prices when the
    order is created and never recomputed.
    """

    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="ck_orders_total_non_negative"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    customer_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    cashier_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    branch_id: Mapped[int] = mapped_column(
        ForeignKey("branches.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    payment_method: Mapped[Optional[PaymentMethod]] = mapped_column(
        SQLEnum(PaymentMethod, name="payment_method"), nullable=True
    )
    status: Mapped[OrderStatus] = mapped_column(
        SQLEnum(OrderStatus, name="order_status"),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True,
    )
    channel: Mapped[OrderChannel] = mapped_column(
        SQLEnum(OrderChannel, name="order_channel"), nullable=False
    )
    payment_confirmed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    # Relationships
    branch: Mapped["Branch"] = relationship("Branch")
    customer: Mapped[Optional["User"]] = relationship("User", foreign_keys=[customer_id])
    cashier: Mapped[Optional["User"]] = relationship("User", foreign_keys=[cashier_id])
    lines: Mapped[list["OrderLine"]] = relationship(
        "OrderLine",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderLine.position",
    )

    def __repr__(self) -> str:
        return f"<Order #{self.id} branch={self.branch_id} {self.status.value}>"


class OrderLine(Base):
    """One menu item on an order, with the unit price captured at reservation time."""

    __tablename__ = "order_lines"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_lines_quantity_positive"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    order_id: Mapped[int] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # RESTRICT: a referenced item is soft-deleted, never removed
    menu_item_id: Mapped[int] = mapped_column(
        ForeignKey("menu_items.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    # Relationships
    order: Mapped["Order"] = relationship("Order", back_populates="lines")
    menu_item: Mapped["MenuItem"] = relationship("MenuItem")

    @property
    def subtotal(self) -> Decimal:
        return self.unit_price * self.quantity


# Forward references
from restohub.models.branch import Branch
from restohub.models.user import User
from restohub.models.menu_item import MenuItem
