"""Order request/response schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from restohub.models.order import OrderChannel, OrderStatus, PaymentMethod


class OrderLineCreate(BaseModel):
    """One requested line."""

    menu_item_id: int = Field(gt=0)
    quantity: int = Field(gt=0)


class WalkInOrderCreate(BaseModel):
    """Till checkout by a cashier or branch manager."""

    customer_name: Optional[str] = Field(default=None, max_length=255)
    items: List[OrderLineCreate] = Field(min_length=1)

    @field_validator("customer_name")
    @classmethod
    def blank_name_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v.strip() if v else v


class CustomerOrderCreate(BaseModel):
    """Self-service order placed by a customer for one branch."""

    branch_id: int = Field(gt=0)
    payment_method: PaymentMethod
    items: List[OrderLineCreate] = Field(min_length=1)


class OrderStatusUpdate(BaseModel):
    """Kitchen status change."""

    status: OrderStatus


class OrderLineResponse(BaseModel):
    """A line with its captured unit price and display name."""

    menu_item_id: int
    name: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal


class OrderResponse(BaseModel):
    """An order with embedded lines and resolved display names."""

    id: int
    branch_id: int
    branch_name: Optional[str] = None
    customer_id: Optional[int] = None
    customer_name: str
    cashier_id: Optional[int] = None
    cashier_name: Optional[str] = None
    channel: OrderChannel
    payment_method: Optional[PaymentMethod] = None
    status: OrderStatus
    total_amount: Decimal
    payment_confirmed_at: Optional[datetime] = None
    created_at: datetime
    lines: List[OrderLineResponse] = []
