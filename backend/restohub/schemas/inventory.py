"""Menu item (inventory) schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class MenuItemCreate(BaseModel):
    """Menu item creation schema.

    ``branch_id`` is required for headquarters roles and ignored for a
    branch manager, whose own branch is always used.
    """

    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    price: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    quantity: int = Field(default=0, ge=0)
    branch_id: Optional[int] = Field(default=None, gt=0)


class MenuItemUpdate(BaseModel):
    """Menu item update schema. Stock is changed through restock only."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(default=None, gt=0, max_digits=10, decimal_places=2)


class RestockRequest(BaseModel):
    quantity: int = Field(gt=0)


class MenuItemResponse(BaseModel):
    """Menu item response schema."""

    id: int
    name: str
    description: Optional[str] = None
    price: Decimal
    quantity: int
    branch_id: int
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class RestockResponse(BaseModel):
    id: int
    quantity: int
