"""Branch and staff assignment schemas."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from restohub.core.rbac import UserRole


class ManagerAssignment(BaseModel):
    user_id: int = Field(gt=0)


class StaffAssignment(BaseModel):
    """Target branch for a chef or cashier.

    A branch manager may only assign to their own branch and may omit it.
    """

    branch_id: Optional[int] = Field(default=None, gt=0)


class BranchResponse(BaseModel):
    """Branch response schema."""

    id: int
    name: str
    address: str
    phone: str
    manager_id: Optional[int] = None

    model_config = {"from_attributes": True}


class StaffResponse(BaseModel):
    id: int
    email: str
    name: Optional[str] = None
    role: UserRole
    branch_id: Optional[int] = None

    model_config = {"from_attributes": True}
