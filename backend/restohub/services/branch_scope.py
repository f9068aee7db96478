"""Branch-scoped access filter.

Every order and inventory read goes through ``scope_for`` so that branch
resolution happens in exactly one place:

- ADMIN / HEADQUARTER_MANAGER: all branches
- BRANCH_MANAGER: the branch whose ``manager_id`` is the caller
- CHEF / CASHIER (and a customer with an assigned branch): ``User.branch_id``

A branch-bound caller without a resolvable branch gets
``NoBranchAssignedError``, never an unfiltered result.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Query, Session

from restohub.core.errors import NoBranchAssignedError
from restohub.core.rbac import HEADQUARTER_ROLES, Principal, UserRole
from restohub.models.branch import Branch
from restohub.models.user import User


@dataclass(frozen=True)
class BranchScope:
    """Either every branch (``branch_id is None``) or exactly one."""

    branch_id: Optional[int] = None

    @classmethod
    def all(cls) -> "BranchScope":
        return cls(None)

    @classmethod
    def only(cls, branch_id: int) -> "BranchScope":
        return cls(branch_id)

    @property
    def is_all(self) -> bool:
        return self.branch_id is None

    def allows(self, branch_id: int) -> bool:
        return self.is_all or self.branch_id == branch_id

    def apply(self, query: Query, column) -> Query:
        """Filter ``query`` on ``column`` unless the scope covers all branches."""
        if self.is_all:
            return query
        return query.filter(column == self.branch_id)


def resolve_home_branch(db: Session, principal: Principal) -> Optional[int]:
    """Return the single branch a principal works at, or None."""
    if principal.role == UserRole.BRANCH_MANAGER:
        return db.scalar(select(Branch.id).where(Branch.manager_id == principal.id))
    if principal.role in HEADQUARTER_ROLES:
        return None
    return db.scalar(select(User.branch_id).where(User.id == principal.id))


def scope_for(db: Session, principal: Principal) -> BranchScope:
    """Resolve the authorization scope of ``principal``."""
    if principal.role in HEADQUARTER_ROLES:
        return BranchScope.all()

    branch_id = resolve_home_branch(db, principal)
    if branch_id is None:
        raise NoBranchAssignedError(
            f"{principal.role.value} {principal.id} is not assigned to a branch"
        )
    return BranchScope.only(branch_id)


def require_home_branch(db: Session, principal: Principal) -> int:
    """Like ``scope_for`` but for operations that need one concrete branch."""
    branch_id = resolve_home_branch(db, principal)
    if branch_id is None:
        raise NoBranchAssignedError(
            f"{principal.role.value} {principal.id} must be assigned to a branch to process orders"
        )
    return branch_id
