"""User model."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import Boolean, Enum, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from restohub.core.rbac import UserRole
from restohub.db.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    """Account known to the auth service.

    ``branch_id`` is the staff assignment used by CHEF and CASHIER; branch
    managers are linked the other way round, through ``Branch.manager_id``.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, name="user_role"),
        default=UserRole.CUSTOMER,
        nullable=False,
    )
    branch_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("branches.id", ondelete="SET NULL"), nullable=True, index=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    branch: Mapped[Optional["Branch"]] = relationship("Branch", foreign_keys=[branch_id])

    def __repr__(self) -> str:
        return f"<User {self.id} {self.role.value}>"


from restohub.models.branch import Branch
