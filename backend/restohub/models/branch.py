"""Branch model."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from restohub.db.base import Base, TimestampMixin


class Branch(Base, TimestampMixin):
    """A restaurant branch. At most one manager per branch, and one branch per manager."""

    __tablename__ = "branches"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    address: Mapped[str] = mapped_column(String(500), nullable=False)
    phone: Mapped[str] = mapped_column(String(50), nullable=False)
    manager_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL", use_alter=True, name="fk_branches_manager_id"),
        nullable=True,
        unique=True,
    )

    manager: Mapped[Optional["User"]] = relationship("User", foreign_keys=[manager_id])
    menu_items: Mapped[list["MenuItem"]] = relationship("MenuItem", back_populates="branch")

    def __repr__(self) -> str:
        return f"<Branch {self.id} {self.name}>"


from restohub.models.user import User
from restohub.models.menu_item import MenuItem
