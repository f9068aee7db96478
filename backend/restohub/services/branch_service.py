"""Branch manager and staff assignment."""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from restohub.core.errors import ForbiddenError, NotFoundError, ValidationError
from restohub.core.rbac import BRANCH_STAFF_ROLES, Principal, UserRole
from restohub.db.session import run_in_transaction
from restohub.models.branch import Branch
from restohub.models.user import User
from restohub.services.branch_scope import require_home_branch

logger = logging.getLogger(__name__)


class BranchService:
    """Links users to branches."""

    def __init__(self, db: Session):
        self.db = db

    def assign_manager(self, branch_id: int, user_id: int) -> Branch:
        """Make ``user_id`` the manager of ``branch_id``.

        The user must be a BRANCH_MANAGER who does not already manage a
        different branch. Re-assigning the current manager is a no-op.
        """

        def work() -> Branch:
            branch = self._get_branch(branch_id)
            user = self.db.get(User, user_id)
            if user is None:
                raise NotFoundError(f"User {user_id} not found")
            if user.role != UserRole.BRANCH_MANAGER:
                raise ValidationError(
                    f"User {user_id} is {user.role.value}, not BRANCH_MANAGER", field="user_id"
                )

            managed = self.db.scalar(
                select(Branch.id).where(Branch.manager_id == user_id, Branch.id != branch_id)
            )
            if managed is not None:
                raise ValidationError(
                    f"User {user_id} already manages branch {managed}", field="user_id"
                )

            branch.manager_id = user_id
            try:
                self.db.flush()
            except IntegrityError as exc:
                raise ValidationError(
                    f"User {user_id} already manages another branch", field="user_id"
                ) from exc
            return branch

        branch = run_in_transaction(self.db, work)
        logger.info(f"User {user_id} assigned as manager of branch {branch_id}")
        return branch

    def assign_staff(
        self,
        principal: Principal,
        user_id: int,
        branch_id: Optional[int] = None,
    ) -> User:
        """Assign a CHEF or CASHIER to a branch.

        Headquarters roles name any branch. A branch manager can only pull
        unassigned staff (or their own) into their own branch.
        """
        home = None
        if principal.role == UserRole.BRANCH_MANAGER:
            home = require_home_branch(self.db, principal)
            if branch_id is not None and branch_id != home:
                raise ForbiddenError("You can only assign staff to your own branch")
            branch_id = home
        elif branch_id is None:
            raise ValidationError("branch_id is required", field="branch_id")

        def work() -> User:
            self._get_branch(branch_id)
            user = self.db.get(User, user_id)
            if user is None:
                raise NotFoundError(f"User {user_id} not found")
            if user.role not in BRANCH_STAFF_ROLES:
                raise ValidationError(
                    f"Only CHEF or CASHIER users can be assigned to a branch, "
                    f"user {user_id} is {user.role.value}",
                    field="user_id",
                )
            if home is not None and user.branch_id not in (None, home):
                raise ForbiddenError("User belongs to another branch")
            user.branch_id = branch_id
            return user

        user = run_in_transaction(self.db, work)
        logger.info(f"User {user_id} assigned to branch {branch_id} by {principal.id}")
        return user

    def _get_branch(self, branch_id: int) -> Branch:
        branch = self.db.get(Branch, branch_id)
        if branch is None:
            raise NotFoundError(f"Branch {branch_id} not found")
        return branch
