"""Branch manager and staff assignment routes."""

from fastapi import APIRouter, Request

from restohub.core.rate_limit import WRITE_LIMIT, limiter
from restohub.core.rbac import RequireHeadquarters, RequireManagement
from restohub.db.session import DbSession
from restohub.schemas.branch import BranchResponse, ManagerAssignment, StaffAssignment, StaffResponse
from restohub.services.branch_service import BranchService

router = APIRouter()


@router.put("/staff/{user_id}", response_model=StaffResponse)
@limiter.limit(WRITE_LIMIT)
def assign_staff(
    request: Request,
    user_id: int,
    body: StaffAssignment,
    db: DbSession,
    current_user: RequireManagement,
):
    """Assign a chef or cashier to a branch."""
    return BranchService(db).assign_staff(current_user, user_id, body.branch_id)


@router.put("/{branch_id}/manager", response_model=BranchResponse)
@limiter.limit(WRITE_LIMIT)
def assign_manager(
    request: Request,
    branch_id: int,
    body: ManagerAssignment,
    db: DbSession,
    current_user: RequireHeadquarters,
):
    return BranchService(db).assign_manager(branch_id, body.user_id)
