"""Role-Based Access Control (RBAC) utilities."""

from enum import Enum
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, status

from restohub.core.security import decode_access_token
from restohub.db.session import DbSession


class UserRole(str, Enum):
    """User roles for RBAC."""

    ADMIN = "ADMIN"
    HEADQUARTER_MANAGER = "HEADQUARTER_MANAGER"
    BRANCH_MANAGER = "BRANCH_MANAGER"
    CHEF = "CHEF"
    CASHIER = "CASHIER"
    CUSTOMER = "CUSTOMER"


# Roles that see every branch
HEADQUARTER_ROLES = frozenset({UserRole.ADMIN, UserRole.HEADQUARTER_MANAGER})

# Roles bound to exactly one branch through User.branch_id
BRANCH_STAFF_ROLES = frozenset({UserRole.CHEF, UserRole.CASHIER})

STAFF_ROLES = HEADQUARTER_ROLES | BRANCH_STAFF_ROLES | {UserRole.BRANCH_MANAGER}


class Principal:
    """Authenticated caller as supplied by the auth service.

    Attributes:
        id: The user's database ID.
        role: The user's role.
        email: The user's email address.
        name: The user's display name (defaults to email prefix).
    """

    def __init__(self, id: int, role: UserRole, email: str = "", name: str = ""):
        self.id = id
        self.role = role
        self.email = email
        self.name = name or (email.split("@")[0] if email else "")

    def __repr__(self) -> str:
        return f"<Principal {self.id} {self.role.value}>"


def _bearer_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header.split(" ", 1)[1] or None
    return None


def get_current_principal(request: Request, db: DbSession) -> Principal:
    """Resolve the caller from the bearer token.

    The token must carry ``sub`` and ``role``; the user row must still
    exist and be active.
    """
    token = _bearer_token(request)
    payload = decode_access_token(token) if token else None

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = payload.get("sub")
    role = payload.get("role")
    if user_id is None or role is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )

    try:
        user_role = UserRole(role)
        user_id = int(user_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )

    from restohub.models.user import User

    user = db.get(User, user_id)
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User account is disabled",
        )

    # The stored role wins over a stale token claim
    return Principal(id=user.id, role=user.role, email=user.email, name=user.name or "")


def require_roles(*roles: UserRole):
    """Dependency to require one of the given roles."""
    allowed = frozenset(roles)

    def role_checker(
        current_user: Annotated[Principal, Depends(get_current_principal)]
    ) -> Principal:
        if current_user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Access denied. Required role: " + " or ".join(r.value for r in roles),
            )
        return current_user

    return role_checker


# Common role dependencies
CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]
RequireCustomer = Annotated[Principal, Depends(require_roles(UserRole.CUSTOMER))]
RequireTill = Annotated[
    Principal, Depends(require_roles(UserRole.CASHIER, UserRole.BRANCH_MANAGER))
]
RequireKitchen = Annotated[
    Principal, Depends(require_roles(UserRole.CHEF, UserRole.BRANCH_MANAGER))
]
RequireStaff = Annotated[Principal, Depends(require_roles(*STAFF_ROLES))]
RequireManagement = Annotated[
    Principal,
    Depends(require_roles(UserRole.ADMIN, UserRole.HEADQUARTER_MANAGER, UserRole.BRANCH_MANAGER)),
]
RequireHeadquarters = Annotated[Principal, Depends(require_roles(*HEADQUARTER_ROLES))]
