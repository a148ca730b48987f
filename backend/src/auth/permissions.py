# pyright: reportMissingTypeStubs=false
from fastapi import Depends, HTTPException, status

from auth.dependencies import CallerContext, get_current_caller
from core.constants import ADMIN_LIKE_ROLES, EMPLOYEE_ROLE


def require_roles(*roles: str):
    """
    Dependency that ensures the caller holds one of the given roles.

    Args:
        roles: Accepted role names

    Returns:
        Dependency function that can be used with FastAPI Depends()
    """
    def dependency(current_caller: CallerContext = Depends(get_current_caller)) -> CallerContext:
        if current_caller.has_role(*roles):
            return current_caller

        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Access denied: requires one of {', '.join(roles)}"
        )

    return dependency


def require_admin_like():
    """Dependency that ensures the caller is an admin or front desk."""
    return require_roles(*ADMIN_LIKE_ROLES)


def require_staff():
    """Dependency that ensures the caller is an employee, admin or front desk."""
    return require_roles(EMPLOYEE_ROLE, *ADMIN_LIKE_ROLES)
