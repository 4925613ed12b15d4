"""Role and ownership checks for pipeline endpoints."""

from typing import Any, Callable

from fastapi import HTTPException, Request
import structlog

from api.middleware.error_handler import ForbiddenError
from api.models import Application

logger = structlog.get_logger()


# Role hierarchy - higher roles include permissions of lower roles
ROLE_HIERARCHY = {
    "admin": ["admin", "recruiter", "readonly"],
    "recruiter": ["recruiter", "readonly"],
    "readonly": ["readonly"],
}


def get_user_role(roles: list[str]) -> str:
    """
    Get the highest role from the token's role claims.

    Args:
        roles: Role names from the token

    Returns:
        Internal role name (admin, recruiter, or readonly)
    """
    for role in ("admin", "recruiter"):
        if role in roles:
            return role
    return "readonly"


def has_role(user_roles: list[str], required_role: str) -> bool:
    """Check if user has the required role or higher."""
    user_role = get_user_role(user_roles)
    return required_role in ROLE_HIERARCHY.get(user_role, [])


def is_admin(user: dict[str, Any]) -> bool:
    return get_user_role(user.get("roles", [])) == "admin"


def get_current_user(request: Request) -> dict[str, Any]:
    """
    Get current user from request state.

    Usage:
        @router.get("/me")
        def get_me(user: dict = Depends(get_current_user)):
            return user
    """
    if not hasattr(request.state, "user"):
        raise HTTPException(status_code=401, detail="Not authenticated")
    return request.state.user


def require_role(allowed_roles: list[str]) -> Callable:
    """
    Dependency that requires user to have one of the specified roles.

    Usage:
        @router.post("/activities")
        def create(user: dict = Depends(require_role(["recruiter"]))):
            ...
    """
    def check_role(request: Request) -> dict[str, Any]:
        user = get_current_user(request)
        user_roles = user.get("roles", [])

        for role in allowed_roles:
            if has_role(user_roles, role):
                return user

        logger.warning(
            "Role check failed",
            user=user.get("sub"),
            required=allowed_roles,
            user_roles=user_roles,
        )
        raise HTTPException(
            status_code=403,
            detail="You don't have permission to access this resource",
        )

    return check_role


def ensure_can_mutate(application: Application, user: dict[str, Any]) -> None:
    """Only the application's assigned recruiter (or an admin) may change its pipeline.

    Raises:
        ForbiddenError: The caller is neither admin nor the assigned recruiter
    """
    if is_admin(user):
        return
    if application.recruiter_id and application.recruiter_id == user.get("sub"):
        return

    logger.warning(
        "Ownership check failed",
        user=user.get("sub"),
        application_id=application.id,
        recruiter_id=application.recruiter_id,
    )
    raise ForbiddenError("Only the assigned recruiter can change this application's activities")
