"""Business logic services for the Hiring Pipeline API."""

from .token import create_token, decode_token, should_refresh_token
from .rbac import require_role, get_current_user, ensure_can_mutate

__all__ = [
    "create_token",
    "decode_token",
    "should_refresh_token",
    "require_role",
    "get_current_user",
    "ensure_can_mutate",
]
