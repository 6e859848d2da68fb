from dataclasses import dataclass
from typing import Optional
import logging

from app.config.permissions_config import ROLE_PERMISSIONS
from app.core.errors import PermissionDeniedError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PermissionContext:
    user_id: str
    family_id: str
    role: str


def get_user_family_role(storage, user_id: str, family_id: str) -> Optional[str]:
    """Resolve the caller's role in a family, None when not a member"""
    membership = storage.get_user_family_membership(user_id, family_id)
    if not membership:
        return None
    return membership.role or None


def check_permission(role: Optional[str], action: str) -> bool:
    """Fail-closed lookup in the role table"""
    permissions = ROLE_PERMISSIONS.get(role) if role else None
    if not permissions:
        return False
    return permissions.get(action, False)


def has_permission(context: PermissionContext, action: str) -> bool:
    return check_permission(context.role, action)


def require_permission(context: PermissionContext, action: str) -> None:
    if not has_permission(context, action):
        logger.info(
            "Permission denied: user=%s family=%s role=%s action=%s",
            context.user_id, context.family_id, context.role, action,
        )
        raise PermissionDeniedError(f"Permission denied: {action}")
