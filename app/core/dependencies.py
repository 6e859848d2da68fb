"""
Core dependencies for route protection and permission checking
"""

from fastapi import Depends, HTTPException, Query, Request, status
import logging

from app.core.errors import PermissionDeniedError
from app.core.permissions import PermissionContext, get_user_family_role, require_permission
from app.modules.auth.schemas import SessionUser
from app.modules.auth.sessions import load_session_user, update_session
from app.modules.auth.service import (
    AuthError, OIDCService, get_oidc_service, session_expired, session_from_tokens
)
from app.storage import DemoAwareStorage, get_storage

logger = logging.getLogger(__name__)


def _unauthorized() -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


def get_session_user(request: Request, storage: DemoAwareStorage = Depends(get_storage)) -> SessionUser:
    """Session payload of the logged-in caller; 401 when there is none"""
    user = load_session_user(request, storage)
    if not user:
        raise _unauthorized()
    return user


def get_current_user_id(
    request: Request,
    oidc: OIDCService = Depends(get_oidc_service),
    storage: DemoAwareStorage = Depends(get_storage)
) -> str:
    """Extract current user id from the session, refreshing expired OIDC tokens"""
    user = get_session_user(request, storage)
    if not session_expired(user):
        return user.id

    if user.provider != "oidc" or not user.refresh_token:
        raise _unauthorized()
    try:
        tokens = oidc.refresh(user.refresh_token)
    except AuthError:
        logger.info(f"Token refresh failed for user {user.id}")
        raise _unauthorized()

    refreshed = session_from_tokens(user.id, tokens)
    if not refreshed.refresh_token:
        refreshed.refresh_token = user.refresh_token
    update_session(request, storage, refreshed)
    return user.id


def resolve_family_context(storage, user_id: str, family_id: str) -> PermissionContext:
    """Resolve the caller's role in a family; 403 for non-members"""
    role = get_user_family_role(storage, user_id, family_id)
    if role is None:
        raise PermissionDeniedError("You are not a member of this family")
    return PermissionContext(user_id=user_id, family_id=family_id, role=role)


def get_family_context(
    family_id: str = Query(..., min_length=1),
    user_id: str = Depends(get_current_user_id),
    storage: DemoAwareStorage = Depends(get_storage)
) -> PermissionContext:
    """Family context for routes taking family_id as a query parameter"""
    return resolve_family_context(storage, user_id, family_id)


def get_path_family_context(
    family_id: str,
    user_id: str = Depends(get_current_user_id),
    storage: DemoAwareStorage = Depends(get_storage)
) -> PermissionContext:
    """Family context for routes under /families/{family_id}"""
    return resolve_family_context(storage, user_id, family_id)


def require_family_permission(action: str):
    """Factory function to create permission check dependency"""
    def check_family_permission(
        context: PermissionContext = Depends(get_family_context)
    ) -> PermissionContext:
        require_permission(context, action)
        return context
    return check_family_permission
