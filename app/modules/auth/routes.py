from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import RedirectResponse
from app.config import settings
from app.config.permissions_config import get_permission_matrix
from app.core.dependencies import get_current_user_id
from app.demo.seed import seed_demo_account
from app.modules.auth.models import SESSION_STATE_KEY
from app.modules.auth.schemas import DemoVerifyRequest, DemoVerifyResponse
from app.modules.auth.sessions import start_session, end_session
from app.modules.auth.service import (
    AuthError, OIDCService, get_oidc_service, new_state, new_demo_user_id,
    user_from_claims, session_from_tokens, demo_session
)
from app.modules.users.schemas import UserUpsert, UserResponse
from app.storage import DemoAwareStorage, get_storage
from typing import Optional
import httpx
import logging

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


def _base_url(request: Request) -> str:
    return (settings.app_base_url or str(request.base_url)).rstrip("/")


def _callback_url(request: Request) -> str:
    return f"{_base_url(request)}/api/callback"


@router.get("/login")
def login(request: Request, oidc: OIDCService = Depends(get_oidc_service)):
    """Redirect to the identity provider"""
    if not oidc.configured:
        raise HTTPException(status_code=503, detail="Login is not configured")
    state = new_state()
    request.session[SESSION_STATE_KEY] = state
    return RedirectResponse(oidc.authorization_url(_callback_url(request), state), status_code=302)


@router.get("/callback")
def callback(
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
    oidc: OIDCService = Depends(get_oidc_service),
    storage: DemoAwareStorage = Depends(get_storage)
):
    """Finish the authorization-code flow and start a session"""
    expected_state = request.session.pop(SESSION_STATE_KEY, None)
    if not code or not state or state != expected_state:
        logger.info("OIDC callback rejected: missing code or state mismatch")
        return RedirectResponse("/landing", status_code=302)
    try:
        tokens = oidc.exchange_code(code, _callback_url(request))
        claims = oidc.fetch_userinfo(tokens["access_token"])
    except AuthError as e:
        logger.warning(f"OIDC callback failed: {e}")
        return RedirectResponse("/landing", status_code=302)

    user = storage.upsert_user(user_from_claims(claims))
    start_session(request, storage, session_from_tokens(user.id, tokens))
    logger.info(f"User {user.id} logged in")
    return RedirectResponse("/", status_code=302)


@router.get("/logout")
def logout_redirect(
    request: Request,
    oidc: OIDCService = Depends(get_oidc_service),
    storage: DemoAwareStorage = Depends(get_storage)
):
    """Clear the session; OIDC users are sent through the provider's end-session page"""
    user = end_session(request, storage)
    if user and user.provider == "oidc" and oidc.configured:
        try:
            logout_url = oidc.end_session_url(_base_url(request))
        except httpx.HTTPError as e:
            logger.warning(f"Could not build end-session URL: {e}")
            logout_url = None
        if logout_url:
            return RedirectResponse(logout_url, status_code=302)
    return RedirectResponse("/", status_code=302)


@router.post("/logout")
async def logout(request: Request, storage: DemoAwareStorage = Depends(get_storage)):
    end_session(request, storage)
    return {"success": True}


@router.get("/login/demo")
async def login_demo(request: Request, storage: DemoAwareStorage = Depends(get_storage)):
    """Create a throwaway demo account with sample content and log into it"""
    demo_user_id = new_demo_user_id()
    storage.upsert_user(UserUpsert(
        id=demo_user_id,
        email=f"{demo_user_id}@example.com",
        first_name="Demo",
        last_name="User",
        auth_provider="demo",
    ))
    seed_demo_account(storage, demo_user_id)
    start_session(request, storage, demo_session(demo_user_id))
    logger.info(f"Demo account {demo_user_id} created")
    return RedirectResponse(f"/demo-welcome?demo_token={demo_user_id}&next=/care", status_code=302)


@router.post("/auth/demo-verify", response_model=DemoVerifyResponse)
async def demo_verify(
    request: Request,
    verify_data: DemoVerifyRequest,
    storage: DemoAwareStorage = Depends(get_storage)
):
    """Re-establish a demo session from the token handed out at demo login"""
    if not storage.is_demo_user(verify_data.demo_token):
        raise HTTPException(status_code=400, detail="Invalid demo token")
    user = storage.get_user(verify_data.demo_token)
    if not user:
        raise HTTPException(status_code=404, detail="Demo user not found")
    start_session(request, storage, demo_session(user.id))
    return DemoVerifyResponse(user=user)


@router.get("/auth/user", response_model=Optional[UserResponse])
async def get_current_user(
    user_id: str = Depends(get_current_user_id),
    storage: DemoAwareStorage = Depends(get_storage)
):
    return storage.get_user(user_id)


@router.get("/auth/permissions")
async def get_permissions(user_id: str = Depends(get_current_user_id)):
    """Role/action matrix for the frontend to decide which controls to show"""
    return get_permission_matrix()
