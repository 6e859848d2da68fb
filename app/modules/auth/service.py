import secrets
import time
from typing import Any, Dict, Optional
from urllib.parse import urlencode
import logging

import httpx

from app.config.settings import settings
from app.modules.auth.schemas import SessionUser
from app.modules.users.schemas import UserUpsert

logger = logging.getLogger(__name__)

# Discovery documents rarely change; cache them for an hour per issuer
_DISCOVERY_CACHE: Dict[str, tuple] = {}
_DISCOVERY_CACHE_TTL_SEC = 3600
_HTTP_TIMEOUT_SEC = 10.0


class AuthError(Exception):
    """Provider rejected the exchange or returned something unusable"""


class OIDCService:
    def __init__(self, http: Optional[httpx.Client] = None):
        self.http = http or httpx.Client(timeout=_HTTP_TIMEOUT_SEC)

    @property
    def configured(self) -> bool:
        return bool(settings.oidc_client_id)

    def discovery(self) -> Dict[str, Any]:
        issuer = settings.oidc_issuer_url.rstrip("/")
        now = time.monotonic()
        cached = _DISCOVERY_CACHE.get(issuer)
        if cached and now < cached[1]:
            return cached[0]
        response = self.http.get(f"{issuer}/.well-known/openid-configuration")
        response.raise_for_status()
        document = response.json()
        _DISCOVERY_CACHE[issuer] = (document, now + _DISCOVERY_CACHE_TTL_SEC)
        return document

    def authorization_url(self, redirect_uri: str, state: str) -> str:
        params = {
            "response_type": "code",
            "client_id": settings.oidc_client_id,
            "redirect_uri": redirect_uri,
            "scope": settings.oidc_scopes,
            "state": state,
            "prompt": "login consent",
        }
        return f"{self.discovery()['authorization_endpoint']}?{urlencode(params)}"

    def _token_request(self, data: Dict[str, str]) -> Dict[str, Any]:
        data = {**data, "client_id": settings.oidc_client_id}
        if settings.oidc_client_secret:
            data["client_secret"] = settings.oidc_client_secret
        try:
            response = self.http.post(self.discovery()["token_endpoint"], data=data)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Token endpoint request failed: {e}")
            raise AuthError("Token request failed") from e
        tokens = response.json()
        if "access_token" not in tokens:
            raise AuthError("Token response without access_token")
        return tokens

    def exchange_code(self, code: str, redirect_uri: str) -> Dict[str, Any]:
        return self._token_request({
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": redirect_uri,
        })

    def refresh(self, refresh_token: str) -> Dict[str, Any]:
        return self._token_request({
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        })

    def fetch_userinfo(self, access_token: str) -> Dict[str, Any]:
        try:
            response = self.http.get(
                self.discovery()["userinfo_endpoint"],
                headers={"Authorization": f"Bearer {access_token}"},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Userinfo request failed: {e}")
            raise AuthError("Userinfo request failed") from e
        claims = response.json()
        if not claims.get("sub"):
            raise AuthError("Userinfo without subject")
        return claims

    def end_session_url(self, post_logout_redirect_uri: str) -> Optional[str]:
        endpoint = self.discovery().get("end_session_endpoint")
        if not endpoint:
            return None
        params = {
            "client_id": settings.oidc_client_id,
            "post_logout_redirect_uri": post_logout_redirect_uri,
        }
        return f"{endpoint}?{urlencode(params)}"


def new_state() -> str:
    return secrets.token_urlsafe(24)


def new_demo_user_id() -> str:
    return f"{settings.demo_user_prefix}{int(time.time() * 1000)}-{secrets.token_hex(3)}"


def user_from_claims(claims: Dict[str, Any]) -> UserUpsert:
    return UserUpsert(
        id=str(claims["sub"]),
        email=claims.get("email"),
        first_name=claims.get("first_name") or claims.get("given_name"),
        last_name=claims.get("last_name") or claims.get("family_name"),
        profile_image_url=claims.get("profile_image_url") or claims.get("picture"),
        auth_provider="oidc",
    )


def session_from_tokens(user_id: str, tokens: Dict[str, Any]) -> SessionUser:
    expires_in = tokens.get("expires_in")
    return SessionUser(
        id=user_id,
        provider="oidc",
        access_token=tokens["access_token"],
        refresh_token=tokens.get("refresh_token"),
        expires_at=int(time.time()) + int(expires_in) if expires_in else None,
    )


def demo_session(user_id: str) -> SessionUser:
    return SessionUser(
        id=user_id,
        provider="demo",
        expires_at=int(time.time()) + settings.session_ttl_seconds,
    )


def session_expired(user: SessionUser) -> bool:
    return user.expires_at is not None and time.time() > user.expires_at


_oidc_service: Optional[OIDCService] = None


def get_oidc_service() -> OIDCService:
    global _oidc_service
    if _oidc_service is None:
        _oidc_service = OIDCService()
    return _oidc_service
