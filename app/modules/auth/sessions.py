"""
Server-side sessions. The signed cookie only carries a random session id;
the payload, OIDC tokens included, lives in the sessions store.
"""

from datetime import datetime, timedelta
from typing import Optional
import logging
import secrets

from fastapi import Request
from pydantic import ValidationError

from app.config import settings
from app.modules.auth.models import SESSION_ID_KEY
from app.modules.auth.schemas import SessionUser
from app.storage.base import Storage

logger = logging.getLogger(__name__)


def new_session_id() -> str:
    return secrets.token_urlsafe(32)


def _expiry() -> datetime:
    return datetime.utcnow() + timedelta(seconds=settings.session_ttl_seconds)


def start_session(request: Request, storage: Storage, user: SessionUser) -> str:
    """Store the payload under a fresh id; any previous session is dropped"""
    previous = request.session.get(SESSION_ID_KEY)
    if previous:
        storage.delete_session(previous)
    sid = new_session_id()
    storage.save_session(sid, user.model_dump(), _expiry())
    request.session[SESSION_ID_KEY] = sid
    return sid


def update_session(request: Request, storage: Storage, user: SessionUser) -> None:
    sid = request.session.get(SESSION_ID_KEY)
    if not sid:
        start_session(request, storage, user)
        return
    storage.save_session(sid, user.model_dump(), _expiry())


def load_session_user(request: Request, storage: Storage) -> Optional[SessionUser]:
    sid = request.session.get(SESSION_ID_KEY)
    if not sid:
        return None
    record = storage.get_session(sid)
    if not record:
        request.session.pop(SESSION_ID_KEY, None)
        return None
    if record.expire <= datetime.utcnow():
        storage.delete_session(sid)
        request.session.pop(SESSION_ID_KEY, None)
        return None
    try:
        return SessionUser(**record.sess)
    except ValidationError:
        logger.warning(f"Dropping unreadable session {sid[:8]}")
        storage.delete_session(sid)
        request.session.pop(SESSION_ID_KEY, None)
        return None


def end_session(request: Request, storage: Storage) -> Optional[SessionUser]:
    """Delete the stored session and clear the cookie; returns who was logged in"""
    user = load_session_user(request, storage)
    sid = request.session.get(SESSION_ID_KEY)
    if sid:
        storage.delete_session(sid)
    request.session.clear()
    return user
