from pydantic import BaseModel, field_validator
from typing import Any, Dict, Optional
from datetime import datetime

from app.core.timeutils import naive_utc
from app.modules.users.schemas import UserResponse


class SessionUser(BaseModel):
    id: str
    provider: str  # oidc | demo
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_at: Optional[int] = None  # epoch seconds, access token expiry


class SessionRecord(BaseModel):
    sid: str
    sess: Dict[str, Any]
    expire: datetime

    @field_validator("expire")
    @classmethod
    def strip_zone(cls, v: datetime) -> datetime:
        return naive_utc(v)


class DemoVerifyRequest(BaseModel):
    demo_token: str


class DemoVerifyResponse(BaseModel):
    success: bool = True
    user: UserResponse
