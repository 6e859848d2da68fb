from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

HEX_COLOR = r"^#[0-9A-Fa-f]{6}$"


class FamilyMemberCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=80)
    color: str = Field(..., pattern=HEX_COLOR)
    avatar: Optional[str] = None


class FamilyMemberUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=80)
    color: Optional[str] = Field(None, pattern=HEX_COLOR)
    avatar: Optional[str] = None


class FamilyMemberResponse(BaseModel):
    id: str
    family_id: str
    name: str
    color: str
    avatar: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
