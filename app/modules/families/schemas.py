from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, Literal
from datetime import datetime

FamilyRole = Literal["owner", "member", "caregiver"]


class FamilyCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)


class FamilyUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)


class FamilyResponse(BaseModel):
    id: str
    name: str
    invite_code: str
    created_by: str
    created_at: datetime

    class Config:
        from_attributes = True


class FamilyWithRoleResponse(FamilyResponse):
    role: str


class FamilyJoin(BaseModel):
    invite_code: str = Field(..., min_length=4, max_length=16)

    @field_validator("invite_code")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        return v.strip().upper()


class FamilyInvite(BaseModel):
    email: EmailStr


class FamilyMembershipResponse(BaseModel):
    id: str
    family_id: str
    user_id: str
    role: str
    joined_at: datetime

    class Config:
        from_attributes = True


class MembershipRoleUpdate(BaseModel):
    role: FamilyRole


class RoleResponse(BaseModel):
    role: str
