from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class FamilyMessageCreate(BaseModel):
    author_id: str
    content: str = Field(..., min_length=1, max_length=4000)
    parent_message_id: Optional[str] = None


class FamilyMessageBody(BaseModel):
    content: str = Field(..., min_length=1, max_length=4000)
    parent_message_id: Optional[str] = None


class FamilyMessageResponse(BaseModel):
    id: str
    family_id: str
    author_id: str
    content: str
    parent_message_id: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
