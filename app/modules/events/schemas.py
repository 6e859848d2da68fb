from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List
from datetime import datetime

from app.core.timeutils import naive_utc
from app.modules.family_members.schemas import HEX_COLOR


class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    start_time: datetime
    end_time: datetime
    member_ids: List[str] = Field(..., min_length=1)
    color: str = Field(..., pattern=HEX_COLOR)
    photo_url: Optional[str] = None
    completed: bool = False

    @field_validator("start_time", "end_time")
    @classmethod
    def strip_zone(cls, v: datetime) -> datetime:
        return naive_utc(v)

    @model_validator(mode="after")
    def end_after_start(self):
        if self.end_time < self.start_time:
            raise ValueError("end_time must not be before start_time")
        return self


class EventUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    member_ids: Optional[List[str]] = Field(None, min_length=1)
    color: Optional[str] = Field(None, pattern=HEX_COLOR)
    photo_url: Optional[str] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def strip_zone(cls, v: Optional[datetime]) -> Optional[datetime]:
        return naive_utc(v)


class EventResponse(BaseModel):
    id: str
    family_id: str
    title: str
    description: Optional[str] = None
    start_time: datetime
    end_time: datetime
    member_ids: List[str]
    color: str
    photo_url: Optional[str] = None
    completed: bool = False
    completed_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class EventPhotoUpdate(BaseModel):
    # None removes the photo
    photo_url: Optional[str] = None


class MessageCreate(BaseModel):
    event_id: str
    sender_id: Optional[str] = None
    sender_name: str = Field(..., min_length=1, max_length=80)
    content: str = Field(..., min_length=1, max_length=4000)


class MessageBody(BaseModel):
    sender_name: Optional[str] = Field(None, min_length=1, max_length=80)
    content: str = Field(..., min_length=1, max_length=4000)


class MessageResponse(BaseModel):
    id: str
    family_id: str
    event_id: str
    sender_id: Optional[str] = None
    sender_name: str
    content: str
    created_at: datetime

    class Config:
        from_attributes = True


class EventNoteCreate(BaseModel):
    event_id: str
    author_id: str
    content: str = Field(..., min_length=1, max_length=4000)
    parent_note_id: Optional[str] = None


class EventNoteBody(BaseModel):
    content: str = Field(..., min_length=1, max_length=4000)
    parent_note_id: Optional[str] = None


class EventNoteResponse(BaseModel):
    id: str
    family_id: str
    event_id: str
    author_id: str
    content: str
    parent_note_id: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
