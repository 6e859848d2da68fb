from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional
from datetime import datetime

from app.core.timeutils import naive_utc


class PayRateSet(BaseModel):
    hourly_rate: float = Field(..., ge=0)
    currency: str = Field("USD", min_length=3, max_length=3)


class PayRateResponse(BaseModel):
    id: str
    family_id: str
    caregiver_user_id: str
    hourly_rate: float
    currency: str
    updated_at: datetime

    class Config:
        from_attributes = True


class TimeEntryCreate(BaseModel):
    start_time: datetime
    end_time: datetime
    notes: Optional[str] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def strip_zone(cls, v: datetime) -> datetime:
        return naive_utc(v)

    @model_validator(mode="after")
    def end_after_start(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self

    @property
    def hours(self) -> float:
        return round((self.end_time - self.start_time).total_seconds() / 3600, 2)


class TimeEntryResponse(BaseModel):
    id: str
    family_id: str
    caregiver_user_id: str
    start_time: datetime
    end_time: datetime
    hours: float
    hourly_rate_at_time: float
    calculated_pay: float
    notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
