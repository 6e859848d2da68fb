from pydantic import BaseModel, Field, field_validator
from typing import Annotated, Optional, List, Literal
from datetime import datetime

from app.core.timeutils import naive_utc

SCHEDULED_TIME = r"^([01][0-9]|2[0-3]):[0-5][0-9]$"
ScheduledTime = Annotated[str, Field(pattern=SCHEDULED_TIME)]


class MedicationCreate(BaseModel):
    member_id: str
    name: str = Field(..., min_length=1, max_length=120)
    dosage: str = Field(..., min_length=1, max_length=120)
    frequency: str = Field(..., min_length=1, max_length=120)
    instructions: Optional[str] = None
    scheduled_times: Optional[List[ScheduledTime]] = None


class MedicationUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    dosage: Optional[str] = Field(None, min_length=1, max_length=120)
    frequency: Optional[str] = Field(None, min_length=1, max_length=120)
    instructions: Optional[str] = None
    scheduled_times: Optional[List[ScheduledTime]] = None
    is_active: Optional[bool] = None


class MedicationResponse(BaseModel):
    id: str
    family_id: str
    member_id: str
    name: str
    dosage: str
    frequency: str
    instructions: Optional[str] = None
    scheduled_times: Optional[List[str]] = None
    is_active: bool = True
    created_at: datetime

    class Config:
        from_attributes = True


class MedicationLogCreate(BaseModel):
    medication_id: str
    administered_by: str
    administered_at: datetime
    scheduled_time: Optional[datetime] = None
    status: Literal["given", "skipped"] = "given"
    notes: Optional[str] = None


class MedicationLogBody(BaseModel):
    administered_at: Optional[datetime] = None
    scheduled_time: Optional[datetime] = None
    status: Literal["given", "skipped"] = "given"
    notes: Optional[str] = None

    @field_validator("administered_at", "scheduled_time")
    @classmethod
    def strip_zone(cls, v: Optional[datetime]) -> Optional[datetime]:
        return naive_utc(v)


class MedicationLogResponse(BaseModel):
    id: str
    family_id: str
    medication_id: str
    administered_by: str
    administered_at: datetime
    scheduled_time: Optional[datetime] = None
    status: str
    notes: Optional[str] = None

    class Config:
        from_attributes = True
