"""Slot domain schemas - Pydantic models for validation"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

from ...models import SlotStatus
from ...utils.sanitization import sanitize_string

TITLE_MAX_LENGTH = 100


def clean_title(value: str) -> str:
    """Trim and HTML-escape a title; the stored (escaped) form must fit the column"""
    value = sanitize_string(value.strip())
    if not value:
        raise ValueError("Title cannot be empty")
    if len(value) > TITLE_MAX_LENGTH:
        raise ValueError(
            f"Title must be at most {TITLE_MAX_LENGTH} characters once special characters are escaped"
        )
    return value


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Stored times are naive UTC; convert aware inputs so comparisons never mix the two"""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class SlotCreate(BaseModel):
    """Schema for creating a new slot"""

    title: str
    startTime: datetime
    endTime: datetime
    status: str = SlotStatus.FREE

    @field_validator("startTime", "endTime")
    @classmethod
    def normalize_times(cls, v):
        return to_naive_utc(v)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        return clean_title(v)

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v not in SlotStatus.ALL:
            raise ValueError(f"Status must be one of: {', '.join(SlotStatus.ALL)}")
        return v

    @model_validator(mode="after")
    def validate_time_range(self):
        if self.startTime >= self.endTime:
            raise ValueError("Start time must be before end time")
        return self


class SlotUpdate(BaseModel):
    """Schema for updating an existing slot. Time ranges are checked against the stored slot."""

    title: Optional[str] = None
    startTime: Optional[datetime] = None
    endTime: Optional[datetime] = None
    status: Optional[str] = None

    @field_validator("startTime", "endTime")
    @classmethod
    def normalize_times(cls, v):
        return to_naive_utc(v)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        if v is not None:
            v = clean_title(v)
        return v

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v is not None and v not in SlotStatus.ALL:
            raise ValueError(f"Status must be one of: {', '.join(SlotStatus.ALL)}")
        return v


class SlotResponse(BaseModel):
    """Schema for slot response"""

    id: int
    ownerId: int
    title: str
    startTime: datetime
    endTime: datetime
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SlotDeleteResponse(BaseModel):
    message: str
    declinedOfferId: Optional[int] = None
