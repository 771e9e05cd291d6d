"""Study plan schemas."""

from datetime import date, datetime
from uuid import UUID

from pydantic import Field, field_validator, model_validator

from sattrack.schemas.base import BaseSchema

HHMM_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class StudyPlanBase(BaseSchema):
    """Base study plan schema."""

    date: str = Field(..., min_length=10, max_length=10)
    section: str = Field(..., min_length=1, max_length=50)
    start_time: str = Field(..., pattern=HHMM_PATTERN)
    end_time: str = Field(..., pattern=HHMM_PATTERN)
    tasks_text: str | None = None

    @field_validator("date")
    @classmethod
    def validate_date(cls, value: str) -> str:
        """Ensure date is a real YYYY-MM-DD calendar day."""
        date.fromisoformat(value)
        return value

    @model_validator(mode="after")
    def validate_time_range(self) -> "StudyPlanBase":
        """Ensure the session does not start and end at the same minute."""
        if self.start_time == self.end_time:
            raise ValueError("end_time must differ from start_time")
        return self


class StudyPlanCreate(StudyPlanBase):
    """Schema for creating a study plan."""


class StudyPlanRead(StudyPlanBase):
    """Schema for reading study plan data."""

    id: UUID
    user_id: UUID
    created_at: datetime


class StudyPlanUpdate(BaseSchema):
    """Schema for updating a study plan. All fields optional."""

    date: str | None = Field(None, min_length=10, max_length=10)
    section: str | None = Field(None, min_length=1, max_length=50)
    start_time: str | None = Field(None, pattern=HHMM_PATTERN)
    end_time: str | None = Field(None, pattern=HHMM_PATTERN)
    tasks_text: str | None = None

    @field_validator("date")
    @classmethod
    def validate_date(cls, value: str | None) -> str | None:
        if value is not None:
            date.fromisoformat(value)
        return value
