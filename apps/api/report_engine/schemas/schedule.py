"""Pydantic schemas for report schedules (recurring export delivery)."""

import re
from datetime import datetime
from uuid import UUID
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator

from report_engine.db.enums import ScheduleType

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def _check_time(v: str | None) -> str | None:
    if v is not None and not TIME_PATTERN.match(v):
        raise ValueError("time must be HH:MM (24h)")
    return v


def _check_timezone(v: str | None) -> str | None:
    if v is None:
        return v
    try:
        ZoneInfo(v)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown timezone '{v}'") from exc
    return v


class ReportScheduleCreate(BaseModel):
    """Schema for binding a recurring export to a report.

    format is the report-facing name (EXCEL, CSV, PDF); anything else falls
    back to EXCEL.
    """

    name: str | None = Field(default=None, max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    format: str = "EXCEL"
    schedule_type: ScheduleType
    time: str | None = None
    day_of_week: int | None = Field(default=None, ge=0, le=6)
    day_of_month: int | None = Field(default=None, ge=1, le=28)
    timezone: str | None = None
    recipients: list[str] = Field(min_length=1)

    @field_validator("time")
    @classmethod
    def validate_time(cls, v: str | None) -> str | None:
        return _check_time(v)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str | None) -> str | None:
        return _check_timezone(v)


class ReportScheduleUpdate(BaseModel):
    """Partial schedule update."""

    name: str | None = Field(default=None, max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    format: str | None = None
    schedule_type: ScheduleType | None = None
    time: str | None = None
    day_of_week: int | None = Field(default=None, ge=0, le=6)
    day_of_month: int | None = Field(default=None, ge=1, le=28)
    timezone: str | None = None
    recipients: list[str] | None = Field(default=None, min_length=1)

    @field_validator("time")
    @classmethod
    def validate_time(cls, v: str | None) -> str | None:
        return _check_time(v)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str | None) -> str | None:
        return _check_timezone(v)


class ReportScheduleRead(BaseModel):
    id: UUID
    report_id: UUID
    name: str
    description: str | None
    format: str  # report-facing (EXCEL/CSV/PDF)
    schedule_type: str
    schedule_config: dict
    timezone: str
    recipients: list[str]
    is_active: bool
    last_run_at: datetime | None
    next_run_at: datetime | None


class ScheduleRunResponse(BaseModel):
    run_id: UUID
    status: str
