"""Scheduled export store - persistent side of recurring report delivery.

Delivery itself (rendering files, emailing recipients) is performed by the
scheduler worker, which picks up due schedules and PENDING runs.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Any
from uuid import UUID
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy.orm import Session

from report_engine.core.config import settings
from report_engine.db.enums import ScheduledExportRunStatus, ScheduleType
from report_engine.db.models import ScheduledExport, ScheduledExportRun

logger = logging.getLogger(__name__)

DEFAULT_DAY_OF_WEEK = 1  # Monday (0 = Sunday)
DEFAULT_DAY_OF_MONTH = 1
SCHEDULE_PARAMS = {"schedule_type", "schedule_config", "timezone"}


class ScheduleNotFoundError(Exception):
    """Scheduled export does not exist in the caller's organization."""

    def __init__(self, schedule_id: UUID | None):
        super().__init__(f"Scheduled export {schedule_id} not found")
        self.schedule_id = schedule_id


# =============================================================================
# Next-run calculation
# =============================================================================


def _get_timezone(name: str | None) -> ZoneInfo:
    try:
        return ZoneInfo(name or settings.SCHEDULE_DEFAULT_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown schedule timezone %r, using default", name)
        return ZoneInfo(settings.SCHEDULE_DEFAULT_TIMEZONE)


def _parse_time(value: str | None) -> time:
    hours, minutes = (value or settings.SCHEDULE_DEFAULT_TIME).split(":")
    return time(int(hours), int(minutes))


def _add_month(day: date) -> date:
    # Days of month are capped at 28, so the same day always exists
    if day.month == 12:
        return day.replace(year=day.year + 1, month=1)
    return day.replace(month=day.month + 1)


def calculate_next_run(
    schedule_type: ScheduleType | str,
    config: dict[str, Any] | None,
    tz_name: str | None,
    now: datetime | None = None,
) -> datetime:
    """
    Next occurrence strictly after ``now``, computed in the schedule's
    timezone and returned in UTC.

    - DAILY: every day at ``time``
    - WEEKLY: on ``day_of_week`` (0 = Sunday .. 6 = Saturday, default Monday)
    - MONTHLY: on ``day_of_month`` (1..28, default 1)
    """
    config = config or {}
    tz = _get_timezone(tz_name)
    now = now or datetime.now(timezone.utc)
    local_now = now.astimezone(tz)
    at = _parse_time(config.get("time"))
    schedule_type = ScheduleType(schedule_type)

    def localize(day: date) -> datetime:
        return datetime.combine(day, at, tzinfo=tz)

    today = local_now.date()
    if schedule_type == ScheduleType.WEEKLY:
        day_of_week = config.get("day_of_week")
        if day_of_week is None:
            day_of_week = DEFAULT_DAY_OF_WEEK
        # isoweekday: Monday=1 .. Sunday=7; % 7 gives Sunday=0
        delta = (int(day_of_week) - today.isoweekday() % 7) % 7
        candidate = localize(today + timedelta(days=delta))
        if candidate <= local_now:
            candidate = localize(today + timedelta(days=delta + 7))
    elif schedule_type == ScheduleType.MONTHLY:
        day_of_month = int(config.get("day_of_month") or DEFAULT_DAY_OF_MONTH)
        this_month = today.replace(day=day_of_month)
        candidate = localize(this_month)
        if candidate <= local_now:
            candidate = localize(_add_month(this_month))
    else:
        candidate = localize(today)
        if candidate <= local_now:
            candidate = localize(today + timedelta(days=1))

    return candidate.astimezone(timezone.utc)


# =============================================================================
# Store operations
# =============================================================================


def get_schedule(db: Session, org_id: UUID, schedule_id: UUID | None) -> ScheduledExport | None:
    if schedule_id is None:
        return None
    return (
        db.query(ScheduledExport)
        .filter(
            ScheduledExport.organization_id == org_id,
            ScheduledExport.id == schedule_id,
        )
        .first()
    )


def require_schedule(db: Session, org_id: UUID, schedule_id: UUID | None) -> ScheduledExport:
    schedule = get_schedule(db, org_id, schedule_id)
    if not schedule:
        raise ScheduleNotFoundError(schedule_id)
    return schedule


def create_schedule(
    db: Session,
    org_id: UUID,
    user_id: UUID | None,
    *,
    name: str,
    export_format: str,
    schedule_type: ScheduleType,
    schedule_config: dict[str, Any],
    recipients: list[str],
    tz_name: str | None = None,
    description: str | None = None,
) -> ScheduledExport:
    tz_name = tz_name or settings.SCHEDULE_DEFAULT_TIMEZONE
    schedule = ScheduledExport(
        organization_id=org_id,
        name=name,
        description=description,
        format=export_format,
        schedule_type=ScheduleType(schedule_type).value,
        schedule_config=schedule_config,
        timezone=tz_name,
        recipients=list(recipients),
        is_active=True,
        next_run_at=calculate_next_run(schedule_type, schedule_config, tz_name),
        created_by_user_id=user_id,
    )
    db.add(schedule)
    db.commit()
    db.refresh(schedule)
    logger.info(
        "Created scheduled export %s", schedule.id,
        extra={"org_id": str(org_id), "schedule_type": schedule.schedule_type},
    )
    return schedule


def update_schedule(
    db: Session,
    org_id: UUID,
    schedule_id: UUID,
    changes: dict[str, Any],
    *,
    commit: bool = True,
) -> ScheduledExport:
    """
    Apply column changes; next_run_at is recalculated when schedule_type,
    schedule_config or timezone is among them.
    """
    schedule = require_schedule(db, org_id, schedule_id)
    for attr, value in changes.items():
        setattr(schedule, attr, value)
    if SCHEDULE_PARAMS & changes.keys():
        schedule.next_run_at = calculate_next_run(
            schedule.schedule_type, schedule.schedule_config, schedule.timezone
        )
    if commit:
        db.commit()
        db.refresh(schedule)
    return schedule


def delete_schedule(db: Session, org_id: UUID, schedule_id: UUID, *, commit: bool = True) -> None:
    schedule = require_schedule(db, org_id, schedule_id)
    db.delete(schedule)
    if commit:
        db.commit()
    logger.info("Deleted scheduled export %s", schedule_id, extra={"org_id": str(org_id)})


def pause_schedule(db: Session, org_id: UUID, schedule_id: UUID) -> ScheduledExport:
    schedule = require_schedule(db, org_id, schedule_id)
    schedule.is_active = False
    db.commit()
    db.refresh(schedule)
    return schedule


def resume_schedule(db: Session, org_id: UUID, schedule_id: UUID) -> ScheduledExport:
    """Reactivate and recompute the next run from now."""
    schedule = require_schedule(db, org_id, schedule_id)
    schedule.is_active = True
    schedule.next_run_at = calculate_next_run(
        schedule.schedule_type, schedule.schedule_config, schedule.timezone
    )
    db.commit()
    db.refresh(schedule)
    return schedule


def run_now(
    db: Session,
    org_id: UUID,
    schedule_id: UUID,
    user_id: UUID | None = None,
) -> ScheduledExportRun:
    """Record a PENDING run for the scheduler worker to pick up."""
    schedule = require_schedule(db, org_id, schedule_id)
    run = ScheduledExportRun(
        scheduled_export_id=schedule.id,
        organization_id=org_id,
        status=ScheduledExportRunStatus.PENDING.value,
        requested_by_user_id=user_id,
    )
    db.add(run)
    db.commit()
    db.refresh(run)
    logger.info("Queued immediate run %s for scheduled export %s", run.id, schedule.id)
    return run
