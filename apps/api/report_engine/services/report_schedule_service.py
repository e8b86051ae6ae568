"""Schedule binding - attaches one scheduled export to a saved report.

The report holds the link (saved_reports.scheduled_export_id); the schedule
itself lives in the scheduled export store. Create writes the schedule first
and links it second, so a failed link leaves an orphaned schedule that is
reported to the caller through ScheduleLinkError.
"""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from report_engine.core.structured_logging import build_log_context
from report_engine.db.enums import AuditEventType, ExportFormat, ReportExportFormat
from report_engine.db.models import SavedReport, ScheduledExport, ScheduledExportRun
from report_engine.schemas.schedule import ReportScheduleCreate, ReportScheduleUpdate
from report_engine.services import audit_service, scheduled_export_service
from report_engine.services.report_service import require_report
from report_engine.services.scheduled_export_service import ScheduleNotFoundError

logger = logging.getLogger(__name__)

AUDIT_TARGET = "scheduled_export"
CONFIG_KEYS = ("time", "day_of_week", "day_of_month")

_TO_SCHEDULER = {
    ReportExportFormat.EXCEL.value: ExportFormat.XLSX,
    ReportExportFormat.CSV.value: ExportFormat.CSV,
    ReportExportFormat.PDF.value: ExportFormat.PDF,
}
_FROM_SCHEDULER = {
    ExportFormat.XLSX.value: ReportExportFormat.EXCEL,
    ExportFormat.CSV.value: ReportExportFormat.CSV,
    ExportFormat.PDF.value: ReportExportFormat.PDF,
}


class ScheduleAlreadyExistsError(Exception):
    """The report already has a bound schedule; update it instead."""

    def __init__(self, report_id: UUID):
        super().__init__(f"Report {report_id} already has a schedule. Use update instead.")
        self.report_id = report_id


class ScheduleLinkError(Exception):
    """The schedule was stored but could not be linked to the report."""

    def __init__(self, report_id: UUID, schedule_id: UUID):
        super().__init__(
            f"Schedule {schedule_id} was created but could not be linked to report {report_id}"
        )
        self.report_id = report_id
        self.schedule_id = schedule_id


def to_scheduler_format(value: str | None) -> ExportFormat:
    return _TO_SCHEDULER.get((value or "").upper(), ExportFormat.XLSX)


def from_scheduler_format(value: str | None) -> ReportExportFormat:
    return _FROM_SCHEDULER.get((value or "").upper(), ReportExportFormat.EXCEL)


def to_schedule_read(report: SavedReport, schedule: ScheduledExport) -> dict[str, Any]:
    return {
        "id": schedule.id,
        "report_id": report.id,
        "name": schedule.name,
        "description": schedule.description,
        "format": from_scheduler_format(schedule.format).value,
        "schedule_type": schedule.schedule_type,
        "schedule_config": schedule.schedule_config or {},
        "timezone": schedule.timezone,
        "recipients": schedule.recipients or [],
        "is_active": schedule.is_active,
        "last_run_at": schedule.last_run_at,
        "next_run_at": schedule.next_run_at,
    }


def _schedule_config(data: ReportScheduleCreate | ReportScheduleUpdate) -> dict[str, Any]:
    return {key: getattr(data, key) for key in CONFIG_KEYS if getattr(data, key) is not None}


def _bound_schedule(db: Session, org_id: UUID, report: SavedReport) -> ScheduledExport:
    return scheduled_export_service.require_schedule(db, org_id, report.scheduled_export_id)


def _audit(
    db: Session,
    org_id: UUID,
    user_id: UUID,
    event_type: AuditEventType,
    report: SavedReport,
    schedule_id: UUID,
    request: Request | None,
    **details: Any,
) -> None:
    audit_service.log_event(
        db,
        org_id=org_id,
        event_type=event_type,
        actor_user_id=user_id,
        target_type=AUDIT_TARGET,
        target_id=schedule_id,
        details={"report_id": str(report.id), **details},
        request=request,
    )


def create_report_schedule(
    db: Session,
    org_id: UUID,
    user_id: UUID,
    report_id: UUID,
    data: ReportScheduleCreate,
    request: Request | None = None,
) -> dict[str, Any]:
    """
    Store a schedule and link it to the report.

    Raises:
        ReportNotFoundError: report missing
        ScheduleAlreadyExistsError: a schedule is already bound
        ScheduleLinkError: schedule stored but the link write failed
    """
    report = require_report(db, org_id, report_id)
    if report.scheduled_export_id is not None:
        raise ScheduleAlreadyExistsError(report.id)

    schedule = scheduled_export_service.create_schedule(
        db,
        org_id,
        user_id,
        name=data.name or report.name,
        description=data.description,
        export_format=to_scheduler_format(data.format).value,
        schedule_type=data.schedule_type,
        schedule_config=_schedule_config(data),
        recipients=data.recipients,
        tz_name=data.timezone,
    )

    try:
        report.scheduled_export_id = schedule.id
        _audit(
            db, org_id, user_id, AuditEventType.REPORT_SCHEDULE_CREATED, report, schedule.id,
            request, schedule_type=schedule.schedule_type, recipient_count=len(schedule.recipients),
        )
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(
            "Failed to link schedule %s to report", schedule.id,
            extra=build_log_context(org_id=org_id, report_id=report_id),
            exc_info=True,
        )
        raise ScheduleLinkError(report_id, schedule.id) from exc

    db.refresh(report)
    return to_schedule_read(report, schedule)


def get_report_schedule(db: Session, org_id: UUID, report_id: UUID) -> dict[str, Any]:
    report = require_report(db, org_id, report_id)
    return to_schedule_read(report, _bound_schedule(db, org_id, report))


def update_report_schedule(
    db: Session,
    org_id: UUID,
    user_id: UUID,
    report_id: UUID,
    data: ReportScheduleUpdate,
    request: Request | None = None,
) -> dict[str, Any]:
    report = require_report(db, org_id, report_id)
    schedule = _bound_schedule(db, org_id, report)

    payload = data.model_dump(exclude_unset=True, exclude_none=True)
    changes: dict[str, Any] = {}
    for key in ("name", "description", "timezone", "recipients"):
        if key in payload:
            changes[key] = payload[key]
    if "format" in payload:
        changes["format"] = to_scheduler_format(payload["format"]).value
    if "schedule_type" in payload:
        changes["schedule_type"] = payload["schedule_type"].value
    config_changes = _schedule_config(data)
    if config_changes:
        changes["schedule_config"] = {**(schedule.schedule_config or {}), **config_changes}

    schedule = scheduled_export_service.update_schedule(
        db, org_id, schedule.id, changes, commit=False
    )
    if changes:
        _audit(
            db, org_id, user_id, AuditEventType.REPORT_SCHEDULE_UPDATED, report, schedule.id,
            request, changed=sorted(changes),
        )
    db.commit()
    db.refresh(schedule)
    return to_schedule_read(report, schedule)


def delete_report_schedule(
    db: Session,
    org_id: UUID,
    user_id: UUID,
    report_id: UUID,
    request: Request | None = None,
) -> None:
    """Delete the stored schedule and clear the link in one transaction.

    A link pointing at a schedule that no longer exists is cleared as well.
    """
    report = require_report(db, org_id, report_id)
    schedule_id = report.scheduled_export_id
    if schedule_id is None:
        raise ScheduleNotFoundError(None)

    try:
        scheduled_export_service.delete_schedule(db, org_id, schedule_id, commit=False)
    except ScheduleNotFoundError:
        logger.warning(
            "Clearing link to missing schedule %s", schedule_id,
            extra=build_log_context(org_id=org_id, report_id=report_id),
        )
    report.scheduled_export_id = None
    _audit(db, org_id, user_id, AuditEventType.REPORT_SCHEDULE_DELETED, report, schedule_id, request)
    db.commit()


def pause_report_schedule(db: Session, org_id: UUID, report_id: UUID) -> dict[str, Any]:
    report = require_report(db, org_id, report_id)
    schedule = _bound_schedule(db, org_id, report)
    schedule = scheduled_export_service.pause_schedule(db, org_id, schedule.id)
    return to_schedule_read(report, schedule)


def resume_report_schedule(db: Session, org_id: UUID, report_id: UUID) -> dict[str, Any]:
    report = require_report(db, org_id, report_id)
    schedule = _bound_schedule(db, org_id, report)
    schedule = scheduled_export_service.resume_schedule(db, org_id, schedule.id)
    return to_schedule_read(report, schedule)


def run_report_schedule_now(
    db: Session,
    org_id: UUID,
    user_id: UUID,
    report_id: UUID,
) -> ScheduledExportRun:
    report = require_report(db, org_id, report_id)
    schedule = _bound_schedule(db, org_id, report)
    return scheduled_export_service.run_now(db, org_id, schedule.id, user_id)
