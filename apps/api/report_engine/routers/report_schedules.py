"""Report schedule endpoints - one recurring export per saved report."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from report_engine.core.deps import get_current_session, get_db, require_csrf_header, require_roles
from report_engine.db.enums import ROLES_CAN_MANAGE_REPORTS
from report_engine.schemas.auth import UserSession
from report_engine.schemas.schedule import (
    ReportScheduleCreate,
    ReportScheduleRead,
    ReportScheduleUpdate,
    ScheduleRunResponse,
)
from report_engine.services import report_schedule_service
from report_engine.services.report_schedule_service import (
    ScheduleAlreadyExistsError,
    ScheduleLinkError,
)
from report_engine.services.report_service import ReportNotFoundError
from report_engine.services.scheduled_export_service import ScheduleNotFoundError

router = APIRouter(prefix="/reports", tags=["report-schedules"])

manage_schedule = require_roles(ROLES_CAN_MANAGE_REPORTS)


@router.post(
    "/{report_id:uuid}/schedule",
    response_model=ReportScheduleRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_schedule(
    report_id: UUID,
    body: ReportScheduleCreate,
    request: Request,
    session: UserSession = Depends(manage_schedule),
    db: Session = Depends(get_db),
):
    try:
        return report_schedule_service.create_report_schedule(
            db, session.org_id, session.user_id, report_id, body, request
        )
    except ReportNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Report not found") from exc
    except ScheduleAlreadyExistsError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ScheduleLinkError as exc:
        raise HTTPException(
            status_code=500,
            detail={
                "message": "Schedule was created but could not be linked to the report",
                "schedule_id": str(exc.schedule_id),
            },
        ) from exc


@router.get("/{report_id:uuid}/schedule", response_model=ReportScheduleRead)
def get_schedule(
    report_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    try:
        return report_schedule_service.get_report_schedule(db, session.org_id, report_id)
    except ReportNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Report not found") from exc
    except ScheduleNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Schedule not found") from exc


@router.put(
    "/{report_id:uuid}/schedule",
    response_model=ReportScheduleRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_schedule(
    report_id: UUID,
    body: ReportScheduleUpdate,
    request: Request,
    session: UserSession = Depends(manage_schedule),
    db: Session = Depends(get_db),
):
    try:
        return report_schedule_service.update_report_schedule(
            db, session.org_id, session.user_id, report_id, body, request
        )
    except ReportNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Report not found") from exc
    except ScheduleNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Schedule not found") from exc


@router.delete(
    "/{report_id:uuid}/schedule",
    status_code=204,
    dependencies=[Depends(require_csrf_header)],
)
def delete_schedule(
    report_id: UUID,
    request: Request,
    session: UserSession = Depends(manage_schedule),
    db: Session = Depends(get_db),
):
    try:
        report_schedule_service.delete_report_schedule(
            db, session.org_id, session.user_id, report_id, request
        )
    except ReportNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Report not found") from exc
    except ScheduleNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Schedule not found") from exc


@router.post(
    "/{report_id:uuid}/schedule/pause",
    response_model=ReportScheduleRead,
    dependencies=[Depends(require_csrf_header)],
)
def pause_schedule(
    report_id: UUID,
    session: UserSession = Depends(manage_schedule),
    db: Session = Depends(get_db),
):
    try:
        return report_schedule_service.pause_report_schedule(db, session.org_id, report_id)
    except ReportNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Report not found") from exc
    except ScheduleNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Schedule not found") from exc


@router.post(
    "/{report_id:uuid}/schedule/resume",
    response_model=ReportScheduleRead,
    dependencies=[Depends(require_csrf_header)],
)
def resume_schedule(
    report_id: UUID,
    session: UserSession = Depends(manage_schedule),
    db: Session = Depends(get_db),
):
    try:
        return report_schedule_service.resume_report_schedule(db, session.org_id, report_id)
    except ReportNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Report not found") from exc
    except ScheduleNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Schedule not found") from exc


@router.post(
    "/{report_id:uuid}/schedule/run-now",
    response_model=ScheduleRunResponse,
    status_code=202,
    dependencies=[Depends(require_csrf_header)],
)
def run_schedule_now(
    report_id: UUID,
    session: UserSession = Depends(manage_schedule),
    db: Session = Depends(get_db),
):
    try:
        run = report_schedule_service.run_report_schedule_now(
            db, session.org_id, session.user_id, report_id
        )
    except ReportNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Report not found") from exc
    except ScheduleNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Schedule not found") from exc
    return ScheduleRunResponse(run_id=run.id, status=run.status)
