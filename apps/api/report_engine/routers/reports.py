"""Saved report endpoints - designer catalog, definition CRUD, execution and AI drafts."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from report_engine.core.config import settings
from report_engine.core.deps import get_current_session, get_db, require_csrf_header, require_roles
from report_engine.core.rate_limit import limiter
from report_engine.db.enums import (
    ROLES_CAN_DELETE_REPORTS,
    ROLES_CAN_GENERATE_REPORTS,
    ROLES_CAN_MANAGE_REPORTS,
    ReportVisibility,
)
from report_engine.schemas.auth import UserSession
from report_engine.schemas.report import (
    AIGenerateRequest,
    AIGenerateResponse,
    ExportRequest,
    ExportResponse,
    FavoriteResponse,
    ReportCreate,
    ReportFieldsResponse,
    ReportListResponse,
    ReportRead,
    ReportResult,
    ReportUpdate,
    RunReportRequest,
)
from report_engine.services import report_ai_service, report_execution_service, report_service
from report_engine.services.ai_query_service import (
    AIQueryClient,
    AIQueryError,
    AIQueryUnavailableError,
    get_ai_query_client,
)
from report_engine.services.report_executor import (
    ReportExecutor,
    ReportExecutorError,
    ReportExecutorTimeoutError,
    get_report_executor,
)
from report_engine.services.report_field_registry import build_field_registry
from report_engine.services.report_service import (
    ReportNotFoundError,
    ReportPermissionError,
    ReportServiceError,
    ReportValidationError,
)
from report_engine.utils.pagination import PaginationParams, get_pagination

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["reports"])


def _http_error(exc: ReportServiceError) -> HTTPException:
    if isinstance(exc, ReportNotFoundError):
        return HTTPException(status_code=404, detail="Report not found")
    if isinstance(exc, ReportPermissionError):
        return HTTPException(status_code=403, detail=str(exc))
    if isinstance(exc, ReportValidationError):
        return HTTPException(status_code=400, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


# =============================================================================
# Designer catalog (static paths before /{report_id})
# =============================================================================


@router.get("/fields/{entity_type}", response_model=ReportFieldsResponse)
def get_report_fields(
    entity_type: str,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Fields available to the designer, grouped for display."""
    registry = build_field_registry(db)
    groups = registry.get_field_groups(entity_type, session.org_id)
    return ReportFieldsResponse(
        entity_type=entity_type,
        field_groups=groups,
        total_fields=sum(len(g.fields) for g in groups),
    )


@router.get("/templates", response_model=list[ReportRead])
def list_report_templates(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return report_service.list_templates(db, session.org_id)


@router.post(
    "/ai-generate",
    response_model=AIGenerateResponse,
    dependencies=[Depends(require_csrf_header)],
)
@limiter.limit(settings.RATE_LIMIT_AI_GENERATE)
async def generate_report_from_query(
    request: Request,
    body: AIGenerateRequest,
    session: UserSession = Depends(require_roles(ROLES_CAN_GENERATE_REPORTS)),
    client: AIQueryClient = Depends(get_ai_query_client),
):
    """Draft a report from a natural language question. Nothing is saved."""
    try:
        return await report_ai_service.generate_report_draft(
            client, body.query, session.user_id, session.org_id
        )
    except AIQueryUnavailableError as exc:
        logger.warning("AI query service unavailable: %s", exc)
        raise HTTPException(status_code=503, detail="AI query service unavailable") from exc
    except AIQueryError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


# =============================================================================
# Definitions
# =============================================================================


@router.get("", response_model=ReportListResponse)
def list_reports(
    visibility: ReportVisibility | None = Query(None),
    is_template: bool | None = Query(None),
    search: str | None = Query(None, max_length=200),
    pagination: PaginationParams = Depends(get_pagination),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    items, total = report_service.list_reports(
        db,
        session.org_id,
        session.user_id,
        pagination,
        visibility=visibility,
        is_template=is_template,
        search=search,
    )
    return {
        "data": items,
        "total": total,
        "page": pagination.page,
        "page_size": pagination.page_size,
    }


@router.post(
    "",
    response_model=ReportRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_report(
    body: ReportCreate,
    request: Request,
    session: UserSession = Depends(require_roles(ROLES_CAN_MANAGE_REPORTS)),
    db: Session = Depends(get_db),
):
    try:
        return report_service.create_report(db, session.org_id, session.user_id, body, request)
    except ReportServiceError as exc:
        raise _http_error(exc) from exc


@router.get("/{report_id:uuid}", response_model=ReportRead)
def get_report(
    report_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    report = report_service.get_report(db, session.org_id, report_id)
    if not report:
        raise HTTPException(status_code=404, detail="Report not found")
    return report


@router.put(
    "/{report_id:uuid}",
    response_model=ReportRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_report(
    report_id: UUID,
    body: ReportUpdate,
    request: Request,
    session: UserSession = Depends(require_roles(ROLES_CAN_MANAGE_REPORTS)),
    db: Session = Depends(get_db),
):
    try:
        return report_service.update_report(
            db, session.org_id, session.user_id, session.role, report_id, body, request
        )
    except ReportServiceError as exc:
        raise _http_error(exc) from exc


@router.delete(
    "/{report_id:uuid}",
    status_code=204,
    dependencies=[Depends(require_csrf_header)],
)
def delete_report(
    report_id: UUID,
    request: Request,
    session: UserSession = Depends(require_roles(ROLES_CAN_DELETE_REPORTS)),
    db: Session = Depends(get_db),
):
    try:
        report_service.delete_report(
            db, session.org_id, session.user_id, session.role, report_id, request
        )
    except ReportServiceError as exc:
        raise _http_error(exc) from exc


@router.post(
    "/{report_id:uuid}/duplicate",
    response_model=ReportRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def duplicate_report(
    report_id: UUID,
    request: Request,
    session: UserSession = Depends(require_roles(ROLES_CAN_MANAGE_REPORTS)),
    db: Session = Depends(get_db),
):
    try:
        return report_service.duplicate_report(
            db, session.org_id, session.user_id, report_id, request
        )
    except ReportServiceError as exc:
        raise _http_error(exc) from exc


@router.post(
    "/{report_id:uuid}/favorite",
    response_model=FavoriteResponse,
    dependencies=[Depends(require_csrf_header)],
)
def toggle_favorite(
    report_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    try:
        is_favorite = report_service.toggle_favorite(db, session.org_id, report_id)
    except ReportServiceError as exc:
        raise _http_error(exc) from exc
    return FavoriteResponse(is_favorite=is_favorite)


# =============================================================================
# Execution and export
# =============================================================================


@router.post(
    "/{report_id:uuid}/run",
    response_model=ReportResult,
    dependencies=[Depends(require_csrf_header)],
)
@limiter.limit(settings.RATE_LIMIT_REPORT_RUN)
async def run_report(
    request: Request,
    report_id: UUID,
    body: RunReportRequest | None = None,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
    executor: ReportExecutor = Depends(get_report_executor),
):
    try:
        return await report_execution_service.run_report(
            db, session.org_id, report_id, executor, body
        )
    except ReportServiceError as exc:
        raise _http_error(exc) from exc
    except ReportExecutorTimeoutError as exc:
        raise HTTPException(status_code=504, detail="Report execution timed out") from exc
    except ReportExecutorError as exc:
        logger.warning("Report execution failed: %s", exc, extra={"report_id": str(report_id)})
        raise HTTPException(status_code=502, detail="Report execution failed") from exc


@router.post(
    "/{report_id:uuid}/export",
    response_model=ExportResponse,
    dependencies=[Depends(require_csrf_header)],
)
def export_report(
    report_id: UUID,
    request: Request,
    body: ExportRequest | None = None,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    export_format = (body or ExportRequest()).format
    try:
        return report_service.request_export(
            db, session.org_id, session.user_id, report_id, export_format.value, request
        )
    except ReportServiceError as exc:
        raise _http_error(exc) from exc
