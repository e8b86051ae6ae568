"""Saved report service - definition lifecycle, visibility and ownership rules.

Every query is scoped by organization_id; a report in another organization
behaves exactly like a report that does not exist.
"""

from __future__ import annotations

import copy
import logging
import time
from typing import Any
from uuid import UUID

from fastapi import Request
from sqlalchemy import or_
from sqlalchemy.orm import Session

from report_engine.db.enums import (
    ROLES_REPORT_ADMIN,
    AggregationFunction,
    AuditEventType,
    ReportEntityType,
    ReportVisibility,
    Role,
)
from report_engine.db.models import SavedReport
from report_engine.schemas.report import ReportCreate, ReportUpdate
from report_engine.services import audit_service
from report_engine.services.report_field_registry import build_field_registry
from report_engine.services.report_filters import (
    describe_filters,
    invalid_conditions,
    referenced_fields,
)
from report_engine.utils.normalization import LIKE_ESCAPE, escape_like_string
from report_engine.utils.pagination import PaginationParams, paginate_query

logger = logging.getLogger(__name__)

AUDIT_TARGET = "saved_report"
COPY_SUFFIX = " (Copy)"

# Columns that may not be cleared through an update payload
NON_NULLABLE_FIELDS = {
    "name",
    "entity_type",
    "columns",
    "filters",
    "visualization",
    "is_template",
    "visibility",
    "is_favorite",
}
CONFIG_FIELDS = {"entity_type", "columns", "filters", "group_by", "sort_by", "aggregation"}


class ReportServiceError(Exception):
    """Base error for saved report operations."""


class ReportValidationError(ReportServiceError):
    """Unknown entity type, unknown field ids or unrunnable configuration."""

    def __init__(self, message: str, invalid_fields: list[str] | None = None):
        super().__init__(message)
        self.invalid_fields = invalid_fields or []


class ReportNotFoundError(ReportServiceError):
    """Report does not exist in the caller's organization."""

    def __init__(self, report_id: UUID):
        super().__init__(f"Report {report_id} not found")
        self.report_id = report_id


class ReportPermissionError(ReportServiceError):
    """Caller is neither the creator nor an administrator."""


# =============================================================================
# Validation
# =============================================================================


def validate_entity_type(entity_type: str) -> ReportEntityType:
    if not ReportEntityType.has_value(entity_type):
        valid = ", ".join(e.value for e in ReportEntityType)
        raise ReportValidationError(
            f"Invalid entity_type '{entity_type}'. Must be one of: {valid}"
        )
    return ReportEntityType(entity_type)


def validate_report_config(
    db: Session,
    org_id: UUID,
    entity_type: ReportEntityType,
    *,
    columns: list[str],
    filters: list,
    group_by: list[str] | None = None,
    sort_by: str | None = None,
    aggregation: list[dict] | None = None,
) -> None:
    """Reject field ids outside the catalog and aggregations it cannot run."""
    registry = build_field_registry(db)
    aggregation = aggregation or []
    referenced = [
        *columns,
        *referenced_fields(filters),
        *(group_by or []),
        *([sort_by] if sort_by else []),
        *(a["field"] for a in aggregation),
    ]
    result = registry.validate_fields(entity_type, org_id, referenced)
    if not result.valid:
        raise ReportValidationError(
            f"Unknown fields for {entity_type.value}: {', '.join(result.invalid_fields)}",
            invalid_fields=result.invalid_fields,
        )

    problems = invalid_conditions(filters)
    if problems:
        raise ReportValidationError("Invalid filter conditions: " + "; ".join(problems))

    for agg in aggregation:
        if agg["function"] == AggregationFunction.COUNT.value:
            continue
        definition = registry.get_field(entity_type, org_id, agg["field"])
        if definition is None or not definition.aggregatable:
            raise ReportValidationError(
                f"Field '{agg['field']}' cannot be aggregated with {agg['function']}",
                invalid_fields=[agg["field"]],
            )


def _can_modify(report: SavedReport, user_id: UUID, role: Role) -> bool:
    return report.created_by_user_id == user_id or role in ROLES_REPORT_ADMIN


# =============================================================================
# Queries
# =============================================================================


def get_report(db: Session, org_id: UUID, report_id: UUID) -> SavedReport | None:
    return (
        db.query(SavedReport)
        .filter(
            SavedReport.organization_id == org_id,
            SavedReport.id == report_id,
        )
        .first()
    )


def require_report(db: Session, org_id: UUID, report_id: UUID) -> SavedReport:
    report = get_report(db, org_id, report_id)
    if not report:
        raise ReportNotFoundError(report_id)
    return report


def list_reports(
    db: Session,
    org_id: UUID,
    user_id: UUID,
    pagination: PaginationParams,
    *,
    visibility: ReportVisibility | None = None,
    is_template: bool | None = None,
    search: str | None = None,
) -> tuple[list[SavedReport], int]:
    """
    List reports visible to the caller, most recently updated first.

    - no visibility filter: own reports plus TEAM/EVERYONE reports
    - PRIVATE: only the caller's own private reports (administrators included)
    - TEAM / EVERYONE: every report with that visibility

    search (name or description, case-insensitive) joins the default
    visibility OR-list, so it widens that listing rather than narrowing it.
    With an explicit visibility it narrows.
    """
    query = db.query(SavedReport).filter(SavedReport.organization_id == org_id)

    search_clauses = []
    if search:
        pattern = f"%{escape_like_string(search)}%"
        search_clauses = [
            SavedReport.name.ilike(pattern, escape=LIKE_ESCAPE),
            SavedReport.description.ilike(pattern, escape=LIKE_ESCAPE),
        ]

    if visibility is None:
        query = query.filter(
            or_(
                SavedReport.created_by_user_id == user_id,
                SavedReport.visibility.in_(
                    [ReportVisibility.TEAM.value, ReportVisibility.EVERYONE.value]
                ),
                *search_clauses,
            )
        )
    else:
        if visibility == ReportVisibility.PRIVATE:
            query = query.filter(SavedReport.created_by_user_id == user_id)
        query = query.filter(SavedReport.visibility == visibility.value)
        if search_clauses:
            query = query.filter(or_(*search_clauses))

    if is_template is not None:
        query = query.filter(SavedReport.is_template.is_(is_template))

    query = query.order_by(SavedReport.updated_at.desc(), SavedReport.id)
    return paginate_query(query, pagination)


def list_templates(db: Session, org_id: UUID) -> list[SavedReport]:
    return (
        db.query(SavedReport)
        .filter(
            SavedReport.organization_id == org_id,
            SavedReport.is_template.is_(True),
        )
        .order_by(SavedReport.template_category, SavedReport.name)
        .all()
    )


# =============================================================================
# Mutations
# =============================================================================


def create_report(
    db: Session,
    org_id: UUID,
    user_id: UUID,
    data: ReportCreate,
    request: Request | None = None,
) -> SavedReport:
    entity_type = validate_entity_type(data.entity_type)
    aggregation = [a.model_dump(mode="json") for a in data.aggregation] if data.aggregation else None
    validate_report_config(
        db,
        org_id,
        entity_type,
        columns=data.columns,
        filters=data.filters,
        group_by=data.group_by,
        sort_by=data.sort_by,
        aggregation=aggregation,
    )

    report = SavedReport(
        organization_id=org_id,
        created_by_user_id=user_id,
        name=data.name,
        description=data.description or None,
        entity_type=entity_type.value,
        columns=list(data.columns),
        filters=list(data.filters),
        group_by=data.group_by,
        aggregation=aggregation,
        visualization=data.visualization.value,
        chart_config=data.chart_config.model_dump(mode="json", exclude_none=True)
        if data.chart_config
        else None,
        sort_by=data.sort_by,
        sort_order=data.sort_order.value if data.sort_order else None,
        is_template=data.is_template,
        template_category=data.template_category.value if data.template_category else None,
        visibility=data.visibility.value,
    )
    db.add(report)
    db.flush()

    audit_service.log_event(
        db,
        org_id=org_id,
        event_type=AuditEventType.REPORT_CREATED,
        actor_user_id=user_id,
        target_type=AUDIT_TARGET,
        target_id=report.id,
        details={
            "name": report.name,
            "entity_type": report.entity_type,
            "filters": describe_filters(report.filters),
        },
        request=request,
    )
    db.commit()
    db.refresh(report)
    return report


def _audit_value(field: str, value: Any) -> Any:
    if field == "filters":
        return describe_filters(value)
    return value


def update_report(
    db: Session,
    org_id: UUID,
    user_id: UUID,
    role: Role,
    report_id: UUID,
    data: ReportUpdate,
    request: Request | None = None,
) -> SavedReport:
    """
    Apply a partial update. Only fields present in the payload are touched;
    the audit entry carries old/new values for the ones that changed.
    """
    report = require_report(db, org_id, report_id)
    if not _can_modify(report, user_id, role):
        raise ReportPermissionError("Only the report creator or an administrator can update it")

    payload = {
        key: value
        for key, value in data.model_dump(mode="json", exclude_unset=True).items()
        if value is not None or key not in NON_NULLABLE_FIELDS
    }
    if "description" in payload:
        payload["description"] = payload["description"] or None
    if "chart_config" in payload and payload["chart_config"] is not None:
        payload["chart_config"] = {
            k: v for k, v in payload["chart_config"].items() if v is not None
        }

    if "entity_type" in payload:
        validate_entity_type(payload["entity_type"])
    if CONFIG_FIELDS & payload.keys():
        validate_report_config(
            db,
            org_id,
            ReportEntityType(payload.get("entity_type", report.entity_type)),
            columns=payload.get("columns", report.columns),
            filters=payload.get("filters", report.filters),
            group_by=payload.get("group_by", report.group_by),
            sort_by=payload.get("sort_by", report.sort_by),
            aggregation=payload.get("aggregation", report.aggregation),
        )

    changes: dict[str, dict[str, Any]] = {}
    for field, new_value in payload.items():
        old_value = getattr(report, field)
        if old_value != new_value:
            changes[field] = {
                "old": _audit_value(field, old_value),
                "new": _audit_value(field, new_value),
            }
            setattr(report, field, new_value)

    if changes:
        audit_service.log_event(
            db,
            org_id=org_id,
            event_type=AuditEventType.REPORT_UPDATED,
            actor_user_id=user_id,
            target_type=AUDIT_TARGET,
            target_id=report.id,
            details={"changes": changes},
            request=request,
        )
    db.commit()
    db.refresh(report)
    return report


def delete_report(
    db: Session,
    org_id: UUID,
    user_id: UUID,
    role: Role,
    report_id: UUID,
    request: Request | None = None,
) -> None:
    """Hard delete. A bound schedule is left for the caller to remove."""
    report = require_report(db, org_id, report_id)
    if not _can_modify(report, user_id, role):
        raise ReportPermissionError("Only the report creator or an administrator can delete it")

    audit_service.log_event(
        db,
        org_id=org_id,
        event_type=AuditEventType.REPORT_DELETED,
        actor_user_id=user_id,
        target_type=AUDIT_TARGET,
        target_id=report.id,
        details={"name": report.name, "entity_type": report.entity_type},
        request=request,
    )
    db.delete(report)
    db.commit()


def duplicate_report(
    db: Session,
    org_id: UUID,
    user_id: UUID,
    report_id: UUID,
    request: Request | None = None,
) -> SavedReport:
    """Private, non-template, non-favorite copy owned by the caller."""
    source = require_report(db, org_id, report_id)

    copy_report = SavedReport(
        organization_id=org_id,
        created_by_user_id=user_id,
        name=f"{source.name}{COPY_SUFFIX}",
        description=source.description,
        entity_type=source.entity_type,
        columns=copy.deepcopy(source.columns),
        filters=copy.deepcopy(source.filters),
        group_by=copy.deepcopy(source.group_by),
        aggregation=copy.deepcopy(source.aggregation),
        visualization=source.visualization,
        chart_config=copy.deepcopy(source.chart_config),
        sort_by=source.sort_by,
        sort_order=source.sort_order,
        is_template=False,
        template_category=None,
        visibility=ReportVisibility.PRIVATE.value,
        is_favorite=False,
    )
    db.add(copy_report)
    db.flush()

    audit_service.log_event(
        db,
        org_id=org_id,
        event_type=AuditEventType.REPORT_DUPLICATED,
        actor_user_id=user_id,
        target_type=AUDIT_TARGET,
        target_id=copy_report.id,
        details={"source_report_id": str(source.id), "name": copy_report.name},
        request=request,
    )
    db.commit()
    db.refresh(copy_report)
    return copy_report


def toggle_favorite(db: Session, org_id: UUID, report_id: UUID) -> bool:
    """Flip is_favorite and return the new value (last writer wins)."""
    report = require_report(db, org_id, report_id)
    report.is_favorite = not report.is_favorite
    db.commit()
    return report.is_favorite


def request_export(
    db: Session,
    org_id: UUID,
    user_id: UUID,
    report_id: UUID,
    export_format: str,
    request: Request | None = None,
) -> dict[str, Any]:
    """Acknowledge an export request. File rendering happens elsewhere."""
    report = require_report(db, org_id, report_id)
    job_id = f"export-{report.id}-{int(time.time() * 1000)}"
    audit_service.log_event(
        db,
        org_id=org_id,
        event_type=AuditEventType.REPORT_EXPORT_REQUESTED,
        actor_user_id=user_id,
        target_type=AUDIT_TARGET,
        target_id=report.id,
        details={"format": export_format, "job_id": job_id},
        request=request,
    )
    db.commit()
    logger.info("Report export requested", extra={"report_id": str(report.id), "job_id": job_id})
    return {"status": "PENDING", "job_id": job_id, "download_url": None}
