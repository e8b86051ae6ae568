"""Report execution - turns a saved report into a ReportConfig and runs it.

Run statistics (last_run_at / last_run_duration / last_run_row_count) are
written only after the executor returns a result. Executor failures,
timeouts and cancellation propagate untouched and leave them as they were.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.orm import Session

from report_engine.core.config import settings
from report_engine.core.structured_logging import build_log_context
from report_engine.db.models import SavedReport
from report_engine.schemas.report import (
    ReportAggregationSpec,
    ReportConfig,
    ReportFilterItem,
    ReportResult,
    RunReportRequest,
)
from report_engine.services.report_executor import ReportExecutor
from report_engine.services.report_filters import (
    date_range_condition,
    flatten_filters,
    has_or_groups,
)
from report_engine.services.report_service import ReportValidationError, require_report

logger = logging.getLogger(__name__)


def build_aggregation(aggregation) -> ReportAggregationSpec | None:
    """Only the first stored aggregation is executed."""
    if not aggregation or not isinstance(aggregation, list):
        return None
    first = aggregation[0]
    if not isinstance(first, dict) or not first.get("function"):
        return None
    return ReportAggregationSpec(
        function=str(first["function"]).upper(),
        field=first.get("field"),
    )


def build_report_config(
    report: SavedReport,
    options: RunReportRequest | None = None,
    *,
    now: datetime | None = None,
) -> ReportConfig:
    """Assemble the execution-ready config for one run.

    Raises:
        ReportValidationError: unparseable date range bound
    """
    options = options or RunReportRequest()
    source_filters = (
        options.override_filters if options.override_filters is not None else report.filters
    )
    if has_or_groups(source_filters):
        logger.warning(
            "Report filters contain OR groups; executing them as a conjunctive list",
            extra=build_log_context(org_id=report.organization_id, report_id=report.id),
        )
    conditions = flatten_filters(source_filters)

    if options.date_range_start or options.date_range_end:
        try:
            conditions.append(
                date_range_condition(options.date_range_start, options.date_range_end, now=now)
            )
        except ValueError as exc:
            raise ReportValidationError(f"Invalid date range: {exc}") from exc

    return ReportConfig(
        entity_type=report.entity_type,
        columns=list(report.columns or []),
        filters=[ReportFilterItem(**c.to_dict()) for c in conditions],
        group_by=report.group_by or None,
        aggregation=build_aggregation(report.aggregation),
        sort_by=report.sort_by or None,
        sort_order=report.sort_order or None,
        limit=options.limit or settings.REPORT_RUN_LIMIT_DEFAULT,
        offset=options.offset or 0,
    )


def record_run_stats(
    db: Session,
    org_id: UUID,
    report_id: UUID,
    *,
    duration_ms: int,
    row_count: int,
) -> None:
    """Plain UPDATE of the run columns; concurrent runs are last-writer-wins."""
    db.execute(
        update(SavedReport)
        .where(SavedReport.organization_id == org_id, SavedReport.id == report_id)
        .values(
            last_run_at=datetime.now(timezone.utc),
            last_run_duration=duration_ms,
            last_run_row_count=row_count,
        )
        .execution_options(synchronize_session="fetch")
    )
    db.commit()


async def run_report(
    db: Session,
    org_id: UUID,
    report_id: UUID,
    executor: ReportExecutor,
    options: RunReportRequest | None = None,
) -> ReportResult:
    """
    Execute a saved report.

    Raises:
        ReportNotFoundError: report missing or owned by another organization
        ReportValidationError: bad runtime overrides
        ReportExecutorError: propagated from the executor
    """
    report = require_report(db, org_id, report_id)
    config = build_report_config(report, options)

    started = time.perf_counter()
    result = await executor.execute(config, org_id)
    duration_ms = max(0, int((time.perf_counter() - started) * 1000))

    record_run_stats(
        db,
        org_id,
        report.id,
        duration_ms=duration_ms,
        row_count=result.total_count,
    )
    logger.info(
        "Report executed in %sms (%s rows)",
        duration_ms,
        result.total_count,
        extra=build_log_context(
            org_id=org_id, report_id=report_id, entity_type=config.entity_type
        ),
    )
    return result
