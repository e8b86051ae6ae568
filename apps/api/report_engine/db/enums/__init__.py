"""Enum definitions for application constants."""

from report_engine.db.enums.audit import AuditEventType
from report_engine.db.enums.auth import Role
from report_engine.db.enums.custom_fields import CustomFieldDataType, CustomFieldEntityType
from report_engine.db.enums.permissions import (
    ROLES_CAN_DELETE_REPORTS,
    ROLES_CAN_GENERATE_REPORTS,
    ROLES_CAN_MANAGE_REPORTS,
    ROLES_CAN_MANAGE_SETTINGS,
    ROLES_REPORT_ADMIN,
)
from report_engine.db.enums.reports import (
    AggregationFunction,
    FilterLogic,
    FilterOperator,
    ReportEntityType,
    ReportFieldType,
    ReportVisibility,
    ReportVisualization,
    SortOrder,
    TemplateCategory,
)
from report_engine.db.enums.schedules import (
    ExportFormat,
    ReportExportFormat,
    ScheduledExportRunStatus,
    ScheduleType,
)

__all__ = [
    "AggregationFunction",
    "AuditEventType",
    "CustomFieldDataType",
    "CustomFieldEntityType",
    "ExportFormat",
    "FilterLogic",
    "FilterOperator",
    "ROLES_CAN_DELETE_REPORTS",
    "ROLES_CAN_GENERATE_REPORTS",
    "ROLES_CAN_MANAGE_REPORTS",
    "ROLES_CAN_MANAGE_SETTINGS",
    "ROLES_REPORT_ADMIN",
    "ReportEntityType",
    "ReportExportFormat",
    "ReportFieldType",
    "ReportVisibility",
    "ReportVisualization",
    "Role",
    "ScheduleType",
    "ScheduledExportRunStatus",
    "SortOrder",
    "TemplateCategory",
]
