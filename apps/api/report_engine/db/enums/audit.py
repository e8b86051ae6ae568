"""Audit and compliance enums."""

from enum import Enum


class AuditEventType(str, Enum):
    """
    Security and compliance audit events.

    Groups:
    - REPORT_*: Saved report lifecycle
    - REPORT_SCHEDULE_*: Recurring delivery bound to a report
    - CUSTOM_FIELD_*: Tenant custom property definitions
    """

    # Saved reports
    REPORT_CREATED = "report_created"
    REPORT_UPDATED = "report_updated"
    REPORT_DELETED = "report_deleted"
    REPORT_DUPLICATED = "report_duplicated"
    REPORT_EXPORT_REQUESTED = "report_export_requested"

    # Report schedules
    REPORT_SCHEDULE_CREATED = "report_schedule_created"
    REPORT_SCHEDULE_UPDATED = "report_schedule_updated"
    REPORT_SCHEDULE_DELETED = "report_schedule_deleted"

    # Custom properties
    CUSTOM_FIELD_CREATED = "custom_field_created"
    CUSTOM_FIELD_UPDATED = "custom_field_updated"
    CUSTOM_FIELD_DELETED = "custom_field_deleted"
