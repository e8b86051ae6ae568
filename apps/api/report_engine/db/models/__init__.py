"""SQLAlchemy ORM models."""

from report_engine.db.models.audit import AuditLog
from report_engine.db.models.auth import Membership, Organization, User
from report_engine.db.models.custom_fields import CustomField
from report_engine.db.models.reports import SavedReport
from report_engine.db.models.scheduled_exports import ScheduledExport, ScheduledExportRun

__all__ = [
    "AuditLog",
    "CustomField",
    "Membership",
    "Organization",
    "SavedReport",
    "ScheduledExport",
    "ScheduledExportRun",
    "User",
]
