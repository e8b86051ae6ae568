"""Scheduled export enums."""

from enum import Enum


class ScheduleType(str, Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"


class ExportFormat(str, Enum):
    """File formats produced by the scheduled export runner."""

    XLSX = "XLSX"
    CSV = "CSV"
    PDF = "PDF"


class ReportExportFormat(str, Enum):
    """File formats as offered on a saved report."""

    EXCEL = "EXCEL"
    CSV = "CSV"
    PDF = "PDF"


class ScheduledExportRunStatus(str, Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
