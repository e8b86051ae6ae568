"""API routers."""

from report_engine.routers.custom_fields import router as custom_fields_router
from report_engine.routers.report_schedules import router as report_schedules_router
from report_engine.routers.reports import router as reports_router

__all__ = [
    "custom_fields_router",
    "report_schedules_router",
    "reports_router",
]
