"""Scheduled export models."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Index, String, Text, Uuid, func, true
from sqlalchemy.orm import Mapped, mapped_column

from report_engine.db.base import Base
from report_engine.db.types import JsonType, utcnow


class ScheduledExport(Base):
    """
    Recurring delivery definition.

    schedule_config holds {"time": "HH:MM", "day_of_week": 0-6,
    "day_of_month": 1-28}; next_run_at is always stored in UTC and
    recalculated whenever the schedule parameters change.
    """

    __tablename__ = "scheduled_exports"
    __table_args__ = (
        Index("idx_scheduled_exports_due", "is_active", "next_run_at"),
        Index("idx_scheduled_exports_org", "organization_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    format: Mapped[str] = mapped_column(String(10), nullable=False)  # ExportFormat
    schedule_type: Mapped[str] = mapped_column(String(10), nullable=False)  # ScheduleType
    schedule_config: Mapped[dict] = mapped_column(JsonType, default=dict, nullable=False)
    timezone: Mapped[str] = mapped_column(String(50), nullable=False)
    recipients: Mapped[list] = mapped_column(JsonType, default=list, nullable=False)
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default=true(), nullable=False
    )
    last_run_at: Mapped[datetime | None] = mapped_column(nullable=True)
    next_run_at: Mapped[datetime | None] = mapped_column(nullable=True)
    created_by_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )


class ScheduledExportRun(Base):
    """One requested or executed delivery of a scheduled export."""

    __tablename__ = "scheduled_export_runs"
    __table_args__ = (
        Index("idx_scheduled_export_runs_export", "scheduled_export_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    scheduled_export_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("scheduled_exports.id", ondelete="CASCADE"), nullable=False
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(10), default="PENDING", server_default="PENDING", nullable=False
    )
    requested_by_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
