"""Saved report model."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text, Uuid, false, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from report_engine.db.base import Base
from report_engine.db.types import JsonType, utcnow

if TYPE_CHECKING:
    from report_engine.db.models.auth import User


class SavedReport(Base):
    """
    A named, reusable report definition.

    Holds the design-time configuration only (entity type, columns, filter
    tree, grouping, aggregation, visualization). Results are never stored;
    last_run_* columns record the outcome of the latest successful run.

    scheduled_export_id points at the recurring delivery bound to this
    report (at most one). Deleting the report does not touch the schedule.
    """

    __tablename__ = "saved_reports"
    __table_args__ = (
        Index("idx_saved_reports_org_updated", "organization_id", "updated_at"),
        Index("idx_saved_reports_org_creator", "organization_id", "created_by_user_id"),
        Index("idx_saved_reports_org_visibility", "organization_id", "visibility"),
        Index("idx_saved_reports_org_template", "organization_id", "is_template"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    created_by_user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    entity_type: Mapped[str] = mapped_column(String(30), nullable=False)  # ReportEntityType

    # Design-time configuration
    columns: Mapped[list] = mapped_column(JsonType, default=list, nullable=False)
    filters: Mapped[list] = mapped_column(JsonType, default=list, nullable=False)
    group_by: Mapped[list | None] = mapped_column(JsonType, nullable=True)
    aggregation: Mapped[list | None] = mapped_column(JsonType, nullable=True)
    visualization: Mapped[str] = mapped_column(
        String(20), default="table", server_default="table", nullable=False
    )
    chart_config: Mapped[dict | None] = mapped_column(JsonType, nullable=True)
    sort_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    sort_order: Mapped[str | None] = mapped_column(String(4), nullable=True)

    # Classification
    is_template: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=false(), nullable=False
    )
    template_category: Mapped[str | None] = mapped_column(String(30), nullable=True)
    visibility: Mapped[str] = mapped_column(
        String(10), default="PRIVATE", server_default="PRIVATE", nullable=False
    )
    is_favorite: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=false(), nullable=False
    )

    # Run bookkeeping
    last_run_at: Mapped[datetime | None] = mapped_column(nullable=True)
    last_run_duration: Mapped[int | None] = mapped_column(Integer, nullable=True)  # ms
    last_run_row_count: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Recurring delivery (owned by scheduled_exports)
    scheduled_export_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("scheduled_exports.id", ondelete="SET NULL"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )

    created_by: Mapped["User"] = relationship(foreign_keys=[created_by_user_id], lazy="joined")

    @property
    def created_by_name(self) -> str | None:
        return self.created_by.display_name if self.created_by else None
