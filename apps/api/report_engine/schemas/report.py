"""Pydantic schemas for saved reports, report execution and the field catalog."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from report_engine.core.config import settings
from report_engine.db.enums import (
    AggregationFunction,
    ReportExportFormat,
    ReportFieldType,
    ReportVisibility,
    ReportVisualization,
    SortOrder,
    TemplateCategory,
)


# =============================================================================
# Definition Schemas
# =============================================================================


class AggregationConfig(BaseModel):
    """One aggregation entry. Only the first entry of a report is executed."""

    field: str = Field(min_length=1, max_length=100)
    function: AggregationFunction
    alias: str | None = Field(default=None, max_length=100)


class ChartConfig(BaseModel):
    """Rendering hints passed through to the UI."""

    x_axis_field: str | None = None
    y_axis_field: str | None = None
    series_field: str | None = None
    colors: list[str] | None = None
    show_data_labels: bool | None = None
    show_legend: bool | None = None
    stacked: bool | None = None
    comparison_period: str | None = None
    funnel_metric: str | None = None


class ReportCreate(BaseModel):
    """Schema for creating a saved report.

    entity_type stays a plain string so an unknown value is rejected by the
    service as a validation error (400) rather than a schema error.
    """

    name: str = Field(min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    entity_type: str
    columns: list[str]
    filters: list[dict[str, Any]] = Field(default_factory=list)
    group_by: list[str] | None = None
    aggregation: list[AggregationConfig] | None = None
    visualization: ReportVisualization = ReportVisualization.TABLE
    chart_config: ChartConfig | None = None
    sort_by: str | None = None
    sort_order: SortOrder | None = None
    is_template: bool = False
    template_category: TemplateCategory | None = None
    visibility: ReportVisibility = ReportVisibility.PRIVATE


class ReportUpdate(BaseModel):
    """Partial update. Only fields present in the payload are applied."""

    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    entity_type: str | None = None
    columns: list[str] | None = None
    filters: list[dict[str, Any]] | None = None
    group_by: list[str] | None = None
    aggregation: list[AggregationConfig] | None = None
    visualization: ReportVisualization | None = None
    chart_config: ChartConfig | None = None
    sort_by: str | None = None
    sort_order: SortOrder | None = None
    is_template: bool | None = None
    template_category: TemplateCategory | None = None
    visibility: ReportVisibility | None = None
    is_favorite: bool | None = None


class ReportRead(BaseModel):
    """Schema for reading a saved report."""

    id: UUID
    organization_id: UUID
    created_by_user_id: UUID
    created_by_name: str | None = None
    name: str
    description: str | None
    entity_type: str
    columns: list[str]
    filters: list[Any]
    group_by: list[str] | None
    aggregation: list[dict[str, Any]] | None
    visualization: str
    chart_config: dict[str, Any] | None
    sort_by: str | None
    sort_order: str | None
    is_template: bool
    template_category: str | None
    visibility: str
    is_favorite: bool
    last_run_at: datetime | None
    last_run_duration: int | None
    last_run_row_count: int | None
    scheduled_export_id: UUID | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ReportListResponse(BaseModel):
    """Paginated list of saved reports."""

    data: list[ReportRead]
    total: int
    page: int
    page_size: int


class FavoriteResponse(BaseModel):
    is_favorite: bool


# =============================================================================
# Execution Schemas
# =============================================================================


class RunReportRequest(BaseModel):
    """Runtime overrides for a single execution."""

    override_filters: list[dict[str, Any]] | None = None
    date_range_start: str | None = None
    date_range_end: str | None = None
    limit: int = Field(
        default=settings.REPORT_RUN_LIMIT_DEFAULT, ge=1, le=settings.REPORT_RUN_LIMIT_MAX
    )
    offset: int = Field(default=0, ge=0)


class ReportFilterItem(BaseModel):
    """One executor-facing filter condition."""

    field: str
    operator: str
    value: Any = None
    value_to: Any = None


class ReportAggregationSpec(BaseModel):
    function: str  # COUNT | SUM | AVG | MIN | MAX
    field: str | None = None


class ReportConfig(BaseModel):
    """Execution-ready report shape handed to the report executor. Never stored."""

    entity_type: str
    columns: list[str]
    filters: list[ReportFilterItem]
    group_by: list[str] | None = None
    aggregation: ReportAggregationSpec | None = None
    sort_by: str | None = None
    sort_order: str | None = None
    limit: int
    offset: int


class ReportResult(BaseModel):
    """Executor output. Unknown keys are kept and returned to the caller as-is."""

    model_config = ConfigDict(extra="allow")

    columns: list[dict[str, Any]] = Field(default_factory=list)
    rows: list[dict[str, Any]] = Field(default_factory=list)
    total_count: int = Field(validation_alias=AliasChoices("total_count", "totalCount"))
    grouped_data: list[dict[str, Any]] | None = Field(
        default=None, validation_alias=AliasChoices("grouped_data", "groupedData")
    )
    summary: dict[str, Any] | None = None


class ExportRequest(BaseModel):
    format: ReportExportFormat = ReportExportFormat.EXCEL


class ExportResponse(BaseModel):
    status: str
    job_id: str
    download_url: str | None = None


# =============================================================================
# Field Catalog Schemas
# =============================================================================


class ReportFieldRead(BaseModel):
    id: str
    label: str
    type: ReportFieldType
    group: str
    source_path: str
    filterable: bool
    sortable: bool
    groupable: bool
    aggregatable: bool
    enum_values: list[str] | None = None
    is_computed: bool = False
    is_custom_property: bool = False
    join_path: str | None = None

    model_config = {"from_attributes": True}


class ReportFieldGroupRead(BaseModel):
    group_name: str
    fields: list[ReportFieldRead]

    model_config = {"from_attributes": True}


class ReportFieldsResponse(BaseModel):
    entity_type: str
    field_groups: list[ReportFieldGroupRead]
    total_fields: int


# =============================================================================
# AI Generation Schemas
# =============================================================================


class AIGenerateRequest(BaseModel):
    query: str = Field(min_length=1, max_length=500)


class ReportDraft(BaseModel):
    """Unsaved report configuration proposed from a natural language query."""

    name: str
    description: str | None = None
    entity_type: str
    columns: list[str]
    filters: list[dict[str, Any]] = Field(default_factory=list)
    group_by: list[str] | None = None
    sort_by: str | None = None
    sort_order: SortOrder | None = None
    visualization: ReportVisualization = ReportVisualization.TABLE


class AIGenerateResponse(BaseModel):
    report: ReportDraft
    results: Any = None
    interpretation: str | None = None
