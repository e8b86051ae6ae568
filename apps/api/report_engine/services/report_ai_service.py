"""Natural language report drafting.

Maps the query service's interpretation onto an unsaved report draft. The
draft is returned to the designer for review and is never persisted here.
"""

import logging
from typing import Any
from uuid import UUID

from report_engine.db.enums import FilterLogic, ReportEntityType, ReportVisualization, SortOrder
from report_engine.schemas.report import AIGenerateResponse, ReportDraft
from report_engine.services.ai_query_service import AIQueryClient, AIQueryResult

logger = logging.getLogger(__name__)

NAME_PREFIX = "Report: "
NAME_QUERY_LENGTH = 50
DEFAULT_COLUMNS = ["referenceNumber", "status", "createdAt"]

# The query service names entities in the singular
AI_ENTITY_MAP: dict[str, ReportEntityType] = {
    "case": ReportEntityType.CASES,
    "riu": ReportEntityType.RIUS,
    "campaign": ReportEntityType.CAMPAIGNS,
    "person": ReportEntityType.PERSONS,
    "disclosure": ReportEntityType.DISCLOSURES,
    "investigation": ReportEntityType.INVESTIGATIONS,
}

AI_VISUALIZATION_MAP: dict[str, ReportVisualization] = {
    "TABLE": ReportVisualization.TABLE,
    "BAR_CHART": ReportVisualization.BAR,
    "LINE_CHART": ReportVisualization.LINE,
    "PIE_CHART": ReportVisualization.PIE,
    "KPI": ReportVisualization.KPI,
    "FUNNEL": ReportVisualization.FUNNEL,
}


def draft_name(query: str) -> str:
    if len(query) > NAME_QUERY_LENGTH:
        return f"{NAME_PREFIX}{query[:NAME_QUERY_LENGTH]}..."
    return f"{NAME_PREFIX}{query}"


def map_entity_type(value: str | None) -> ReportEntityType:
    return AI_ENTITY_MAP.get((value or "").lower(), ReportEntityType.CASES)


def map_visualization(value: str | None) -> ReportVisualization:
    return AI_VISUALIZATION_MAP.get((value or "").upper(), ReportVisualization.TABLE)


def _field_name(item: Any) -> str | None:
    if isinstance(item, dict):
        return item.get("field")
    return item if isinstance(item, str) else None


def _sort_order(direction: Any) -> SortOrder | None:
    if isinstance(direction, str) and direction.lower() in (SortOrder.ASC.value, SortOrder.DESC.value):
        return SortOrder(direction.lower())
    return None


def build_report_draft(query: str, result: AIQueryResult) -> ReportDraft:
    parsed = result.parsed_query or {}

    filters = [f for f in parsed.get("filters") or [] if isinstance(f, dict)]
    group_by = [g for g in map(_field_name, parsed.get("group_by") or []) if g]
    order_by = parsed.get("order_by") or []
    first_order = order_by[0] if order_by and isinstance(order_by[0], dict) else {}

    return ReportDraft(
        name=draft_name(query),
        description=result.interpreted_query,
        entity_type=map_entity_type(parsed.get("entity_type")).value,
        columns=list(parsed.get("select_fields") or DEFAULT_COLUMNS),
        filters=[{"logic": FilterLogic.AND.value, "conditions": filters}] if filters else [],
        group_by=group_by or None,
        sort_by=first_order.get("field"),
        sort_order=_sort_order(first_order.get("direction")),
        visualization=map_visualization(result.visualization_type),
    )


async def generate_report_draft(
    client: AIQueryClient,
    query: str,
    user_id: UUID,
    org_id: UUID,
) -> AIGenerateResponse:
    """
    Raises:
        AIQueryError: the query could not be interpreted
        AIQueryUnavailableError: the query service failed
    """
    result = await client.execute_query(query, user_id, org_id)
    draft = build_report_draft(query, result)
    logger.info(
        "Generated report draft from natural language",
        extra={"org_id": str(org_id), "entity_type": draft.entity_type},
    )
    return AIGenerateResponse(
        report=draft,
        results=result.data,
        interpretation=result.interpreted_query,
    )
