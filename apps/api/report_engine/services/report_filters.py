"""Report filter trees: parsing, flattening and audit rendering.

Filter trees are user-authored JSON stored on the saved report:

    [{"logic": "AND", "conditions": [
        {"field": "status", "operator": "eq", "value": "NEW"},
        {"logic": "OR", "conditions": [...]},
    ]}]

A raw node is a condition when it carries both "field" and "operator";
anything else is a group. Raw data is parsed once into FilterCondition /
FilterGroup nodes, so traversal never has to guess.

The report executor accepts a single flat list of conditions that are all
applied together. Flattening therefore keeps every condition (depth-first,
left to right) and drops the AND/OR structure: conditions under an OR group
are executed as if they were ANDed.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, ClassVar, Union

from report_engine.db.enums import FilterLogic, FilterOperator

logger = logging.getLogger(__name__)

DATE_RANGE_FIELD = "createdAt"
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
VALUELESS_OPERATORS = {FilterOperator.IS_NULL.value, FilterOperator.IS_NOT_NULL.value}


@dataclass(frozen=True)
class FilterCondition:
    field: str
    operator: str
    value: Any = None
    value_to: Any = None

    kind: ClassVar[str] = "condition"

    def to_dict(self) -> dict[str, Any]:
        return {
            "field": self.field,
            "operator": self.operator,
            "value": self.value,
            "value_to": self.value_to,
        }


@dataclass(frozen=True)
class FilterGroup:
    logic: FilterLogic
    conditions: tuple["FilterNode", ...] = ()

    kind: ClassVar[str] = "group"


FilterNode = Union[FilterCondition, FilterGroup]


# =============================================================================
# Parsing
# =============================================================================


def _is_condition(raw: dict) -> bool:
    return "field" in raw and "operator" in raw


def _parse_logic(raw: Any) -> FilterLogic:
    value = str(raw).upper() if raw is not None else FilterLogic.AND.value
    return FilterLogic.OR if value == FilterLogic.OR.value else FilterLogic.AND


def _parse_condition(raw: dict) -> FilterCondition:
    return FilterCondition(
        field=str(raw["field"]),
        operator=str(raw["operator"]),
        value=raw.get("value"),
        value_to=raw["value_to"] if "value_to" in raw else raw.get("valueTo"),
    )


def _parse_group(raw: dict) -> FilterGroup:
    children = raw.get("conditions")
    if not isinstance(children, list):
        children = []
    nodes = tuple(
        _parse_condition(child) if _is_condition(child) else _parse_group(child)
        for child in children
        if isinstance(child, dict)
    )
    return FilterGroup(logic=_parse_logic(raw.get("logic")), conditions=nodes)


def parse_filter_groups(raw: Any) -> list[FilterGroup]:
    """Parse stored filter JSON into groups.

    Tolerates stale or hand-edited data: a non-list yields no groups and
    entries that are not objects are skipped. Every top-level entry is read
    as a group, so a bare condition at the top level contributes nothing.
    """
    if not isinstance(raw, list):
        return []
    groups: list[FilterGroup] = []
    for item in raw:
        if isinstance(item, FilterGroup):
            groups.append(item)
        elif isinstance(item, dict):
            groups.append(_parse_group(item))
    return groups


# =============================================================================
# Flattening
# =============================================================================


def _walk(node: FilterNode, out: list[FilterCondition]) -> None:
    if isinstance(node, FilterCondition):
        out.append(node)
        return
    for child in node.conditions:
        _walk(child, out)


def flatten_filters(filters: Any) -> list[FilterCondition]:
    """Flatten a filter tree into the executor's conjunctive condition list."""
    out: list[FilterCondition] = []
    for group in parse_filter_groups(filters):
        _walk(group, out)
    return out


def has_or_groups(filters: Any) -> bool:
    """True when flattening would lose OR semantics (an OR group with 2+ children)."""

    def visit(node: FilterNode) -> bool:
        if isinstance(node, FilterCondition):
            return False
        if node.logic == FilterLogic.OR and len(node.conditions) > 1:
            return True
        return any(visit(child) for child in node.conditions)

    return any(visit(group) for group in parse_filter_groups(filters))


def referenced_fields(filters: Any) -> list[str]:
    """Distinct field ids used by a filter tree, in first-use order."""
    return list(dict.fromkeys(c.field for c in flatten_filters(filters)))


def invalid_conditions(filters: Any) -> list[str]:
    """Describe conditions the executor cannot run (unknown operator, open between)."""
    problems = []
    for condition in flatten_filters(filters):
        if not FilterOperator.has_value(condition.operator):
            problems.append(f"{condition.field}: unknown operator '{condition.operator}'")
        elif condition.operator == FilterOperator.BETWEEN.value and condition.value_to is None:
            problems.append(f"{condition.field}: 'between' requires value_to")
    return problems


# =============================================================================
# Date range override
# =============================================================================


def parse_date_bound(raw: str) -> datetime:
    """Parse an ISO date or datetime. Naive values are taken as UTC.

    Raises:
        ValueError: unparseable value
    """
    parsed = datetime.fromisoformat(raw.strip())
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def date_range_condition(
    start: str | None,
    end: str | None,
    *,
    now: datetime | None = None,
) -> FilterCondition:
    """Build the createdAt between-condition for a run-time date range.

    A missing start means the epoch; a missing end means now.
    """
    return FilterCondition(
        field=DATE_RANGE_FIELD,
        operator=FilterOperator.BETWEEN.value,
        value=parse_date_bound(start) if start else EPOCH,
        value_to=parse_date_bound(end) if end else (now or datetime.now(timezone.utc)),
    )


# =============================================================================
# Audit rendering (one-way)
# =============================================================================


def _format_value(value: Any) -> str:
    return json.dumps(value, default=str)


def _describe_node(node: FilterNode, nested: bool) -> str:
    if isinstance(node, FilterCondition):
        if node.operator in VALUELESS_OPERATORS:
            return f"{node.field} {node.operator}"
        if node.operator == FilterOperator.BETWEEN.value:
            return (
                f"{node.field} between {_format_value(node.value)}"
                f" and {_format_value(node.value_to)}"
            )
        return f"{node.field} {node.operator} {_format_value(node.value)}"

    parts = [p for p in (_describe_node(child, True) for child in node.conditions) if p]
    text = f" {node.logic.value} ".join(parts)
    if nested and len(parts) > 1:
        return f"({text})"
    return text


def describe_filters(filters: Any) -> str:
    """Render a filter tree as readable text for audit details and logs.

    Output is display-only and is never parsed back into a tree.
    """
    parts = [p for p in (_describe_node(g, False) for g in parse_filter_groups(filters)) if p]
    if len(parts) > 1:
        return " AND ".join(f"({p})" for p in parts)
    return parts[0] if parts else ""
