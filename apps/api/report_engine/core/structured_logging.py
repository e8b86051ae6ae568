"""Structured logging helpers (PHI-safe)."""

from typing import Any
from uuid import UUID


def build_log_context(
    *,
    org_id: UUID | str | None = None,
    user_id: UUID | str | None = None,
    report_id: UUID | str | None = None,
    entity_type: str | None = None,
    **extra: Any,
) -> dict[str, Any]:
    """Return a log context dict with identifiers only (no report data)."""
    context: dict[str, Any] = {}
    if org_id:
        context["org_id"] = str(org_id)
    if user_id:
        context["user_id"] = str(user_id)
    if report_id:
        context["report_id"] = str(report_id)
    if entity_type:
        context["entity_type"] = entity_type
    for key, value in extra.items():
        if value is not None:
            context[key] = value
    return context
