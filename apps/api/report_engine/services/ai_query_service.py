"""Client for the natural language query service.

The service parses a free-text question into a structured query, runs it and
returns the rows plus a suggested visualization.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol
from uuid import UUID

import httpx
from fastapi import HTTPException

from report_engine.core.config import settings
from report_engine.services.http_service import request_with_retries

logger = logging.getLogger(__name__)


class AIQueryError(Exception):
    """The query could not be interpreted."""


class AIQueryUnavailableError(AIQueryError):
    """The query service is unreachable or failing."""


@dataclass
class AIQueryResult:
    """Structured interpretation of a natural language query."""

    parsed_query: dict[str, Any] | None = None
    data: Any = None
    interpreted_query: str | None = None
    visualization_type: str | None = None
    suggestions: list[str] = field(default_factory=list)


class AIQueryClient(Protocol):
    async def execute_query(self, query: str, user_id: UUID, org_id: UUID) -> AIQueryResult:
        ...


class HttpAIQueryClient:
    def __init__(
        self,
        base_url: str,
        *,
        api_key: str = "",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    async def execute_query(self, query: str, user_id: UUID, org_id: UUID) -> AIQueryResult:
        headers = {"X-Organization-Id": str(org_id), "X-User-Id": str(user_id)}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await request_with_retries(
                    lambda: client.post(
                        f"{self.base_url}/query",
                        json={"query": query, "include_suggestions": True},
                        headers=headers,
                    )
                )
            except httpx.HTTPError as exc:
                raise AIQueryUnavailableError(f"AI query service unreachable: {exc}") from exc

        if response.status_code in (400, 422):
            raise AIQueryError(_error_message(response) or "Query could not be interpreted")
        if response.status_code >= 400:
            logger.warning("AI query service returned %s", response.status_code)
            raise AIQueryUnavailableError(f"AI query service returned {response.status_code}")

        try:
            body = response.json()
        except ValueError as exc:
            raise AIQueryUnavailableError("AI query service returned invalid JSON") from exc

        return AIQueryResult(
            parsed_query=body.get("parsed_query"),
            data=body.get("data"),
            interpreted_query=body.get("interpreted_query"),
            visualization_type=body.get("visualization_type"),
            suggestions=body.get("suggestions") or [],
        )


def _error_message(response: httpx.Response) -> str | None:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        return body.get("detail") or body.get("message")
    return None


def get_ai_query_client() -> AIQueryClient:
    """FastAPI dependency for the configured query service."""
    if not settings.AI_QUERY_URL:
        raise HTTPException(status_code=503, detail="AI query service is not configured")
    return HttpAIQueryClient(
        settings.AI_QUERY_URL,
        api_key=settings.AI_QUERY_API_KEY,
        timeout=settings.AI_QUERY_TIMEOUT_SECONDS,
    )
