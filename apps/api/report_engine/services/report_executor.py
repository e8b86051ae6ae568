"""Client for the external report executor.

The executor owns physical query planning and execution. It receives a
ReportConfig plus the organization id and returns rows and a total count.
Execution time is bounded here by the HTTP timeout; this service never
retries a timed-out execution.
"""

from __future__ import annotations

import logging
from typing import Protocol
from uuid import UUID

import httpx
from fastapi import HTTPException
from pydantic import ValidationError

from report_engine.core.config import settings
from report_engine.schemas.report import ReportConfig, ReportResult
from report_engine.services.http_service import request_with_retries

logger = logging.getLogger(__name__)

# An execution that failed or ran out of time is not replayed
EXECUTOR_RETRY_STATUSES = {429, 503}
GATEWAY_TIMEOUT = 504


class ReportExecutorError(Exception):
    """The executor failed or returned an unusable response."""


class ReportExecutorTimeoutError(ReportExecutorError):
    """The executor did not answer within the configured timeout."""


class ReportExecutor(Protocol):
    async def execute(self, config: ReportConfig, org_id: UUID) -> ReportResult:
        ...


class HttpReportExecutor:
    """ReportExecutor backed by the executor service's HTTP API."""

    def __init__(
        self,
        base_url: str,
        *,
        api_key: str = "",
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    def _headers(self, org_id: UUID) -> dict[str, str]:
        headers = {"X-Organization-Id": str(org_id)}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def execute(self, config: ReportConfig, org_id: UUID) -> ReportResult:
        payload = {"organization_id": str(org_id), "config": config.model_dump(mode="json")}
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await request_with_retries(
                    lambda: client.post(
                        f"{self.base_url}/execute",
                        json=payload,
                        headers=self._headers(org_id),
                    ),
                    retry_statuses=EXECUTOR_RETRY_STATUSES,
                )
            except httpx.TimeoutException as exc:
                raise ReportExecutorTimeoutError("Report execution timed out") from exc
            except httpx.RequestError as exc:
                raise ReportExecutorError(f"Report executor unreachable: {exc}") from exc

        if response.status_code == GATEWAY_TIMEOUT:
            raise ReportExecutorTimeoutError("Report execution timed out")
        if response.status_code >= 400:
            logger.warning(
                "Report executor returned %s", response.status_code,
                extra={"org_id": str(org_id), "entity_type": config.entity_type},
            )
            raise ReportExecutorError(f"Report executor returned {response.status_code}")

        try:
            return ReportResult.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise ReportExecutorError("Report executor returned an invalid result") from exc


def get_report_executor() -> ReportExecutor:
    """FastAPI dependency for the configured executor."""
    if not settings.REPORT_EXECUTOR_URL:
        raise HTTPException(status_code=503, detail="Report executor is not configured")
    return HttpReportExecutor(
        settings.REPORT_EXECUTOR_URL,
        api_key=settings.REPORT_EXECUTOR_API_KEY,
        timeout=settings.REPORT_EXECUTOR_TIMEOUT_SECONDS,
    )
