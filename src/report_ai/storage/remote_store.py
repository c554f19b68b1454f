"""Report store backed by a PostgREST-style HTTP API."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

import httpx

from report_ai.domain.exceptions import StorageError
from report_ai.utils.retry import async_retry

from .models import IReportStore, Report, ReportCreate, ReportUpdate, utc_now


class RemoteReportStore(IReportStore):
    """CRUD against ``{base_url}/rest/v1/{table}``; every failure becomes ``StorageError``."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str,
        api_key: str,
        *,
        table: str = "reports",
        clock: Callable[[], datetime] = utc_now,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._http = http_client
        self._url = f"{base_url.rstrip('/')}/rest/v1/{table}"
        self._headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
            "Prefer": "return=representation",
        }
        self._clock = clock
        self._logger = logger or logging.getLogger(__name__)

    async def create(self, report: ReportCreate) -> Report:
        rows = await self._request("POST", json=report.model_dump(mode="json"))
        if not rows:
            raise StorageError("Remote store returned no record after insert")
        return Report.model_validate(rows[0])

    async def update(self, report_id: str, patch: ReportUpdate) -> Optional[Report]:
        changes = patch.model_dump(mode="json", exclude_unset=True)
        changes["updated_at"] = self._clock().isoformat()
        rows = await self._request(
            "PATCH", params={"id": f"eq.{report_id}"}, json=changes
        )
        return Report.model_validate(rows[0]) if rows else None

    async def get(self, report_id: str) -> Optional[Report]:
        rows = await self._request(
            "GET", params={"id": f"eq.{report_id}", "select": "*"}
        )
        return Report.model_validate(rows[0]) if rows else None

    async def delete(self, report_id: str) -> bool:
        rows = await self._request("DELETE", params={"id": f"eq.{report_id}"})
        return bool(rows)

    async def list(self, page: int = 1, page_size: int = 20) -> List[Report]:
        if page < 1 or page_size < 1:
            raise ValueError("page and page_size must be positive")
        rows = await self._request(
            "GET",
            params={
                "select": "*",
                "order": "created_at.desc",
                "limit": str(page_size),
                "offset": str((page - 1) * page_size),
            },
        )
        return [Report.model_validate(row) for row in rows]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    async def _request(
        self,
        method: str,
        *,
        params: Optional[Dict[str, str]] = None,
        json: Any = None,
    ) -> List[Dict[str, Any]]:
        try:
            response = await self._send(method, params=params, json=json)
        except httpx.HTTPError as exc:
            raise StorageError(
                "Remote report store unreachable",
                context={"method": method, "reason": str(exc)},
            ) from exc

        if not response.is_success:
            raise StorageError(
                f"Remote report store error: {response.status_code} {response.reason_phrase}",
                context={"method": method, "status_code": response.status_code},
            )
        if not response.content:
            return []
        try:
            body = response.json()
        except ValueError as exc:
            raise StorageError("Remote report store returned invalid JSON") from exc
        return body if isinstance(body, list) else [body]

    @async_retry(attempts=2, delay=0.05, exceptions=(httpx.TransportError,))
    async def _send(
        self, method: str, *, params: Optional[Dict[str, str]], json: Any
    ) -> httpx.Response:
        self._logger.debug("remote_store_request", extra={"method": method})
        return await self._http.request(
            method, self._url, params=params, json=json, headers=self._headers
        )
