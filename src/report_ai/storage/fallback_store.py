"""Primary-then-local report store."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, List, Optional

import httpx

from report_ai.domain.exceptions import StorageError

from .models import IReportStore, Report, ReportCreate, ReportUpdate


class FallbackReportStore(IReportStore):
    """Routes each operation to ``primary``; on failure repeats it on ``fallback``.

    An error surfaces only when both stores fail.
    """

    def __init__(
        self,
        primary: IReportStore,
        fallback: IReportStore,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._primary = primary
        self._fallback = fallback
        self._logger = logger or logging.getLogger(__name__)

    async def create(self, report: ReportCreate) -> Report:
        return await self._call("create", report)

    async def update(self, report_id: str, patch: ReportUpdate) -> Optional[Report]:
        return await self._call("update", report_id, patch)

    async def get(self, report_id: str) -> Optional[Report]:
        return await self._call("get", report_id)

    async def delete(self, report_id: str) -> bool:
        return await self._call("delete", report_id)

    async def list(self, page: int = 1, page_size: int = 20) -> List[Report]:
        return await self._call("list", page, page_size)

    async def _call(self, operation: str, *args: Any) -> Any:
        primary_call: Callable[..., Awaitable[Any]] = getattr(self._primary, operation)
        try:
            return await primary_call(*args)
        except (StorageError, httpx.HTTPError) as exc:
            self._logger.warning(
                "storage_fallback", extra={"operation": operation, "error": str(exc)}
            )
            primary_error = exc

        try:
            return await getattr(self._fallback, operation)(*args)
        except (StorageError, httpx.HTTPError) as exc:
            raise StorageError(
                "Both primary and fallback report stores failed",
                context={
                    "operation": operation,
                    "primary_error": str(primary_error),
                    "fallback_error": str(exc),
                },
            ) from exc
