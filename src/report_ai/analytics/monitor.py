"""Bounded in-memory log of dispatch attempts and the statistics derived from it."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from report_ai.core.config import MonitoringConfig
from report_ai.domain.interfaces import IRequestMonitor
from report_ai.domain.models import AIRequest, AIResponse

REDACTED = "[REDACTED]"


class RequestLogEntry(BaseModel):
    """One dispatch attempt as stored in the monitor."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    provider: str
    prompt: str
    context: Optional[str] = None
    response: Optional[AIResponse] = None
    error_type: Optional[str] = None
    error: Optional[str] = None
    duration: float = 0.0
    cost: float = 0.0
    cached: bool = False
    success: bool


class ProviderUsage(BaseModel):
    requests: int = 0
    failures: int = 0
    average_response_time: float = 0.0


class UsageStats(BaseModel):
    total_requests: int = 0
    success_rate: float = 0.0
    average_response_time: float = 0.0
    total_cost: float = 0.0
    provider_stats: Dict[str, ProviderUsage] = Field(default_factory=dict)


class RequestMonitor(IRequestMonitor):
    """Append-only log; trims to the newest ``retain_entries`` once ``max_entries`` is exceeded."""

    def __init__(
        self,
        config: MonitoringConfig | None = None,
        *,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config or MonitoringConfig()
        self._clock = clock
        self._entries: List[RequestLogEntry] = []
        self._logger = logger or logging.getLogger(__name__)

    def log_request(
        self,
        provider: str,
        request: AIRequest,
        *,
        response: Optional[AIResponse] = None,
        error: Optional[BaseException] = None,
        duration: float = 0.0,
        cached: bool = False,
    ) -> None:
        if not self._config.log_requests:
            return

        success = error is None and response is not None
        entry = RequestLogEntry(
            timestamp=self._clock(),
            provider=provider,
            prompt=request.prompt if self._config.log_prompts else REDACTED,
            context=request.context if self._config.log_prompts else None,
            response=response if self._config.log_responses else None,
            error_type=type(error).__name__ if error is not None else None,
            error=str(error) if error is not None else None,
            duration=duration,
            cost=(response.cost or 0.0) if success and response and not cached else 0.0,
            cached=cached,
            success=success,
        )
        self._entries.append(entry)
        if len(self._entries) > self._config.max_entries:
            self._entries = self._entries[-self._config.retain_entries :]
            self._logger.debug("monitor_trimmed", extra={"retained": len(self._entries)})

    def summary(self) -> UsageStats:
        return self.compute_stats(self._entries)

    get_stats = summary

    def entries(self) -> List[RequestLogEntry]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    @staticmethod
    def compute_stats(entries: Sequence[RequestLogEntry]) -> UsageStats:
        if not entries:
            return UsageStats()

        successes = [entry for entry in entries if entry.success]
        provider_stats: Dict[str, ProviderUsage] = {}
        for provider in dict.fromkeys(entry.provider for entry in entries):
            own = [entry for entry in entries if entry.provider == provider]
            own_successes = [entry for entry in own if entry.success]
            provider_stats[provider] = ProviderUsage(
                requests=len(own),
                failures=len(own) - len(own_successes),
                average_response_time=_average(entry.duration for entry in own_successes),
            )

        return UsageStats(
            total_requests=len(entries),
            success_rate=round(len(successes) / len(entries) * 100, 2),
            average_response_time=_average(entry.duration for entry in successes),
            total_cost=round(sum(entry.cost for entry in entries), 6),
            provider_stats=provider_stats,
        )


def _average(values) -> float:
    collected = list(values)
    if not collected:
        return 0.0
    return round(sum(collected) / len(collected), 3)
