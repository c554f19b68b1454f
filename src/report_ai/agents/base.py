"""Shared behaviour for pipeline stages."""

from __future__ import annotations

import json
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from report_ai.core.registry import AgentProfile, get_agent_profile
from report_ai.domain.exceptions import AgentError, ReportAIError
from report_ai.domain.interfaces import IAIDispatcher
from report_ai.domain.models import (
    AgentContext,
    AgentMetadata,
    AgentResult,
    AgentStatus,
    AgentType,
    AIRequest,
)

PROMPT_SAMPLE_LIMIT = 1000


def to_json(data: Any) -> str:
    return json.dumps(data, ensure_ascii=False, default=str)


def sample(data: Any, limit: int = PROMPT_SAMPLE_LIMIT) -> str:
    """Truncated JSON rendering used to keep prompts bounded."""

    return to_json(data)[:limit]


def data_size(data: Any) -> int:
    return len(to_json(data))


def as_records(data: Any) -> List[Dict[str, Any]]:
    if isinstance(data, dict):
        return [data]
    if isinstance(data, (list, tuple)):
        return [item for item in data if isinstance(item, dict)]
    return []


class BaseAgent(ABC):
    """A pipeline stage configured by its static profile.

    Subclasses implement ``process`` and raise on failure; the orchestrator
    converts raised errors into error-status results.
    """

    agent_type: AgentType

    def __init__(
        self,
        dispatcher: IAIDispatcher,
        profile: Optional[AgentProfile] = None,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._dispatcher = dispatcher
        self.profile = profile or get_agent_profile(self.agent_type)
        self.logger = logger or logging.getLogger(
            f"{__name__}.{self.__class__.__name__}"
        )

    @property
    def name(self) -> str:
        return self.profile.name

    @property
    def description(self) -> str:
        return self.profile.description

    @abstractmethod
    async def process(self, data: Any, context: AgentContext) -> AgentResult:
        """Run the stage over the working input."""

    async def call_ai(self, prompt: str, context: Optional[str] = None) -> str:
        request = AIRequest(
            prompt=prompt,
            context=context,
            system_prompt=self.profile.system_prompt,
            parameters=self.profile.parameters,
        )
        try:
            response = await self._dispatcher.call_ai(
                request, self.profile.preferred_provider
            )
        except ReportAIError as exc:
            self.logger.error(
                "agent_ai_call_failed", extra={"agent": self.name, "error": exc.message}
            )
            raise AgentError(
                f"AI service call failed: {exc.message}",
                context={"agent": self.name},
            ) from exc
        return response.content

    def progress(self, context: AgentContext, percent: int, message: str) -> None:
        self.logger.debug(
            "stage_progress",
            extra={"agent": self.name, "percent": percent, "detail": message},
        )
        context.report_progress(self.name, percent, message)

    def records_from(self, data: Any, context: AgentContext) -> List[Dict[str, Any]]:
        """Cleaned records from the working input or the data-collection result."""

        if isinstance(data, dict) and isinstance(data.get("cleaned_data"), list):
            return as_records(data["cleaned_data"])
        if isinstance(data, (list, tuple)):
            return as_records(data)

        collected = context.find_result(AgentType.DATA_COLLECTION)
        if collected is not None and isinstance(collected.data, dict):
            return as_records(collected.data.get("cleaned_data"))
        return as_records(data)

    def build_result(
        self,
        *,
        started: float,
        data: Any,
        insights: Sequence[str],
        confidence: float,
        status: AgentStatus = AgentStatus.SUCCESS,
        size_of: Any = None,
        **extra: Any,
    ) -> AgentResult:
        metadata = AgentMetadata(
            processing_time=round((time.perf_counter() - started) * 1000, 3),
            data_size=data_size(size_of if size_of is not None else data),
            confidence=max(0.0, min(1.0, confidence)),
            **extra,
        )
        return AgentResult(
            agent_name=self.name,
            agent_type=self.agent_type,
            status=status,
            data=data,
            insights=tuple(insights),
            metadata=metadata,
        )
