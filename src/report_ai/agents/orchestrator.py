"""Sequential, failure-tolerant execution of pipeline stages."""

from __future__ import annotations

import logging
import time
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from report_ai.domain.exceptions import ConfigurationError, ReportAIError
from report_ai.domain.interfaces import IAIDispatcher
from report_ai.domain.models import (
    DEFAULT_AGENT_SEQUENCE,
    AgentContext,
    AgentResult,
    AgentType,
)

from .anomaly_detection import AnomalyDetectionAgent
from .base import BaseAgent
from .data_collection import DataCollectionAgent
from .pattern_recognition import PatternRecognitionAgent
from .predictive_modeling import PredictiveModelingAgent
from .report_generation import ReportGenerationAgent


def default_agents(dispatcher: IAIDispatcher) -> Dict[AgentType, BaseAgent]:
    agents: Iterable[BaseAgent] = (
        DataCollectionAgent(dispatcher),
        PatternRecognitionAgent(dispatcher),
        PredictiveModelingAgent(dispatcher),
        AnomalyDetectionAgent(dispatcher),
        ReportGenerationAgent(dispatcher),
    )
    return {agent.agent_type: agent for agent in agents}


class AgentOrchestrator:
    """Runs stages one after another; a failing stage never stops the run."""

    def __init__(
        self,
        agents: Mapping[AgentType, BaseAgent],
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._agents = dict(agents)
        self._logger = logger or logging.getLogger(__name__)

    def get_agent(self, agent_type: AgentType | str) -> Optional[BaseAgent]:
        try:
            return self._agents.get(AgentType(agent_type))
        except ValueError:
            return None

    def agents(self) -> List[BaseAgent]:
        return list(self._agents.values())

    async def execute(
        self,
        initial_data: Any,
        context: AgentContext,
        sequence: Optional[Sequence[AgentType | str]] = None,
    ) -> List[AgentResult]:
        stages = self._resolve_sequence(sequence)
        context = self._with_guarded_progress(context)
        results: List[AgentResult] = []
        working = initial_data

        for agent_type in stages:
            agent = self._agents[agent_type]
            stage_context = context.with_results(results)
            self._logger.info(
                "stage_started",
                extra={"task_id": context.task_id, "agent": agent.name},
            )
            context.report_progress(agent.name, 0, "Started")
            started = time.perf_counter()
            try:
                result = await agent.process(working, stage_context)
            except Exception as exc:
                self._logger.warning(
                    "stage_failed",
                    extra={
                        "task_id": context.task_id,
                        "agent": agent.name,
                        "error": str(exc),
                    },
                )
                message = exc.message if isinstance(exc, ReportAIError) else str(exc)
                result = AgentResult.failure(
                    agent.name,
                    agent_type,
                    message or type(exc).__name__,
                    processing_time=round((time.perf_counter() - started) * 1000, 3),
                )

            results.append(result)
            if result.succeeded and result.data is not None:
                working = result.data
            context.report_progress(
                agent.name,
                100,
                "Completed" if result.succeeded else f"Failed: {result.error}",
            )
            self._logger.info(
                "stage_finished",
                extra={
                    "task_id": context.task_id,
                    "agent": agent.name,
                    "status": result.status.value,
                },
            )

        return results

    def _resolve_sequence(
        self, sequence: Optional[Sequence[AgentType | str]]
    ) -> List[AgentType]:
        requested = DEFAULT_AGENT_SEQUENCE if sequence is None else sequence
        stages: List[AgentType] = []
        for item in requested:
            try:
                agent_type = AgentType(item)
            except ValueError as exc:
                raise ConfigurationError(
                    f"Unknown stage type '{item}'", context={"stage": str(item)}
                ) from exc
            if agent_type not in self._agents:
                raise ConfigurationError(
                    f"Stage '{agent_type.value}' is not configured",
                    context={"configured": [key.value for key in self._agents]},
                )
            stages.append(agent_type)
        return stages

    def _with_guarded_progress(self, context: AgentContext) -> AgentContext:
        callback = context.on_progress
        if callback is None:
            return context

        def report(agent_name: str, percent: int, message: str) -> None:
            try:
                callback(agent_name, percent, message)
            except Exception as exc:
                self._logger.warning(
                    "progress_callback_failed",
                    extra={
                        "task_id": context.task_id,
                        "agent": agent_name,
                        "error": str(exc),
                    },
                )

        return replace(context, on_progress=report)
