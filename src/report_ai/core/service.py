"""Runs the agent pipeline for one analysis task and persists the generated report."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

from report_ai.agents.orchestrator import AgentOrchestrator
from report_ai.core.registry import sequence_for
from report_ai.domain.models import (
    AgentContext,
    AgentResult,
    AgentType,
    ProgressCallback,
)
from report_ai.storage.models import (
    DEFAULT_OWNER_ID,
    IReportStore,
    Report,
    ReportCreate,
)


@dataclass(frozen=True)
class AnalysisRun:
    task_id: str
    results: List[AgentResult]
    report: Optional[Report] = None

    @property
    def succeeded(self) -> bool:
        return bool(self.results) and all(result.succeeded for result in self.results)

    def result_for(self, agent_type: AgentType) -> Optional[AgentResult]:
        for result in self.results:
            if result.agent_type is agent_type:
                return result
        return None


def to_markdown(report: Mapping[str, Any]) -> str:
    lines = [f"# {report.get('title', '')}", ""]
    for section in report.get("sections", []):
        lines.extend([f"## {section['title']}", "", str(section["content"]), ""])
    return "\n".join(lines).rstrip() + "\n"


class ReportAnalysisService:
    """Pipeline run plus draft-report persistence.

    A report is stored only when the report-generation stage succeeded; earlier
    stage failures still reach the caller through ``AnalysisRun.results``.
    """

    def __init__(
        self,
        orchestrator: AgentOrchestrator,
        store: IReportStore,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._store = store
        self._logger = logger or logging.getLogger(__name__)

    @property
    def store(self) -> IReportStore:
        return self._store

    async def run(
        self,
        data: Any,
        *,
        task_id: Optional[str] = None,
        analysis_type: str = "trend",
        data_source: Any = None,
        parameters: Optional[Mapping[str, Any]] = None,
        owner_id: Optional[str] = None,
        template_id: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
        sequence: Optional[Sequence[AgentType | str]] = None,
    ) -> AnalysisRun:
        task_id = task_id or f"task_{uuid.uuid4().hex[:12]}"
        context = AgentContext(
            task_id=task_id,
            analysis_type=analysis_type,
            data_source=data_source,
            parameters=dict(parameters or {}),
            on_progress=on_progress,
        )
        stages = sequence if sequence is not None else sequence_for(analysis_type)
        self._logger.info(
            "analysis_started",
            extra={"task_id": task_id, "analysis_type": analysis_type},
        )
        results = await self._orchestrator.execute(data, context, stages)

        report: Optional[Report] = None
        generated = next(
            (
                result
                for result in results
                if result.agent_type is AgentType.REPORT_GENERATION and result.succeeded
            ),
            None,
        )
        if generated is not None and generated.data:
            report = await self._store.create(
                self._draft(generated.data["report"], task_id, analysis_type, owner_id, template_id)
            )
            self._logger.info(
                "report_saved", extra={"task_id": task_id, "report_id": report.id}
            )

        self._logger.info(
            "analysis_finished",
            extra={
                "task_id": task_id,
                "stages": len(results),
                "failed": sum(1 for result in results if not result.succeeded),
            },
        )
        return AnalysisRun(task_id=task_id, results=results, report=report)

    @staticmethod
    def _draft(
        report: Mapping[str, Any],
        task_id: str,
        analysis_type: str,
        owner_id: Optional[str],
        template_id: Optional[str],
    ) -> ReportCreate:
        content: Dict[str, Any] = {**report, "markdown": to_markdown(report)}
        return ReportCreate(
            title=report.get("title") or "Untitled report",
            content=content,
            owner_id=owner_id or DEFAULT_OWNER_ID,
            template_id=template_id,
            analysis_task_id=task_id,
            tags=[analysis_type],
            metadata={**report.get("metadata", {}), "generated_at": report.get("generated_at")},
        )
