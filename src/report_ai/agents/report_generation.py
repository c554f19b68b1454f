"""Report generation stage: merges prior stage outputs into a structured report."""

from __future__ import annotations

import logging
import re
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from report_ai.core.registry import AgentProfile
from report_ai.domain.interfaces import IAIDispatcher
from report_ai.domain.models import AgentContext, AgentResult, AgentType

from .base import BaseAgent, to_json

DEFAULT_TITLE = "Intelligent Analysis Report"
DEFAULT_RECOMMENDATIONS = (
    "Strengthen data quality monitoring",
    "Tune forecasting model parameters",
    "Set up an anomaly early-warning process",
    "Review and update analysis models regularly",
)
_LIST_ITEM = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s+(.*\S)\s*$")


def _get(data: Any, *path: str) -> Any:
    for key in path:
        if not isinstance(data, Mapping):
            return None
        data = data.get(key)
    return data


def data_quality_section(data: Any) -> str:
    if not data:
        return "Data quality information unavailable"
    score = _get(data, "quality", "score")
    fields = _get(data, "structure", "fields") or []
    return (
        f"Data quality score: {score if score is not None else 'N/A'}/100\n"
        f"Fields analysed: {len(fields)}"
    )


def pattern_section(data: Any) -> str:
    if not data:
        return "Pattern analysis information unavailable"
    return (
        f"Identified {len(_get(data, 'time_patterns') or [])} time patterns\n"
        f"Found {len(_get(data, 'cyclic_patterns') or [])} cyclic features\n"
        f"Main trend: {_get(data, 'trends', 'main_trend') or 'N/A'}"
    )


def prediction_section(data: Any) -> str:
    if not data:
        return "Prediction information unavailable"
    accuracy = _get(data, "validation", "accuracy")
    return (
        f"Forecast model: {_get(data, 'model', 'type') or 'N/A'}\n"
        f"Forecast accuracy: {accuracy if accuracy is not None else 'N/A'}%\n"
        f"Forecast trend: {_get(data, 'predictions', 'trend') or 'N/A'}"
    )


def anomaly_section(data: Any) -> str:
    if not data:
        return "Anomaly detection information unavailable"
    total = sum(
        len(_get(data, key) or [])
        for key in ("statistical_anomalies", "time_series_anomalies", "pattern_anomalies")
    )
    return (
        f"Detected {total} anomalies\n"
        f"Risk level: {_get(data, 'risk_assessment', 'overall_risk') or 'N/A'}"
    )


def parse_recommendations(text: str) -> List[str]:
    """List items from free text; bulleted or numbered lines only."""

    items = []
    for line in text.splitlines():
        match = _LIST_ITEM.match(line)
        if match:
            items.append(match.group(1))
    return items


def report_confidence(results: Sequence[AgentResult]) -> float:
    if not results:
        return 0.0
    return sum(result.metadata.confidence for result in results) / len(results)


class ReportGenerationAgent(BaseAgent):
    agent_type = AgentType.REPORT_GENERATION

    def __init__(
        self,
        dispatcher: IAIDispatcher,
        profile: Optional[AgentProfile] = None,
        *,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__(dispatcher, profile, logger=logger)
        self._clock = clock

    async def process(self, data: Any, context: AgentContext) -> AgentResult:
        started = time.perf_counter()
        previous = context.previous_results
        self.progress(context, 0, "Starting report generation")

        self.progress(context, 20, "Integrating analysis results")
        integrated = await self._integrate(context)

        self.progress(context, 40, "Writing executive summary")
        summary = await self.call_ai(
            "Write an executive summary highlighting the key findings and "
            f"conclusions of this analysis:\n{to_json(integrated)[:2000]}"
        )

        self.progress(context, 60, "Writing detailed analysis")
        await self.call_ai(
            "Write a detailed analysis covering data quality, patterns, "
            f"predictions and anomalies:\n{to_json(integrated)[:2000]}"
        )
        detailed = {
            "data_quality": data_quality_section(integrated["data_quality"]),
            "patterns": pattern_section(integrated["patterns"]),
            "predictions": prediction_section(integrated["predictions"]),
            "anomalies": anomaly_section(integrated["anomalies"]),
        }

        self.progress(context, 80, "Drafting recommendations")
        recommendations = await self._recommendations(integrated)

        self.progress(context, 100, "Formatting final report")
        report = self._format_report(context, summary, detailed, recommendations)
        confidence = report_confidence(previous)

        return self.build_result(
            started=started,
            data={
                "report": report,
                "executive_summary": summary,
                "detailed_analysis": detailed,
                "recommendations": recommendations,
            },
            insights=[
                f"Report contains {len(report['sections'])} main sections",
                f"Generated {len(recommendations)} recommendations",
                f"Integrated results from {len(previous)} agents",
                f"Report confidence: {round(confidence * 100)}%",
            ],
            confidence=confidence,
            size_of=report,
            sections_count=len(report["sections"]),
        )

    async def _integrate(self, context: AgentContext) -> Dict[str, Any]:
        lines = [
            f"{result.agent_name}: {', '.join(result.insights) or result.error or 'no insights'}"
            for result in context.previous_results
        ]
        await self.call_ai(
            "Integrate the following agent results and extract the key insights:\n"
            + ("\n".join(lines) or "No previous results are available.")
        )

        def data_of(agent_type: AgentType) -> Optional[Any]:
            result = context.find_result(agent_type)
            return result.data if result is not None else None

        return {
            "data_quality": data_of(AgentType.DATA_COLLECTION),
            "patterns": data_of(AgentType.PATTERN_RECOGNITION),
            "predictions": data_of(AgentType.PREDICTIVE_MODELING),
            "anomalies": data_of(AgentType.ANOMALY_DETECTION),
        }

    async def _recommendations(self, integrated: Mapping[str, Any]) -> List[str]:
        text = await self.call_ai(
            "Propose concrete recommendations and an action plan as a bulleted "
            f"list based on these results:\n{to_json(integrated)[:2000]}"
        )
        parsed = parse_recommendations(text)
        if parsed:
            return parsed
        risk = _get(integrated["anomalies"], "risk_assessment", "recommendations") or []
        return [*DEFAULT_RECOMMENDATIONS, *risk]

    def _format_report(
        self,
        context: AgentContext,
        summary: str,
        detailed: Mapping[str, str],
        recommendations: Sequence[str],
    ) -> Dict[str, Any]:
        return {
            "title": context.parameters.get("title", DEFAULT_TITLE),
            "generated_at": self._clock().isoformat(),
            "sections": [
                {"title": "Executive Summary", "content": summary},
                {"title": "Data Quality Analysis", "content": detailed["data_quality"]},
                {"title": "Pattern Recognition", "content": detailed["patterns"]},
                {"title": "Predictive Analysis", "content": detailed["predictions"]},
                {"title": "Anomaly Detection", "content": detailed["anomalies"]},
                {"title": "Recommendations", "content": "\n".join(recommendations)},
            ],
            "metadata": {
                "task_id": context.task_id,
                "analysis_type": context.analysis_type,
                "generated_by": "report-ai agent pipeline",
                "version": "1.0.0",
            },
        }
