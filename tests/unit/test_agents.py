from datetime import datetime, timezone
from typing import List, Optional, Tuple

import pytest

from report_ai.agents.anomaly_detection import (
    AnomalyDetectionAgent,
    assess_risk,
    statistical_anomalies,
)
from report_ai.agents.data_collection import (
    DataCollectionAgent,
    assess_quality,
    standardize_value,
)
from report_ai.agents.pattern_recognition import PatternRecognitionAgent, cyclic_patterns
from report_ai.agents.predictive_modeling import PredictiveModelingAgent, validate_linear_model
from report_ai.agents.report_generation import (
    ReportGenerationAgent,
    parse_recommendations,
)
from report_ai.domain.exceptions import AgentError, AllProvidersFailedError
from report_ai.domain.models import (
    AgentContext,
    AgentMetadata,
    AgentResult,
    AgentStatus,
    AgentType,
    AIRequest,
    AIResponse,
)


class _FakeDispatcher:
    def __init__(self, content: str = "analysis", error: Optional[Exception] = None) -> None:
        self.content = content
        self.error = error
        self.calls: List[Tuple[AIRequest, Optional[str]]] = []

    async def call_ai(self, request: AIRequest, preferred_provider: Optional[str] = None) -> AIResponse:
        self.calls.append((request, preferred_provider))
        if self.error is not None:
            raise self.error
        return AIResponse(content=self.content, model="m", provider=preferred_provider or "qwen")


def _context(**parameters) -> Tuple[AgentContext, List[Tuple[str, int, str]]]:
    progress: List[Tuple[str, int, str]] = []
    context = AgentContext(
        task_id="task-1",
        analysis_type="trend",
        parameters=parameters,
        on_progress=lambda name, percent, message: progress.append((name, percent, message)),
    )
    return context, progress


def _linear_records(count: int = 20):
    return [{"step": index, "load": 2.0 * index + 1, "temp": 0.5 * index} for index in range(count)]


def _spiky_records():
    records = [{"step": index, "load": 10.0} for index in range(20)]
    records[10]["load"] = 100.0
    return records


# ---------------------------------------------------------------------------
# Data collection
# ---------------------------------------------------------------------------
def test_assess_quality_scores_completeness_and_validity():
    quality = assess_quality([{"a": 1, "b": None}, {"a": 2, "b": 3}, {}, "junk"])
    assert quality["empty_records"] == 2
    assert quality["missing_values"] == 1
    assert quality["score"] == 38  # 0.75 completeness * 0.5 validity
    assert quality["cleaning_rate"] == 50
    assert "Field 'b' is missing in 1 records" in quality["issues"]


def test_standardize_value():
    assert standardize_value(" 12 ") == 12
    assert standardize_value("3.5") == 3.5
    assert standardize_value(" text ") == "text"
    assert standardize_value(None) is None


@pytest.mark.asyncio
async def test_data_collection_cleans_and_reports():
    dispatcher = _FakeDispatcher("report text")
    agent = DataCollectionAgent(dispatcher)
    context, progress = _context()
    data = [{"load": " 12 ", "name": " A "}, {"load": "3.5", "name": "B"}, {}, "junk"]

    result = await agent.process(data, context)

    assert result.status is AgentStatus.SUCCESS
    assert result.data["cleaned_data"] == [{"load": 12, "name": "A"}, {"load": 3.5, "name": "B"}]
    assert result.data["structure"]["fields"] == ["load", "name"]
    assert result.data["quality"]["score"] == 50
    assert result.data["summary"] == "report text"
    assert result.metadata.confidence == pytest.approx(0.5)
    assert result.metadata.record_count == 4
    assert [percent for _, percent, _ in progress] == [0, 20, 40, 60, 80, 100]
    assert len(dispatcher.calls) == 3
    request, preferred = dispatcher.calls[0]
    assert preferred == "qwen"
    assert request.system_prompt == agent.profile.system_prompt


@pytest.mark.asyncio
async def test_ai_failure_becomes_agent_error():
    agent = DataCollectionAgent(_FakeDispatcher(error=AllProvidersFailedError()))
    context, _ = _context()
    with pytest.raises(AgentError) as exc_info:
        await agent.process([{"a": 1}], context)
    assert "AI service call failed" in exc_info.value.message


# ---------------------------------------------------------------------------
# Pattern recognition
# ---------------------------------------------------------------------------
def test_cyclic_patterns_detect_weekly_cycle():
    records = [{"sales": float(index % 7)} for index in range(28)]
    found = cyclic_patterns(records, ["sales"])
    weekly = [pattern for pattern in found if pattern["period"] == 7]
    assert weekly and weekly[0]["label"] == "weekly"
    assert weekly[0]["strength"] >= 0.5


@pytest.mark.asyncio
async def test_pattern_recognition_finds_trend_and_correlation():
    dispatcher = _FakeDispatcher()
    agent = PatternRecognitionAgent(dispatcher)
    context, _ = _context()

    result = await agent.process({"cleaned_data": _linear_records(10)}, context)

    assert result.status is AgentStatus.SUCCESS
    load_trend = next(item for item in result.data["time_patterns"] if item["field"] == "load")
    assert load_trend["direction"] == "increasing"
    assert load_trend["slope"] == pytest.approx(2.0)
    pairs = {(item["field1"], item["field2"]) for item in result.data["correlations"]}
    assert ("load", "temp") in pairs
    assert result.data["trends"]["main_trend"] == "increasing"
    assert result.metadata.confidence == pytest.approx(0.85)
    assert {preferred for _, preferred in dispatcher.calls} == {"kimi"}


@pytest.mark.asyncio
async def test_pattern_recognition_without_numeric_data_has_low_confidence():
    agent = PatternRecognitionAgent(_FakeDispatcher())
    context, _ = _context()
    result = await agent.process([{"name": "a"}, {"name": "b"}], context)
    assert result.data["time_patterns"] == []
    assert result.data["trends"]["main_trend"] == "stable"
    assert result.metadata.confidence == pytest.approx(0.3)


# ---------------------------------------------------------------------------
# Predictive modelling
# ---------------------------------------------------------------------------
def test_validate_linear_model_on_perfect_line():
    validation = validate_linear_model([2.0 * index + 1 for index in range(20)])
    assert validation["train_size"] == 16
    assert validation["test_size"] == 4
    assert validation["accuracy"] == pytest.approx(100.0)
    assert validation["confidence"] == pytest.approx(66.67)


@pytest.mark.asyncio
async def test_predictive_modeling_forecasts_requested_horizon():
    agent = PredictiveModelingAgent(_FakeDispatcher())
    context, _ = _context(target_field="load", forecast_horizon=5)

    result = await agent.process(_linear_records(20), context)

    predictions = result.data["predictions"]
    assert predictions["values"] == pytest.approx([41.0, 43.0, 45.0, 47.0, 49.0])
    assert predictions["trend"] == "increasing"
    interval = predictions["confidence_intervals"][0]
    assert interval["lower"] == pytest.approx(interval["upper"])
    assert result.data["model"]["target"] == "load"
    assert result.metadata.model_type == "linear_trend"


@pytest.mark.asyncio
async def test_predictive_modeling_uses_collected_records_from_context():
    agent = PredictiveModelingAgent(_FakeDispatcher())
    context, _ = _context()
    collected = AgentResult(
        agent_name="Data Collection Agent",
        agent_type=AgentType.DATA_COLLECTION,
        status=AgentStatus.SUCCESS,
        data={"cleaned_data": _linear_records(10)},
    )

    result = await agent.process({"unrelated": True}, context.with_result(collected))

    assert result.data["model"]["target"] == "step"
    assert len(result.data["predictions"]["values"]) == 30


@pytest.mark.asyncio
async def test_predictive_modeling_requires_three_points():
    agent = PredictiveModelingAgent(_FakeDispatcher())
    context, _ = _context()
    with pytest.raises(AgentError):
        await agent.process([{"load": 1}, {"load": 2}], context)


# ---------------------------------------------------------------------------
# Anomaly detection
# ---------------------------------------------------------------------------
def test_statistical_anomalies_flags_spike():
    found = statistical_anomalies(_spiky_records(), ["load"])
    assert len(found) == 1
    assert found[0]["index"] == 10
    assert found[0]["severity"] == "high"


def test_assess_risk_levels():
    assert assess_risk([])["overall_risk"] == "low"
    medium = [{"severity": "medium"}] * 4
    assert assess_risk(medium)["overall_risk"] == "medium"
    high = assess_risk([{"severity": "high"}])
    assert high["overall_risk"] == "high"
    assert high["risk_score"] == 30
    assert "Inspect high-risk anomalies immediately" in high["recommendations"]


@pytest.mark.asyncio
async def test_anomaly_detection_warns_when_anomalies_exist():
    agent = AnomalyDetectionAgent(_FakeDispatcher())
    context, _ = _context()

    result = await agent.process(_spiky_records(), context)

    assert result.status is AgentStatus.WARNING
    assert result.succeeded is True
    assert result.data["statistical_anomalies"][0]["value"] == 100.0
    assert result.data["risk_assessment"]["overall_risk"] == "high"
    assert result.metadata.anomalies_count >= 1


@pytest.mark.asyncio
async def test_anomaly_detection_on_clean_series_succeeds():
    agent = AnomalyDetectionAgent(_FakeDispatcher())
    context, _ = _context()
    result = await agent.process(_linear_records(20), context)
    assert result.status is AgentStatus.SUCCESS
    assert result.data["risk_assessment"]["overall_risk"] == "low"


# ---------------------------------------------------------------------------
# Report generation
# ---------------------------------------------------------------------------
def test_parse_recommendations_keeps_list_items_only():
    text = "Intro line\n- Check sensors\n2. Retrain model\n* Review alerts\nOutro"
    assert parse_recommendations(text) == ["Check sensors", "Retrain model", "Review alerts"]


def _previous(agent_type: AgentType, data, confidence: float) -> AgentResult:
    return AgentResult(
        agent_name=agent_type.value,
        agent_type=agent_type,
        status=AgentStatus.SUCCESS,
        data=data,
        insights=("insight",),
        metadata=AgentMetadata(confidence=confidence),
    )


@pytest.mark.asyncio
async def test_report_generation_integrates_previous_results():
    fixed = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    agent = ReportGenerationAgent(_FakeDispatcher("- Do A\n- Do B"), clock=lambda: fixed)
    context, _ = _context(title="Grid load review")
    context = context.with_results(
        [
            _previous(
                AgentType.DATA_COLLECTION,
                {"quality": {"score": 90}, "structure": {"fields": ["a", "b"]}},
                0.9,
            ),
            _previous(AgentType.PATTERN_RECOGNITION, {"trends": {"main_trend": "increasing"}}, 0.5),
        ]
    )

    result = await agent.process({}, context)

    report = result.data["report"]
    assert report["title"] == "Grid load review"
    assert report["generated_at"] == fixed.isoformat()
    assert [section["title"] for section in report["sections"]] == [
        "Executive Summary",
        "Data Quality Analysis",
        "Pattern Recognition",
        "Predictive Analysis",
        "Anomaly Detection",
        "Recommendations",
    ]
    assert "Data quality score: 90/100" in report["sections"][1]["content"]
    assert report["sections"][3]["content"] == "Prediction information unavailable"
    assert result.data["recommendations"] == ["Do A", "Do B"]
    assert report["metadata"]["task_id"] == "task-1"
    assert result.metadata.confidence == pytest.approx(0.7)
    assert result.metadata.sections_count == 6


@pytest.mark.asyncio
async def test_report_generation_tolerates_no_previous_results():
    agent = ReportGenerationAgent(_FakeDispatcher("No list here"))
    context, _ = _context()

    result = await agent.process(None, context)

    assert result.status is AgentStatus.SUCCESS
    assert result.metadata.confidence == 0.0
    assert result.data["report"]["title"] == "Intelligent Analysis Report"
    assert len(result.data["recommendations"]) >= 4
