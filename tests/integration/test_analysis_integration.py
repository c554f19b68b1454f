import json
from pathlib import Path
from typing import List

import httpx
import pytest

from report_ai import DIContainer
from report_ai.core.config import AIConfig
from report_ai.domain.exceptions import AllProvidersFailedError
from report_ai.domain.models import AIRequest, AgentStatus, AgentType
from report_ai.storage.sqlite_store import SQLiteReportStore

pytestmark = [pytest.mark.integration, pytest.mark.asyncio]

RECOMMENDATIONS = "- Monitor peak load\n- Add transformer capacity"

CONFIG = AIConfig.from_mapping(
    {
        "use_env_keys": False,
        "api_keys": {
            "qwen": "sk-qwen",
            "kimi": "sk-kimi",
            "zhipu": "sk-zhipu",
            "deepseek": "sk-deepseek",
            "gemini": "g-key",
        },
        "retry": {"max_retries": 3, "retry_delay_ms": 0},
    }
)


class _VendorServer:
    """Answers each vendor in its own wire format; hosts listed in ``down`` fail."""

    def __init__(self, *down: str) -> None:
        self.down = set(down)
        self.hosts: List[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        host = request.url.host
        self.hosts.append(host)
        if host in self.down:
            raise httpx.ConnectError("unreachable", request=request)
        if "dashscope" in host:
            return httpx.Response(200, json={"output": {"text": RECOMMENDATIONS}})
        if "googleapis" in host:
            return httpx.Response(
                200, json={"candidates": [{"content": {"parts": [{"text": RECOMMENDATIONS}]}}]}
            )
        body = json.loads(request.content)
        assert body["messages"][-1]["role"] == "user"
        return httpx.Response(200, json={"choices": [{"message": {"content": RECOMMENDATIONS}}]})


def _records(count: int = 30):
    return [{"hour": index, "load": 100.0 + 2.0 * index, "region": "north"} for index in range(count)]


def _service(server: _VendorServer, db_path: Path):
    client = httpx.AsyncClient(transport=httpx.MockTransport(server))
    dispatcher = DIContainer.create_dispatcher(CONFIG, http_client=client)
    return dispatcher, DIContainer.create_analysis_service(dispatcher, sqlite_path=db_path)


async def test_trend_analysis_runs_pipeline_and_saves_draft(tmp_path: Path):
    server = _VendorServer()
    dispatcher, service = _service(server, tmp_path / "reports.db")
    progress = []

    run = await service.run(
        _records(),
        task_id="task-42",
        analysis_type="trend",
        parameters={"title": "Feeder load trend", "forecast_horizon": 7},
        on_progress=lambda name, percent, message: progress.append((name, percent)),
    )

    assert run.succeeded
    assert [result.agent_type for result in run.results] == [
        AgentType.DATA_COLLECTION,
        AgentType.PATTERN_RECOGNITION,
        AgentType.PREDICTIVE_MODELING,
        AgentType.REPORT_GENERATION,
    ]
    predictions = run.result_for(AgentType.PREDICTIVE_MODELING).data["predictions"]
    assert predictions["trend"] == "increasing"
    assert len(predictions["values"]) == 7

    report = run.report
    assert report.id == "local_report_1"
    assert report.title == "Feeder load trend"
    assert report.tags == ["trend"]
    assert report.analysis_task_id == "task-42"
    assert report.content["markdown"].startswith("# Feeder load trend")
    assert report.content["sections"][-1]["content"] == "Monitor peak load\nAdd transformer capacity"

    stored = await SQLiteReportStore(tmp_path / "reports.db").get(report.id)
    assert stored == report

    hosts = set(server.hosts)
    assert {"dashscope.aliyuncs.com", "api.moonshot.cn", "open.bigmodel.cn", "generativelanguage.googleapis.com"} <= hosts
    assert ("Report Generation Agent", 100) in progress
    assert dispatcher.get_stats().success_rate == 100.0


async def test_unreachable_preferred_provider_falls_back(tmp_path: Path):
    server = _VendorServer("generativelanguage.googleapis.com")
    dispatcher, service = _service(server, tmp_path / "reports.db")

    run = await service.run(_records(), analysis_type="anomaly")

    report_stage = run.result_for(AgentType.REPORT_GENERATION)
    assert report_stage.status is AgentStatus.SUCCESS
    assert run.report is not None
    stats = dispatcher.get_stats()
    assert stats.provider_stats["gemini"].failures >= 1
    assert stats.success_rate < 100.0


async def test_failed_stage_still_produces_report(tmp_path: Path):
    server = _VendorServer()
    _, service = _service(server, tmp_path / "reports.db")

    run = await service.run(
        [{"region": "north"}, {"region": "south"}], analysis_type="prediction"
    )

    predictive = run.result_for(AgentType.PREDICTIVE_MODELING)
    assert predictive.status is AgentStatus.ERROR
    assert "Not enough numeric data" in predictive.error
    assert run.succeeded is False
    assert run.report is not None
    assert "Prediction information unavailable" in run.report.content["markdown"]


async def test_health_check_reports_unreachable_vendor():
    server = _VendorServer("api.deepseek.com")
    client = httpx.AsyncClient(transport=httpx.MockTransport(server))
    dispatcher = DIContainer.create_dispatcher(CONFIG, http_client=client)

    status = await dispatcher.health_check()

    assert status == {
        "qwen": True,
        "kimi": True,
        "zhipu": True,
        "deepseek": False,
        "gemini": True,
    }


async def test_malformed_vendor_body_stays_out_of_monitor_and_errors():
    leaked = "PATIENT RECORD 42"
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(
            lambda request: httpx.Response(200, json={"choices": [], "secret_completion": leaked})
        )
    )
    dispatcher = DIContainer.create_dispatcher(CONFIG, http_client=client)

    with pytest.raises(AllProvidersFailedError) as exc_info:
        await dispatcher.call_ai(AIRequest(prompt="summarise"), preferred_provider="kimi")

    entries = dispatcher.monitor.entries()
    assert entries and all(entry.error_type == "ProviderParseError" for entry in entries)
    assert all(leaked not in (entry.error or "") for entry in entries)
    assert all(entry.response is None for entry in entries)
    assert "secret_completion" in entries[0].error
    assert leaked not in str(exc_info.value)
