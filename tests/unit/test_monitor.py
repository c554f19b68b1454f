from datetime import datetime, timezone

import pytest

from report_ai.analytics.monitor import REDACTED, RequestMonitor
from report_ai.core.config import MonitoringConfig
from report_ai.domain.exceptions import ProviderHTTPError
from report_ai.domain.models import AIRequest, AIResponse, TokenUsage

FIXED_NOW = datetime(2024, 5, 1, tzinfo=timezone.utc)


def _response(provider: str = "qwen", cost: float = 0.002) -> AIResponse:
    return AIResponse(
        content="answer",
        usage=TokenUsage(prompt_tokens=3, completion_tokens=4, total_tokens=7),
        model="m",
        provider=provider,
        response_time=120.0,
        cost=cost,
    )


def _monitor(**overrides) -> RequestMonitor:
    return RequestMonitor(MonitoringConfig(**overrides), clock=lambda: FIXED_NOW)


def test_prompts_and_responses_are_redacted_by_default():
    monitor = _monitor()
    monitor.log_request("qwen", AIRequest(prompt="secret", context="ctx"), response=_response())

    entry = monitor.entries()[0]
    assert entry.prompt == REDACTED
    assert entry.context is None
    assert entry.response is None
    assert entry.success is True
    assert entry.timestamp == FIXED_NOW


def test_prompts_and_responses_kept_when_enabled():
    monitor = _monitor(log_prompts=True, log_responses=True)
    monitor.log_request("qwen", AIRequest(prompt="visible"), response=_response())

    entry = monitor.entries()[0]
    assert entry.prompt == "visible"
    assert entry.response.content == "answer"


def test_logging_can_be_disabled():
    monitor = _monitor(log_requests=False)
    monitor.log_request("qwen", AIRequest(prompt="x"), response=_response())
    assert len(monitor) == 0


def test_failures_record_error_type():
    monitor = _monitor()
    error = ProviderHTTPError("Qwen API error: 500", status_code=500)
    monitor.log_request("qwen", AIRequest(prompt="x"), error=error, duration=5.0)

    entry = monitor.entries()[0]
    assert entry.success is False
    assert entry.error_type == "ProviderHTTPError"
    assert entry.cost == 0.0


def test_summary_aggregates_per_provider():
    monitor = _monitor()
    request = AIRequest(prompt="x")
    monitor.log_request("qwen", request, response=_response(), duration=100.0)
    monitor.log_request("qwen", request, error=RuntimeError("down"), duration=5.0)
    monitor.log_request("kimi", request, response=_response("kimi", 0.003), duration=300.0)
    monitor.log_request("kimi", request, response=_response("kimi", 0.003), duration=1.0, cached=True)

    stats = monitor.summary()

    assert stats.total_requests == 4
    assert stats.success_rate == 75.0
    assert stats.average_response_time == pytest.approx((100.0 + 300.0 + 1.0) / 3, abs=0.001)
    assert stats.total_cost == pytest.approx(0.005)
    assert stats.provider_stats["qwen"].requests == 2
    assert stats.provider_stats["qwen"].failures == 1
    assert stats.provider_stats["kimi"].average_response_time == pytest.approx(150.5)


def test_empty_summary():
    stats = _monitor().summary()
    assert stats.total_requests == 0
    assert stats.success_rate == 0.0
    assert stats.provider_stats == {}


def test_log_is_trimmed_to_newest_entries():
    monitor = _monitor(max_entries=10, retain_entries=4)
    for index in range(11):
        monitor.log_request(f"p{index}", AIRequest(prompt="x"), response=_response())

    assert [entry.provider for entry in monitor.entries()] == ["p7", "p8", "p9", "p10"]

    monitor.clear()
    assert len(monitor) == 0
