import httpx
import pytest

from report_ai.core.registry import ApiKeyResolver
from report_ai.domain.exceptions import ProviderParseError
from report_ai.domain.models import AIRequest, AIResponse, ProviderSpec, TokenUsage
from report_ai.providers.base import BaseProviderAdapter, ParsedCompletion, PreparedRequest


class _EchoAdapter(BaseProviderAdapter):
    VENDOR_LABEL = "Echo"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.logged_requests = []
        self.logged_responses = []

    def build_request(self, provider, request, api_key):
        return PreparedRequest(
            url=provider.endpoint,
            payload={"text": request.prompt},
            headers=self.bearer_headers(api_key),
        )

    def parse_response(self, data):
        if "echo" not in data:
            raise ProviderParseError("Malformed Echo response")
        return ParsedCompletion(content=data["echo"], usage=self.usage_from(data.get("usage"), "in", "out", "all"))

    def log_request(self, provider, request):
        self.logged_requests.append(provider.name)

    def log_response(self, response: AIResponse):
        self.logged_responses.append(response.content)


@pytest.fixture
def provider() -> ProviderSpec:
    return ProviderSpec(
        name="echo",
        display_name="Echo",
        endpoint="https://echo.test/v1/generate",
        model="echo-1",
        priority=1,
        cost_per_request=0.5,
    )


def _adapter(handler) -> _EchoAdapter:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return _EchoAdapter(client, ApiKeyResolver({"echo": "k"}, environ={}))


@pytest.mark.asyncio
async def test_complete_runs_template_steps(provider):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["authorization"] == "Bearer k"
        return httpx.Response(200, json={"echo": "pong", "usage": {"in": 2, "out": 3}})

    adapter = _adapter(handler)
    response = await adapter.complete(provider, AIRequest(prompt="ping"))

    assert response.content == "pong"
    assert response.usage == TokenUsage(prompt_tokens=2, completion_tokens=3, total_tokens=5)
    assert response.cost == 0.5
    assert response.response_time >= 0
    assert adapter.logged_requests == ["echo"]
    assert adapter.logged_responses == ["pong"]


@pytest.mark.asyncio
async def test_parse_errors_propagate(provider):
    adapter = _adapter(lambda request: httpx.Response(200, json={"other": 1}))
    with pytest.raises(ProviderParseError):
        await adapter.complete(provider, AIRequest(prompt="ping"))
    assert adapter.logged_responses == []


def test_build_messages_orders_system_context_prompt():
    request = AIRequest(prompt="question", context="background", system_prompt="role")
    assert BaseProviderAdapter.build_messages(request) == [
        {"role": "system", "content": "role"},
        {"role": "user", "content": "background"},
        {"role": "user", "content": "question"},
    ]
    assert BaseProviderAdapter.build_messages(AIRequest(prompt="only")) == [
        {"role": "user", "content": "only"}
    ]


def test_usage_from_tolerates_missing_usage():
    assert BaseProviderAdapter.usage_from(None, "a", "b", "c") == TokenUsage()
    usage = BaseProviderAdapter.usage_from({"a": 1, "b": 2, "c": 10}, "a", "b", "c")
    assert usage.total_tokens == 10


def test_body_shape_names_keys_without_values():
    shape = BaseProviderAdapter.body_shape({"choices": [], "secret": "PATIENT RECORD 42"})
    assert shape == {"keys": ["choices", "secret"]}
    assert BaseProviderAdapter.body_shape(["raw"]) == {"body_type": "list"}
