"""Registry mapping provider names to vendor adapters."""

from __future__ import annotations

import re
from typing import Callable, Dict, List, Pattern, Tuple

import httpx

from report_ai.domain.exceptions import ProviderError
from report_ai.domain.interfaces import IApiKeyResolver, IProviderAdapter
from report_ai.domain.models import ProviderSpec

from .chat_completions_provider import ChatCompletionsAdapter
from .gemini_provider import GeminiAdapter
from .qwen_provider import QwenAdapter

AdapterBuilder = Callable[[], IProviderAdapter]


class AdapterRegistry:
    """Resolves the adapter for a provider by name, then by endpoint pattern.

    New vendors register an adapter here; the dispatcher never switches on names.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        key_resolver: IApiKeyResolver,
        *,
        timeout: httpx.Timeout | float = 30.0,
    ) -> None:
        self._http_client = http_client
        self._key_resolver = key_resolver
        self._timeout = timeout
        self._by_name: Dict[str, IProviderAdapter] = {}
        self._by_endpoint: List[Tuple[Pattern[str], IProviderAdapter]] = []
        self._register_defaults()

    def register(self, provider_name: str, adapter: IProviderAdapter) -> None:
        self._by_name[provider_name] = adapter

    def register_endpoint(self, pattern: str, adapter: IProviderAdapter) -> None:
        self._by_endpoint.append((re.compile(pattern, re.IGNORECASE), adapter))

    def get(self, provider: ProviderSpec | str) -> IProviderAdapter:
        name = provider if isinstance(provider, str) else provider.name
        adapter = self._by_name.get(name)
        if adapter is not None:
            return adapter
        if not isinstance(provider, str):
            for pattern, candidate in self._by_endpoint:
                if pattern.search(provider.endpoint):
                    return candidate
        raise ProviderError(f"No adapter registered for provider '{name}'")

    def __contains__(self, provider_name: object) -> bool:
        return provider_name in self._by_name

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _register_defaults(self) -> None:
        common = {"timeout": self._timeout}
        qwen = QwenAdapter(self._http_client, self._key_resolver, **common)
        gemini = GeminiAdapter(self._http_client, self._key_resolver, **common)
        self.register("qwen", qwen)
        self.register("gemini", gemini)
        for name, label in (("kimi", "Kimi"), ("zhipu", "Zhipu"), ("deepseek", "DeepSeek")):
            self.register(
                name,
                ChatCompletionsAdapter(
                    self._http_client, self._key_resolver, vendor_label=label, **common
                ),
            )

        self.register_endpoint(r"dashscope\.aliyuncs\.com", qwen)
        self.register_endpoint(r"generativelanguage\.googleapis\.com", gemini)
        self.register_endpoint(
            r"/chat/completions/?$",
            ChatCompletionsAdapter(self._http_client, self._key_resolver, **common),
        )
