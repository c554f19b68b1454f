"""Provider adapter abstractions and shared HTTP behavior."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import httpx

from report_ai.domain.exceptions import ProviderHTTPError, ProviderParseError
from report_ai.domain.interfaces import IApiKeyResolver, IProviderAdapter
from report_ai.domain.models import AIRequest, AIResponse, ProviderSpec, TokenUsage


@dataclass(frozen=True)
class PreparedRequest:
    """Vendor-specific wire request produced by ``build_request``."""

    url: str
    payload: Dict[str, Any]
    headers: Dict[str, str] = field(default_factory=dict)
    params: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ParsedCompletion:
    content: str
    usage: TokenUsage


class BaseProviderAdapter(IProviderAdapter, ABC):
    """Template-method base: subclasses translate requests and responses,
    the base performs the HTTP call and maps transport failures."""

    VENDOR_LABEL = "Provider"

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        key_resolver: IApiKeyResolver,
        *,
        timeout: httpx.Timeout | float = 30.0,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._http = http_client
        self._key_resolver = key_resolver
        self._timeout = timeout
        self.logger = logger or logging.getLogger(
            f"{__name__}.{self.__class__.__name__}"
        )

    async def complete(self, provider: ProviderSpec, request: AIRequest) -> AIResponse:
        api_key = self._key_resolver.resolve(provider.name)
        prepared = self.build_request(provider, request, api_key)
        self.log_request(provider, request)

        started = time.perf_counter()
        http_response = await self._post(provider, prepared)
        if not http_response.is_success:
            raise ProviderHTTPError(
                f"{self.VENDOR_LABEL} API error: "
                f"{http_response.status_code} {http_response.reason_phrase}",
                status_code=http_response.status_code,
                status_text=http_response.reason_phrase,
                context={"provider": provider.name},
            )

        try:
            data = http_response.json()
        except ValueError as exc:
            raise ProviderParseError(
                f"{self.VENDOR_LABEL} returned a non-JSON body",
                context={"provider": provider.name},
            ) from exc

        parsed = self.parse_response(data)
        elapsed_ms = (time.perf_counter() - started) * 1000
        response = AIResponse(
            content=parsed.content,
            usage=parsed.usage,
            model=provider.model,
            provider=provider.name,
            response_time=round(elapsed_ms, 3),
            cost=provider.cost_per_request,
        )
        self.log_response(response)
        return response

    @abstractmethod
    def build_request(
        self, provider: ProviderSpec, request: AIRequest, api_key: str
    ) -> PreparedRequest:
        """Translate the uniform request into the vendor wire format."""

    @abstractmethod
    def parse_response(self, data: Mapping[str, Any]) -> ParsedCompletion:
        """Extract content and token usage; raise ``ProviderParseError`` if absent."""

    def log_request(self, provider: ProviderSpec, request: AIRequest) -> None:
        self.logger.debug(
            "provider_request",
            extra={"provider": provider.name, "model": provider.model},
        )

    def log_response(self, response: AIResponse) -> None:
        self.logger.debug(
            "provider_response",
            extra={
                "provider": response.provider,
                "model": response.model,
                "response_time": response.response_time,
                "total_tokens": response.usage.total_tokens,
            },
        )

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------
    async def _post(
        self, provider: ProviderSpec, prepared: PreparedRequest
    ) -> httpx.Response:
        try:
            return await self._http.post(
                prepared.url,
                json=prepared.payload,
                headers=prepared.headers,
                params=prepared.params or None,
                timeout=self._timeout,
            )
        except httpx.TimeoutException as exc:
            raise ProviderHTTPError(
                f"{self.VENDOR_LABEL} API timeout",
                status_code=408,
                status_text="Request Timeout",
                context={"provider": provider.name},
            ) from exc
        except httpx.TransportError as exc:
            raise ProviderHTTPError(
                f"{self.VENDOR_LABEL} API unreachable",
                status_code=503,
                status_text="Service Unavailable",
                context={"provider": provider.name, "reason": str(exc)},
            ) from exc

    @staticmethod
    def build_messages(request: AIRequest) -> List[Dict[str, str]]:
        messages: List[Dict[str, str]] = []
        if request.system_prompt:
            messages.append({"role": "system", "content": request.system_prompt})
        if request.context:
            messages.append({"role": "user", "content": request.context})
        messages.append({"role": "user", "content": request.prompt})
        return messages

    @staticmethod
    def bearer_headers(api_key: str) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    @staticmethod
    def usage_from(
        usage: Any, prompt_key: str, completion_key: str, total_key: str
    ) -> TokenUsage:
        if not isinstance(usage, Mapping):
            return TokenUsage()
        prompt_tokens = int(usage.get(prompt_key) or 0)
        completion_tokens = int(usage.get(completion_key) or 0)
        total_tokens = int(usage.get(total_key) or prompt_tokens + completion_tokens)
        return TokenUsage(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=total_tokens,
        )

    @staticmethod
    def body_shape(data: Any) -> Dict[str, Any]:
        """Parse-error context naming the top-level keys; never the body itself."""
        if isinstance(data, Mapping):
            return {"keys": sorted(str(key) for key in data)}
        return {"body_type": type(data).__name__}
