"""Adapter for vendors speaking the OpenAI-style chat completions format."""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

import httpx

from report_ai.domain.exceptions import ProviderParseError
from report_ai.domain.interfaces import IApiKeyResolver
from report_ai.domain.models import AIRequest, ProviderSpec

from .base import BaseProviderAdapter, ParsedCompletion, PreparedRequest


class ChatCompletionsAdapter(BaseProviderAdapter):
    """Used for Kimi (Moonshot), Zhipu GLM and DeepSeek."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        key_resolver: IApiKeyResolver,
        *,
        vendor_label: str = "Chat completions",
        timeout: httpx.Timeout | float = 30.0,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__(http_client, key_resolver, timeout=timeout, logger=logger)
        self.VENDOR_LABEL = vendor_label

    def build_request(
        self, provider: ProviderSpec, request: AIRequest, api_key: str
    ) -> PreparedRequest:
        params = request.effective_parameters(provider.parameters)
        payload: Dict[str, Any] = {
            "model": provider.model,
            "messages": self.build_messages(request),
        }
        payload.update(params.to_dict())
        return PreparedRequest(
            url=provider.endpoint,
            payload=payload,
            headers=self.bearer_headers(api_key),
        )

    def parse_response(self, data: Mapping[str, Any]) -> ParsedCompletion:
        try:
            content: Optional[str] = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ProviderParseError(
                f"Malformed {self.VENDOR_LABEL} response", context=self.body_shape(data)
            ) from exc
        if not isinstance(content, str):
            raise ProviderParseError(
                f"Malformed {self.VENDOR_LABEL} response", context=self.body_shape(data)
            )

        usage = self.usage_from(
            data.get("usage"), "prompt_tokens", "completion_tokens", "total_tokens"
        )
        return ParsedCompletion(content=content, usage=usage)
