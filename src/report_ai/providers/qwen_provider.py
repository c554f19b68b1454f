"""Alibaba DashScope (Qwen) adapter."""

from __future__ import annotations

from typing import Any, Dict, Mapping

from report_ai.domain.exceptions import ProviderParseError
from report_ai.domain.models import AIRequest, ProviderSpec

from .base import BaseProviderAdapter, ParsedCompletion, PreparedRequest


class QwenAdapter(BaseProviderAdapter):
    """DashScope nests messages under ``input`` and sampling under ``parameters``."""

    VENDOR_LABEL = "Qwen"

    def build_request(
        self, provider: ProviderSpec, request: AIRequest, api_key: str
    ) -> PreparedRequest:
        params = request.effective_parameters(provider.parameters)
        payload: Dict[str, Any] = {
            "model": provider.model,
            "input": {"messages": self.build_messages(request)},
            "parameters": params.to_dict(),
        }
        return PreparedRequest(
            url=provider.endpoint,
            payload=payload,
            headers=self.bearer_headers(api_key),
        )

    def parse_response(self, data: Mapping[str, Any]) -> ParsedCompletion:
        output = data.get("output")
        if not isinstance(output, Mapping):
            raise ProviderParseError("Malformed Qwen response", context=self.body_shape(data))

        content = output.get("text")
        if content is None:
            # result_format=message responses
            try:
                content = output["choices"][0]["message"]["content"]
            except (KeyError, IndexError, TypeError) as exc:
                raise ProviderParseError(
                    "Malformed Qwen response", context=self.body_shape(data)
                ) from exc
        if not isinstance(content, str):
            raise ProviderParseError("Malformed Qwen response", context=self.body_shape(data))

        usage = self.usage_from(
            data.get("usage"), "input_tokens", "output_tokens", "total_tokens"
        )
        return ParsedCompletion(content=content, usage=usage)
