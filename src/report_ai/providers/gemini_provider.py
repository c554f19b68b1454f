"""Google Gemini adapter; the API key travels as a query parameter."""

from __future__ import annotations

from typing import Any, Dict, Mapping

from report_ai.domain.exceptions import ProviderParseError
from report_ai.domain.models import AIRequest, ProviderSpec

from .base import BaseProviderAdapter, ParsedCompletion, PreparedRequest

_GENERATION_CONFIG_KEYS = {
    "temperature": "temperature",
    "max_tokens": "maxOutputTokens",
    "top_p": "topP",
    "frequency_penalty": "frequencyPenalty",
    "presence_penalty": "presencePenalty",
}


class GeminiAdapter(BaseProviderAdapter):
    VENDOR_LABEL = "Gemini"

    def build_request(
        self, provider: ProviderSpec, request: AIRequest, api_key: str
    ) -> PreparedRequest:
        params = request.effective_parameters(provider.parameters).to_dict()
        text = "\n\n".join(
            part
            for part in (request.system_prompt, request.context, request.prompt)
            if part
        )
        payload: Dict[str, Any] = {
            "contents": [{"parts": [{"text": text}]}],
            "generationConfig": {
                _GENERATION_CONFIG_KEYS[key]: value for key, value in params.items()
            },
        }
        return PreparedRequest(
            url=provider.endpoint,
            payload=payload,
            headers={"Content-Type": "application/json"},
            params={"key": api_key},
        )

    def parse_response(self, data: Mapping[str, Any]) -> ParsedCompletion:
        try:
            parts = data["candidates"][0]["content"]["parts"]
            texts = [part["text"] for part in parts if isinstance(part, Mapping) and "text" in part]
        except (KeyError, IndexError, TypeError) as exc:
            raise ProviderParseError(
                "Malformed Gemini response", context=self.body_shape(data)
            ) from exc
        if not texts:
            raise ProviderParseError("Malformed Gemini response", context=self.body_shape(data))

        usage = self.usage_from(
            data.get("usageMetadata"),
            "promptTokenCount",
            "candidatesTokenCount",
            "totalTokenCount",
        )
        return ParsedCompletion(content="\n".join(texts), usage=usage)
