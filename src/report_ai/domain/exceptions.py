"""Exception hierarchy for AI orchestration, storage and export failures."""

from __future__ import annotations

from typing import Any, Mapping, Optional


class ReportAIError(Exception):
    """Base class for all domain-level errors in the orchestration layer."""

    default_message = "Report AI error occurred"

    def __init__(
        self, message: str | None = None, *, context: Mapping[str, Any] | None = None
    ):
        self.message = message or self.default_message
        self.context: Mapping[str, Any] = dict(context or {})
        formatted = self._format_message()
        super().__init__(formatted)

    def _format_message(self) -> str:
        if self.context:
            return f"{self.message} | context={self.context}"
        return self.message


class ProviderError(ReportAIError):
    """Generic provider-related issues raised by adapters."""

    default_message = "Provider error"


class ProviderHTTPError(ProviderError):
    """Vendor call returned a non-2xx status or timed out."""

    default_message = "Provider HTTP request failed"

    def __init__(
        self,
        message: str | None = None,
        *,
        status_code: int,
        status_text: str = "",
        context: Mapping[str, Any] | None = None,
    ):
        self.status_code = status_code
        self.status_text = status_text
        merged = {"status_code": status_code, "status_text": status_text}
        merged.update(context or {})
        super().__init__(message, context=merged)


class ProviderParseError(ProviderError):
    """Vendor response body lacked the expected fields."""

    default_message = "Malformed provider response"


class AllProvidersFailedError(ProviderError):
    """Every dispatch attempt failed; wraps the last underlying error."""

    default_message = "All AI providers failed"

    def __init__(
        self,
        message: str | None = None,
        *,
        last_error: Optional[BaseException] = None,
        context: Mapping[str, Any] | None = None,
    ):
        self.last_error = last_error
        super().__init__(message, context=context)


class NoProviderAvailableError(ReportAIError):
    """Load balancer found no eligible candidate."""

    default_message = "No active AI providers available"


class MissingAPIKeyError(ReportAIError):
    """Neither an environment nor a configured key exists for a provider."""

    default_message = "API key not found for provider"


class ConfigurationError(ReportAIError):
    """Orchestration setup is invalid (unknown provider, unconfigured stage)."""

    default_message = "Invalid configuration"


class AgentError(ReportAIError):
    """A pipeline stage could not complete its work."""

    default_message = "Agent execution failed"


class StorageError(ReportAIError):
    """Report persistence failed."""

    default_message = "Report storage failed"


class ExportError(ReportAIError):
    """Document rendering failed."""

    default_message = "Export failed"


class UnsupportedExportFormatError(ExportError):
    """No renderer is registered for the requested format."""

    default_message = "Unsupported export format"
