"""Domain-level interfaces defining contracts for dispatch collaborators."""

from __future__ import annotations

from typing import Any, Optional, Protocol, Sequence

from .models import AIRequest, AIResponse, LoadBalanceStrategy, ProviderSpec


class IProviderAdapter(Protocol):
    """Contract every vendor adapter must satisfy."""

    async def complete(self, provider: ProviderSpec, request: AIRequest) -> AIResponse:
        """Send the request to the vendor and return a normalized response."""


class IApiKeyResolver(Protocol):
    """Looks up the credential for a provider name."""

    def resolve(self, provider_name: str) -> str:
        """Return the API key or raise ``MissingAPIKeyError``."""


class IResponseCache(Protocol):
    """Stores responses keyed by request identity and provider."""

    def get(self, request: AIRequest, provider_name: str) -> Optional[AIResponse]:
        """Return a fresh cached response or ``None``."""

    def set(self, request: AIRequest, provider_name: str, response: AIResponse) -> None:
        """Remember ``response`` for the request/provider pair."""

    def clear(self) -> None:
        """Drop every cached entry."""


class ILoadBalancer(Protocol):
    """Chooses providers and tracks per-provider health counters."""

    def select_provider(
        self,
        candidates: Sequence[ProviderSpec],
        strategy: LoadBalanceStrategy | str | None = None,
    ) -> ProviderSpec:
        """Pick one eligible provider or raise ``NoProviderAvailableError``."""

    def record_request(self, provider_name: str) -> None:
        """Count a successful request for the provider."""

    def record_failure(self, provider_name: str) -> None:
        """Count a failed attempt for the provider."""

    def reset_failures(self, provider_name: str) -> None:
        """Zero the failure counter after a success."""


class IRequestMonitor(Protocol):
    """Append-only log of dispatch attempts."""

    def log_request(
        self,
        provider: str,
        request: AIRequest,
        *,
        response: Optional[AIResponse] = None,
        error: Optional[BaseException] = None,
        duration: float = 0.0,
        cached: bool = False,
    ) -> None:
        """Record one attempt outcome."""

    def summary(self) -> Any:
        """Aggregate statistics over the retained entries."""


class IAIDispatcher(Protocol):
    """What pipeline stages need from the dispatcher."""

    async def call_ai(
        self, request: AIRequest, preferred_provider: Optional[str] = None
    ) -> AIResponse:
        """Return a normalized response, retrying across providers as configured."""
