"""AI dispatcher coordinating cache, load balancer, adapters and monitoring."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Awaitable, Callable, Dict, Optional

from report_ai.core.config import AIConfig
from report_ai.core.registry import ProviderRegistry
from report_ai.domain.exceptions import (
    AllProvidersFailedError,
    MissingAPIKeyError,
    NoProviderAvailableError,
)
from report_ai.domain.interfaces import ILoadBalancer, IRequestMonitor, IResponseCache
from report_ai.domain.models import (
    AIRequest,
    AIResponse,
    GenerationParameters,
    ProviderSpec,
)
from report_ai.providers.factory import AdapterRegistry
from report_ai.utils.retry import backoff_delay

if TYPE_CHECKING:
    from report_ai.analytics.monitor import UsageStats

# Errors that abort the call instead of moving on to another attempt.
FATAL_ERRORS = (MissingAPIKeyError, NoProviderAvailableError)

HEALTH_CHECK_REQUEST = AIRequest(
    prompt="Hello", parameters=GenerationParameters(max_tokens=10)
)


class AIDispatcher:
    """Public entry point: returns a normalized response for a request.

    Order of work per call: the preferred provider (once, if configured and
    active), then up to ``max_retries`` load-balanced attempts with exponential
    backoff between them. Every attempt checks the cache first and is written to
    the monitor exactly once.
    """

    def __init__(
        self,
        config: AIConfig,
        registry: ProviderRegistry,
        adapters: AdapterRegistry,
        *,
        cache: IResponseCache,
        load_balancer: ILoadBalancer,
        monitor: IRequestMonitor,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._config = config
        self._registry = registry
        self._adapters = adapters
        self._cache = cache
        self._load_balancer = load_balancer
        self._monitor = monitor
        self._sleep = sleep
        self._logger = logger or logging.getLogger(__name__)

    @property
    def config(self) -> AIConfig:
        return self._config

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    @property
    def monitor(self) -> IRequestMonitor:
        return self._monitor

    @property
    def load_balancer(self) -> ILoadBalancer:
        return self._load_balancer

    async def call_ai(
        self, request: AIRequest, preferred_provider: Optional[str] = None
    ) -> AIResponse:
        if preferred_provider:
            response = await self._try_preferred(request, preferred_provider)
            if response is not None:
                return response

        retry = self._config.retry
        last_error: Optional[Exception] = None
        for attempt in range(retry.max_retries):
            provider = self._load_balancer.select_provider(
                self._registry.active_providers(), self._config.strategy
            )
            try:
                response = await self._attempt(provider, request)
            except FATAL_ERRORS:
                raise
            except Exception as exc:
                last_error = exc
                self._load_balancer.record_failure(provider.name)
                self._logger.warning(
                    "ai_request_failed",
                    extra={
                        "provider": provider.name,
                        "attempt": attempt + 1,
                        "error": str(exc),
                    },
                )
                if attempt < retry.max_retries - 1:
                    await self._sleep(
                        backoff_delay(
                            retry.retry_delay_ms, retry.backoff_multiplier, attempt
                        )
                    )
                continue

            self._record_success(provider, response)
            return response

        self._logger.error(
            "ai_request_exhausted",
            extra={
                "attempts": retry.max_retries,
                "error": str(last_error) if last_error else None,
            },
        )
        raise AllProvidersFailedError(
            f"All AI providers failed after {retry.max_retries} attempts",
            last_error=last_error,
            context={"last_error": str(last_error)} if last_error else None,
        ) from last_error

    def get_stats(self) -> "UsageStats":
        return self._monitor.summary()

    async def health_check(self) -> Dict[str, bool]:
        """Probe every active provider concurrently; one failure never affects the others."""

        providers = self._registry.active_providers()
        outcomes = await asyncio.gather(*(self._probe(provider) for provider in providers))
        return {provider.name: ok for provider, ok in zip(providers, outcomes)}

    def clear_cache(self) -> None:
        self._cache.clear()

    def set_provider_active(self, name: str, active: bool) -> ProviderSpec:
        updated = self._registry.set_active(name, active)
        self._logger.info(
            "provider_toggled", extra={"provider": name, "active": active}
        )
        return updated

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    async def _try_preferred(
        self, request: AIRequest, provider_name: str
    ) -> Optional[AIResponse]:
        provider = self._registry.get(provider_name)
        if provider is None or not provider.active:
            self._logger.debug(
                "preferred_provider_skipped", extra={"provider": provider_name}
            )
            return None

        try:
            response = await self._attempt(provider, request)
        except FATAL_ERRORS:
            raise
        except Exception as exc:
            self._load_balancer.record_failure(provider.name)
            self._logger.warning(
                "preferred_provider_failed",
                extra={"provider": provider.name, "error": str(exc)},
            )
            return None

        self._record_success(provider, response)
        return response

    async def _attempt(self, provider: ProviderSpec, request: AIRequest) -> AIResponse:
        started = time.perf_counter()
        cached = self._cache.get(request, provider.name)
        if cached is not None:
            self._monitor.log_request(
                provider.name,
                request,
                response=cached,
                duration=_elapsed_ms(started),
                cached=True,
            )
            return cached

        try:
            adapter = self._adapters.get(provider)
            response = await adapter.complete(provider, request)
        except Exception as exc:
            self._monitor.log_request(
                provider.name, request, error=exc, duration=_elapsed_ms(started)
            )
            raise

        self._cache.set(request, provider.name, response)
        self._monitor.log_request(
            provider.name, request, response=response, duration=response.response_time
        )
        return response

    def _record_success(self, provider: ProviderSpec, response: AIResponse) -> None:
        self._load_balancer.record_request(provider.name)
        self._load_balancer.reset_failures(provider.name)
        self._logger.info(
            "ai_request_succeeded",
            extra={
                "provider": provider.name,
                "model": response.model,
                "response_time": response.response_time,
            },
        )

    async def _probe(self, provider: ProviderSpec) -> bool:
        try:
            adapter = self._adapters.get(provider)
            await adapter.complete(provider, HEALTH_CHECK_REQUEST)
        except Exception as exc:
            self._logger.warning(
                "health_check_failed",
                extra={"provider": provider.name, "error": str(exc)},
            )
            return False
        return True


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 3)
