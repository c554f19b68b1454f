"""Demonstrates wiring a dispatcher by hand with a custom balancing strategy."""

import asyncio
from typing import Mapping, Sequence

import httpx

from report_ai.analytics.monitor import RequestMonitor
from report_ai.cache.response_cache import ResponseCache
from report_ai.core.config import AIConfig
from report_ai.core.dispatcher import AIDispatcher
from report_ai.core.registry import ApiKeyResolver, ProviderRegistry
from report_ai.domain.models import AIRequest, LoadBalanceStrategy, ProviderSpec
from report_ai.providers.factory import AdapterRegistry
from report_ai.routing.load_balancer import LoadBalancer, default_strategies
from report_ai.routing.state import ProviderState
from report_ai.routing.strategies.base import IBalancingStrategy


class CheapestFirstStrategy(IBalancingStrategy):
    """Lowest cost per request wins; priority breaks ties."""

    def name(self) -> str:
        return "cheapest_first"

    def choose(
        self,
        candidates: Sequence[ProviderSpec],
        state: Mapping[str, ProviderState],
    ) -> ProviderSpec:
        return min(candidates, key=lambda provider: (provider.cost_per_request, provider.priority))


async def main() -> None:
    config = AIConfig.from_env()
    strategies = default_strategies()
    strategies[LoadBalanceStrategy.PRIORITY] = CheapestFirstStrategy()

    async with httpx.AsyncClient(timeout=30.0) as client:
        dispatcher = AIDispatcher(
            config,
            ProviderRegistry(),
            AdapterRegistry(client, ApiKeyResolver(config.api_keys, use_env_keys=config.use_env_keys)),
            cache=ResponseCache(config.cache),
            load_balancer=LoadBalancer(strategies=strategies),
            monitor=RequestMonitor(config.monitoring),
        )
        response = await dispatcher.call_ai(AIRequest(prompt="List three ways to flatten peak demand."))
        print(response.provider, response.content)


if __name__ == "__main__":
    asyncio.run(main())
