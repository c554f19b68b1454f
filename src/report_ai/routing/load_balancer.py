"""Provider selection with health-based exclusion."""

from __future__ import annotations

import itertools
import logging
import time
from typing import Callable, Dict, Mapping, Optional, Sequence

from report_ai.domain.exceptions import NoProviderAvailableError
from report_ai.domain.interfaces import ILoadBalancer
from report_ai.domain.models import LoadBalanceStrategy, ProviderSpec

from .state import ProviderState
from .strategies.base import IBalancingStrategy
from .strategies.least_used_strategy import LeastUsedStrategy
from .strategies.priority_strategy import PriorityStrategy
from .strategies.round_robin_strategy import RoundRobinStrategy

FAILURE_THRESHOLD = 5


def default_strategies() -> Dict[LoadBalanceStrategy, IBalancingStrategy]:
    return {
        LoadBalanceStrategy.PRIORITY: PriorityStrategy(),
        LoadBalanceStrategy.ROUND_ROBIN: RoundRobinStrategy(),
        LoadBalanceStrategy.LEAST_USED: LeastUsedStrategy(),
    }


class LoadBalancer(ILoadBalancer):
    """Chooses providers and keeps process-lifetime counters keyed by name."""

    def __init__(
        self,
        default_strategy: LoadBalanceStrategy | str = LoadBalanceStrategy.PRIORITY,
        *,
        failure_threshold: int = FAILURE_THRESHOLD,
        strategies: Optional[Mapping[LoadBalanceStrategy, IBalancingStrategy]] = None,
        clock: Callable[[], float] = time.time,
        logger: logging.Logger | None = None,
    ) -> None:
        if failure_threshold <= 0:
            raise ValueError("failure_threshold must be greater than zero")
        self._default_strategy = LoadBalanceStrategy(default_strategy)
        self._failure_threshold = failure_threshold
        self._strategies = dict(strategies or default_strategies())
        self._clock = clock
        self._sequence = itertools.count()
        self._state: Dict[str, ProviderState] = {}
        self._logger = logger or logging.getLogger(__name__)

    def select_provider(
        self,
        candidates: Sequence[ProviderSpec],
        strategy: LoadBalanceStrategy | str | None = None,
    ) -> ProviderSpec:
        eligible = [
            provider
            for provider in candidates
            if provider.active and self.failure_count(provider.name) < self._failure_threshold
        ]
        if not eligible:
            raise NoProviderAvailableError(
                context={"candidates": [provider.name for provider in candidates]}
            )

        resolved = LoadBalanceStrategy(strategy) if strategy else self._default_strategy
        selected = self._strategies[resolved].choose(eligible, self._state)
        if resolved is LoadBalanceStrategy.ROUND_ROBIN:
            entry = self._entry(selected.name)
            entry.last_used_at = self._clock()
            entry.last_used_seq = next(self._sequence)

        self._logger.debug(
            "provider_selected",
            extra={"provider": selected.name, "strategy": resolved.value},
        )
        return selected

    def record_request(self, provider_name: str) -> None:
        self._entry(provider_name).request_count += 1

    def record_failure(self, provider_name: str) -> None:
        entry = self._entry(provider_name)
        entry.failure_count += 1
        if entry.failure_count == self._failure_threshold:
            self._logger.warning(
                "provider_excluded",
                extra={"provider": provider_name, "failures": entry.failure_count},
            )

    def reset_failures(self, provider_name: str) -> None:
        self._entry(provider_name).failure_count = 0

    def failure_count(self, provider_name: str) -> int:
        entry = self._state.get(provider_name)
        return entry.failure_count if entry else 0

    def request_count(self, provider_name: str) -> int:
        entry = self._state.get(provider_name)
        return entry.request_count if entry else 0

    def is_healthy(self, provider_name: str) -> bool:
        return self.failure_count(provider_name) < self._failure_threshold

    def snapshot(self) -> Dict[str, ProviderState]:
        return {
            name: ProviderState(
                request_count=state.request_count,
                failure_count=state.failure_count,
                last_used_at=state.last_used_at,
                last_used_seq=state.last_used_seq,
            )
            for name, state in self._state.items()
        }

    def _entry(self, provider_name: str) -> ProviderState:
        entry = self._state.get(provider_name)
        if entry is None:
            entry = ProviderState()
            self._state[provider_name] = entry
        return entry
