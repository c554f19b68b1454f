"""Least-used balancing strategy."""

from __future__ import annotations

from typing import Mapping, Sequence

from report_ai.domain.models import ProviderSpec

from ..state import ProviderState
from .base import IBalancingStrategy


class LeastUsedStrategy(IBalancingStrategy):
    """Smallest cumulative request count wins."""

    def name(self) -> str:
        return "least_used"

    def choose(
        self,
        candidates: Sequence[ProviderSpec],
        state: Mapping[str, ProviderState],
    ) -> ProviderSpec:
        def request_count(provider: ProviderSpec) -> int:
            entry = state.get(provider.name)
            return entry.request_count if entry else 0

        return min(candidates, key=request_count)
