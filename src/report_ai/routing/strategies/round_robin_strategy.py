"""Round-robin balancing strategy driven by last-used ordering."""

from __future__ import annotations

from typing import Mapping, Sequence

from report_ai.domain.models import ProviderSpec

from ..state import ProviderState
from .base import IBalancingStrategy


class RoundRobinStrategy(IBalancingStrategy):
    """Picks the provider used least recently; never-used providers go first.

    The load balancer stamps the chosen provider after selection.
    """

    def name(self) -> str:
        return "round_robin"

    def choose(
        self,
        candidates: Sequence[ProviderSpec],
        state: Mapping[str, ProviderState],
    ) -> ProviderSpec:
        def last_used(provider: ProviderSpec) -> int:
            entry = state.get(provider.name)
            if entry is None or entry.last_used_seq is None:
                return -1
            return entry.last_used_seq

        return min(candidates, key=last_used)
