"""Priority-first balancing strategy."""

from __future__ import annotations

from typing import Mapping, Sequence

from report_ai.domain.models import ProviderSpec

from ..state import ProviderState
from .base import IBalancingStrategy


class PriorityStrategy(IBalancingStrategy):
    """Lowest numeric priority wins."""

    def name(self) -> str:
        return "priority"

    def choose(
        self,
        candidates: Sequence[ProviderSpec],
        state: Mapping[str, ProviderState],
    ) -> ProviderSpec:
        return min(candidates, key=lambda provider: provider.priority)
