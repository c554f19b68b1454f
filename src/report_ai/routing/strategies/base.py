"""Balancing strategy protocol used by load balancer implementations."""

from __future__ import annotations

from typing import Mapping, Protocol, Sequence

from report_ai.domain.models import ProviderSpec

from ..state import ProviderState


class IBalancingStrategy(Protocol):
    """Picks one provider from an already-filtered, non-empty candidate list."""

    def choose(
        self,
        candidates: Sequence[ProviderSpec],
        state: Mapping[str, ProviderState],
    ) -> ProviderSpec:
        """Return the preferred candidate; ties resolve to input order."""

    def name(self) -> str:
        """Stable identifier used for observability."""
