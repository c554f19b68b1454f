"""Per-provider counters maintained by the load balancer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class ProviderState:
    request_count: int = 0
    failure_count: int = 0
    last_used_at: Optional[float] = None
    # monotonically increasing selection ordinal; breaks equal-clock ties
    last_used_seq: Optional[int] = None
