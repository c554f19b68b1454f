"""In-memory response cache keyed by a deterministic request fingerprint."""

from __future__ import annotations

import hashlib
import json
import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from report_ai.core.config import CacheConfig
from report_ai.domain.interfaces import IResponseCache
from report_ai.domain.models import AIRequest, AIResponse


@dataclass(frozen=True)
class CacheEntry:
    key: str
    response: AIResponse
    timestamp: float


def fingerprint(request: AIRequest, provider_name: str) -> str:
    """Canonical serialization of the request's semantic content plus provider."""

    payload = {
        "prompt": request.prompt,
        "context": request.context,
        "system_prompt": request.system_prompt,
        "parameters": request.parameters.to_dict() if request.parameters else None,
        "provider": provider_name,
    }
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class ResponseCache(IResponseCache):
    """TTL-bounded cache evicting the oldest-inserted entry when full.

    Eviction follows insertion order, not access order; reads never refresh
    an entry's position.
    """

    def __init__(
        self,
        config: CacheConfig | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config or CacheConfig()
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._logger = logger or logging.getLogger(__name__)

    @property
    def enabled(self) -> bool:
        return self._config.enabled

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def get(self, request: AIRequest, provider_name: str) -> Optional[AIResponse]:
        if not self._config.enabled:
            return None

        key = fingerprint(request, provider_name)
        entry = self._entries.get(key)
        if entry is None:
            return None

        if self._clock() - entry.timestamp > self._config.ttl_seconds:
            del self._entries[key]
            self._logger.debug("cache_expired", extra={"provider": provider_name})
            return None

        self._logger.debug("cache_hit", extra={"provider": provider_name})
        return entry.response

    def set(self, request: AIRequest, provider_name: str, response: AIResponse) -> None:
        if not self._config.enabled:
            return

        key = fingerprint(request, provider_name)
        # re-inserting moves the key to the newest position
        self._entries.pop(key, None)
        if len(self._entries) >= self._config.max_size:
            oldest_key = next(iter(self._entries))
            del self._entries[oldest_key]
            self._logger.debug("cache_evicted", extra={"size": len(self._entries)})

        self._entries[key] = CacheEntry(key=key, response=response, timestamp=self._clock())

    def clear(self) -> None:
        self._entries.clear()
