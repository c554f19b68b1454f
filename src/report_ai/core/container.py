"""Dependency injection container for building fully-wired dispatcher and pipeline instances."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Awaitable, Callable, Mapping, Optional, Sequence

import httpx

from report_ai.agents.orchestrator import AgentOrchestrator, default_agents
from report_ai.analytics.monitor import RequestMonitor
from report_ai.cache.response_cache import ResponseCache
from report_ai.core.config import AIConfig, TimeoutConfig
from report_ai.core.dispatcher import AIDispatcher
from report_ai.core.registry import DEFAULT_PROVIDERS, ApiKeyResolver, ProviderRegistry
from report_ai.core.service import ReportAnalysisService
from report_ai.domain.interfaces import IAIDispatcher
from report_ai.domain.models import ProviderSpec
from report_ai.export.service import ExportService
from report_ai.providers.factory import AdapterRegistry
from report_ai.routing.load_balancer import LoadBalancer
from report_ai.storage.fallback_store import FallbackReportStore
from report_ai.storage.models import IReportStore
from report_ai.storage.remote_store import RemoteReportStore
from report_ai.storage.sqlite_store import SQLiteReportStore


class DIContainer:
    """Factory helpers that assemble the orchestration layer with default wiring."""

    @staticmethod
    def create_dispatcher(
        config: Optional[AIConfig] = None,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        providers: Sequence[ProviderSpec] = DEFAULT_PROVIDERS,
        environ: Optional[Mapping[str, str]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> AIDispatcher:
        cfg = config or AIConfig.from_env()
        registry = ProviderRegistry(providers)
        registry.validate(cfg.default_provider)

        key_resolver = ApiKeyResolver(
            cfg.api_keys, use_env_keys=cfg.use_env_keys, environ=environ
        )
        client = http_client or DIContainer._build_http_client(cfg.timeout)
        adapters = AdapterRegistry(
            client, key_resolver, timeout=cfg.timeout.request_timeout_ms / 1000
        )

        return AIDispatcher(
            cfg,
            registry,
            adapters,
            cache=ResponseCache(cfg.cache),
            load_balancer=LoadBalancer(cfg.strategy),
            monitor=RequestMonitor(cfg.monitoring),
            sleep=sleep,
        )

    @staticmethod
    def create_orchestrator(dispatcher: IAIDispatcher) -> AgentOrchestrator:
        return AgentOrchestrator(default_agents(dispatcher))

    @staticmethod
    def create_report_store(
        *,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        sqlite_path: str | Path = "reports.db",
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> IReportStore:
        local = SQLiteReportStore(sqlite_path)
        if not base_url or not api_key:
            return local
        remote = RemoteReportStore(
            http_client or httpx.AsyncClient(timeout=30.0), base_url, api_key
        )
        return FallbackReportStore(remote, local)

    @staticmethod
    def create_analysis_service(
        dispatcher: IAIDispatcher,
        store: Optional[IReportStore] = None,
        *,
        sqlite_path: str | Path = "reports.db",
    ) -> ReportAnalysisService:
        return ReportAnalysisService(
            DIContainer.create_orchestrator(dispatcher),
            store or DIContainer.create_report_store(sqlite_path=sqlite_path),
        )

    @staticmethod
    def create_export_service() -> ExportService:
        return ExportService()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _build_http_client(timeout: TimeoutConfig) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(
                timeout.request_timeout_ms / 1000,
                connect=timeout.connection_timeout_ms / 1000,
            )
        )
