"""Orchestration configuration management helpers."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping

from report_ai.domain.models import LoadBalanceStrategy

ENV_PREFIX = "REPORT_AI_"


def _str_to_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    value = value.strip().lower()
    if value in {"1", "true", "yes", "on"}:
        return True
    if value in {"0", "false", "no", "off"}:
        return False
    return default


def _str_to_int(value: str | None, default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"Invalid integer value: {value}") from exc


def _str_to_float(value: str | None, default: float) -> float:
    if value is None:
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ValueError(f"Invalid float value: {value}") from exc


def _env(name: str) -> str | None:
    return os.getenv(f"{ENV_PREFIX}{name}")


@dataclass(frozen=True)
class RetryConfig:
    max_retries: int = 3
    retry_delay_ms: int = 1000
    backoff_multiplier: float = 2.0

    def __post_init__(self) -> None:
        if self.max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        if self.retry_delay_ms < 0:
            raise ValueError("retry_delay_ms must be non-negative")
        if self.backoff_multiplier < 1:
            raise ValueError("backoff_multiplier must be >= 1")


@dataclass(frozen=True)
class TimeoutConfig:
    request_timeout_ms: int = 30_000
    connection_timeout_ms: int = 10_000

    def __post_init__(self) -> None:
        if self.request_timeout_ms <= 0 or self.connection_timeout_ms <= 0:
            raise ValueError("timeouts must be greater than zero")


@dataclass(frozen=True)
class CacheConfig:
    enabled: bool = True
    ttl_seconds: float = 3600
    max_size: int = 1000

    def __post_init__(self) -> None:
        if self.ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be greater than zero")
        if self.max_size <= 0:
            raise ValueError("max_size must be greater than zero")


@dataclass(frozen=True)
class MonitoringConfig:
    log_requests: bool = True
    log_prompts: bool = False
    log_responses: bool = False
    max_entries: int = 1000
    retain_entries: int = 500

    def __post_init__(self) -> None:
        if self.max_entries <= 0:
            raise ValueError("max_entries must be greater than zero")
        if not 0 < self.retain_entries <= self.max_entries:
            raise ValueError("retain_entries must be between 1 and max_entries")


@dataclass(frozen=True)
class AIConfig:
    """Immutable configuration object loaded from env or files."""

    default_provider: str = "qwen"
    load_balance_strategy: str = LoadBalanceStrategy.PRIORITY.value
    use_env_keys: bool = True
    api_keys: Mapping[str, str] = field(default_factory=dict)
    retry: RetryConfig = field(default_factory=RetryConfig)
    timeout: TimeoutConfig = field(default_factory=TimeoutConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)

    def __post_init__(self) -> None:
        self.validate()

    @property
    def strategy(self) -> LoadBalanceStrategy:
        return LoadBalanceStrategy(self.load_balance_strategy)

    @classmethod
    def from_env(cls) -> "AIConfig":
        defaults = cls()
        return cls(
            default_provider=_env("DEFAULT_PROVIDER") or defaults.default_provider,
            load_balance_strategy=_env("LOAD_BALANCE_STRATEGY")
            or defaults.load_balance_strategy,
            use_env_keys=_str_to_bool(_env("USE_ENV_KEYS"), defaults.use_env_keys),
            retry=RetryConfig(
                max_retries=_str_to_int(
                    _env("MAX_RETRIES"), defaults.retry.max_retries
                ),
                retry_delay_ms=_str_to_int(
                    _env("RETRY_DELAY_MS"), defaults.retry.retry_delay_ms
                ),
                backoff_multiplier=_str_to_float(
                    _env("BACKOFF_MULTIPLIER"), defaults.retry.backoff_multiplier
                ),
            ),
            timeout=TimeoutConfig(
                request_timeout_ms=_str_to_int(
                    _env("REQUEST_TIMEOUT_MS"), defaults.timeout.request_timeout_ms
                ),
                connection_timeout_ms=_str_to_int(
                    _env("CONNECTION_TIMEOUT_MS"),
                    defaults.timeout.connection_timeout_ms,
                ),
            ),
            cache=CacheConfig(
                enabled=_str_to_bool(_env("CACHE_ENABLED"), defaults.cache.enabled),
                ttl_seconds=_str_to_float(
                    _env("CACHE_TTL_SECONDS"), defaults.cache.ttl_seconds
                ),
                max_size=_str_to_int(_env("CACHE_MAX_SIZE"), defaults.cache.max_size),
            ),
            monitoring=MonitoringConfig(
                log_requests=_str_to_bool(
                    _env("LOG_REQUESTS"), defaults.monitoring.log_requests
                ),
                log_prompts=_str_to_bool(
                    _env("LOG_PROMPTS"), defaults.monitoring.log_prompts
                ),
                log_responses=_str_to_bool(
                    _env("LOG_RESPONSES"), defaults.monitoring.log_responses
                ),
            ),
        )

    @classmethod
    def from_file(cls, path: str | Path) -> "AIConfig":
        file_path = Path(path)
        if not file_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")
        raw = file_path.read_text()
        data: Dict[str, Any]
        suffix = file_path.suffix.lower()
        if suffix == ".json":
            data = json.loads(raw)
        elif suffix in {".yaml", ".yml"}:
            data = cls._load_yaml(raw)
        else:
            raise ValueError("Unsupported config format. Use JSON or YAML.")
        return cls.from_mapping(data)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "AIConfig":
        defaults = cls()
        return cls(
            default_provider=data.get("default_provider", defaults.default_provider),
            load_balance_strategy=data.get(
                "load_balance_strategy", defaults.load_balance_strategy
            ),
            use_env_keys=data.get("use_env_keys", defaults.use_env_keys),
            api_keys=dict(data.get("api_keys", {})),
            retry=RetryConfig(**data.get("retry", {})),
            timeout=TimeoutConfig(**data.get("timeout", {})),
            cache=CacheConfig(**data.get("cache", {})),
            monitoring=MonitoringConfig(**data.get("monitoring", {})),
        )

    def validate(self) -> None:
        allowed = {strategy.value for strategy in LoadBalanceStrategy}
        if self.load_balance_strategy not in allowed:
            raise ValueError(f"load_balance_strategy must be one of {sorted(allowed)}")
        if not self.default_provider:
            raise ValueError("default_provider must be provided")
        if not isinstance(self.api_keys, Mapping):
            raise ValueError("api_keys must be a mapping")

    @staticmethod
    def _load_yaml(raw: str) -> Dict[str, Any]:
        import yaml

        return yaml.safe_load(raw) or {}
