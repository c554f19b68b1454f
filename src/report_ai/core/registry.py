"""Static catalog of LLM providers, agent profiles and analysis types."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from report_ai.domain.exceptions import ConfigurationError, MissingAPIKeyError
from report_ai.domain.models import (
    DEFAULT_AGENT_SEQUENCE,
    AgentType,
    GenerationParameters,
    ProviderSpec,
)

_DEFAULT_PARAMETERS = GenerationParameters(temperature=0.7, max_tokens=2000, top_p=0.9)

DEFAULT_PROVIDERS: Tuple[ProviderSpec, ...] = (
    ProviderSpec(
        name="qwen",
        display_name="Alibaba Qwen",
        endpoint="https://dashscope.aliyuncs.com/api/v1/services/aigc/text-generation/generation",
        model="qwen-turbo",
        priority=1,
        rate_limit=100,
        cost_per_request=0.002,
        parameters=_DEFAULT_PARAMETERS,
    ),
    ProviderSpec(
        name="kimi",
        display_name="Kimi K2",
        endpoint="https://api.moonshot.cn/v1/chat/completions",
        model="moonshot-v1-8k",
        priority=2,
        rate_limit=80,
        cost_per_request=0.003,
        parameters=_DEFAULT_PARAMETERS,
    ),
    ProviderSpec(
        name="zhipu",
        display_name="Zhipu GLM",
        endpoint="https://open.bigmodel.cn/api/paas/v4/chat/completions",
        model="glm-4",
        priority=3,
        rate_limit=60,
        cost_per_request=0.0025,
        parameters=_DEFAULT_PARAMETERS,
    ),
    ProviderSpec(
        name="deepseek",
        display_name="DeepSeek",
        endpoint="https://api.deepseek.com/v1/chat/completions",
        model="deepseek-chat",
        priority=4,
        rate_limit=100,
        cost_per_request=0.001,
        parameters=_DEFAULT_PARAMETERS,
    ),
    ProviderSpec(
        name="gemini",
        display_name="Google Gemini",
        endpoint="https://generativelanguage.googleapis.com/v1beta/models/gemini-pro:generateContent",
        model="gemini-pro",
        priority=5,
        rate_limit=60,
        cost_per_request=0.0015,
        parameters=_DEFAULT_PARAMETERS,
    ),
)

ENV_KEY_MAPPING: Mapping[str, str] = {
    "qwen": "QWEN_API_KEY",
    "kimi": "KIMI_API_KEY",
    "zhipu": "ZHIPU_API_KEY",
    "deepseek": "DEEPSEEK_API_KEY",
    "gemini": "GEMINI_API_KEY",
}


class ProviderRegistry:
    """Holds immutable provider records keyed by name.

    Records are never mutated in place; toggling ``active`` swaps in a copy.
    """

    def __init__(self, providers: Sequence[ProviderSpec] = DEFAULT_PROVIDERS) -> None:
        self._providers: Dict[str, ProviderSpec] = {}
        for provider in providers:
            if provider.name in self._providers:
                raise ConfigurationError(
                    "Duplicate provider name", context={"provider": provider.name}
                )
            self._providers[provider.name] = provider

    def get(self, name: str) -> Optional[ProviderSpec]:
        return self._providers.get(name)

    def require(self, name: str) -> ProviderSpec:
        provider = self._providers.get(name)
        if provider is None:
            raise ConfigurationError(
                f"Unknown provider '{name}'. Available: {sorted(self._providers)}"
            )
        return provider

    def names(self) -> List[str]:
        return list(self._providers)

    def all(self) -> List[ProviderSpec]:
        return list(self._providers.values())

    def active_providers(self) -> List[ProviderSpec]:
        """Active providers in registration order; ranking is left to the balancing strategy."""
        return [provider for provider in self._providers.values() if provider.active]

    def set_active(self, name: str, active: bool) -> ProviderSpec:
        updated = replace(self.require(name), active=active)
        self._providers[name] = updated
        return updated

    def validate(self, default_provider: str) -> None:
        if default_provider not in self._providers:
            raise ConfigurationError(
                f"Default provider {default_provider} not found",
                context={"available": sorted(self._providers)},
            )


class ApiKeyResolver:
    """Prefers environment keys (when enabled) over statically configured ones."""

    def __init__(
        self,
        fallback_keys: Mapping[str, str] | None = None,
        *,
        use_env_keys: bool = True,
        env_mapping: Mapping[str, str] = ENV_KEY_MAPPING,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._fallback_keys = dict(fallback_keys or {})
        self._use_env_keys = use_env_keys
        self._env_mapping = dict(env_mapping)
        self._environ = environ if environ is not None else os.environ

    def resolve(self, provider_name: str) -> str:
        if self._use_env_keys:
            env_name = self._env_mapping.get(provider_name)
            if env_name:
                value = self._environ.get(env_name)
                if value:
                    return value

        api_key = self._fallback_keys.get(provider_name)
        if not api_key:
            raise MissingAPIKeyError(
                f"API key not found for provider: {provider_name}",
                context={"provider": provider_name},
            )
        return api_key


@dataclass(frozen=True)
class AgentProfile:
    """Static per-role configuration injected into a pipeline stage."""

    name: str
    description: str
    system_prompt: str
    preferred_provider: Optional[str]
    parameters: GenerationParameters


AGENT_PROFILES: Mapping[AgentType, AgentProfile] = {
    AgentType.DATA_COLLECTION: AgentProfile(
        name="Data Collection Agent",
        description="Acquires, cleans and pre-processes source data",
        system_prompt=(
            "You are a professional data collection agent responsible for acquiring, "
            "cleaning and pre-processing grid operations data. Your duties:\n"
            "1. Analyse the structure and format of data sources\n"
            "2. Identify data quality problems\n"
            "3. Clean and standardise the data\n"
            "4. Produce a data quality report\n"
            "Always remain precise and professional."
        ),
        preferred_provider="qwen",
        parameters=GenerationParameters(temperature=0.3, max_tokens=1500),
    ),
    AgentType.PATTERN_RECOGNITION: AgentProfile(
        name="Pattern Recognition Agent",
        description="Identifies patterns and trends in the data",
        system_prompt=(
            "You are a professional pattern recognition agent analysing patterns and "
            "trends in grid data. Your duties:\n"
            "1. Identify periodic patterns\n"
            "2. Find unusual trends and change points\n"
            "3. Analyse seasonal and time-series characteristics\n"
            "4. Provide a pattern analysis report\n"
            "Base every conclusion on the data provided."
        ),
        preferred_provider="kimi",
        parameters=GenerationParameters(temperature=0.5, max_tokens=2000),
    ),
    AgentType.PREDICTIVE_MODELING: AgentProfile(
        name="Predictive Modeling Agent",
        description="Builds forecasting models and predicts trends",
        system_prompt=(
            "You are a professional predictive modelling agent building forecasting "
            "models for grid data. Your duties:\n"
            "1. Choose suitable forecasting algorithms\n"
            "2. Train and validate models\n"
            "3. Produce future trend forecasts\n"
            "4. Assess forecast accuracy and confidence\n"
            "Provide scientific, reliable predictions."
        ),
        preferred_provider="zhipu",
        parameters=GenerationParameters(temperature=0.4, max_tokens=2000),
    ),
    AgentType.ANOMALY_DETECTION: AgentProfile(
        name="Anomaly Detection Agent",
        description="Detects anomalies and latent risks",
        system_prompt=(
            "You are a professional anomaly detection agent finding anomalies and "
            "latent risks in grid data. Your duties:\n"
            "1. Identify outliers\n"
            "2. Analyse probable causes\n"
            "3. Assess severity and impact\n"
            "4. Recommend handling measures\n"
            "Stay sensitive and accurate."
        ),
        preferred_provider="deepseek",
        parameters=GenerationParameters(temperature=0.3, max_tokens=1800),
    ),
    AgentType.REPORT_GENERATION: AgentProfile(
        name="Report Generation Agent",
        description="Produces structured analysis reports",
        system_prompt=(
            "You are a professional report generation agent that merges analysis "
            "results into a structured professional report. Your duties:\n"
            "1. Integrate the results of every agent\n"
            "2. Write clear, professional report content\n"
            "3. Provide actionable recommendations and conclusions\n"
            "4. Keep the report logical and readable"
        ),
        preferred_provider="gemini",
        parameters=GenerationParameters(temperature=0.6, max_tokens=3000),
    ),
}


@dataclass(frozen=True)
class AnalysisTypeProfile:
    name: str
    description: str
    agents: Tuple[AgentType, ...]
    estimated_duration: int


_COLLECT_PATTERN_PREDICT_REPORT = (
    AgentType.DATA_COLLECTION,
    AgentType.PATTERN_RECOGNITION,
    AgentType.PREDICTIVE_MODELING,
    AgentType.REPORT_GENERATION,
)
_COLLECT_PATTERN_REPORT = (
    AgentType.DATA_COLLECTION,
    AgentType.PATTERN_RECOGNITION,
    AgentType.REPORT_GENERATION,
)

ANALYSIS_TYPES: Mapping[str, AnalysisTypeProfile] = {
    "trend": AnalysisTypeProfile(
        "Trend analysis",
        "Long-term trends and change patterns",
        _COLLECT_PATTERN_PREDICT_REPORT,
        180,
    ),
    "prediction": AnalysisTypeProfile(
        "Prediction analysis",
        "Forecast future values from history",
        _COLLECT_PATTERN_PREDICT_REPORT,
        240,
    ),
    "statistical": AnalysisTypeProfile(
        "Statistical analysis",
        "Descriptive statistics and correlations",
        _COLLECT_PATTERN_REPORT,
        120,
    ),
    "anomaly": AnalysisTypeProfile(
        "Anomaly analysis",
        "Detect and explain anomalies",
        (
            AgentType.DATA_COLLECTION,
            AgentType.ANOMALY_DETECTION,
            AgentType.REPORT_GENERATION,
        ),
        150,
    ),
    "comparison": AnalysisTypeProfile(
        "Comparison analysis",
        "Compare periods or indicators",
        _COLLECT_PATTERN_REPORT,
        160,
    ),
}


def get_agent_profile(agent_type: AgentType) -> AgentProfile:
    return AGENT_PROFILES[agent_type]


def sequence_for(analysis_type: str | None) -> Tuple[AgentType, ...]:
    """Stage order for an analysis type; unknown types run every stage."""

    profile = ANALYSIS_TYPES.get(analysis_type or "")
    if profile is None:
        return DEFAULT_AGENT_SEQUENCE
    return profile.agents
