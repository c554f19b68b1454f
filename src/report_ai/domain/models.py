"""Domain value objects for AI dispatch and the agent pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.dataclasses import dataclass as pydantic_dataclass


class LoadBalanceStrategy(str, Enum):
    """Policies used to pick among eligible providers."""

    PRIORITY = "priority"
    ROUND_ROBIN = "round_robin"
    LEAST_USED = "least_used"


class GenerationParameters(BaseModel):
    """Sampling parameters; ``None`` means "use the provider default"."""

    model_config = ConfigDict(frozen=True)

    temperature: Optional[float] = Field(default=None, ge=0, le=2)
    max_tokens: Optional[int] = Field(default=None, gt=0)
    top_p: Optional[float] = Field(default=None, ge=0, le=1)
    frequency_penalty: Optional[float] = Field(default=None, ge=-2, le=2)
    presence_penalty: Optional[float] = Field(default=None, ge=-2, le=2)

    def merged_over(self, defaults: "GenerationParameters") -> "GenerationParameters":
        """Return parameters where explicitly set values win over ``defaults``."""

        merged = defaults.model_dump()
        merged.update(self.model_dump(exclude_none=True))
        return GenerationParameters(**merged)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


@pydantic_dataclass(frozen=True)
class ProviderSpec:
    """Immutable catalog entry for an LLM vendor endpoint."""

    name: str
    display_name: str
    endpoint: str
    model: str
    priority: int
    active: bool = True
    rate_limit: int = Field(default=60, gt=0)
    cost_per_request: float = Field(default=0.0, ge=0)
    parameters: GenerationParameters = Field(default_factory=GenerationParameters)

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("provider name must be non-empty")
        return value

    @field_validator("endpoint")
    @classmethod
    def validate_endpoint(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError("endpoint must be an http(s) URL")
        return value


class AIRequest(BaseModel):
    """Immutable request passed through the dispatcher."""

    model_config = ConfigDict(frozen=True)

    prompt: str
    context: Optional[str] = None
    system_prompt: Optional[str] = None
    parameters: Optional[GenerationParameters] = None

    @model_validator(mode="after")
    def validate_prompt(self) -> "AIRequest":
        if not self.prompt or not self.prompt.strip():
            raise ValueError("prompt must be a non-empty string")
        return self

    def effective_parameters(self, defaults: GenerationParameters) -> GenerationParameters:
        if self.parameters is None:
            return defaults
        return self.parameters.merged_over(defaults)


class TokenUsage(BaseModel):
    model_config = ConfigDict(frozen=True)

    prompt_tokens: int = Field(default=0, ge=0)
    completion_tokens: int = Field(default=0, ge=0)
    total_tokens: int = Field(default=0, ge=0)


class AIResponse(BaseModel):
    """Normalized response, identical in shape for every provider."""

    model_config = ConfigDict(frozen=True)

    content: str
    usage: TokenUsage = Field(default_factory=TokenUsage)
    model: str
    provider: str
    response_time: float = Field(default=0.0, ge=0)
    cost: Optional[float] = Field(default=None, ge=0)


class AgentType(str, Enum):
    """Fixed roles of the analysis pipeline, in default execution order."""

    DATA_COLLECTION = "data-collection"
    PATTERN_RECOGNITION = "pattern-recognition"
    PREDICTIVE_MODELING = "predictive-modeling"
    ANOMALY_DETECTION = "anomaly-detection"
    REPORT_GENERATION = "report-generation"


DEFAULT_AGENT_SEQUENCE: Tuple[AgentType, ...] = tuple(AgentType)


class AgentStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    WARNING = "warning"


class AgentMetadata(BaseModel):
    """Per-stage measurements; stages may attach extra keys."""

    model_config = ConfigDict(frozen=True, extra="allow")

    processing_time: float = Field(default=0.0, ge=0)
    data_size: int = Field(default=0, ge=0)
    confidence: float = Field(default=0.0, ge=0, le=1)


class AgentResult(BaseModel):
    """Outcome of a single pipeline stage."""

    model_config = ConfigDict(frozen=True)

    agent_name: str
    agent_type: AgentType
    status: AgentStatus
    data: Any = None
    insights: Tuple[str, ...] = ()
    metadata: AgentMetadata = Field(default_factory=AgentMetadata)
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status is not AgentStatus.ERROR

    @classmethod
    def failure(
        cls,
        agent_name: str,
        agent_type: AgentType,
        error: str,
        *,
        processing_time: float = 0.0,
    ) -> "AgentResult":
        return cls(
            agent_name=agent_name,
            agent_type=agent_type,
            status=AgentStatus.ERROR,
            data=None,
            insights=(),
            metadata=AgentMetadata(processing_time=processing_time),
            error=error,
        )


ProgressCallback = Callable[[str, int, str], None]


@dataclass(frozen=True)
class AgentContext:
    """Run-wide context threaded through every stage; extended, never mutated."""

    task_id: str
    analysis_type: str
    data_source: Any = None
    parameters: Mapping[str, Any] = field(default_factory=dict)
    previous_results: Tuple[AgentResult, ...] = ()
    on_progress: Optional[ProgressCallback] = None

    def with_results(self, results: Sequence[AgentResult]) -> "AgentContext":
        return replace(self, previous_results=tuple(results))

    def with_result(self, result: AgentResult) -> "AgentContext":
        return replace(self, previous_results=(*self.previous_results, result))

    def find_result(self, agent_type: AgentType) -> Optional[AgentResult]:
        for result in reversed(self.previous_results):
            if result.agent_type is agent_type:
                return result
        return None

    def report_progress(self, agent_name: str, percent: int, message: str) -> None:
        if self.on_progress is None:
            return
        self.on_progress(agent_name, max(0, min(100, int(percent))), message)
