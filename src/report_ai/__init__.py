"""Report AI package: multi-provider LLM dispatch and the agent analysis pipeline."""

from .core.dispatcher import AIDispatcher
from .core.container import DIContainer

__all__ = [
    "AIDispatcher",
    "DIContainer",
    "domain",
    "core",
    "cache",
    "routing",
    "providers",
    "analytics",
    "agents",
    "storage",
    "export",
    "utils",
]
