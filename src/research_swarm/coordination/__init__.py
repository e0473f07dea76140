"""Agent registry and dependency coordination."""

from .registry import AgentRegistry, DEFAULT_AGENT_REGISTRY, default_registry
from .dependency_coordinator import DependencyCoordinator, VisitState, build_coordinator

__all__ = [
    "AgentRegistry",
    "DEFAULT_AGENT_REGISTRY",
    "default_registry",
    "DependencyCoordinator",
    "VisitState",
    "build_coordinator",
]
