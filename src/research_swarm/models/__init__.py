"""Models package for the research swarm core."""

from .memory_models import (
    UNKNOWN_SESSION,
    MemoryKind,
    MemoryItem,
    MemoryQuery,
    ContextSnapshot,
    LearningPattern,
    Enrichment,
    MemoryStateExport,
    clamp_relevance,
)
from .state_models import (
    TodoStatus,
    CompressionStrategy,
    ArchivedCollection,
    Todo,
    AgentCoordination,
    SessionState,
)
from .agent_models import (
    AgentDescriptor,
    AgentStatus,
    AgentTask,
    ContextBundle,
    AgentOutput,
    AgentResult,
    SessionReport,
)

__all__ = [
    "UNKNOWN_SESSION",
    "MemoryKind",
    "MemoryItem",
    "MemoryQuery",
    "ContextSnapshot",
    "LearningPattern",
    "Enrichment",
    "MemoryStateExport",
    "clamp_relevance",
    "TodoStatus",
    "CompressionStrategy",
    "ArchivedCollection",
    "Todo",
    "AgentCoordination",
    "SessionState",
    "AgentDescriptor",
    "AgentStatus",
    "AgentTask",
    "ContextBundle",
    "AgentOutput",
    "AgentResult",
    "SessionReport",
]
