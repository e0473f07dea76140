"""Memory data models for the session memory store."""

from pydantic import BaseModel, Field, field_validator
from typing import Dict, Any, Optional, List
from datetime import datetime
from enum import Enum


UNKNOWN_SESSION = "unknown"


class MemoryKind(str, Enum):
    """Provenance/purpose tag of a memory item."""

    SESSION = "session"
    TASK = "task"
    FINDING = "finding"
    PATTERN = "pattern"
    INSIGHT = "insight"
    FAILURE = "failure"
    SEMANTIC_CONTEXT = "semantic_context"
    PROJECT_KNOWLEDGE = "project_knowledge"


def clamp_relevance(value: Optional[float]) -> float:
    """Clamp a relevance score into [0, 1], defaulting to 0.5."""
    if value is None:
        return 0.5
    return max(0.0, min(1.0, float(value)))


class MemoryItem(BaseModel):
    """A remembered fact owned by the memory store."""

    id: str = Field(description="Unique memory identifier")
    kind: MemoryKind = Field(description="Provenance/purpose of the memory")
    content: Any = Field(default=None, description="Opaque JSON-serializable payload")
    session_id: str = Field(default=UNKNOWN_SESSION, description="Owning session")
    relevance_score: float = Field(
        default=0.5, description="Caller-assigned importance (0-1)"
    )
    tags: List[str] = Field(default_factory=list, description="Memory tags")
    source: str = Field(default="system", description="Producer identifier")
    created_at: datetime = Field(
        default_factory=datetime.now, description="Creation time"
    )
    last_accessed_at: datetime = Field(
        default_factory=datetime.now, description="Last time returned by a query"
    )
    access_count: int = Field(default=0, ge=0, description="Number of times returned")
    expires_at: Optional[datetime] = Field(
        default=None, description="Absolute expiry time"
    )
    sequence: int = Field(default=0, description="Monotonic insertion counter")

    # Advisory enrichment
    semantic_signature: Optional[str] = Field(
        default=None, description="Semantic fingerprint from an enricher"
    )
    project_context: Optional[str] = Field(
        default=None, description="Project context from an enricher"
    )
    code_references: List[str] = Field(
        default_factory=list, description="Related code symbols or files"
    )

    @field_validator("relevance_score", mode="before")
    @classmethod
    def _clamp_relevance(cls, value: Any) -> float:
        return clamp_relevance(value)

    @field_validator("tags", mode="before")
    @classmethod
    def _dedupe_tags(cls, value: Any) -> List[str]:
        if not value:
            return []
        return list(dict.fromkeys(str(tag) for tag in value))

    @property
    def rank_score(self) -> float:
        """Base ranking score shared by queries and eviction."""
        return self.relevance_score + self.access_count * 0.1

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Check if the item's expiry time has passed."""
        if self.expires_at is None:
            return False
        return self.expires_at <= (now or datetime.now())


class MemoryQuery(BaseModel):
    """Filter and ranking options for memory retrieval."""

    kinds: Optional[List[MemoryKind]] = Field(
        default=None, description="Allowed kinds (any)"
    )
    tags: Optional[List[str]] = Field(
        default=None, description="Item must carry at least one of these tags"
    )
    session_id: Optional[str] = Field(default=None, description="Exact session match")
    min_relevance: Optional[float] = Field(
        default=None, ge=0, le=1, description="Minimum relevance score"
    )
    include_expired: bool = Field(default=False, description="Return expired items")
    limit: Optional[int] = Field(
        default=20, ge=1, description="Maximum results (None for no limit)"
    )
    semantic_query: Optional[str] = Field(
        default=None, description="Free text used for the advisory semantic boost"
    )

    def matches(self, item: MemoryItem, now: Optional[datetime] = None) -> bool:
        """Check whether an item satisfies every filter constraint."""
        if self.kinds and item.kind not in self.kinds:
            return False
        if self.tags and not any(tag in item.tags for tag in self.tags):
            return False
        if self.session_id is not None and item.session_id != self.session_id:
            return False
        if self.min_relevance is not None and item.relevance_score < self.min_relevance:
            return False
        if not self.include_expired and item.is_expired(now):
            return False
        return True


class ContextSnapshot(BaseModel):
    """Immutable point-in-time capture of a session's working state."""

    session_id: str = Field(description="Session identifier")
    timestamp: datetime = Field(default_factory=datetime.now, description="Capture time")
    state: Dict[str, Any] = Field(
        default_factory=dict, description="Tasks, findings, coordination, validation"
    )
    active_agents: List[str] = Field(default_factory=list)
    completed_tasks: List[str] = Field(default_factory=list)
    insights: List[str] = Field(default_factory=list)
    next_actions: List[str] = Field(default_factory=list)

    class Config:
        """Pydantic configuration."""

        frozen = True


class LearningPattern(BaseModel):
    """Aggregated outcome statistics for a (description, context) pair."""

    pattern_id: str = Field(description="Normalized pattern key")
    description: str = Field(description="Task description")
    occurrences: int = Field(default=0, ge=0)
    success_rate: float = Field(default=0.0, ge=0, le=1)
    contexts: List[str] = Field(default_factory=list, description="Raw contexts seen")
    code_contexts: List[str] = Field(default_factory=list)
    last_seen: datetime = Field(default_factory=datetime.now)

    @property
    def confidence(self) -> float:
        """Ordering weight used when recommending patterns."""
        return self.success_rate * self.occurrences


class Enrichment(BaseModel):
    """Advisory fields produced by an enricher for a memory item."""

    semantic_signature: Optional[str] = None
    project_context: Optional[str] = None
    code_references: List[str] = Field(default_factory=list)


class MemoryStateExport(BaseModel):
    """JSON-serializable bundle used to persist memory across restarts."""

    version: str = Field(default="1.0", description="Export format version")
    exported_at: datetime = Field(default_factory=datetime.now)
    memories: List[MemoryItem] = Field(default_factory=list)
    context_history: List[ContextSnapshot] = Field(default_factory=list)
    learning_patterns: List[LearningPattern] = Field(default_factory=list)
