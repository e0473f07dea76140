"""Agent registry, task and result models."""

from typing import Dict, Any, List, Optional, Tuple
from datetime import datetime
from enum import Enum
import uuid

from pydantic import BaseModel, Field

from .memory_models import MemoryItem


class AgentDescriptor(BaseModel):
    """Static registry entry describing one analysis agent."""

    name: str = Field(description="Unique agent name")
    dependencies: Tuple[str, ...] = Field(
        default=(), description="Agents that must finish first"
    )
    memory_tags: Tuple[str, ...] = Field(
        default=(), description="Tags used to pull context memories"
    )
    output_types: Tuple[str, ...] = Field(
        default=(), description="Tags attached to stored results"
    )
    description: str = Field(default="", description="What the agent does")

    class Config:
        """Pydantic configuration."""

        frozen = True


class AgentStatus(str, Enum):
    """Terminal status of an agent invocation."""

    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class AgentTask(BaseModel):
    """A unit of work handed to an agent."""

    id: str = Field(default_factory=lambda: f"task_{uuid.uuid4().hex[:12]}")
    description: str = Field(description="What the agent should do")
    priority: str = Field(default="medium", description="low, medium or high")
    parameters: Dict[str, Any] = Field(default_factory=dict)


class ContextBundle(BaseModel):
    """Context assembled from memory for a single agent invocation."""

    session_id: str
    agent_name: str
    memories: List[MemoryItem] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    upstream_status: Dict[str, AgentStatus] = Field(
        default_factory=dict, description="Status of in-session dependencies"
    )


class AgentOutput(BaseModel):
    """What an agent callable returns on success."""

    result: Any = Field(default=None, description="Opaque result payload")
    insights: List[str] = Field(default_factory=list)
    confidence: float = Field(default=0.8, ge=0, le=1)


class AgentResult(BaseModel):
    """Structured outcome of one agent invocation."""

    agent_name: str
    task_id: str
    status: AgentStatus
    result: Any = None
    insights: List[str] = Field(default_factory=list)
    confidence: float = Field(default=0.0, ge=0, le=1)
    error: Optional[str] = None
    memory_ids: List[str] = Field(default_factory=list)
    blocked_by: List[str] = Field(default_factory=list)
    attempts: int = Field(default=0)
    execution_time_ms: int = Field(default=0)

    @property
    def succeeded(self) -> bool:
        return self.status == AgentStatus.COMPLETED


class SessionReport(BaseModel):
    """Results of running a set of agents for one session."""

    session_id: str
    groups: List[List[str]] = Field(default_factory=list)
    results: Dict[str, AgentResult] = Field(default_factory=dict)
    started_at: datetime = Field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None

    def names_with_status(self, status: AgentStatus) -> List[str]:
        return [name for name, r in self.results.items() if r.status == status]

    @property
    def completed(self) -> List[str]:
        return self.names_with_status(AgentStatus.COMPLETED)

    @property
    def failed(self) -> List[str]:
        return self.names_with_status(AgentStatus.FAILED)

    @property
    def skipped(self) -> List[str]:
        return self.names_with_status(AgentStatus.SKIPPED)
