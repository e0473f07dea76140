"""Session working-state models used by snapshotting and compression."""

from pydantic import BaseModel, Field
from typing import Dict, Any, List, Optional
from datetime import datetime
from enum import Enum


class TodoStatus(str, Enum):
    """Task tracking status."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class CompressionStrategy(str, Enum):
    """How eagerly context compression archives completed work."""

    AGGRESSIVE = "aggressive"
    CONSERVATIVE = "conservative"


class ArchivedCollection(str, Enum):
    """Session collections that compression moves into memory."""

    EVIDENCE = "evidence"
    TASKS = "completed_tasks"
    COMMUNICATION = "agent_communication"


class Todo(BaseModel):
    """A tracked research task."""

    content: str
    status: TodoStatus = TodoStatus.PENDING
    priority: str = "medium"
    assigned_agent: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)


class AgentCoordination(BaseModel):
    """Live coordination status for the agents in a session."""

    active_agents: List[str] = Field(default_factory=list)
    agent_status: Dict[str, str] = Field(default_factory=dict)
    agent_communication: List[Dict[str, Any]] = Field(default_factory=list)
    coordination_mode: str = "hybrid"
    dependency_graph: Dict[str, List[str]] = Field(default_factory=dict)


class SessionState(BaseModel):
    """Working state of a research session."""

    session_id: str
    topic: str = ""
    phase: str = "planning"
    objectives: List[str] = Field(default_factory=list)
    todos: List[Todo] = Field(default_factory=list)
    evidence_collection: List[Any] = Field(default_factory=list)
    findings: Dict[str, Any] = Field(default_factory=dict)
    agent_coordination: AgentCoordination = Field(default_factory=AgentCoordination)
    validation_status: Dict[str, Any] = Field(default_factory=dict)
    next_actions: List[str] = Field(default_factory=list)

    def completed_todos(self) -> List[Todo]:
        return [t for t in self.todos if t.status == TodoStatus.COMPLETED]
