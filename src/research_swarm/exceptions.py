"""Exception types raised by the memory and coordination core."""

from typing import List, Optional


class ResearchSwarmError(Exception):
    """Base class for all core errors."""

    pass


class SerializationError(ResearchSwarmError):
    """Raised when memory content cannot be serialized for storage."""

    pass


class CyclicDependencyError(ResearchSwarmError):
    """Raised when the agent registry contains a dependency cycle."""

    def __init__(self, cycle: List[str]):
        self.cycle = cycle
        super().__init__(f"Circular dependency detected: {' -> '.join(cycle)}")


class UnknownAgentError(ResearchSwarmError, KeyError):
    """Raised when a requested agent is not in the registry."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown agent: {name}")

    def __str__(self) -> str:
        return f"Unknown agent: {self.name}"


class AgentExecutionError(ResearchSwarmError):
    """Raised when an agent invocation fails or times out."""

    def __init__(self, agent_name: str, message: str, cause: Optional[Exception] = None):
        self.agent_name = agent_name
        self.cause = cause
        super().__init__(f"{agent_name}: {message}")


class EnrichmentUnavailable(ResearchSwarmError):
    """Raised by enrichers when the backing service cannot be reached."""

    pass


class PersistenceError(ResearchSwarmError):
    """Raised when a state backend fails to save or load."""

    pass
