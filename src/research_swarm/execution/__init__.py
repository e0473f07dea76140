"""Agent session execution."""

from .retry import RetryManager
from .session_executor import AgentCallable, SessionExecutor

__all__ = ["RetryManager", "AgentCallable", "SessionExecutor"]
