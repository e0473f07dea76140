"""Configuration for the memory and execution subsystems."""

from .memory_config import MemoryConfig
from .execution_config import ExecutionConfig, FailurePolicy

__all__ = ["MemoryConfig", "ExecutionConfig", "FailurePolicy"]
