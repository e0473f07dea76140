"""Service layer."""

from .memory_service import MemoryOrchestrator

__all__ = ["MemoryOrchestrator"]
