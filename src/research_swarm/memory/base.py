"""Abstract base class for memory state backends."""

from abc import ABC, abstractmethod
from typing import Optional

from ..models.memory_models import MemoryStateExport


class BaseStateStore(ABC):
    """Abstract base class defining the persistence interface."""

    @abstractmethod
    async def save(self, state: MemoryStateExport) -> None:
        """
        Persist an exported memory state, replacing any previous one.

        Args:
            state: Exported memory state

        Raises:
            PersistenceError: If the backend fails
        """
        pass

    @abstractmethod
    async def load(self) -> Optional[MemoryStateExport]:
        """
        Load the persisted memory state.

        Returns:
            Exported state if one was saved, None otherwise

        Raises:
            PersistenceError: If the backend fails or the data is corrupt
        """
        pass

    @abstractmethod
    async def delete(self) -> bool:
        """
        Delete the persisted state.

        Returns:
            True if deleted, False if nothing was saved
        """
        pass

    async def close(self) -> None:
        """Release backend resources."""
        pass
