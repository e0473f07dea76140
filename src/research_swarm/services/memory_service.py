"""Memory orchestration service coordinating store, archiving and learning."""

import logging
from typing import Any, Dict, List, Optional, Union

from ..config.memory_config import MemoryConfig
from ..memory import (
    BaseStateStore,
    ContextArchiver,
    Enricher,
    JsonFileStateStore,
    MemoryStore,
    PatternLearner,
    StaticEnricher,
    build_export,
    parse_export,
)
from ..models.memory_models import (
    ContextSnapshot,
    LearningPattern,
    MemoryItem,
    MemoryKind,
    MemoryQuery,
    MemoryStateExport,
)
from ..models.state_models import ArchivedCollection, CompressionStrategy, SessionState

logger = logging.getLogger(__name__)


class MemoryOrchestrator:
    """
    Memory orchestration service providing a unified interface.

    Implements the Facade pattern over the memory store, the context
    archiver, the pattern learner and a persistence backend.
    """

    def __init__(
        self,
        config: Optional[MemoryConfig] = None,
        enricher: Optional[Enricher] = None,
        state_store: Optional[BaseStateStore] = None,
    ):
        """
        Initialize memory orchestrator.

        Args:
            config: Memory configuration (defaults from environment)
            enricher: Enricher used on insert (StaticEnricher by default)
            state_store: Persistence backend (JSON file by default)
        """
        self.config = config or MemoryConfig()
        self.enricher = enricher or StaticEnricher(self.config.project_name)
        self.state_store = state_store or JsonFileStateStore(self.config.state_file_path)

        self.store = MemoryStore(config=self.config, enricher=self.enricher)
        self.archiver = ContextArchiver(self.store, self.config)
        self.learner = PatternLearner(self.store)

    async def store_memory(
        self,
        kind: Union[MemoryKind, str],
        content: Any,
        session_id: Optional[str] = None,
        relevance_score: Optional[float] = None,
        tags: Optional[List[str]] = None,
        source: Optional[str] = None,
        expiration_days: Optional[float] = None,
        **metadata: Any,
    ) -> str:
        """
        Store a memory.

        Args:
            kind: Memory kind
            content: JSON-serializable payload
            session_id: Owning session
            relevance_score: Importance (0-1, default 0.5)
            tags: Memory tags
            source: Producer identifier
            expiration_days: Expire the item this many days from now
            **metadata: Optional enrichment fields

        Returns:
            Memory ID
        """
        metadata.update(
            {
                "session_id": session_id,
                "relevance_score": relevance_score,
                "tags": tags,
                "source": source,
            }
        )
        return await self.store.store(
            MemoryKind(kind), content, metadata, expiration_days=expiration_days
        )

    async def retrieve_memories(
        self, query: Optional[MemoryQuery] = None, **filters: Any
    ) -> List[MemoryItem]:
        """
        Retrieve ranked memories.

        Args:
            query: Query model; keyword filters build one when omitted
            **filters: MemoryQuery fields

        Returns:
            Matching memories, best first
        """
        if query is None and "limit" not in filters:
            filters["limit"] = self.config.default_query_limit
        return await self.store.retrieve(query, **filters)

    async def create_snapshot(
        self,
        state: SessionState,
        insights: Optional[List[str]] = None,
        next_actions: Optional[List[str]] = None,
    ) -> str:
        """Snapshot a session's working state; returns the memory ID."""
        return await self.archiver.snapshot(state, insights, next_actions)

    def restore_latest(self, session_id: str) -> Optional[ContextSnapshot]:
        """Most recent snapshot for a session."""
        return self.archiver.restore_latest(session_id)

    async def compress_context(
        self,
        state: SessionState,
        strategy: Union[CompressionStrategy, str] = CompressionStrategy.CONSERVATIVE,
    ) -> SessionState:
        """Archive overflow collections and return the trimmed state."""
        return await self.archiver.compress(state, strategy)

    async def restore_context(
        self, session_id: str, collection: Union[ArchivedCollection, str]
    ) -> List[Any]:
        """Everything archived for one collection of a session."""
        return await self.archiver.restore(session_id, collection)

    async def record_pattern(
        self,
        description: str,
        context: str,
        success: bool,
        code_context: Optional[str] = None,
    ) -> LearningPattern:
        """Record an outcome for pattern learning."""
        return await self.learner.record(description, context, success, code_context)

    async def get_recommendations(self, current_context: str) -> List[str]:
        """Recommendations learned from similar successful work."""
        return await self.learner.recommend(current_context)

    async def export_state(self) -> MemoryStateExport:
        """
        Export memories, recent context history and learned patterns.

        Returns:
            JSON-serializable export bundle
        """
        return build_export(
            await self.store.export_items(),
            self.store.snapshots(),
            await self.learner.patterns(),
            history_limit=self.config.context_history_limit,
        )

    async def import_state(
        self, state: Union[MemoryStateExport, Dict[str, Any], str]
    ) -> int:
        """
        Replace in-memory state with an export.

        Args:
            state: Export bundle, its dict form or its JSON text

        Returns:
            Number of memories loaded
        """
        if not isinstance(state, MemoryStateExport):
            state = parse_export(state)

        count = await self.store.load_items(state.memories, state.context_history)
        patterns = await self.learner.load_patterns(state.learning_patterns)
        logger.info(f"Imported {count} memories and {patterns} learning patterns")
        return count

    async def save(self) -> None:
        """Persist the current state to the configured backend."""
        await self.state_store.save(await self.export_state())

    async def load(self) -> bool:
        """
        Restore state from the configured backend.

        Returns:
            True if a saved state was found and imported
        """
        state = await self.state_store.load()
        if state is None:
            logger.info("No persisted memory state found")
            return False
        await self.import_state(state)
        return True

    async def get_memory_stats(self) -> Dict[str, Any]:
        """
        Get memory statistics.

        Returns:
            Store statistics plus learning pattern counts
        """
        stats = self.store.get_stats()
        patterns = await self.learner.patterns()
        stats["learning_patterns"] = len(patterns)
        stats["reliable_patterns"] = sum(
            1 for p in patterns if p.success_rate > 0.7 and p.occurrences >= 3
        )
        return stats

    async def close(self) -> None:
        """Close backend connections."""
        await self.state_store.close()
        close = getattr(self.enricher, "close", None)
        if close is not None:
            await close()
        logger.info("Memory orchestrator closed")
