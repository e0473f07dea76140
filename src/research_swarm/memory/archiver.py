"""Session snapshotting and context compression into long-term memory."""

import logging
from typing import Any, List, Optional, Sequence, Union

from ..config.memory_config import MemoryConfig
from ..models.memory_models import ContextSnapshot, MemoryKind, MemoryQuery
from ..models.state_models import (
    ArchivedCollection,
    CompressionStrategy,
    SessionState,
    TodoStatus,
)
from .store import MemoryEntry, MemoryStore, to_json_value

logger = logging.getLogger(__name__)

ARCHIVED_TAG = "archived"

# Memory kind and relevance used when a collection is archived
_ARCHIVE_SETTINGS = {
    ArchivedCollection.EVIDENCE: (MemoryKind.FINDING, 0.6),
    ArchivedCollection.TASKS: (MemoryKind.TASK, 0.5),
    ArchivedCollection.COMMUNICATION: (MemoryKind.SESSION, 0.4),
}

_COLLECTION_ALIASES = {
    "tasks": ArchivedCollection.TASKS,
    "communication": ArchivedCollection.COMMUNICATION,
}


def _split_overflow(entries: Sequence[Any], keep: int):
    """Split into (overflow prefix, most recent `keep` entries)."""
    overflow = max(0, len(entries) - keep)
    return list(entries[:overflow]), list(entries[overflow:])


class ContextArchiver:
    """
    Captures and compresses session working state.

    Snapshots go to the store's history list and to memory as high
    relevance session items. Compression moves overflow out of the live
    state into memory; it never deletes anything from memory.
    """

    def __init__(self, store: MemoryStore, config: Optional[MemoryConfig] = None):
        """
        Initialize context archiver.

        Args:
            store: Memory store receiving snapshots and archives
            config: Memory configuration (defaults to the store's)
        """
        self.store = store
        self.config = config or store.config

    async def snapshot(
        self,
        state: SessionState,
        insights: Optional[List[str]] = None,
        next_actions: Optional[List[str]] = None,
    ) -> str:
        """
        Capture the state needed to resume a session.

        Args:
            state: Current session state
            insights: Insights to record with the snapshot
            next_actions: Overrides the state's next actions

        Returns:
            Memory ID of the stored snapshot

        Raises:
            SerializationError: If the state cannot be serialized; the
                snapshot is neither stored nor added to the history
        """
        coordination = state.agent_coordination
        draft = ContextSnapshot(
            session_id=state.session_id,
            state={
                "todos": list(state.todos),
                "research_context": {
                    "topic": state.topic,
                    "phase": state.phase,
                    "objectives": list(state.objectives),
                    "findings": state.findings,
                },
                "agent_coordination": coordination,
                "validation_status": state.validation_status,
            },
            active_agents=list(coordination.active_agents),
            completed_tasks=[todo.content for todo in state.completed_todos()],
            insights=list(insights or []),
            next_actions=list(
                next_actions if next_actions is not None else state.next_actions
            ),
        )
        content = to_json_value(draft)

        memory_id = await self.store.store(
            MemoryKind.SESSION,
            content,
            {
                "session_id": state.session_id,
                "relevance_score": 0.9,
                "tags": ["context", "snapshot", "session"],
                "source": "context_manager",
            },
            expiration_days=self.config.snapshot_expiration_days,
        )
        self.store.append_snapshot(ContextSnapshot.model_validate(content))
        logger.info(f"Created context snapshot {memory_id} for session {state.session_id}")
        return memory_id

    def restore_latest(self, session_id: str) -> Optional[ContextSnapshot]:
        """
        Most recent snapshot for a session.

        Args:
            session_id: Session identifier

        Returns:
            Snapshot if one exists
        """
        snapshot = self.store.latest_snapshot(session_id)
        if snapshot is None:
            logger.debug(f"No context snapshot for session {session_id}")
        return snapshot

    async def compress(
        self,
        state: SessionState,
        strategy: Union[CompressionStrategy, str] = CompressionStrategy.CONSERVATIVE,
    ) -> SessionState:
        """
        Move overflow collections into memory and return a trimmed copy.

        Evidence and agent messages beyond their keep thresholds are always
        archived. Completed tasks are all archived under the aggressive
        strategy, and only beyond their threshold under the conservative one.

        Args:
            state: Session state (not modified)
            strategy: Compression strategy

        Returns:
            Trimmed copy of the state

        Raises:
            SerializationError: If an archived entry cannot be serialized;
                nothing is archived in that case
        """
        strategy = CompressionStrategy(strategy)
        compressed = state.model_copy(deep=True)
        session_id = state.session_id

        archived_evidence, kept_evidence = _split_overflow(
            compressed.evidence_collection, self.config.evidence_keep
        )

        completed_idx = [
            i for i, todo in enumerate(compressed.todos)
            if todo.status == TodoStatus.COMPLETED
        ]
        if strategy == CompressionStrategy.AGGRESSIVE:
            archive_idx = completed_idx
        else:
            archive_idx, _ = _split_overflow(completed_idx, self.config.completed_task_keep)
        archive_set = set(archive_idx)

        coordination = compressed.agent_coordination
        archived_messages, kept_messages = _split_overflow(
            coordination.agent_communication, self.config.communication_keep
        )

        archives = [
            (ArchivedCollection.EVIDENCE, archived_evidence),
            (
                ArchivedCollection.TASKS,
                [compressed.todos[i].model_dump(mode="json") for i in archive_idx],
            ),
            (ArchivedCollection.COMMUNICATION, archived_messages),
        ]
        entries = [
            self._archive_entry(collection, archived, session_id)
            for collection, archived in archives
            if archived
        ]
        # All archives land in memory together or not at all
        if entries:
            await self.store.store_many(entries)

        compressed.evidence_collection = kept_evidence
        compressed.todos = [
            todo for i, todo in enumerate(compressed.todos) if i not in archive_set
        ]
        coordination.agent_communication = kept_messages

        logger.info(
            f"Compressed session {session_id} ({strategy.value}): "
            f"{len(archived_evidence)} evidence, {len(archive_idx)} tasks, "
            f"{len(archived_messages)} messages archived"
        )
        return compressed

    @staticmethod
    def _archive_entry(
        collection: ArchivedCollection, entries: List[Any], session_id: str
    ) -> MemoryEntry:
        kind, relevance = _ARCHIVE_SETTINGS[collection]
        return MemoryEntry(
            kind=kind,
            content=entries,
            metadata={
                "session_id": session_id,
                "relevance_score": relevance,
                "tags": [ARCHIVED_TAG, collection.value],
                "source": "context_compression",
            },
        )

    async def restore(
        self, session_id: str, collection: Union[ArchivedCollection, str]
    ) -> List[Any]:
        """
        Bring back everything archived for a session collection.

        Args:
            session_id: Session identifier
            collection: Archived collection (or "tasks"/"communication")

        Returns:
            Flat list of archived entries, oldest archive first
        """
        collection = self._resolve_collection(collection)
        memories = await self.store.retrieve(
            MemoryQuery(tags=[collection.value], session_id=session_id, limit=None)
        )
        archives = sorted(
            (m for m in memories if ARCHIVED_TAG in m.tags),
            key=lambda m: (m.created_at, m.sequence),
        )

        entries: List[Any] = []
        for memory in archives:
            if isinstance(memory.content, list):
                entries.extend(memory.content)
            else:
                entries.append(memory.content)

        logger.debug(
            f"Restored {len(entries)} {collection.value} entries for session {session_id}"
        )
        return entries

    @staticmethod
    def _resolve_collection(collection: Union[ArchivedCollection, str]) -> ArchivedCollection:
        if isinstance(collection, ArchivedCollection):
            return collection
        return _COLLECTION_ALIASES.get(collection) or ArchivedCollection(collection)

