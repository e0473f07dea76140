"""Bounded, relevance-ranked in-process memory store."""

import asyncio
import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel
from pydantic_core import PydanticSerializationError

from ..config.memory_config import MemoryConfig
from ..exceptions import SerializationError
from ..models.memory_models import (
    UNKNOWN_SESSION,
    ContextSnapshot,
    MemoryItem,
    MemoryKind,
    MemoryQuery,
)
from .enrichment import Enricher, enrich_with_timeout
from .similarity import semantic_similarity

logger = logging.getLogger(__name__)

SEMANTIC_BOOST_WEIGHT = 0.3

_METADATA_FIELDS = {
    "session_id",
    "relevance_score",
    "tags",
    "source",
    "semantic_signature",
    "project_context",
    "code_references",
}


@dataclass
class MemoryEntry:
    """A pending insert for MemoryStore.store_many."""

    kind: MemoryKind
    content: Any
    metadata: Dict[str, Any] = field(default_factory=dict)
    expiration_days: Optional[float] = None


def to_json_value(content: Any) -> Any:
    """Deep-copy content through JSON, raising SerializationError on failure."""
    try:
        if isinstance(content, BaseModel):
            content = content.model_dump(mode="json")
        return json.loads(json.dumps(content, allow_nan=False))
    except (PydanticSerializationError, TypeError, ValueError) as e:
        raise SerializationError(f"Memory content is not serializable: {e}") from e


class MemoryStore:
    """
    In-process store owning every MemoryItem and the context-snapshot history.

    Ranking and eviction both use relevance_score + access_count * 0.1, so
    frequently retrieved memories resist eviction. All reads and writes of
    the item table happen under one asyncio lock.
    """

    def __init__(
        self,
        config: Optional[MemoryConfig] = None,
        enricher: Optional[Enricher] = None,
        max_memories: Optional[int] = None,
    ):
        """
        Initialize memory store.

        Args:
            config: Memory configuration (defaults from environment)
            enricher: Optional best-effort enricher called on insert
            max_memories: Override config.max_memories
        """
        self.config = config or MemoryConfig()
        self.max_memories = (
            max_memories if max_memories is not None else self.config.max_memories
        )
        self.enricher = enricher
        self._items: Dict[str, MemoryItem] = {}
        self._history: List[ContextSnapshot] = []
        self._last_sequence = 0
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, memory_id: object) -> bool:
        return memory_id in self._items

    def _new_item(
        self,
        kind: MemoryKind,
        content: Any,
        metadata: Optional[Dict[str, Any]],
        expiration_days: Optional[float],
    ) -> MemoryItem:
        metadata = dict(metadata or {})
        unknown = set(metadata) - _METADATA_FIELDS
        if unknown:
            logger.debug(f"Ignoring unknown memory metadata keys: {sorted(unknown)}")

        now = datetime.now()
        self._last_sequence += 1
        sequence = self._last_sequence
        memory_id = f"mem_{sequence}_{uuid.uuid4().hex[:9]}"
        while memory_id in self._items:
            memory_id = f"mem_{sequence}_{uuid.uuid4().hex[:9]}"

        return MemoryItem(
            id=memory_id,
            kind=MemoryKind(kind),
            content=to_json_value(content),
            session_id=metadata.get("session_id") or UNKNOWN_SESSION,
            relevance_score=metadata.get("relevance_score"),
            tags=metadata.get("tags") or [],
            source=metadata.get("source") or "system",
            created_at=now,
            last_accessed_at=now,
            expires_at=(
                now + timedelta(days=expiration_days)
                if expiration_days is not None
                else None
            ),
            sequence=sequence,
            semantic_signature=metadata.get("semantic_signature"),
            project_context=metadata.get("project_context"),
            code_references=metadata.get("code_references") or [],
        )

    async def _enrich(self, item: MemoryItem) -> MemoryItem:
        if self.enricher is None or not self.config.enrichment_enabled:
            return item

        enrichment = await enrich_with_timeout(
            self.enricher, item, self.config.enrichment_timeout_seconds
        )
        if enrichment is None:
            return item

        # Caller-supplied enrichment fields take precedence
        return item.model_copy(
            update={
                "semantic_signature": item.semantic_signature
                or enrichment.semantic_signature,
                "project_context": item.project_context or enrichment.project_context,
                "code_references": item.code_references or enrichment.code_references,
            }
        )

    async def store(
        self,
        kind: MemoryKind,
        content: Any,
        metadata: Optional[Dict[str, Any]] = None,
        expiration_days: Optional[float] = None,
    ) -> str:
        """
        Store a memory item.

        Args:
            kind: Memory kind
            content: JSON-serializable payload
            metadata: session_id, relevance_score, tags, source and optional
                enrichment fields
            expiration_days: Expire the item this many days from now

        Returns:
            Memory ID

        Raises:
            SerializationError: If content cannot be serialized
        """
        item = await self._enrich(self._new_item(kind, content, metadata, expiration_days))

        async with self._lock:
            self._items[item.id] = item
            self._evict_if_needed()

        logger.debug(
            f"Stored {item.kind.value} memory {item.id} "
            f"(session={item.session_id}, relevance={item.relevance_score:.2f})"
        )
        return item.id

    async def store_many(self, entries: Iterable[MemoryEntry]) -> List[str]:
        """
        Store several items so that readers see all of them or none.

        Args:
            entries: Pending inserts

        Returns:
            Memory IDs in entry order

        Raises:
            SerializationError: If any content cannot be serialized; nothing
                is stored in that case
        """
        items = [
            self._new_item(e.kind, e.content, e.metadata, e.expiration_days)
            for e in entries
        ]
        items = [await self._enrich(item) for item in items]

        async with self._lock:
            for item in items:
                self._items[item.id] = item
            self._evict_if_needed()

        logger.debug(f"Stored {len(items)} memories in one batch")
        return [item.id for item in items]

    async def retrieve(
        self, query: Optional[MemoryQuery] = None, **filters: Any
    ) -> List[MemoryItem]:
        """
        Retrieve ranked memories matching a query.

        Every returned item has its access count and last access time
        updated, which feeds back into ranking and eviction.

        Args:
            query: Query model; keyword filters build one when omitted
            **filters: MemoryQuery fields

        Returns:
            Copies of the matching items, best first
        """
        query = query or MemoryQuery(**filters)

        async with self._lock:
            now = datetime.now()
            candidates = [item for item in self._items.values() if query.matches(item, now)]
            boosts = self._semantic_boosts(candidates, query.semantic_query)

            candidates.sort(
                key=lambda item: (
                    item.rank_score + boosts.get(item.id, 0.0),
                    item.created_at,
                    item.sequence,
                ),
                reverse=True,
            )
            selected = candidates if query.limit is None else candidates[: query.limit]

            for item in selected:
                item.access_count += 1
                item.last_accessed_at = now

            results = [item.model_copy(deep=True) for item in selected]

        logger.debug(f"Retrieved {len(results)} of {len(candidates)} matching memories")
        return results

    def _semantic_boosts(
        self, candidates: List[MemoryItem], semantic_query: Optional[str]
    ) -> Dict[str, float]:
        if not semantic_query:
            return {}
        try:
            return {
                item.id: semantic_similarity(item, semantic_query) * SEMANTIC_BOOST_WEIGHT
                for item in candidates
            }
        except (TypeError, ValueError) as e:
            logger.warning(f"Semantic boost failed, using base ranking: {e}")
            return {}

    def _evict_if_needed(self) -> int:
        """
        Enforce max_memories. Caller must hold the lock.

        Expired items go first regardless of relevance, then the lowest
        ranked items (oldest first on ties).

        Returns:
            Number of items removed
        """
        if len(self._items) <= self.max_memories:
            return 0

        removed = self._remove_expired(datetime.now())

        overflow = len(self._items) - self.max_memories
        if overflow > 0:
            ranked = sorted(
                self._items.values(), key=lambda item: (item.rank_score, item.sequence)
            )
            for item in ranked[:overflow]:
                del self._items[item.id]
            removed += overflow

        logger.info(
            f"Evicted {removed} memories (size={len(self._items)}, "
            f"max={self.max_memories})"
        )
        return removed

    def _remove_expired(self, now: datetime) -> int:
        expired = [mid for mid, item in self._items.items() if item.is_expired(now)]
        for memory_id in expired:
            del self._items[memory_id]
        return len(expired)

    async def purge_expired(self) -> int:
        """
        Remove every expired item regardless of capacity.

        Returns:
            Number of items removed
        """
        async with self._lock:
            count = self._remove_expired(datetime.now())
        if count > 0:
            logger.debug(f"Purged {count} expired memories")
        return count

    async def get(self, memory_id: str) -> Optional[MemoryItem]:
        """Look up a memory by ID without touching its access statistics."""
        async with self._lock:
            item = self._items.get(memory_id)
            return item.model_copy(deep=True) if item else None

    async def delete(self, memory_id: str) -> bool:
        """
        Delete a memory item.

        Returns:
            True if deleted, False if not found
        """
        async with self._lock:
            return self._items.pop(memory_id, None) is not None

    # Context snapshot history

    def append_snapshot(self, snapshot: ContextSnapshot) -> None:
        """Record a context snapshot in the in-process history."""
        self._history.append(snapshot)

    def latest_snapshot(self, session_id: str) -> Optional[ContextSnapshot]:
        """Most recent snapshot for a session, or None."""
        latest: Optional[ContextSnapshot] = None
        for snapshot in self._history:
            if snapshot.session_id != session_id:
                continue
            if latest is None or snapshot.timestamp >= latest.timestamp:
                latest = snapshot
        return latest

    def snapshots(self, session_id: Optional[str] = None) -> List[ContextSnapshot]:
        """Snapshot history, optionally filtered to one session."""
        if session_id is None:
            return list(self._history)
        return [s for s in self._history if s.session_id == session_id]

    # Persistence support

    async def export_items(self) -> List[MemoryItem]:
        """Copies of every stored item in insertion order."""
        async with self._lock:
            return [
                item.model_copy(deep=True)
                for item in sorted(self._items.values(), key=lambda i: i.sequence)
            ]

    async def load_items(
        self,
        items: Iterable[MemoryItem],
        history: Optional[Iterable[ContextSnapshot]] = None,
    ) -> int:
        """
        Replace the store contents with previously exported state.

        New IDs issued afterwards never collide with loaded ones.

        Returns:
            Number of items loaded
        """
        async with self._lock:
            self._items = {item.id: item for item in items}
            if history is not None:
                self._history = list(history)
            last_sequence = max((i.sequence for i in self._items.values()), default=0)
            self._last_sequence = max(self._last_sequence, last_sequence)
            self._evict_if_needed()
            count = len(self._items)

        logger.info(f"Loaded {count} memories and {len(self._history)} snapshots")
        return count

    def get_stats(self) -> Dict[str, Any]:
        """
        Get store statistics.

        Returns:
            Dictionary with counts per kind, expiry and utilization
        """
        now = datetime.now()
        by_kind: Dict[str, int] = {}
        for item in self._items.values():
            by_kind[item.kind.value] = by_kind.get(item.kind.value, 0) + 1

        total = len(self._items)
        return {
            "total_memories": total,
            "expired_memories": sum(1 for i in self._items.values() if i.is_expired(now)),
            "by_kind": by_kind,
            "context_snapshots": len(self._history),
            "max_memories": self.max_memories,
            "utilization": total / self.max_memories if self.max_memories > 0 else 0,
            "total_accesses": sum(i.access_count for i in self._items.values()),
        }
