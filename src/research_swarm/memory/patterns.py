"""Pattern learning from recorded task outcomes."""

import asyncio
import logging
import re
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from ..models.memory_models import LearningPattern, MemoryKind
from .similarity import jaccard_similarity
from .store import MemoryStore

logger = logging.getLogger(__name__)

MIN_SUCCESS_RATE = 0.7
MIN_OCCURRENCES = 3
CONTEXT_SIMILARITY_THRESHOLD = 0.6
MAX_RECOMMENDATIONS = 5

_NON_ALPHANUMERIC = re.compile(r"[^a-z0-9]")


def pattern_key(description: str, context: str) -> str:
    """Normalized key for a (description, context) pair."""
    return _NON_ALPHANUMERIC.sub("_", f"{description}_{context}".lower())


class PatternLearner:
    """
    Tracks success rates of recurring (description, context) pairings.

    Successful outcomes are also written to memory as pattern items so
    they surface in recall; failures only update the statistics table.
    """

    def __init__(self, store: MemoryStore):
        """
        Initialize pattern learner.

        Args:
            store: Memory store receiving successful patterns
        """
        self.store = store
        self._patterns: Dict[str, LearningPattern] = {}
        self._lock = asyncio.Lock()

    async def record(
        self,
        description: str,
        context: str,
        success: bool,
        code_context: Optional[str] = None,
    ) -> LearningPattern:
        """
        Record one outcome of a pattern.

        Args:
            description: Task description
            context: Context the task ran in
            success: Whether the task succeeded
            code_context: Optional related code context

        Returns:
            Copy of the updated pattern statistics
        """
        key = pattern_key(description, context)
        outcome = 1.0 if success else 0.0

        async with self._lock:
            pattern = self._patterns.get(key)
            if pattern is None:
                pattern = LearningPattern(
                    pattern_id=key,
                    description=description,
                    occurrences=1,
                    success_rate=outcome,
                    contexts=[context],
                )
                self._patterns[key] = pattern
            else:
                pattern.occurrences += 1
                pattern.success_rate = (
                    pattern.success_rate * (pattern.occurrences - 1) + outcome
                ) / pattern.occurrences
                pattern.contexts.append(context)
                pattern.last_seen = datetime.now()

            if code_context:
                pattern.code_contexts.append(code_context)
            snapshot = pattern.model_copy(deep=True)

        logger.debug(
            f"Recorded pattern {key}: occurrences={snapshot.occurrences}, "
            f"success_rate={snapshot.success_rate:.3f}"
        )

        if success:
            await self.store.store(
                MemoryKind.PATTERN,
                {
                    "pattern": description,
                    "context": context,
                    "code_context": code_context,
                    "success_rate": snapshot.success_rate,
                    "occurrences": snapshot.occurrences,
                },
                {
                    "relevance_score": 0.8,
                    "tags": ["pattern", "success", "learning"],
                    "source": "pattern_learning",
                },
            )

        return snapshot

    async def recommend(self, current_context: str) -> List[str]:
        """
        Recommendations from reliable patterns seen in similar contexts.

        Args:
            current_context: Description of the current situation

        Returns:
            At most 5 recommendation strings, most confident first
        """
        async with self._lock:
            candidates = [
                pattern
                for pattern in self._patterns.values()
                if pattern.success_rate > MIN_SUCCESS_RATE
                and pattern.occurrences >= MIN_OCCURRENCES
                and any(
                    jaccard_similarity(ctx, current_context) > CONTEXT_SIMILARITY_THRESHOLD
                    for ctx in pattern.contexts
                )
            ]
            candidates.sort(key=lambda p: p.confidence, reverse=True)

            return [
                f"Based on {p.occurrences} successful cases: {p.description}"
                for p in candidates[:MAX_RECOMMENDATIONS]
            ]

    async def get_pattern(self, description: str, context: str) -> Optional[LearningPattern]:
        """Statistics for a pattern, or None if never recorded."""
        async with self._lock:
            pattern = self._patterns.get(pattern_key(description, context))
            return pattern.model_copy(deep=True) if pattern else None

    async def patterns(self) -> List[LearningPattern]:
        """Copies of every learned pattern."""
        async with self._lock:
            return [p.model_copy(deep=True) for p in self._patterns.values()]

    async def load_patterns(self, patterns: Iterable[LearningPattern]) -> int:
        """
        Replace the pattern table with previously exported patterns.

        Returns:
            Number of patterns loaded
        """
        async with self._lock:
            self._patterns = {p.pattern_id: p for p in patterns}
            return len(self._patterns)
