"""Word-overlap similarity helpers shared by ranking and pattern learning."""

import json
from typing import Any, Set

from ..models.memory_models import MemoryItem


def word_set(text: str) -> Set[str]:
    """Lowercased whitespace-separated tokens."""
    return set(text.lower().split())


def jaccard_similarity(text1: str, text2: str) -> float:
    """
    Jaccard similarity over whitespace-tokenized, lowercased words.

    Args:
        text1: First text
        text2: Second text

    Returns:
        Similarity in [0, 1]; 0.0 when both texts are empty
    """
    words1 = word_set(text1)
    words2 = word_set(text2)
    union = words1 | words2
    if not union:
        return 0.0
    return len(words1 & words2) / len(union)


def content_text(content: Any) -> str:
    """Render opaque memory content as text for similarity checks."""
    if isinstance(content, str):
        return content
    return json.dumps(content, sort_keys=True, default=str)


def semantic_similarity(memory: MemoryItem, query: str) -> float:
    """
    Advisory similarity between a memory and free text.

    Uses the enrichment signature when present, otherwise falls back to
    content word overlap.
    """
    if memory.semantic_signature:
        signature_words = word_set(memory.semantic_signature)
        query_words = word_set(query)
        denominator = max(len(signature_words), len(query_words))
        if denominator == 0:
            return 0.0
        return len(signature_words & query_words) / denominator

    return jaccard_similarity(content_text(memory.content), query)
