"""Session memory: store, archiving, pattern learning and persistence."""

from .store import MemoryStore, MemoryEntry
from .archiver import ContextArchiver
from .patterns import PatternLearner, pattern_key
from .enrichment import Enricher, StaticEnricher, extract_code_references
from .semantic import QdrantEnricher
from .base import BaseStateStore
from .persistence import JsonFileStateStore, RedisStateStore, build_export, parse_export

__all__ = [
    "MemoryStore",
    "MemoryEntry",
    "ContextArchiver",
    "PatternLearner",
    "pattern_key",
    "Enricher",
    "StaticEnricher",
    "extract_code_references",
    "QdrantEnricher",
    "BaseStateStore",
    "JsonFileStateStore",
    "RedisStateStore",
    "build_export",
    "parse_export",
]
