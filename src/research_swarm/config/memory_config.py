"""Memory system configuration with environment variable loading."""

import os
from typing import Optional
from pydantic import BaseModel, Field
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class MemoryConfig(BaseModel):
    """Configuration for the session memory store."""

    # Capacity and retention
    max_memories: int = Field(
        default_factory=lambda: int(os.getenv("MAX_MEMORIES", "1000")),
        ge=1,
        description="Maximum number of memory items before eviction",
    )
    snapshot_expiration_days: float = Field(
        default_factory=lambda: float(os.getenv("SNAPSHOT_EXPIRATION_DAYS", "7")),
        description="Expiry for session snapshot memories (days)",
    )
    context_history_limit: int = Field(
        default_factory=lambda: int(os.getenv("CONTEXT_HISTORY_LIMIT", "50")),
        description="Number of context snapshots kept in exports",
    )
    default_query_limit: int = Field(
        default=20,
        description="Default result limit for memory queries",
    )

    # Context compression thresholds
    evidence_keep: int = Field(
        default_factory=lambda: int(os.getenv("COMPRESSION_EVIDENCE_KEEP", "10")),
        description="Evidence items kept in the live session state",
    )
    communication_keep: int = Field(
        default_factory=lambda: int(os.getenv("COMPRESSION_COMMUNICATION_KEEP", "20")),
        description="Agent messages kept in the live session state",
    )
    completed_task_keep: int = Field(
        default_factory=lambda: int(os.getenv("COMPRESSION_COMPLETED_TASK_KEEP", "20")),
        description="Completed tasks kept live under conservative compression",
    )

    # Enrichment
    enrichment_enabled: bool = Field(
        default_factory=lambda: _env_bool("ENRICHMENT_ENABLED", "true"),
        description="Call the configured enricher on insert",
    )
    enrichment_timeout_seconds: float = Field(
        default_factory=lambda: float(os.getenv("ENRICHMENT_TIMEOUT", "2.0")),
        gt=0,
        description="Upper bound on a single enrichment call",
    )
    project_name: str = Field(
        default_factory=lambda: os.getenv("PROJECT_NAME", "research-swarm"),
        description="Project name recorded in enrichment context",
    )

    # Redis Configuration
    redis_url: str = Field(
        default_factory=lambda: os.getenv("REDIS_URL", "redis://localhost:6379/0"),
        description="Redis connection URL",
    )
    connection_pool_size: int = Field(
        default_factory=lambda: int(os.getenv("CONNECTION_POOL_SIZE", "10")),
        description="Connection pool size for Redis",
    )
    state_key_prefix: str = Field(
        default="memory_state",
        description="Redis key prefix for exported memory state",
    )
    state_ttl_seconds: int = Field(
        default_factory=lambda: int(os.getenv("STATE_TTL", str(30 * 24 * 3600))),
        description="TTL for persisted memory state in Redis (seconds)",
    )

    # Qdrant Configuration
    qdrant_url: str = Field(
        default_factory=lambda: os.getenv("QDRANT_URL", "http://localhost:6333"),
        description="Qdrant connection URL",
    )
    qdrant_api_key: Optional[str] = Field(
        default_factory=lambda: os.getenv("QDRANT_API_KEY"),
        description="Qdrant API key (optional for local)",
    )
    semantic_collection_name: str = Field(
        default="semantic_memory",
        description="Qdrant collection used for semantic enrichment",
    )
    vector_size: int = Field(
        default_factory=lambda: int(os.getenv("VECTOR_SIZE", "1536")),
        description="Vector embedding dimension",
    )

    # Local persistence
    state_file_path: str = Field(
        default_factory=lambda: os.getenv("MEMORY_STATE_FILE", "memory_state.json"),
        description="Path of the JSON export written by the file backend",
    )
