"""Configuration for agent session execution."""

import os
from enum import Enum
from pydantic import BaseModel, Field
from dotenv import load_dotenv

load_dotenv()


class FailurePolicy(str, Enum):
    """What happens to dependents of an agent that failed."""

    SKIP_DEPENDENTS = "skip_dependents"
    RUN_DEPENDENTS = "run_dependents"


class ExecutionConfig(BaseModel):
    """Configuration for wave-based agent execution."""

    max_parallelism: int = Field(
        default_factory=lambda: int(os.getenv("MAX_PARALLEL_AGENTS", "5")),
        ge=1,
        description="Maximum agents running concurrently within a wave",
    )
    agent_timeout_seconds: float = Field(
        default_factory=lambda: float(os.getenv("AGENT_TIMEOUT", "300")),
        gt=0,
        description="Per-invocation agent timeout",
    )
    max_retries: int = Field(
        default_factory=lambda: int(os.getenv("AGENT_MAX_RETRIES", "1")),
        ge=1,
        description="Attempts per agent invocation (1 = no retry)",
    )
    retry_backoff_factor: float = Field(
        default=2.0,
        description="Exponential backoff multiplier between attempts",
    )
    retry_base_delay: float = Field(
        default=1.0,
        ge=0,
        description="Delay before the first retry (seconds)",
    )
    retry_max_delay: float = Field(
        default=30.0,
        description="Maximum delay between attempts (seconds)",
    )
    failure_policy: FailurePolicy = Field(
        default_factory=lambda: FailurePolicy(
            os.getenv("FAILURE_POLICY", FailurePolicy.SKIP_DEPENDENTS.value)
        ),
        description="Whether dependents of a failed agent still run",
    )
    context_memory_limit: int = Field(
        default=10,
        ge=1,
        description="Memories pulled into an agent's context bundle",
    )
    insight_relevance: float = Field(
        default=0.7,
        ge=0,
        le=1,
        description="Relevance assigned to stored agent insights",
    )
