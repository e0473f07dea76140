"""
Research Swarm Demo

This script demonstrates the memory and coordination core with:
- The default market research agent registry and its execution waves
- A session run with stub agents feeding each other through memory
- Context snapshotting, compression and restore
- Pattern learning recommendations and state export

Run this from the project root:
    python run.py
"""

import sys
from pathlib import Path

# Add src to Python path so the package imports without installation
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root / "src"))

import asyncio
import logging
import tempfile

from research_swarm.config import ExecutionConfig, MemoryConfig
from research_swarm.coordination import build_coordinator, default_registry
from research_swarm.execution import SessionExecutor
from research_swarm.memory import JsonFileStateStore
from research_swarm.models import (
    AgentOutput,
    AgentTask,
    ArchivedCollection,
    CompressionStrategy,
    ContextBundle,
    SessionState,
    Todo,
    TodoStatus,
)
from research_swarm.services import MemoryOrchestrator

# Configure logging - suppress info logs for cleaner demo output
logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s - %(message)s",
)

demo_logger = logging.getLogger("demo")
demo_logger.setLevel(logging.INFO)
demo_logger.propagate = False
handler = logging.StreamHandler()
handler.setFormatter(logging.Formatter("%(message)s"))
demo_logger.addHandler(handler)

FOCUS = {
    "CompetitorAgent": "competitors",
    "MarketTrendAgent": "trends",
    "ConsumerAgent": "trends",
    "FinancialAgent": "financial",
    "TechnicalAgent": "technical",
    "RegulatoryAgent": "regulatory",
}


def make_stub_agent(name: str):
    """Stub agent that reports how much upstream context it received."""

    async def agent(task: AgentTask, context: ContextBundle) -> AgentOutput:
        await asyncio.sleep(0.05)
        return AgentOutput(
            result={
                "focus": FOCUS[name],
                "topic": task.parameters.get("topic"),
                "context_memories": len(context.memories),
            },
            insights=[f"{name} found {FOCUS[name]} signals for {task.description}"],
            confidence=0.8,
        )

    return agent


async def main():
    demo_logger.info("=" * 70)
    demo_logger.info("DEMO: Research Swarm memory and coordination")
    demo_logger.info("=" * 70)

    registry = default_registry()
    coordinator = build_coordinator(registry)

    demo_logger.info("\nDependency graph:")
    demo_logger.info(coordinator.visualize())

    groups = coordinator.get_parallel_groups()
    demo_logger.info("\nExecution waves:")
    for i, group in enumerate(groups):
        demo_logger.info(f"  Wave {i + 1}: {', '.join(group)}")

    state_dir = Path(tempfile.mkdtemp(prefix="research_swarm_"))
    memory_config = MemoryConfig(state_file_path=str(state_dir / "memory_state.json"))
    memory = MemoryOrchestrator(
        config=memory_config,
        state_store=JsonFileStateStore(memory_config.state_file_path),
    )
    executor = SessionExecutor(
        memory=memory,
        coordinator=coordinator,
        agents={name: make_stub_agent(name) for name in registry.names},
        config=ExecutionConfig(max_parallelism=3, agent_timeout_seconds=10),
    )

    session_id = "demo_session"
    tasks = {
        name: AgentTask(
            description="electric bike subscription market",
            parameters={"topic": "e-bike subscriptions"},
        )
        for name in registry.names
    }

    # Repeat the session so learned patterns reach the recommendation threshold
    for _ in range(3):
        report = await executor.execute_session(session_id, tasks)

    demo_logger.info("\nSession results:")
    for name, result in report.results.items():
        demo_logger.info(
            f"  {name}: {result.status.value} "
            f"(context memories={result.result['context_memories']})"
        )

    recommendations = await memory.get_recommendations(
        "TechnicalAgent electric bike subscription market"
    )
    demo_logger.info("\nRecommendations:")
    for recommendation in recommendations:
        demo_logger.info(f"  - {recommendation}")

    state = SessionState(
        session_id=session_id,
        topic="e-bike subscriptions",
        phase="analysis",
        todos=[
            Todo(content=f"Task {i}", status=TodoStatus.COMPLETED) for i in range(25)
        ],
        evidence_collection=[{"source": f"report_{i}"} for i in range(15)],
    )
    await memory.create_snapshot(state, insights=["Demand is seasonal"])
    compressed = await memory.compress_context(state, CompressionStrategy.CONSERVATIVE)
    restored = await memory.restore_context(session_id, ArchivedCollection.EVIDENCE)
    demo_logger.info(
        f"\nCompression: evidence {len(state.evidence_collection)} -> "
        f"{len(compressed.evidence_collection)}, todos {len(state.todos)} -> "
        f"{len(compressed.todos)}, restored {len(restored)} evidence items"
    )

    await memory.save()
    stats = await memory.get_memory_stats()
    demo_logger.info(
        f"\nSaved {stats['total_memories']} memories and "
        f"{stats['learning_patterns']} patterns to {memory_config.state_file_path}"
    )
    await memory.close()


if __name__ == "__main__":
    asyncio.run(main())
