"""Wave-based execution of dependent agents with memory context."""

import asyncio
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Set

from ..config.execution_config import ExecutionConfig, FailurePolicy
from ..coordination.dependency_coordinator import DependencyCoordinator
from ..exceptions import AgentExecutionError, UnknownAgentError
from ..memory.store import MemoryEntry
from ..models.agent_models import (
    AgentDescriptor,
    AgentOutput,
    AgentResult,
    AgentStatus,
    AgentTask,
    ContextBundle,
    SessionReport,
)
from ..models.memory_models import MemoryKind, MemoryQuery
from ..services.memory_service import MemoryOrchestrator
from .retry import RetryManager

logger = logging.getLogger(__name__)

AgentCallable = Callable[[AgentTask, ContextBundle], Awaitable[Any]]

_OUTPUT_FIELDS = frozenset(AgentOutput.model_fields)


def _to_output(value: Any) -> AgentOutput:
    """
    Normalize an agent return value.

    Only a dict made entirely of AgentOutput fields is read as structured
    output; any other value is kept whole as the opaque result.
    """
    if isinstance(value, AgentOutput):
        return value
    if (
        isinstance(value, dict)
        and value
        and set(value) <= _OUTPUT_FIELDS
        and ("result" in value or "insights" in value)
    ):
        return AgentOutput.model_validate(value)
    return AgentOutput(result=value)


def pattern_context(agent_name: str, task: AgentTask) -> str:
    """Context string under which an agent's task outcomes are learned."""
    return f"{agent_name} {task.description}"


class SessionExecutor:
    """
    Runs agents in dependency waves, feeding them context from memory.

    PATTERN: Staged asyncio.gather bounded by a semaphore
    CRITICAL: Wave N memory writes complete before wave N+1 starts
    GOTCHA: A failed agent never cancels its siblings
    """

    def __init__(
        self,
        memory: MemoryOrchestrator,
        coordinator: DependencyCoordinator,
        agents: Mapping[str, AgentCallable],
        config: Optional[ExecutionConfig] = None,
    ):
        """
        Initialize session executor.

        Args:
            memory: Memory orchestrator shared by every agent
            coordinator: Validated dependency coordinator
            agents: Agent callables keyed by registry name
            config: Execution configuration (defaults from environment)
        """
        self.memory = memory
        self.coordinator = coordinator
        self.agents = dict(agents)
        self.config = config or ExecutionConfig()
        self.retry_manager = RetryManager(
            max_retries=self.config.max_retries,
            backoff_factor=self.config.retry_backoff_factor,
            max_delay=self.config.retry_max_delay,
            base_delay=self.config.retry_base_delay,
        )

    def _descriptor(self, agent_name: str) -> AgentDescriptor:
        descriptor = self.coordinator.registry.get(agent_name)
        if descriptor is None:
            raise UnknownAgentError(agent_name)
        return descriptor

    async def build_context(
        self,
        descriptor: AgentDescriptor,
        task: AgentTask,
        session_id: str,
        upstream_status: Optional[Dict[str, AgentStatus]] = None,
    ) -> ContextBundle:
        """
        Assemble the memory context for one invocation.

        Args:
            descriptor: Agent registry entry
            task: Task being executed
            session_id: Session identifier
            upstream_status: Status of in-session dependencies

        Returns:
            Context bundle
        """
        memories = await self.memory.retrieve_memories(
            MemoryQuery(
                tags=list(descriptor.memory_tags) or None,
                session_id=session_id,
                limit=self.config.context_memory_limit,
                semantic_query=task.description,
            )
        )
        recommendations = await self.memory.get_recommendations(
            pattern_context(descriptor.name, task)
        )
        return ContextBundle(
            session_id=session_id,
            agent_name=descriptor.name,
            memories=memories,
            recommendations=recommendations,
            upstream_status=upstream_status or {},
        )

    async def _invoke_once(
        self, agent: AgentCallable, agent_name: str, task: AgentTask, context: ContextBundle
    ) -> AgentOutput:
        timeout = self.config.agent_timeout_seconds
        try:
            value = await asyncio.wait_for(agent(task, context), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise AgentExecutionError(agent_name, f"timed out after {timeout}s", e) from e
        return _to_output(value)

    def _result_entries(
        self,
        descriptor: AgentDescriptor,
        task: AgentTask,
        session_id: str,
        output: AgentOutput,
    ) -> List[MemoryEntry]:
        tags = [*descriptor.output_types, descriptor.name]
        entries = [
            MemoryEntry(
                kind=MemoryKind.INSIGHT,
                content=insight,
                metadata={
                    "session_id": session_id,
                    "relevance_score": self.config.insight_relevance,
                    "tags": [*tags, "insight"],
                    "source": descriptor.name,
                },
            )
            for insight in output.insights
        ]
        entries.append(
            MemoryEntry(
                kind=MemoryKind.FINDING,
                content={
                    "agent": descriptor.name,
                    "task_id": task.id,
                    "task": task.description,
                    "result": output.result,
                    "confidence": output.confidence,
                },
                metadata={
                    "session_id": session_id,
                    "relevance_score": output.confidence,
                    "tags": tags,
                    "source": descriptor.name,
                },
            )
        )
        return entries

    async def execute_agent(
        self,
        agent_name: str,
        task: AgentTask,
        session_id: str,
        upstream_status: Optional[Dict[str, AgentStatus]] = None,
    ) -> AgentResult:
        """
        Run one agent with memory context, storing what it produces.

        Agent errors and timeouts become FAILED results; nothing is stored
        in memory for a failed invocation.

        Args:
            agent_name: Registered agent name
            task: Task to execute
            session_id: Session identifier
            upstream_status: Status of in-session dependencies

        Returns:
            Agent result

        Raises:
            UnknownAgentError: If the agent is not registered
        """
        descriptor = self._descriptor(agent_name)
        start_time = datetime.now()
        attempts = 0

        def elapsed_ms() -> int:
            return int((datetime.now() - start_time).total_seconds() * 1000)

        async def attempt(context: ContextBundle) -> AgentOutput:
            nonlocal attempts
            attempts += 1
            return await self._invoke_once(agent, agent_name, task, context)

        context_key = pattern_context(agent_name, task)
        agent = self.agents.get(agent_name)

        try:
            if agent is None:
                raise AgentExecutionError(agent_name, "no implementation registered")

            context = await self.build_context(descriptor, task, session_id, upstream_status)
            output = await self.retry_manager.execute_with_retry(attempt, context)
            memory_ids = await self.memory.store.store_many(
                self._result_entries(descriptor, task, session_id, output)
            )

        except Exception as e:
            logger.error(f"Agent {agent_name} failed on task {task.id}: {e}")
            await self.memory.record_pattern(task.description, context_key, False)
            return AgentResult(
                agent_name=agent_name,
                task_id=task.id,
                status=AgentStatus.FAILED,
                confidence=0.0,
                error=str(e),
                attempts=attempts,
                execution_time_ms=elapsed_ms(),
            )

        await self.memory.record_pattern(task.description, context_key, True)
        logger.info(
            f"Agent {agent_name} completed task {task.id} "
            f"({len(output.insights)} insights, confidence={output.confidence:.2f})"
        )
        return AgentResult(
            agent_name=agent_name,
            task_id=task.id,
            status=AgentStatus.COMPLETED,
            result=output.result,
            insights=output.insights,
            confidence=output.confidence,
            memory_ids=memory_ids,
            attempts=attempts,
            execution_time_ms=elapsed_ms(),
        )

    def _skipped(self, agent_name: str, task: AgentTask, blocked_by: List[str]) -> AgentResult:
        logger.warning(
            f"Skipping {agent_name}: upstream {', '.join(blocked_by)} did not complete"
        )
        return AgentResult(
            agent_name=agent_name,
            task_id=task.id,
            status=AgentStatus.SKIPPED,
            error=f"Blocked by: {', '.join(blocked_by)}",
            blocked_by=blocked_by,
        )

    async def execute_session(
        self, session_id: str, tasks: Mapping[str, AgentTask]
    ) -> SessionReport:
        """
        Run every requested agent in dependency waves.

        Args:
            session_id: Session identifier
            tasks: Task per agent name; the keys select the agents to run

        Returns:
            Session report with one result per requested agent

        Raises:
            UnknownAgentError: If any requested agent is not registered
        """
        groups = self.coordinator.get_parallel_groups(tasks.keys())
        requested: Set[str] = set(tasks)
        report = SessionReport(session_id=session_id, groups=groups)
        semaphore = asyncio.Semaphore(self.config.max_parallelism)

        logger.info(
            f"Executing session {session_id}: {len(requested)} agents in {len(groups)} waves"
        )

        async def bounded_execute(
            agent_name: str, upstream_status: Dict[str, AgentStatus]
        ) -> AgentResult:
            async with semaphore:
                return await self.execute_agent(
                    agent_name, tasks[agent_name], session_id, upstream_status
                )

        for i, group in enumerate(groups):
            runnable = []
            for agent_name in group:
                upstream = self.coordinator.get_ancestors(agent_name) & requested
                upstream_status = {name: report.results[name].status for name in upstream}
                blocked_by = [
                    name
                    for name in self.coordinator.get_execution_order(upstream)
                    if upstream_status[name] != AgentStatus.COMPLETED
                ]
                if blocked_by and self.config.failure_policy == FailurePolicy.SKIP_DEPENDENTS:
                    report.results[agent_name] = self._skipped(
                        agent_name, tasks[agent_name], blocked_by
                    )
                else:
                    runnable.append((agent_name, upstream_status))

            logger.info(
                f"Executing wave {i + 1}/{len(groups)} with {len(runnable)} agents"
            )
            results = await asyncio.gather(
                *[bounded_execute(name, status) for name, status in runnable]
            )
            for result in results:
                report.results[result.agent_name] = result

            failed = sum(1 for r in results if r.status == AgentStatus.FAILED)
            if failed > 0:
                logger.warning(f"Wave {i + 1} had {failed} failures")

        report.completed_at = datetime.now()
        logger.info(
            f"Session {session_id} finished: {len(report.completed)} completed, "
            f"{len(report.failed)} failed, {len(report.skipped)} skipped"
        )
        return report
