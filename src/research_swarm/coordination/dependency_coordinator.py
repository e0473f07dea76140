"""Agent dependency graph with cycle detection and wave planning."""

import logging
from enum import Enum
from graphlib import TopologicalSorter
from typing import Dict, Iterable, Iterator, List, Set, Union

from ..exceptions import CyclicDependencyError, UnknownAgentError
from .registry import AgentRegistry

logger = logging.getLogger(__name__)


class VisitState(Enum):
    """DFS node colouring."""

    UNVISITED = "unvisited"
    IN_PROGRESS = "in_progress"
    DONE = "done"


class DependencyCoordinator:
    """
    Resolves agent dependencies into an execution order and parallel waves.

    The graph is validated once at construction and read-only afterwards.
    Dependencies naming agents missing from the registry are ignored.
    """

    def __init__(self, registry: AgentRegistry):
        """
        Build and validate the dependency graph.

        Args:
            registry: Agent registry

        Raises:
            CyclicDependencyError: If the registry contains a cycle
        """
        self.registry = registry
        self.graph: Dict[str, List[str]] = {}  # agent -> dependencies
        self.reverse_graph: Dict[str, List[str]] = {name: [] for name in registry.names}

        for descriptor in registry:
            dependencies = []
            for dependency in descriptor.dependencies:
                if dependency not in registry:
                    logger.warning(
                        f"{descriptor.name} depends on unregistered agent "
                        f"{dependency}, ignoring"
                    )
                    continue
                if dependency not in dependencies:
                    dependencies.append(dependency)
                    self.reverse_graph[dependency].append(descriptor.name)
            self.graph[descriptor.name] = dependencies

        self._order = self._topological_order()
        self._position = {name: i for i, name in enumerate(self._order)}
        self._ancestors = {name: self._collect_ancestors(name) for name in self._order}

        logger.info(f"Dependency graph validated: {len(self._order)} agents")

    def _topological_order(self) -> List[str]:
        """
        Depth-first topological sort in registry order.

        Uses an explicit stack, so chain length is not bounded by the
        interpreter recursion limit.

        Raises:
            CyclicDependencyError: On reaching a node still in progress
        """
        state = {name: VisitState.UNVISITED for name in self.graph}
        order: List[str] = []

        for root in self.graph:
            if state[root] != VisitState.UNVISITED:
                continue

            state[root] = VisitState.IN_PROGRESS
            path = [root]
            pending: List[Iterator[str]] = [iter(self.graph[root])]

            while pending:
                dependency = next(pending[-1], None)
                if dependency is None:
                    pending.pop()
                    finished = path.pop()
                    state[finished] = VisitState.DONE
                    order.append(finished)
                    continue
                if state[dependency] == VisitState.DONE:
                    continue
                if state[dependency] == VisitState.IN_PROGRESS:
                    cycle = path[path.index(dependency):] + [dependency]
                    logger.error(f"Circular dependency detected: {' -> '.join(cycle)}")
                    raise CyclicDependencyError(cycle)

                state[dependency] = VisitState.IN_PROGRESS
                path.append(dependency)
                pending.append(iter(self.graph[dependency]))

        return order

    def _collect_ancestors(self, name: str) -> Set[str]:
        ancestors: Set[str] = set()
        stack = list(self.graph[name])
        while stack:
            current = stack.pop()
            if current not in ancestors:
                ancestors.add(current)
                stack.extend(self.graph[current])
        return ancestors

    def _validate(self, names: Iterable[str]) -> Set[str]:
        requested = set()
        for name in names:
            if name not in self.graph:
                raise UnknownAgentError(name)
            requested.add(name)
        return requested

    def get_execution_order(self, names: Union[Iterable[str], None] = None) -> List[str]:
        """
        Dependency-respecting order of the requested agents.

        Args:
            names: Agents to order (all registered agents when omitted)

        Returns:
            Agent names, every dependency before its dependents

        Raises:
            UnknownAgentError: If a name is not registered
        """
        if names is None:
            return list(self._order)
        requested = self._validate(names)
        return [name for name in self._order if name in requested]

    def get_parallel_groups(self, names: Union[Iterable[str], None] = None) -> List[List[str]]:
        """
        Batches of agents that can run concurrently.

        Each agent lands in the earliest batch after all of its requested
        ancestors, including ancestors reached through agents that were not
        requested.

        Args:
            names: Agents to group (all registered agents when omitted)

        Returns:
            Ordered list of batches

        Raises:
            UnknownAgentError: If a name is not registered
        """
        requested = set(self._order) if names is None else self._validate(names)

        sorter = TopologicalSorter(
            {name: self._ancestors[name] & requested for name in requested}
        )
        sorter.prepare()

        groups = []
        while sorter.is_active():
            ready = sorted(sorter.get_ready(), key=self._position.__getitem__)
            groups.append(ready)
            sorter.done(*ready)

        logger.debug(f"Planned {len(groups)} waves for {len(requested)} agents")
        return groups

    def get_dependencies(self, name: str) -> List[str]:
        """Direct registered dependencies of an agent."""
        if name not in self.graph:
            raise UnknownAgentError(name)
        return list(self.graph[name])

    def get_dependents(self, name: str) -> List[str]:
        """Agents that directly depend on an agent."""
        if name not in self.graph:
            raise UnknownAgentError(name)
        return list(self.reverse_graph[name])

    def get_ancestors(self, name: str) -> Set[str]:
        """Every agent an agent transitively depends on."""
        if name not in self.graph:
            raise UnknownAgentError(name)
        return set(self._ancestors[name])

    def visualize(self) -> str:
        """
        Text rendering of the graph.

        Returns:
            One line per agent in execution order, e.g.
            "TechnicalAgent <- CompetitorAgent, MarketTrendAgent"
        """
        lines = []
        for name in self._order:
            dependencies = self.graph[name]
            lines.append(
                f"{name} <- {', '.join(dependencies)}" if dependencies else name
            )
        return "\n".join(lines)


def build_coordinator(registry: AgentRegistry) -> DependencyCoordinator:
    """Build a validated coordinator for a registry."""
    return DependencyCoordinator(registry)
