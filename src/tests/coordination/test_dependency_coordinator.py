"""Tests for agent dependency coordination."""

import pytest

from research_swarm.coordination import (
    AgentRegistry,
    DependencyCoordinator,
    build_coordinator,
    default_registry,
)
from research_swarm.exceptions import CyclicDependencyError, UnknownAgentError
from research_swarm.models import AgentDescriptor


def registry_of(graph):
    """Registry from a {name: [dependencies]} mapping."""
    return AgentRegistry(
        AgentDescriptor(name=name, dependencies=tuple(deps)) for name, deps in graph.items()
    )


FIVE_AGENTS = {
    "Competitor": [],
    "MarketTrend": [],
    "Financial": ["Competitor"],
    "Consumer": ["MarketTrend"],
    "Technical": ["Competitor", "MarketTrend"],
}


def test_parallel_groups_scenario():
    """Test the five-agent registry groups into two waves."""
    coordinator = build_coordinator(registry_of(FIVE_AGENTS))

    groups = coordinator.get_parallel_groups(list(FIVE_AGENTS))

    assert len(groups) == 2
    assert set(groups[0]) == {"Competitor", "MarketTrend"}
    assert set(groups[1]) == {"Financial", "Consumer", "Technical"}


def test_two_node_cycle_rejected():
    """Test A <-> B fails construction naming the cycle."""
    with pytest.raises(CyclicDependencyError) as exc_info:
        build_coordinator(registry_of({"A": ["B"], "B": ["A"]}))

    assert exc_info.value.cycle == ["A", "B", "A"]
    assert "A -> B -> A" in str(exc_info.value)


def test_longer_cycle_path():
    """Test the reported cycle excludes the acyclic prefix."""
    with pytest.raises(CyclicDependencyError) as exc_info:
        build_coordinator(
            registry_of({"Start": ["X"], "X": ["Y"], "Y": ["Z"], "Z": ["X"]})
        )

    assert exc_info.value.cycle == ["X", "Y", "Z", "X"]


def test_self_dependency_rejected():
    """Test an agent depending on itself is a cycle."""
    with pytest.raises(CyclicDependencyError):
        build_coordinator(registry_of({"A": ["A"]}))


def test_execution_order_respects_edges():
    """Test every dependency precedes its dependents."""
    coordinator = build_coordinator(default_registry())

    order = coordinator.get_execution_order()
    position = {name: i for i, name in enumerate(order)}

    for descriptor in default_registry():
        for dependency in descriptor.dependencies:
            assert position[dependency] < position[descriptor.name]


def test_execution_order_filtered():
    """Test the order is restricted to requested names."""
    coordinator = build_coordinator(registry_of(FIVE_AGENTS))

    assert coordinator.get_execution_order(["Financial", "Competitor"]) == [
        "Competitor",
        "Financial",
    ]


def test_groups_respect_transitive_ancestors():
    """Test ancestors reached through unrequested agents still order the waves."""
    coordinator = build_coordinator(registry_of({"A": [], "B": ["A"], "C": ["B"]}))

    assert coordinator.get_parallel_groups(["A", "C"]) == [["A"], ["C"]]
    assert coordinator.get_parallel_groups(["C"]) == [["C"]]


def test_groups_are_parallel_safe():
    """Test no batch contains a pair with a dependency between them."""
    coordinator = build_coordinator(default_registry())

    for group in coordinator.get_parallel_groups():
        for name in group:
            assert not coordinator.get_ancestors(name) & set(group)


def test_default_registry_waves():
    """Test the built-in registry splits into two waves."""
    groups = build_coordinator(default_registry()).get_parallel_groups()

    assert groups == [
        ["CompetitorAgent", "MarketTrendAgent"],
        ["ConsumerAgent", "FinancialAgent", "TechnicalAgent", "RegulatoryAgent"],
    ]


def test_empty_request():
    """Test grouping nothing yields no waves."""
    assert build_coordinator(registry_of(FIVE_AGENTS)).get_parallel_groups([]) == []


def test_unknown_names_rejected():
    """Test unknown requested names raise UnknownAgentError."""
    coordinator = build_coordinator(registry_of(FIVE_AGENTS))

    with pytest.raises(UnknownAgentError):
        coordinator.get_parallel_groups(["Competitor", "Ghost"])
    with pytest.raises(UnknownAgentError):
        coordinator.get_execution_order(["Ghost"])
    with pytest.raises(KeyError):
        coordinator.get_dependencies("Ghost")


def test_unregistered_dependency_ignored():
    """Test dependencies on unregistered agents are dropped."""
    coordinator = DependencyCoordinator(registry_of({"A": ["Missing"], "B": ["A"]}))

    assert coordinator.get_dependencies("A") == []
    assert coordinator.get_parallel_groups() == [["A"], ["B"]]


def test_dependents_and_visualize():
    """Test reverse edges and the text rendering."""
    coordinator = build_coordinator(registry_of(FIVE_AGENTS))

    assert set(coordinator.get_dependents("MarketTrend")) == {"Consumer", "Technical"}
    assert "Technical <- Competitor, MarketTrend" in coordinator.visualize().splitlines()


def test_duplicate_registry_names_rejected():
    """Test the registry refuses duplicate agent names."""
    with pytest.raises(ValueError):
        AgentRegistry([AgentDescriptor(name="A"), AgentDescriptor(name="A")])


def test_long_chain_beyond_recursion_limit():
    """Test very long dependency chains order without hitting the recursion limit."""
    names = [f"agent_{i}" for i in range(1500)]
    graph = {name: [names[i - 1]] if i else [] for i, name in enumerate(names)}

    # Register the deepest agent first so the search descends the whole chain
    coordinator = build_coordinator(registry_of(dict(reversed(list(graph.items())))))

    assert coordinator.get_execution_order() == names


def test_long_cycle_detected():
    """Test a cycle through a long chain is still reported."""
    names = [f"agent_{i}" for i in range(1500)]
    graph = {name: [names[i - 1]] for i, name in enumerate(names)}

    with pytest.raises(CyclicDependencyError) as exc_info:
        build_coordinator(registry_of(graph))

    assert len(exc_info.value.cycle) == 1501
    assert exc_info.value.cycle[0] == exc_info.value.cycle[-1]
