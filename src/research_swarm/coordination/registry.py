"""Agent registry and the default market research agent set."""

import logging
from typing import Dict, Iterable, Iterator, List, Optional

from ..models.agent_models import AgentDescriptor

logger = logging.getLogger(__name__)


class AgentRegistry:
    """Immutable, ordered collection of agent descriptors keyed by name."""

    def __init__(self, descriptors: Iterable[AgentDescriptor]):
        """
        Initialize registry.

        Args:
            descriptors: Agent descriptors in registration order

        Raises:
            ValueError: If two descriptors share a name
        """
        entries: Dict[str, AgentDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.name in entries:
                raise ValueError(f"Duplicate agent name in registry: {descriptor.name}")
            entries[descriptor.name] = descriptor
        self._entries = entries

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __iter__(self) -> Iterator[AgentDescriptor]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, name: str) -> Optional[AgentDescriptor]:
        return self._entries.get(name)

    @property
    def names(self) -> List[str]:
        return list(self._entries)


DEFAULT_AGENT_REGISTRY = AgentRegistry(
    [
        AgentDescriptor(
            name="CompetitorAgent",
            memory_tags=("competitors", "market_analysis", "pricing"),
            output_types=("competitor_analysis", "pricing_data"),
            description="Maps competitors, positioning and pricing",
        ),
        AgentDescriptor(
            name="MarketTrendAgent",
            memory_tags=("trends", "market_analysis", "growth"),
            output_types=("market_trends", "growth_projections"),
            description="Tracks market size, growth and emerging trends",
        ),
        AgentDescriptor(
            name="ConsumerAgent",
            dependencies=("MarketTrendAgent",),
            memory_tags=("consumer", "trends", "behavior"),
            output_types=("consumer_insights", "segments"),
            description="Analyzes consumer segments and behavior",
        ),
        AgentDescriptor(
            name="FinancialAgent",
            dependencies=("CompetitorAgent",),
            memory_tags=("financial", "pricing", "competitors"),
            output_types=("financial_analysis", "unit_economics"),
            description="Evaluates revenue models and unit economics",
        ),
        AgentDescriptor(
            name="TechnicalAgent",
            dependencies=("CompetitorAgent", "MarketTrendAgent"),
            memory_tags=("technical", "competitors", "trends"),
            output_types=("technical_assessment", "technology_stack"),
            description="Assesses technology landscape and feasibility",
        ),
        AgentDescriptor(
            name="RegulatoryAgent",
            dependencies=("MarketTrendAgent",),
            memory_tags=("regulatory", "trends", "compliance"),
            output_types=("regulatory_analysis", "compliance_requirements"),
            description="Reviews regulation and compliance exposure",
        ),
    ]
)


def default_registry() -> AgentRegistry:
    """The built-in market research agent registry."""
    return DEFAULT_AGENT_REGISTRY
