"""Tests for pattern learning."""

import pytest

from research_swarm.config import MemoryConfig
from research_swarm.memory import MemoryStore, PatternLearner, pattern_key
from research_swarm.models import LearningPattern, MemoryKind, MemoryQuery


@pytest.fixture
def store():
    """Memory store without enrichment."""
    return MemoryStore(config=MemoryConfig(enrichment_enabled=False))


@pytest.fixture
def learner(store):
    """Pattern learner over the store."""
    return PatternLearner(store)


def test_pattern_key_normalization():
    """Test keys are lower-cased with non-alphanumerics replaced."""
    assert pattern_key("Analyze Pricing!", "EU market") == "analyze_pricing__eu_market"


@pytest.mark.asyncio
class TestRecord:
    """Test outcome recording."""

    async def test_success_rate_arithmetic(self, learner):
        """Test F, F, S gives 3 occurrences and a one-third success rate."""
        for success in (False, False, True):
            pattern = await learner.record("analyze pricing", "saas market", success)

        assert pattern.occurrences == 3
        assert pattern.success_rate == pytest.approx(1 / 3)

    async def test_keys_group_equivalent_descriptions(self, learner):
        """Test descriptions differing only in case and punctuation share a pattern."""
        await learner.record("Analyze pricing", "SaaS market", True)
        pattern = await learner.record("analyze-pricing", "saas market", False)

        assert pattern.occurrences == 2
        assert pattern.success_rate == pytest.approx(0.5)
        assert len(await learner.patterns()) == 1

    async def test_success_stored_as_memory(self, learner, store):
        """Test successes become pattern memories and failures do not."""
        await learner.record("analyze pricing", "saas market", False)
        assert len(store) == 0

        await learner.record("analyze pricing", "saas market", True, code_context="pricing.py")

        memories = await store.retrieve(MemoryQuery(kinds=[MemoryKind.PATTERN]))
        assert len(memories) == 1
        memory = memories[0]
        assert memory.relevance_score == 0.8
        assert memory.tags == ["pattern", "success", "learning"]
        assert memory.source == "pattern_learning"
        assert memory.content["pattern"] == "analyze pricing"
        assert memory.content["code_context"] == "pricing.py"

    async def test_get_pattern(self, learner):
        """Test looking up a recorded pattern."""
        await learner.record("analyze pricing", "saas market", True, code_context="a.py")

        pattern = await learner.get_pattern("Analyze Pricing", "SaaS Market")

        assert pattern.contexts == ["saas market"]
        assert pattern.code_contexts == ["a.py"]
        assert await learner.get_pattern("unknown", "context") is None


@pytest.mark.asyncio
class TestRecommend:
    """Test recommendations."""

    async def record_many(self, learner, description, context, outcomes):
        for success in outcomes:
            await learner.record(description, context, success)

    async def test_recommends_reliable_similar_patterns(self, learner):
        """Test reliable patterns in similar contexts are recommended."""
        await self.record_many(
            learner, "check competitor pricing", "saas pricing market", [True] * 3
        )

        recommendations = await learner.recommend("saas pricing market")

        assert recommendations == ["Based on 3 successful cases: check competitor pricing"]

    async def test_requires_three_occurrences(self, learner):
        """Test two successes are not enough."""
        await self.record_many(learner, "check pricing", "saas market", [True, True])

        assert await learner.recommend("saas market") == []

    async def test_requires_high_success_rate(self, learner):
        """Test a 2/3 success rate is below the threshold."""
        await self.record_many(learner, "check pricing", "saas market", [True, True, False])

        assert await learner.recommend("saas market") == []

    async def test_requires_similar_context(self, learner):
        """Test dissimilar contexts do not match."""
        await self.record_many(learner, "check pricing", "saas market", [True] * 3)

        assert await learner.recommend("hardware supply chain") == []

    async def test_ordered_by_confidence_and_capped(self, learner):
        """Test ordering by success rate times occurrences, at most five."""
        for i in range(7):
            await self.record_many(learner, f"step {i}", "saas market", [True] * (3 + i))

        recommendations = await learner.recommend("saas market")

        assert len(recommendations) == 5
        assert recommendations[0] == "Based on 9 successful cases: step 6"
        assert recommendations[-1] == "Based on 5 successful cases: step 2"

    async def test_load_patterns(self, learner):
        """Test loaded patterns drive recommendations."""
        loaded = await learner.load_patterns(
            [
                LearningPattern(
                    pattern_id=pattern_key("reuse survey", "consumer survey"),
                    description="reuse survey",
                    occurrences=4,
                    success_rate=1.0,
                    contexts=["consumer survey"],
                )
            ]
        )

        assert loaded == 1
        assert await learner.recommend("consumer survey") == [
            "Based on 4 successful cases: reuse survey"
        ]
