"""Tests for context snapshots and compression."""

import pytest

from research_swarm.config import MemoryConfig
from research_swarm.exceptions import SerializationError
from research_swarm.memory import ContextArchiver, MemoryStore
from research_swarm.models import (
    AgentCoordination,
    ArchivedCollection,
    CompressionStrategy,
    MemoryKind,
    MemoryQuery,
    SessionState,
    Todo,
    TodoStatus,
)


@pytest.fixture
def store():
    """Memory store without enrichment."""
    return MemoryStore(config=MemoryConfig(enrichment_enabled=False))


@pytest.fixture
def archiver(store):
    """Archiver over the store."""
    return ContextArchiver(store)


def make_state(session_id="session_1", evidence=0, completed=0, pending=0, messages=0):
    """Build a session state with the given collection sizes."""
    todos = [Todo(content=f"done {i}", status=TodoStatus.COMPLETED) for i in range(completed)]
    todos += [Todo(content=f"open {i}") for i in range(pending)]
    return SessionState(
        session_id=session_id,
        topic="e-bike subscriptions",
        todos=todos,
        evidence_collection=[f"evidence {i}" for i in range(evidence)],
        agent_coordination=AgentCoordination(
            active_agents=["CompetitorAgent"],
            agent_communication=[{"message": i} for i in range(messages)],
        ),
    )


@pytest.mark.asyncio
class TestSnapshot:
    """Test snapshot and restore."""

    async def test_snapshot_stored_as_session_memory(self, archiver, store):
        """Test snapshots are high-relevance expiring session memories."""
        memory_id = await archiver.snapshot(make_state(completed=2), insights=["seasonal"])
        item = await store.get(memory_id)

        assert item.kind == MemoryKind.SESSION
        assert item.relevance_score == 0.9
        assert item.tags == ["context", "snapshot", "session"]
        assert item.source == "context_manager"
        assert item.session_id == "session_1"
        assert item.expires_at is not None
        assert item.content["completed_tasks"] == ["done 0", "done 1"]
        assert item.content["insights"] == ["seasonal"]

    async def test_restore_latest(self, archiver):
        """Test the most recent snapshot for the session is returned."""
        await archiver.snapshot(make_state(), next_actions=["first"])
        await archiver.snapshot(make_state(session_id="other"), next_actions=["other"])
        await archiver.snapshot(make_state(), next_actions=["second"])

        snapshot = archiver.restore_latest("session_1")

        assert snapshot.next_actions == ["second"]
        assert snapshot.active_agents == ["CompetitorAgent"]

    async def test_unserializable_snapshot_not_recorded(self, archiver, store):
        """Test a snapshot that cannot be serialized leaves no trace."""
        state = SessionState(session_id="session_1", findings={"handle": object()})

        with pytest.raises(SerializationError):
            await archiver.snapshot(state)

        assert archiver.restore_latest("session_1") is None
        assert len(store) == 0

    async def test_history_snapshot_matches_stored_memory(self, archiver, store):
        """Test the history entry carries the same JSON state as the memory."""
        memory_id = await archiver.snapshot(make_state(completed=1, messages=2))

        item = await store.get(memory_id)
        snapshot = archiver.restore_latest("session_1")

        assert snapshot.state == item.content["state"]
        assert snapshot.state["todos"][0]["status"] == "completed"

    async def test_restore_latest_unknown_session(self, archiver):
        """Test restoring an unknown session returns None."""
        assert archiver.restore_latest("missing") is None


@pytest.mark.asyncio
class TestCompress:
    """Test compression and archive restore."""

    async def test_conservative_evidence_scenario(self, archiver):
        """Test 15 evidence items keep the last 10 and archive the first 5."""
        state = make_state(evidence=15)

        compressed = await archiver.compress(state, CompressionStrategy.CONSERVATIVE)
        restored = await archiver.restore("session_1", ArchivedCollection.EVIDENCE)

        assert compressed.evidence_collection == [f"evidence {i}" for i in range(5, 15)]
        assert restored == [f"evidence {i}" for i in range(5)]

    async def test_input_not_mutated(self, archiver):
        """Test compression returns a copy."""
        state = make_state(evidence=12, completed=3, messages=25)

        await archiver.compress(state, CompressionStrategy.AGGRESSIVE)

        assert len(state.evidence_collection) == 12
        assert len(state.todos) == 3
        assert len(state.agent_coordination.agent_communication) == 25

    async def test_nothing_archived_under_thresholds(self, archiver, store):
        """Test small states compress to themselves."""
        state = make_state(evidence=3, completed=2, messages=5)

        compressed = await archiver.compress(state)

        assert compressed == state
        assert len(store) == 0

    async def test_aggressive_archives_all_completed(self, archiver):
        """Test aggressive compression archives every completed todo."""
        state = make_state(completed=3, pending=2)

        compressed = await archiver.compress(state, "aggressive")
        restored = await archiver.restore("session_1", "tasks")

        assert [t.content for t in compressed.todos] == ["open 0", "open 1"]
        assert [t["content"] for t in restored] == ["done 0", "done 1", "done 2"]

    async def test_conservative_keeps_recent_completed(self, archiver):
        """Test conservative compression keeps the 20 most recent completed todos."""
        state = make_state(completed=25, pending=1)

        compressed = await archiver.compress(state, CompressionStrategy.CONSERVATIVE)

        remaining = [t.content for t in compressed.todos]
        assert remaining == [f"done {i}" for i in range(5, 25)] + ["open 0"]

    async def test_communication_archived(self, archiver, store):
        """Test agent messages beyond 20 are archived with low relevance."""
        state = make_state(messages=23)

        compressed = await archiver.compress(state)
        restored = await archiver.restore("session_1", ArchivedCollection.COMMUNICATION)

        assert len(compressed.agent_coordination.agent_communication) == 20
        assert restored == [{"message": i} for i in range(3)]

        archived = await store.retrieve(
            MemoryQuery(tags=["agent_communication"], include_expired=True)
        )
        assert archived[0].kind == MemoryKind.SESSION
        assert archived[0].relevance_score == 0.4
        assert archived[0].tags == ["archived", "agent_communication"]

    async def test_restore_keeps_collections_apart(self, archiver):
        """Test restoring one collection never returns another's archives."""
        state = make_state(evidence=11, completed=1, messages=21)

        await archiver.compress(state, CompressionStrategy.AGGRESSIVE)

        assert await archiver.restore("session_1", "evidence") == ["evidence 0"]
        assert await archiver.restore("session_1", "communication") == [{"message": 0}]
        assert await archiver.restore("other", "evidence") == []

    async def test_failed_compression_archives_nothing(self, archiver, store):
        """Test a collection that cannot be serialized aborts the whole compression."""
        state = make_state(evidence=15)
        state.agent_coordination.agent_communication = [
            {"handle": object()} for _ in range(25)
        ]

        with pytest.raises(SerializationError):
            await archiver.compress(state)

        assert len(store) == 0
        assert await archiver.restore("session_1", ArchivedCollection.EVIDENCE) == []

    async def test_repeated_compression_appends(self, archiver):
        """Test archives accumulate oldest first across compressions."""
        state = make_state(evidence=12)
        compressed = await archiver.compress(state)

        compressed.evidence_collection += ["evidence 12", "evidence 13"]
        await archiver.compress(compressed)

        restored = await archiver.restore("session_1", ArchivedCollection.EVIDENCE)
        assert restored == [f"evidence {i}" for i in range(4)]
