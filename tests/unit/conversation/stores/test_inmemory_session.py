"""Tests for InMemorySessionStore."""

import pytest

from frontdesk.conversation.models import CallSession, FactSource
from frontdesk.conversation.stores import InMemorySessionStore
from tests.factories import SessionFactory


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> InMemorySessionStore:
    """Create a fresh store for each test."""
    return InMemorySessionStore(default_ttl_seconds=300, clock=clock)


@pytest.fixture
def sample_session() -> CallSession:
    return SessionFactory.session()


class TestSessionOperations:
    """Tests for session CRUD operations."""

    @pytest.mark.asyncio
    async def test_save_and_get_session(self, store, sample_session):
        """Should save and retrieve a session."""
        call_id = await store.save(sample_session)
        retrieved = await store.get(call_id)

        assert retrieved is not None
        assert retrieved.call_id == sample_session.call_id
        assert retrieved.tenant_id == sample_session.tenant_id
        assert retrieved.config.version == sample_session.config.version

    @pytest.mark.asyncio
    async def test_get_nonexistent_returns_none(self, store):
        """Should return None for a call that was never saved."""
        assert await store.get("call-missing") is None

    @pytest.mark.asyncio
    async def test_retrieved_session_is_a_copy(self, store, sample_session):
        """Mutating a retrieved session does not alter the stored one."""
        await store.save(sample_session)
        retrieved = await store.get(sample_session.call_id)
        retrieved.template_id = "changed"

        again = await store.get(sample_session.call_id)
        assert again.template_id is None

    @pytest.mark.asyncio
    async def test_facts_round_trip(self, store):
        """Facts keep their value, source and confidence."""
        state = SessionFactory.state()
        state.commit_fact("name", "Jane", FactSource.SELF_IDENTIFIED, 0.9)
        await store.save(state.session)

        retrieved = await store.get(state.call_id)
        fact = retrieved.facts["name"]
        assert fact.value == "Jane"
        assert fact.source == FactSource.SELF_IDENTIFIED
        assert fact.confidence == 0.9

    @pytest.mark.asyncio
    async def test_delete_session(self, store, sample_session):
        """Should delete a session once."""
        await store.save(sample_session)
        assert await store.delete(sample_session.call_id) is True
        assert await store.get(sample_session.call_id) is None
        assert await store.delete(sample_session.call_id) is False


class TestSessionExpiry:
    """Tests for TTL handling."""

    @pytest.mark.asyncio
    async def test_expires_after_ttl(self, store, clock, sample_session):
        """Session is gone once the TTL has elapsed."""
        await store.save(sample_session)
        clock.now += 299
        assert await store.get(sample_session.call_id) is not None
        clock.now += 1
        assert await store.get(sample_session.call_id) is None

    @pytest.mark.asyncio
    async def test_save_refreshes_ttl(self, store, clock, sample_session):
        """Every save restarts the TTL."""
        await store.save(sample_session)
        clock.now += 200
        await store.save(sample_session)
        clock.now += 200
        assert await store.get(sample_session.call_id) is not None

    @pytest.mark.asyncio
    async def test_explicit_ttl(self, store, clock, sample_session):
        """A per-save TTL overrides the default."""
        await store.save(sample_session, ttl_seconds=10)
        clock.now += 10
        assert await store.get(sample_session.call_id) is None
