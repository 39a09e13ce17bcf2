"""Tests for runtime wiring."""

import pytest

from frontdesk.audit import AuditStoreEventPublisher, InMemoryAuditStore
from frontdesk.bootstrap import build_runtime, create_llm_provider
from frontdesk.config.models.interpreter import InterpreterConfig
from frontdesk.config.settings import Settings
from frontdesk.conversation.governance_config import InMemoryGovernanceConfigSource
from frontdesk.conversation.stores import InMemorySessionStore
from frontdesk.errors import ConfigurationError
from frontdesk.knowledge import CascadeOutcome
from frontdesk.knowledge.config_store import COMPANY_QNA
from frontdesk.knowledge.repository import InMemoryKnowledgeRepository
from frontdesk.providers.llm import MockLLMProvider
from tests.factories import KnowledgeEntryFactory, TurnInputFactory


class TestCreateLLMProvider:
    """Tests for create_llm_provider."""

    def test_mock_provider(self) -> None:
        provider = create_llm_provider(InterpreterConfig(model="small"))
        assert isinstance(provider, MockLLMProvider)

    def test_unknown_provider(self) -> None:
        with pytest.raises(ConfigurationError, match="Unknown interpreter provider"):
            create_llm_provider(InterpreterConfig(provider="acme-llm"))


class TestBuildRuntime:
    """Tests for build_runtime."""

    def test_default_components(self) -> None:
        runtime = build_runtime(Settings(), configure_observability=False)

        assert isinstance(runtime.session_store, InMemorySessionStore)
        assert isinstance(runtime.audit_store, InMemoryAuditStore)
        assert isinstance(runtime.publisher, AuditStoreEventPublisher)

    def test_unknown_provider_rejected(self) -> None:
        settings = Settings(interpreter=InterpreterConfig(provider="acme-llm"))
        with pytest.raises(ConfigurationError):
            build_runtime(settings, configure_observability=False)

    @pytest.mark.asyncio
    async def test_wired_turn_and_archive(self) -> None:
        runtime = build_runtime(Settings(), configure_observability=False)
        orchestrator = runtime.orchestrator

        result = await orchestrator.process_turn(TurnInputFactory.create("schedule appointment"))
        outcome = await orchestrator.end_call("call-0001", "tenant-acme", "resolved")

        assert result.cascade_outcome == CascadeOutcome.MATCHED
        assert outcome is not None
        assert await runtime.audit_store.get_archived_session("call-0001") is not None
        events = await runtime.audit_store.list_events_by_call("call-0001")
        assert events

    def test_supplied_stores_used(self) -> None:
        audit_store = InMemoryAuditStore()
        session_store = InMemorySessionStore()
        governance_source = InMemoryGovernanceConfigSource()

        runtime = build_runtime(
            Settings(),
            configure_observability=False,
            session_store=session_store,
            governance_source=governance_source,
            audit_store=audit_store,
        )

        assert runtime.audit_store is audit_store
        assert runtime.session_store is session_store
        assert runtime.governance_source is governance_source
        assert isinstance(runtime.publisher, AuditStoreEventPublisher)

    @pytest.mark.asyncio
    async def test_supplied_stores_reach_the_turn(self) -> None:
        """Stores passed in are the ones the orchestrator and cascade read and write."""
        audit_store = InMemoryAuditStore()
        repository = InMemoryKnowledgeRepository()
        entry = KnowledgeEntryFactory.create()
        repository.set_entries("tenant-acme", COMPANY_QNA, [entry])
        runtime = build_runtime(
            Settings(),
            configure_observability=False,
            knowledge_repository=repository,
            audit_store=audit_store,
        )

        result = await runtime.orchestrator.process_turn(TurnInputFactory.create())
        await runtime.orchestrator.end_call("call-0001", "tenant-acme", "resolved")

        assert result.response == entry.answer
        assert await audit_store.get_archived_session("call-0001") is not None
        assert await audit_store.list_events_by_call("call-0001")
