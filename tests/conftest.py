"""Shared test fixtures for the Frontdesk test suite."""

import os
import random
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest

from frontdesk.audit import InMemoryAuditStore, InMemoryEventPublisher
from frontdesk.conversation.governance_config import (
    GovernanceConfigLoader,
    InMemoryGovernanceConfigSource,
)
from frontdesk.conversation.models import CallIdentity, GovernanceConfig
from frontdesk.conversation.state import ConversationState
from frontdesk.conversation.stores import InMemorySessionStore
from frontdesk.knowledge import (
    InMemoryKnowledgeRepository,
    InMemorySourceConfigStore,
    KnowledgeCascade,
    ResponseStyler,
)
from frontdesk.knowledge.config_store import COMPANY_QNA, TEMPLATES, TRADE_QNA
from frontdesk.knowledge.sources import InHouseFallbackSource, QnAKnowledgeSource
from frontdesk.orchestration import FallbackInterpreter, TurnOrchestrator
from frontdesk.providers.llm import MockLLMProvider

TENANT_ID = "tenant-acme"
CALL_ID = "call-0001"


@pytest.fixture
def test_config_dir(tmp_path: Path) -> Path:
    """Create a temporary config directory for testing."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def mock_toml_files(test_config_dir: Path) -> Callable[[dict[str, str]], None]:
    """Factory fixture to create TOML files in the test config directory.

    Usage:
        def test_something(mock_toml_files):
            mock_toml_files({
                "default.toml": "app_name = 'test'",
                "development.toml": "debug = true",
            })
    """

    def _create_toml_files(files: dict[str, str]) -> None:
        for filename, content in files.items():
            toml_file = test_config_dir / filename
            toml_file.write_text(content)

    return _create_toml_files


class EnvOverrideContext:
    """Context manager for temporarily setting environment variables."""

    def __init__(self, overrides: dict[str, str]) -> None:
        self.overrides = overrides
        self.original_env: dict[str, str | None] = {}

    def __enter__(self) -> None:
        for key, value in self.overrides.items():
            self.original_env[key] = os.environ.get(key)
            os.environ[key] = value

    def __exit__(self, *args: Any) -> None:
        for key in self.overrides:
            if self.original_env[key] is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = self.original_env[key]


@pytest.fixture
def env_override() -> Generator[Callable[[dict[str, str]], EnvOverrideContext], None, None]:
    """Context manager for temporarily setting environment variables.

    Usage:
        def test_something(env_override):
            with env_override({"FRONTDESK_DEBUG": "true"}):
                # test code here
    """

    def _env_override(overrides: dict[str, str]) -> EnvOverrideContext:
        return EnvOverrideContext(overrides)

    yield _env_override


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None, None, None]:
    """Clear the settings cache before and after each test.

    This ensures test isolation for configuration tests.
    """
    from frontdesk.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# ----------------------------------------------------------------------
# Conversation fixtures
# ----------------------------------------------------------------------


@pytest.fixture
def identity() -> CallIdentity:
    return CallIdentity(
        call_id=CALL_ID,
        tenant_id=TENANT_ID,
        caller_number="+15551234567",
        callee_number="+15557654321",
    )


@pytest.fixture
def governance_config() -> GovernanceConfig:
    return GovernanceConfig(version="test-v1")


@pytest.fixture
def session_store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def state(
    identity: CallIdentity,
    governance_config: GovernanceConfig,
    session_store: InMemorySessionStore,
) -> ConversationState:
    return ConversationState.create(identity, config=governance_config, store=session_store)


# ----------------------------------------------------------------------
# Knowledge fixtures
# ----------------------------------------------------------------------


@pytest.fixture
def knowledge_repository() -> InMemoryKnowledgeRepository:
    return InMemoryKnowledgeRepository()


@pytest.fixture
def source_config_store() -> InMemorySourceConfigStore:
    return InMemorySourceConfigStore()


@pytest.fixture
def cascade(
    knowledge_repository: InMemoryKnowledgeRepository,
    source_config_store: InMemorySourceConfigStore,
) -> KnowledgeCascade:
    return KnowledgeCascade(
        sources=[
            QnAKnowledgeSource(COMPANY_QNA, knowledge_repository),
            QnAKnowledgeSource(TRADE_QNA, knowledge_repository),
            QnAKnowledgeSource(TEMPLATES, knowledge_repository),
            InHouseFallbackSource(knowledge_repository),
        ],
        config_store=source_config_store,
        styler=ResponseStyler(random.Random(7)),
    )


# ----------------------------------------------------------------------
# Orchestration fixtures
# ----------------------------------------------------------------------


@pytest.fixture
def governance_source() -> InMemoryGovernanceConfigSource:
    return InMemoryGovernanceConfigSource()


@pytest.fixture
def llm_provider() -> MockLLMProvider:
    return MockLLMProvider(default_response="Sure, I can help with that.")


@pytest.fixture
def audit_store() -> InMemoryAuditStore:
    return InMemoryAuditStore()


@pytest.fixture
def publisher() -> InMemoryEventPublisher:
    return InMemoryEventPublisher()


@pytest.fixture
def orchestrator(
    session_store: InMemorySessionStore,
    governance_source: InMemoryGovernanceConfigSource,
    cascade: KnowledgeCascade,
    llm_provider: MockLLMProvider,
    audit_store: InMemoryAuditStore,
    publisher: InMemoryEventPublisher,
) -> TurnOrchestrator:
    return TurnOrchestrator(
        session_store=session_store,
        config_loader=GovernanceConfigLoader(governance_source),
        cascade=cascade,
        interpreter=FallbackInterpreter(llm_provider),
        audit_store=audit_store,
        publisher=publisher,
        rng=random.Random(7),
    )
