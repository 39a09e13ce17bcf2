"""Runtime wiring.

Builds every component from Settings. Tenant configuration, knowledge
content and the audit archive default to in-memory implementations;
hosts pass their own stores to ``build_runtime`` to replace them.
"""

import random
from dataclasses import dataclass

from frontdesk.audit.publisher import AuditStoreEventPublisher, EventPublisher
from frontdesk.audit.store import AuditStore
from frontdesk.audit.stores import InMemoryAuditStore
from frontdesk.config import get_settings
from frontdesk.config.models.interpreter import InterpreterConfig
from frontdesk.config.settings import Settings
from frontdesk.conversation.governance_config import (
    GovernanceConfigLoader,
    GovernanceConfigSource,
    InMemoryGovernanceConfigSource,
)
from frontdesk.conversation.store import SessionStore
from frontdesk.conversation.stores import create_session_store
from frontdesk.errors import ConfigurationError
from frontdesk.knowledge.cascade import KnowledgeCascade
from frontdesk.knowledge.config_store import (
    COMPANY_QNA,
    TEMPLATES,
    TRADE_QNA,
    InMemorySourceConfigStore,
    SourceConfigStore,
)
from frontdesk.knowledge.repository import InMemoryKnowledgeRepository, KnowledgeRepository
from frontdesk.knowledge.sources import InHouseFallbackSource, QnAKnowledgeSource
from frontdesk.knowledge.styling import ResponseStyler
from frontdesk.observability.logging import get_logger, setup_logging
from frontdesk.observability.metrics import setup_metrics
from frontdesk.orchestration.interpreter import FallbackInterpreter
from frontdesk.orchestration.orchestrator import TurnOrchestrator
from frontdesk.providers.llm import LLMProvider, MockLLMProvider

logger = get_logger(__name__)


@dataclass
class Runtime:
    """Wired components of one process."""

    settings: Settings
    session_store: SessionStore
    governance_source: GovernanceConfigSource
    source_config_store: SourceConfigStore
    knowledge_repository: KnowledgeRepository
    audit_store: AuditStore
    publisher: EventPublisher
    cascade: KnowledgeCascade
    orchestrator: TurnOrchestrator


def create_llm_provider(config: InterpreterConfig) -> LLMProvider:
    """Create the interpreter's LLM provider.

    Raises:
        ConfigurationError: For providers this build does not ship
    """
    if config.provider == "mock":
        return MockLLMProvider(default_model=config.model)
    raise ConfigurationError(f"Unknown interpreter provider: {config.provider}")


def build_runtime(
    settings: Settings | None = None,
    *,
    configure_observability: bool = True,
    llm_provider: LLMProvider | None = None,
    session_store: SessionStore | None = None,
    governance_source: GovernanceConfigSource | None = None,
    source_config_store: SourceConfigStore | None = None,
    knowledge_repository: KnowledgeRepository | None = None,
    audit_store: AuditStore | None = None,
    publisher: EventPublisher | None = None,
) -> Runtime:
    """Build a Runtime from settings (the cached global settings by default).

    Args:
        settings: Settings to use
        configure_observability: Set up logging and the metrics endpoint
        llm_provider: Overrides the provider named in settings
        session_store: Overrides the store named in settings
        governance_source: Tenant governance payloads (in-memory if None)
        source_config_store: Per-tenant source descriptors (in-memory if None)
        knowledge_repository: Knowledge content (in-memory if None)
        audit_store: Permanent archive (in-memory if None)
        publisher: Audit event receiver (writes to ``audit_store`` if None)

    Returns:
        Wired Runtime
    """
    settings = settings or get_settings()

    if configure_observability:
        obs = settings.observability
        setup_logging(
            level=obs.logging.level,
            format=obs.logging.format,
            redact_pii=obs.logging.redact_pii,
        )
        setup_metrics(enabled=obs.metrics.enabled, port=obs.metrics.port)

    if session_store is None:
        session_store = create_session_store(settings.storage.session)
    if governance_source is None:
        governance_source = InMemoryGovernanceConfigSource()
    if source_config_store is None:
        source_config_store = InMemorySourceConfigStore()
    repository = knowledge_repository
    if repository is None:
        repository = InMemoryKnowledgeRepository()
    if audit_store is None:
        audit_store = InMemoryAuditStore()
    if publisher is None:
        publisher = AuditStoreEventPublisher(audit_store)

    seed = settings.cascade.style_seed
    cascade = KnowledgeCascade(
        sources=[
            QnAKnowledgeSource(COMPANY_QNA, repository),
            QnAKnowledgeSource(TRADE_QNA, repository),
            QnAKnowledgeSource(TEMPLATES, repository),
            InHouseFallbackSource(repository),
        ],
        config_store=source_config_store,
        config=settings.cascade,
        styler=ResponseStyler(random.Random(seed)),
    )

    interpreter = FallbackInterpreter(
        llm_provider or create_llm_provider(settings.interpreter),
        settings.interpreter,
    )

    orchestrator = TurnOrchestrator(
        session_store=session_store,
        config_loader=GovernanceConfigLoader(governance_source),
        cascade=cascade,
        interpreter=interpreter,
        audit_store=audit_store,
        publisher=publisher,
        session_ttl_seconds=settings.storage.session.ttl_seconds,
        rng=random.Random(seed),
    )

    logger.info(
        "runtime_built",
        app_name=settings.app_name,
        session_backend=settings.storage.session.backend,
        interpreter_provider=settings.interpreter.provider,
    )

    return Runtime(
        settings=settings,
        session_store=session_store,
        governance_source=governance_source,
        source_config_store=source_config_store,
        knowledge_repository=repository,
        audit_store=audit_store,
        publisher=publisher,
        cascade=cascade,
        orchestrator=orchestrator,
    )
