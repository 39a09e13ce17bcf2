"""Test factories for creating test data."""

from tests.factories.conversation import (
    GovernanceConfigFactory,
    SessionFactory,
    TurnInputFactory,
)
from tests.factories.knowledge import (
    KnowledgeEntryFactory,
    SourceDescriptorFactory,
    StubSource,
)

__all__ = [
    "GovernanceConfigFactory",
    "KnowledgeEntryFactory",
    "SessionFactory",
    "SourceDescriptorFactory",
    "StubSource",
    "TurnInputFactory",
]
