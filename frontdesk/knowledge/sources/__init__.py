"""Knowledge source implementations."""

from frontdesk.knowledge.sources.base import KnowledgeSource
from frontdesk.knowledge.sources.fallback import InHouseFallbackSource
from frontdesk.knowledge.sources.qna import QnAKnowledgeSource

__all__ = ["InHouseFallbackSource", "KnowledgeSource", "QnAKnowledgeSource"]
