"""Match scoring for keyword-driven knowledge sources.

Confidence blends word-level text similarity (40%) with the share of
an entry's keywords found in the query (60%), capped at 1.0.
"""

import hashlib
import re

TEXT_SIMILARITY_WEIGHT = 0.4
KEYWORD_MATCH_WEIGHT = 0.6

# Words this short never count toward text similarity
MIN_SIMILARITY_WORD_LENGTH = 3

# Normalized queries longer than this are keyed by a prefix plus a digest
QUERY_KEY_LENGTH = 50

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def _words(text: str) -> list[str]:
    return text.lower().split()


def text_similarity(text1: str, text2: str) -> float:
    """Share of words in ``text1`` that overlap some word in ``text2``.

    Overlap is substring containment in either direction. The ratio is
    taken over the longer of the two word lists.
    """
    words1 = _words(text1)
    words2 = _words(text2)
    longest = max(len(words1), len(words2))
    if longest == 0:
        return 0.0

    matches = 0
    for word1 in words1:
        if len(word1) < MIN_SIMILARITY_WORD_LENGTH:
            continue
        if any(word2 in word1 or word1 in word2 for word2 in words2):
            matches += 1
    return matches / longest


def keyword_match(query: str, keywords: list[str]) -> float:
    """Share of ``keywords`` that overlap some word of the query."""
    if not keywords:
        return 0.0

    query_words = _words(query)
    matches = 0
    for keyword in keywords:
        kw = keyword.lower()
        if any(word in kw or kw in word for word in query_words):
            matches += 1
    return matches / len(keywords)


def blended_confidence(query: str, target: str, keywords: list[str] | None = None) -> float:
    """Confidence that ``target`` (with its keywords) answers ``query``."""
    confidence = text_similarity(query, target) * TEXT_SIMILARITY_WEIGHT
    if keywords:
        confidence += keyword_match(query, keywords) * KEYWORD_MATCH_WEIGHT
    return min(confidence, 1.0)


def matched_keywords(query: str, keywords: list[str]) -> list[str]:
    """Keywords contained in the query, or that contain its first word."""
    query_lower = query.lower()
    words = query_lower.split()
    first_word = words[0] if words else None
    return [
        kw
        for kw in keywords
        if kw.lower() in query_lower or (first_word is not None and first_word in kw.lower())
    ]


def prefilter_match(query: str, keyword_index: list[str]) -> bool:
    """Cheap overlap test used to skip sources that cannot match.

    An empty index never matches.
    """
    if not keyword_index:
        return False
    for word in _words(query):
        for keyword in keyword_index:
            if keyword in word or word in keyword:
                return True
    return False


def normalize_query_key(query: str) -> str:
    """Cache key for a query: its lowercase alphanumerics.

    Long queries keep a readable prefix and a digest of the full text, so
    two queries sharing a prefix never share a key.
    """
    normalized = _NON_ALNUM.sub("", query.lower())
    if len(normalized) <= QUERY_KEY_LENGTH:
        return normalized
    digest = hashlib.sha256(normalized.encode()).hexdigest()[:16]
    return f"{normalized[:QUERY_KEY_LENGTH]}:{digest}"
