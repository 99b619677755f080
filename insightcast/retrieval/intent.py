"""Query intent: classify questions by surface cues and boost matching passages."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum

from insightcast.pipeline_config import BOOST_CAP, BOOST_STEP


class QueryIntent(StrEnum):
    """Coarse rhetorical shape of a query."""

    DEFINITION = "definition"
    ORIGIN = "origin"
    HOW_TO = "howTo"
    EXAMPLE = "example"
    AUTHOR = "author"
    GENERAL = "general"


@dataclass(frozen=True)
class IntentRule:
    """One row of the intent table.

    ``pattern`` decides whether a query carries the intent; ``indicators``
    are phrases whose presence in a passage suggests it answers that intent.
    """

    label: QueryIntent
    pattern: re.Pattern[str]
    indicators: tuple[str, ...]

    def matches(self, query: str) -> bool:
        return self.pattern.search(query) is not None


# Evaluated in order; every matching rule contributes its label.
INTENT_RULES: tuple[IntentRule, ...] = (
    IntentRule(
        label=QueryIntent.DEFINITION,
        pattern=re.compile(r"\b(what is|what are|define|meaning of|definition)\b", re.IGNORECASE),
        indicators=("is", "means", "refers to", "defined as", "is like"),
    ),
    IntentRule(
        label=QueryIntent.ORIGIN,
        pattern=re.compile(
            r"\b(where does|where do|origin|source|come from|comes from)\b", re.IGNORECASE
        ),
        indicators=("comes from", "source", "part of", "connected to"),
    ),
    IntentRule(
        label=QueryIntent.HOW_TO,
        pattern=re.compile(
            r"\b(how can|how do|how to|ways to|improve|develop|better)\b", re.IGNORECASE
        ),
        indicators=("by", "through", "learn to", "practice", "listening", "trust"),
    ),
    IntentRule(
        label=QueryIntent.EXAMPLE,
        pattern=re.compile(
            r"\b(example|examples|instance|such as|like what|give me|show me|real life)\b",
            re.IGNORECASE,
        ),
        indicators=("for example", "such as", "like when", "imagine", "think of"),
    ),
    IntentRule(
        label=QueryIntent.AUTHOR,
        pattern=re.compile(r"\b(who|author|person|says|believes|believed|troward)\b", re.IGNORECASE),
        indicators=("says", "believes", "believed", "according to"),
    ),
)

_INDICATORS: dict[QueryIntent, tuple[str, ...]] = {r.label: r.indicators for r in INTENT_RULES}


def classify_intents(query: str) -> list[QueryIntent]:
    """Return every intent whose pattern matches *query*, in table order.

    Args:
        query: The user's free-text query.

    Returns:
        The matching intents, or ``[QueryIntent.GENERAL]`` when none match.
    """
    intents = [rule.label for rule in INTENT_RULES if rule.matches(query)]
    return intents or [QueryIntent.GENERAL]


def heuristic_boost(text: str, intents: list[QueryIntent] | list[str]) -> float:
    """Additive score bonus for indicator phrases found in *text*.

    Each indicator of each detected intent that occurs in the lowercased text
    adds ``BOOST_STEP``; the total never exceeds ``BOOST_CAP``. Indicators are
    matched as plain substrings.
    """
    lower = text.lower()
    boost = 0.0
    for intent in intents:
        for indicator in _INDICATORS.get(QueryIntent(intent), ()):
            if indicator in lower:
                boost += BOOST_STEP
    return min(boost, BOOST_CAP)
