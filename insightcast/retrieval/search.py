"""Hybrid retrieval with intent re-ranking, per-segment de-duplication and score normalization."""

from __future__ import annotations

import logging

from insightcast.errors import EmbedderFailure, IndexEngineFailure
from insightcast.ingestion.embeddings import Embedder
from insightcast.ingestion.models import SearchResult, TranscriptSegment
from insightcast.ingestion.storage import HybridQuery, IndexEngine, ScoredHit
from insightcast.pipeline_config import NORMALIZATION_HEADROOM, OVERFETCH_FACTOR, SCORE_CEILING
from insightcast.retrieval.intent import QueryIntent, classify_intents, heuristic_boost

logger = logging.getLogger(__name__)

STAGE = "search"


def candidate_count(limit: int) -> int:
    """Number of index hits to request for *limit* results (20 for the default 10)."""
    return limit * OVERFETCH_FACTOR


def rerank(hits: list[ScoredHit], intents: list[QueryIntent]) -> list[SearchResult]:
    """Boost hits by intent and keep the best passage per segment.

    Results carry the full parent segment text, ordered by score descending.
    """
    best: dict[str, SearchResult] = {}
    for hit in hits:
        doc = hit.document
        score = hit.score + heuristic_boost(doc["text"], intents)

        existing = best.get(doc["segmentId"])
        if existing is None or score > existing.score:
            best[doc["segmentId"]] = SearchResult(
                segment=TranscriptSegment(
                    id=doc["segmentId"],
                    start=doc["start"],
                    end=doc["end"],
                    text=doc["fullSegmentText"],
                ),
                score=score,
            )

    return sorted(best.values(), key=lambda r: r.score, reverse=True)


def normalize_scores(results: list[SearchResult]) -> list[SearchResult]:
    """Rescale so the top result sits just under 1.0.

    Scores are divided by ``top * 1.1`` and capped at 0.99; ordering is kept.
    """
    if not results:
        return results
    top = results[0].score
    if top <= 0:
        return [SearchResult(segment=r.segment, score=0.0) for r in results]
    return [
        SearchResult(
            segment=r.segment,
            score=max(0.0, min(r.score / (top * NORMALIZATION_HEADROOM), SCORE_CEILING)),
        )
        for r in results
    ]


def search_passages(
    query: str,
    embedder: Embedder,
    engine: IndexEngine,
    limit: int = 10,
    similarity_floor: float = 0.4,
    intents: list[QueryIntent] | None = None,
) -> list[SearchResult]:
    """Answer *query* against the hybrid index.

    Args:
        query: Free-text query.
        embedder: The embedder used at index time.
        engine: The populated index engine.
        limit: Maximum number of results (>= 1).
        similarity_floor: Minimum vector similarity for a candidate.
        intents: Pre-computed intents; classified from *query* when omitted.

    Returns:
        Up to *limit* results, one per segment, scores in ``[0, 1)``.

    Raises:
        ValueError: If *limit* is less than 1.
        EmbedderFailure: The embedder raised.
        IndexEngineFailure: The index engine raised.
    """
    if limit < 1:
        raise ValueError(f"limit must be >= 1, got {limit}")
    if not query.strip():
        return []

    intents = intents if intents is not None else classify_intents(query)
    logger.info("Searching for %r (intents: %s)", query, ", ".join(intents))

    try:
        vector = embedder.embed(query)
    except Exception as exc:
        raise EmbedderFailure(f"Query embedding failed: {exc}", stage=STAGE) from exc

    try:
        hits = engine.search(
            HybridQuery(
                term=query,
                vector=vector,
                properties=("text",),
                limit=candidate_count(limit),
                similarity_floor=similarity_floor,
            )
        )
    except Exception as exc:
        raise IndexEngineFailure(f"Hybrid search failed: {exc}", stage=STAGE) from exc

    logger.info("Found %d hybrid hits", len(hits))
    return normalize_scores(rerank(hits, intents)[:limit])
