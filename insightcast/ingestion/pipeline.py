"""Indexing pipeline: segment -> chunk -> embed -> passage -> index."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence

from insightcast.errors import (
    EmbedderFailure,
    EmbeddingDimensionMismatch,
    IndexEngineFailure,
    check_dimension,
)
from insightcast.ingestion.chunking import chunk_segment_text
from insightcast.ingestion.embeddings import Embedder
from insightcast.ingestion.models import (
    IndexedPassage,
    IndexReport,
    ProgressEvent,
    TranscriptSegment,
)
from insightcast.ingestion.storage import IndexEngine
from insightcast.pipeline_config import EMBEDDING_DIM, PROGRESS_EVERY

logger = logging.getLogger(__name__)

STAGE = "index"


def _no_progress(event: ProgressEvent) -> None:
    pass


def build_passages(
    segments: Sequence[TranscriptSegment],
    embedder: Embedder,
    dimension: int = EMBEDDING_DIM,
    publish: Callable[[ProgressEvent], None] = _no_progress,
    report: IndexReport | None = None,
) -> list[IndexedPassage]:
    """Chunk and embed every segment, dropping wrongly-sized vectors.

    Raises:
        EmbedderFailure: The embedder raised; remaining segments are skipped.
    """
    report = report if report is not None else IndexReport()
    passages: list[IndexedPassage] = []
    total = len(segments)

    for i, segment in enumerate(segments):
        chunks = chunk_segment_text(segment.text)
        report.chunks += len(chunks)

        for j, chunk in enumerate(chunks):
            try:
                embedding = embedder.embed(chunk.text)
            except Exception as exc:
                raise EmbedderFailure(f"Embedding failed: {exc}", stage=STAGE) from exc

            try:
                check_dimension(embedding, dimension)
            except EmbeddingDimensionMismatch as exc:
                logger.debug("Dropping %s_%d: %s", segment.id, j, exc)
                report.dropped += 1
                continue

            passages.append(
                IndexedPassage(
                    passage_id=f"{segment.id}_{j}",
                    segment_id=segment.id,
                    chunk_text=chunk.text,
                    segment_text=segment.text,
                    start=segment.start,
                    end=segment.end,
                    embedding=embedding,
                )
            )

        report.segments += 1
        if i % PROGRESS_EVERY == 0:
            publish(
                ProgressEvent(
                    stage="embedding",
                    percent=60 + (i / total) * 30,
                    message=f"Embedding {i}/{total}",
                )
            )

    return passages


def index_segments(
    segments: Sequence[TranscriptSegment],
    embedder: Embedder,
    engine: IndexEngine,
    dimension: int = EMBEDDING_DIM,
    publish: Callable[[ProgressEvent], None] = _no_progress,
    is_current: Callable[[], bool] = lambda: True,
) -> IndexReport:
    """Full indexing pipeline for one transcript.

    Args:
        segments: Ordered segments from the ASR collaborator.
        embedder: Same embedder that will be used for queries.
        engine: The index engine to populate.
        dimension: Required embedding width; other widths are dropped.
        publish: Non-blocking progress sink.
        is_current: Returns False once the target index has been replaced by a
            reset, in which case the batch is discarded instead of inserted.

    Returns:
        An :class:`IndexReport` with counts and elapsed time.

    Raises:
        EmbedderFailure: The embedder raised.
        IndexEngineFailure: The engine rejected the batch.
    """
    started = time.perf_counter()
    report = IndexReport()

    passages = build_passages(segments, embedder, dimension, publish, report)

    if not is_current():
        logger.warning("Index was reset while indexing; discarding %d passages", len(passages))
        report.stale = True
        report.elapsed_ms = (time.perf_counter() - started) * 1000
        return report

    publish(ProgressEvent(stage="indexing", percent=95, message=f"Indexing {len(passages)} passages"))
    try:
        report.passages = engine.insert_multiple([p.to_record() for p in passages])
    except Exception as exc:
        raise IndexEngineFailure(f"Index insert failed: {exc}", stage=STAGE) from exc

    report.elapsed_ms = (time.perf_counter() - started) * 1000
    publish(ProgressEvent(stage="indexing", percent=100, message="Index ready"))
    logger.info(
        "Indexed %d passages from %d segments (%d dropped) in %.0f ms",
        report.passages,
        report.segments,
        report.dropped,
        report.elapsed_ms,
    )
    return report
