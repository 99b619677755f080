"""Search session: owns the embedder, the index and the progress stream."""

from __future__ import annotations

import dataclasses
import logging
import time
from collections import deque
from collections.abc import Sequence

from openai import OpenAIError
from supabase import SupabaseException

from insightcast.config import Settings
from insightcast.errors import ConfigurationError, IndexEngineFailure
from insightcast.ingestion.embeddings import Embedder, OpenAIEmbedder
from insightcast.ingestion.models import (
    IndexReport,
    ProgressEvent,
    SearchResult,
    TranscriptSegment,
    new_segment_id,
)
from insightcast.ingestion.pipeline import index_segments
from insightcast.ingestion.storage import IndexEngine, create_index_engine, passage_schema
from insightcast.pipeline_config import PROGRESS_BACKLOG
from insightcast.retrieval.intent import QueryIntent
from insightcast.retrieval.search import search_passages

logger = logging.getLogger(__name__)


class Session:
    """One loaded transcript and its hybrid index.

    All operations run on the caller's thread and must not overlap; callers
    that serve concurrent requests serialize them (see ``insightcast.api``).
    ``reset`` swaps in a fresh index and bumps ``generation``; an ``index``
    call that started under an older generation discards its batch.
    """

    def __init__(
        self,
        settings: Settings,
        embedder: Embedder | None = None,
        engine: IndexEngine | None = None,
    ) -> None:
        self.settings = settings
        self.embedder = embedder
        self.engine = engine
        self.generation = 0
        self.segments: list[TranscriptSegment] = []
        self._loaded = False
        self._progress: deque[ProgressEvent] = deque(maxlen=PROGRESS_BACKLOG)

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    def publish(self, event: ProgressEvent) -> None:
        """Queue a progress event; never blocks.

        At most ``PROGRESS_BACKLOG`` events are kept; the oldest undrained
        event is dropped when the backlog is full.
        """
        self._progress.append(event)

    def drain_progress(self) -> list[ProgressEvent]:
        """Remove and return every pending progress event."""
        events: list[ProgressEvent] = []
        while True:
            try:
                events.append(self._progress.popleft())
            except IndexError:
                return events

    def load(self) -> None:
        """Build missing collaborators and create an empty index."""
        if self.embedder is None:
            self.publish(
                ProgressEvent(
                    stage="loading-embedder",
                    percent=0,
                    message=f"Loading embedder ({self.settings.embedding_model})...",
                )
            )
            try:
                self.embedder = OpenAIEmbedder(
                    model=self.settings.embedding_model,
                    dimensions=self.settings.embedding_dimensions,
                    api_key=self.settings.openai_api_key,
                )
            except OpenAIError as exc:
                raise ConfigurationError(f"Embedder unavailable: {exc}", stage="load") from exc
        if self.engine is None:
            try:
                self.engine = create_index_engine(self.settings.index_backend, self.settings)
            except SupabaseException as exc:
                raise ConfigurationError(f"Index engine unavailable: {exc}", stage="load") from exc

        self._create_index("load")
        self._loaded = True
        self.publish(ProgressEvent(stage="loading-embedder", percent=100, message="Ready"))
        logger.info(
            "Session ready (embedder=%s, backend=%s)",
            self.settings.embedding_model,
            self.settings.index_backend.value,
        )

    def index(self, segments: Sequence[TranscriptSegment]) -> IndexReport:
        """Chunk, embed and index *segments* into the current index.

        A segment whose id repeats one earlier in the batch or already in the
        session is given a fresh id, so passage ids stay unique.

        Raises:
            ConfigurationError: ``load`` has not been called.
            EmbedderFailure: Embedding failed; the index keeps what it had.
            IndexEngineFailure: The engine rejected the batch.
        """
        embedder, engine = self._require_loaded()
        generation = self.generation
        segments = self._with_unique_ids(segments)

        report = index_segments(
            segments,
            embedder,
            engine,
            dimension=self.settings.embedding_dimensions,
            publish=self.publish,
            is_current=lambda: self.generation == generation,
        )
        if not report.stale:
            self.segments.extend(segments)
        return report

    def search(
        self,
        query: str,
        limit: int | None = None,
        intents: list[QueryIntent] | None = None,
    ) -> list[SearchResult]:
        """Hybrid search over the current index.

        *intents* are classified from *query* when not given.

        Raises:
            ConfigurationError: ``load`` has not been called.
            ValueError: ``limit`` is less than 1.
            EmbedderFailure / IndexEngineFailure: A collaborator failed.
        """
        embedder, engine = self._require_loaded()
        started = time.perf_counter()
        results = search_passages(
            query,
            embedder,
            engine,
            limit=limit if limit is not None else self.settings.search_limit,
            similarity_floor=self.settings.similarity_floor,
            intents=intents,
        )
        logger.info(
            "Search returned %d results in %.0f ms",
            len(results),
            (time.perf_counter() - started) * 1000,
        )
        return results

    def reset(self) -> None:
        """Discard the index and all segments, leaving an empty queryable index."""
        self.generation += 1
        self.segments = []
        if self.engine is not None:
            self._create_index("reset")
        self.publish(ProgressEvent(stage="cleared", percent=100, message="Index cleared"))
        logger.info("Session reset (generation %d)", self.generation)

    def _with_unique_ids(self, segments: Sequence[TranscriptSegment]) -> list[TranscriptSegment]:
        seen = {s.id for s in self.segments}
        unique: list[TranscriptSegment] = []
        for segment in segments:
            if segment.id in seen:
                fresh = new_segment_id()
                while fresh in seen:
                    fresh = new_segment_id()
                logger.debug("Duplicate segment id %r renamed to %r", segment.id, fresh)
                segment = dataclasses.replace(segment, id=fresh)
            seen.add(segment.id)
            unique.append(segment)
        return unique

    def _create_index(self, stage: str) -> None:
        if self.engine is None:
            raise ConfigurationError("No index engine configured", stage=stage)
        try:
            self.engine.create(passage_schema(self.settings.embedding_dimensions))
        except Exception as exc:
            raise IndexEngineFailure(f"Index creation failed: {exc}", stage=stage) from exc

    def _require_loaded(self) -> tuple[Embedder, IndexEngine]:
        if not self._loaded or self.embedder is None or self.engine is None:
            raise ConfigurationError("Session is not loaded; call load() first")
        return self.embedder, self.engine
