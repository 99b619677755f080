"""Tests for the indexing pipeline (chunk -> embed -> passage -> index)."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from conftest import HashingEmbedder

from insightcast.errors import EmbedderFailure, IndexEngineFailure
from insightcast.ingestion.models import ProgressEvent, TranscriptSegment
from insightcast.ingestion.pipeline import build_passages, index_segments
from insightcast.ingestion.storage import PASSAGE_SCHEMA, InMemoryIndexEngine


def _segments(n: int, text: str = "Alpha one. Beta two. Gamma three. Delta four.") -> list[TranscriptSegment]:
    return [
        TranscriptSegment(id=f"seg_{i}", start=float(i), end=float(i) + 1.0, text=text)
        for i in range(n)
    ]


@pytest.fixture
def engine() -> InMemoryIndexEngine:
    eng = InMemoryIndexEngine()
    eng.create(PASSAGE_SCHEMA)
    return eng


class TestBuildPassages:
    def test_one_passage_per_chunk(self, embedder: HashingEmbedder) -> None:
        passages = build_passages(_segments(2), embedder)
        # four sentences -> two windows per segment
        assert len(passages) == 4
        assert [p.passage_id for p in passages] == ["seg_0_0", "seg_0_1", "seg_1_0", "seg_1_1"]

    def test_passage_carries_segment_context(self, embedder: HashingEmbedder) -> None:
        passage = build_passages(_segments(1), embedder)[1]
        assert passage.segment_id == "seg_0"
        assert passage.chunk_text == "Beta two. Gamma three. Delta four."
        assert passage.segment_text == "Alpha one. Beta two. Gamma three. Delta four."
        assert (passage.start, passage.end) == (0.0, 1.0)
        assert len(passage.embedding) == 384

    def test_record_uses_schema_field_names(self, embedder: HashingEmbedder) -> None:
        rec = build_passages(_segments(1), embedder)[0].to_record()
        assert set(rec) == set(PASSAGE_SCHEMA)
        assert rec["fullSegmentText"].startswith("Alpha one.")

    def test_wrong_dimension_dropped(self) -> None:
        segments = [
            TranscriptSegment(id="good", start=0.0, end=1.0, text="Plain words here."),
            TranscriptSegment(id="bad", start=1.0, end=2.0, text="Corrupt vector here."),
        ]
        passages = build_passages(segments, HashingEmbedder(bad_marker="corrupt"))
        assert [p.segment_id for p in passages] == ["good"]

    def test_embedder_failure_carries_stage(self) -> None:
        broken = MagicMock()
        broken.embed.side_effect = RuntimeError("model crashed")
        with pytest.raises(EmbedderFailure) as exc_info:
            build_passages(_segments(1), broken)
        assert exc_info.value.stage == "index"
        assert isinstance(exc_info.value.__cause__, RuntimeError)


class TestIndexSegments:
    def test_populates_engine(self, embedder: HashingEmbedder, engine: InMemoryIndexEngine) -> None:
        report = index_segments(_segments(3), embedder, engine)
        assert engine.count() == 6
        assert report.segments == 3
        assert report.chunks == 6
        assert report.passages == 6
        assert report.dropped == 0
        assert not report.stale

    def test_zero_segments(self, embedder: HashingEmbedder, engine: InMemoryIndexEngine) -> None:
        report = index_segments([], embedder, engine)
        assert report.passages == 0
        assert engine.count() == 0

    def test_dropped_passages_are_counted(self, engine: InMemoryIndexEngine) -> None:
        segments = [
            TranscriptSegment(id="good", start=0.0, end=1.0, text="Plain words here."),
            TranscriptSegment(id="bad", start=1.0, end=2.0, text="Corrupt vector here."),
        ]
        report = index_segments(segments, HashingEmbedder(bad_marker="corrupt"), engine)
        assert report.dropped == 1
        assert report.passages == 1
        assert engine.count() == 1

    def test_single_batch_insert(self, embedder: HashingEmbedder) -> None:
        engine = MagicMock()
        engine.insert_multiple.return_value = 4
        index_segments(_segments(2), embedder, engine)
        engine.insert_multiple.assert_called_once()
        assert len(engine.insert_multiple.call_args.args[0]) == 4

    def test_progress_events(self, embedder: HashingEmbedder, engine: InMemoryIndexEngine) -> None:
        events: list[ProgressEvent] = []
        index_segments(_segments(11, "Short."), embedder, engine, publish=events.append)

        embedding = [e for e in events if e.stage == "embedding"]
        assert [e.message for e in embedding] == ["Embedding 0/11", "Embedding 5/11", "Embedding 10/11"]
        assert embedding[0].percent == 60
        assert all(60 <= e.percent <= 90 for e in embedding)
        assert [e.percent for e in events if e.stage == "indexing"] == [95, 100]

    def test_embedder_failure_aborts_without_insert(self, engine: InMemoryIndexEngine) -> None:
        broken = MagicMock()
        broken.embed.side_effect = [[0.0] * 383 + [1.0], RuntimeError("boom")]
        with pytest.raises(EmbedderFailure):
            index_segments(_segments(1), broken, engine)
        assert engine.count() == 0

    def test_engine_failure_carries_stage(self, embedder: HashingEmbedder) -> None:
        engine = MagicMock()
        engine.insert_multiple.side_effect = ConnectionError("db down")
        with pytest.raises(IndexEngineFailure) as exc_info:
            index_segments(_segments(1), embedder, engine)
        assert exc_info.value.stage == "index"

    def test_stale_batch_is_discarded(self, embedder: HashingEmbedder, engine: InMemoryIndexEngine) -> None:
        report = index_segments(_segments(2), embedder, engine, is_current=lambda: False)
        assert report.stale
        assert report.passages == 0
        assert engine.count() == 0
