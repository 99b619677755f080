"""Data models for the indexing and search pipeline."""

from __future__ import annotations

import random
import string
import time
from dataclasses import dataclass, field
from typing import Any

_ID_ALPHABET = string.ascii_lowercase + string.digits


def new_segment_id() -> str:
    """Return a fresh segment id like ``seg_1718000000000_k3j9x0a``."""
    suffix = "".join(random.choices(_ID_ALPHABET, k=7))
    return f"seg_{int(time.time() * 1000)}_{suffix}"


@dataclass(frozen=True)
class TranscriptSegment:
    """One contiguous speech span produced by the ASR collaborator."""

    id: str
    start: float
    end: float
    text: str


@dataclass(frozen=True)
class Chunk:
    """A sentence window cut out of one segment's text.

    ``start_ratio``/``end_ratio`` locate the window within the parent
    segment's characters, both in ``[0, 1]``.
    """

    text: str
    start_ratio: float
    end_ratio: float


@dataclass
class IndexedPassage:
    """One chunk plus everything needed to display its parent segment."""

    passage_id: str
    segment_id: str
    chunk_text: str
    segment_text: str
    start: float
    end: float
    embedding: list[float] = field(repr=False)

    def to_record(self) -> dict[str, Any]:
        """Return the index-engine record (schema field names)."""
        return {
            "id": self.passage_id,
            "segmentId": self.segment_id,
            "text": self.chunk_text,
            "fullSegmentText": self.segment_text,
            "start": self.start,
            "end": self.end,
            "embedding": self.embedding,
        }


@dataclass
class SearchResult:
    """A segment returned for a query, scored in ``[0, 1)``."""

    segment: TranscriptSegment
    score: float


@dataclass(frozen=True)
class ProgressEvent:
    """Progress notification published while loading or indexing."""

    stage: str
    percent: float
    message: str


@dataclass
class IndexReport:
    """Summary of one ``index`` run."""

    segments: int = 0
    chunks: int = 0
    passages: int = 0
    dropped: int = 0
    elapsed_ms: float = 0.0
    stale: bool = False
