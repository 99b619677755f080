"""Pydantic request/response schemas for the InsightCast API."""

from __future__ import annotations

from pydantic import BaseModel, Field

from insightcast.ingestion.models import ProgressEvent, SearchResult, TranscriptSegment


class SegmentModel(BaseModel):
    """A transcript segment; ``id`` is generated when omitted on input."""

    id: str | None = None
    start: float
    end: float
    text: str

    @classmethod
    def from_segment(cls, segment: TranscriptSegment) -> SegmentModel:
        return cls(id=segment.id, start=segment.start, end=segment.end, text=segment.text)


class IndexRequest(BaseModel):
    """Request body for the /api/index endpoint."""

    segments: list[SegmentModel]
    replace: bool = True  # reset before indexing (one index per file)


class IndexResponse(BaseModel):
    """Response body for the /api/index and /api/upload endpoints."""

    segments: int
    chunks: int
    passages: int
    dropped: int
    processing_time_ms: float


class SearchRequest(BaseModel):
    """Request body for the /api/search endpoint."""

    query: str
    limit: int = Field(default=10, ge=1)


class SearchResultModel(BaseModel):
    """One matching segment and its display score."""

    segment: SegmentModel
    score: float

    @classmethod
    def from_result(cls, result: SearchResult) -> SearchResultModel:
        return cls(segment=SegmentModel.from_segment(result.segment), score=result.score)


class SearchResponse(BaseModel):
    """Response body for the /api/search endpoint."""

    query: str
    intents: list[str]
    results: list[SearchResultModel]
    search_time_ms: float


class ProgressEventModel(BaseModel):
    stage: str
    percent: float
    message: str

    @classmethod
    def from_event(cls, event: ProgressEvent) -> ProgressEventModel:
        return cls(stage=event.stage, percent=event.percent, message=event.message)


class ResetResponse(BaseModel):
    status: str = "cleared"
