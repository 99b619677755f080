"""Session endpoints: reset, progress events and the current transcript."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from insightcast.api.dependencies import get_session, run_in_session
from insightcast.api.models import ProgressEventModel, ResetResponse, SegmentModel
from insightcast.session import Session

router = APIRouter()


@router.post("/api/reset", response_model=ResetResponse)
async def reset(session: Annotated[Session, Depends(get_session)]) -> ResetResponse:
    """Discard the index and transcript; the session stays queryable (empty)."""
    await run_in_session(session, session.reset)
    return ResetResponse()


@router.get("/api/progress", response_model=list[ProgressEventModel])
async def progress(session: Annotated[Session, Depends(get_session)]) -> list[ProgressEventModel]:
    """Pending progress events, oldest first. Each event is returned once."""
    return [ProgressEventModel.from_event(e) for e in session.drain_progress()]


@router.get("/api/segments", response_model=list[SegmentModel])
async def segments(session: Annotated[Session, Depends(get_session)]) -> list[SegmentModel]:
    return [SegmentModel.from_segment(s) for s in session.segments]
