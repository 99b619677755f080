"""Index endpoints: index JSON segments or an uploaded transcript/audio file."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from insightcast.api.dependencies import get_session, run_in_session
from insightcast.api.models import IndexRequest, IndexResponse
from insightcast.config import settings
from insightcast.ingestion.models import IndexReport, TranscriptSegment, new_segment_id
from insightcast.ingestion.parsers import parse_transcript
from insightcast.ingestion.transcribe import TranscriptionError, transcribe_audio
from insightcast.session import Session

router = APIRouter()

# 50 MB upload limit
MAX_UPLOAD_BYTES = 50 * 1024 * 1024

# Extensions treated as audio, routed to AssemblyAI transcription
AUDIO_EXTENSIONS = {"mp3", "wav", "m4a", "mp4", "ogg", "flac"}

# Extensions accepted as transcript files
TRANSCRIPT_EXTENSIONS = {"vtt", "json"}


def _report_response(report: IndexReport) -> IndexResponse:
    return IndexResponse(
        segments=report.segments,
        chunks=report.chunks,
        passages=report.passages,
        dropped=report.dropped,
        processing_time_ms=report.elapsed_ms,
    )


def _index_file(session: Session, segments: list[TranscriptSegment], replace: bool) -> IndexReport:
    if replace:
        session.reset()
    return session.index(segments)


@router.post("/api/index", response_model=IndexResponse)
async def index(
    request: IndexRequest,
    session: Annotated[Session, Depends(get_session)],
) -> IndexResponse:
    """Chunk, embed and index already-transcribed segments.

    Segments with blank text are skipped; missing ids are generated.
    """
    segments = [
        TranscriptSegment(id=s.id or new_segment_id(), start=s.start, end=s.end, text=s.text.strip())
        for s in request.segments
        if s.text.strip()
    ]
    report = await run_in_session(session, lambda: _index_file(session, segments, request.replace))
    return _report_response(report)


@router.post("/api/upload", response_model=IndexResponse)
async def upload(
    file: Annotated[UploadFile, File(...)],
    session: Annotated[Session, Depends(get_session)],
    replace: Annotated[bool, Form()] = True,
) -> IndexResponse:
    """Upload a transcript (.vtt, .json) or audio file and index it.

    Audio is transcribed with AssemblyAI first; without ``ASSEMBLYAI_API_KEY``
    audio uploads return 501.
    """
    raw = await file.read()
    if len(raw) > MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size is {MAX_UPLOAD_BYTES // (1024 * 1024)} MB.",
        )

    ext = (file.filename or "").rsplit(".", 1)[-1].lower()

    if ext in AUDIO_EXTENSIONS:
        if not settings.assemblyai_api_key:
            raise HTTPException(
                status_code=501,
                detail="Audio transcription is not configured (ASSEMBLYAI_API_KEY missing).",
            )
        try:
            segments = transcribe_audio(raw, settings.assemblyai_api_key)
        except TranscriptionError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except Exception as exc:
            # Infrastructure error (bad API key, network, provider outage)
            raise HTTPException(
                status_code=503,
                detail=f"Transcription service unavailable: {exc}",
            ) from exc
    elif ext in TRANSCRIPT_EXTENSIONS:
        try:
            segments = parse_transcript(raw.decode("utf-8"), ext)
        except (UnicodeDecodeError, ValueError) as exc:
            raise HTTPException(status_code=400, detail=f"Could not parse transcript: {exc}") from exc
    else:
        supported = sorted(AUDIO_EXTENSIONS | TRANSCRIPT_EXTENSIONS)
        raise HTTPException(
            status_code=415,
            detail=f"Unsupported file type {ext!r}. Supported: {supported}",
        )

    report = await run_in_session(session, lambda: _index_file(session, segments, replace))
    return _report_response(report)
