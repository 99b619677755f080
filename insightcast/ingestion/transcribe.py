"""Speech-to-text via AssemblyAI, producing timestamped transcript segments."""

from __future__ import annotations

import logging

import assemblyai as aai  # type: ignore[import-untyped]

from insightcast.ingestion.models import TranscriptSegment, new_segment_id

logger = logging.getLogger(__name__)


class TranscriptionError(Exception):
    """AssemblyAI rejected the audio (corrupted, unsupported format, ...)."""


def transcribe_audio(raw: bytes, api_key: str) -> list[TranscriptSegment]:
    """Transcribe audio bytes and return one segment per utterance.

    The SDK accepts bytes directly, no temp file needed. Utterance times come
    back in milliseconds and are converted to seconds; utterances with empty
    text are dropped.

    Raises:
        TranscriptionError: AssemblyAI reported a transcript error.
    """
    aai.settings.api_key = api_key
    transcriber = aai.Transcriber()
    config = aai.TranscriptionConfig(speaker_labels=True)

    transcript = transcriber.transcribe(raw, config=config)
    if transcript.status == aai.TranscriptStatus.error:
        raise TranscriptionError(f"Transcription failed: {transcript.error}")

    segments = [
        TranscriptSegment(
            id=new_segment_id(),
            start=u.start / 1000.0,
            end=u.end / 1000.0,
            text=u.text.strip(),
        )
        for u in transcript.utterances or []
        if u.text and u.text.strip()
    ]
    logger.info("Transcription done. Generated %d segments.", len(segments))
    return segments
