"""Transcript parsers for VTT and JSON formats."""

from __future__ import annotations

import json
import re
from collections.abc import Callable
from typing import Any

from insightcast.ingestion.models import TranscriptSegment, new_segment_id


def _parse_vtt_timestamp(ts: str) -> float:
    """Convert a VTT timestamp (HH:MM:SS.mmm) to seconds."""
    parts = ts.strip().split(":")
    if len(parts) == 3:
        hours, minutes, seconds = parts
    elif len(parts) == 2:
        hours = "0"
        minutes, seconds = parts
    else:
        return 0.0
    return int(hours) * 3600 + int(minutes) * 60 + float(seconds)


def parse_vtt(content: str) -> list[TranscriptSegment]:
    """Parse a WebVTT file into transcript segments.

    Each cue becomes one segment. Teams-style ``<v Speaker>`` voice tags are
    stripped from the text; cues left without text are skipped.
    """
    segments: list[TranscriptSegment] = []

    timestamp_re = re.compile(
        r"(\d{1,2}:\d{2}(?::\d{2})?[.,]\d{3})\s*-->\s*(\d{1,2}:\d{2}(?::\d{2})?[.,]\d{3})"
    )
    voice_re = re.compile(r"</?v(?:\s[^>]*)?>")

    lines = content.strip().splitlines()
    i = 0
    while i < len(lines):
        match = timestamp_re.search(lines[i])
        if not match:
            i += 1
            continue

        start = _parse_vtt_timestamp(match.group(1).replace(",", "."))
        end = _parse_vtt_timestamp(match.group(2).replace(",", "."))

        # Collect text lines until blank line or next timestamp / end
        text_lines: list[str] = []
        i += 1
        while i < len(lines) and lines[i].strip() and not timestamp_re.search(lines[i]):
            text_lines.append(lines[i].strip())
            i += 1

        text = voice_re.sub("", " ".join(text_lines)).strip()
        if text:
            segments.append(TranscriptSegment(id=new_segment_id(), start=start, end=end, text=text))

    return segments


def _segment_from_item(item: Any, scale: float) -> TranscriptSegment:
    if not isinstance(item, dict):
        msg = f"Transcript items must be JSON objects, got {type(item).__name__}"
        raise ValueError(msg)
    try:
        start = float(item.get("start") or 0) / scale
        end = float(item.get("end") or 0) / scale
    except TypeError as exc:
        raise ValueError(f"Invalid timestamp in transcript item: {exc}") from exc
    return TranscriptSegment(
        id=str(item.get("id") or new_segment_id()),
        start=start,
        end=end,
        text=str(item.get("text") or "").strip(),
    )


def _items(data: dict[str, Any], key: str) -> list[Any]:
    items = data[key]
    if not isinstance(items, list):
        raise ValueError(f"{key!r} must be a list, got {type(items).__name__}")
    return items


def parse_json(content: str) -> list[TranscriptSegment]:
    """Parse a JSON transcript (AssemblyAI or internal segments format).

    Supported formats:

    AssemblyAI (times in milliseconds)::

        {"utterances": [{"speaker": "A", "text": "...", "start": ms, "end": ms}]}

    Internal segments format (times in seconds, ``id`` optional)::

        {"segments": [{"id": "...", "text": "...", "start": s, "end": s}]}

    Items with empty or null text are dropped.

    Raises:
        ValueError: The JSON is malformed or not in a supported shape.
    """
    data = json.loads(content)
    if not isinstance(data, dict):
        msg = f"JSON transcript must be an object, got {type(data).__name__}"
        raise ValueError(msg)

    if "utterances" in data:
        segments = [_segment_from_item(u, 1000.0) for u in _items(data, "utterances")]
    elif "segments" in data:
        segments = [_segment_from_item(s, 1.0) for s in _items(data, "segments")]
    else:
        msg = f"Unrecognized JSON transcript format. Keys: {list(data.keys())}"
        raise ValueError(msg)

    return [s for s in segments if s.text]


def parse_transcript(content: str, format: str) -> list[TranscriptSegment]:
    """Dispatch to the correct parser based on *format*.

    Args:
        content: Raw transcript text.
        format: ``"vtt"`` or ``"json"``.

    Returns:
        Parsed transcript segments.

    Raises:
        ValueError: If *format* is not recognized.
    """
    dispatch: dict[str, Callable[[str], list[TranscriptSegment]]] = {
        "vtt": parse_vtt,
        "json": parse_json,
    }

    parser = dispatch.get(format)
    if parser is None:
        msg = f"Unknown transcript format: {format!r}. Supported: {list(dispatch.keys())}"
        raise ValueError(msg)

    return parser(content)
