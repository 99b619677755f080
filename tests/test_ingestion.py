"""Tests for transcript parsers, segment ids, embeddings and audio transcription."""

from __future__ import annotations

import json
import re
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from insightcast.ingestion.embeddings import OpenAIEmbedder, l2_normalize
from insightcast.ingestion.models import new_segment_id
from insightcast.ingestion.parsers import parse_json, parse_transcript, parse_vtt
from insightcast.ingestion.transcribe import TranscriptionError, transcribe_audio


class TestSegmentIds:
    def test_format(self) -> None:
        assert re.fullmatch(r"seg_\d+_[a-z0-9]{7}", new_segment_id())

    def test_unique(self) -> None:
        assert len({new_segment_id() for _ in range(100)}) == 100


class TestVTTParser:
    def test_basic_vtt(self) -> None:
        vtt = """WEBVTT

00:00:01.000 --> 00:00:05.000
Hello everyone, welcome to the show.

00:00:05.500 --> 00:00:10.000
Today we talk about intuition.
"""
        segments = parse_vtt(vtt)
        assert len(segments) == 2
        assert segments[0].start == 1.0
        assert segments[0].end == 5.0
        assert segments[1].text == "Today we talk about intuition."
        assert segments[0].id != segments[1].id

    def test_multiline_cue(self) -> None:
        vtt = """WEBVTT

00:00:01.000 --> 00:00:05.000
This is line one.
This is line two.
"""
        (segment,) = parse_vtt(vtt)
        assert segment.text == "This is line one. This is line two."

    def test_voice_tags_stripped(self) -> None:
        vtt = "WEBVTT\n\n00:01:00.000 --> 00:01:02.500\n<v Alice>Trust your gut.</v>\n"
        (segment,) = parse_vtt(vtt)
        assert segment.text == "Trust your gut."
        assert segment.start == 60.0
        assert segment.end == 62.5

    def test_short_timestamps(self) -> None:
        vtt = "WEBVTT\n\n01:05.000 --> 01:07.000\nHi.\n"
        (segment,) = parse_vtt(vtt)
        assert segment.start == 65.0

    def test_empty_cues_skipped(self) -> None:
        vtt = "WEBVTT\n\n00:00:01.000 --> 00:00:02.000\n\n00:00:02.000 --> 00:00:03.000\nWords.\n"
        segments = parse_vtt(vtt)
        assert [s.text for s in segments] == ["Words."]


class TestJSONParser:
    def test_assemblyai_format(self) -> None:
        data = json.dumps(
            {
                "utterances": [
                    {"speaker": "A", "text": "Hello everyone.", "start": 1000, "end": 3000},
                    {"speaker": "B", "text": "Hi there.", "start": 3500, "end": 5000},
                ]
            }
        )
        segments = parse_json(data)
        assert len(segments) == 2
        assert segments[0].start == 1.0  # converted from ms
        assert segments[0].end == 3.0

    def test_segments_format_keeps_ids(self) -> None:
        data = json.dumps(
            {"segments": [{"id": "seg_custom", "text": " Hello. ", "start": 1.5, "end": 3.2}]}
        )
        (segment,) = parse_json(data)
        assert segment.id == "seg_custom"
        assert segment.text == "Hello."
        assert segment.start == 1.5

    def test_empty_text_dropped(self) -> None:
        data = json.dumps({"segments": [{"text": "  ", "start": 0, "end": 1}, {"text": "Kept."}]})
        segments = parse_json(data)
        assert [s.text for s in segments] == ["Kept."]
        assert segments[0].start == 0.0

    def test_null_text_dropped(self) -> None:
        data = json.dumps({"segments": [{"id": "a", "start": 0, "end": 1, "text": None}]})
        assert parse_json(data) == []

    def test_top_level_array_raises(self) -> None:
        with pytest.raises(ValueError, match="must be an object"):
            parse_json("[1, 2]")

    def test_non_object_items_raise(self) -> None:
        with pytest.raises(ValueError, match="JSON objects"):
            parse_json(json.dumps({"segments": ["just a string"]}))

    def test_non_list_segments_raise(self) -> None:
        with pytest.raises(ValueError, match="must be a list"):
            parse_json(json.dumps({"utterances": {"text": "hi"}}))

    def test_unknown_json_raises(self) -> None:
        with pytest.raises(ValueError, match="Unrecognized JSON"):
            parse_json(json.dumps({"something_else": []}))


class TestParseDispatcher:
    def test_vtt_dispatch(self) -> None:
        vtt = "WEBVTT\n\n00:00:01.000 --> 00:00:05.000\nHello."
        assert len(parse_transcript(vtt, "vtt")) == 1

    def test_json_dispatch(self) -> None:
        data = json.dumps({"utterances": [{"text": "Hi", "start": 0, "end": 1}]})
        assert len(parse_transcript(data, "json")) == 1

    def test_unknown_format_raises(self) -> None:
        with pytest.raises(ValueError, match="Unknown transcript format"):
            parse_transcript("data", "docx")


class TestEmbeddings:
    def test_l2_normalize(self) -> None:
        vec = l2_normalize([3.0, 4.0])
        assert vec == pytest.approx([0.6, 0.8])

    def test_l2_normalize_zero_vector(self) -> None:
        assert l2_normalize([0.0, 0.0]) == [0.0, 0.0]

    def test_openai_embedder_requests_configured_dimensions(self) -> None:
        client = MagicMock()
        client.embeddings.create.return_value.data = [SimpleNamespace(embedding=[2.0] * 384)]
        embedder = OpenAIEmbedder(model="text-embedding-3-small", dimensions=384, client=client)

        vec = embedder.embed("hello")

        client.embeddings.create.assert_called_once_with(
            input=["hello"], model="text-embedding-3-small", dimensions=384
        )
        assert len(vec) == 384
        assert float(np.linalg.norm(vec)) == pytest.approx(1.0)


class TestTranscribeAudio:
    def test_utterances_become_segments(self) -> None:
        with patch("insightcast.ingestion.transcribe.aai") as mock_aai:
            transcript = mock_aai.Transcriber.return_value.transcribe.return_value
            transcript.status = "completed"
            transcript.utterances = [
                SimpleNamespace(text=" Intuition is quiet. ", start=500, end=2500),
                SimpleNamespace(text="", start=2500, end=2600),
            ]

            segments = transcribe_audio(b"audio", api_key="key")

        assert len(segments) == 1
        assert segments[0].text == "Intuition is quiet."
        assert (segments[0].start, segments[0].end) == (0.5, 2.5)
        assert mock_aai.settings.api_key == "key"

    def test_error_status_raises(self) -> None:
        with patch("insightcast.ingestion.transcribe.aai") as mock_aai:
            transcript = mock_aai.Transcriber.return_value.transcribe.return_value
            transcript.status = mock_aai.TranscriptStatus.error
            transcript.error = "unsupported format"

            with pytest.raises(TranscriptionError, match="unsupported format"):
                transcribe_audio(b"audio", api_key="key")
