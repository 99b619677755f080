"""Sentence-window chunking of transcript segments."""

from __future__ import annotations

import re

from insightcast.ingestion.models import Chunk
from insightcast.pipeline_config import STRIDE, WINDOW_SIZE

# A run of non-terminators closed by . ! or ? (plus an optional closing
# quote), or a trailing run with no terminator at all.
_SENTENCE_RE = re.compile(r"""[^.!?]+[.!?]+["']?|[^.!?]+$""")


def split_sentences(text: str) -> list[str]:
    """Split *text* into stripped, non-empty sentences.

    Falls back to the whole (stripped) text when no boundary matches, e.g.
    for a string made only of punctuation.
    """
    sentences = [s.strip() for s in _SENTENCE_RE.findall(text)]
    sentences = [s for s in sentences if s]
    if not sentences and text.strip():
        return [text.strip()]
    return sentences


def chunk_segment_text(
    text: str,
    window_size: int = WINDOW_SIZE,
    stride: int = STRIDE,
) -> list[Chunk]:
    """Slide a window of sentences over one segment's text.

    Each chunk joins ``window_size`` consecutive sentences with a single
    space; the window advances by ``stride`` sentences and stops after the
    window that reaches the last sentence.

    Args:
        text: The full text of one transcript segment.
        window_size: Sentences per chunk.
        stride: Sentences to advance between chunks.

    Returns:
        Chunks in reading order. Empty text yields ``[]``; text with fewer
        sentences than one window yields a single chunk spanning ``(0, 1)``.
    """
    sentences = split_sentences(text)
    if not sentences:
        return []

    if len(sentences) < window_size:
        return [Chunk(text=" ".join(sentences), start_ratio=0.0, end_ratio=1.0)]

    length = len(text)
    chunks: list[Chunk] = []
    for i in range(0, len(sentences), stride):
        window = sentences[i : i + window_size]
        chunk_text = " ".join(window)

        offset = text.find(window[0])
        start_ratio = min(1.0, max(0.0, offset / length))
        end_ratio = min(1.0, (offset + len(chunk_text)) / length)
        chunks.append(
            Chunk(
                text=chunk_text,
                start_ratio=start_ratio,
                end_ratio=max(start_ratio, end_ratio),
            )
        )

        if i + window_size >= len(sentences):
            break

    return chunks
