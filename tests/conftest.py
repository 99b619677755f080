"""Shared fixtures: a deterministic embedder stub and loaded sessions."""

from __future__ import annotations

import hashlib
import re
from collections.abc import Callable

import pytest

from insightcast.config import Settings
from insightcast.ingestion.embeddings import l2_normalize
from insightcast.ingestion.models import TranscriptSegment
from insightcast.ingestion.storage import InMemoryIndexEngine
from insightcast.pipeline_config import EMBEDDING_DIM
from insightcast.session import Session


class HashingEmbedder:
    """Bag-of-words vectors: each lowercase word hashed into one of *dimension* buckets.

    Texts containing *bad_marker* get a vector one element too short, which
    the indexer must drop.
    """

    def __init__(self, dimension: int = EMBEDDING_DIM, bad_marker: str | None = None) -> None:
        self.dimension = dimension
        self.bad_marker = bad_marker
        self.calls: list[str] = []

    def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.bad_marker and self.bad_marker in text.lower():
            return [0.1] * (self.dimension - 1)
        vec = [0.0] * self.dimension
        for token in re.findall(r"\w+", text.lower()):
            idx = int(hashlib.md5(token.encode()).hexdigest(), 16) % self.dimension
            vec[idx] += 1.0
        return l2_normalize(vec)


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)  # type: ignore[call-arg]


@pytest.fixture
def embedder() -> HashingEmbedder:
    return HashingEmbedder()


@pytest.fixture
def make_session(settings: Settings) -> Callable[..., Session]:
    """Build a loaded session around an in-memory engine and a hashing embedder."""

    def _make(embedder: object | None = None) -> Session:
        session = Session(
            settings,
            embedder=embedder or HashingEmbedder(),  # type: ignore[arg-type]
            engine=InMemoryIndexEngine(),
        )
        session.load()
        return session

    return _make


@pytest.fixture
def intuition_segments() -> list[TranscriptSegment]:
    return [
        TranscriptSegment(
            id="seg_howto",
            start=12.0,
            end=24.5,
            text=(
                "You get better at using intuition by listening to it. "
                "Pay attention to the small signals. "
                "Over time you learn to trust it."
            ),
        ),
        TranscriptSegment(
            id="seg_chess",
            start=30.0,
            end=33.0,
            text="Intuition matters a great deal in chess.",
        ),
        TranscriptSegment(
            id="seg_weather",
            start=40.0,
            end=44.0,
            text="The weather was cold and grey all week.",
        ),
    ]
