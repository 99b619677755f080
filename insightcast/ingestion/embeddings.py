"""Embedding helpers using OpenAI text-embedding-3-small."""

from __future__ import annotations

from typing import Protocol

import numpy as np
from openai import OpenAI

from insightcast.pipeline_config import EMBEDDING_DIM


class Embedder(Protocol):
    """Maps arbitrary text to a fixed-length, unit-normalized vector."""

    def embed(self, text: str) -> list[float]: ...


def l2_normalize(vector: list[float] | np.ndarray) -> list[float]:
    """Scale *vector* to unit length (zero vectors are returned unchanged)."""
    arr = np.asarray(vector, dtype=np.float32)
    norm = float(np.linalg.norm(arr))
    if norm == 0.0:
        return arr.tolist()
    return (arr / norm).tolist()


class OpenAIEmbedder:
    """Embedder backed by the OpenAI embeddings API.

    ``text-embedding-3-*`` models accept a ``dimensions`` argument, which lets
    the index keep the 384-wide vectors of the reference deployment. The same
    instance must be used at index time and query time.
    """

    def __init__(
        self,
        model: str = "text-embedding-3-small",
        dimensions: int = EMBEDDING_DIM,
        api_key: str | None = None,
        client: OpenAI | None = None,
    ) -> None:
        self.model = model
        self.dimensions = dimensions
        # OpenAI() reads OPENAI_API_KEY from env when api_key is empty
        self._client = client or OpenAI(api_key=api_key or None)

    def embed(self, text: str) -> list[float]:
        response = self._client.embeddings.create(
            input=[text],
            model=self.model,
            dimensions=self.dimensions,
        )
        return l2_normalize(response.data[0].embedding)
