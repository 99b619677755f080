"""Error taxonomy for the indexing and search paths."""

from __future__ import annotations


class InsightError(Exception):
    """Base class. ``stage`` names the operation that failed (``index``/``search``)."""

    def __init__(self, message: str, stage: str | None = None) -> None:
        super().__init__(message)
        self.stage = stage


class ConfigurationError(InsightError):
    """Embedder or index engine used before the session was loaded."""


class EmbeddingDimensionMismatch(InsightError):
    """An embedding vector does not have the configured dimensionality."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"Expected embedding of length {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class EmbedderFailure(InsightError):
    """The embedder raised while embedding a chunk or a query."""


class IndexEngineFailure(InsightError):
    """The index engine raised while creating, inserting or searching."""


def check_dimension(vector: list[float], expected: int) -> None:
    """Raise :class:`EmbeddingDimensionMismatch` unless ``len(vector) == expected``."""
    if len(vector) != expected:
        raise EmbeddingDimensionMismatch(expected, len(vector))
