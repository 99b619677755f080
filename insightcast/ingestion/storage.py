"""Hybrid index engines: in-memory (BM25 + cosine) and Supabase pgvector."""

from __future__ import annotations

import logging
import math
import re
import uuid
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Protocol, cast

import numpy as np
from postgrest import CountMethod
from supabase import Client, create_client

from insightcast.config import Settings, get_settings
from insightcast.pipeline_config import EMBEDDING_DIM, IndexBackend

logger = logging.getLogger(__name__)


def passage_schema(dimension: int = EMBEDDING_DIM) -> dict[str, str]:
    """Engine schema for passage records with a *dimension*-wide vector."""
    return {
        "id": "string",
        "segmentId": "string",
        "text": "string",  # keyword-indexed
        "fullSegmentText": "string",  # display text
        "start": "number",
        "end": "number",
        "embedding": f"vector[{dimension}]",
    }


PASSAGE_SCHEMA = passage_schema()

_VECTOR_TYPE_RE = re.compile(r"^vector\[(\d+)\]$")
_TOKEN_RE = re.compile(r"\w+")


@dataclass(frozen=True)
class HybridQuery:
    """One combined keyword + vector query."""

    term: str
    vector: list[float] | None
    properties: tuple[str, ...] = ("text",)
    limit: int = 20
    similarity_floor: float = 0.4
    vector_property: str = "embedding"


@dataclass
class ScoredHit:
    """A stored record and its fused relevance score."""

    document: dict[str, Any]
    score: float


class IndexEngine(Protocol):
    """Stores passage records and runs hybrid queries over them."""

    def create(self, schema: dict[str, str]) -> None: ...

    def insert_multiple(self, records: list[dict[str, Any]]) -> int: ...

    def search(self, query: HybridQuery) -> list[ScoredHit]: ...

    def count(self) -> int: ...


def vector_dimension(schema: dict[str, str], property_name: str = "embedding") -> int:
    """Return the declared width of a ``vector[N]`` schema field."""
    match = _VECTOR_TYPE_RE.match(schema.get(property_name, ""))
    if match is None:
        msg = f"Schema field {property_name!r} is not a vector type: {schema.get(property_name)!r}"
        raise ValueError(msg)
    return int(match.group(1))


def tokenize(text: str) -> list[str]:
    """Lowercase word tokens used for keyword scoring."""
    return _TOKEN_RE.findall(text.lower())


@dataclass
class InMemoryIndexEngine:
    """Process-local hybrid index.

    Keyword side is BM25 over the queried properties, normalized by the best
    keyword score of the query. Vector side is cosine similarity, with hits
    under ``similarity_floor`` discarded. The two are fused as a weighted sum.
    """

    text_weight: float = 0.5
    vector_weight: float = 0.5
    k1: float = 1.2
    b: float = 0.75
    _schema: dict[str, str] | None = field(default=None, init=False, repr=False)
    _dimension: int = field(default=EMBEDDING_DIM, init=False, repr=False)
    _records: dict[str, dict[str, Any]] = field(default_factory=dict, init=False, repr=False)

    def create(self, schema: dict[str, str]) -> None:
        self._schema = dict(schema)
        self._dimension = vector_dimension(schema)
        self._records = {}

    def insert_multiple(self, records: list[dict[str, Any]]) -> int:
        if self._schema is None:
            raise RuntimeError("Index has not been created")
        for record in records:
            missing = [name for name in self._schema if name not in record]
            if missing:
                raise ValueError(f"Record {record.get('id')!r} is missing fields: {missing}")
            if len(record["embedding"]) != self._dimension:
                raise ValueError(
                    f"Record {record['id']!r} has a {len(record['embedding'])}-wide vector, "
                    f"schema expects {self._dimension}"
                )
        for record in records:
            self._records[record["id"]] = record
        # Records sharing an id replace each other; count what was stored.
        return len({record["id"] for record in records})

    def count(self) -> int:
        return len(self._records)

    def search(self, query: HybridQuery) -> list[ScoredHit]:
        if self._schema is None:
            raise RuntimeError("Index has not been created")
        if not self._records:
            return []

        ids = list(self._records)
        text_scores = self._keyword_scores(ids, query.term, query.properties)
        vector_scores = (
            self._vector_scores(ids, query.vector, query.vector_property, query.similarity_floor)
            if query.vector is not None
            else {}
        )

        fused: dict[str, float] = {}
        for doc_id in set(text_scores) | set(vector_scores):
            fused[doc_id] = self.text_weight * text_scores.get(
                doc_id, 0.0
            ) + self.vector_weight * vector_scores.get(doc_id, 0.0)

        ranked = sorted(fused.items(), key=lambda item: item[1], reverse=True)[: query.limit]
        return [ScoredHit(document=self._records[doc_id], score=score) for doc_id, score in ranked]

    def _keyword_scores(
        self,
        ids: list[str],
        term: str,
        properties: tuple[str, ...],
    ) -> dict[str, float]:
        query_terms = set(tokenize(term))
        if not query_terms:
            return {}

        docs = {
            doc_id: Counter(
                tokenize(" ".join(str(self._records[doc_id].get(p, "")) for p in properties))
            )
            for doc_id in ids
        }
        n_docs = len(docs)
        avg_len = sum(sum(c.values()) for c in docs.values()) / n_docs or 1.0

        doc_freq = {t: sum(1 for c in docs.values() if t in c) for t in query_terms}
        idf = {
            t: math.log(1.0 + (n_docs - df + 0.5) / (df + 0.5))
            for t, df in doc_freq.items()
            if df
        }

        raw: dict[str, float] = {}
        for doc_id, counts in docs.items():
            doc_len = sum(counts.values())
            score = 0.0
            for t, weight in idf.items():
                tf = counts.get(t, 0)
                if tf:
                    denom = tf + self.k1 * (1 - self.b + self.b * doc_len / avg_len)
                    score += weight * tf * (self.k1 + 1) / denom
            if score > 0:
                raw[doc_id] = score

        if not raw:
            return {}
        best = max(raw.values())
        return {doc_id: score / best for doc_id, score in raw.items()}

    def _vector_scores(
        self,
        ids: list[str],
        vector: list[float],
        property_name: str,
        floor: float,
    ) -> dict[str, float]:
        q = np.asarray(vector, dtype=np.float32)
        if q.shape[0] != self._dimension:
            raise ValueError(f"Query vector has {q.shape[0]} dims, schema expects {self._dimension}")
        q_norm = float(np.linalg.norm(q))
        if q_norm == 0.0:
            return {}

        matrix = np.asarray([self._records[i][property_name] for i in ids], dtype=np.float32)
        norms = np.linalg.norm(matrix, axis=1)
        norms[norms == 0.0] = 1.0
        sims = matrix @ q / (norms * q_norm)

        return {doc_id: float(sim) for doc_id, sim in zip(ids, sims, strict=True) if sim >= floor}


def get_supabase_client(settings: Settings | None = None) -> Client:
    """Create a Supabase client from *settings* (the cached settings by default)."""
    settings = settings or get_settings()
    return create_client(settings.supabase_url, settings.supabase_key)


class SupabaseIndexEngine:
    """Hybrid index stored in a Supabase ``passages`` table.

    Every ``create`` allocates a new ``index_id``; rows written under an older
    id are invisible to later searches, which gives each reset an empty index
    without deleting anything. Scoring runs server-side in the
    ``hybrid_search_passages`` RPC, which returns rows with a ``score`` column.
    """

    table = "passages"
    batch_size = 50

    def __init__(
        self,
        client: Client | None = None,
        text_weight: float = 0.5,
        vector_weight: float = 0.5,
    ) -> None:
        self._client = client
        self.text_weight = text_weight
        self.vector_weight = vector_weight
        self.index_id: str | None = None

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = get_supabase_client()
        return self._client

    def create(self, schema: dict[str, str]) -> None:
        vector_dimension(schema)
        self.index_id = uuid.uuid4().hex

    def insert_multiple(self, records: list[dict[str, Any]]) -> int:
        index_id = self._require_index()
        rows: list[dict[str, object]] = [
            {
                "id": r["id"],
                "index_id": index_id,
                "segment_id": r["segmentId"],
                "text": r["text"],
                "full_segment_text": r["fullSegmentText"],
                "start_time": r["start"],
                "end_time": r["end"],
                "embedding": r["embedding"],
            }
            for r in records
        ]

        # Insert in batches of 50
        for i in range(0, len(rows), self.batch_size):
            self.client.table(self.table).insert(rows[i : i + self.batch_size]).execute()
        return len(rows)

    def count(self) -> int:
        index_id = self._require_index()
        result = (
            self.client.table(self.table)
            .select("id", count=CountMethod.exact)
            .eq("index_id", index_id)
            .execute()
        )
        return result.count or 0

    def search(self, query: HybridQuery) -> list[ScoredHit]:
        index_id = self._require_index()
        result = self.client.rpc(
            "hybrid_search_passages",
            {
                "query_text": query.term,
                "query_embedding": query.vector,
                "match_count": query.limit,
                "similarity_threshold": query.similarity_floor,
                "text_weight": self.text_weight,
                "vector_weight": self.vector_weight,
                "filter_index_id": index_id,
            },
        ).execute()

        # Supabase .data is typed as JSON (broad union); cast to concrete type.
        rows = cast(list[dict[str, Any]], result.data)
        return [
            ScoredHit(
                document={
                    "id": row["id"],
                    "segmentId": row["segment_id"],
                    "text": row["text"],
                    "fullSegmentText": row["full_segment_text"],
                    "start": row["start_time"],
                    "end": row["end_time"],
                },
                score=float(row["score"]),
            )
            for row in rows
        ]

    def _require_index(self) -> str:
        if self.index_id is None:
            raise RuntimeError("Index has not been created")
        return self.index_id


def create_index_engine(backend: str | IndexBackend, settings: Settings) -> IndexEngine:
    """Build the index engine selected by *backend* (string or enum)."""
    if isinstance(backend, str):
        backend = IndexBackend(backend)

    if backend is IndexBackend.SUPABASE:
        logger.info("Using Supabase index engine")
        return SupabaseIndexEngine(
            client=get_supabase_client(settings),
            text_weight=settings.text_weight,
            vector_weight=settings.vector_weight,
        )
    return InMemoryIndexEngine(
        text_weight=settings.text_weight,
        vector_weight=settings.vector_weight,
    )
