"""Search endpoint: hybrid retrieval with intent re-ranking."""

from __future__ import annotations

import time
from typing import Annotated

from fastapi import APIRouter, Depends

from insightcast.api.dependencies import get_session, run_in_session
from insightcast.api.models import SearchRequest, SearchResponse, SearchResultModel
from insightcast.retrieval.intent import classify_intents
from insightcast.session import Session

router = APIRouter()


@router.post("/api/search", response_model=SearchResponse)
async def search(
    request: SearchRequest,
    session: Annotated[Session, Depends(get_session)],
) -> SearchResponse:
    """Return up to ``limit`` segments for the query, best first.

    A query with no hits returns an empty ``results`` list, not an error.
    """
    query = request.query.strip()
    intents = classify_intents(query)
    started = time.perf_counter()
    results = await run_in_session(
        session, lambda: session.search(query, request.limit, intents=intents)
    )

    return SearchResponse(
        query=query,
        intents=[str(i) for i in intents],
        results=[SearchResultModel.from_result(r) for r in results],
        search_time_ms=(time.perf_counter() - started) * 1000,
    )
