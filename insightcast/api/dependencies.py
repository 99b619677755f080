"""Shared session access for the API routes.

The session is single-threaded; every call into it goes through
:func:`run_in_session`, which serializes requests on one lock and runs the
blocking work in the threadpool.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import TypeVar

from fastapi import HTTPException, Request
from starlette.concurrency import run_in_threadpool

from insightcast.config import settings
from insightcast.errors import ConfigurationError, InsightError
from insightcast.session import Session

logger = logging.getLogger(__name__)

T = TypeVar("T")

_lock = threading.Lock()


def get_session(request: Request) -> Session:
    """Return the app's session, creating it (unloaded) on first use."""
    session: Session | None = getattr(request.app.state, "session", None)
    if session is None:
        session = Session(settings)
        request.app.state.session = session
    return session


def _call_locked(session: Session, func: Callable[[], T]) -> T:
    with _lock:
        if not session.is_loaded:
            session.load()
        return func()


async def run_in_session(session: Session, func: Callable[[], T]) -> T:
    """Run *func* against the loaded session, translating core errors to HTTP errors.

    Raises:
        HTTPException(503): Embedder or index engine not configured.
        HTTPException(502): Embedder or index engine failed mid-operation.
        HTTPException(422): Invalid arguments (e.g. ``limit < 1``).
    """
    try:
        return await run_in_threadpool(_call_locked, session, func)
    except ConfigurationError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    except InsightError as exc:
        logger.exception("%s failed", exc.stage or "operation")
        raise HTTPException(
            status_code=502,
            detail={"message": str(exc), "stage": exc.stage},
        ) from exc
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
