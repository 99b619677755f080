import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from insightcast.api.routes.index import router as index_router
from insightcast.api.routes.search import router as search_router
from insightcast.api.routes.session import router as session_router
from insightcast.config import settings

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="InsightCast API",
    description="Hybrid keyword + vector search over audio transcripts",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://localhost:5173",
    ],
    allow_origin_regex=r"http://localhost:\d+",
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(index_router)
app.include_router(search_router)
app.include_router(session_router)


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}
