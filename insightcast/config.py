from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings

from insightcast.pipeline_config import EMBEDDING_DIM, IndexBackend


class Settings(BaseSettings):
    """Application settings validated via Pydantic.

    Values are loaded from environment variables and/or a .env file.
    """

    # API Keys
    openai_api_key: str = ""
    assemblyai_api_key: str = ""  # Optional; audio uploads return 501 if absent

    # Supabase (only used with index_backend=supabase)
    supabase_url: str = ""
    supabase_key: str = ""

    # Embedder
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int = EMBEDDING_DIM

    # Index engine
    index_backend: IndexBackend = IndexBackend.MEMORY
    similarity_floor: float = 0.4
    text_weight: float = 0.5
    vector_weight: float = 0.5

    # App config
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    search_limit: int = 10
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance.

    Gracefully handles missing .env files (e.g. in CI/testing) by falling
    back to environment variables and defaults.
    """
    try:
        return Settings()
    except Exception:
        # If .env is missing or unreadable, build settings from env vars only.
        return Settings(_env_file=None)  # type: ignore[call-arg]


settings = get_settings()
