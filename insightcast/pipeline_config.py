"""Fixed retrieval constants and the index backend enum."""

from __future__ import annotations

from enum import Enum

# Embedding vectors produced and stored by the pipeline (all-MiniLM sized).
EMBEDDING_DIM = 384

# Sentence windows fed to the embedder.
WINDOW_SIZE = 3
STRIDE = 1

# Candidates requested from the index per result slot.
OVERFETCH_FACTOR = 2

# Intent heuristic re-ranking.
BOOST_STEP = 0.1
BOOST_CAP = 0.3

# Displayed scores are divided by top * headroom and capped below 1.0.
NORMALIZATION_HEADROOM = 1.1
SCORE_CEILING = 0.99

# Progress events are published every N segments while embedding.
PROGRESS_EVERY = 5

# Undrained progress events kept per session; older ones are dropped.
PROGRESS_BACKLOG = 100


class IndexBackend(str, Enum):
    """Available hybrid index engines."""

    MEMORY = "memory"
    SUPABASE = "supabase"
