"""Index a transcript file and run queries against it from the command line."""

import argparse
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from insightcast.config import settings
from insightcast.ingestion.parsers import parse_transcript
from insightcast.retrieval.intent import classify_intents
from insightcast.session import Session


def _format_time(seconds: float) -> str:
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes:02d}:{secs:02d}"


def search_transcript(path: str, queries: list[str], limit: int) -> None:
    """Load *path* (.vtt or .json), index it and print results for each query."""
    filepath = Path(path)
    if not filepath.exists():
        print(f"Transcript {path} not found.")
        return

    fmt = filepath.suffix.lstrip(".").lower()
    segments = parse_transcript(filepath.read_text(encoding="utf-8"), fmt)
    if not segments:
        print(f"SKIP {filepath.name} -- no segments found")
        return

    session = Session(settings)
    session.load()
    report = session.index(segments)
    print(
        f"Indexed {report.passages} passages from {report.segments} segments "
        f"({report.dropped} dropped) in {report.elapsed_ms:.0f} ms"
    )

    for query in queries:
        intents = ", ".join(classify_intents(query))
        print(f"\n> {query}  [{intents}]")
        results = session.search(query, limit)
        if not results:
            print("  no matches")
        for rank, result in enumerate(results, 1):
            seg = result.segment
            print(
                f"  {rank}. [{_format_time(seg.start)}-{_format_time(seg.end)}] "
                f"{result.score:.2f}  {seg.text[:100]}"
            )


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("transcript", help="Path to a .vtt or .json transcript")
    parser.add_argument("queries", nargs="+")
    parser.add_argument("--limit", type=int, default=settings.search_limit)
    args = parser.parse_args()
    logging.basicConfig(level=settings.log_level.upper())
    search_transcript(args.transcript, args.queries, args.limit)
