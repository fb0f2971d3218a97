"""Prompt-versioned cache of generated paper summaries."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime

from paper_scout.storage import SqlStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def summary_cache_key(arxiv_id: str, prompt_version: str) -> str:
    """Composite key: bumping the prompt version orphans every older entry."""
    return f"{arxiv_id}:{prompt_version}"


class SummaryCache:
    """The ``paper_summaries`` table. Entries are written once and never updated.

    A miss returns None; it is never an error.
    """

    def __init__(self, store: SqlStore, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._store = store
        self._clock = clock

    def init_schema(self) -> None:
        """Create the paper_summaries table if it doesn't exist."""
        self._store.execute(
            "CREATE TABLE IF NOT EXISTS paper_summaries ("
            "  arxiv_id TEXT PRIMARY KEY,"  # "<canonical id>:<prompt version>"
            "  summary_md TEXT NOT NULL,"
            "  created_at TEXT NOT NULL"
            ")"
        )

    def get(self, arxiv_id: str, prompt_version: str) -> str | None:
        """Load a cached summary for this id and prompt version."""
        rows = self._store.execute(
            "SELECT summary_md FROM paper_summaries WHERE arxiv_id = ?",
            (summary_cache_key(arxiv_id, prompt_version),),
        )
        return rows[0]["summary_md"] if rows else None

    def put(self, arxiv_id: str, prompt_version: str, summary_md: str) -> None:
        """Store a summary. An existing entry under the same key is kept as-is."""
        key = summary_cache_key(arxiv_id, prompt_version)
        self._store.execute(
            "INSERT OR IGNORE INTO paper_summaries (arxiv_id, summary_md, created_at) "
            "VALUES (?, ?, ?)",
            (key, summary_md, self._clock().isoformat()),
        )
        logger.debug("Cached summary under %s", key)


__all__ = [
    "SummaryCache",
    "summary_cache_key",
]
