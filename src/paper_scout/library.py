"""Persistent library of saved papers with tag-merge semantics."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable
from contextlib import AbstractContextManager
from datetime import UTC, datetime
from typing import Any

from paper_scout.errors import ConflictError, ConstraintViolationError
from paper_scout.models import (
    LIBRARY_PREVIEW_SIZE,
    LIST_MAX_LIMIT,
    LibraryFilter,
    LibraryPreviewItem,
    ListResult,
    Paper,
    RemoveResult,
    SavedPaper,
    UpsertResult,
)
from paper_scout.parsing import parse_atom_timestamp
from paper_scout.storage import Row, SqlStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _format_timestamp(value: datetime) -> str:
    """Fixed-width ISO 8601 so stored timestamps sort lexicographically."""
    return value.astimezone(UTC).isoformat(timespec="microseconds")


def _parse_timestamp(raw: Any) -> datetime | None:
    if not isinstance(raw, str):
        return None
    return parse_atom_timestamp(raw)


def _load_json_list(payload: Any, column: str, arxiv_id: str) -> list[str]:
    """Decode a JSON string-list column, tolerating damaged rows."""
    if not payload:
        return []
    try:
        data = json.loads(payload)
    except (TypeError, json.JSONDecodeError):
        logger.warning("Corrupt %s for saved paper %s", column, arxiv_id, exc_info=True)
        return []
    if not isinstance(data, list):
        return []
    return [str(item) for item in data]


def normalize_tags(tags: Iterable[str] | None) -> list[str]:
    """Strip whitespace, drop empties, and de-duplicate while keeping order."""
    result: list[str] = []
    for tag in tags or ():
        cleaned = " ".join(str(tag).split())
        if cleaned and cleaned not in result:
            result.append(cleaned)
    return result


def union_tags(existing: Iterable[str], new: Iterable[str]) -> list[str]:
    """Union of two tag lists: existing order first, then unseen new tags."""
    return normalize_tags([*existing, *new])


def _row_to_saved_paper(row: Row) -> SavedPaper:
    arxiv_id = row["arxiv_id"]
    published = _parse_timestamp(row.get("published")) or datetime.min.replace(tzinfo=UTC)
    return SavedPaper(
        arxiv_id=arxiv_id,
        title=row.get("title") or "",
        authors=_load_json_list(row.get("authors_json"), "authors_json", arxiv_id),
        published=published,
        updated=_parse_timestamp(row.get("updated")),
        abstract=row.get("abstract") or "",
        url=row.get("url") or "",
        tags=_load_json_list(row.get("tags_json"), "tags_json", arxiv_id),
        saved_at=_parse_timestamp(row.get("saved_at")),
    )


class LibraryStore:
    """The ``saved_papers`` table: one row per canonical arXiv id.

    The first successful save is authoritative for descriptive fields; later
    saves of the same id only union tags.
    """

    def __init__(self, store: SqlStore, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._store = store
        self._clock = clock

    def transaction(self) -> AbstractContextManager[None]:
        """A transaction on the underlying store; other tables on it can join."""
        return self._store.transaction()

    def init_schema(self) -> None:
        """Create the saved_papers table and its saved_at index if missing."""
        self._store.execute(
            "CREATE TABLE IF NOT EXISTS saved_papers ("
            "  arxiv_id TEXT PRIMARY KEY,"
            "  title TEXT NOT NULL,"
            "  authors_json TEXT NOT NULL,"
            "  published TEXT NOT NULL,"
            "  updated TEXT,"
            "  abstract TEXT NOT NULL,"
            "  url TEXT NOT NULL,"
            "  tags_json TEXT NOT NULL,"
            "  saved_at TEXT NOT NULL"
            ")"
        )
        self._store.execute(
            "CREATE INDEX IF NOT EXISTS idx_saved_papers_saved_at ON saved_papers(saved_at)"
        )

    def get(self, arxiv_id: str) -> SavedPaper | None:
        """Load one saved paper by canonical id."""
        rows = self._store.execute("SELECT * FROM saved_papers WHERE arxiv_id = ?", (arxiv_id,))
        return _row_to_saved_paper(rows[0]) if rows else None

    def merge_tags(self, arxiv_id: str, tags: Iterable[str]) -> UpsertResult | None:
        """Union ``tags`` into an existing row; None when the id is not saved."""
        with self._store.transaction():
            existing = self.get(arxiv_id)
            if existing is None:
                return None
            merged = union_tags(existing.tags, normalize_tags(tags))
            if merged != existing.tags:
                self._store.execute(
                    "UPDATE saved_papers SET tags_json = ? WHERE arxiv_id = ?",
                    (json.dumps(merged), arxiv_id),
                )
                existing.tags = merged
        logger.debug("Merged tags for %s: %s", arxiv_id, merged)
        return UpsertResult(paper=existing, was_already_present=True, merged_tags=merged)

    def insert(self, paper: Paper, tags: Iterable[str]) -> UpsertResult:
        """Insert a new row; raises ConflictError if the id already exists."""
        clean_tags = normalize_tags(tags)
        saved_at = self._clock()
        updated = paper.updated or paper.published
        try:
            self._store.execute(
                "INSERT INTO saved_papers ("
                "  arxiv_id, title, authors_json, published, updated,"
                "  abstract, url, tags_json, saved_at"
                ") VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    paper.arxiv_id,
                    paper.title,
                    json.dumps(paper.authors),
                    _format_timestamp(paper.published),
                    _format_timestamp(updated),
                    paper.abstract,
                    paper.url,
                    json.dumps(clean_tags),
                    _format_timestamp(saved_at),
                ),
            )
        except ConstraintViolationError as exc:
            raise ConflictError(paper.arxiv_id) from exc

        saved = SavedPaper(
            arxiv_id=paper.arxiv_id,
            title=paper.title,
            authors=list(paper.authors),
            published=paper.published,
            updated=updated,
            abstract=paper.abstract,
            url=paper.url,
            tags=clean_tags,
            saved_at=saved_at,
        )
        logger.info("Saved %s to library", paper.arxiv_id)
        return UpsertResult(paper=saved, was_already_present=False, merged_tags=clean_tags)

    def upsert(self, paper: Paper, tags: Iterable[str] | None = None) -> UpsertResult:
        """Save a fully fetched paper, or merge tags when it is already saved."""
        tag_list = list(tags or ())
        with self._store.transaction():
            merged = self.merge_tags(paper.arxiv_id, tag_list)
            if merged is not None:
                return merged
            return self.insert(paper, tag_list)

    def list(self, flt: LibraryFilter | None = None) -> ListResult:
        """List saved papers newest first, filtered by tag and/or text."""
        flt = flt or LibraryFilter()
        limit = max(1, min(flt.limit, LIST_MAX_LIMIT))
        rows = self._store.execute(
            "SELECT * FROM saved_papers ORDER BY saved_at DESC, rowid DESC"
        )
        papers = [_row_to_saved_paper(row) for row in rows]

        if flt.tag:
            wanted = flt.tag.strip().lower()
            papers = [p for p in papers if any(t.lower() == wanted for t in p.tags)]
        if flt.text:
            needle = flt.text.strip().lower()
            papers = [
                p for p in papers if needle in p.title.lower() or needle in p.abstract.lower()
            ]

        total = len(papers)
        return ListResult(items=papers[:limit], total_matched=total, truncated=total > limit)

    def remove(self, arxiv_id: str) -> RemoveResult:
        """Delete a saved paper, returning its title when it existed."""
        with self._store.transaction():
            rows = self._store.execute(
                "SELECT title FROM saved_papers WHERE arxiv_id = ?", (arxiv_id,)
            )
            if not rows:
                return RemoveResult(found=False)
            self._store.execute("DELETE FROM saved_papers WHERE arxiv_id = ?", (arxiv_id,))
        logger.info("Removed %s from library", arxiv_id)
        return RemoveResult(found=True, removed_title=rows[0]["title"])

    def recent(self, limit: int = LIBRARY_PREVIEW_SIZE) -> list[LibraryPreviewItem]:
        """The most recently saved papers, reduced to preview items."""
        rows = self._store.execute(
            "SELECT arxiv_id, title, saved_at, tags_json FROM saved_papers "
            "ORDER BY saved_at DESC, rowid DESC LIMIT ?",
            (max(0, limit),),
        )
        return [
            LibraryPreviewItem(
                arxiv_id=row["arxiv_id"],
                title=row["title"],
                saved_at=_parse_timestamp(row["saved_at"]) or datetime.min.replace(tzinfo=UTC),
                tags=_load_json_list(row["tags_json"], "tags_json", row["arxiv_id"]),
            )
            for row in rows
        ]


__all__ = [
    "LibraryStore",
    "union_tags",
    "normalize_tags",
]
