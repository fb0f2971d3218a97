"""Shared test fixtures for paper-scout tests."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any
from xml.sax.saxutils import escape

import pytest

from paper_scout.models import Paper, UserConfig
from paper_scout.storage import SQLiteStore

# ── Factories ────────────────────────────────────────────────────────────────


@pytest.fixture
def make_paper():
    """Factory fixture for creating Paper instances with sensible defaults."""

    def _make(
        arxiv_id: str = "2401.12345",
        title: str = "Test Paper",
        authors: list[str] | None = None,
        published: datetime | None = None,
        abstract: str = "Test abstract content.",
        url: str | None = None,
        updated: datetime | None = None,
        version: int | None = 1,
        categories: list[str] | None = None,
    ) -> Paper:
        if url is None:
            url = f"https://arxiv.org/abs/{arxiv_id}"
        return Paper(
            arxiv_id=arxiv_id,
            title=title,
            authors=authors if authors is not None else ["Test Author"],
            published=published or datetime(2024, 1, 15, 18, 0, tzinfo=UTC),
            abstract=abstract,
            url=url,
            updated=updated,
            versioned_id=f"{arxiv_id}v{version}" if version else None,
            version=version,
            pdf_url=f"https://arxiv.org/pdf/{arxiv_id}" if version else None,
            categories=categories if categories is not None else ["cs.LG"],
        )

    return _make


def _atom_entry(
    arxiv_id: str = "2401.12345",
    *,
    version: int = 1,
    title: str | None = "Test Paper",
    summary: str = "Test abstract content.",
    published: str | None = "2024-01-15T18:00:00Z",
    updated: str | None = None,
    authors: tuple[str, ...] = ("Test Author",),
    categories: tuple[str, ...] = ("cs.LG",),
    include_id: bool = True,
    with_links: bool = True,
) -> str:
    parts = ["<entry>"]
    if include_id:
        parts.append(f"<id>http://arxiv.org/abs/{arxiv_id}v{version}</id>")
    if updated is not None:
        parts.append(f"<updated>{updated}</updated>")
    if published is not None:
        parts.append(f"<published>{published}</published>")
    if title is not None:
        parts.append(f"<title>{escape(title)}</title>")
    parts.append(f"<summary>{escape(summary)}</summary>")
    parts.extend(f"<author><name>{escape(name)}</name></author>" for name in authors)
    if with_links:
        parts.append(
            f'<link href="http://arxiv.org/abs/{arxiv_id}v{version}" '
            'rel="alternate" type="text/html"/>'
        )
        parts.append(
            f'<link title="pdf" href="http://arxiv.org/pdf/{arxiv_id}v{version}" '
            'rel="related" type="application/pdf"/>'
        )
    parts.extend(
        f'<category term="{cat}" scheme="http://arxiv.org/schemas/atom"/>' for cat in categories
    )
    parts.append("</entry>")
    return "".join(parts)


@pytest.fixture
def make_entry():
    """Factory fixture for one Atom ``<entry>`` as the arXiv API renders it.

    Pass ``published=None``, ``title=None`` or ``include_id=False`` to build a
    malformed entry.
    """
    return _atom_entry


@pytest.fixture
def make_feed():
    """Factory fixture wrapping entries in an arXiv Atom ``<feed>`` document."""

    def _make(*entries: str) -> str:
        return (
            '<?xml version="1.0" encoding="UTF-8"?>'
            '<feed xmlns="http://www.w3.org/2005/Atom" '
            'xmlns:arxiv="http://arxiv.org/schemas/atom">'
            "<title>ArXiv Query</title>"
            f"{''.join(entries)}"
            "</feed>"
        )

    return _make


@pytest.fixture
def sqlite_store():
    """A fresh in-memory SQLiteStore, closed after the test."""
    store = SQLiteStore(":memory:")
    yield store
    store.close()


@pytest.fixture
def sample_config():
    """Factory fixture for creating UserConfig with optional overrides."""

    def _make(**kwargs: Any) -> UserConfig:
        return UserConfig(**kwargs)

    return _make
