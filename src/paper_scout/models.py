"""Data models and constants for the paper-scout library."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

# Application identity; single source of truth for platformdirs config paths
CONFIG_APP_NAME = "paper-scout"

# arXiv API sort options (values are sent verbatim as sortBy / sortOrder)
SORT_BY_OPTIONS = ("relevance", "lastUpdatedDate", "submittedDate")
SORT_ORDER_OPTIONS = ("ascending", "descending")

# arXiv API constants
ARXIV_API_DEFAULT_MAX_RESULTS = 10
ARXIV_API_MAX_RESULTS_LIMIT = 200

# Preference defaults
DEFAULT_PREFERENCE_MAX_RESULTS = 5
DEFAULT_RECENCY_WINDOW_DAYS = 3650
MAX_RECENCY_WINDOW_DAYS = 36500  # keeps now - timedelta(days=...) representable

# Library listing limits
LIST_DEFAULT_LIMIT = 20
LIST_MAX_LIMIT = 100
LIBRARY_PREVIEW_SIZE = 10

# Service defaults
DEFAULT_LLM_TIMEOUT_SECONDS = 120
DEFAULT_ARXIV_TIMEOUT_SECONDS = 30
DEFAULT_USER_AGENT = "paper-scout/0.1 (+https://arxiv.org/help/api)"


@dataclass(frozen=True, slots=True)
class NormalizedId:
    """Canonical (versionless) arXiv identifier plus the optional revision."""

    canonical: str
    version: int | None = None
    versioned: str | None = None


@dataclass(slots=True)
class Paper:
    """An arXiv paper materialized from an Atom feed entry."""

    arxiv_id: str  # canonical, never carries a vN suffix
    title: str
    authors: list[str]
    published: datetime
    abstract: str = ""
    url: str = ""
    updated: datetime | None = None
    versioned_id: str | None = None
    version: int | None = None
    pdf_url: str | None = None
    categories: list[str] = field(default_factory=list)


@dataclass(slots=True)
class SavedPaper:
    """A paper persisted in the user's library."""

    arxiv_id: str
    title: str
    authors: list[str]
    published: datetime
    updated: datetime | None
    abstract: str
    url: str
    tags: list[str] = field(default_factory=list)
    saved_at: datetime | None = None


@dataclass(slots=True)
class LibraryPreviewItem:
    """Lightweight projection of a saved paper for at-a-glance display."""

    arxiv_id: str
    title: str
    saved_at: datetime
    tags: list[str] = field(default_factory=list)


@dataclass(slots=True)
class Preferences:
    """Fallback values used by tool operations when arguments are omitted."""

    default_max_results: int = DEFAULT_PREFERENCE_MAX_RESULTS
    recency_window_days: int = DEFAULT_RECENCY_WINDOW_DAYS
    default_categories: list[str] = field(default_factory=list)  # empty = all categories


@dataclass(slots=True)
class SearchOptions:
    """Parameters for an arXiv API search request."""

    max_results: int = ARXIV_API_DEFAULT_MAX_RESULTS
    start: int = 0
    sort_by: str = "relevance"
    sort_order: str = "descending"
    categories: list[str] | None = None


@dataclass(slots=True)
class UserConfig:
    """Complete user configuration: preferences plus service settings."""

    preferences: Preferences = field(default_factory=Preferences)
    llm_command: str = ""  # Shell command template, e.g. 'claude -p {prompt}'
    llm_preset: str = ""  # "claude" | "codex" | "llm" | "copilot" | "" (custom)
    llm_timeout_seconds: int = DEFAULT_LLM_TIMEOUT_SECONDS
    arxiv_timeout_seconds: int = DEFAULT_ARXIV_TIMEOUT_SECONDS
    arxiv_throttle_seconds: float = 0.0  # optional delay before each arXiv request
    user_agent: str = DEFAULT_USER_AGENT
    library_db_path: str = ""  # Empty = <config dir>/library.db
    preview_size: int = LIBRARY_PREVIEW_SIZE
    version: int = 1
    config_defaulted: bool = False  # set when a broken config file was replaced by defaults


@dataclass(slots=True)
class LibraryFilter:
    """Filter applied when listing saved papers."""

    text: str | None = None
    tag: str | None = None
    limit: int = LIST_DEFAULT_LIMIT


@dataclass(slots=True)
class UpsertResult:
    """Outcome of saving a paper into the library."""

    paper: SavedPaper
    was_already_present: bool
    merged_tags: list[str]


@dataclass(slots=True)
class ListResult:
    """Outcome of a library listing."""

    items: list[SavedPaper]
    total_matched: int
    truncated: bool


@dataclass(slots=True)
class RemoveResult:
    """Outcome of deleting a paper from the library."""

    found: bool
    removed_title: str | None = None


__all__ = [
    "ARXIV_API_DEFAULT_MAX_RESULTS",
    "ARXIV_API_MAX_RESULTS_LIMIT",
    "CONFIG_APP_NAME",
    "DEFAULT_ARXIV_TIMEOUT_SECONDS",
    "DEFAULT_LLM_TIMEOUT_SECONDS",
    "DEFAULT_USER_AGENT",
    "DEFAULT_PREFERENCE_MAX_RESULTS",
    "DEFAULT_RECENCY_WINDOW_DAYS",
    "MAX_RECENCY_WINDOW_DAYS",
    "LIBRARY_PREVIEW_SIZE",
    "LIST_DEFAULT_LIMIT",
    "LIST_MAX_LIMIT",
    "SORT_BY_OPTIONS",
    "SORT_ORDER_OPTIONS",
    "LibraryFilter",
    "LibraryPreviewItem",
    "ListResult",
    "NormalizedId",
    "Paper",
    "Preferences",
    "RemoveResult",
    "SavedPaper",
    "SearchOptions",
    "UpsertResult",
    "UserConfig",
]
