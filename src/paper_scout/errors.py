"""Exception hierarchy for paper-scout.

Each error carries a stable ``kind`` string so the tool layer can turn it
into data (see ``paper_scout.tools.ToolError``) without string matching.
"""

from __future__ import annotations


class PaperScoutError(Exception):
    """Base class for all paper-scout errors."""

    kind = "error"


class ArxivNetworkError(PaperScoutError):
    """The arXiv API could not be reached (DNS, refused connection, timeout)."""

    kind = "network"

    def __init__(self, message: str = "Failed to reach the arXiv API") -> None:
        super().__init__(message)


class ArxivHttpError(PaperScoutError):
    """The arXiv API answered with a non-success status code."""

    kind = "http"

    def __init__(self, status_code: int, reason: str = "") -> None:
        detail = f": {reason}" if reason else ""
        super().__init__(f"arXiv API returned {status_code}{detail}")
        self.status_code = status_code
        self.reason = reason


class FeedParseError(PaperScoutError):
    """The arXiv response body was not a parseable Atom feed."""

    kind = "parse"


class PaperNotFoundError(PaperScoutError):
    """A well-formed lookup matched zero papers."""

    kind = "not_found"

    def __init__(self, arxiv_id: str, where: str = "arXiv") -> None:
        super().__init__(f"Paper '{arxiv_id}' was not found in {where}")
        self.arxiv_id = arxiv_id
        self.where = where


class DatabaseError(PaperScoutError):
    """The storage layer failed (distinct from an application-level miss)."""

    kind = "database"


class ConstraintViolationError(DatabaseError):
    """A write was rejected by a uniqueness or other integrity constraint."""


class ConflictError(PaperScoutError):
    """A row with the same canonical id already exists."""

    kind = "conflict"

    def __init__(self, arxiv_id: str) -> None:
        super().__init__(f"Paper '{arxiv_id}' already exists in the library")
        self.arxiv_id = arxiv_id


class InvalidInputError(PaperScoutError):
    """Tool arguments failed coercion or validation."""

    kind = "invalid_input"

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field


class GenerationError(PaperScoutError):
    """The text generation service failed to produce output."""

    kind = "generation"


class StepLimitError(PaperScoutError):
    """A turn tried to run more tool calls than it is allowed."""

    kind = "step_limit"

    def __init__(self, limit: int) -> None:
        super().__init__(f"Tool step limit of {limit} reached for this turn")
        self.limit = limit


__all__ = [
    "ArxivHttpError",
    "ArxivNetworkError",
    "ConflictError",
    "ConstraintViolationError",
    "DatabaseError",
    "FeedParseError",
    "GenerationError",
    "InvalidInputError",
    "PaperNotFoundError",
    "PaperScoutError",
    "StepLimitError",
]
