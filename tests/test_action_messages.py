"""Tests for user-facing message builders."""

from __future__ import annotations

import pytest

from paper_scout.action_messages import (
    GENERATION_ERROR_MESSAGE,
    NETWORK_ERROR_MESSAGE,
    build_actionable_error,
    build_actionable_success,
    build_cache_warning,
    build_remove_confirmation_prompt,
    describe_error,
)
from paper_scout.errors import (
    ArxivHttpError,
    ArxivNetworkError,
    ConflictError,
    DatabaseError,
    FeedParseError,
    GenerationError,
    InvalidInputError,
    PaperNotFoundError,
    StepLimitError,
)


def test_actionable_error_lines():
    message = build_actionable_error("save paper", why="disk full", next_step="free space")
    assert message.splitlines() == [
        "Could not save paper.",
        "Why: disk full.",
        "Next step: free space.",
    ]


def test_actionable_success_keeps_punctuation():
    assert build_actionable_success("Saved!", detail="2 tags") == "Saved!\n2 tags."


def test_remove_prompt_with_title():
    assert build_remove_confirmation_prompt("2401.12345", "A Title") == (
        "Remove 'A Title' (2401.12345) from your library?\nThis cannot be undone."
    )


def test_remove_prompt_without_title():
    assert build_remove_confirmation_prompt("2401.12345").startswith("Remove 2401.12345 ")


def test_cache_warning_mentions_reason():
    assert "Why: locked." in build_cache_warning("locked")


class TestDescribeError:
    """Each error kind maps to its own message."""

    def test_network(self):
        assert describe_error(ArxivNetworkError()) == NETWORK_ERROR_MESSAGE

    def test_http_includes_status(self):
        assert describe_error(ArxivHttpError(503, "Service Unavailable")) == (
            "arXiv returned an error (HTTP 503). Please try again."
        )

    def test_not_found_on_arxiv(self):
        message = describe_error(PaperNotFoundError("2401.99999"))
        assert message == (
            "Paper with arXiv ID '2401.99999' not found. Please check the ID and try again."
        )

    def test_not_found_in_library(self):
        message = describe_error(PaperNotFoundError("2401.99999", where="library"))
        assert message.startswith("Could not find '2401.99999' in your library.")

    def test_generation(self):
        assert describe_error(GenerationError("Exit 1")) == GENERATION_ERROR_MESSAGE

    @pytest.mark.parametrize(
        ("exc", "fragment"),
        [
            (FeedParseError("bad"), "Atom feed"),
            (ConflictError("2401.12345"), "save '2401.12345'"),
            (InvalidInputError("limit", "must be positive"), "limit: must be positive"),
            (StepLimitError(10), "new turn"),
            (DatabaseError("disk I/O error"), "disk I/O error"),
        ],
    )
    def test_other_kinds(self, exc, fragment):
        assert fragment in describe_error(exc)
