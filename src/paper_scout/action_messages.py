"""User-facing copy builders for tool errors, warnings, and confirmations."""

from __future__ import annotations

from paper_scout.errors import (
    ArxivHttpError,
    ConflictError,
    InvalidInputError,
    PaperNotFoundError,
    PaperScoutError,
)


def _ensure_sentence(text: str) -> str:
    """Return text with terminal sentence punctuation."""
    cleaned = text.strip()
    if not cleaned:
        return ""
    if cleaned.endswith((".", "!", "?")):
        return cleaned
    return f"{cleaned}."


def build_actionable_error(
    action: str,
    *,
    next_step: str,
    why: str | None = None,
) -> str:
    """Build a 2-3 line actionable error message."""
    lines = [f"Could not {action.strip()}."]
    if why:
        lines.append(f"Why: {_ensure_sentence(why)}")
    lines.append(build_next_step_hint(next_step))
    return "\n".join(lines)


def build_next_step_hint(next_step: str) -> str:
    """Build a canonical next-step guidance line."""
    return f"Next step: {_ensure_sentence(next_step)}"


def build_actionable_warning(
    message: str,
    *,
    next_step: str,
    why: str | None = None,
) -> str:
    """Build a 2-3 line actionable warning message."""
    lines = [_ensure_sentence(message)]
    if why:
        lines.append(f"Why: {_ensure_sentence(why)}")
    lines.append(build_next_step_hint(next_step))
    return "\n".join(lines)


def build_actionable_success(
    message: str,
    *,
    detail: str | None = None,
    next_step: str | None = None,
) -> str:
    """Build a concise success message with optional detail and next step."""
    lines = [_ensure_sentence(message)]
    if detail:
        lines.append(_ensure_sentence(detail))
    if next_step:
        lines.append(build_next_step_hint(next_step))
    return "\n".join(lines)


# ============================================================================
# Error kinds
# ============================================================================

NETWORK_ERROR_MESSAGE = "Failed to connect to arXiv. Please try again later."
GENERATION_ERROR_MESSAGE = "Failed to generate summary. Please try again."


def build_http_error_message(status_code: int) -> str:
    return f"arXiv returned an error (HTTP {status_code}). Please try again."


def build_not_found_message(arxiv_id: str) -> str:
    return f"Paper with arXiv ID '{arxiv_id}' not found. Please check the ID and try again."


def describe_error(exc: PaperScoutError) -> str:
    """Map a classified error to the message shown to the user."""
    if isinstance(exc, ArxivHttpError):
        return build_http_error_message(exc.status_code)
    if isinstance(exc, PaperNotFoundError):
        if exc.where == "arXiv":
            return build_not_found_message(exc.arxiv_id)
        return build_actionable_error(
            f"find '{exc.arxiv_id}' in your {exc.where}",
            next_step="list your saved papers to check the id",
        )
    if isinstance(exc, ConflictError):
        return build_actionable_error(
            f"save '{exc.arxiv_id}'",
            why="another save of the same paper finished first",
            next_step="list your saved papers; the paper is already there",
        )
    if isinstance(exc, InvalidInputError):
        return build_actionable_error(
            f"use the value given for '{exc.field}'",
            why=str(exc),
            next_step="correct the argument and try again",
        )
    if exc.kind == "network":
        return NETWORK_ERROR_MESSAGE
    if exc.kind == "generation":
        return GENERATION_ERROR_MESSAGE
    if exc.kind == "parse":
        return build_actionable_error(
            "read the response from arXiv",
            why="the API returned something that is not an Atom feed",
            next_step="try again in a few minutes",
        )
    if exc.kind == "step_limit":
        return build_actionable_error(
            "run another tool this turn",
            why=str(exc),
            next_step="continue in a new turn",
        )
    if exc.kind == "database":
        return build_actionable_error(
            "access your library",
            why=str(exc),
            next_step="check that the library database file is writable",
        )
    return build_actionable_error("complete the request", why=str(exc), next_step="try again")


# ============================================================================
# Confirmations and warnings
# ============================================================================


def build_remove_confirmation_prompt(arxiv_id: str, title: str | None = None) -> str:
    """Build confirmation prompt text for removing a saved paper."""
    label = f"'{title}' ({arxiv_id})" if title else arxiv_id
    return f"Remove {label} from your library?\nThis cannot be undone."


def build_preview_warning(reason: str) -> str:
    """Warning attached when the library preview could not be refreshed."""
    return build_actionable_warning(
        "Library preview was not refreshed",
        why=reason,
        next_step="list your saved papers to see the current library",
    )


def build_cache_warning(reason: str) -> str:
    """Warning attached when a generated summary could not be cached."""
    return build_actionable_warning(
        "Summary was generated but not cached",
        why=reason,
        next_step="the next request for this paper will generate it again",
    )


__all__ = [
    "GENERATION_ERROR_MESSAGE",
    "NETWORK_ERROR_MESSAGE",
    "build_actionable_error",
    "build_actionable_success",
    "build_actionable_warning",
    "build_cache_warning",
    "build_http_error_message",
    "build_next_step_hint",
    "build_not_found_message",
    "build_preview_warning",
    "build_remove_confirmation_prompt",
    "describe_error",
]
