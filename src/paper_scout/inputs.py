"""Coercion and validation of raw tool arguments.

Tool arguments arrive from a model or a command line, so list-valued fields
are accepted in three shapes, tried in this order:

1. a real list (or tuple) of strings,
2. a string that looks like a JSON array (``'["cs.LG", "cs.CV"]'``),
3. a comma-separated string (``"cs.LG, cs.CV"``).

Anything else is an ``InvalidInputError`` naming the offending field.

Argument keys are the camelCase names advertised in ``TOOL_DEFINITIONS``
(``arxivId``, ``maxResults``, ``recencyDays``, ``filterText``); the snake_case
spellings are accepted as aliases.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from paper_scout.errors import InvalidInputError
from paper_scout.models import LIST_MAX_LIMIT, MAX_RECENCY_WINDOW_DAYS, NormalizedId
from paper_scout.parsing import is_valid_arxiv_id, normalize_arxiv_id

# ============================================================================
# Primitive coercions
# ============================================================================


def coerce_string_list(value: Any, field_name: str) -> list[str] | None:
    """Coerce a loosely-typed list argument; None when absent or blank."""
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        items = value
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.startswith("["):
            try:
                items = json.loads(text)
            except json.JSONDecodeError as exc:
                raise InvalidInputError(field_name, f"malformed JSON list: {exc.msg}") from exc
            if not isinstance(items, list):
                raise InvalidInputError(field_name, "expected a list of strings")
        else:
            items = text.split(",")
    else:
        raise InvalidInputError(
            field_name, f"expected a list of strings, got {type(value).__name__}"
        )

    result: list[str] = []
    for item in items:
        if not isinstance(item, str):
            raise InvalidInputError(field_name, f"expected strings, got {type(item).__name__}")
        cleaned = item.strip()
        if cleaned:
            result.append(cleaned)
    return result


def coerce_positive_int(value: Any, field_name: str, *, maximum: int | None = None) -> int | None:
    """Coerce an optional positive integer; numeric strings are accepted."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        raise InvalidInputError(field_name, "expected a positive integer")
    if isinstance(value, int):
        number = value
    elif isinstance(value, float) and value.is_integer():
        number = int(value)
    elif isinstance(value, str):
        try:
            number = int(value.strip())
        except ValueError as exc:
            raise InvalidInputError(field_name, f"not an integer: {value!r}") from exc
    else:
        raise InvalidInputError(field_name, "expected a positive integer")

    if number <= 0:
        raise InvalidInputError(field_name, f"must be positive, got {number}")
    if maximum is not None and number > maximum:
        raise InvalidInputError(field_name, f"must be at most {maximum}, got {number}")
    return number


def coerce_optional_text(value: Any, field_name: str) -> str | None:
    """Strip a free-text argument; blank becomes None."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidInputError(field_name, f"expected text, got {type(value).__name__}")
    return value.strip() or None


def require_text(value: Any, field_name: str) -> str:
    """A required, non-blank text argument."""
    text = coerce_optional_text(value, field_name)
    if text is None:
        raise InvalidInputError(field_name, "is required")
    return text


def require_arxiv_id(value: Any, field_name: str = "arxivId") -> NormalizedId:
    """Normalize an id or arXiv URL and reject anything that is not an arXiv id."""
    raw = require_text(value, field_name)
    normalized = normalize_arxiv_id(raw)
    if not is_valid_arxiv_id(normalized.canonical):
        raise InvalidInputError(field_name, f"not a valid arXiv id: {raw!r}")
    return normalized


# ============================================================================
# Tool inputs
# ============================================================================


@dataclass(slots=True)
class SearchInput:
    query: str
    max_results: int | None = None
    recency_days: int | None = None
    categories: list[str] | None = None


@dataclass(slots=True)
class SummarizeInput:
    arxiv_id: NormalizedId


@dataclass(slots=True)
class SaveInput:
    arxiv_id: NormalizedId
    tags: list[str] = field(default_factory=list)


@dataclass(slots=True)
class ListInput:
    filter_text: str | None = None
    tag: str | None = None
    limit: int | None = None


@dataclass(slots=True)
class RemoveInput:
    arxiv_id: NormalizedId


def _arg(args: Mapping[str, Any], key: str, alias: str) -> Any:
    """Read ``key`` (camelCase, as advertised), falling back to its snake_case alias."""
    value = args.get(key)
    return args.get(alias) if value is None else value


def parse_search_input(args: Mapping[str, Any]) -> SearchInput:
    return SearchInput(
        query=require_text(args.get("query"), "query"),
        max_results=coerce_positive_int(_arg(args, "maxResults", "max_results"), "maxResults"),
        recency_days=coerce_positive_int(
            _arg(args, "recencyDays", "recency_days"),
            "recencyDays",
            maximum=MAX_RECENCY_WINDOW_DAYS,
        ),
        categories=coerce_string_list(args.get("categories"), "categories"),
    )


def parse_summarize_input(args: Mapping[str, Any]) -> SummarizeInput:
    return SummarizeInput(arxiv_id=require_arxiv_id(_arg(args, "arxivId", "arxiv_id")))


def parse_save_input(args: Mapping[str, Any]) -> SaveInput:
    return SaveInput(
        arxiv_id=require_arxiv_id(_arg(args, "arxivId", "arxiv_id")),
        tags=coerce_string_list(args.get("tags"), "tags") or [],
    )


def parse_list_input(args: Mapping[str, Any]) -> ListInput:
    return ListInput(
        filter_text=coerce_optional_text(_arg(args, "filterText", "filter_text"), "filterText"),
        tag=coerce_optional_text(args.get("tag"), "tag"),
        limit=coerce_positive_int(args.get("limit"), "limit", maximum=LIST_MAX_LIMIT),
    )


def parse_remove_input(args: Mapping[str, Any]) -> RemoveInput:
    return RemoveInput(arxiv_id=require_arxiv_id(_arg(args, "arxivId", "arxiv_id")))


__all__ = [
    "ListInput",
    "RemoveInput",
    "SaveInput",
    "SearchInput",
    "SummarizeInput",
    "coerce_optional_text",
    "coerce_positive_int",
    "coerce_string_list",
    "parse_list_input",
    "parse_remove_input",
    "parse_save_input",
    "parse_search_input",
    "parse_summarize_input",
    "require_arxiv_id",
    "require_text",
]
