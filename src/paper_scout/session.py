"""Tool registry and per-turn dispatcher.

``TOOL_DEFINITIONS`` is what an orchestration loop advertises to a model.
``ToolSession`` routes raw, loosely-typed arguments to the tool operations,
enforces the per-turn step limit, and turns confirmation-gated calls into
proposals that only run after ``approve``.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import httpx

from paper_scout.confirmation import ApprovalQueue, parse_approval
from paper_scout.errors import InvalidInputError, PaperScoutError, StepLimitError
from paper_scout.inputs import (
    parse_list_input,
    parse_remove_input,
    parse_save_input,
    parse_search_input,
    parse_summarize_input,
)
from paper_scout.library import LibraryStore
from paper_scout.llm_providers import LLMProvider, resolve_provider
from paper_scout.models import (
    ARXIV_API_MAX_RESULTS_LIMIT,
    LIST_DEFAULT_LIMIT,
    LIST_MAX_LIMIT,
    MAX_RECENCY_WINDOW_DAYS,
    UserConfig,
)
from paper_scout.storage import SQLiteStore, SqlStore, get_library_db_path
from paper_scout.summaries import SummaryCache
from paper_scout.tools import (
    REMOVE_TOOL_NAME,
    RemovePaperResult,
    ToolContext,
    ToolError,
    list_saved_papers,
    propose_remove,
    refresh_library_preview,
    resolve_remove,
    save_paper,
    search_papers,
    summarize_paper,
    tool_error_from_exception,
)

logger = logging.getLogger(__name__)

MAX_TOOL_STEPS_PER_TURN = 10

_ARXIV_ID_PROPERTY = {
    "type": "string",
    "description": "arXiv paper ID or URL (e.g., '2301.01234' or '2301.01234v2')",
}


@dataclass(frozen=True, slots=True)
class ToolDefinition:
    """How a tool is advertised: name, purpose, argument schema, gating."""

    name: str
    description: str
    parameters: dict[str, Any]
    requires_confirmation: bool = False


TOOL_DEFINITIONS: tuple[ToolDefinition, ...] = (
    ToolDefinition(
        name="search_papers",
        description=(
            "Search arXiv for recent papers on a topic, newest submissions first. "
            "Results older than the recency window are dropped."
        ),
        parameters={
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "Free-text search terms"},
                "maxResults": {
                    "type": "integer",
                    "minimum": 1,
                    "maximum": ARXIV_API_MAX_RESULTS_LIMIT,
                    "description": "Papers to request from arXiv (default: preference)",
                },
                "recencyDays": {
                    "type": "integer",
                    "minimum": 1,
                    "maximum": MAX_RECENCY_WINDOW_DAYS,
                    "description": "Only keep papers published within this many days",
                },
                "categories": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "arXiv categories to restrict to, e.g. ['cs.LG']",
                },
            },
            "required": ["query"],
        },
    ),
    ToolDefinition(
        name="summarize_paper",
        description=(
            "Generate a structured summary of an arXiv paper: TL;DR, key contributions, "
            "limitations, target audience, and keywords."
        ),
        parameters={
            "type": "object",
            "properties": {"arxivId": _ARXIV_ID_PROPERTY},
            "required": ["arxivId"],
        },
    ),
    ToolDefinition(
        name="save_paper",
        description=(
            "Save an arXiv paper to the personal library with optional tags. "
            "Saving an already-saved paper merges the tags."
        ),
        parameters={
            "type": "object",
            "properties": {
                "arxivId": _ARXIV_ID_PROPERTY,
                "tags": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Tags to attach, e.g. ['diffusion', 'image-generation']",
                },
            },
            "required": ["arxivId"],
        },
    ),
    ToolDefinition(
        name="list_saved_papers",
        description=(
            "List papers in the personal library, most recently saved first. "
            "Filter by text in title/abstract and by tag."
        ),
        parameters={
            "type": "object",
            "properties": {
                "filterText": {
                    "type": "string",
                    "description": "Case-insensitive text to find in titles and abstracts",
                },
                "tag": {"type": "string", "description": "Only papers carrying this tag"},
                "limit": {
                    "type": "integer",
                    "minimum": 1,
                    "maximum": LIST_MAX_LIMIT,
                    "description": f"Maximum papers to return (default {LIST_DEFAULT_LIMIT})",
                },
            },
        },
    ),
    ToolDefinition(
        name=REMOVE_TOOL_NAME,
        description="Remove a paper from the personal library. Requires user approval.",
        parameters={
            "type": "object",
            "properties": {"arxivId": _ARXIV_ID_PROPERTY},
            "required": ["arxivId"],
        },
        requires_confirmation=True,
    ),
)


@dataclass(slots=True)
class ToolFailure:
    """Returned by ``ToolSession.call`` when a call never reached its tool."""

    tool: str
    error: ToolError

    @property
    def ok(self) -> bool:
        return False


Handler = Callable[[ToolContext, Mapping[str, Any]], Awaitable[Any]]


async def _call_search(ctx: ToolContext, args: Mapping[str, Any]) -> Any:
    return await search_papers(ctx, parse_search_input(args))


async def _call_summarize(ctx: ToolContext, args: Mapping[str, Any]) -> Any:
    return await summarize_paper(ctx, parse_summarize_input(args))


async def _call_save(ctx: ToolContext, args: Mapping[str, Any]) -> Any:
    return await save_paper(ctx, parse_save_input(args))


async def _call_list(ctx: ToolContext, args: Mapping[str, Any]) -> Any:
    return await list_saved_papers(ctx, parse_list_input(args))


async def _call_remove(ctx: ToolContext, args: Mapping[str, Any]) -> Any:
    return await propose_remove(ctx, parse_remove_input(args))


_HANDLERS: dict[str, Handler] = {
    "search_papers": _call_search,
    "summarize_paper": _call_summarize,
    "save_paper": _call_save,
    "list_saved_papers": _call_list,
    REMOVE_TOOL_NAME: _call_remove,
}


class ToolSession:
    """Dispatches tool calls for one conversation against one library."""

    def __init__(self, ctx: ToolContext, *, max_steps: int = MAX_TOOL_STEPS_PER_TURN) -> None:
        self.ctx = ctx
        self.max_steps = max_steps
        self._steps = 0

    @property
    def steps_taken(self) -> int:
        return self._steps

    def begin_turn(self) -> None:
        """Reset the step budget at the start of a user turn."""
        self._steps = 0

    async def call(self, name: str, args: Mapping[str, Any] | None = None) -> Any:
        """Validate raw arguments and run one tool.

        Returns the tool's result dataclass, or ``ToolFailure`` when the call
        was rejected before reaching the tool (unknown name, bad arguments,
        step limit). Calls to confirmation-gated tools return a proposal.
        """
        try:
            if self._steps >= self.max_steps:
                raise StepLimitError(self.max_steps)
            handler = _HANDLERS.get(name)
            if handler is None:
                raise InvalidInputError("name", f"unknown tool {name!r}")
            self._steps += 1
            logger.debug("Tool call %d/%d: %s", self._steps, self.max_steps, name)
            return await handler(self.ctx, args or {})
        except InvalidInputError as exc:
            return ToolFailure(tool=name, error=tool_error_from_exception(exc))
        except StepLimitError as exc:
            logger.warning("Step limit reached; refusing %s", name)
            return ToolFailure(tool=name, error=tool_error_from_exception(exc))

    async def approve(self, action_id: str, answer: str | bool) -> RemovePaperResult | ToolFailure:
        """Deliver the user's answer to a pending proposal and run it if approved."""
        approved = answer if isinstance(answer, bool) else parse_approval(answer)
        if approved is None:
            exc = InvalidInputError("answer", f"not an approval signal: {answer!r}")
            return ToolFailure(tool=REMOVE_TOOL_NAME, error=tool_error_from_exception(exc))
        return await resolve_remove(self.ctx, action_id, approved)


def open_library_store(config: UserConfig) -> SQLiteStore:
    """Open the configured library database (default: under the config dir)."""
    path = Path(config.library_db_path) if config.library_db_path else get_library_db_path()
    return SQLiteStore(path)


def build_tool_context(
    config: UserConfig,
    store: SqlStore,
    *,
    http_client: httpx.AsyncClient | None = None,
    llm_provider: LLMProvider | None = None,
) -> ToolContext:
    """Wire the stores and services for one library and load its preview.

    The LLM provider defaults to the one configured in ``config``.
    """
    library = LibraryStore(store)
    summaries = SummaryCache(store)
    approvals = ApprovalQueue(store)
    for table in (library, summaries, approvals):
        table.init_schema()
    ctx = ToolContext(
        library=library,
        summaries=summaries,
        approvals=approvals,
        llm_provider=llm_provider if llm_provider is not None else resolve_provider(config),
        preferences=config.preferences,
        http_client=http_client,
        arxiv_timeout_seconds=config.arxiv_timeout_seconds,
        arxiv_throttle_seconds=config.arxiv_throttle_seconds,
        user_agent=config.user_agent,
        llm_timeout_seconds=config.llm_timeout_seconds,
        preview_size=config.preview_size,
    )
    try:
        refresh_library_preview(ctx)
    except PaperScoutError:
        logger.warning("Could not load the initial library preview", exc_info=True)
    return ctx


__all__ = [
    "MAX_TOOL_STEPS_PER_TURN",
    "TOOL_DEFINITIONS",
    "ToolDefinition",
    "ToolFailure",
    "ToolSession",
    "build_tool_context",
    "open_library_store",
]
