"""Tool operations: search, summarize, save, list, and confirmation-gated remove.

Every operation takes a ``ToolContext`` plus validated input and returns a
result dataclass. Classified failures (``PaperScoutError``) come back as a
``ToolError`` on the result; anything unclassified propagates to the caller.
Failures of secondary effects (preview refresh, cache write) are attached as
warnings and never fail the operation.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import httpx

from paper_scout.action_messages import (
    build_actionable_error,
    build_cache_warning,
    build_preview_warning,
    build_remove_confirmation_prompt,
    describe_error,
)
from paper_scout.confirmation import ApprovalQueue, PendingAction
from paper_scout.errors import (
    DatabaseError,
    GenerationError,
    InvalidInputError,
    PaperNotFoundError,
    PaperScoutError,
)
from paper_scout.inputs import ListInput, RemoveInput, SaveInput, SearchInput, SummarizeInput
from paper_scout.library import LibraryStore
from paper_scout.llm import SUMMARY_PROMPT_VERSION
from paper_scout.llm_providers import LLMProvider
from paper_scout.models import (
    DEFAULT_ARXIV_TIMEOUT_SECONDS,
    DEFAULT_LLM_TIMEOUT_SECONDS,
    DEFAULT_USER_AGENT,
    LIBRARY_PREVIEW_SIZE,
    LIST_DEFAULT_LIMIT,
    MAX_RECENCY_WINDOW_DAYS,
    LibraryFilter,
    LibraryPreviewItem,
    Paper,
    Preferences,
    SavedPaper,
    SearchOptions,
)
from paper_scout.services.interfaces import AppServices, build_default_app_services
from paper_scout.summaries import SummaryCache

logger = logging.getLogger(__name__)

REMOVE_TOOL_NAME = "remove_saved_paper"


def _utcnow() -> datetime:
    return datetime.now(UTC)


# ============================================================================
# Context & results
# ============================================================================


@dataclass(slots=True)
class ToolContext:
    """Everything a tool operation needs, passed explicitly.

    One context serves one user's library; ``library_preview`` mirrors the
    most recently saved papers and ``on_preview_change`` (if set) is told
    whenever it is recomputed.
    """

    library: LibraryStore
    summaries: SummaryCache
    approvals: ApprovalQueue
    services: AppServices = field(default_factory=build_default_app_services)
    llm_provider: LLMProvider | None = None
    preferences: Preferences = field(default_factory=Preferences)
    http_client: httpx.AsyncClient | None = None
    arxiv_timeout_seconds: float = DEFAULT_ARXIV_TIMEOUT_SECONDS
    arxiv_throttle_seconds: float = 0.0
    user_agent: str = DEFAULT_USER_AGENT
    llm_timeout_seconds: int = DEFAULT_LLM_TIMEOUT_SECONDS
    preview_size: int = LIBRARY_PREVIEW_SIZE
    clock: Callable[[], datetime] = _utcnow
    library_preview: list[LibraryPreviewItem] = field(default_factory=list)
    on_preview_change: Callable[[list[LibraryPreviewItem]], None] | None = None


@dataclass(slots=True)
class ToolError:
    """A failure returned as data: a stable kind plus a user-facing message."""

    kind: str
    message: str


def tool_error_from_exception(exc: PaperScoutError) -> ToolError:
    """Convert a classified exception into its data form."""
    return ToolError(kind=exc.kind, message=describe_error(exc))


@dataclass(slots=True)
class SearchResult:
    query: str
    recency_days: int
    papers: list[Paper] = field(default_factory=list)
    total_fetched: int = 0
    total_after_filter: int = 0
    error: ToolError | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class SummarizeResult:
    arxiv_id: str
    summary_md: str = ""
    cached: bool = False
    title: str | None = None
    error: ToolError | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class SaveResult:
    arxiv_id: str
    title: str = ""
    tags: list[str] = field(default_factory=list)
    saved_at: datetime | None = None
    was_already_saved: bool = False
    error: ToolError | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class ListSavedResult:
    items: list[SavedPaper] = field(default_factory=list)
    total_matched: int = 0
    truncated: bool = False
    filter_text: str | None = None
    tag: str | None = None
    error: ToolError | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class RemoveProposal:
    """Phase one of a removal: nothing has been deleted yet."""

    arxiv_id: str
    action_id: str = ""
    prompt: str = ""
    title: str | None = None
    error: ToolError | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class RemovePaperResult:
    """Phase two of a removal: the outcome after the approval decision."""

    arxiv_id: str
    action_id: str
    state: str = "aborted"  # final approval state: "executed" or "aborted"
    success: bool = False
    title: str | None = None
    error: ToolError | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None


# ============================================================================
# Library preview
# ============================================================================


def refresh_library_preview(ctx: ToolContext) -> list[LibraryPreviewItem]:
    """Recompute the preview of recently saved papers and publish it."""
    preview = ctx.library.recent(ctx.preview_size)
    ctx.library_preview = preview
    if ctx.on_preview_change is not None:
        ctx.on_preview_change(preview)
    return preview


def _refresh_preview_or_warn(ctx: ToolContext, warnings: list[str]) -> None:
    try:
        refresh_library_preview(ctx)
    except DatabaseError as exc:
        logger.warning("Library preview refresh failed: %s", exc, exc_info=True)
        warnings.append(build_preview_warning(str(exc)))


# ============================================================================
# Operations
# ============================================================================


async def _fetch_paper(ctx: ToolContext, arxiv_id: str) -> Paper:
    """Fetch full metadata from arXiv; PaperNotFoundError when absent."""
    paper = await ctx.services.arxiv_api.fetch_by_id(
        client=ctx.http_client,
        arxiv_id=arxiv_id,
        timeout_seconds=ctx.arxiv_timeout_seconds,
        user_agent=ctx.user_agent,
        throttle_seconds=ctx.arxiv_throttle_seconds,
    )
    if paper is None:
        raise PaperNotFoundError(arxiv_id)
    return paper


async def search_papers(ctx: ToolContext, inp: SearchInput) -> SearchResult:
    """Search arXiv, newest submissions first, keeping only recent papers.

    Omitted arguments fall back to the context's preferences. ``published``
    decides recency; revisions of older papers do not count as recent.
    """
    prefs = ctx.preferences
    recency_days = min(inp.recency_days or prefs.recency_window_days, MAX_RECENCY_WINDOW_DAYS)
    categories = inp.categories if inp.categories is not None else prefs.default_categories
    options = SearchOptions(
        max_results=inp.max_results or prefs.default_max_results,
        sort_by="submittedDate",
        sort_order="descending",
        categories=list(categories) or None,
    )
    result = SearchResult(query=inp.query, recency_days=recency_days)
    try:
        papers = await ctx.services.arxiv_api.search(
            client=ctx.http_client,
            query=inp.query,
            options=options,
            timeout_seconds=ctx.arxiv_timeout_seconds,
            user_agent=ctx.user_agent,
            throttle_seconds=ctx.arxiv_throttle_seconds,
        )
    except PaperScoutError as exc:
        result.error = tool_error_from_exception(exc)
        return result

    cutoff = ctx.clock() - timedelta(days=recency_days)
    result.total_fetched = len(papers)
    result.papers = [paper for paper in papers if paper.published >= cutoff]
    result.total_after_filter = len(result.papers)
    logger.debug(
        "Search %r: %d fetched, %d within %d days",
        inp.query,
        result.total_fetched,
        result.total_after_filter,
        recency_days,
    )
    return result


async def summarize_paper(ctx: ToolContext, inp: SummarizeInput) -> SummarizeResult:
    """Return a cached summary, or fetch the paper and generate one."""
    arxiv_id = inp.arxiv_id.canonical
    result = SummarizeResult(arxiv_id=arxiv_id)

    try:
        cached = ctx.summaries.get(arxiv_id, SUMMARY_PROMPT_VERSION)
    except DatabaseError:
        logger.warning("Summary cache lookup failed for %s", arxiv_id, exc_info=True)
        cached = None
    if cached is not None:
        result.summary_md = cached
        result.cached = True
        return result

    if ctx.llm_provider is None:
        result.error = ToolError(
            kind=GenerationError.kind,
            message=build_actionable_error(
                "generate a summary",
                why="no LLM command is configured",
                next_step="set llm_preset or llm_command in config.json",
            ),
        )
        return result

    try:
        paper = await _fetch_paper(ctx, arxiv_id)
        result.title = paper.title
        summary, error = await ctx.services.llm.generate_summary(
            paper=paper,
            provider=ctx.llm_provider,
            timeout_seconds=ctx.llm_timeout_seconds,
        )
        if summary is None:
            raise GenerationError(error or "LLM command failed")
    except PaperScoutError as exc:
        result.error = tool_error_from_exception(exc)
        return result

    result.summary_md = summary
    try:
        ctx.summaries.put(arxiv_id, SUMMARY_PROMPT_VERSION, summary)
    except DatabaseError as exc:
        logger.warning("Failed to cache summary for %s", arxiv_id, exc_info=True)
        result.warnings.append(build_cache_warning(str(exc)))
    return result


async def save_paper(ctx: ToolContext, inp: SaveInput) -> SaveResult:
    """Save a paper (fetching full metadata first) or merge tags into it."""
    arxiv_id = inp.arxiv_id.canonical
    result = SaveResult(arxiv_id=arxiv_id)
    try:
        outcome = ctx.library.merge_tags(arxiv_id, inp.tags)
        if outcome is None:
            paper = await _fetch_paper(ctx, arxiv_id)
            result.title = paper.title
            outcome = ctx.library.insert(paper, inp.tags)
    except PaperScoutError as exc:
        result.error = tool_error_from_exception(exc)
        return result

    saved = outcome.paper
    result.title = saved.title
    result.tags = outcome.merged_tags
    result.saved_at = saved.saved_at
    result.was_already_saved = outcome.was_already_present
    _refresh_preview_or_warn(ctx, result.warnings)
    return result


async def list_saved_papers(ctx: ToolContext, inp: ListInput) -> ListSavedResult:
    """List saved papers, newest first, optionally filtered."""
    flt = LibraryFilter(
        text=inp.filter_text,
        tag=inp.tag,
        limit=inp.limit or LIST_DEFAULT_LIMIT,
    )
    result = ListSavedResult(filter_text=inp.filter_text, tag=inp.tag)
    try:
        listing = ctx.library.list(flt)
    except PaperScoutError as exc:
        result.error = tool_error_from_exception(exc)
        return result
    result.items = listing.items
    result.total_matched = listing.total_matched
    result.truncated = listing.truncated
    return result


async def propose_remove(ctx: ToolContext, inp: RemoveInput) -> RemoveProposal:
    """Record a removal request that must be approved before anything is deleted."""
    arxiv_id = inp.arxiv_id.canonical
    proposal = RemoveProposal(arxiv_id=arxiv_id)
    try:
        saved = ctx.library.get(arxiv_id)
        if saved is None:
            raise PaperNotFoundError(arxiv_id, where="library")
        prompt = build_remove_confirmation_prompt(arxiv_id, saved.title)
        action = ctx.approvals.propose(REMOVE_TOOL_NAME, {"arxiv_id": arxiv_id}, summary=prompt)
    except PaperScoutError as exc:
        proposal.error = tool_error_from_exception(exc)
        return proposal
    proposal.action_id = action.action_id
    proposal.prompt = prompt
    proposal.title = saved.title
    return proposal


async def resolve_remove(ctx: ToolContext, action_id: str, approved: bool) -> RemovePaperResult:
    """Apply the approval decision for a pending removal.

    Denied or expired proposals end in ``aborted`` with the library untouched.
    """
    try:
        action = ctx.approvals.resolve(action_id, approved)
        if action.tool_name != REMOVE_TOOL_NAME:
            raise InvalidInputError("action_id", f"action {action_id!r} is not a removal")
    except PaperScoutError as exc:
        return RemovePaperResult(
            arxiv_id="", action_id=action_id, error=tool_error_from_exception(exc)
        )
    return await _execute_remove(ctx, action)


async def _execute_remove(ctx: ToolContext, action: PendingAction) -> RemovePaperResult:
    arxiv_id = str(action.payload.get("arxiv_id", ""))
    result = RemovePaperResult(arxiv_id=arxiv_id, action_id=action.action_id, state=action.state)
    if action.state != "approved":
        logger.info("Removal of %s %s (%s)", arxiv_id, action.state, action.reason)
        return result

    try:
        with ctx.library.transaction():
            outcome = ctx.library.remove(arxiv_id)
            ctx.approvals.mark_executed(action.action_id)
        result.state = "executed"
        if not outcome.found:
            raise PaperNotFoundError(arxiv_id, where="library")
    except PaperScoutError as exc:
        result.error = tool_error_from_exception(exc)
        return result

    result.success = True
    result.title = outcome.removed_title
    _refresh_preview_or_warn(ctx, result.warnings)
    return result


__all__ = [
    "REMOVE_TOOL_NAME",
    "ListSavedResult",
    "RemovePaperResult",
    "RemoveProposal",
    "SaveResult",
    "SearchResult",
    "SummarizeResult",
    "ToolContext",
    "ToolError",
    "list_saved_papers",
    "propose_remove",
    "refresh_library_preview",
    "resolve_remove",
    "save_paper",
    "search_papers",
    "summarize_paper",
    "tool_error_from_exception",
]
