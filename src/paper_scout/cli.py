"""Command-line front end for the paper-scout tools."""

from __future__ import annotations

import argparse
import asyncio
import logging
import logging.handlers
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx

from paper_scout.action_messages import build_actionable_error, build_actionable_success
from paper_scout.config import get_config_dir, load_config, save_config, update_preferences
from paper_scout.errors import DatabaseError
from paper_scout.llm_providers import LLMProvider
from paper_scout.models import (
    ARXIV_API_MAX_RESULTS_LIMIT,
    LIST_DEFAULT_LIMIT,
    LIST_MAX_LIMIT,
    UserConfig,
)
from paper_scout.session import ToolSession, build_tool_context, open_library_store
from paper_scout.storage import SQLiteStore
from paper_scout.tools import (
    ListSavedResult,
    RemovePaperResult,
    RemoveProposal,
    SaveResult,
    SearchResult,
    SummarizeResult,
)

logger = logging.getLogger(__name__)

DEBUG_LOG_FILENAME = "debug.log"


def _configure_logging(debug: bool) -> None:
    """Configure logging. When debug=True, logs to file at DEBUG level."""
    if not debug:
        logging.basicConfig(level=logging.WARNING, format="%(levelname)s: %(message)s")
        return

    log_dir = get_config_dir()
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / DEBUG_LOG_FILENAME

    handler = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=5 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8",
    )
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    logging.root.addHandler(handler)
    logging.root.setLevel(logging.DEBUG)


def _positive_int(raw: str) -> int:
    try:
        value = int(raw)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"not an integer: {raw!r}") from exc
    if value <= 0:
        raise argparse.ArgumentTypeError(f"must be positive, got {value}")
    return value


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="paper-scout",
        description="Search arXiv, summarize papers, and keep a personal reading library",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging to file (~/.config/paper-scout/debug.log)",
    )
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="Library database to use (default: library_db_path from config)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    search = sub.add_parser("search", help="Search arXiv for recent papers")
    search.add_argument("query", help="Free-text search terms")
    search.add_argument(
        "-n",
        "--max-results",
        type=_positive_int,
        default=None,
        help=f"Papers to request (1-{ARXIV_API_MAX_RESULTS_LIMIT}; default: preference)",
    )
    search.add_argument(
        "-d",
        "--recency-days",
        type=_positive_int,
        default=None,
        help="Only show papers published within this many days (default: preference)",
    )
    search.add_argument(
        "-c",
        "--category",
        action="append",
        dest="categories",
        default=None,
        help="Restrict to an arXiv category (repeatable, e.g. -c cs.LG -c cs.CV)",
    )

    summarize = sub.add_parser("summarize", help="Summarize a paper with the configured LLM")
    summarize.add_argument("arxiv_id", help="arXiv id or abs/pdf URL")

    save = sub.add_parser("save", help="Save a paper to the library")
    save.add_argument("arxiv_id", help="arXiv id or abs/pdf URL")
    save.add_argument(
        "-t", "--tag", action="append", dest="tags", default=None, help="Tag (repeatable)"
    )

    list_cmd = sub.add_parser("list", help="List saved papers, newest first")
    list_cmd.add_argument("--text", default=None, help="Text to find in titles and abstracts")
    list_cmd.add_argument("--tag", default=None, help="Only papers with this tag")
    list_cmd.add_argument(
        "--limit",
        type=_positive_int,
        default=None,
        help=f"Maximum papers to show (1-{LIST_MAX_LIMIT}; default {LIST_DEFAULT_LIMIT})",
    )

    remove = sub.add_parser("remove", help="Remove a saved paper (asks for confirmation)")
    remove.add_argument("arxiv_id", help="arXiv id or abs/pdf URL")
    remove_mode = remove.add_mutually_exclusive_group()
    remove_mode.add_argument("-y", "--yes", action="store_true", help="Skip the confirmation")
    remove_mode.add_argument(
        "--defer",
        action="store_true",
        help="Only record the request; answer it later with 'approve'",
    )

    approve = sub.add_parser("approve", help="Answer a deferred removal request")
    approve.add_argument("action_id", help="Request id printed by 'remove --defer'")
    approve.add_argument("answer", help="yes or no")

    sub.add_parser("preview", help="Show the most recently saved papers")

    prefs = sub.add_parser("prefs", help="Show or change search preferences")
    prefs.add_argument("--max-results", type=_positive_int, default=None)
    prefs.add_argument("--recency-days", type=_positive_int, default=None)
    prefs.add_argument(
        "--categories",
        default=None,
        help="Comma-separated default categories (empty string clears them)",
    )
    return parser


# ============================================================================
# Output
# ============================================================================


def _print_error(result: Any) -> int:
    print(result.error.message, file=sys.stderr)
    return 1


def _print_warnings(result: Any) -> None:
    for warning in getattr(result, "warnings", []):
        print(f"Warning: {warning}", file=sys.stderr)


def _print_search(result: SearchResult) -> int:
    if result.error:
        return _print_error(result)
    print(
        f"{result.total_after_filter} of {result.total_fetched} papers "
        f"published in the last {result.recency_days} days:"
    )
    for paper in result.papers:
        authors = ", ".join(paper.authors[:3]) + (" et al." if len(paper.authors) > 3 else "")
        print(f"  {paper.arxiv_id}  {paper.published:%Y-%m-%d}  {paper.title}")
        if authors:
            print(f"      {authors}")
    return 0


def _print_summary(result: SummarizeResult) -> int:
    if result.error:
        return _print_error(result)
    if result.title:
        print(f"# {result.title}\n")
    print(result.summary_md)
    if result.cached:
        print("\n(cached)", file=sys.stderr)
    return 0


def _print_save(result: SaveResult) -> int:
    if result.error:
        return _print_error(result)
    tags = ", ".join(result.tags) or "none"
    message = "Updated tags for" if result.was_already_saved else "Saved"
    print(
        build_actionable_success(
            f"{message} {result.arxiv_id}: {result.title}", detail=f"Tags: {tags}"
        )
    )
    return 0


def _print_list(result: ListSavedResult) -> int:
    if result.error:
        return _print_error(result)
    if not result.items:
        print("No saved papers match.")
        return 0
    for paper in result.items:
        tags = f"  [{', '.join(paper.tags)}]" if paper.tags else ""
        print(f"  {paper.arxiv_id}  {paper.title}{tags}")
    if result.truncated:
        print(f"Showing {len(result.items)} of {result.total_matched} matches.")
    return 0


def _print_removal(result: RemovePaperResult) -> int:
    if result.error:
        return _print_error(result)
    if result.state != "executed":
        print("Removal cancelled; the library was not changed.")
        return 0
    print(build_actionable_success(f"Removed {result.arxiv_id}: {result.title or ''}".rstrip()))
    return 0


# ============================================================================
# Commands
# ============================================================================


async def _run_remove(
    session: ToolSession, args: argparse.Namespace, input_fn: Callable[[str], str]
) -> int:
    proposal = await session.call("remove_saved_paper", {"arxivId": args.arxiv_id})
    if not isinstance(proposal, RemoveProposal) or not proposal.ok:
        return _print_error(proposal)
    if args.defer:
        print(proposal.prompt)
        print(f"Request id: {proposal.action_id}")
        print(f"Answer with: paper-scout approve {proposal.action_id} yes|no")
        return 0

    if args.yes:
        answer: str | bool = True
    else:
        try:
            answer = input_fn(f"{proposal.prompt} [y/N] ")
        except EOFError:
            answer = False
    if isinstance(answer, str) and answer.strip().casefold() not in {"y", "yes"}:
        answer = False
    removal = await session.approve(proposal.action_id, answer)
    _print_warnings(removal)
    return _print_removal(removal)


def _run_prefs(args: argparse.Namespace, config: UserConfig) -> int:
    changed = any(v is not None for v in (args.max_results, args.recency_days, args.categories))
    if changed:
        categories = None
        if args.categories is not None:
            categories = [c for c in args.categories.split(",") if c.strip()]
        update_preferences(
            config,
            default_max_results=args.max_results,
            recency_window_days=args.recency_days,
            default_categories=categories,
        )
        if not save_config(config):
            print(
                build_actionable_error(
                    "save preferences",
                    why="the config file could not be written",
                    next_step="check permissions on the config directory",
                ),
                file=sys.stderr,
            )
            return 1
    prefs = config.preferences
    print(f"default_max_results: {prefs.default_max_results}")
    print(f"recency_window_days: {prefs.recency_window_days}")
    print(f"default_categories: {', '.join(prefs.default_categories) or '(all)'}")
    return 0


async def _run_command(
    args: argparse.Namespace,
    config: UserConfig,
    store: SQLiteStore,
    *,
    http_client: httpx.AsyncClient,
    provider: LLMProvider | None,
    input_fn: Callable[[str], str],
) -> int:
    ctx = build_tool_context(config, store, http_client=http_client, llm_provider=provider)
    session = ToolSession(ctx)
    session.begin_turn()

    result: Any
    if args.command == "search":
        result = await session.call(
            "search_papers",
            {
                "query": args.query,
                "maxResults": args.max_results,
                "recencyDays": args.recency_days,
                "categories": args.categories,
            },
        )
        printer: Callable[[Any], int] = _print_search
    elif args.command == "summarize":
        result = await session.call("summarize_paper", {"arxivId": args.arxiv_id})
        printer = _print_summary
    elif args.command == "save":
        result = await session.call("save_paper", {"arxivId": args.arxiv_id, "tags": args.tags})
        printer = _print_save
    elif args.command == "list":
        result = await session.call(
            "list_saved_papers",
            {"filterText": args.text, "tag": args.tag, "limit": args.limit},
        )
        printer = _print_list
    elif args.command == "remove":
        return await _run_remove(session, args, input_fn)
    elif args.command == "approve":
        result = await session.approve(args.action_id, args.answer)
        printer = _print_removal
    else:  # preview
        if not ctx.library_preview:
            print("Your library is empty.")
        for item in ctx.library_preview:
            print(f"  {item.saved_at:%Y-%m-%d}  {item.arxiv_id}  {item.title}")
        return 0

    if not result.ok:
        return _print_error(result)
    _print_warnings(result)
    return printer(result)


def main(
    argv: list[str] | None = None,
    *,
    load_config_fn: Callable[[], UserConfig] = load_config,
    configure_logging_fn: Callable[[bool], None] = _configure_logging,
    open_store_fn: Callable[[UserConfig], SQLiteStore] = open_library_store,
    http_client_factory: Callable[[], httpx.AsyncClient] = httpx.AsyncClient,
    provider: LLMProvider | None = None,
    input_fn: Callable[[str], str] = input,
) -> int:
    """Main entry point. Returns exit code."""
    args = _build_parser().parse_args(argv)
    configure_logging_fn(args.debug)
    logger.debug("paper-scout starting: %s", args.command)

    config = load_config_fn()
    if config.config_defaulted:
        print("Warning: config file was unreadable; using defaults.", file=sys.stderr)
    if args.command == "prefs":
        return _run_prefs(args, config)
    if args.db is not None:
        config.library_db_path = str(args.db)

    try:
        store = open_store_fn(config)
    except DatabaseError as exc:
        print(
            build_actionable_error(
                "open the library", why=str(exc), next_step="check the --db path"
            ),
            file=sys.stderr,
        )
        return 1

    async def _run() -> int:
        async with http_client_factory() as client:
            return await _run_command(
                args, config, store, http_client=client, provider=provider, input_fn=input_fn
            )

    with store:
        return asyncio.run(_run())


__all__ = [
    "_configure_logging",
    "main",
]
