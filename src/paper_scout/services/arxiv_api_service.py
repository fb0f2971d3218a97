"""arXiv API fetch client: search and fetch-by-id over httpx."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

import httpx

from paper_scout.errors import ArxivHttpError, ArxivNetworkError, FeedParseError
from paper_scout.models import (
    DEFAULT_ARXIV_TIMEOUT_SECONDS,
    DEFAULT_USER_AGENT,
    Paper,
    SearchOptions,
)
from paper_scout.parsing import (
    FeedParseResult,
    build_id_list_url,
    build_search_url,
    normalize_arxiv_id,
    parse_arxiv_feed_result,
)

logger = logging.getLogger(__name__)


async def _get_feed(
    *,
    client: httpx.AsyncClient | None,
    url: str,
    timeout_seconds: float,
    user_agent: str,
    throttle_seconds: float,
    sleep: Callable[[float], Awaitable[None]],
) -> FeedParseResult:
    """GET one arXiv API URL and parse the Atom body.

    Raises:
        ArxivNetworkError: the request never produced a response.
        ArxivHttpError: the response status was not 2xx.
        FeedParseError: the body was not an Atom feed at all.
    """
    if throttle_seconds > 0:
        await sleep(throttle_seconds)

    headers = {"User-Agent": user_agent}
    try:
        if client is not None:
            response = await client.get(url, headers=headers, timeout=timeout_seconds)
        else:
            async with httpx.AsyncClient() as tmp_client:
                response = await tmp_client.get(url, headers=headers, timeout=timeout_seconds)
    except httpx.TransportError as exc:
        logger.warning("arXiv request failed: %s", exc, exc_info=True)
        raise ArxivNetworkError(f"Failed to reach the arXiv API: {exc}") from exc

    if not response.is_success:
        logger.warning("arXiv API returned HTTP %d for %s", response.status_code, url)
        raise ArxivHttpError(response.status_code, response.reason_phrase)

    result = parse_arxiv_feed_result(response.text)
    if not result.feed_ok:
        raise FeedParseError(f"arXiv returned an unreadable feed: {result.error}")
    return result


async def search_papers(
    *,
    client: httpx.AsyncClient | None,
    query: str,
    options: SearchOptions | None = None,
    timeout_seconds: float = DEFAULT_ARXIV_TIMEOUT_SECONDS,
    user_agent: str = DEFAULT_USER_AGENT,
    throttle_seconds: float = 0.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> list[Paper]:
    """Run one arXiv search and return the parsed papers in feed order."""
    url = build_search_url(query, options)
    result = await _get_feed(
        client=client,
        url=url,
        timeout_seconds=timeout_seconds,
        user_agent=user_agent,
        throttle_seconds=throttle_seconds,
        sleep=sleep,
    )
    logger.debug("arXiv search %r returned %d papers", query, len(result.papers))
    return result.papers


async def fetch_paper_by_id(
    *,
    client: httpx.AsyncClient | None,
    arxiv_id: str,
    timeout_seconds: float = DEFAULT_ARXIV_TIMEOUT_SECONDS,
    user_agent: str = DEFAULT_USER_AGENT,
    throttle_seconds: float = 0.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> Paper | None:
    """Fetch one paper by id; None when arXiv has no such paper.

    The id is normalized first and only the canonical form is queried, so the
    latest revision is returned whatever version the caller asked for.
    """
    canonical = normalize_arxiv_id(arxiv_id).canonical
    result = await _get_feed(
        client=client,
        url=build_id_list_url(canonical),
        timeout_seconds=timeout_seconds,
        user_agent=user_agent,
        throttle_seconds=throttle_seconds,
        sleep=sleep,
    )
    # arXiv answers unknown ids with an "Error" entry rather than an empty feed.
    for paper in result.papers:
        if paper.arxiv_id == canonical:
            return paper
    logger.info("arXiv has no paper with id %s", canonical)
    return None


__all__ = [
    "fetch_paper_by_id",
    "search_papers",
]
