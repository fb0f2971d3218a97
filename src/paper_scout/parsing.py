"""arXiv identifier normalization, API query building, and Atom feed parsing."""

from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from datetime import UTC, datetime
from urllib.parse import quote, urlencode

from paper_scout.models import (
    ARXIV_API_MAX_RESULTS_LIMIT,
    SORT_BY_OPTIONS,
    SORT_ORDER_OPTIONS,
    NormalizedId,
    Paper,
    SearchOptions,
)

logger = logging.getLogger(__name__)

ARXIV_API_URL = "https://export.arxiv.org/api/query"

# Matches abs/pdf page URLs and captures everything after the endpoint marker:
# "https://arxiv.org/pdf/2401.12345v2.pdf" -> "2401.12345v2"
_ARXIV_URL_PATTERN = re.compile(r"arxiv\.org/(?:abs|pdf)/(.+?)(?:\.pdf)?/?$", re.IGNORECASE)
# Splits an optional trailing version: "cs/9901001v3" -> ("cs/9901001", "3")
_ARXIV_VERSION_PATTERN = re.compile(r"^(.+?)(?:[vV](\d+))?$")
# New-style ids: YYMM.NNNN (2007-2014) or YYMM.NNNNN (2015+)
_NEW_STYLE_ID = re.compile(r"^\d{4}\.\d{4,5}$")
# Old-style ids: subject[-subject2][.XX]/YYMMNNN, e.g. hep-th/9901001, math.GT/0309136
_OLD_STYLE_ID = re.compile(r"^[a-z]+(?:-[a-z]+)*(?:\.[A-Z]{2})?/\d{7}$")

_ATOM_FEED_TAG = "feed"
_PDF_MIME_TYPE = "application/pdf"
_HTML_MIME_TYPE = "text/html"


@dataclass(slots=True)
class FeedParseResult:
    """Papers parsed from a feed plus what was lost along the way.

    ``feed_ok`` is False when the document could not be parsed at all or has
    no ``<feed>`` root; an intact feed with zero entries has ``feed_ok=True``.
    """

    papers: list[Paper] = field(default_factory=list)
    skipped: int = 0
    feed_ok: bool = True
    error: str = ""


# ============================================================================
# Identifier Normalization
# ============================================================================


def normalize_arxiv_id(raw: str) -> NormalizedId:
    """Normalize an arXiv id or abs/pdf URL to canonical and versioned forms.

    Examples:
    - 2301.01234v2 -> canonical 2301.01234, version 2
    - https://arxiv.org/pdf/2301.01234v2.pdf -> canonical 2301.01234, version 2
    - hep-th/9901001 -> canonical hep-th/9901001, no version

    Unparseable input is returned unchanged as the canonical id; callers that
    need a real id must check it with ``is_valid_arxiv_id``.
    """
    text = raw.strip()
    url_match = _ARXIV_URL_PATTERN.search(text.split("?", 1)[0].split("#", 1)[0])
    if url_match:
        text = url_match.group(1)

    match = _ARXIV_VERSION_PATTERN.match(text)
    if not match:
        return NormalizedId(canonical=raw)

    canonical, version_str = match.group(1), match.group(2)
    if version_str is None:
        return NormalizedId(canonical=canonical)
    version = int(version_str)
    return NormalizedId(canonical=canonical, version=version, versioned=f"{canonical}v{version}")


def is_valid_arxiv_id(canonical: str) -> bool:
    """Return True when ``canonical`` looks like a new- or old-style arXiv id."""
    return bool(_NEW_STYLE_ID.match(canonical) or _OLD_STYLE_ID.match(canonical))


# ============================================================================
# Query Building
# ============================================================================


def build_search_query(query: str, categories: list[str] | None = None) -> str:
    """Build the ``search_query`` parameter value.

    Without categories the query is used as-is (prefixed with ``all:``);
    with categories it becomes ``all:(query) AND (cat:A OR cat:B)``.
    """
    query_clean = " ".join(query.split())
    cats = [c.strip() for c in categories or [] if c and c.strip()]
    if not query_clean:
        raise ValueError("Search query must be provided")
    if not cats:
        return f"all:{query_clean}"
    category_filter = " OR ".join(f"cat:{cat}" for cat in cats)
    return f"all:({query_clean}) AND ({category_filter})"


def build_search_params(query: str, options: SearchOptions | None = None) -> dict[str, str]:
    """Build the query-string parameters for an arXiv API search."""
    opts = options or SearchOptions()
    if opts.sort_by not in SORT_BY_OPTIONS:
        raise ValueError(
            f"Unsupported sortBy: {opts.sort_by!r}. Expected one of: {', '.join(SORT_BY_OPTIONS)}"
        )
    if opts.sort_order not in SORT_ORDER_OPTIONS:
        raise ValueError(
            f"Unsupported sortOrder: {opts.sort_order!r}. "
            f"Expected one of: {', '.join(SORT_ORDER_OPTIONS)}"
        )
    max_results = max(1, min(opts.max_results, ARXIV_API_MAX_RESULTS_LIMIT))
    return {
        "search_query": build_search_query(query, opts.categories),
        "start": str(max(0, opts.start)),
        "max_results": str(max_results),
        "sortBy": opts.sort_by,
        "sortOrder": opts.sort_order,
    }


def build_search_url(query: str, options: SearchOptions | None = None) -> str:
    """Build the full arXiv API search URL with all free text URL-escaped."""
    params = build_search_params(query, options)
    return f"{ARXIV_API_URL}?{urlencode(params, quote_via=quote)}"


def build_id_list_url(canonical_id: str) -> str:
    """Build the arXiv API URL that fetches a single paper by canonical id."""
    return f"{ARXIV_API_URL}?{urlencode({'id_list': canonical_id}, quote_via=quote)}"


# ============================================================================
# Atom Feed Parsing
# ============================================================================


def _local_name(tag: str) -> str:
    """Strip the ``{namespace}`` prefix ElementTree puts on tags."""
    return tag.rsplit("}", 1)[-1]


def _children(node: ET.Element, name: str) -> list[ET.Element]:
    """Direct children with the given local name, namespace-agnostic."""
    return [child for child in node if _local_name(child.tag) == name]


def _child_text(node: ET.Element, name: str) -> str:
    """Whitespace-collapsed text of the first child with ``name``, or ''."""
    for child in _children(node, name):
        return " ".join("".join(child.itertext()).split())
    return ""


def parse_atom_timestamp(raw: str) -> datetime | None:
    """Parse an Atom timestamp (``2024-01-15T00:00:00Z``) to an aware datetime."""
    cleaned = raw.strip()
    if not cleaned:
        return None
    if cleaned.endswith(("Z", "z")):
        cleaned = cleaned[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(cleaned)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _parse_entry(entry: ET.Element) -> Paper | None:
    """Parse one ``<entry>``; None when a mandatory field is missing."""
    raw_id = _child_text(entry, "id")
    if not raw_id:
        logger.warning("Skipping arXiv entry without <id>")
        return None
    normalized = normalize_arxiv_id(raw_id)

    title = _child_text(entry, "title")
    if not title:
        logger.warning("Skipping arXiv entry %s without <title>", raw_id)
        return None

    published = parse_atom_timestamp(_child_text(entry, "published"))
    if published is None:
        logger.warning("Skipping arXiv entry %s without a valid <published>", raw_id)
        return None

    authors: list[str] = []
    for author in _children(entry, "author"):
        name = _child_text(author, "name")
        if name:
            authors.append(name)

    url = raw_id
    pdf_url: str | None = None
    for link in _children(entry, "link"):
        href = (link.get("href") or "").strip()
        if not href:
            continue
        link_type = link.get("type") or ""
        if link.get("rel") == "alternate" and link_type == _HTML_MIME_TYPE:
            url = href
        if link_type == _PDF_MIME_TYPE and pdf_url is None:
            pdf_url = href

    categories: list[str] = []
    for category in _children(entry, "category"):
        term = (category.get("term") or "").strip()
        if term and term not in categories:
            categories.append(term)

    return Paper(
        arxiv_id=normalized.canonical,
        versioned_id=normalized.versioned,
        version=normalized.version,
        title=title,
        authors=authors,
        published=published,
        updated=parse_atom_timestamp(_child_text(entry, "updated")),
        abstract=_child_text(entry, "summary"),
        url=url,
        pdf_url=pdf_url,
        categories=categories,
    )


def parse_arxiv_feed_result(xml_text: str) -> FeedParseResult:
    """Parse an arXiv Atom feed, reporting skipped entries and feed-level failure.

    Never raises: malformed upstream content is expected.
    """
    if not xml_text.strip():
        logger.warning("arXiv response body was empty")
        return FeedParseResult(feed_ok=False, error="empty response body")

    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as exc:
        logger.warning("Failed to parse arXiv XML: %s", exc)
        return FeedParseResult(feed_ok=False, error=f"invalid XML: {exc}")

    if _local_name(root.tag) != _ATOM_FEED_TAG:
        logger.warning("arXiv XML missing <feed> element (root is <%s>)", _local_name(root.tag))
        return FeedParseResult(feed_ok=False, error="missing <feed> element")

    result = FeedParseResult()
    for entry in _children(root, "entry"):
        paper = _parse_entry(entry)
        if paper is None:
            result.skipped += 1
            continue
        result.papers.append(paper)

    if result.skipped:
        logger.warning(
            "arXiv feed degraded: skipped %d malformed entr%s, kept %d",
            result.skipped,
            "y" if result.skipped == 1 else "ies",
            len(result.papers),
        )
    return result


def parse_arxiv_feed(xml_text: str) -> list[Paper]:
    """Parse an arXiv Atom feed into papers, skipping malformed entries."""
    return parse_arxiv_feed_result(xml_text).papers


__all__ = [
    "ARXIV_API_URL",
    "FeedParseResult",
    "build_id_list_url",
    "build_search_params",
    "build_search_query",
    "build_search_url",
    "is_valid_arxiv_id",
    "normalize_arxiv_id",
    "parse_arxiv_feed",
    "parse_arxiv_feed_result",
    "parse_atom_timestamp",
]
