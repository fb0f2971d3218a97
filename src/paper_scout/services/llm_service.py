"""Summary generation on top of an LLMProvider."""

from __future__ import annotations

import logging

from paper_scout.llm import build_summary_prompt
from paper_scout.llm_providers import LLMProvider
from paper_scout.models import Paper

logger = logging.getLogger(__name__)


async def generate_summary(
    *,
    paper: Paper,
    provider: LLMProvider,
    timeout_seconds: int,
) -> tuple[str | None, str | None]:
    """Generate a markdown summary, returning (summary, error_message)."""
    prompt = build_summary_prompt(paper)
    result = await provider.execute(prompt, timeout_seconds)
    if not result.success:
        logger.warning("Summary generation failed for %s: %s", paper.arxiv_id, result.error)
        return None, result.error or "LLM command failed"
    return result.output, None


__all__ = [
    "generate_summary",
]
