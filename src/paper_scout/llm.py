"""Summary prompt construction and LLM command resolution."""

from __future__ import annotations

import logging
import shlex
from datetime import UTC

from paper_scout.models import Paper, UserConfig

logger = logging.getLogger(__name__)

# ============================================================================
# Summary Prompt
# ============================================================================

# Part of every cache key; bump whenever SUMMARY_PROMPT_TEMPLATE changes.
SUMMARY_PROMPT_VERSION = "v1"

MAX_PROMPT_AUTHORS = 5

ABSTRACT_ONLY_DISCLAIMER = (
    "*⚠️ This summary is based on the paper's abstract and metadata only, not the full text.*"
)

SUMMARY_SECTIONS = (
    "TL;DR",
    "Key Contributions",
    "Limitations & Open Questions",
    "Who Should Read This",
    "Related Keywords",
)

SUMMARY_PROMPT_TEMPLATE = (
    "You are a research paper summarizer. Given the following paper metadata and "
    "abstract, generate a structured summary.\n\n"
    "## Paper Information\n"
    "**Title:** {title}\n"
    "**Authors:** {authors}\n"
    "**Published:** {published}\n"
    "**arXiv ID:** {arxiv_id}\n"
    "**Categories:** {categories}\n\n"
    "## Abstract\n"
    "{abstract}\n\n"
    "## Instructions\n"
    "Generate a structured summary with EXACTLY these sections in markdown format:\n\n"
    "### TL;DR\n"
    "(1-2 sentences capturing the core contribution)\n\n"
    "### Key Contributions\n"
    "(3-5 bullet points)\n\n"
    "### Limitations & Open Questions\n"
    "(2-4 bullet points based on what can be inferred from the abstract)\n\n"
    "### Who Should Read This\n"
    "(1-2 sentences describing the target audience)\n\n"
    "### Related Keywords\n"
    "(Comma-separated list of 5-8 relevant terms for discoverability)\n\n"
    "---\n"
    f"{ABSTRACT_ONLY_DISCLAIMER}\n\n"
    "Respond with ONLY the markdown summary, no additional commentary."
)

LLM_PRESETS: dict[str, str] = {
    "claude": "claude -p {prompt}",
    "codex": "codex exec {prompt}",
    "llm": "llm {prompt}",
    "copilot": "copilot --model gpt-5-mini -p {prompt}",
}


def format_prompt_authors(authors: list[str]) -> str:
    """First five authors, then ``et al. (N authors)`` for longer lists."""
    shown = ", ".join(authors[:MAX_PROMPT_AUTHORS])
    if len(authors) > MAX_PROMPT_AUTHORS:
        shown += f" et al. ({len(authors)} authors)"
    return shown


def format_prompt_date(paper: Paper) -> str:
    """Publication date rendered like ``March 5, 2024``."""
    published = paper.published.astimezone(UTC)
    return f"{published:%B} {published.day}, {published.year}"


def build_summary_prompt(paper: Paper) -> str:
    """Build the summary prompt for a paper.

    Only metadata and the abstract are sent; the disclaimer line in the
    template tells the reader as much.
    """
    return SUMMARY_PROMPT_TEMPLATE.format(
        title=paper.title,
        authors=format_prompt_authors(paper.authors),
        published=format_prompt_date(paper),
        arxiv_id=paper.arxiv_id,
        categories=", ".join(paper.categories) or "Not specified",
        abstract=paper.abstract,
    )


# ============================================================================
# LLM Command Resolution
# ============================================================================


def _resolve_llm_command(config: UserConfig) -> str:
    """Resolve the LLM command template from config (custom or preset).

    Returns the command template string, or "" if not configured.
    Logs a warning if the preset name is unrecognized.
    """
    if config.llm_command:
        return config.llm_command
    if config.llm_preset:
        if config.llm_preset in LLM_PRESETS:
            return LLM_PRESETS[config.llm_preset]
        valid = ", ".join(sorted(LLM_PRESETS))
        logger.warning("Unknown llm_preset %r. Valid presets: %s", config.llm_preset, valid)
    return ""


def _build_llm_shell_command(command_template: str, prompt: str) -> str:
    """Build the final shell command by substituting the prompt.

    Raises ValueError if the template does not contain {prompt}.
    """
    if "{prompt}" not in command_template:
        raise ValueError(
            f"LLM command template must contain {{prompt}} placeholder, got: {command_template!r}"
        )
    return command_template.replace("{prompt}", shlex.quote(prompt))


__all__ = [
    "ABSTRACT_ONLY_DISCLAIMER",
    "LLM_PRESETS",
    "MAX_PROMPT_AUTHORS",
    "SUMMARY_PROMPT_TEMPLATE",
    "SUMMARY_PROMPT_VERSION",
    "SUMMARY_SECTIONS",
    "build_summary_prompt",
    "format_prompt_authors",
    "format_prompt_date",
]
