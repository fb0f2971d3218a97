"""Service layer: arXiv fetch client and summary generation."""

from paper_scout.services.arxiv_api_service import fetch_paper_by_id, search_papers
from paper_scout.services.llm_service import generate_summary

__all__ = [
    "fetch_paper_by_id",
    "generate_summary",
    "search_papers",
]
