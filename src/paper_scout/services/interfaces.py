"""Service interfaces + default adapters for tool-level dependency injection."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import httpx

from paper_scout.llm_providers import LLMProvider
from paper_scout.models import Paper, SearchOptions
from paper_scout.services import arxiv_api_service as _arxiv_api
from paper_scout.services import llm_service as _llm


@runtime_checkable
class ArxivApiService(Protocol):
    """Interface for the arXiv fetch client."""

    async def search(
        self,
        *,
        client: httpx.AsyncClient | None,
        query: str,
        options: SearchOptions,
        timeout_seconds: float,
        user_agent: str,
        throttle_seconds: float = 0.0,
    ) -> list[Paper]:
        """Search arXiv and return parsed papers."""
        ...

    async def fetch_by_id(
        self,
        *,
        client: httpx.AsyncClient | None,
        arxiv_id: str,
        timeout_seconds: float,
        user_agent: str,
        throttle_seconds: float = 0.0,
    ) -> Paper | None:
        """Fetch one paper by id, or None when it does not exist."""
        ...


@runtime_checkable
class LlmService(Protocol):
    """Interface for summary generation."""

    async def generate_summary(
        self,
        *,
        paper: Paper,
        provider: LLMProvider,
        timeout_seconds: int,
    ) -> tuple[str | None, str | None]:
        """Generate a summary and return (summary, error)."""
        ...


class DefaultArxivApiService:
    """Default adapter that delegates to function-based arXiv API services."""

    def __init__(self, sleep: Callable[[float], Awaitable[None]] = asyncio.sleep) -> None:
        self._sleep = sleep

    async def search(
        self,
        *,
        client: httpx.AsyncClient | None,
        query: str,
        options: SearchOptions,
        timeout_seconds: float,
        user_agent: str,
        throttle_seconds: float = 0.0,
    ) -> list[Paper]:
        return await _arxiv_api.search_papers(
            client=client,
            query=query,
            options=options,
            timeout_seconds=timeout_seconds,
            user_agent=user_agent,
            throttle_seconds=throttle_seconds,
            sleep=self._sleep,
        )

    async def fetch_by_id(
        self,
        *,
        client: httpx.AsyncClient | None,
        arxiv_id: str,
        timeout_seconds: float,
        user_agent: str,
        throttle_seconds: float = 0.0,
    ) -> Paper | None:
        return await _arxiv_api.fetch_paper_by_id(
            client=client,
            arxiv_id=arxiv_id,
            timeout_seconds=timeout_seconds,
            user_agent=user_agent,
            throttle_seconds=throttle_seconds,
            sleep=self._sleep,
        )


class DefaultLlmService:
    """Default adapter that delegates to function-based LLM services."""

    async def generate_summary(
        self,
        *,
        paper: Paper,
        provider: LLMProvider,
        timeout_seconds: int,
    ) -> tuple[str | None, str | None]:
        return await _llm.generate_summary(
            paper=paper,
            provider=provider,
            timeout_seconds=timeout_seconds,
        )


@dataclass(slots=True)
class AppServices:
    """Aggregated service interfaces consumed by the tool layer."""

    arxiv_api: ArxivApiService
    llm: LlmService


def build_default_app_services() -> AppServices:
    """Build default services backed by the function-based modules."""
    return AppServices(
        arxiv_api=DefaultArxivApiService(),
        llm=DefaultLlmService(),
    )


__all__ = [
    "AppServices",
    "ArxivApiService",
    "DefaultArxivApiService",
    "DefaultLlmService",
    "LlmService",
    "build_default_app_services",
]
