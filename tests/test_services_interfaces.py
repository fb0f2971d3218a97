"""Tests for service interface adapters and defaults."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from paper_scout.models import SearchOptions
from paper_scout.services.interfaces import (
    AppServices,
    ArxivApiService,
    DefaultArxivApiService,
    LlmService,
    build_default_app_services,
)


def test_build_default_app_services_protocol_compatible() -> None:
    services = build_default_app_services()

    assert isinstance(services, AppServices)
    assert isinstance(services.arxiv_api, ArxivApiService)
    assert isinstance(services.llm, LlmService)


@pytest.mark.asyncio
async def test_default_arxiv_api_adapter_delegates(make_paper) -> None:
    sleep = AsyncMock()
    service = DefaultArxivApiService(sleep=sleep)
    options = SearchOptions(max_results=3)

    with (
        patch(
            "paper_scout.services.interfaces._arxiv_api.search_papers",
            new=AsyncMock(return_value=[make_paper(arxiv_id="2401.22222")]),
        ) as search,
        patch(
            "paper_scout.services.interfaces._arxiv_api.fetch_paper_by_id",
            new=AsyncMock(return_value=None),
        ) as fetch,
    ):
        papers = await service.search(
            client=None,
            query="transformers",
            options=options,
            timeout_seconds=30,
            user_agent="paper-scout/0.1",
            throttle_seconds=3.0,
        )
        missing = await service.fetch_by_id(
            client=None, arxiv_id="2401.99999", timeout_seconds=30, user_agent="paper-scout/0.1"
        )

    assert [p.arxiv_id for p in papers] == ["2401.22222"]
    assert missing is None
    assert search.await_args.kwargs["options"] is options
    assert search.await_args.kwargs["throttle_seconds"] == 3.0
    assert search.await_args.kwargs["sleep"] is sleep
    assert fetch.await_args.kwargs["arxiv_id"] == "2401.99999"
    assert fetch.await_args.kwargs["throttle_seconds"] == 0.0


@pytest.mark.asyncio
async def test_default_llm_adapter_delegates(make_paper) -> None:
    paper = make_paper(arxiv_id="2401.33333")
    provider = AsyncMock()
    services = build_default_app_services()

    with patch(
        "paper_scout.services.interfaces._llm.generate_summary",
        new=AsyncMock(return_value=("summary", None)),
    ) as gen:
        result = await services.llm.generate_summary(
            paper=paper, provider=provider, timeout_seconds=60
        )

    assert result == ("summary", None)
    gen.assert_awaited_once_with(paper=paper, provider=provider, timeout_seconds=60)
