"""Tests for the LLM provider abstraction layer."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

from paper_scout.llm_providers import (
    CLIProvider,
    CallableProvider,
    LLMProvider,
    LLMResult,
    _build_invocation_plan,
    resolve_provider,
)
from paper_scout.models import UserConfig

# ============================================================================
# LLMResult
# ============================================================================


class TestLLMResult:
    """Tests for the LLMResult dataclass."""

    def test_default_error_is_empty(self):
        result = LLMResult(output="hello", success=True)
        assert result.error == ""


# ============================================================================
# Invocation planning
# ============================================================================


class TestInvocationPlan:
    """Tests for choosing between argv exec and the shell."""

    def test_simple_template_uses_argv(self):
        plan = _build_invocation_plan("claude -p {prompt}", "it's a 'quoted' prompt")
        assert plan.use_shell is False
        assert plan.argv == ["claude", "-p", "it's a 'quoted' prompt"]

    def test_pipe_uses_shell_with_quoted_prompt(self):
        plan = _build_invocation_plan("cat | llm {prompt}", "a; rm -rf /")
        assert plan.use_shell is True
        assert "'a; rm -rf /'" in plan.shell_command

    def test_missing_placeholder(self):
        try:
            _build_invocation_plan("llm", "prompt")
        except ValueError as exc:
            assert "{prompt}" in str(exc)
        else:
            raise AssertionError("expected ValueError")


# ============================================================================
# CLIProvider
# ============================================================================


def _fake_process(returncode=0, stdout=b"", stderr=b""):
    proc = MagicMock()
    proc.returncode = returncode
    proc.communicate = AsyncMock(return_value=(stdout, stderr))
    proc.wait = AsyncMock(return_value=returncode)
    return proc


class TestCLIProvider:
    """Tests for the CLIProvider subprocess wrapper."""

    def test_command_template_property(self):
        provider = CLIProvider("echo {prompt}")
        assert provider.command_template == "echo {prompt}"

    def test_satisfies_protocol(self):
        assert isinstance(CLIProvider("echo {prompt}"), LLMProvider)

    async def test_success_strips_output(self):
        proc = _fake_process(stdout=b"  ### TL;DR\nshort  \n")
        with patch(
            "paper_scout.llm_providers.asyncio.create_subprocess_exec",
            new_callable=AsyncMock,
            return_value=proc,
        ) as exec_mock:
            result = await CLIProvider("llm {prompt}").execute("hello world", timeout=10)
        assert result.success is True
        assert result.output == "### TL;DR\nshort"
        assert exec_mock.await_args.args == ("llm", "hello world")

    async def test_nonzero_exit_truncates_stderr(self):
        proc = _fake_process(returncode=2, stderr=b"x" * 500)
        with patch(
            "paper_scout.llm_providers.asyncio.create_subprocess_exec",
            new_callable=AsyncMock,
            return_value=proc,
        ):
            result = await CLIProvider("llm {prompt}").execute("p", timeout=5)
        assert result.success is False
        assert result.error == "Exit 2: " + "x" * 200

    async def test_empty_output(self):
        proc = _fake_process(stdout=b"   \n")
        with patch(
            "paper_scout.llm_providers.asyncio.create_subprocess_exec",
            new_callable=AsyncMock,
            return_value=proc,
        ):
            result = await CLIProvider("llm {prompt}").execute("p", timeout=5)
        assert result.success is False
        assert result.error == "Empty output"

    async def test_timeout_kills_process(self):
        proc = _fake_process()

        async def never_finishes():
            await asyncio.sleep(60)

        proc.communicate = never_finishes
        with patch(
            "paper_scout.llm_providers.asyncio.create_subprocess_exec",
            new_callable=AsyncMock,
            return_value=proc,
        ):
            result = await CLIProvider("llm {prompt}").execute("p", timeout=0)
        assert result.success is False
        assert result.error == "Timed out after 0s"
        proc.kill.assert_called_once_with()

    async def test_shell_template_uses_shell(self):
        proc = _fake_process(stdout=b"ok")
        with patch(
            "paper_scout.llm_providers.asyncio.create_subprocess_shell",
            new_callable=AsyncMock,
            return_value=proc,
        ) as shell_mock:
            result = await CLIProvider("llm {prompt} | tee out.md").execute("p", timeout=5)
        assert result.success is True
        shell_mock.assert_awaited_once()

    async def test_invalid_template_returns_error(self):
        result = await CLIProvider("echo {missing_placeholder}").execute("test", timeout=5)
        assert result.success is False
        assert result.error != ""

    async def test_never_raises(self):
        with patch(
            "paper_scout.llm_providers.asyncio.create_subprocess_exec",
            new_callable=AsyncMock,
            side_effect=OSError("exec failed"),
        ):
            result = await CLIProvider("echo {prompt}").execute("test", timeout=5)
        assert result.success is False
        assert "exec failed" in result.error


# ============================================================================
# CallableProvider
# ============================================================================


class TestCallableProvider:
    """Tests for wrapping an async callable as a provider."""

    async def test_success(self):
        async def generate(prompt: str) -> str:
            return f" summary of {prompt} "

        result = await CallableProvider(generate).execute("x", timeout=5)
        assert result == LLMResult(output="summary of x", success=True)

    async def test_exception_becomes_failure(self):
        async def generate(prompt: str) -> str:
            raise RuntimeError("model unavailable")

        result = await CallableProvider(generate).execute("x", timeout=5)
        assert result.success is False
        assert result.error == "model unavailable"

    async def test_empty_output(self):
        async def generate(prompt: str) -> str:
            return ""

        result = await CallableProvider(generate).execute("x", timeout=5)
        assert result.error == "Empty output"


# ============================================================================
# resolve_provider
# ============================================================================


class TestResolveProvider:
    """Tests for building a provider from config."""

    def test_none_when_unconfigured(self):
        assert resolve_provider(UserConfig()) is None

    def test_custom_command(self):
        provider = resolve_provider(UserConfig(llm_command="my-llm {prompt}"))
        assert provider.command_template == "my-llm {prompt}"

    def test_preset(self):
        provider = resolve_provider(UserConfig(llm_preset="claude"))
        assert provider.command_template == "claude -p {prompt}"

    def test_custom_command_wins_over_preset(self):
        provider = resolve_provider(UserConfig(llm_command="x {prompt}", llm_preset="claude"))
        assert provider.command_template == "x {prompt}"

    def test_unknown_preset(self, caplog):
        with caplog.at_level("WARNING", logger="paper_scout.llm"):
            assert resolve_provider(UserConfig(llm_preset="gpt-9")) is None
        assert "Unknown llm_preset" in caplog.text
