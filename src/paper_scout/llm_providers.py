"""Text generation providers: a Protocol plus a CLI subprocess implementation."""

from __future__ import annotations

import asyncio
import logging
import os
import shlex
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from paper_scout.llm import _build_llm_shell_command, _resolve_llm_command
from paper_scout.models import UserConfig

logger = logging.getLogger(__name__)

_SHELL_META_CHARS = frozenset({"|", "&", ";", "<", ">", "$", "`", "\n", "(", ")"})
_PROMPT_SENTINEL = "__PAPER_SCOUT_PROMPT__"
_MAX_STDERR_CHARS = 200


@dataclass(slots=True)
class _InvocationPlan:
    use_shell: bool
    argv: list[str] | None = None
    shell_command: str = ""


def _requires_shell_execution(command_template: str) -> bool:
    """Return True when the command template needs shell parsing semantics."""
    return any(char in command_template for char in _SHELL_META_CHARS)


def _build_invocation_plan(command_template: str, prompt: str) -> _InvocationPlan:
    """Prefer a direct argv exec; fall back to the shell for pipes and quoting oddities."""
    if "{prompt}" not in command_template:
        raise ValueError(
            f"LLM command template must contain {{prompt}} placeholder, got: {command_template!r}"
        )

    if _requires_shell_execution(command_template):
        return _InvocationPlan(
            use_shell=True, shell_command=_build_llm_shell_command(command_template, prompt)
        )

    try:
        argv = shlex.split(
            command_template.replace("{prompt}", _PROMPT_SENTINEL), posix=os.name != "nt"
        )
    except ValueError:
        return _InvocationPlan(
            use_shell=True, shell_command=_build_llm_shell_command(command_template, prompt)
        )
    if not argv:
        raise ValueError("LLM command template is empty")
    return _InvocationPlan(
        use_shell=False, argv=[arg.replace(_PROMPT_SENTINEL, prompt) for arg in argv]
    )


@dataclass(slots=True)
class LLMResult:
    """Result from an LLM provider call."""

    output: str
    success: bool
    error: str = ""


@runtime_checkable
class LLMProvider(Protocol):
    """Anything that turns a prompt into text within a timeout."""

    async def execute(self, prompt: str, timeout: int) -> LLMResult: ...


class CLIProvider:
    """LLM provider that shells out to a CLI tool.

    The command template contains a ``{prompt}`` placeholder. Never raises:
    every failure comes back as ``LLMResult(success=False)``.
    """

    __slots__ = ("_command_template",)

    def __init__(self, command_template: str) -> None:
        self._command_template = command_template

    @property
    def command_template(self) -> str:
        return self._command_template

    async def execute(self, prompt: str, timeout: int) -> LLMResult:
        """Run the command and return its stdout as the generated text."""
        try:
            plan = _build_invocation_plan(self._command_template, prompt)
        except ValueError as e:
            return LLMResult(output="", success=False, error=str(e))

        started = time.monotonic()
        try:
            if plan.use_shell:
                proc = await asyncio.create_subprocess_shell(
                    plan.shell_command,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                )
            else:
                proc = await asyncio.create_subprocess_exec(
                    *(plan.argv or []),
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                )
            try:
                stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
            except TimeoutError:
                proc.kill()
                await proc.wait()
                return LLMResult(output="", success=False, error=f"Timed out after {timeout}s")
        except Exception as e:
            logger.warning("LLM subprocess failed: %s", e, exc_info=True)
            return LLMResult(output="", success=False, error=str(e))

        logger.debug(
            "LLM command exited %s after %.1fs", proc.returncode, time.monotonic() - started
        )
        if proc.returncode != 0:
            err_msg = (stderr or b"").decode("utf-8", errors="replace").strip()
            return LLMResult(
                output="",
                success=False,
                error=f"Exit {proc.returncode}: {err_msg[:_MAX_STDERR_CHARS]}",
            )

        output = (stdout or b"").decode("utf-8", errors="replace").strip()
        if not output:
            return LLMResult(output="", success=False, error="Empty output")
        return LLMResult(output=output, success=True)


class CallableProvider:
    """Adapts an ``async (prompt) -> str`` callable to the LLMProvider protocol.

    Exceptions and timeouts from the callable are reported as failed results.
    """

    __slots__ = ("_generate",)

    def __init__(self, generate: Callable[[str], Awaitable[str]]) -> None:
        self._generate = generate

    async def execute(self, prompt: str, timeout: int) -> LLMResult:
        try:
            output = await asyncio.wait_for(self._generate(prompt), timeout=timeout)
        except TimeoutError:
            return LLMResult(output="", success=False, error=f"Timed out after {timeout}s")
        except Exception as e:
            logger.warning("Generation callable failed: %s", e, exc_info=True)
            return LLMResult(output="", success=False, error=str(e))
        output = (output or "").strip()
        if not output:
            return LLMResult(output="", success=False, error="Empty output")
        return LLMResult(output=output, success=True)


def resolve_provider(config: UserConfig) -> CLIProvider | None:
    """Create an LLM provider from user config, or None if not configured."""
    template = _resolve_llm_command(config)
    if not template:
        return None
    return CLIProvider(template)


__all__ = [
    "CLIProvider",
    "CallableProvider",
    "LLMProvider",
    "LLMResult",
    "resolve_provider",
]
