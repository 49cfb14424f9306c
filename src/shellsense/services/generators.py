"""Generator executor — runs suggestion scripts and custom callbacks.

Scripts go through an injected :class:`ScriptRunner` so the allow-list, the global
enable switch and the subprocess itself stay outside of the completion logic, and
tests can swap in a fake.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
import shlex
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from shellsense.core.config import Settings
from shellsense.core.exceptions import ParseError
from shellsense.models.spec import Generator, Suggestion, to_suggestion
from shellsense.parsing.commands import get_all_commands

logger = logging.getLogger(__name__)


class ScriptRunner(Protocol):
    """Executes a shell command and returns its stdout ("" on any failure)."""

    async def run(self, command: str, cwd: Path | None, timeout_ms: int) -> str: ...


@dataclass(frozen=True)
class ScriptPolicy:
    """Whether a generator script may run at all."""

    enabled: bool = True
    allow_list: tuple[str, ...] = ()

    @classmethod
    def from_settings(cls, settings: Settings) -> "ScriptPolicy":
        return cls(enabled=settings.scripts_enabled, allow_list=settings.scripts_allow_list)

    def allows(self, command: str) -> bool:
        """Every command of the script (split on ``&&``, ``;``, ``|``...) must be listed."""
        if not self.enabled:
            return False
        if not self.allow_list:
            return True
        try:
            segments = get_all_commands(command)
        except ParseError:
            return False
        for segment in segments:
            if segment.is_redirect or not segment.tokens:
                continue
            if segment.tokens[0].contents not in self.allow_list:
                return False
        return True


class ShellScriptRunner:
    """Runs scripts with ``asyncio`` subprocesses, killing them on timeout."""

    def __init__(self, policy: ScriptPolicy | None = None) -> None:
        self.policy = policy or ScriptPolicy()

    async def run(self, command: str, cwd: Path | None, timeout_ms: int) -> str:
        if not self.policy.allows(command):
            logger.info("Script execution denied by policy: %s", command)
            return ""
        try:
            process = await asyncio.create_subprocess_shell(
                command,
                cwd=str(cwd) if cwd else None,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            logger.warning("Failed to start script %r: %s", command, e)
            return ""
        try:
            stdout, _ = await asyncio.wait_for(process.communicate(), timeout=timeout_ms / 1000)
        except asyncio.TimeoutError:
            with contextlib.suppress(ProcessLookupError):
                process.kill()
            await process.wait()
            logger.warning("Script timed out after %dms: %s", timeout_ms, command)
            return ""
        return stdout.decode("utf-8", errors="replace")


@dataclass
class GeneratorRequest:
    """What the executor needs to know about the completion request."""

    tokens: list[str]  # up to and including the token under the cursor
    current_value: str  # typed value (after an option separator, if any)
    tokens_except_current: tuple[str, ...]
    document_key: str
    segment_start: int
    cwd: Path | None
    timeout_ms: int
    filter_strategy: str = "prefix"


@dataclass
class GeneratorResult:
    suggestions: list[Suggestion]
    # set when the results were already filtered by the generator's query term
    query_term: str | None = None


@dataclass
class _TriggerEntry:
    document_key: str
    segment_start: int
    tokens_except_current: tuple[str, ...]
    old_token: str
    suggestions: list[Suggestion]


@dataclass
class GeneratorCaches:
    """State shared across requests; last write wins."""

    results: dict[tuple[str, str], tuple[float, list[Suggestion]]] = field(default_factory=dict)
    triggers: dict[str, _TriggerEntry] = field(default_factory=dict)

    def clear(self) -> None:
        self.results.clear()
        self.triggers.clear()


def filter_suggestions(suggestions: list[Suggestion], word: str, strategy: str) -> list[Suggestion]:
    """Keep suggestions with a name matching ``word``.

    ``fuzzy`` keeps everything: ranking is left to the completion UI.
    """
    if strategy == "fuzzy" or not word:
        return list(suggestions)
    return [s for s in suggestions if any(name.startswith(word) for name in s.name)]


def _should_trigger(trigger: Any, new_token: str, old_token: str) -> bool:
    if callable(trigger):
        return bool(trigger(new_token, old_token))
    # a string trigger re-runs whenever its last position in the token moves
    return new_token.rfind(trigger) != old_token.rfind(trigger)


class GeneratorExecutor:
    """Runs an argument's generators; never raises."""

    def __init__(self, runner: ScriptRunner, caches: GeneratorCaches | None = None) -> None:
        self.runner = runner
        self.caches = caches or GeneratorCaches()

    async def run(self, generators: list[Generator], request: GeneratorRequest) -> list[GeneratorResult]:
        results: list[GeneratorResult] = []
        for generator in generators:
            if generator.script is None and generator.custom is None:
                continue
            try:
                results.append(await self._run_one(generator, request))
            except Exception as e:
                logger.warning("Generator failed: %s", e, exc_info=logger.isEnabledFor(logging.DEBUG))
        return results

    async def _run_one(self, generator: Generator, request: GeneratorRequest) -> GeneratorResult:
        suggestions = self._cached(generator, request)
        if suggestions is None:
            suggestions = self._reusable(generator, request)
        if suggestions is None:
            suggestions = await self._execute(generator, request)
            self._remember(generator, request, suggestions)
        else:
            logger.debug("Reusing generator results for %s", generator.uid)

        if generator.get_query_term is None:
            return GeneratorResult(suggestions)
        if callable(generator.get_query_term):
            query_term = generator.get_query_term(request.current_value)
        else:
            query_term = request.current_value.rsplit(generator.get_query_term, 1)[-1]
        return GeneratorResult(
            filter_suggestions(suggestions, query_term, request.filter_strategy),
            query_term=query_term,
        )

    def _cache_key(self, generator: Generator, request: GeneratorRequest) -> tuple[str, str]:
        by_directory = generator.cache is not None and generator.cache.cache_by_directory
        return generator.uid, str(request.cwd) if by_directory else ""

    def _cached(self, generator: Generator, request: GeneratorRequest) -> list[Suggestion] | None:
        if generator.cache is None or generator.cache.ttl <= 0:
            return None
        entry = self.caches.results.get(self._cache_key(generator, request))
        if entry is None:
            return None
        expires_at, suggestions = entry
        if time.monotonic() >= expires_at:
            return None
        return suggestions

    def _reusable(self, generator: Generator, request: GeneratorRequest) -> list[Suggestion] | None:
        if generator.trigger is None:
            return None
        entry = self.caches.triggers.get(generator.uid)
        if entry is None:
            return None
        if (
            entry.document_key != request.document_key
            or entry.segment_start != request.segment_start
            or entry.tokens_except_current != request.tokens_except_current
        ):
            return None
        if _should_trigger(generator.trigger, request.current_value, entry.old_token):
            return None
        return entry.suggestions

    def _remember(self, generator: Generator, request: GeneratorRequest, suggestions: list[Suggestion]) -> None:
        self.caches.triggers[generator.uid] = _TriggerEntry(
            document_key=request.document_key,
            segment_start=request.segment_start,
            tokens_except_current=request.tokens_except_current,
            old_token=request.current_value,
            suggestions=suggestions,
        )
        if generator.cache is not None and generator.cache.ttl > 0:
            expires_at = time.monotonic() + generator.cache.ttl / 1000
            self.caches.results[self._cache_key(generator, request)] = (expires_at, suggestions)

    async def _execute(self, generator: Generator, request: GeneratorRequest) -> list[Suggestion]:
        timeout_ms = generator.script_timeout or request.timeout_ms
        suggestions: list[Suggestion] = []

        if generator.custom is not None:

            async def execute_shell_command(command: str) -> str:
                return await self.runner.run(command, request.cwd, timeout_ms)

            context = {
                "current_working_directory": str(request.cwd) if request.cwd else "",
                "current_process": "",
                "ssh_prefix": "",
            }
            result = generator.custom(list(request.tokens), execute_shell_command, context)
            if inspect.isawaitable(result):
                try:
                    result = await asyncio.wait_for(result, timeout=timeout_ms / 1000)
                except asyncio.TimeoutError:
                    logger.warning("Custom generator timed out after %dms", timeout_ms)
                    result = []
            suggestions.extend(to_suggestion(item) for item in result or [])

        if generator.script is not None:
            script = generator.script
            if callable(script):
                script = script(list(request.tokens))
            if isinstance(script, list):
                script = shlex.join(script)
            output = await self.runner.run(script, request.cwd, timeout_ms)
            if generator.post_process is not None:
                items = generator.post_process(output, list(request.tokens))
            else:
                items = [name for name in output.split(generator.split_on or "\n") if name]
            suggestions.extend(to_suggestion(item) for item in items or [])

        return suggestions
