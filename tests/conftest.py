"""Shared spec fixtures: a small catalog covering the spec features under test."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from shellsense.core.config import Settings
from shellsense.services.catalog import SpecCatalog
from shellsense.services.engine import Engine
from shellsense.services.suggestions import CompletionList

BRANCH_SCRIPT = "git branch --format=%(refname:short)"


def esbuild_targets(tokens, execute_shell_command, context):
    return ["chrome", "firefox"]


SPECS = [
    {
        "name": "git",
        "description": "The stupid content tracker",
        "subcommands": [
            {
                "name": ["checkout", "co"],
                "description": "Switch branches",
                "args": {"name": "branch", "generators": {"script": BRANCH_SCRIPT}},
                "options": [
                    {"name": ["-f", "--force"], "description": "Throw away local changes", "isDangerous": True},
                ],
            },
            {"name": "commit", "description": "Record changes"},
        ],
        "options": [{"name": "--version", "description": "Print the git version"}],
    },
    {
        "name": "jest",
        "description": "Delightful JavaScript testing",
        "args": {"name": "regex", "isOptional": True, "isVariadic": True},
        "options": [
            {"name": ["--bail", "-b"], "description": "Exit after the first failing test"},
            {"name": "--watch", "description": "Watch files for changes"},
            {"name": "--config", "description": "Config file", "args": {"name": "path", "template": "filepaths"}},
            {"name": "--verbose", "isRepeatable": 2},
        ],
    },
    {
        "name": "esbuild",
        "description": "An extremely fast bundler",
        "args": {"name": "entry points", "isVariadic": True, "template": "filepaths"},
        "options": [
            {"name": "--bundle", "description": "Bundle all dependencies"},
            {
                "name": "--target",
                "description": "Environment target",
                "requiresSeparator": True,
                "args": {"name": "target", "generators": {"custom": esbuild_targets, "getQueryTerm": ","}},
            },
        ],
    },
    {
        "name": "pnpm",
        "subcommands": [{"name": "build", "description": "Run the build script"}],
        "options": [{"name": "--version"}],
    },
    {"name": "base64", "options": [{"name": ["-d", "--decode"]}]},
    {"name": "node", "args": {"name": "script", "template": "filepaths"}},
    {
        "name": "ls",
        "args": {"name": "path", "description": "Directory to list", "isOptional": True, "default": "."},
        "options": [{"name": "-l", "description": "Long format"}],
    },
    {"name": "sudo", "args": {"name": "command", "isCommand": True}},
    {
        "name": "tool",
        "options": [{"name": "--verbose", "isPersistent": True}, {"name": "--only-root"}],
        "subcommands": [{"name": "run", "args": {"name": "task", "isOptional": True}}],
    },
    {"name": "mvn", "parserDirectives": {"optionArgSeparators": "="}, "options": [{"name": "-q"}]},
]


class FakeRunner:
    """Answers generator scripts from a fixed table."""

    def __init__(self, outputs: dict[str, str] | None = None) -> None:
        self.outputs = outputs or {}
        self.calls: list[str] = []

    async def run(self, command: str, cwd: Path | None, timeout_ms: int) -> str:
        self.calls.append(command)
        return self.outputs.get(command, "")


@pytest.fixture
def project(tmp_path):
    """A project directory with a few files for path suggestions."""
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "index.ts").write_text("export {}\n")
    (tmp_path / "start.mjs").write_text("console.log('hi')\n")
    (tmp_path / "jest.config.js").write_text("module.exports = {}\n")
    return tmp_path


@pytest.fixture
def runner():
    return FakeRunner({BRANCH_SCRIPT: "main\nfeature\n"})


@pytest.fixture
def make_engine(runner):
    """Build an engine over the shared catalog with the given settings."""

    def _make(**settings) -> Engine:
        return Engine(catalog=SpecCatalog(SPECS), settings=Settings(**settings), runner=runner)

    return _make


@pytest.fixture
def engine(make_engine):
    return make_engine()


def complete(engine: Engine, text: str, cursor: int | None = None, cwd: Path | None = None) -> CompletionList:
    return asyncio.run(engine.complete_text(text, cursor, cwd))


def item_named(result: CompletionList, label: str):
    return next(item for item in result.items if item.label == label)
