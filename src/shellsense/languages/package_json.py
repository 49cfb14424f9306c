"""package.json: commands are the string values of the top-level ``scripts`` object."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from shellsense.languages import CodeAction, DocumentSelector, LanguageSupport
from shellsense.models.document import Position, Range, TextDocument
from shellsense.services.lint import Diagnostic, ProblemCategory

logger = logging.getLogger(__name__)

PACKAGE_JSON_SELECTOR = DocumentSelector(pattern="package.json")

# commands shipped by npm packages: usable only when the package is installed locally
PACKAGES_COMMANDS: dict[str, str] = {
    "eslint": "eslint",
    "electron": "electron",
    "dotenv": "dotenv-cli",
    "esbuild": "esbuild",
    "webpack": "webpack",
    "jest": "jest",
    "vite": "vite",
    "pre-commit": "pre-commit",
    "rollup": "rollup",
    "vue": "vue",
    "ts-node": "ts-node",
    "tsc": "typescript",
}

# checked in order; npm when no lockfile is present
PACKAGE_MANAGER_LOCKFILES: dict[str, str] = {
    "pnpm": "pnpm-lock.yaml",
    "yarn": "yarn.lock",
    "npm": "package-lock.json",
}

_DEPENDENCY_FIELDS = ("dependencies", "devDependencies", "optionalDependencies", "peerDependencies")
_STRING = re.compile(r'"(?:[^"\\\n]|\\.)*"')


@dataclass
class _Frame:
    kind: str  # "{" or "["
    is_scripts: bool = False
    expect_key: bool = True
    key: str | None = None


def script_value_spans(text: str) -> list[tuple[int, int]]:
    """Offsets of every ``scripts`` value, quotes excluded.

    A small scanner instead of a full parse: it keeps working on documents that are
    being edited and are not valid JSON yet.
    """
    spans: list[tuple[int, int]] = []
    stack: list[_Frame] = []
    i = 0
    length = len(text)
    while i < length:
        c = text[i]
        if c == '"':
            match = _STRING.match(text, i)
            if match is None:
                break
            top = stack[-1] if stack else None
            if top is not None and top.kind == "{":
                if top.expect_key:
                    try:
                        top.key = json.loads(match.group(0))
                    except ValueError:
                        top.key = match.group(0)[1:-1]
                elif top.is_scripts:
                    spans.append((match.start() + 1, match.end() - 1))
            i = match.end()
            continue
        if c in "{[":
            top = stack[-1] if stack else None
            is_scripts = c == "{" and len(stack) == 1 and top is not None and top.key == "scripts" and not top.expect_key
            stack.append(_Frame(kind=c, is_scripts=is_scripts))
        elif c in "}]":
            if stack:
                stack.pop()
        elif c == ":":
            if stack:
                stack[-1].expect_key = False
        elif c == ",":
            if stack and stack[-1].kind == "{":
                stack[-1].expect_key = True
                stack[-1].key = None
        i += 1
    return spans


@lru_cache(maxsize=64)
def dependencies_from_text(text: str) -> tuple[str, ...]:
    try:
        data = json.loads(text)
    except ValueError:
        return ()
    if not isinstance(data, dict):
        return ()
    names: list[str] = []
    for field in _DEPENDENCY_FIELDS:
        deps = data.get(field)
        if isinstance(deps, dict):
            names.extend(deps)
    return tuple(names)


def preferred_package_manager(directory: Path) -> str:
    for manager, lockfile in PACKAGE_MANAGER_LOCKFILES.items():
        if (directory / lockfile).exists():
            return manager
    return "npm"


class PackageJsonSupport(LanguageSupport):
    path_auto_rename = "package.json"

    def __init__(self) -> None:
        self._parent_deps: dict[Path, tuple[str, ...]] = {}

    def provide_single_line_range(self, document: TextDocument, position: Position) -> Range | None:
        offset = document.offset_at(position)
        for start, end in script_value_spans(document.text):
            if start <= offset <= end:
                return Range(document.position_at(start), document.position_at(end))
        return None

    def get_all_single_line_command_locations(self, document: TextDocument) -> list[Range]:
        return [
            Range(document.position_at(start), document.position_at(end))
            for start, end in script_value_spans(document.text)
        ]

    def is_spec_can_be_used(self, spec_name: str, document: TextDocument) -> bool | str:
        if document.path.name != "package.json":
            return True
        package = PACKAGES_COMMANDS.get(spec_name)
        if package is None:
            return True
        if package in dependencies_from_text(document.text):
            return True
        for parent in document.path.resolve().parent.parents:
            if package in self._dependencies_at(parent / "package.json"):
                return True
        return f"{package} is not installed"

    def provide_code_actions(self, document: TextDocument, diagnostic: Diagnostic) -> list[CodeAction]:
        """Offer to install the package behind a command that isn't installed."""
        if diagnostic.code != ProblemCategory.command_not_allowed.value:
            return []
        package = PACKAGES_COMMANDS.get(document.get_text(diagnostic.range))
        if package is None:
            return []
        command = f"{preferred_package_manager(document.directory)} add {package}"
        return [CodeAction(f"Run {command}", command, document.directory)]

    def _dependencies_at(self, path: Path) -> tuple[str, ...]:
        if path not in self._parent_deps:
            try:
                text = path.read_text(encoding="utf-8")
            except OSError:
                text = ""
            self._parent_deps[path] = dependencies_from_text(text) if text else ()
        return self._parent_deps[path]

    def clear_cache(self) -> None:
        """Forget dependencies read from parent package.json files."""
        self._parent_deps.clear()
        logger.debug("Cleared package.json dependency cache")
