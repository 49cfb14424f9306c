"""Language supports — where commands live inside each kind of document."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from shellsense.core.globs import match_glob
from shellsense.models.document import Position, Range, TextDocument
from shellsense.services.lint import Diagnostic

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DocumentSelector:
    """Matches documents by language id or by a path glob."""

    language_ids: tuple[str, ...] = ()
    pattern: str | None = None

    def matches(self, document: TextDocument) -> bool:
        if document.language_id in self.language_ids:
            return True
        if self.pattern:
            return match_glob(self.pattern, document.path.as_posix().lstrip("/"))
        return False


@dataclass(frozen=True)
class CodeAction:
    """A shell command that fixes a diagnostic when run in ``cwd``."""

    title: str
    command: str
    cwd: Path

    def to_dict(self) -> dict[str, Any]:
        return {"title": self.title, "command": self.command, "cwd": str(self.cwd)}


class LanguageSupport:
    """Base class for a document kind.

    Subclasses must locate the single-line command under a position. Listing every
    command of a document is optional but enables lint, highlighting and path renames.
    """

    #: glob of document names whose path arguments follow file renames
    path_auto_rename: str | None = None

    def provide_single_line_range(self, document: TextDocument, position: Position) -> Range | None:
        raise NotImplementedError

    def get_all_single_line_command_locations(self, document: TextDocument) -> list[Range] | None:
        return None

    def is_spec_can_be_used(self, spec_name: str, document: TextDocument) -> bool | str:
        """True, or a message explaining why the command can't be used here."""
        return True

    def provide_code_actions(self, document: TextDocument, diagnostic: Diagnostic) -> list[CodeAction]:
        """Fixes for ``diagnostic``, as commands the host may run."""
        return []


class LanguageRegistry:
    """Selector → support registrations; the latest matching registration wins."""

    def __init__(self) -> None:
        self._entries: list[tuple[DocumentSelector, LanguageSupport]] = []

    def register(self, selector: DocumentSelector, support: LanguageSupport) -> Callable[[], None]:
        entry = (selector, support)
        self._entries.append(entry)
        logger.debug("Registered %s for %s", type(support).__name__, selector)

        def dispose() -> None:
            if entry in self._entries:
                self._entries.remove(entry)

        return dispose

    def support_for(self, document: TextDocument) -> LanguageSupport | None:
        for selector, support in reversed(self._entries):
            if selector.matches(document):
                return support
        return None

    def is_supported(self, document: TextDocument) -> bool:
        return self.support_for(document) is not None


def default_registry() -> LanguageRegistry:
    """Registry with the command line, shell script and package.json supports."""
    from shellsense.languages.package_json import PACKAGE_JSON_SELECTOR, PackageJsonSupport
    from shellsense.languages.shell import (
        COMMAND_LINE_SELECTOR,
        SHELL_SELECTOR,
        CommandLineSupport,
        ShellScriptSupport,
    )

    registry = LanguageRegistry()
    registry.register(COMMAND_LINE_SELECTOR, CommandLineSupport())
    registry.register(SHELL_SELECTOR, ShellScriptSupport())
    registry.register(PACKAGE_JSON_SELECTOR, PackageJsonSupport())
    return registry
