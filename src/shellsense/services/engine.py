"""Request facade — every editor feature as one call on an :class:`Engine`.

Settings are immutable: to apply a configuration change, build new :class:`Settings`
and call :meth:`Engine.with_settings`, which keeps the catalog and generator caches.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from shellsense.core.config import Settings
from shellsense.core.exceptions import ParseError, RenameError
from shellsense.core.globs import match_glob
from shellsense.languages import CodeAction, LanguageRegistry, LanguageSupport, default_registry
from shellsense.models.command import DocumentInfo
from shellsense.models.document import Position, Range, TextDocument, TextEdit, WorkspaceEdit
from shellsense.parsing.commands import build_document_info, get_command_spans, parse_command_string
from shellsense.parsing.tokenizer import Environment
from shellsense.services.catalog import SpecCatalog
from shellsense.services.generators import GeneratorExecutor, ScriptPolicy, ScriptRunner, ShellScriptRunner
from shellsense.services.lint import Diagnostic, problems_to_diagnostics
from shellsense.services.suggestions import (
    CompletionContext,
    CompletionList,
    SuggestionCollector,
    list_directory,
)
from shellsense.services.walker import PathPart, SemanticTag, SpecWalker, WalkMode, WalkResult

logger = logging.getLogger(__name__)

COMMAND_LINE_LANGUAGE = "commandline"


@dataclass(frozen=True)
class SignatureHelp:
    label: str
    active_parameter: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"label": self.label, "active_parameter": self.active_parameter}


@dataclass(frozen=True)
class Hover:
    contents: str  # markdown
    range: Range | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"contents": self.contents, "range": self.range.to_dict() if self.range else None}


@dataclass(frozen=True)
class SemanticToken:
    range: Range
    tag: SemanticTag

    def to_dict(self) -> dict[str, Any]:
        return {"range": self.range.to_dict(), "tag": self.tag.value}


@dataclass(frozen=True)
class SelectionRange:
    range: Range
    parent: SelectionRange | None = None

    def chain(self) -> list[Range]:
        ranges = []
        node: SelectionRange | None = self
        while node is not None:
            ranges.append(node.range)
            node = node.parent
        return ranges


class Engine:
    """Computes completions, diagnostics and friends for documents."""

    def __init__(
        self,
        catalog: SpecCatalog | None = None,
        settings: Settings | None = None,
        languages: LanguageRegistry | None = None,
        runner: ScriptRunner | None = None,
        env: Environment | None = None,
        list_dir: Callable[[Path], list[tuple[str, bool]]] = list_directory,
        executor: GeneratorExecutor | None = None,
    ) -> None:
        self.catalog = catalog if catalog is not None else SpecCatalog()
        self.settings = settings or Settings()
        self.languages = languages or default_registry()
        self.runner = runner
        self.env = env
        self.list_dir = list_dir
        if executor is None:
            executor = GeneratorExecutor(runner or ShellScriptRunner(ScriptPolicy.from_settings(self.settings)))
        self.executor = executor

    def with_settings(self, settings: Settings) -> "Engine":
        """Return an engine using ``settings``; catalog and generator caches are shared."""
        runner = self.runner or ShellScriptRunner(ScriptPolicy.from_settings(settings))
        return Engine(
            catalog=self.catalog,
            settings=settings,
            languages=self.languages,
            runner=self.runner,
            env=self.env,
            list_dir=self.list_dir,
            executor=GeneratorExecutor(runner, caches=self.executor.caches),
        )

    @staticmethod
    def text_document(text: str, cwd: Path | str | None = None) -> TextDocument:
        """Wrap a bare command line so it can go through the document API."""
        directory = Path(cwd) if cwd is not None else Path.cwd()
        return TextDocument(directory / "<command-line>", text, language_id=COMMAND_LINE_LANGUAGE)

    # ── Walking ──────────────────────────────────────────────────

    def _walk(
        self,
        document: TextDocument,
        position: Position,
        mode: WalkMode,
    ) -> tuple[WalkResult, DocumentInfo] | None:
        support = self.languages.support_for(document)
        if support is None:
            return None
        command_range = support.provide_single_line_range(document, position)
        if command_range is None:
            return None
        return self._walk_range(document, support, command_range, position, mode)

    def _walk_range(
        self,
        document: TextDocument,
        support: LanguageSupport,
        command_range: Range,
        position: Position,
        mode: WalkMode,
    ) -> tuple[WalkResult, DocumentInfo] | None:
        text = document.get_text(command_range)
        cursor = position.character - command_range.start.character
        try:
            info = build_document_info(text, cursor, strip_current_value=mode is WalkMode.completions, env=self.env)
        except ParseError as e:
            logger.debug("Skipping unparsable command %r: %s", text, e)
            return None
        if info is None or info.spec_name in self.settings.ignore_commands:
            return None

        def is_spec_usable(name: str) -> bool | str:
            return support.is_spec_can_be_used(name, document)

        collector = None
        if mode is WalkMode.completions:
            context = CompletionContext(
                info=info,
                settings=self.settings,
                base=command_range.start,
                cwd=document.directory,
                document_key=str(document.path),
            )
            collector = SuggestionCollector(context, self.catalog, self.executor, is_spec_usable, self.list_dir)
        walker = SpecWalker(self.catalog, command_range.start, collector, is_spec_usable)
        return walker.walk(info, mode), info

    def command_locations(self, document: TextDocument) -> list[Range]:
        """Range of every command in ``document`` (one per ``&&``/``|``/``;`` segment)."""
        support = self.languages.support_for(document)
        if support is None:
            return []
        locations: list[Range] = []
        for line_range in support.get_all_single_line_command_locations(document) or []:
            text = document.get_text(line_range)
            try:
                spans = get_command_spans(text, self.env)
            except ParseError as e:
                logger.debug("Skipping unparsable command %r: %s", text, e)
                continue
            start = line_range.start
            locations.extend(Range(start.translate(s), start.translate(e)) for s, e in spans)
        return locations

    def _walk_all(self, document: TextDocument, mode: WalkMode) -> list[WalkResult]:
        support = self.languages.support_for(document)
        if support is None:
            return []
        results = []
        for location in self.command_locations(document):
            if location.is_empty:
                continue
            walked = self._walk_range(document, support, location, location.start, mode)
            if walked is not None:
                results.append(walked[0])
        return results

    # ── Requests ─────────────────────────────────────────────────

    async def compute_completions(self, document: TextDocument, position: Position) -> CompletionList:
        walked = self._walk(document, position, WalkMode.completions)
        if walked is None:
            return CompletionList()
        result, _ = walked
        items = list(result.completions)
        for batch in await asyncio.gather(*result.pending, return_exceptions=True):
            if isinstance(batch, BaseException):
                logger.warning("Argument suggestions failed: %s", batch)
                continue
            items.extend(batch)
        return CompletionList(items=items, is_incomplete=result.incomplete)

    def compute_signature_help(self, document: TextDocument, position: Position) -> SignatureHelp | None:
        walked = self._walk(document, position, WalkMode.signature_help)
        if walked is None or walked[0].arg_signature is None:
            return None
        arg = walked[0].arg_signature
        label = arg.description or arg.name or "argument"
        if arg.is_optional:
            label += "?"
        if arg.default:
            label += f" ({arg.default})"
        return SignatureHelp(label)

    def compute_hover(self, document: TextDocument, position: Position) -> Hover | None:
        walked = self._walk(document, position, WalkMode.hover)
        if walked is None:
            return None
        result, _ = walked
        suggestion = result.current_subcommand or result.current_option or result.arg_signature
        if suggestion is None or not suggestion.description:
            return None
        kind = ""
        if result.arg_signature is not None:
            kind = "arg"
        if result.current_option is not None:
            kind = "option"
        # the root command gets no tag
        if result.current_subcommand is not None and result.current_index != 0:
            kind = "subcommand"
        prefix = f"({kind}) " if kind else ""
        return Hover(prefix + suggestion.description, result.hover_range)

    def compute_diagnostics(self, document: TextDocument) -> list[Diagnostic]:
        if not self.settings.lint.validate_:
            return []
        problems = []
        for result in self._walk_all(document, WalkMode.lint):
            problems.extend(result.problems)
        return problems_to_diagnostics(problems, self.settings.lint)

    def compute_code_actions(self, document: TextDocument, text_range: Range) -> list[CodeAction]:
        """Fixes offered by the language support for diagnostics covering ``text_range``."""
        support = self.languages.support_for(document)
        if support is None:
            return []
        actions: list[CodeAction] = []
        for diagnostic in self.compute_diagnostics(document):
            if diagnostic.range.contains(text_range.start) and diagnostic.range.contains(text_range.end):
                actions.extend(support.provide_code_actions(document, diagnostic))
        return actions

    def compute_semantic_tokens(self, document: TextDocument) -> list[SemanticToken]:
        if not self.settings.semantic_highlighting:
            return []
        tokens = []
        for result in self._walk_all(document, WalkMode.semantic_highlight):
            tokens.extend(SemanticToken(part.range, part.tag) for part in result.semantic_parts)
        return tokens

    # ── Paths ────────────────────────────────────────────────────

    def _path_part(self, document: TextDocument, position: Position) -> PathPart | None:
        walked = self._walk(document, position, WalkMode.signature_help)
        if walked is None:
            return None
        return walked[0].current_path_part

    def provide_definition(self, document: TextDocument, position: Position) -> Path | None:
        """File referenced by the path argument under ``position``."""
        part = self._path_part(document, position)
        if part is None or not part.contents:
            return None
        path = document.directory / part.contents
        if not path.exists():
            raise RenameError(f"File doesn't exist: {part.contents}")
        return path

    def prepare_rename(self, document: TextDocument, position: Position) -> Range:
        part = self._path_part(document, position)
        if part is None or not part.contents:
            raise RenameError("You cannot rename this element")
        if not (document.directory / part.contents).exists():
            raise RenameError("Renaming file doesn't exist")
        return part.range

    def provide_rename_edits(self, document: TextDocument, position: Position, new_name: str) -> WorkspaceEdit:
        """Rename the file under ``position`` and rewrite the argument."""
        part = self._path_part(document, position)
        if part is None or not part.contents:
            raise RenameError("You cannot rename this element")
        old_path = document.directory / part.contents
        if not old_path.exists():
            raise RenameError("Renaming file doesn't exist")
        edit = WorkspaceEdit()
        edit.add(document.path, [TextEdit(part.range, new_name)])
        edit.file_renames.append((old_path, document.directory / new_name))
        return edit

    def compute_path_rename_edits(
        self,
        documents: list[TextDocument],
        renames: list[tuple[Path, Path]],
        confirm: Callable[[WorkspaceEdit], bool] | None = None,
    ) -> WorkspaceEdit:
        """Rewrite path arguments that point at files renamed outside the editor."""
        policy = self.settings.update_paths_on_file_rename
        edit = WorkspaceEdit()
        if policy == "never" or not renames:
            return edit
        normalized = [(os.path.normpath(old), Path(new)) for old, new in renames]
        for document in documents:
            support = self.languages.support_for(document)
            if support is None:
                continue
            if not support.path_auto_rename or not match_glob(support.path_auto_rename, document.path.name):
                continue
            cwd = document.directory
            edits: list[TextEdit] = []
            for result in self._walk_all(document, WalkMode.path_parts):
                for part in result.path_parts:
                    target = os.path.normpath(cwd / part.contents)
                    for old, new in normalized:
                        if target == old:
                            edits.append(TextEdit(part.range, Path(os.path.relpath(new, cwd)).as_posix()))
                            break
            if edits:
                edit.add(document.path, edits)
        if edit.size and policy == "ask" and (confirm is None or not confirm(edit)):
            logger.info("Path updates declined")
            return WorkspaceEdit()
        return edit

    def selection_ranges(self, document: TextDocument, positions: list[Position]) -> list[SelectionRange | None]:
        """Token (inner, then quoted) inside the whole command, per position."""
        support = self.languages.support_for(document)
        ranges: list[SelectionRange | None] = []
        for position in positions:
            command_range = support.provide_single_line_range(document, position) if support else None
            if command_range is None:
                ranges.append(None)
                continue
            text = document.get_text(command_range)
            start = command_range.start
            try:
                location = parse_command_string(text, position.character - start.character, False, self.env)
            except ParseError:
                location = None
            if location is None:
                ranges.append(None)
                continue
            token = location.tokens[location.current_index]
            first, last = location.tokens[0], location.tokens[-1]
            command = SelectionRange(Range(start.translate(first.offset), start.translate(last.end)))
            token_range = Range(start.translate(token.offset), start.translate(token.end))
            if text[token.offset : token.offset + 1] in ('"', "'") and token.end - token.offset > 1:
                inner = Range(token_range.start.translate(1), token_range.end.translate(-1))
                ranges.append(SelectionRange(inner, SelectionRange(token_range, command)))
            else:
                ranges.append(SelectionRange(token_range, command))
        return ranges

    # ── Plain-string helpers ─────────────────────────────────────

    async def complete_text(self, text: str, cursor: int | None = None, cwd: Path | str | None = None) -> CompletionList:
        cursor = len(text) if cursor is None else cursor
        return await self.compute_completions(self.text_document(text, cwd), Position(0, cursor))

    def lint_text(self, text: str, cwd: Path | str | None = None) -> list[Diagnostic]:
        return self.compute_diagnostics(self.text_document(text, cwd))
