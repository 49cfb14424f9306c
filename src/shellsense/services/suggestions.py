"""Suggestion collector — turns spec nodes into ordered completion items.

Sort order is encoded in ``sort_text``: a category letter followed by
``100 - priority`` zero-padded to three digits, so higher priority sorts first
within a category.

    ""  root commands
    a   option-argument and generator suggestions
    b   positional argument suggestions
    c   subcommands, additional suggestions, mixins
    d   options
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from shellsense.core.config import Settings
from shellsense.models.command import DocumentInfo
from shellsense.models.document import Position, Range
from shellsense.models.spec import Arg, BaseSuggestion, Option, Subcommand, Suggestion, to_suggestion
from shellsense.services.catalog import SpecCatalog
from shellsense.services.generators import GeneratorExecutor, GeneratorRequest

logger = logging.getLogger(__name__)

ACCEPT_COMPLETION_COMMAND = "_shellsense.acceptCompletion"
TRIGGER_SUGGEST_COMMAND = "editor.action.triggerSuggest"

# icon hints keyed by root command; applied to items without an explicit kind
NICE_ICON_MAP = {
    "esbuild": "esbuild.js",
}

STABLE_ICON_MAP = {
    "fig://icon?type=yarn": "yarn.lock",
    "fig://icon?type=npm": "package.json",
    "fig://icon?type=git": ".gitkeep",
}

ROOT_COMMAND_ICON = ".sh"


class CompletionKind(str, Enum):
    text = "text"
    constant = "constant"
    module = "module"
    event = "event"
    folder = "folder"
    file = "file"


@dataclass(frozen=True)
class CompletionCommand:
    """A host command to run after the item is accepted."""

    command: str
    arguments: dict[str, Any] = field(default_factory=dict)


@dataclass
class CompletionItem:
    label: str
    sort_text: str
    kind: CompletionKind | None = None
    detail: str | None = None
    description: str | None = None
    insert_text: str | None = None
    is_snippet: bool = False
    documentation: str | None = None
    icon: str | None = None
    range: Range | None = None
    deprecated: bool = False
    command: CompletionCommand | None = None

    @property
    def text_to_insert(self) -> str:
        return self.label if self.insert_text is None else self.insert_text

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"label": self.label, "sort_text": self.sort_text}
        for key in ("detail", "description", "insert_text", "documentation", "icon"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        if self.kind is not None:
            data["kind"] = self.kind.value
        if self.is_snippet:
            data["is_snippet"] = True
        if self.range is not None:
            data["range"] = self.range.to_dict()
        if self.deprecated:
            data["deprecated"] = True
        if self.command is not None:
            data["command"] = {"command": self.command.command, "arguments": self.command.arguments}
        return data


@dataclass
class CompletionList:
    items: list[CompletionItem] = field(default_factory=list)
    is_incomplete: bool = False

    def sorted_items(self) -> list[CompletionItem]:
        return sorted(self.items, key=lambda item: (item.sort_text, item.label))

    def labels(self) -> list[str]:
        return [item.label for item in self.sorted_items()]


def sort_text(category: str, priority: float) -> str:
    priority = min(max(priority, 0), 100)
    return f"{category}{100 - int(priority):03d}"


def list_directory(path: Path) -> list[tuple[str, bool]]:
    """Return ``(name, is_dir)`` pairs; an unreadable directory lists as empty."""
    try:
        return [(entry.name, entry.is_dir()) for entry in path.iterdir()]
    except OSError:
        return []


def _matches(names: list[str], word: str, strategy: str) -> bool:
    if strategy == "fuzzy" or not word:
        return True
    return any(name.startswith(word) for name in names)


@dataclass
class CompletionContext:
    """Per-request inputs shared by every suggestion source."""

    info: DocumentInfo
    settings: Settings
    base: Position = Position(0, 0)  # document position of the command's first character
    cwd: Path | None = None
    document_key: str = ""


class SuggestionCollector:
    """Builds completion items for one completion request."""

    def __init__(
        self,
        context: CompletionContext,
        catalog: SpecCatalog,
        executor: GeneratorExecutor,
        is_spec_usable: Callable[[str], bool | str] | None = None,
        list_dir: Callable[[Path], list[tuple[str, bool]]] = list_directory,
    ) -> None:
        self.context = context
        self.catalog = catalog
        self.executor = executor
        self.is_spec_usable = is_spec_usable
        self.list_dir = list_dir

    @property
    def info(self) -> DocumentInfo:
        return self.context.info

    @property
    def settings(self) -> Settings:
        return self.context.settings

    def _range(self, start: int, end: int) -> Range:
        base = self.context.base
        return Range(base.translate(start), base.translate(end))

    def _token_range(self, word: str) -> Range | None:
        """Replace range for ``word`` typed right before the cursor."""
        if not word.strip():
            return None
        token = self.info.current_token
        end = token.end
        source = self.info.token_source(self.info.current_index)
        if len(source) > 1 and source[0] in ('"', "'") and source[-1] == source[0]:
            end -= 1
        return self._range(self.info.cursor - len(word), max(end, self.info.cursor))

    def _base_item(
        self,
        suggestion: BaseSuggestion,
        name: str,
        category: str,
        kind: CompletionKind | None,
        word: str,
        names: list[str] | None = None,
        strategy: str | None = None,
    ) -> CompletionItem | None:
        """Shared conversion: hidden/filter checks, sort text, snippet, icons, range."""
        names = names or [name]
        if suggestion.hidden and word not in names:
            return None
        if not _matches(names, word, strategy or self.settings.filter_strategy):
            return None
        item = CompletionItem(
            label=suggestion.display_name or name,
            sort_text=sort_text(category, suggestion.priority),
            kind=kind,
            documentation=suggestion.description or None,
            deprecated=suggestion.deprecated,
            range=self._token_range(word),
        )
        if suggestion.insert_value is not None:
            item.insert_text = suggestion.insert_value.replace("{cursor}", "$1", 1)
            item.is_snippet = True
        if self.settings.use_file_icons:
            if kind is None and self.info.spec_name in NICE_ICON_MAP:
                item.icon = NICE_ICON_MAP[self.info.spec_name]
            if suggestion.icon and suggestion.icon in STABLE_ICON_MAP:
                item.icon = STABLE_ICON_MAP[suggestion.icon]
        return item

    def _insert_space(self, takes_arguments: bool) -> tuple[bool, bool]:
        """Return (append a space, move over the next space instead)."""
        policy = self.settings.insert_space
        if policy == "off":
            return False, False
        offset = self.info.current_offset + len(self.info.current_value)
        next_two = self.info.input_string[offset : offset + 2]
        if policy == "ifSubcommandOrOptionTakeArguments":
            return takes_arguments and not next_two.startswith(" "), False
        if next_two == "  ":
            return False, True
        return not next_two.startswith(" "), False

    def root_completions(self) -> list[CompletionItem]:
        word = self.info.current_value
        items: list[CompletionItem] = []
        for spec in self.catalog.specs():
            name = spec.primary_name
            if name in self.settings.ignore_commands:
                continue
            if self.is_spec_usable is not None and self.is_spec_usable(name) is not True:
                continue
            item = self._base_item(spec, name, "", CompletionKind.file, word)
            if item is None:
                continue
            if self.settings.use_file_icons:
                item.icon = ROOT_COMMAND_ICON
            items.append(item)
        return items

    def subcommand_completions(self, subcommands: list[Subcommand]) -> list[CompletionItem]:
        word = self.info.current_value
        items: list[CompletionItem] = []
        for subcommand in subcommands:
            item = self._base_item(
                subcommand,
                ", ".join(subcommand.name),
                "c",
                CompletionKind.module,
                word,
                names=subcommand.name,
            )
            if item is None:
                continue
            if item.insert_text is None:
                insert_name = next((n for n in subcommand.name if word.lower() in n.lower()), subcommand.primary_name)
                takes_arguments = (
                    subcommand.requires_subcommand
                    or bool(subcommand.subcommands)
                    or any(not arg.is_optional for arg in subcommand.args)
                )
                add_space, cursor_right = self._insert_space(takes_arguments)
                item.insert_text = insert_name + (" " if add_space else "")
                if item.insert_text != item.label or cursor_right:
                    item.command = CompletionCommand(ACCEPT_COMPLETION_COMMAND, {"cursor_right": cursor_right})
            items.append(item)
        return items

    def additional_completions(self, suggestions: list[Suggestion]) -> list[CompletionItem]:
        return self._suggestions_to_items(suggestions, "c", CompletionKind.event, self.info.current_value)

    def mixin_completions(self) -> list[CompletionItem]:
        key = " ".join(self.info.tokens_before_cursor()[:-1])
        names = self.settings.mixins.get(key, ())
        return self._suggestions_to_items([Suggestion(name=[n]) for n in names], "c", CompletionKind.text, self.info.current_value)

    def option_completions(self, options: list[Option], used_options: list[str]) -> list[CompletionItem]:
        word = self.info.current_value
        items: list[CompletionItem] = []
        for option in options:
            used_count = sum(1 for name in used_options if name in option.name)
            if isinstance(option.is_repeatable, bool):
                if not option.is_repeatable and used_count > 0:
                    continue
            elif used_count >= option.is_repeatable:
                continue
            if option.depends_on and not all(name in used_options for name in option.depends_on):
                continue
            if any(name in used_options for name in option.exclusive_on):
                continue

            item = self._base_item(option, ", ".join(option.name), "d", None, word, names=option.name)
            if item is None:
                continue
            item.detail = "REQUIRED" if option.is_required else _arg_preview(option)

            insert_name = next((n for n in option.name if word.lower() in n.lower()), option.name[0])
            insert_text = insert_name + option.requires_separator
            add_space, cursor_right = self._insert_space(option.takes_args)
            if item.insert_text is not None:
                cursor_right = False
            elif option.takes_args and self.settings.insert_space == "always" and not cursor_right:
                add_space = True
            if len(option.requires_separator) != 1 and add_space:
                insert_text += " "
            if item.insert_text is None:
                item.insert_text = insert_text
            if item.insert_text != item.label or cursor_right:
                item.command = CompletionCommand(ACCEPT_COMPLETION_COMMAND, {"cursor_right": cursor_right})
            items.append(item)
        return items

    async def arg_completions(
        self,
        arg: Arg,
        node: Subcommand,
        word: str,
        option_argument: bool = False,
    ) -> list[CompletionItem]:
        """Static suggestions, templates and generators of one argument."""
        category = "a" if option_argument else "b"
        strategy = arg.filter_strategy if arg.filter_strategy != "default" else self.settings.filter_strategy
        items: list[CompletionItem] = []
        if arg.suggest_current_token and word:
            items.append(CompletionItem(label=word, kind=CompletionKind.text, sort_text="a000"))

        items.extend(self._suggestions_to_items(arg.suggestions, category, CompletionKind.constant, word, strategy))
        items.extend(self._suggestions_to_items(self._template_suggestions(arg.template, node, word), "a", CompletionKind.constant, word, strategy))
        for generator in arg.generators:
            if not generator.template:
                continue
            suggestions = self._template_suggestions(generator.template, node, word)
            if generator.filter_template_suggestions is not None:
                suggestions = [to_suggestion(s) for s in generator.filter_template_suggestions(suggestions)]
            items.extend(self._suggestions_to_items(suggestions, "a", CompletionKind.constant, word, strategy))

        if arg.generators and not arg.debounce:
            request = GeneratorRequest(
                tokens=self.info.tokens_before_cursor()[:-1] + [word],
                current_value=word,
                tokens_except_current=self.info.tokens_except_current(),
                document_key=self.context.document_key,
                segment_start=self.info.segment_start,
                cwd=self.context.cwd,
                timeout_ms=self.settings.script_timeout_ms,
                filter_strategy=strategy,
            )
            for result in await self.executor.run(arg.generators, request):
                if result.query_term is None:
                    items.extend(self._suggestions_to_items(result.suggestions, "a", CompletionKind.constant, word, strategy))
                else:
                    # already filtered by the generator's own query term
                    items.extend(
                        self._suggestions_to_items(result.suggestions, "a", CompletionKind.constant, result.query_term, "fuzzy")
                    )

        if arg.default:
            for item in items:
                if item.label == arg.default:
                    item.description = "DEFAULT"
        return items

    def _suggestions_to_items(
        self,
        suggestions: list[Suggestion],
        category: str,
        kind: CompletionKind,
        word: str,
        strategy: str | None = None,
    ) -> list[CompletionItem]:
        items: list[CompletionItem] = []
        for suggestion in suggestions:
            if not suggestion.name:
                continue
            item = self._base_item(suggestion, suggestion.primary_name, category, kind, word, suggestion.name, strategy)
            if item is None:
                continue
            if suggestion.type in ("folder", "file"):
                is_dir = suggestion.type == "folder"
                last_part = word.rsplit("/", 1)[-1]
                item.kind = CompletionKind.folder if is_dir else CompletionKind.file
                # trailing "/" hides the folder icon
                item.detail = item.label[:-1] if is_dir else None
                item.command = CompletionCommand(TRIGGER_SUGGEST_COMMAND) if is_dir else None
                item.range = self._range(self.info.cursor - len(last_part), self.info.cursor)
            items.append(item)
        return items

    def _template_suggestions(self, templates: list[str], node: Subcommand, word: str) -> list[Suggestion]:
        suggestions: list[Suggestion] = []
        if "help" in templates:
            suggestions.extend(Suggestion(name=[s.primary_name], description=s.description) for s in node.subcommands)
        if "filepaths" in templates:
            suggestions.extend(self.file_suggestions(word))
        elif "folders" in templates:
            suggestions.extend(self.file_suggestions(word, folders_only=True))
        return suggestions

    def file_suggestions(self, typed: str, folders_only: bool = False) -> list[Suggestion]:
        """List the directory implied by ``typed`` (everything before the last ``/``)."""
        if self.context.cwd is None:
            return []
        folder = "/".join(typed.split("/")[:-1])
        suggestions: list[Suggestion] = []
        for name, is_dir in sorted(self.list_dir(self.context.cwd / folder)):
            if folders_only and not is_dir:
                continue
            prefix = f"{folder}/" if folder else ""
            suggestions.append(
                Suggestion(
                    name=[f"{prefix}{name}/" if is_dir else f"{prefix}{name}"],
                    display_name=f"{name}/" if is_dir else name,
                    type="folder" if is_dir else "file",
                    # folders above files, like a file explorer
                    priority=71 if is_dir else 70,
                )
            )
        return suggestions


def _arg_preview(option: Option) -> str | None:
    names = [arg.name for arg in option.args if arg.name and arg.name.strip()]
    if not names:
        return None
    return " " + " ".join(names)
