"""Specification walker — follows a command line through its spec tree.

One walk serves every request kind. Completion, signature help and hover only look at
the tokens before the cursor and then inspect the cursor token's role; lint, semantic
highlighting and path collection inspect every token of the command.

Known limitation: a token starting with ``-`` is always treated as an option before a
bare ``--``.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum

from shellsense.models.command import DocumentInfo, Token
from shellsense.models.document import Position, Range
from shellsense.models.spec import Arg, Option, Subcommand
from shellsense.services.catalog import SpecCatalog
from shellsense.services.lint import LintProblem, ProblemCategory, guess_option_similar_name
from shellsense.services.suggestions import CompletionItem, SuggestionCollector

logger = logging.getLogger(__name__)


class WalkMode(str, Enum):
    completions = "completions"
    signature_help = "signatureHelp"
    hover = "hover"
    lint = "lint"
    path_parts = "pathParts"
    semantic_highlight = "semanticHighlight"

    @property
    def inspects_all_tokens(self) -> bool:
        return self in (WalkMode.lint, WalkMode.path_parts, WalkMode.semantic_highlight)


class SemanticTag(str, Enum):
    command = "command"
    subcommand = "subcommand"
    arg = "arg"
    option = "option"
    option_arg = "option-arg"
    dangerous = "dangerous"


@dataclass(frozen=True)
class PathPart:
    """A path-valued token; ``range`` excludes surrounding quotes."""

    contents: str
    range: Range


@dataclass(frozen=True)
class SemanticPart:
    range: Range
    tag: SemanticTag


@dataclass
class WalkResult:
    current_index: int
    hover_range: Range | None = None
    completions: list[CompletionItem] = field(default_factory=list)
    pending: list[Awaitable[list[CompletionItem]]] = field(default_factory=list)
    incomplete: bool = False
    arg_signature: Arg | None = None
    current_option: Option | None = None
    current_subcommand: Subcommand | None = None
    problems: list[LintProblem] = field(default_factory=list)
    current_path_part: PathPart | None = None
    path_parts: list[PathPart] = field(default_factory=list)
    semantic_parts: list[SemanticPart] = field(default_factory=list)

    def discard_pending(self) -> None:
        for awaitable in self.pending:
            # never awaited: close the coroutine to avoid a "never awaited" warning
            close = getattr(awaitable, "close", None)
            if close is not None:
                close()
        self.pending.clear()


@dataclass
class _WalkState:
    node: Subcommand
    arg_count: int = 0
    suggest_subcommands: bool = True
    suggest_options: bool = True
    # bare "--" seen: later dash tokens are positionals
    end_of_options: bool = False
    persistent: list[Option] = field(default_factory=list)
    used: dict[int, int] = field(default_factory=dict)

    def enter(self, node: Subcommand) -> None:
        self.persistent = [o for o in self.persistent + self.node.options if o.is_persistent]
        self.node = node
        self.arg_count = 0

    def switch_spec(self, node: Subcommand) -> None:
        self.node = node
        self.arg_count = 0
        self.persistent = []

    def options(self) -> list[Option]:
        own = self.node.normalized_options()
        names = {name for option in own for name in option.name}
        inherited = [o for o in self.persistent if not any(name in names for name in o.name)]
        return own + inherited

    def find_option(self, name: str) -> Option | None:
        option = self.node.find_option(name)
        if option is not None:
            return option
        for inherited in reversed(self.persistent):
            if inherited.matches(name):
                return inherited
        return None

    def active_arg(self) -> Arg | None:
        args = self.node.args
        if self.arg_count < len(args):
            return args[self.arg_count]
        if args and args[-1].is_variadic:
            return args[-1]
        return None


class SpecWalker:
    """Walks one command segment against the catalog."""

    def __init__(
        self,
        catalog: SpecCatalog,
        base: Position = Position(0, 0),
        collector: SuggestionCollector | None = None,
        is_spec_usable: Callable[[str], bool | str] | None = None,
    ) -> None:
        self.catalog = catalog
        self.base = base
        self.collector = collector
        self.is_spec_usable = is_spec_usable

    def _range(self, start: int, end: int) -> Range:
        return Range(self.base.translate(start), self.base.translate(end))

    def token_range(self, info: DocumentInfo, index: int) -> Range:
        token = info.tokens[index]
        return self._range(token.offset, max(token.end, token.offset))

    def _path_part(self, info: DocumentInfo, index: int) -> PathPart:
        token = info.tokens[index]
        start, end = token.offset, token.end
        source = info.token_source(index)
        if len(source) > 1 and source[0] in ('"', "'"):
            start, end = start + 1, end - 1
        return PathPart(token.contents, self._range(start, end))

    def walk(self, info: DocumentInfo, mode: WalkMode) -> WalkResult:
        result = WalkResult(current_index=info.current_index, hover_range=self.token_range(info, info.current_index))
        completing = mode is WalkMode.completions and self.collector is not None
        inspect_all = mode.inspects_all_tokens
        tokens = info.tokens

        def problem(category: ProblemCategory, index: int, message: str) -> None:
            if mode is WalkMode.lint:
                result.problems.append(LintProblem(category, self.token_range(info, index), message))

        def tag(index: int, semantic_tag: SemanticTag) -> None:
            if mode is WalkMode.semantic_highlight:
                result.semantic_parts.append(SemanticPart(self.token_range(info, index), semantic_tag))

        tag(0, SemanticTag.command)
        if info.current_index == 0:
            if completing:
                result.completions.extend(self.collector.root_completions())
                result.completions.extend(self.collector.mixin_completions())
            if mode is WalkMode.hover:
                result.current_subcommand = self.catalog.find(info.spec_name)
            if not inspect_all:
                return result

        spec = self.catalog.find(info.spec_name)
        if spec is None:
            if info.spec_name.strip():
                problem(ProblemCategory.command_name, 0, f"Unknown command {info.spec_name}")
            return result
        if mode is WalkMode.lint and self.is_spec_usable is not None:
            usable = self.is_spec_usable(info.spec_name)
            if usable is not True:
                problem(ProblemCategory.command_not_allowed, 0, str(usable))

        state = _WalkState(node=spec)
        last = len(tokens) if inspect_all else info.current_index
        for index in range(1, last):
            token = tokens[index]
            if token.is_option and not state.end_of_options:
                self._walk_option(info, index, token, state, problem, tag)
                continue
            if not self._walk_positional(info, index, token, state, result, mode, problem, tag):
                return result

        if inspect_all:
            return result
        self._inspect_cursor(info, state, result, mode)
        return result

    def _walk_option(self, info: DocumentInfo, index: int, token: Token, state: _WalkState, problem, tag) -> None:
        name = token.contents
        if name == "--":
            state.suggest_options = False
            state.suggest_subcommands = False
            state.end_of_options = True
            return
        if name == "-":
            return
        option = state.find_option(name)
        if option is None:
            option = self._separated_option(state, name)
        tag(index, SemanticTag.dangerous if option is not None and option.is_dangerous else SemanticTag.option)

        node = state.node
        if node.parser_directives is not None and node.parser_directives.option_arg_separators:
            return
        if not node.options and not state.persistent:
            problem(ProblemCategory.no_options, index, "Command doesn't take options here")
            return
        if option is None:
            valid_names = [n for o in state.options() for n in o.name]
            message = f"Unknown option {name}"
            guess = guess_option_similar_name(name, valid_names)
            if guess:
                message += f" Did you mean {guess}?"
            problem(ProblemCategory.option_name, index, message)
            return
        used = state.used.get(id(option), 0)
        if isinstance(option.is_repeatable, bool):
            reused = not option.is_repeatable and used >= 1
        else:
            reused = used >= option.is_repeatable
        if reused:
            problem(ProblemCategory.option_reuse, index, f"{name} option was already used [here]")
        state.used[id(option)] = used + 1

    def _separated_option(self, state: _WalkState, token: str) -> Option | None:
        """Resolve ``--opt=value`` against options that require a separator."""
        for option in state.options():
            separator = option.requires_separator
            if separator and separator in token and option.matches(token.split(separator, 1)[0]):
                return option
        return None

    def _walk_positional(
        self,
        info: DocumentInfo,
        index: int,
        token: Token,
        state: _WalkState,
        result: WalkResult,
        mode: WalkMode,
        problem,
        tag,
    ) -> bool:
        """Consume a non-option token. Returns False when the walk must stop."""
        contents = token.contents
        subcommand = None if state.end_of_options else state.node.find_subcommand(contents)
        if subcommand is not None:
            state.enter(subcommand)
            tag(index, SemanticTag.subcommand)
            return True

        previous = info.tokens[index - 1]
        option = state.find_option(previous.contents) if previous.is_option and not state.end_of_options else None
        if option is not None and option.takes_args:
            tag(index, SemanticTag.option_arg)
            if any(arg.is_path for arg in option.args):
                result.path_parts.append(self._path_part(info, index))
            return True

        if not state.node.args:
            problem(ProblemCategory.no_arg_input, index, f"{state.node.primary_name} doesn't take argument here")
            return True

        arg = state.active_arg()
        if arg is not None and arg.is_spec_switch and not arg.is_variadic:
            target = contents if arg.is_command else arg.load_spec
            new_spec = self.catalog.find(target) if target else None
            if new_spec is None:
                if arg.is_command:
                    problem(ProblemCategory.command_name, index, f"Unknown command {contents}")
                else:
                    logger.debug("Unresolved spec %r, stopping walk", target)
                return False
            tag(index, SemanticTag.command)
            state.switch_spec(new_spec)
            return True

        tag(index, SemanticTag.arg)
        if arg is not None:
            if arg.is_path:
                result.path_parts.append(self._path_part(info, index))
            if not arg.is_variadic:
                state.arg_count += 1
        return True

    def _inspect_cursor(self, info: DocumentInfo, state: _WalkState, result: WalkResult, mode: WalkMode) -> None:
        """Work out what the token under the cursor is and what may go there."""
        completing = mode is WalkMode.completions and self.collector is not None
        collector = self.collector
        index = info.current_index
        current = info.current_value
        current_is_option = info.current_is_option and not state.end_of_options
        node = state.node

        positional = state.active_arg()
        if positional is not None:
            if completing:
                result.pending.append(collector.arg_completions(positional, node, current))
                result.incomplete = result.incomplete or bool(positional.generators)
            if positional.is_path:
                result.current_path_part = self._path_part(info, index)
            if not current_is_option:
                result.arg_signature = positional

        if mode is WalkMode.hover and not current_is_option:
            result.current_subcommand = node.find_subcommand(current)
        if completing:
            if state.suggest_subcommands:
                result.completions.extend(collector.subcommand_completions(node.subcommands))
                result.completions.extend(collector.additional_completions(node.additional_suggestions))
            result.completions.extend(collector.mixin_completions())

        options = state.options()
        if not options:
            return

        used_options: list[str] = []
        for used in info.used_options:
            separated = None if state.find_option(used) else self._separated_option(state, used)
            if separated is None:
                used_options.append(used)
            else:
                used_options.append(used.split(separated.requires_separator, 1)[0])

        # "--opt=value" typed in the current token
        option_value: tuple[Option, str] | None = None
        completing_name: str | None = None
        for option in options:
            separator = option.requires_separator
            if not separator or separator not in current:
                continue
            name, value = current.split(separator, 1)
            if option.matches(name):
                option_value = (option, value)
                completing_name = name
                break
        if option_value is not None:
            state.suggest_options = False
        elif info.completing_option_value is not None and not state.end_of_options:
            completing_name = info.completing_option_value.name
            option = state.find_option(completing_name)
            if option is not None:
                option_value = (option, info.completing_option_value.value)
        elif current_is_option:
            completing_name = current

        if completing_name is not None:
            result.current_option = state.find_option(completing_name)

        if info.completing_option_full is not None:
            option_index, value_index = info.completing_option_full
            full_option = state.find_option(info.tokens[option_index].contents)
            if full_option is not None and full_option.takes_args:
                result.hover_range = Range(
                    self.token_range(info, option_index).start,
                    self.token_range(info, value_index).end,
                )

        if option_value is not None and option_value[0].takes_args:
            option, value = option_value
            arg = option.args[0]
            result.arg_signature = arg
            result.current_path_part = self._path_part(info, index) if arg.is_path else None
            if not arg.is_optional:
                # only the option's argument may go here
                result.completions.clear()
                result.discard_pending()
                state.suggest_options = False
            if completing:
                result.pending.append(collector.arg_completions(arg, node, value, option_argument=True))
                result.incomplete = result.incomplete or bool(arg.generators)

        if completing and state.suggest_options:
            result.completions.extend(collector.option_completions(options, used_options))
