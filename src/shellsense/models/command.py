"""Parsed command-line structures: tokens, operators, segments, cursor snapshot."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import NamedTuple


class Token(NamedTuple):
    """A word of the command line.

    ``offset`` is where the word starts in the source string; ``end`` is where its
    source text ends (quotes included), which can differ from ``offset + len(contents)``
    once quotes are stripped or variables expanded.
    """

    contents: str
    offset: int
    end: int

    @property
    def is_option(self) -> bool:
        return self.contents.startswith("-")


class Operator(NamedTuple):
    """A control operator such as ``&&``, ``|`` or ``>>``."""

    text: str
    offset: int

    @property
    def end(self) -> int:
        return self.offset + len(self.text)


@dataclass
class CommandSegment:
    """One command of a multi-command line."""

    start: int
    operator: str = ""
    tokens: list[Token] = field(default_factory=list)

    @property
    def is_redirect(self) -> bool:
        """Redirection targets are not commands: no lint, no completions."""
        return "<" in self.operator or ">" in self.operator


@dataclass(frozen=True)
class OptionValue:
    """An option name paired with the value being typed for it."""

    name: str
    value: str


@dataclass(frozen=True)
class DocumentInfo:
    """Immutable per-request snapshot of the command under the cursor."""

    input_string: str
    tokens: tuple[Token, ...]
    current_index: int
    current_value: str
    current_offset: int
    cursor: int
    segment_start: int
    used_options: tuple[str, ...]
    # previous token is an option and the current one is its candidate value
    completing_option_value: OptionValue | None = None
    # (option token index, value token index)
    completing_option_full: tuple[int, int] | None = None

    @property
    def spec_name(self) -> str:
        return self.tokens[0].contents if self.tokens else ""

    @property
    def current_token(self) -> Token:
        return self.tokens[self.current_index]

    @property
    def current_is_option(self) -> bool:
        return self.current_value.startswith("-")

    def tokens_before_cursor(self) -> list[str]:
        """Token contents up to and including the one under the cursor."""
        contents = [t.contents for t in self.tokens[: self.current_index + 1]]
        contents[-1] = self.current_value
        return contents

    def tokens_except_current(self) -> tuple[str, ...]:
        return tuple(t.contents for i, t in enumerate(self.tokens) if i != self.current_index)

    def token_source(self, index: int) -> str:
        token = self.tokens[index]
        return self.input_string[token.offset : token.end]
