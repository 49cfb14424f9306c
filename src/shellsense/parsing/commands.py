"""Command splitting and cursor location over a tokenized command line."""

from __future__ import annotations

from dataclasses import dataclass

from shellsense.models.command import CommandSegment, DocumentInfo, Operator, OptionValue, Token
from shellsense.parsing.tokenizer import Environment, tokenize


def split_commands(parts: list[Token | Operator]) -> list[CommandSegment]:
    """Group tokens into segments delimited by control operators.

    Redirection targets (segments introduced by an operator containing ``<`` or ``>``)
    are kept so offsets stay consistent; callers decide whether to skip them.
    """
    segments = [CommandSegment(start=0)]
    for part in parts:
        if isinstance(part, Operator):
            segments.append(CommandSegment(start=part.end, operator=part.text))
        else:
            segments[-1].tokens.append(part)
    return segments


def get_all_commands(input_string: str, env: Environment | None = None) -> list[CommandSegment]:
    return split_commands(tokenize(input_string, env))


@dataclass(frozen=True)
class CursorLocation:
    """Where the cursor sits inside a command line."""

    tokens: tuple[Token, ...]
    current_index: int
    current_value: str
    current_offset: int
    segment_start: int

    @property
    def current_is_option(self) -> bool:
        return self.current_value.startswith("-")


def locate(
    input_string: str,
    segments: list[CommandSegment],
    cursor: int,
    strip_current_value: bool,
) -> CursorLocation | None:
    """Find the segment and token under ``cursor``.

    Returns None inside redirection targets. When the cursor sits in whitespace right
    after a space, an empty token is synthesized at the cursor so that ``"cmd |"``
    completes a new word.
    """
    segment: CommandSegment | None = None
    for candidate in segments:
        if candidate.start <= cursor:
            segment = candidate
        else:
            break
    if segment is None:
        return None
    if segment.is_redirect:
        return None

    tokens = list(segment.tokens)
    current_index = -1
    current_offset = 0
    current_value = ""
    is_inside = False
    for i, token in enumerate(tokens):
        if token.offset > cursor:
            break
        current_index = i
        is_inside = cursor <= token.end
        current_offset = token.offset
        if strip_current_value:
            quote_shift = 1 if input_string[token.offset : token.offset + 1] in ('"', "'") else 0
            current_value = token.contents[: max(cursor - token.offset - quote_shift, 0)]
        else:
            current_value = token.contents

    if not is_inside and cursor > 0 and input_string[cursor - 1 : cursor] == " ":
        current_index += 1
        current_offset = cursor
        current_value = ""
        tokens.insert(current_index, Token("", cursor, cursor))
    if current_index == -1:
        # every token starts after the cursor
        current_index = 0
        current_offset = cursor
        current_value = ""
        tokens.insert(0, Token("", cursor, cursor))

    return CursorLocation(
        tokens=tuple(tokens),
        current_index=current_index,
        current_value=current_value,
        current_offset=current_offset,
        segment_start=segment.start,
    )


def parse_command_string(
    input_string: str,
    cursor: int,
    strip_current_value: bool,
    env: Environment | None = None,
) -> CursorLocation | None:
    """Tokenize, split and locate in one go. Raises ParseError on bad substitution."""
    return locate(input_string, get_all_commands(input_string, env), cursor, strip_current_value)


def build_document_info(
    input_string: str,
    cursor: int,
    strip_current_value: bool,
    env: Environment | None = None,
) -> DocumentInfo | None:
    """Snapshot everything the walker needs about the cursor position."""
    location = parse_command_string(input_string, cursor, strip_current_value, env)
    if location is None:
        return None
    tokens = location.tokens
    index = location.current_index
    current_is_option = location.current_is_option
    previous = tokens[index - 1].contents if index > 0 else None
    following = tokens[index + 1].contents if index + 1 < len(tokens) else None

    previous_is_option_with_arg = previous is not None and previous.startswith("-") and not current_is_option
    current_is_option_with_arg = bool(following) and not following.startswith("-") and current_is_option
    completing_option_full: tuple[int, int] | None = None
    if previous_is_option_with_arg:
        completing_option_full = (index - 1, index)
    elif current_is_option_with_arg:
        completing_option_full = (index, index + 1)

    return DocumentInfo(
        input_string=input_string,
        tokens=tokens,
        current_index=index,
        current_value=location.current_value,
        current_offset=location.current_offset,
        cursor=cursor,
        segment_start=location.segment_start,
        used_options=tuple(t.contents for i, t in enumerate(tokens) if t.is_option and i != index),
        completing_option_value=(
            OptionValue(name=previous, value=location.current_value) if previous_is_option_with_arg else None
        ),
        completing_option_full=completing_option_full,
    )


def get_command_spans(input_string: str, env: Environment | None = None) -> list[tuple[int, int]]:
    """Start/end offsets of every non-redirect command on the line."""
    spans: list[tuple[int, int]] = []
    for segment in get_all_commands(input_string, env):
        if not segment.tokens or segment.is_redirect:
            continue
        first, last = segment.tokens[0], segment.tokens[-1]
        spans.append((first.offset, last.end))
    return spans
