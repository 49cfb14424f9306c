"""Command-line tokenizer — shell quoting rules with source offsets preserved.

Quoting follows Bash closely enough for completion purposes:

1. inside single quotes every character is literal;
2. inside double quotes a backslash only escapes ``"``, ``\\`` and ``$`` (other
   sequences are kept verbatim) and ``$name`` is expanded;
3. outside quotes a backslash escapes the next character and is dropped;
4. quote context may switch mid-word (``all'one'"word"`` is one token).

A ``#`` outside quotes comments out the rest of the line.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping

from shellsense.core.exceptions import ParseError
from shellsense.models.command import Operator, Token

CONTROL_OPERATORS = ("||", "&&", ";;", "|&", "<(", ">>", ">&", "&", ";", "(", ")", "|", "<", ">")

_CONTROL = r"(?:\|\||&&|;;|\|&|<\(|>>|>&|[&;()|<>])"
_META = r"|&;()<> \t"
_BAREWORD = rf"""(?:\\['"{_META}]|[^\s'"{_META}])+"""
_DOUBLE_QUOTED = r'"(?:\\"|[^"])*?"'
_SINGLE_QUOTED = r"'(?:\\'|[^'])*?'"
_CHUNKER = re.compile(rf"({_CONTROL})|((?:{_BAREWORD}|{_DOUBLE_QUOTED}|{_SINGLE_QUOTED})*)")
_VARNAME_END = re.compile(r"\W")
_SPECIAL_PARAMS = "*@#?$!_-"

Environment = Mapping[str, str] | Callable[[str], str | None]


def tokenize(input_string: str, env: Environment | None = None) -> list[Token | Operator]:
    """Split ``input_string`` into words and control operators.

    Raises ParseError on a malformed ``${...}`` substitution.
    """
    result: list[Token | Operator] = []
    for match in _CHUNKER.finditer(input_string):
        chunk = match.group(0)
        if not chunk:
            continue
        if match.group(1):
            result.append(Operator(chunk, match.start()))
            continue
        contents, consumed, commented = _scan_word(chunk, env)
        if contents or not commented:
            result.append(Token(contents, match.start(), match.start() + consumed))
        if commented:
            break
    return result


def _scan_word(chunk: str, env: Environment | None) -> tuple[str, int, bool]:
    """Unquote one word. Returns (contents, source length used, hit a comment)."""
    out: list[str] = []
    quote = ""
    escaped = False
    i = 0
    length = len(chunk)
    while i < length:
        c = chunk[i]
        if escaped:
            out.append(c)
            escaped = False
        elif quote:
            if c == quote:
                quote = ""
            elif quote == "'":
                out.append(c)
            elif c == "\\":
                i += 1
                nxt = chunk[i : i + 1]
                if nxt in ('"', "\\", "$"):
                    out.append(nxt)
                else:
                    out.append("\\" + nxt)
            elif c == "$":
                value, i = _expand_variable(chunk, i, env)
                out.append(value)
                continue
            else:
                out.append(c)
        elif c in ('"', "'"):
            quote = c
        elif c == "#":
            return "".join(out), i, True
        elif c == "\\":
            escaped = True
        elif c == "$":
            value, i = _expand_variable(chunk, i, env)
            out.append(value)
            continue
        else:
            out.append(c)
        i += 1
    return "".join(out), length, False


def _expand_variable(chunk: str, i: int, env: Environment | None) -> tuple[str, int]:
    """Expand the ``$`` reference at ``chunk[i]``; return (value, index after it)."""
    i += 1
    if chunk[i : i + 1] == "{":
        i += 1
        if chunk[i : i + 1] == "}":
            raise ParseError(f"Bad substitution: {chunk[i - 2 : i + 1]}")
        end = chunk.find("}", i)
        if end < 0:
            raise ParseError(f"Bad substitution: {chunk[i:]}")
        return _lookup(chunk[i:end], env), end + 1
    if i < len(chunk) and chunk[i] in _SPECIAL_PARAMS:
        return _lookup(chunk[i], env), i + 1
    match = _VARNAME_END.search(chunk, i)
    end = match.start() if match else len(chunk)
    return _lookup(chunk[i:end], env), end


def _lookup(name: str, env: Environment | None) -> str:
    if env is None:
        value = None
    elif callable(env):
        value = env(name)
    else:
        value = env.get(name)
    if value is None:
        # a lone "$" stays literal
        return "" if name else "$"
    return str(value)
