"""Shell scripts and batch files: one command per line."""

from __future__ import annotations

import re

from shellsense.languages import DocumentSelector, LanguageSupport
from shellsense.models.document import Position, Range, TextDocument

SHELL_SELECTOR = DocumentSelector(language_ids=("bat", "shellscript"))

# comments, control flow, quoted lines, assignments and function definitions
BANNED_LINE = re.compile(r"""^\s*(#|::|if|else|fi|return|function|"|'|[\w\d]+(=|\())""", re.IGNORECASE)


class ShellScriptSupport(LanguageSupport):
    path_auto_rename = "*.sh,*.bat"

    def provide_single_line_range(self, document: TextDocument, position: Position) -> Range | None:
        text, line_range = document.line_at(position.line)
        if BANNED_LINE.match(text):
            return None
        return line_range

    def get_all_single_line_command_locations(self, document: TextDocument) -> list[Range]:
        ranges = []
        for line in range(document.line_count):
            text, line_range = document.line_at(line)
            if BANNED_LINE.match(text):
                continue
            ranges.append(line_range)
        return ranges


COMMAND_LINE_SELECTOR = DocumentSelector(language_ids=("commandline",))


class CommandLineSupport(LanguageSupport):
    """Bare command lines typed at a prompt: every line is a command."""

    def provide_single_line_range(self, document: TextDocument, position: Position) -> Range | None:
        return document.line_at(position.line)[1]

    def get_all_single_line_command_locations(self, document: TextDocument) -> list[Range]:
        return [document.line_at(line)[1] for line in range(document.line_count)]
