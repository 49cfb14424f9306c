"""Minimal text-document model: positions, ranges, edits."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import NamedTuple


class Position(NamedTuple):
    """Zero-based line / character position."""

    line: int
    character: int

    def translate(self, characters: int) -> "Position":
        return Position(self.line, self.character + characters)


class Range(NamedTuple):
    start: Position
    end: Position

    @property
    def is_empty(self) -> bool:
        return self.start == self.end

    def contains(self, position: Position) -> bool:
        return self.start <= position <= self.end

    def to_dict(self) -> dict[str, list[int]]:
        return {"start": list(self.start), "end": list(self.end)}


@dataclass(frozen=True)
class TextEdit:
    range: Range
    new_text: str


@dataclass
class WorkspaceEdit:
    """Text edits per document plus file renames, applied by the host."""

    edits: dict[Path, list[TextEdit]] = field(default_factory=dict)
    file_renames: list[tuple[Path, Path]] = field(default_factory=list)

    def add(self, path: Path, edits: list[TextEdit]) -> None:
        self.edits.setdefault(path, []).extend(edits)

    @property
    def size(self) -> int:
        return sum(len(e) for e in self.edits.values()) + len(self.file_renames)


class TextDocument:
    """An in-memory document: path, text and language id."""

    def __init__(self, path: Path | str, text: str, language_id: str | None = None) -> None:
        self.path = Path(path)
        self.text = text
        self.language_id = language_id or guess_language_id(self.path)
        self._line_starts = _line_starts(text)

    @classmethod
    def from_file(cls, path: Path | str, language_id: str | None = None) -> "TextDocument":
        path = Path(path)
        return cls(path, path.read_text(encoding="utf-8"), language_id)

    @property
    def line_count(self) -> int:
        return len(self._line_starts)

    @property
    def directory(self) -> Path:
        return self.path.parent

    def line_at(self, line: int) -> tuple[str, Range]:
        """Return the text of ``line`` (without the line break) and its range."""
        start = self._line_starts[line]
        end = self._line_starts[line + 1] if line + 1 < len(self._line_starts) else len(self.text)
        text = self.text[start:end].rstrip("\r\n")
        return text, Range(Position(line, 0), Position(line, len(text)))

    def offset_at(self, position: Position) -> int:
        line = min(max(position.line, 0), len(self._line_starts) - 1)
        return min(self._line_starts[line] + position.character, len(self.text))

    def position_at(self, offset: int) -> Position:
        offset = min(max(offset, 0), len(self.text))
        line = 0
        for i, start in enumerate(self._line_starts):
            if start > offset:
                break
            line = i
        return Position(line, offset - self._line_starts[line])

    def get_text(self, text_range: Range | None = None) -> str:
        if text_range is None:
            return self.text
        return self.text[self.offset_at(text_range.start) : self.offset_at(text_range.end)]

    def apply_edits(self, edits: list[TextEdit]) -> str:
        """Return the document text with ``edits`` applied (edits must not overlap)."""
        text = self.text
        for edit in sorted(edits, key=lambda e: e.range.start, reverse=True):
            start = self.offset_at(edit.range.start)
            end = self.offset_at(edit.range.end)
            text = text[:start] + edit.new_text + text[end:]
        return text


def guess_language_id(path: Path) -> str:
    """Map a file name onto the language ids language supports register for."""
    if path.name == "package.json":
        return "json"
    suffix = path.suffix.lower()
    if suffix in (".sh", ".bash", ".zsh"):
        return "shellscript"
    if suffix in (".bat", ".cmd"):
        return "bat"
    if suffix == ".json":
        return "json"
    return "plaintext"


def _line_starts(text: str) -> list[int]:
    starts = [0]
    for i, ch in enumerate(text):
        if ch == "\n":
            starts.append(i + 1)
    return starts
