"""Lint problems, the "did you mean" matcher, and diagnostics severity mapping."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

from shellsense.core.config import LintSettings
from shellsense.models.document import Range

_SHORT_FLAG = re.compile(r"^-[^-]")

DIAGNOSTIC_SOURCE = "shellsense"


class ProblemCategory(str, Enum):
    """Kinds of problem the linter reports; values double as setting keys."""

    command_name = "command_name"
    no_options = "no_options"
    option_name = "option_name"
    option_reuse = "option_reuse"
    no_arg_input = "no_arg_input"
    command_not_allowed = "command_not_allowed"


class Severity(str, Enum):
    information = "information"
    warning = "warning"
    error = "error"


@dataclass(frozen=True)
class LintProblem:
    category: ProblemCategory
    range: Range
    message: str


@dataclass(frozen=True)
class Diagnostic:
    message: str
    range: Range
    severity: Severity
    code: str
    source: str = DIAGNOSTIC_SOURCE

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "range": self.range.to_dict(),
            "severity": self.severity.value,
            "code": self.code,
            "source": self.source,
        }


def guess_option_similar_name(invalid_name: str, valid_names: list[str]) -> str | None:
    """Suggest a known option for a mistyped one.

    Not a real edit distance: names are compared position by position, and a
    candidate is accepted with at least 4 equal characters and at most 2 differing
    ones (length difference included). Short flags such as ``-b`` are never guessed.
    """
    if _SHORT_FLAG.match(invalid_name):
        return None
    for valid_name in valid_names:
        if _SHORT_FLAG.match(valid_name):
            continue
        if len(invalid_name) > len(valid_name):
            longer, shorter = invalid_name, valid_name
        else:
            longer, shorter = valid_name, invalid_name
        diff_chars = len(longer) - len(shorter)
        same_chars = 0
        for i, ch in enumerate(longer):
            if i < len(shorter) and shorter[i] == ch:
                same_chars += 1
            else:
                diff_chars += 1
        if same_chars >= 4 and diff_chars <= 2:
            return valid_name
    return None


def problems_to_diagnostics(problems: list[LintProblem], settings: LintSettings) -> list[Diagnostic]:
    """Apply per-category severities; categories set to ``ignore`` are dropped."""
    diagnostics: list[Diagnostic] = []
    for problem in problems:
        severity = settings.severity_for(problem.category.value)
        if severity == "ignore":
            continue
        diagnostics.append(
            Diagnostic(
                message=problem.message,
                range=problem.range,
                severity=Severity(severity),
                code=problem.category.value,
            )
        )
    return diagnostics
