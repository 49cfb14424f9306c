"""Dual-mode output: Rich tables and panels for people, JSON envelopes for editor hosts."""

from __future__ import annotations

import json
from typing import Any

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from shellsense.models.document import Range
from shellsense.services.lint import Diagnostic
from shellsense.services.suggestions import CompletionList

# Human output goes to stdout; in JSON mode, human messages go to stderr
_console = Console()
_err_console = Console(stderr=True)

SEVERITY_STYLES = {
    "information": "cyan",
    "warning": "yellow",
    "error": "red",
}


def format_range(text_range: Range) -> str:
    """``line:col-line:col``, one-based like most editors."""
    start, end = text_range
    return f"{start.line + 1}:{start.character + 1}-{end.line + 1}:{end.character + 1}"


class OutputFormatter:
    """Routes output to Rich (human) or JSON (agent) depending on mode."""

    def __init__(self, json_mode: bool = False) -> None:
        self.json_mode = json_mode

    # ── JSON output ──────────────────────────────────────────────

    def json(self, data: Any, status: str = "success") -> None:
        """Print structured JSON to stdout."""
        envelope = {"status": status, "data": data}
        print(json.dumps(envelope, indent=2, default=str))

    def json_error(self, message: str, code: int = 1) -> None:
        """Print a JSON error envelope to stdout."""
        envelope = {"status": "error", "error": {"message": message, "code": code}}
        print(json.dumps(envelope, indent=2))

    # ── Human output ─────────────────────────────────────────────

    def print(self, message: Any = "", **kwargs: Any) -> None:
        """Print a message, routing to stderr in JSON mode."""
        console = _err_console if self.json_mode else _console
        console.print(message, **kwargs)

    def success(self, message: str) -> None:
        if self.json_mode:
            return
        _console.print(f"[green]✓[/green] {message}")

    def error(self, message: str) -> None:
        console = _err_console if self.json_mode else _console
        console.print(f"[red]✗[/red] {message}")

    def info(self, message: str) -> None:
        if self.json_mode:
            return
        _console.print(f"[dim]ℹ[/dim] {message}")

    def table(
        self,
        title: str,
        columns: list[tuple[str, str]],
        rows: list[list[str]],
        data_for_json: list[dict[str, Any]] | None = None,
    ) -> None:
        """Print a table (Rich for humans, JSON for agents).

        columns: list of (header, style) tuples
        rows: list of row data (strings)
        data_for_json: if provided, used as the JSON payload instead of rows
        """
        if self.json_mode:
            self.json(data_for_json or [dict(zip([c[0] for c in columns], r)) for r in rows])
            return

        table = Table(title=title, show_header=True, header_style="bold cyan")
        for header, style in columns:
            table.add_column(header, style=style)
        for row in rows:
            table.add_row(*row)
        _console.print(table)

    def panel(self, content: Any, title: str = "", border_style: str = "blue") -> None:
        if self.json_mode:
            return
        _console.print(Panel(content, title=title, border_style=border_style))

    # ── Domain output ────────────────────────────────────────────

    def completions(self, completion_list: CompletionList) -> None:
        items = completion_list.sorted_items()
        if self.json_mode:
            self.json({"items": [i.to_dict() for i in items], "is_incomplete": completion_list.is_incomplete})
            return
        if not items:
            self.info("No completions.")
            return
        rows = [
            [
                item.label,
                item.text_to_insert,
                " ".join(filter(None, [item.detail, item.description])),
                item.kind.value if item.kind else "",
                item.sort_text,
            ]
            for item in items
        ]
        self.table(
            title="Completions",
            columns=[("Label", "bold"), ("Insert", "green"), ("Detail", "dim"), ("Kind", "cyan"), ("Sort", "dim")],
            rows=rows,
        )

    def diagnostics(self, diagnostics: list[Diagnostic], source_name: str = "") -> None:
        if self.json_mode:
            self.json([d.to_dict() for d in diagnostics])
            return
        if not diagnostics:
            self.success(f"No problems in {source_name}" if source_name else "No problems")
            return
        for diagnostic in diagnostics:
            style = SEVERITY_STYLES.get(diagnostic.severity.value, "white")
            location = f"{source_name}:{format_range(diagnostic.range)}" if source_name else format_range(diagnostic.range)
            _console.print(
                f"[dim]{location}[/dim] [{style}]{diagnostic.severity.value}[/{style}] "
                f"{diagnostic.message} [dim]({diagnostic.code})[/dim]"
            )

    def markdown(self, content: str, title: str = "") -> None:
        if self.json_mode:
            self.json({"contents": content})
            return
        self.panel(Markdown(content), title=title)
