"""Root CLI group — entry point for all ShellSense commands."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler

from shellsense import __version__
from shellsense.core.exceptions import ShellSenseError
from shellsense.output.formatter import OutputFormatter, format_range


class ShellSenseContext:
    """Shared context passed through Click commands."""

    def __init__(self, json_mode: bool = False, spec_paths: tuple[str, ...] = ()) -> None:
        self.json_mode = json_mode
        self.spec_paths = spec_paths
        self.formatter = OutputFormatter(json_mode=json_mode)
        self._engine = None

    def get_engine(self):
        """Lazy-load the engine: settings from the config file plus every spec path."""
        if self._engine is None:
            from shellsense.core.config import settings_from_config
            from shellsense.services.catalog import SpecCatalog
            from shellsense.services.engine import Engine

            settings = settings_from_config()
            catalog = SpecCatalog()
            for path in (*settings.spec_paths, *self.spec_paths):
                catalog.load_path(path)
            self._engine = Engine(catalog=catalog, settings=settings)
        return self._engine

    def fail(self, error: Exception) -> None:
        """Report an error and exit non-zero."""
        if self.json_mode:
            self.formatter.json_error(str(error))
        else:
            self.formatter.error(str(error))
        raise SystemExit(1)


pass_context = click.make_pass_decorator(ShellSenseContext, ensure=True)


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _read_document(ctx: ShellSenseContext, path: str | None, command: str | None, cwd: str | None):
    from shellsense.models.document import TextDocument

    if command is not None:
        return ctx.get_engine().text_document(command, cwd)
    if path is None:
        raise click.UsageError("Pass a file or --command.")
    try:
        return TextDocument.from_file(path)
    except OSError as e:
        raise click.FileError(path, hint=str(e)) from e


@click.group(invoke_without_command=True)
@click.option("--json", "json_mode", is_flag=True, help="Output JSON for agent consumption.")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging to stderr.")
@click.option("--specs", "spec_paths", multiple=True, type=click.Path(exists=True), help="Spec JSON file or directory.")
@click.version_option(__version__, prog_name="ShellSense")
@click.pass_context
def cli(ctx: click.Context, json_mode: bool, verbose: bool, spec_paths: tuple[str, ...]) -> None:
    """ShellSense — spec-driven completion and linting for shell commands.

    Run without a subcommand to launch the interactive REPL.
    """
    _setup_logging(verbose)
    ctx.obj = ShellSenseContext(json_mode=json_mode, spec_paths=spec_paths)

    if ctx.invoked_subcommand is None:
        from shellsense.cli.repl import launch_repl

        launch_repl(ctx.obj)


@cli.command()
@click.argument("text")
@click.option("--cursor", type=int, default=None, help="Cursor offset (defaults to the end).")
@click.option("--cwd", type=click.Path(file_okay=False), default=None, help="Directory for path suggestions.")
@pass_context
def complete(ctx: ShellSenseContext, text: str, cursor: int | None, cwd: str | None) -> None:
    """Complete TEXT at the cursor."""
    try:
        result = asyncio.run(ctx.get_engine().complete_text(text, cursor, cwd))
    except ShellSenseError as e:
        ctx.fail(e)
        return
    ctx.formatter.completions(result)


@cli.command()
@click.argument("paths", nargs=-1, type=click.Path(exists=True, dir_okay=False))
@click.option("--command", "-c", "command", default=None, help="Lint a command line instead of files.")
@pass_context
def lint(ctx: ShellSenseContext, paths: tuple[str, ...], command: str | None) -> None:
    """Lint shell scripts, package.json scripts or a command line."""
    try:
        engine = ctx.get_engine()
        if command is not None or not paths:
            documents = [_read_document(ctx, None, command, None)]
        else:
            documents = [_read_document(ctx, path, None, None) for path in paths]
        results = [(document, engine.compute_diagnostics(document)) for document in documents]
    except ShellSenseError as e:
        ctx.fail(e)
        return

    def source_name(document) -> str:
        return "" if command is not None or not paths else str(document.path)

    if ctx.json_mode:
        ctx.formatter.json({source_name(doc) or "<command-line>": [d.to_dict() for d in diags] for doc, diags in results})
        return
    for document, diagnostics in results:
        ctx.formatter.diagnostics(diagnostics, source_name(document))
    if any(diagnostics for _, diagnostics in results):
        raise SystemExit(1)


@cli.command()
@click.argument("text")
@click.option("--cursor", type=int, default=None, help="Cursor offset (defaults to the end).")
@pass_context
def hover(ctx: ShellSenseContext, text: str, cursor: int | None) -> None:
    """Describe the word under the cursor."""
    from shellsense.models.document import Position

    engine = ctx.get_engine()
    position = Position(0, len(text) if cursor is None else cursor)
    result = engine.compute_hover(engine.text_document(text), position)
    if result is None:
        if ctx.json_mode:
            ctx.formatter.json(None)
        else:
            ctx.formatter.info("Nothing to describe here.")
        return
    if ctx.json_mode:
        ctx.formatter.json(result.to_dict())
        return
    ctx.formatter.markdown(result.contents, title=format_range(result.range) if result.range else "")


@cli.command()
@click.argument("text")
@click.option("--cursor", type=int, default=None, help="Cursor offset (defaults to the end).")
@pass_context
def signature(ctx: ShellSenseContext, text: str, cursor: int | None) -> None:
    """Show the argument expected at the cursor."""
    from shellsense.models.document import Position

    engine = ctx.get_engine()
    position = Position(0, len(text) if cursor is None else cursor)
    result = engine.compute_signature_help(engine.text_document(text), position)
    if ctx.json_mode:
        ctx.formatter.json(result.to_dict() if result else None)
        return
    if result is None:
        ctx.formatter.info("No argument expected here.")
        return
    ctx.formatter.print(f"[bold]{result.label}[/bold]")


@cli.command()
@click.argument("path", required=False, type=click.Path(exists=True, dir_okay=False))
@click.option("--command", "-c", "command", default=None, help="Highlight a command line instead of a file.")
@pass_context
def highlight(ctx: ShellSenseContext, path: str | None, command: str | None) -> None:
    """Show semantic token ranges."""
    engine = ctx.get_engine()
    document = _read_document(ctx, path, command, None)
    tokens = engine.compute_semantic_tokens(document)
    ctx.formatter.table(
        title="Semantic tokens",
        columns=[("Range", "dim"), ("Text", "bold"), ("Tag", "cyan")],
        rows=[[format_range(t.range), document.get_text(t.range), t.tag.value] for t in tokens],
        data_for_json=[{**t.to_dict(), "text": document.get_text(t.range)} for t in tokens],
    )


@cli.command()
@click.argument("text")
@pass_context
def tokens(ctx: ShellSenseContext, text: str) -> None:
    """Show how TEXT is split into commands and tokens."""
    from shellsense.parsing.commands import get_all_commands

    try:
        segments = get_all_commands(text)
    except ShellSenseError as e:
        ctx.fail(e)
        return
    rows = []
    data = []
    for index, segment in enumerate(segments):
        for token in segment.tokens:
            rows.append([str(index), segment.operator or "", token.contents, f"{token.offset}-{token.end}"])
        data.append(
            {
                "start": segment.start,
                "operator": segment.operator,
                "ignored": segment.is_redirect,
                "tokens": [{"contents": t.contents, "offset": t.offset, "end": t.end} for t in segment.tokens],
            }
        )
    ctx.formatter.table(
        title="Tokens",
        columns=[("Command", "dim"), ("Operator", "yellow"), ("Token", "bold"), ("Offsets", "cyan")],
        rows=rows,
        data_for_json=data,
    )


@cli.command("rename-paths")
@click.argument("old", type=click.Path())
@click.argument("new", type=click.Path())
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option("--dry-run", is_flag=True, help="Show the edits without writing files.")
@pass_context
def rename_paths(ctx: ShellSenseContext, old: str, new: str, paths: tuple[str, ...], dry_run: bool) -> None:
    """Update path arguments in PATHS after OLD was renamed to NEW."""
    from shellsense.models.document import TextDocument

    engine = ctx.get_engine()
    documents = [TextDocument.from_file(Path(path).resolve()) for path in paths]

    def confirm(edit) -> bool:
        if ctx.json_mode or dry_run:
            return True
        return click.confirm(f"Update {edit.size} path reference(s)?", default=True)

    edit = engine.compute_path_rename_edits(documents, [(Path(old).resolve(), Path(new).resolve())], confirm)
    pairs = [(path, text_edit) for path, edits in edit.edits.items() for text_edit in edits]
    data = [{"path": str(path), "range": e.range.to_dict(), "new_text": e.new_text} for path, e in pairs]
    if dry_run:
        ctx.formatter.table(
            title="Path edits",
            columns=[("File", "dim"), ("Range", "cyan"), ("New text", "green")],
            rows=[[str(path), format_range(e.range), e.new_text] for path, e in pairs],
            data_for_json=data,
        )
        return
    for document in documents:
        if document.path in edit.edits:
            document.path.write_text(document.apply_edits(edit.edits[document.path]), encoding="utf-8")
    if ctx.json_mode:
        ctx.formatter.json(data)
    else:
        ctx.formatter.success(f"Updated {edit.size} path reference(s)")


@cli.command()
@pass_context
def repl(ctx: ShellSenseContext) -> None:
    """Interactive prompt with completions and live linting."""
    from shellsense.cli.repl import launch_repl

    launch_repl(ctx)


# ── Register subcommands ──────────────────────────────────────────

from shellsense.cli.config_cmd import config  # noqa: E402

cli.add_command(config)
