"""Interactive REPL — prompt_toolkit session with spec completions and live linting."""

from __future__ import annotations

from prompt_toolkit import PromptSession
from prompt_toolkit.history import FileHistory
from rich.console import Console
from rich.panel import Panel

from shellsense.cli.completer import SpecCompleter
from shellsense.cli.main import ShellSenseContext
from shellsense.core.config import get_history_path
from shellsense.core.exceptions import ShellSenseError

console = Console()

EXIT_COMMANDS = {"exit", "quit", ":q"}


def _show_help() -> None:
    help_text = (
        "Type a command line: completions pop up as you type,\n"
        "and the line is linted when you press Enter.\n"
        "\n"
        "[bold cyan]?[/bold cyan] <command>  describe the last word\n"
        "[bold cyan]exit[/bold cyan]         leave"
    )
    console.print(Panel(help_text, title="ShellSense Help", border_style="cyan"))


def handle_line(ctx: ShellSenseContext, text: str) -> None:
    """Lint ``text``, or describe its last word when prefixed with ``?``."""
    from shellsense.models.document import Position

    engine = ctx.get_engine()
    if text.startswith("?"):
        command = text[1:].strip()
        result = engine.compute_hover(engine.text_document(command), Position(0, len(command)))
        if result is None:
            ctx.formatter.info("Nothing to describe here.")
        else:
            ctx.formatter.markdown(result.contents)
        return
    ctx.formatter.diagnostics(engine.lint_text(text))


def launch_repl(ctx: ShellSenseContext) -> None:
    """Launch the interactive REPL session."""
    console.print()
    console.print(
        Panel(
            "[bold cyan]ShellSense[/bold cyan] — spec-driven command completion\n"
            "Type [bold]help[/bold] for help, [bold]exit[/bold] to quit.",
            border_style="cyan",
        )
    )
    console.print()

    try:
        engine = ctx.get_engine()
    except ShellSenseError as e:
        ctx.formatter.error(str(e))
        return
    ctx.formatter.info(f"{len(engine.catalog)} spec(s) loaded.")

    session: PromptSession[str] = PromptSession(
        completer=SpecCompleter(engine),
        history=FileHistory(str(get_history_path())),
        complete_while_typing=True,
        enable_history_search=True,
    )

    while True:
        try:
            text = session.prompt("$ ").strip()
            if not text:
                continue
            if text in EXIT_COMMANDS:
                raise EOFError()
            if text == "help":
                _show_help()
                continue
            handle_line(ctx, text)
        except (EOFError, KeyboardInterrupt):
            console.print("\n[dim]Goodbye![/dim]")
            break
