"""prompt_toolkit completer backed by the completion engine."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator, Iterable

from prompt_toolkit.completion import CompleteEvent, Completer, Completion
from prompt_toolkit.document import Document

from shellsense.services.engine import Engine
from shellsense.services.suggestions import CompletionItem, CompletionList


def _to_completion(item: CompletionItem, cursor: int) -> Completion:
    text = item.text_to_insert
    if item.is_snippet:
        text = text.replace("$1", "")
    start_position = item.range.start.character - cursor if item.range is not None else 0
    return Completion(
        text,
        start_position=min(start_position, 0),
        display=item.label,
        display_meta=item.documentation or item.detail or item.description or "",
    )


class SpecCompleter(Completer):
    """Completes the command line being typed using the loaded specs."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def _completions(self, result: CompletionList, cursor: int) -> list[Completion]:
        return [_to_completion(item, cursor) for item in result.sorted_items()]

    def get_completions(self, document: Document, complete_event: CompleteEvent) -> Iterable[Completion]:
        if "\n" in document.text:
            return []
        result = asyncio.run(self.engine.complete_text(document.text, document.cursor_position))
        return self._completions(result, document.cursor_position)

    async def get_completions_async(
        self, document: Document, complete_event: CompleteEvent
    ) -> AsyncGenerator[Completion, None]:
        if "\n" in document.text:
            return
        result = await self.engine.complete_text(document.text, document.cursor_position)
        for completion in self._completions(result, document.cursor_position):
            yield completion
