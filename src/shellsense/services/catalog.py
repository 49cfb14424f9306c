"""Specification catalog — append-only registry of root command specs."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from pathlib import Path

from shellsense.core.exceptions import SpecError
from shellsense.models.spec import SpecInput, Subcommand, load_spec

logger = logging.getLogger(__name__)

SpecAddedListener = Callable[[Subcommand], None]


class SpecCatalog:
    """Holds every loaded root spec and resolves specs by name.

    Specs are never removed. When two specs share an alias the one added last wins,
    which lets extensions shadow bundled specs.
    """

    def __init__(self, specs: list[SpecInput] | None = None) -> None:
        self._specs: list[Subcommand] = []
        self._by_name: dict[str, Subcommand] = {}
        self._listeners: list[SpecAddedListener] = []
        for spec in specs or []:
            self.add_spec(spec)

    def __len__(self) -> int:
        return len(self._specs)

    def add_spec(self, spec: SpecInput) -> Subcommand:
        """Register a root spec (extension API ``addCompletionsSpec``)."""
        subcommand = load_spec(spec)
        self._specs.append(subcommand)
        for name in subcommand.name:
            self._by_name[name] = subcommand
        for listener in list(self._listeners):
            listener(subcommand)
        return subcommand

    def on_spec_added(self, listener: SpecAddedListener) -> Callable[[], None]:
        """Register a callback; returns a function that unregisters it."""
        self._listeners.append(listener)

        def dispose() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return dispose

    def specs(self) -> list[Subcommand]:
        return list(self._specs)

    def find(self, name: str) -> Subcommand | None:
        return self._by_name.get(name)

    def known_names(self) -> set[str]:
        return set(self._by_name)

    def load_path(self, path: Path | str) -> int:
        """Load a JSON spec file, or every ``*.json`` in a directory. Returns the count."""
        path = Path(path).expanduser()
        if path.is_dir():
            return sum(self.load_path(child) for child in sorted(path.glob("*.json")))
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise SpecError(f"Failed to read spec {path}: {e}") from e
        entries = data if isinstance(data, list) else [data]
        for entry in entries:
            self.add_spec(entry)
        logger.debug("Loaded %d spec(s) from %s", len(entries), path)
        return len(entries)
