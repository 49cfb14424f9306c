"""Glob matching for file suggestions, document selectors and rename globs."""

from __future__ import annotations

from functools import lru_cache

import pathspec


@lru_cache(maxsize=128)
def _compile(glob: str) -> pathspec.PathSpec:
    # "*.sh,*.bat" style comma lists are accepted alongside single patterns
    patterns = [p.strip() for p in glob.split(",") if p.strip()]
    return pathspec.PathSpec.from_lines("gitwildmatch", patterns)


def match_glob(glob: str, path: str) -> bool:
    """Return True if ``path`` (a name or a ``/``-separated path) matches ``glob``."""
    if not glob:
        return False
    return _compile(glob).match_file(path)
