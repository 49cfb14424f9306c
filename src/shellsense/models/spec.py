"""Specification models — the normalized tree of commands, options and arguments.

Catalog entries arrive in a loosely-typed shape (``name`` as a string or a list, ``args``
as one object or many, camelCase keys, plain strings instead of suggestion objects).
Everything is normalized once here, at load time, so the walker never shape-sniffs.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator
from pydantic.alias_generators import to_camel

from shellsense.core.exceptions import SpecError

TemplateName = Literal["filepaths", "folders", "history", "help"]
SuggestionType = Literal[
    "folder",
    "file",
    "arg",
    "subcommand",
    "option",
    "special",
    "mixin",
    "shortcut",
    "auto-execute",
]


def new_id() -> str:
    """Generate a new UUID string."""
    return str(uuid.uuid4())


def _as_list(value: Any) -> Any:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


class SpecModel(BaseModel):
    """Base for all spec models: accepts catalog camelCase and snake_case keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class BaseSuggestion(SpecModel):
    """Fields shared by everything that can be rendered as a suggestion."""

    display_name: str | None = None
    insert_value: str | None = None
    description: str | None = None
    icon: str | None = None
    priority: float = 50
    hidden: bool = False
    deprecated: bool = False


class Suggestion(BaseSuggestion):
    """A single candidate value for an argument."""

    name: list[str] = Field(default_factory=list)
    type: SuggestionType | None = None

    @field_validator("name", mode="before")
    @classmethod
    def _normalize_name(cls, value: Any) -> Any:
        return _as_list(value)

    @property
    def primary_name(self) -> str:
        return self.name[0] if self.name else ""


def to_suggestion(value: Any) -> Suggestion:
    """Coerce a string, dict or Suggestion into a Suggestion."""
    if isinstance(value, Suggestion):
        return value
    if isinstance(value, str):
        return Suggestion(name=[value])
    if isinstance(value, dict):
        return Suggestion.model_validate(value)
    raise SpecError(f"Unsupported suggestion: {value!r}")


class GeneratorCache(SpecModel):
    """Explicit result caching declared by a generator."""

    ttl: int = 0  # milliseconds
    cache_by_directory: bool = False


class Generator(SpecModel):
    """A dynamic suggestion source: a script, a custom callback, or a template."""

    script: str | list[str] | Callable[[list[str]], str | list[str]] | None = None
    post_process: Callable[[str, list[str]], list[Any]] | None = None
    split_on: str | None = None
    custom: Callable[..., Any] | None = None
    trigger: Callable[[str, str], bool] | str | None = None
    get_query_term: Callable[[str], str] | str | None = None
    template: list[TemplateName] = Field(default_factory=list)
    filter_template_suggestions: Callable[[list[Suggestion]], list[Any]] | None = None
    script_timeout: int | None = None
    cache: GeneratorCache | None = None

    _uid: str = PrivateAttr(default_factory=new_id)

    @field_validator("template", mode="before")
    @classmethod
    def _normalize_template(cls, value: Any) -> Any:
        return _as_list(value)

    @property
    def uid(self) -> str:
        return self._uid


class Arg(SpecModel):
    """A positional argument (of a subcommand) or an option's argument."""

    name: str | None = None
    description: str | None = None
    suggestions: list[Suggestion] = Field(default_factory=list)
    template: list[TemplateName] = Field(default_factory=list)
    generators: list[Generator] = Field(default_factory=list)
    is_variadic: bool = False
    is_optional: bool = False
    is_command: bool = False
    load_spec: str | None = None
    default: str | None = None
    filter_strategy: Literal["prefix", "fuzzy", "default"] = "default"
    suggest_current_token: bool = False
    debounce: bool = False

    @field_validator("template", "generators", mode="before")
    @classmethod
    def _normalize_lists(cls, value: Any) -> Any:
        return _as_list(value)

    @field_validator("suggestions", mode="before")
    @classmethod
    def _normalize_suggestions(cls, value: Any) -> Any:
        return [to_suggestion(s) for s in _as_list(value)]

    @field_validator("load_spec", mode="before")
    @classmethod
    def _normalize_load_spec(cls, value: Any) -> Any:
        # only named sub-specs are resolvable through the catalog
        return value if isinstance(value, str) else None

    @property
    def is_spec_switch(self) -> bool:
        return self.is_command or self.load_spec is not None

    @property
    def is_path(self) -> bool:
        """True if the argument completes file system paths."""
        templates = list(self.template)
        for generator in self.generators:
            templates.extend(generator.template)
        return any(t in ("filepaths", "folders") for t in templates)


class Option(BaseSuggestion):
    """A flag or named option."""

    name: list[str]
    args: list[Arg] = Field(default_factory=list)
    is_required: bool = False
    is_repeatable: bool | int = False
    requires_separator: str = ""
    depends_on: list[str] = Field(default_factory=list)
    exclusive_on: list[str] = Field(default_factory=list)
    is_dangerous: bool = False
    is_persistent: bool = False

    @field_validator("name", "args", mode="before")
    @classmethod
    def _normalize_lists(cls, value: Any) -> Any:
        return _as_list(value)

    @field_validator("name")
    @classmethod
    def _require_name(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("option name must not be empty")
        return value

    @field_validator("requires_separator", mode="before")
    @classmethod
    def _normalize_separator(cls, value: Any) -> Any:
        if value is True:
            return "="
        if value is False or value is None:
            return ""
        return value

    @property
    def takes_args(self) -> bool:
        return bool(self.args)

    def matches(self, token: str) -> bool:
        return token in self.name


class ParserDirectives(SpecModel):
    option_arg_separators: list[str] = Field(default_factory=list)
    flags_are_posix_noncompliant: bool = False

    @field_validator("option_arg_separators", mode="before")
    @classmethod
    def _normalize(cls, value: Any) -> Any:
        return _as_list(value)


class Subcommand(BaseSuggestion):
    """A node of the specification tree; root nodes are whole commands."""

    name: list[str]
    subcommands: list[Subcommand] = Field(default_factory=list)
    options: list[Option] = Field(default_factory=list)
    args: list[Arg] = Field(default_factory=list)
    additional_suggestions: list[Suggestion] = Field(default_factory=list)
    requires_subcommand: bool = False
    parser_directives: ParserDirectives | None = None

    @field_validator("name", "subcommands", "options", "args", mode="before")
    @classmethod
    def _normalize_lists(cls, value: Any) -> Any:
        return _as_list(value)

    @field_validator("name")
    @classmethod
    def _require_name(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("subcommand name must not be empty")
        return value

    @field_validator("additional_suggestions", mode="before")
    @classmethod
    def _normalize_suggestions(cls, value: Any) -> Any:
        return [to_suggestion(s) for s in _as_list(value)]

    @property
    def primary_name(self) -> str:
        return self.name[0]

    def find_subcommand(self, name: str) -> Subcommand | None:
        for subcommand in self.subcommands:
            if name in subcommand.name:
                return subcommand
        return None

    def normalized_options(self) -> list[Option]:
        """Options with duplicates removed; a later declaration of the same name wins."""
        seen: set[tuple[str, ...]] = set()
        kept: list[Option] = []
        for option in reversed(self.options):
            key = tuple(option.name)
            if key in seen:
                continue
            seen.add(key)
            kept.append(option)
        kept.reverse()
        return kept

    def find_option(self, name: str) -> Option | None:
        for option in reversed(self.normalized_options()):
            if option.matches(name):
                return option
        return None


Subcommand.model_rebuild()


SpecInput = Subcommand | dict[str, Any] | Callable[[], Any]


def load_spec(value: SpecInput) -> Subcommand:
    """Normalize a spec (model, dict, or zero-argument callable) into a Subcommand."""
    if callable(value) and not isinstance(value, (Subcommand, dict)):
        value = value()
    if isinstance(value, Subcommand):
        return value
    if isinstance(value, dict):
        if "versionedSpecPath" in value:
            raise SpecError("Versioned specs are not supported")
        try:
            return Subcommand.model_validate(value)
        except ValueError as e:
            raise SpecError(f"Invalid spec {value.get('name')!r}: {e}") from e
    raise SpecError(f"Unsupported spec: {value!r}")
