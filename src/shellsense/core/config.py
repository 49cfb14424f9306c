"""Configuration management — TOML config at ~/.config/shellsense/shellsense.toml."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any, Literal

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from shellsense.core.exceptions import ConfigError

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

FilterStrategy = Literal["prefix", "fuzzy"]
InsertSpacePolicy = Literal["off", "always", "ifSubcommandOrOptionTakeArguments"]
LintSeverity = Literal["information", "warning", "error", "ignore"]
RenamePolicy = Literal["always", "never", "ask"]

_DEFAULT_CONFIG: dict[str, Any] = {
    "completion": {
        "filter_strategy": "prefix",
        "insert_space": "always",
        "use_file_icons": True,
        "ignore_commands": [],
        "mixins": {},
    },
    "scripts": {
        "enabled": True,
        "allow_list": [],
        "timeout_ms": 5000,
    },
    "lint": {
        "validate": True,
        "command_name": "information",
        "no_options": "information",
        "option_name": "information",
        "option_reuse": "information",
        "no_arg_input": "information",
        "command_not_allowed": "warning",
    },
    "paths": {
        "update_paths_on_file_rename": "ask",
    },
    "highlighting": {
        "semantic_highlighting": True,
    },
    "specs": {
        "paths": [],
    },
}


class LintSettings(BaseModel):
    """Severity per problem category, plus the global validate switch."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    validate_: bool = Field(default=True, alias="validate")
    command_name: LintSeverity = "information"
    no_options: LintSeverity = "information"
    option_name: LintSeverity = "information"
    option_reuse: LintSeverity = "information"
    no_arg_input: LintSeverity = "information"
    command_not_allowed: LintSeverity = "warning"

    def severity_for(self, category: str) -> LintSeverity:
        return getattr(self, category, "information")


class Settings(BaseModel):
    """Immutable, request-scoped view of the configuration.

    A configuration change never mutates an existing instance: build a new one with
    :func:`settings_from_config` and hand it to the engine.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    filter_strategy: FilterStrategy = "prefix"
    insert_space: InsertSpacePolicy = "always"
    use_file_icons: bool = True
    ignore_commands: tuple[str, ...] = ()
    mixins: dict[str, tuple[str, ...]] = Field(default_factory=dict)
    scripts_enabled: bool = True
    scripts_allow_list: tuple[str, ...] = ()
    script_timeout_ms: int = 5000
    lint: LintSettings = Field(default_factory=LintSettings)
    update_paths_on_file_rename: RenamePolicy = "ask"
    semantic_highlighting: bool = True
    spec_paths: tuple[str, ...] = ()


def get_config_dir() -> Path:
    """Return the config directory, creating it if needed."""
    config_dir = Path(os.environ.get("SHELLSENSE_CONFIG_DIR", "~/.config/shellsense")).expanduser()
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_config_path() -> Path:
    """Return the path to the config TOML file."""
    return get_config_dir() / "shellsense.toml"


def get_history_path() -> Path:
    """Return the path to the REPL history file."""
    return get_config_dir() / "history"


def load_config() -> dict[str, Any]:
    """Load configuration from TOML file, returning defaults if not found."""
    config_path = get_config_path()
    if not config_path.exists():
        return _deep_copy_dict(_DEFAULT_CONFIG)
    try:
        with open(config_path, "rb") as f:
            user_config = tomllib.load(f)
        return _merge_config(_deep_copy_dict(_DEFAULT_CONFIG), user_config)
    except Exception as e:
        raise ConfigError(f"Failed to load config: {e}") from e


def save_config(config: dict[str, Any]) -> None:
    """Save configuration to TOML file."""
    config_path = get_config_path()
    try:
        with open(config_path, "wb") as f:
            tomli_w.dump(config, f)
    except Exception as e:
        raise ConfigError(f"Failed to save config: {e}") from e


def update_config(**updates: Any) -> dict[str, Any]:
    """Load config, apply nested updates, save, and return the result.

    Usage: update_config(completion={"filter_strategy": "fuzzy"}, scripts={"enabled": False})
    """
    config = load_config()
    for section, values in updates.items():
        if section not in config:
            config[section] = {}
        if isinstance(values, dict):
            config[section].update(values)
        else:
            config[section] = values
    save_config(config)
    return config


def set_config_value(dotted_key: str, raw_value: str) -> dict[str, Any]:
    """Set ``section.key`` from a command-line string and persist it."""
    section, _, key = dotted_key.partition(".")
    if not section or not key:
        raise ConfigError(f"Expected <section>.<key>, got: {dotted_key}")
    if section not in _DEFAULT_CONFIG or key not in _DEFAULT_CONFIG[section]:
        raise ConfigError(f"Unknown setting: {dotted_key}")
    default = _DEFAULT_CONFIG[section][key]
    value: Any
    if isinstance(default, bool):
        value = raw_value.strip().lower() in ("1", "true", "yes", "on")
    elif isinstance(default, int):
        try:
            value = int(raw_value)
        except ValueError as e:
            raise ConfigError(f"{dotted_key} expects an integer") from e
    elif isinstance(default, list):
        value = [item.strip() for item in raw_value.split(",") if item.strip()]
    elif isinstance(default, dict):
        raise ConfigError(f"{dotted_key} can only be edited in {get_config_path()}")
    else:
        value = raw_value
    config = load_config()
    config[section][key] = value
    # reject values Settings would not accept before writing them
    settings_from_config(config)
    save_config(config)
    return config


def settings_from_config(config: dict[str, Any] | None = None) -> Settings:
    """Build an immutable :class:`Settings` from a (merged) config dict."""
    if config is None:
        config = load_config()
    completion = config.get("completion", {})
    scripts = config.get("scripts", {})
    try:
        return Settings(
            filter_strategy=completion.get("filter_strategy", "prefix"),
            insert_space=completion.get("insert_space", "always"),
            use_file_icons=completion.get("use_file_icons", True),
            ignore_commands=tuple(completion.get("ignore_commands", ())),
            mixins={k: tuple(v) for k, v in completion.get("mixins", {}).items()},
            scripts_enabled=scripts.get("enabled", True),
            scripts_allow_list=tuple(scripts.get("allow_list", ())),
            script_timeout_ms=scripts.get("timeout_ms", 5000),
            lint=LintSettings(**config.get("lint", {})),
            update_paths_on_file_rename=config.get("paths", {}).get("update_paths_on_file_rename", "ask"),
            semantic_highlighting=config.get("highlighting", {}).get("semantic_highlighting", True),
            spec_paths=tuple(config.get("specs", {}).get("paths", ())),
        )
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def _merge_config(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep-merge override into base."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _merge_config(base[key], value)
        else:
            base[key] = value
    return base


def _deep_copy_dict(d: dict[str, Any]) -> dict[str, Any]:
    """Simple deep copy for nested dicts of simple types."""
    result: dict[str, Any] = {}
    for k, v in d.items():
        if isinstance(v, dict):
            result[k] = _deep_copy_dict(v)
        elif isinstance(v, list):
            result[k] = list(v)
        else:
            result[k] = v
    return result
