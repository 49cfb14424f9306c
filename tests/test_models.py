"""Tests for spec normalization and the text-document model."""

from __future__ import annotations

from pathlib import Path

import pytest

from shellsense.core.exceptions import SpecError
from shellsense.models.document import Position, Range, TextDocument, TextEdit, WorkspaceEdit, guess_language_id
from shellsense.models.spec import Arg, Generator, Option, Subcommand, Suggestion, load_spec, to_suggestion


class TestSpecNormalization:
    def test_name_string_becomes_list(self):
        spec = load_spec({"name": "git"})
        assert spec.name == ["git"]
        assert spec.primary_name == "git"

    def test_single_arg_object_becomes_list(self):
        spec = load_spec({"name": "cat", "args": {"name": "file"}})
        assert len(spec.args) == 1
        assert spec.args[0].name == "file"

    def test_camel_case_keys(self):
        spec = load_spec(
            {
                "name": "git",
                "requiresSubcommand": True,
                "subcommands": [{"name": ["checkout", "co"], "args": {"name": "branch", "isOptional": True}}],
            }
        )
        assert spec.requires_subcommand
        checkout = spec.find_subcommand("co")
        assert checkout is not None
        assert checkout.args[0].is_optional

    def test_string_suggestions(self):
        arg = Arg.model_validate({"suggestions": ["chrome", {"name": "firefox", "priority": 80}]})
        assert [s.primary_name for s in arg.suggestions] == ["chrome", "firefox"]
        assert arg.suggestions[1].priority == 80

    def test_requires_separator_true_means_equals(self):
        option = Option.model_validate({"name": "--target", "requiresSeparator": True})
        assert option.requires_separator == "="

    def test_requires_separator_custom(self):
        option = Option.model_validate({"name": "-D", "requiresSeparator": ":"})
        assert option.requires_separator == ":"

    def test_option_name_required(self):
        with pytest.raises(ValueError):
            Option.model_validate({"name": []})

    def test_unnamed_load_spec_is_dropped(self):
        arg = Arg.model_validate({"loadSpec": {"name": "inline"}})
        assert arg.load_spec is None
        assert not arg.is_spec_switch

    def test_is_path(self):
        assert Arg.model_validate({"template": "filepaths"}).is_path
        assert Arg.model_validate({"generators": {"template": "folders"}}).is_path
        assert not Arg.model_validate({"template": "history"}).is_path

    def test_generators_get_distinct_ids(self):
        first, second = Generator(script="ls"), Generator(script="ls")
        assert first.uid != second.uid

    def test_to_suggestion_rejects_other_types(self):
        with pytest.raises(SpecError):
            to_suggestion(42)
        assert to_suggestion("x") == Suggestion(name=["x"])


class TestOptions:
    def test_later_duplicate_wins(self):
        spec = Subcommand.model_validate(
            {
                "name": "tool",
                "options": [
                    {"name": "--out", "description": "old"},
                    {"name": "--quiet"},
                    {"name": "--out", "description": "new"},
                ],
            }
        )
        options = spec.normalized_options()
        assert [o.name for o in options] == [["--quiet"], ["--out"]]
        assert spec.find_option("--out").description == "new"

    def test_find_option_by_alias(self):
        spec = Subcommand.model_validate({"name": "jest", "options": [{"name": ["--bail", "-b"]}]})
        assert spec.find_option("-b").name == ["--bail", "-b"]
        assert spec.find_option("--nope") is None

    def test_repeatable_count(self):
        option = Option.model_validate({"name": "-v", "isRepeatable": 3})
        assert option.is_repeatable == 3


class TestLoadSpec:
    def test_callable_spec(self):
        spec = load_spec(lambda: {"name": "lazy"})
        assert spec.primary_name == "lazy"

    def test_versioned_spec_rejected(self):
        with pytest.raises(SpecError, match="Versioned"):
            load_spec({"name": "aws", "versionedSpecPath": "aws/versions"})

    def test_missing_name_rejected(self):
        with pytest.raises(SpecError):
            load_spec({"description": "nameless"})

    def test_unsupported_input(self):
        with pytest.raises(SpecError):
            load_spec(["not", "a", "spec"])


class TestTextDocument:
    def test_positions_and_offsets(self):
        doc = TextDocument(Path("/tmp/run.sh"), "ls\necho hi\n")
        assert doc.line_count == 3
        assert doc.offset_at(Position(1, 5)) == 8
        assert doc.position_at(8) == Position(1, 5)

    def test_line_at_strips_line_break(self):
        doc = TextDocument(Path("/tmp/run.sh"), "ls\r\necho hi")
        text, line_range = doc.line_at(0)
        assert text == "ls"
        assert line_range == Range(Position(0, 0), Position(0, 2))

    def test_apply_edits_back_to_front(self):
        doc = TextDocument(Path("/tmp/run.sh"), "node a.js && node a.js")
        edits = [
            TextEdit(Range(Position(0, 5), Position(0, 9)), "b.js"),
            TextEdit(Range(Position(0, 18), Position(0, 22)), "b.js"),
        ]
        assert doc.apply_edits(edits) == "node b.js && node b.js"

    def test_workspace_edit_size(self):
        edit = WorkspaceEdit()
        edit.add(Path("a.sh"), [TextEdit(Range(Position(0, 0), Position(0, 1)), "x")])
        edit.file_renames.append((Path("old"), Path("new")))
        assert edit.size == 2

    def test_language_ids(self):
        assert guess_language_id(Path("package.json")) == "json"
        assert guess_language_id(Path("build.sh")) == "shellscript"
        assert guess_language_id(Path("build.BAT")) == "bat"
        assert guess_language_id(Path("notes.txt")) == "plaintext"
