"""Lint, hover, signature help and semantic highlighting through the engine."""

from __future__ import annotations

from shellsense.core.config import LintSettings
from shellsense.models.document import Position, Range, TextDocument
from shellsense.services.lint import Severity
from shellsense.services.walker import SemanticTag


def _messages(engine, text: str) -> list[str]:
    return [d.message for d in engine.lint_text(text)]


def _range(start: int, end: int) -> Range:
    return Range(Position(0, start), Position(0, end))


class TestLint:
    def test_clean_command(self, engine):
        assert engine.lint_text("git checkout -f main") == []

    def test_subcommand_without_options(self, engine):
        diagnostics = engine.lint_text("pnpm build --prod")
        assert [d.message for d in diagnostics] == ["Command doesn't take options here"]
        assert diagnostics[0].range == _range(11, 17)
        assert diagnostics[0].code == "no_options"

    def test_unknown_option_with_guess(self, engine):
        diagnostics = engine.lint_text("jest --bali")
        assert [d.message for d in diagnostics] == ["Unknown option --bali Did you mean --bail?"]
        assert diagnostics[0].range == _range(5, 11)
        assert diagnostics[0].severity is Severity.information

    def test_unknown_option_without_guess(self, engine):
        assert _messages(engine, "jest --zzzzzz") == ["Unknown option --zzzzzz"]

    def test_no_positional_arguments(self, engine):
        assert _messages(engine, "base64 something") == ["base64 doesn't take argument here"]

    def test_option_reuse(self, engine):
        diagnostics = engine.lint_text("jest --watch --watch")
        assert [d.message for d in diagnostics] == ["--watch option was already used [here]"]
        assert diagnostics[0].range == _range(13, 20)

    def test_option_reuse_by_alias(self, engine):
        assert _messages(engine, "jest -b --bail") == ["--bail option was already used [here]"]

    def test_repeat_limit(self, engine):
        assert _messages(engine, "jest --verbose --verbose") == []
        assert _messages(engine, "jest --verbose --verbose --verbose") == ["--verbose option was already used [here]"]

    def test_unknown_command(self, engine):
        assert _messages(engine, "foobar x") == ["Unknown command foobar"]

    def test_unknown_nested_command(self, engine):
        assert _messages(engine, "sudo nope --x") == ["Unknown command nope"]

    def test_nested_command_is_linted(self, engine):
        assert _messages(engine, "sudo jest --bali") == ["Unknown option --bali Did you mean --bail?"]

    def test_indented_command(self, engine):
        diagnostics = engine.lint_text("  jest --bali")
        assert [d.message for d in diagnostics] == ["Unknown option --bali Did you mean --bail?"]
        assert diagnostics[0].range == _range(7, 13)

    def test_indented_line_in_script(self, engine, tmp_path):
        document = TextDocument(tmp_path / "build.sh", "if true; then\n  jest --bali\nfi\n")
        (diagnostic,) = engine.compute_diagnostics(document)
        assert diagnostic.message == "Unknown option --bali Did you mean --bail?"
        assert diagnostic.range == Range(Position(1, 7), Position(1, 13))

    def test_option_value_not_linted_as_argument(self, engine):
        assert _messages(engine, "jest --config jest.json") == []

    def test_double_dash_ends_options(self, engine):
        assert _messages(engine, "jest -- --bali") == []

    def test_persistent_options_inherited(self, engine):
        assert _messages(engine, "tool run --verbose") == []
        assert _messages(engine, "tool run --only-root") == ["Unknown option --only-root"]

    def test_option_arg_separators_skip_option_checks(self, engine):
        assert _messages(engine, "mvn -Dskip=true") == []

    def test_separator_option(self, engine):
        assert _messages(engine, "esbuild --target=chrome --bundle") == []

    def test_every_command_of_the_line(self, engine):
        diagnostics = engine.lint_text("jest --bali && base64 x")
        assert len(diagnostics) == 2
        assert diagnostics[1].range == _range(22, 23)

    def test_redirect_target_not_linted(self, engine):
        assert _messages(engine, "cat out.txt > jest --bali") == ["Unknown command cat"]

    def test_unparsable_line(self, engine):
        assert engine.lint_text("echo ${}") == []

    def test_validate_off(self, make_engine):
        assert make_engine(lint=LintSettings(validate=False)).lint_text("jest --bali") == []

    def test_category_severity(self, make_engine):
        engine = make_engine(lint=LintSettings(option_name="error", command_name="ignore"))
        diagnostics = engine.lint_text("foobar && jest --bali")
        assert [(d.code, d.severity) for d in diagnostics] == [("option_name", Severity.error)]

    def test_ignored_command(self, make_engine):
        assert make_engine(ignore_commands=("jest",)).lint_text("jest --bali") == []


class TestHover:
    def test_root_command(self, engine):
        hover = engine.compute_hover(engine.text_document("jest --watch"), Position(0, 2))
        assert hover.contents == "Delightful JavaScript testing"
        assert hover.range == _range(0, 4)

    def test_option(self, engine):
        hover = engine.compute_hover(engine.text_document("jest --bail"), Position(0, 11))
        assert hover.contents == "(option) Exit after the first failing test"

    def test_option_with_value_covers_both(self, engine):
        hover = engine.compute_hover(engine.text_document("jest --config a.json"), Position(0, 7))
        assert hover.contents == "(option) Config file"
        assert hover.range == _range(5, 20)

    def test_subcommand(self, engine):
        hover = engine.compute_hover(engine.text_document("git checkout main"), Position(0, 6))
        assert hover.contents == "(subcommand) Switch branches"

    def test_argument(self, engine):
        hover = engine.compute_hover(engine.text_document("ls src"), Position(0, 5))
        assert hover.contents == "(arg) Directory to list"

    def test_nothing_to_describe(self, engine):
        assert engine.compute_hover(engine.text_document("base64 -d"), Position(0, 9)) is None
        assert engine.compute_hover(engine.text_document("unknown"), Position(0, 3)) is None


class TestSignatureHelp:
    def test_optional_argument_with_default(self, engine):
        signature = engine.compute_signature_help(engine.text_document("ls "), Position(0, 3))
        assert signature.label == "Directory to list? (.)"

    def test_option_argument(self, engine):
        signature = engine.compute_signature_help(engine.text_document("jest --config "), Position(0, 14))
        assert signature.label == "path"

    def test_no_argument_expected(self, engine):
        assert engine.compute_signature_help(engine.text_document("git "), Position(0, 4)) is None

    def test_to_dict(self, engine):
        signature = engine.compute_signature_help(engine.text_document("node "), Position(0, 5))
        assert signature.to_dict() == {"label": "script", "active_parameter": 0}


class TestSemanticTokens:
    def test_tags(self, engine):
        tokens = engine.compute_semantic_tokens(engine.text_document("git checkout -f main"))
        assert [(t.range, t.tag) for t in tokens] == [
            (_range(0, 3), SemanticTag.command),
            (_range(4, 12), SemanticTag.subcommand),
            (_range(13, 15), SemanticTag.dangerous),
            (_range(16, 20), SemanticTag.arg),
        ]

    def test_option_argument(self, engine):
        tokens = engine.compute_semantic_tokens(engine.text_document("jest --config a.json"))
        assert [t.tag for t in tokens] == [SemanticTag.command, SemanticTag.option, SemanticTag.option_arg]

    def test_nested_command(self, engine):
        tokens = engine.compute_semantic_tokens(engine.text_document("sudo jest"))
        assert [t.tag for t in tokens] == [SemanticTag.command, SemanticTag.command]

    def test_indented_command(self, engine):
        tokens = engine.compute_semantic_tokens(engine.text_document("  git checkout -f"))
        assert [(t.range, t.tag) for t in tokens] == [
            (_range(2, 5), SemanticTag.command),
            (_range(6, 14), SemanticTag.subcommand),
            (_range(15, 17), SemanticTag.dangerous),
        ]

    def test_disabled(self, make_engine):
        engine = make_engine(semantic_highlighting=False)
        assert engine.compute_semantic_tokens(engine.text_document("git status")) == []
