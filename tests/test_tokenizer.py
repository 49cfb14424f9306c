"""Tests for the command-line tokenizer."""

from __future__ import annotations

import pytest

from shellsense.core.exceptions import ParseError
from shellsense.models.command import Operator, Token
from shellsense.parsing.tokenizer import tokenize


def _contents(parts):
    return [p.contents if isinstance(p, Token) else p.text for p in parts]


class TestWords:
    def test_plain_words_keep_offsets(self):
        assert tokenize("git checkout main") == [
            Token("git", 0, 3),
            Token("checkout", 4, 12),
            Token("main", 13, 17),
        ]

    def test_extra_whitespace_is_ignored(self):
        assert _contents(tokenize("  ls   -la  ")) == ["ls", "-la"]

    def test_single_quotes_are_literal(self):
        parts = tokenize("echo 'a $HOME b'", {"HOME": "/home/me"})
        assert parts[1] == Token("a $HOME b", 5, 16)

    def test_double_quotes_expand_variables(self):
        parts = tokenize('echo "dir: $HOME"', {"HOME": "/home/me"})
        assert parts[1].contents == "dir: /home/me"
        # end points past the closing quote
        assert parts[1].end == 17

    def test_double_quote_escapes(self):
        parts = tokenize(r'echo "a\$b"')
        assert parts[1].contents == "a$b"

    def test_unknown_escape_in_double_quotes_is_kept(self):
        parts = tokenize(r'echo "a\nb"')
        assert parts[1].contents == r"a\nb"

    def test_backslash_escapes_space_outside_quotes(self):
        parts = tokenize(r"cat my\ file.txt")
        assert parts[1] == Token("my file.txt", 4, 16)

    def test_mixed_quoting_is_one_word(self):
        parts = tokenize("""echo all'one'"word" next""")
        assert _contents(parts) == ["echo", "alloneword", "next"]


class TestVariables:
    def test_unset_variable_expands_to_empty(self):
        assert tokenize("echo $NOPE")[1].contents == ""

    def test_braced_variable(self):
        parts = tokenize("echo ${USER}x", {"USER": "ann"})
        assert parts[1].contents == "annx"

    def test_callable_environment(self):
        parts = tokenize("echo $A", lambda name: name.lower())
        assert parts[1].contents == "a"

    def test_lone_dollar_is_literal(self):
        assert tokenize("echo $")[1].contents == "$"

    def test_empty_substitution_raises(self):
        with pytest.raises(ParseError):
            tokenize("echo ${}")

    def test_unterminated_substitution_raises(self):
        with pytest.raises(ParseError):
            tokenize("echo ${HOME")


class TestOperators:
    def test_and_operator(self):
        parts = tokenize("yarn && pnpm test")
        assert parts[1] == Operator("&&", 5)
        assert parts[2] == Token("pnpm", 8, 12)

    def test_operators_without_spaces(self):
        assert _contents(tokenize("a|b;c")) == ["a", "|", "b", ";", "c"]

    def test_redirect_operator(self):
        parts = tokenize("cat hello >> out.txt")
        assert parts[2] == Operator(">>", 10)
        assert parts[2].end == 12


class TestComments:
    def test_comment_ends_the_line(self):
        assert _contents(tokenize("echo hi # a comment")) == ["echo", "hi"]

    def test_hash_inside_quotes_is_not_a_comment(self):
        assert _contents(tokenize("echo '#not'")) == ["echo", "#not"]


class TestSourceOffsets:
    LINE = r"""git commit -m "fix: a\"b" 'x y' my\ file && echo done"""

    @staticmethod
    def _unquoted(text: str) -> str:
        return text.replace("\\", "").replace('"', "").replace("'", "")

    def test_tokenizing_twice_gives_the_same_parts(self):
        assert tokenize(self.LINE) == tokenize(self.LINE)

    def test_offsets_point_at_the_source_text(self):
        parts = tokenize(self.LINE)
        assert _contents(parts) == ["git", "commit", "-m", 'fix: a"b', "x y", "my file", "&&", "echo", "done"]
        for part in parts:
            if isinstance(part, Operator):
                assert self.LINE[part.offset : part.end] == part.text
            else:
                assert self._unquoted(self.LINE[part.offset : part.end]) == self._unquoted(part.contents)
