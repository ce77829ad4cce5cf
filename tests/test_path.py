"""Tests for the property path tokenizer."""

import pytest

from kvopath import MalformedPathError, tokenize


class TestTokenize:
    def test_single_key(self):
        assert tokenize("greeting") == ["greeting"]

    def test_dot_separated(self):
        assert tokenize("a.b.c") == ["a", "b", "c"]

    def test_identifier_characters(self):
        assert tokenize("one.foo0bar.$._") == ["one", "foo0bar", "$", "_"]

    def test_first_key_may_be_numeric(self):
        assert tokenize("0") == ["0"]
        assert tokenize("0.a") == ["0", "a"]

    def test_bracketed_numbers(self):
        assert tokenize("a[0]") == ["a", "0"]
        assert tokenize("a[-1]") == ["a", "-1"]
        assert tokenize("a[+2]") == ["a", "+2"]

    def test_bracketed_strings(self):
        assert tokenize("a['b']['c']") == ["a", "b", "c"]
        assert tokenize('a["$%#"]') == ["a", "$%#"]
        assert tokenize("what.is['the answer']") == ["what", "is", "the answer"]

    def test_unicode_in_brackets(self):
        assert tokenize("greeting['こんにちは']") == ["greeting", "こんにちは"]

    def test_mixed_notation(self):
        assert tokenize("a.b[0].c") == ["a", "b", "0", "c"]
        assert tokenize("a['b'][0].c") == ["a", "b", "0", "c"]
        assert tokenize("a.b['0']['c']") == ["a", "b", "0", "c"]

    def test_escaped_quotes(self):
        assert tokenize("a['\\'\"']") == ["a", "'\""]
        assert tokenize('a["\'\\""]') == ["a", "'\""]
        assert tokenize('a["\\""]') == ["a", '"']

    def test_delimiters_inside_quotes(self):
        assert tokenize("a[']']") == ["a", "]"]
        assert tokenize("a['x.y[0]']") == ["a", "x.y[0]"]

    def test_empty_quoted_key(self):
        assert tokenize("a['']") == ["a", ""]

    def test_returns_fresh_list(self):
        first = tokenize("a.b")
        first.append("c")
        assert tokenize("a.b") == ["a", "b"]

    def test_rejects_non_string(self):
        with pytest.raises(TypeError):
            tokenize(3)


class TestMalformedPaths:
    @pytest.mark.parametrize(
        "path",
        [
            "",
            "foo..bar",
            "foo[]",
            ".bar",
            '["bar"]',
            "[",
            ".",
            "]",
            "foo.",
            "foo[",
            "foo[0",
            "foo]",
            "foo]0",
            "foo.0bar",
            "foo.#",
            "foo bar",
            "foo[\"bar']",
            "foo['bar' ]",
            "foo[0]bar",
            "foo[0]]",
            "foo[0] ",
        ],
    )
    def test_rejected(self, path):
        with pytest.raises(MalformedPathError):
            tokenize(path)

    def test_is_a_value_error(self):
        with pytest.raises(ValueError):
            tokenize("foo..bar")

    def test_message_marks_offending_index(self):
        with pytest.raises(MalformedPathError) as info:
            tokenize("foo..bar")
        err = info.value
        assert err.path == "foo..bar"
        assert err.index == 4
        assert err.got == "."
        assert str(err) == (
            "Malformed property path:\n"
            "foo..bar\n"
            "----^\n"
            "Expected an identifier as the next token, but got '.'."
        )

    def test_invalid_identifier_start(self):
        with pytest.raises(MalformedPathError) as info:
            tokenize("foo.0bar")
        assert info.value.index == 4
        assert info.value.got == "0"

    def test_invalid_character_inside_identifier(self):
        with pytest.raises(MalformedPathError) as info:
            tokenize("foo.b#r")
        assert info.value.index == 5
        assert info.value.got == "#"

    def test_trailing_text_after_bracket(self):
        with pytest.raises(MalformedPathError) as info:
            tokenize("foo[0]bar")
        assert info.value.index == 6
        assert "Expected '[', '.', or EOS" in str(info.value)

    def test_quote_not_followed_by_bracket(self):
        with pytest.raises(MalformedPathError) as info:
            tokenize("foo['bar' ]")
        assert info.value.index == 9
        assert info.value.expected == "']'"

    def test_unterminated_bracket(self):
        with pytest.raises(MalformedPathError) as info:
            tokenize("foo[")
        assert info.value.index == 4
        assert str(info.value).endswith("but got the end of the path.")

    def test_stray_closing_bracket(self):
        with pytest.raises(MalformedPathError) as info:
            tokenize("foo]")
        assert info.value.index == 3
        assert info.value.expected == "'['"

    def test_empty_first_key(self):
        with pytest.raises(MalformedPathError) as info:
            tokenize(".bar")
        assert info.value.index == 0
        assert str(info.value).splitlines()[2] == "^"
