"""Tests for annotation body tokenization."""

from __future__ import annotations

from mdattrs.grammar import (
    ClassToken,
    FlagToken,
    KeyValueToken,
    strip_quotes,
    to_attributes,
    tokenize,
)
from mdattrs.grammar.tokens import classify, split_fragments


class TestSplitFragments:
    """Quote-aware whitespace splitting."""

    def test_plain_whitespace(self) -> None:
        assert split_fragments(".a  .b\tc") == [".a", ".b", "c"]

    def test_double_quotes_keep_spaces(self) -> None:
        assert split_fragments('data-x="a b" checked') == ['data-x="a b"', "checked"]

    def test_single_and_backtick_quotes(self) -> None:
        assert split_fragments("t='x y' u=`p q`") == ["t='x y'", "u=`p q`"]

    def test_quote_closed_only_by_same_char(self) -> None:
        """A single quote inside double quotes does not close the run."""
        assert split_fragments("k=\"it's here\" z") == ['k="it\'s here"', "z"]

    def test_unterminated_quote_runs_to_end(self) -> None:
        assert split_fragments("k='a b c") == ["k='a b c"]


class TestClassify:
    """Single fragment classification."""

    def test_class(self) -> None:
        assert classify(".warning") == ClassToken("warning")

    def test_id_shorthand(self) -> None:
        assert classify("#intro") == KeyValueToken("id", "intro")

    def test_lone_hash_is_flag(self) -> None:
        assert classify("#") == FlagToken("#")

    def test_key_value_splits_on_first_equals(self) -> None:
        assert classify("a=b=c") == KeyValueToken("a", "b=c")

    def test_empty_key_is_flag(self) -> None:
        assert classify("=x") == FlagToken("=x")

    def test_key_of_disallowed_chars_is_flag(self) -> None:
        assert classify("/=x") == FlagToken("/=x")

    def test_bare_word_is_flag(self) -> None:
        assert classify("checked") == FlagToken("checked")


class TestTokenize:
    """End-to-end tokenization of annotation bodies."""

    def test_two_classes(self) -> None:
        assert tokenize(".foo .bar") == [ClassToken("foo"), ClassToken("bar")]

    def test_quoted_value_and_flag(self) -> None:
        tokens = tokenize('data-x="a b" checked')
        assert tokens == [KeyValueToken("data-x", '"a b"'), FlagToken("checked")]
        assert isinstance(tokens[0], KeyValueToken)
        assert strip_quotes(tokens[0].value) == "a b"

    def test_source_order_preserved(self) -> None:
        tokens = tokenize("z .b a=1 .a")
        assert tokens == [
            FlagToken("z"),
            ClassToken("b"),
            KeyValueToken("a", "1"),
            ClassToken("a"),
        ]

    def test_empty_returns_none(self) -> None:
        assert tokenize("") is None
        assert tokenize(None) is None

    def test_whitespace_only_returns_none(self) -> None:
        assert tokenize("   ") is None

    def test_quote_only_fragments_discarded(self) -> None:
        assert tokenize("'' \"\"") is None
        assert tokenize("'' .a") == [ClassToken("a")]

    def test_trailing_spaces_ignored(self) -> None:
        assert tokenize(".x  ") == [ClassToken("x")]


class TestStripQuotes:
    """Surrounding quote removal."""

    def test_each_quote_kind(self) -> None:
        assert strip_quotes('"v"') == "v"
        assert strip_quotes("'v'") == "v"
        assert strip_quotes("`v`") == "v"

    def test_inner_quotes_kept(self) -> None:
        assert strip_quotes("\"it's\"") == "it's"

    def test_unquoted_unchanged(self) -> None:
        assert strip_quotes("plain") == "plain"


class TestToAttributes:
    """Flattening tokens into attribute pairs."""

    def test_pairs(self) -> None:
        tokens = [ClassToken("a"), KeyValueToken("k", "v"), FlagToken("f")]
        assert to_attributes(tokens) == (("class", "a"), ("k", "v"), ("f", None))

    def test_duplicates_kept(self) -> None:
        tokens = [KeyValueToken("k", "1"), KeyValueToken("k", "2")]
        assert to_attributes(tokens) == (("k", "1"), ("k", "2"))

    def test_none_and_empty(self) -> None:
        assert to_attributes(None) == ()
        assert to_attributes([]) == ()
