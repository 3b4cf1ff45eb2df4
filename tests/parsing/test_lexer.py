"""Tests for sigscan.parsing.lexer."""

from __future__ import annotations

import pytest

from sigscan.parsing.lexer import IDENT, NUMBER, PUNCT, STRING, UnparseableSourceError, tokenize


def _values(text: str) -> list[str]:
    return [token.value for token in tokenize(text)]


def test_comments_are_removed_from_the_stream() -> None:
    source = """
    // function hidden(uint a) public;
    uint a; /* event Ghost(); */ uint b;
    """
    assert _values(source) == ["uint", "a", ";", "uint", "b", ";"]


def test_first_block_terminator_closes_the_comment() -> None:
    assert _values("/* outer /* inner */ uint x;") == ["uint", "x", ";"]


def test_string_literals_are_opaque_and_keep_escaped_quotes() -> None:
    tokens = tokenize('string s = "a\\"b { function";')
    strings = [token for token in tokens if token.kind == STRING]
    assert len(strings) == 1
    assert strings[0].value == 'a\\"b { function'
    assert not any(token.is_punct("{") for token in tokens)


def test_single_quoted_and_hex_literals() -> None:
    tokens = tokenize("bytes b = hex'00ff'; string c = 'x';")
    assert [token.kind for token in tokens if token.kind == STRING] == [STRING, STRING]
    assert tokens[3].is_word("hex")


def test_unterminated_block_comment_is_unparseable() -> None:
    with pytest.raises(UnparseableSourceError) as excinfo:
        tokenize("contract A {}\n/* never closed")
    assert excinfo.value.line == 2


def test_unterminated_string_is_unparseable() -> None:
    with pytest.raises(UnparseableSourceError):
        tokenize('string s = "oops;\nuint x;')


def test_brace_and_paren_depths_pair_up() -> None:
    tokens = tokenize("contract A { function f(uint a) public { } }")
    braces = [(token.value, token.depth) for token in tokens if token.value in "{}"]
    assert braces == [("{", 0), ("{", 1), ("}", 1), ("}", 0)]

    function = next(token for token in tokens if token.is_word("function"))
    assert function.depth == 1
    name = next(token for token in tokens if token.is_word("a"))
    assert name.paren_depth == 1


def test_token_kinds_and_multi_char_punctuation() -> None:
    tokens = tokenize("mapping(address => uint256) x = 0x10;")
    arrow = next(token for token in tokens if token.value == "=>")
    assert arrow.kind == PUNCT
    assert tokens[0].kind == IDENT
    assert any(token.kind == NUMBER and token.value == "0x10" for token in tokens)


def test_line_numbers_follow_newlines() -> None:
    tokens = tokenize("uint a;\n\n/* one\ntwo */\nuint b;")
    b = next(token for token in tokens if token.is_word("b"))
    assert b.line == 5


def test_doc_comments_attach_to_the_next_token() -> None:
    source = """
    /// @notice Moves tokens
    /// @param to receiver
    function transfer(address to) external;
    /** @dev block doc */
    event Done();
    // plain comment
    error Nope();
    """
    tokens = tokenize(source)
    function = next(token for token in tokens if token.is_word("function"))
    assert function.doc == "@notice Moves tokens\n@param to receiver"
    event = next(token for token in tokens if token.is_word("event"))
    assert event.doc == "@dev block doc"
    error = next(token for token in tokens if token.is_word("error"))
    assert error.doc is None
