# tests/test_lexer.py
"""
Tests for the Clarity tokenizer: token kinds, literal values, positions
and the trailing EOF token.
"""

import pytest

from clarity_audit.lexer import KEYWORDS, Lexer, TokenType, tokenize


def _types(source):
    return [t.type for t in tokenize(source)]


def _values(source):
    return [t.value for t in tokenize(source) if t.type is not TokenType.EOF]


class TestPunctuation:

    def test_parens_and_braces(self):
        assert _types("(){}") == [
            TokenType.LPAREN, TokenType.RPAREN,
            TokenType.LBRACE, TokenType.RBRACE, TokenType.EOF,
        ]

    def test_dot_comma_colon(self):
        assert _types(". , :") == [
            TokenType.DOT, TokenType.COMMA, TokenType.COLON, TokenType.EOF,
        ]

    def test_empty_source_is_only_eof(self):
        toks = tokenize("")
        assert len(toks) == 1
        assert toks[0].type is TokenType.EOF


class TestLiterals:

    def test_uint(self):
        tok = tokenize("u42")[0]
        assert tok.type is TokenType.UINT
        assert tok.value == "42"
        assert tok.raw == "u42"

    def test_int_and_negative_int(self):
        toks = tokenize("7 -3")
        assert (toks[0].type, toks[0].value) == (TokenType.INT, "7")
        assert (toks[1].type, toks[1].value) == (TokenType.INT, "-3")

    def test_bool(self):
        assert _types("true false")[:2] == [TokenType.BOOL, TokenType.BOOL]

    def test_ascii_string_with_escapes(self):
        tok = tokenize(r'"a\"b\n"')[0]
        assert tok.type is TokenType.STRING_ASCII
        assert tok.value == 'a"b\n'

    def test_utf8_string(self):
        tok = tokenize('u"hello"')[0]
        assert tok.type is TokenType.STRING_UTF8
        assert tok.value == "hello"

    def test_buffer_is_lowercased_without_prefix(self):
        tok = tokenize("0xDEADbeef")[0]
        assert tok.type is TokenType.BUFFER
        assert tok.value == "deadbeef"
        assert tok.raw == "0xDEADbeef"

    def test_principal(self):
        tok = tokenize("'SP2J6ZY48GV1EZ5V2V5RB9MP66SW86PYKKNRV9EJ7.token")[0]
        assert tok.type is TokenType.PRINCIPAL
        assert tok.value == "SP2J6ZY48GV1EZ5V2V5RB9MP66SW86PYKKNRV9EJ7.token"


class TestWords:

    def test_keywords_recognised(self):
        toks = tokenize("define-public let map-set tx-sender")
        assert all(t.type is TokenType.KEYWORD for t in toks[:-1])

    def test_identifier(self):
        tok = tokenize("my-balance")[0]
        assert tok.type is TokenType.IDENTIFIER
        assert tok.value == "my-balance"

    def test_operator_symbols_are_words(self):
        assert _values("+ <= unwrap! stx-transfer?") == [
            "+", "<=", "unwrap!", "stx-transfer?",
        ]

    def test_word_starting_with_u_is_identifier(self):
        tok = tokenize("user")[0]
        assert tok.type is TokenType.IDENTIFIER

    def test_dotted_name_is_three_tokens(self):
        assert _types("a.b")[:3] == [TokenType.IDENTIFIER, TokenType.DOT, TokenType.IDENTIFIER]

    @pytest.mark.parametrize("keyword", ["define-constant", "define-map", "use-trait", "impl-trait"])
    def test_definition_keywords_present(self, keyword):
        assert keyword in KEYWORDS


class TestCommentsAndPositions:

    def test_comments_discarded(self):
        assert _values(";; a comment\n(ok u1) ; trailing") == ["(", "ok", "1", ")"]

    def test_line_and_column(self):
        toks = tokenize("(a\n  b)")
        b = toks[2]
        assert b.value == "b"
        assert (b.location.line, b.location.column) == (2, 3)
        assert b.location.offset == 5

    def test_unknown_characters_skipped(self):
        assert _values("(a # b)") == ["(", "a", "b", ")"]

    def test_unterminated_string_still_terminates(self):
        toks = tokenize('"abc')
        assert toks[0].type is TokenType.STRING_ASCII
        assert toks[-1].type is TokenType.EOF


class TestLexerReuse:

    def test_state_reset_between_calls(self):
        lexer = Lexer()
        first = lexer.tokenize("(a b c)")
        second = lexer.tokenize("x")
        assert len(first) == 6
        assert [t.value for t in second] == ["x", ""]
        assert second[0].location.line == 1
