"""
Lexer for Clarity contract source.

Turns source text into a flat list of located ``Token`` objects.  The
lexer is total: it never raises, and characters it does not recognise are
skipped.  Malformed input surfaces later as parse errors.

Literal forms
-------------
    u123            unsigned integer (value "123")
    123  -7         signed integer
    true false      boolean
    "abc"           ASCII string
    u"abc"          UTF-8 string
    0xdeadbeef      byte buffer (value "deadbeef")
    'SP2J...        standard principal
    'SP2J....token  contract principal

Identifiers accept letters, digits and ``- _ ! ? + < > = / % *``, so
operators such as ``+``, ``<=`` and ``unwrap!`` are lexed as identifiers
or keywords rather than as operator tokens.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import FrozenSet, List

from clarity_audit.ast import SourceLocation

logger = logging.getLogger(__name__)


class TokenType(Enum):
    LPAREN = auto()
    RPAREN = auto()
    LBRACE = auto()
    RBRACE = auto()
    DOT = auto()
    COMMA = auto()
    COLON = auto()
    IDENTIFIER = auto()
    KEYWORD = auto()
    UINT = auto()
    INT = auto()
    BOOL = auto()
    STRING_ASCII = auto()
    STRING_UTF8 = auto()
    BUFFER = auto()
    PRINCIPAL = auto()
    EOF = auto()
    COMMENT = auto()
    WHITESPACE = auto()


LITERAL_TOKENS: FrozenSet[TokenType] = frozenset({
    TokenType.UINT, TokenType.INT, TokenType.BOOL, TokenType.STRING_ASCII,
    TokenType.STRING_UTF8, TokenType.BUFFER, TokenType.PRINCIPAL,
})


@dataclass(frozen=True, slots=True)
class Token:
    type: TokenType
    value: str
    raw: str
    location: SourceLocation

    def __str__(self) -> str:
        return f"{self.type.name}({self.raw!r}) at {self.location}"


DEFINE_KEYWORDS: FrozenSet[str] = frozenset({
    "define-constant", "define-public", "define-private", "define-read-only",
    "define-map", "define-data-var", "define-non-fungible-token",
    "define-fungible-token", "define-trait", "use-trait", "impl-trait",
})

KEYWORDS: FrozenSet[str] = DEFINE_KEYWORDS | frozenset({
    # control
    "let", "begin", "if", "match", "try!", "unwrap!", "unwrap-panic",
    "unwrap-err!", "unwrap-err-panic", "asserts!",
    # response / optional
    "ok", "err", "some", "none",
    "is-ok", "is-err", "is-some", "is-none", "default-to",
    # logic / comparison / arithmetic
    "and", "or", "not", "is-eq",
    "+", "-", "*", "/", "mod", "pow", "sqrti", "log2",
    "<", "<=", ">", ">=",
    # storage
    "map-get?", "map-set", "map-insert", "map-delete", "var-get", "var-set",
    # contract context
    "contract-call?", "as-contract", "tx-sender", "contract-caller",
    "block-height", "burn-block-height", "stx-get-balance", "stx-transfer?",
    "stx-burn?",
    # tokens
    "ft-mint?", "ft-transfer?", "ft-burn?", "ft-get-balance", "ft-get-supply",
    "nft-mint?", "nft-transfer?", "nft-burn?", "nft-get-owner?",
    # sequences / tuples
    "list", "append", "concat", "len", "filter", "map", "fold",
    "element-at", "index-of", "get", "merge", "tuple", "print",
    # conversions
    "to-int", "to-uint", "buff-to-int-le", "buff-to-uint-le",
    "buff-to-int-be", "buff-to-uint-be", "int-to-ascii", "int-to-utf8",
    "string-to-int?", "string-to-uint?", "principal-of?",
    "principal-construct?",
})

_SYMBOL_CHARS = frozenset("-_!?+<>=/%*")


def _is_ident_start(ch: str) -> bool:
    return ch.isalpha() or ch in _SYMBOL_CHARS


def _is_ident_char(ch: str) -> bool:
    return ch.isalnum() or ch in _SYMBOL_CHARS


_ESCAPES = {'"': '"', "\\": "\\", "n": "\n", "t": "\t", "r": "\r"}

_SINGLE_CHAR = {
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    "{": TokenType.LBRACE,
    "}": TokenType.RBRACE,
    ".": TokenType.DOT,
    ",": TokenType.COMMA,
    ":": TokenType.COLON,
}


class Lexer:
    """Single-use-per-call tokenizer.  State is reset on every call."""

    def __init__(self) -> None:
        self._reset("")

    def _reset(self, source: str) -> None:
        self._src = source
        self._pos = 0
        self._line = 1
        self._col = 1
        self._tokens: List[Token] = []

    # -- cursor -----------------------------------------------------------

    def _peek(self, ahead: int = 0) -> str:
        idx = self._pos + ahead
        return self._src[idx] if idx < len(self._src) else ""

    def _advance(self) -> str:
        ch = self._src[self._pos]
        self._pos += 1
        if ch == "\n":
            self._line += 1
            self._col = 1
        else:
            self._col += 1
        return ch

    def _here(self) -> SourceLocation:
        return SourceLocation(self._line, self._col, self._pos)

    def _emit(self, ttype: TokenType, value: str, start: SourceLocation) -> None:
        raw = self._src[start.offset:self._pos]
        self._tokens.append(Token(ttype, value, raw, start))

    # -- entry point ------------------------------------------------------

    def tokenize(self, source: str) -> List[Token]:
        self._reset(source)
        skipped = 0
        while self._pos < len(self._src):
            ch = self._peek()
            start = self._here()

            if ch.isspace():
                self._advance()
            elif ch == ";":
                while self._pos < len(self._src) and self._peek() != "\n":
                    self._advance()
            elif ch in _SINGLE_CHAR:
                self._advance()
                self._emit(_SINGLE_CHAR[ch], ch, start)
            elif ch == '"':
                self._scan_string(start, TokenType.STRING_ASCII)
            elif ch == "u" and self._peek(1) == '"':
                self._advance()
                self._scan_string(start, TokenType.STRING_UTF8)
            elif ch == "u" and self._peek(1).isdigit():
                self._advance()
                digits = self._scan_digits()
                self._emit(TokenType.UINT, digits, start)
            elif ch == "0" and self._peek(1) in ("x", "X"):
                self._advance()
                self._advance()
                hex_digits = []
                while self._peek() and self._peek() in "0123456789abcdefABCDEF":
                    hex_digits.append(self._advance())
                self._emit(TokenType.BUFFER, "".join(hex_digits).lower(), start)
            elif ch.isdigit():
                self._emit(TokenType.INT, self._scan_digits(), start)
            elif ch == "-" and self._peek(1).isdigit():
                self._advance()
                self._emit(TokenType.INT, "-" + self._scan_digits(), start)
            elif ch == "'":
                self._advance()
                chars = []
                while self._peek() and not self._peek().isspace() and self._peek() not in "()":
                    chars.append(self._advance())
                self._emit(TokenType.PRINCIPAL, "".join(chars), start)
            elif _is_ident_start(ch):
                self._scan_word(start)
            else:
                self._advance()
                skipped += 1

        self._tokens.append(Token(TokenType.EOF, "", "", self._here()))
        if skipped:
            logger.debug("lexer skipped %d unrecognised character(s)", skipped)
        return self._tokens

    # -- scanners ---------------------------------------------------------

    def _scan_digits(self) -> str:
        digits = []
        while self._peek().isdigit():
            digits.append(self._advance())
        return "".join(digits)

    def _scan_string(self, start: SourceLocation, ttype: TokenType) -> None:
        self._advance()  # opening quote
        chars = []
        while self._pos < len(self._src):
            ch = self._advance()
            if ch == '"':
                break
            if ch == "\\" and self._pos < len(self._src):
                esc = self._advance()
                chars.append(_ESCAPES.get(esc, esc))
            else:
                chars.append(ch)
        self._emit(ttype, "".join(chars), start)

    def _scan_word(self, start: SourceLocation) -> None:
        chars = []
        while self._peek() and _is_ident_char(self._peek()):
            chars.append(self._advance())
        word = "".join(chars)
        if word in ("true", "false"):
            self._emit(TokenType.BOOL, word, start)
        elif word in KEYWORDS:
            self._emit(TokenType.KEYWORD, word, start)
        else:
            self._emit(TokenType.IDENTIFIER, word, start)


def tokenize(source: str) -> List[Token]:
    """Tokenize *source* with a fresh :class:`Lexer`."""
    return Lexer().tokenize(source)
