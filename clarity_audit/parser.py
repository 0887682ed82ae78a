"""
clarity_audit/parser.py — recursive-descent parser for Clarity contracts.

Consumes the token list produced by :mod:`clarity_audit.lexer` and builds
the frozen AST defined in :mod:`clarity_audit.ast`.

Design principles
-----------------
* One token of lookahead; every top-level form dispatches on its leading
  keyword to a dedicated ``_parse_<form>`` helper, and every parenthesised
  expression dispatches on its head (``let``/``begin``/``if``/``match``/
  ``list``/``tuple``, otherwise a function call).
* Errors never raise out of :meth:`Parser.parse`.  A missing token is
  recorded and a placeholder is returned so the caller keeps walking.
  After a malformed top-level form the parser resynchronises at the next
  ``(define-...`` / ``(use-trait`` / ``(impl-trait`` or at the first token
  that starts a later line in column 1.
* Every loop stops at end of input, so any token sequence terminates.
* Expressions nested deeper than ``MAX_NESTING_DEPTH`` are reported and
  replaced by a placeholder, so deep input cannot exhaust the call stack.
* A function cut short by a following definition is kept with the body
  parsed so far.
* Parser state is reset on every call.

Public API
----------
    Parser().parse(source)          -> ParseResult
    Parser().parse_tokens(tokens)   -> ParseResult
    parse(source)                   -> ParseResult
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

from clarity_audit import ast as A
from clarity_audit.errors import Diagnostic, DiagnosticCollector, ErrorCode, ErrorPhase
from clarity_audit.lexer import DEFINE_KEYWORDS, LITERAL_TOKENS, Lexer, Token, TokenType

logger = logging.getLogger(__name__)

#: Name given to placeholder identifiers produced during error recovery.
PLACEHOLDER = "<error>"

#: Deepest run of nested parenthesised or braced expressions parsed as a tree.
MAX_NESTING_DEPTH = 128

_WRAPPER_PATTERNS = frozenset({"ok", "err", "some"})


@dataclass
class ParseResult:
    ast: Optional[A.Program]
    errors: List[Diagnostic] = field(default_factory=list)
    warnings: List[Diagnostic] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


class _FormAbort(Exception):
    """Unwinds to the top level when a new definition starts mid-form.

    ``node`` carries the part of the enclosing definition parsed so far,
    when that definition can be kept.
    """

    def __init__(self) -> None:
        super().__init__()
        self.node: Optional[A.Statement] = None


def _end_of(token: Token) -> A.SourceLocation:
    loc = token.location
    if "\n" in token.raw:
        return loc
    return A.SourceLocation(loc.line, loc.column + len(token.raw), loc.offset + len(token.raw))


class Parser:
    """Recursive-descent parser with per-form error recovery."""

    def __init__(self) -> None:
        self._reset([])

    def _reset(self, tokens: Sequence[Token]) -> None:
        self._tokens: List[Token] = list(tokens)
        if not self._tokens or self._tokens[-1].type is not TokenType.EOF:
            last = self._tokens[-1].location if self._tokens else A.SourceLocation(1, 1, 0)
            self._tokens.append(Token(TokenType.EOF, "", "", last))
        self._pos = 0
        self._next_id = 0
        self._depth = 0
        self._diag = DiagnosticCollector(ErrorPhase.PARSE)

    # ════════════════════════════════════════════════════════════════════
    # Entry points
    # ════════════════════════════════════════════════════════════════════

    def parse(self, source: str) -> ParseResult:
        return self.parse_tokens(Lexer().tokenize(source))

    def parse_tokens(self, tokens: Sequence[Token]) -> ParseResult:
        self._reset([
            t for t in tokens
            if t.type not in (TokenType.WHITESPACE, TokenType.COMMENT)
        ])
        program = self._parse_program()
        logger.debug(
            "parsed %d statement(s), %d error(s)",
            len(program.body), len(self._diag.errors),
        )
        return ParseResult(program, self._diag.errors, self._diag.warnings)

    # ════════════════════════════════════════════════════════════════════
    # Token navigation
    # ════════════════════════════════════════════════════════════════════

    def _peek(self, ahead: int = 0) -> Token:
        idx = min(self._pos + ahead, len(self._tokens) - 1)
        return self._tokens[idx]

    def _previous(self) -> Token:
        return self._tokens[max(self._pos - 1, 0)]

    def _at_end(self) -> bool:
        return self._peek().type is TokenType.EOF

    def _check(self, ttype: TokenType) -> bool:
        return self._peek().type is ttype

    def _advance(self) -> Token:
        tok = self._peek()
        if not self._at_end():
            self._pos += 1
        return tok

    def _expect(self, ttype: TokenType, message: str) -> Optional[Token]:
        if self._check(ttype):
            return self._advance()
        self._error_here(message)
        return None

    def _expect_name(self, what: str) -> str:
        """Consume a name token; keywords are accepted as names too."""
        if self._peek().type in (TokenType.IDENTIFIER, TokenType.KEYWORD):
            return self._advance().value
        self._error_here(f"Expected {what}")
        return PLACEHOLDER

    def _close(self, what: str) -> None:
        if self._check(TokenType.RPAREN):
            self._advance()
        elif self._at_end():
            self._diag.error(
                ErrorCode.UNTERMINATED_FORM,
                f"Unexpected end of input: expected ')' to close {what}",
                self._peek().location,
            )
        else:
            self._error_here(f"Expected ')' after {what}")

    def _error_here(self, message: str) -> None:
        tok = self._peek()
        found = "end of input" if tok.type is TokenType.EOF else repr(tok.raw)
        self._diag.error(ErrorCode.PARSE_ERROR, f"{message}, found {found}", tok.location)

    def _span(self, start: A.SourceLocation) -> A.SourceRange:
        return A.SourceRange(start, _end_of(self._previous()))

    def _id(self) -> int:
        nid = self._next_id
        self._next_id += 1
        return nid

    def _in_body(self) -> bool:
        return not self._check(TokenType.RPAREN) and not self._at_end()

    def _at_definition_start(self) -> bool:
        return (
            self._check(TokenType.LPAREN)
            and self._peek(1).type is TokenType.KEYWORD
            and self._peek(1).value in DEFINE_KEYWORDS
        )

    def _synchronize(self, form_line: int) -> None:
        """Skip to the next plausible top-level form."""
        if self._at_definition_start() or self._at_end():
            return
        self._advance()
        while not self._at_end():
            if self._at_definition_start():
                return
            tok = self._peek()
            if tok.location.line > form_line and tok.location.column == 1:
                return
            self._advance()

    # ════════════════════════════════════════════════════════════════════
    # Program and top-level forms
    # ════════════════════════════════════════════════════════════════════

    def _parse_program(self) -> A.Program:
        start = self._peek().location
        body: List[A.Statement] = []
        while not self._at_end():
            form_start = self._peek()
            errors_before = len(self._diag.errors)
            try:
                stmt = self._parse_top_level()
            except _FormAbort as abort:
                if abort.node is not None:
                    body.append(abort.node)
                continue
            if stmt is not None:
                body.append(stmt)
            if len(self._diag.errors) > errors_before:
                self._synchronize(form_start.location.line)
        return A.Program(tuple(body), self._span(start), self._id())

    def _parse_top_level(self) -> Optional[A.Statement]:
        if not self._check(TokenType.LPAREN):
            tok = self._advance()
            self._diag.error(
                ErrorCode.UNEXPECTED_TOKEN,
                f"Expected top-level form, found {tok.raw!r}",
                tok.location,
            )
            return None

        start = self._advance().location
        head = self._peek()
        if head.type is not TokenType.KEYWORD or head.value not in self._STATEMENTS:
            self._diag.error(
                ErrorCode.UNKNOWN_DEFINITION,
                f"Unknown top-level form: {head.raw or 'end of input'!r}",
                head.location,
            )
            return None
        keyword = self._advance().value
        return self._STATEMENTS[keyword](self, keyword, start)

    def _parse_function(self, keyword: str, start: A.SourceLocation) -> A.FunctionDef:
        self._expect(TokenType.LPAREN, "Expected '(' before function signature")
        name = self._expect_name("function name")
        params: List[A.Parameter] = []
        while self._check(TokenType.LPAREN):
            params.append(self._parse_parameter())
        self._close("function signature")
        visibility = A.Visibility.from_keyword(keyword)
        body: List[A.Expression] = []
        try:
            while self._in_body():
                body.append(self._parse_expression())
        except _FormAbort as abort:
            abort.node = A.FunctionDef(
                name, visibility, tuple(params), tuple(body), self._span(start), self._id(),
            )
            raise
        self._close(f"function '{name}'")
        return A.FunctionDef(
            name, visibility, tuple(params), tuple(body), self._span(start), self._id(),
        )

    def _parse_parameter(self) -> A.Parameter:
        start = self._advance().location  # (
        name = self._expect_name("parameter name")
        ptype = self._parse_type()
        self._close("parameter")
        return A.Parameter(name, ptype, self._span(start))

    def _parse_constant(self, keyword: str, start: A.SourceLocation) -> A.ConstantDef:
        name = self._expect_name("constant name")
        value = self._parse_expression()
        self._close("constant definition")
        return A.ConstantDef(name, value, self._span(start), self._id())

    def _parse_map(self, keyword: str, start: A.SourceLocation) -> A.MapDef:
        name = self._expect_name("map name")
        key_type = self._parse_type()
        value_type = self._parse_type()
        self._close("map definition")
        return A.MapDef(name, key_type, value_type, self._span(start), self._id())

    def _parse_data_var(self, keyword: str, start: A.SourceLocation) -> A.DataVarDef:
        name = self._expect_name("variable name")
        var_type = self._parse_type()
        initial = self._parse_expression()
        self._close("data var definition")
        return A.DataVarDef(name, var_type, initial, self._span(start), self._id())

    def _parse_nft(self, keyword: str, start: A.SourceLocation) -> A.NonFungibleTokenDef:
        name = self._expect_name("NFT name")
        asset_type = self._parse_type()
        self._close("NFT definition")
        return A.NonFungibleTokenDef(name, asset_type, self._span(start), self._id())

    def _parse_ft(self, keyword: str, start: A.SourceLocation) -> A.FungibleTokenDef:
        name = self._expect_name("FT name")
        supply = self._parse_expression() if self._in_body() else None
        self._close("FT definition")
        return A.FungibleTokenDef(name, supply, self._span(start), self._id())

    def _parse_trait(self, keyword: str, start: A.SourceLocation) -> A.TraitDef:
        name = self._expect_name("trait name")
        functions: List[A.TraitFunctionSig] = []
        if self._expect(TokenType.LPAREN, "Expected '(' before trait body"):
            while self._check(TokenType.LPAREN):
                functions.append(self._parse_trait_function())
            self._close("trait body")
        self._close(f"trait '{name}'")
        return A.TraitDef(name, tuple(functions), self._span(start), self._id())

    def _parse_trait_function(self) -> A.TraitFunctionSig:
        start = self._advance().location  # (
        name = self._expect_name("trait function name")
        arg_types: List[A.TypeSpec] = []
        if self._expect(TokenType.LPAREN, "Expected '(' before trait function arguments"):
            while self._in_body():
                arg_types.append(self._parse_type())
            self._close("trait function arguments")
        ret = self._parse_type()
        self._close(f"trait function '{name}'")
        return A.TraitFunctionSig(name, tuple(arg_types), ret, self._span(start))

    def _parse_use_trait(self, keyword: str, start: A.SourceLocation) -> A.UseTrait:
        alias = self._expect_name("trait alias")
        ref = self._parse_expression()
        self._close("use-trait")
        return A.UseTrait(alias, ref, self._span(start), self._id())

    def _parse_impl_trait(self, keyword: str, start: A.SourceLocation) -> A.ImplTrait:
        ref = self._parse_expression()
        self._close("impl-trait")
        return A.ImplTrait(ref, self._span(start), self._id())

    _STATEMENTS: Dict[str, Callable[..., A.Statement]] = {
        "define-constant": _parse_constant,
        "define-public": _parse_function,
        "define-private": _parse_function,
        "define-read-only": _parse_function,
        "define-map": _parse_map,
        "define-data-var": _parse_data_var,
        "define-non-fungible-token": _parse_nft,
        "define-fungible-token": _parse_ft,
        "define-trait": _parse_trait,
        "use-trait": _parse_use_trait,
        "impl-trait": _parse_impl_trait,
    }

    # ════════════════════════════════════════════════════════════════════
    # Types
    # ════════════════════════════════════════════════════════════════════

    def _parse_type(self) -> A.TypeSpec:
        tok = self._peek()
        if tok.type in (TokenType.IDENTIFIER, TokenType.KEYWORD):
            self._advance()
            return A.TypeSpec(tok.value, span=self._span(tok.location))
        if tok.type is TokenType.LBRACE:
            return self._parse_brace_tuple_type()
        if tok.type is TokenType.LPAREN:
            return self._parse_compound_type()
        self._error_here("Expected type")
        if tok.type not in (TokenType.RPAREN, TokenType.EOF):
            self._advance()
        return A.TypeSpec(PLACEHOLDER, span=self._span(tok.location))

    def _parse_compound_type(self) -> A.TypeSpec:
        start = self._advance().location  # (
        head = self._expect_name("type name")
        if head == "tuple":
            fields = []
            while self._check(TokenType.LPAREN):
                self._advance()
                key = self._expect_name("tuple field name")
                fields.append((key, self._parse_type()))
                self._close("tuple field type")
            self._close("tuple type")
            return A.TypeSpec("tuple", fields=tuple(fields), span=self._span(start))

        params: List[Union[int, A.TypeSpec]] = []
        while self._in_body():
            if self._peek().type in (TokenType.INT, TokenType.UINT):
                params.append(int(self._advance().value))
            else:
                params.append(self._parse_type())
        self._close(f"type '{head}'")
        return A.TypeSpec(head, tuple(params), span=self._span(start))

    def _parse_brace_tuple_type(self) -> A.TypeSpec:
        start = self._advance().location  # {
        fields = []
        while not self._check(TokenType.RBRACE) and not self._at_end():
            key = self._expect_name("tuple field name")
            self._expect(TokenType.COLON, "Expected ':' after tuple field name")
            fields.append((key, self._parse_type()))
            if not self._check(TokenType.COMMA):
                break
            self._advance()
        self._expect(TokenType.RBRACE, "Expected '}' after tuple type")
        return A.TypeSpec("tuple", fields=tuple(fields), span=self._span(start))

    # ════════════════════════════════════════════════════════════════════
    # Expressions
    # ════════════════════════════════════════════════════════════════════

    def _parse_body(self) -> Tuple[A.Expression, ...]:
        body: List[A.Expression] = []
        while self._in_body():
            body.append(self._parse_expression())
        return tuple(body)

    def _placeholder(self, loc: A.SourceLocation) -> A.Identifier:
        return A.Identifier(PLACEHOLDER, A.SourceRange(loc, loc), self._id())

    def _parse_expression(self) -> A.Expression:
        tok = self._peek()
        if tok.type in (TokenType.LPAREN, TokenType.LBRACE):
            if self._depth >= MAX_NESTING_DEPTH:
                return self._skip_nested()
            self._depth += 1
            try:
                if tok.type is TokenType.LPAREN:
                    return self._parse_paren_expression()
                return self._parse_brace_tuple()
            finally:
                self._depth -= 1
        if tok.type in (TokenType.IDENTIFIER, TokenType.KEYWORD):
            name = self._parse_name()
            return A.Identifier(name, self._span(tok.location), self._id())
        if tok.type is TokenType.DOT and self._peek(1).type is TokenType.IDENTIFIER:
            self._advance()
            contract = self._parse_name()
            return A.PrincipalLiteral("", contract, self._span(tok.location), self._id())
        if tok.type in LITERAL_TOKENS:
            return self._parse_literal()

        if tok.type is TokenType.EOF or tok.type is TokenType.RPAREN:
            self._error_here("Expected expression")
        else:
            self._advance()
            self._diag.error(
                ErrorCode.UNEXPECTED_TOKEN,
                f"Unexpected token {tok.raw!r} in expression",
                tok.location,
            )
        return self._placeholder(tok.location)

    def _skip_nested(self) -> A.Identifier:
        """Replace an over-deep expression by a placeholder, skipping to its close."""
        start = self._peek().location
        self._diag.error(
            ErrorCode.PARSE_ERROR,
            f"Expression nested too deeply (more than {MAX_NESTING_DEPTH} levels)",
            start,
        )
        level = 0
        while not self._at_end():
            ttype = self._advance().type
            if ttype in (TokenType.LPAREN, TokenType.LBRACE):
                level += 1
            elif ttype in (TokenType.RPAREN, TokenType.RBRACE):
                level -= 1
                if level == 0:
                    break
        return self._placeholder(start)

    def _parse_name(self) -> str:
        """Identifier, merging adjacent ``a.b`` into one dotted name."""
        tok = self._advance()
        name = tok.value
        while (
            self._check(TokenType.DOT)
            and self._peek().location.offset == tok.location.offset + len(tok.raw)
            and self._peek(1).type in (TokenType.IDENTIFIER, TokenType.KEYWORD)
            and self._peek(1).location.offset == self._peek().location.offset + 1
        ):
            self._advance()
            tok = self._advance()
            name = f"{name}.{tok.value}"
        return name

    def _parse_literal(self) -> A.Expression:
        tok = self._advance()
        span = self._span(tok.location)
        ttype = tok.type
        if ttype is TokenType.UINT:
            return A.UIntLiteral(int(tok.value), span, self._id())
        if ttype is TokenType.INT:
            return A.IntLiteral(int(tok.value), span, self._id())
        if ttype is TokenType.BOOL:
            return A.BoolLiteral(tok.value == "true", span, self._id())
        if ttype is TokenType.STRING_ASCII:
            return A.StringLiteral(tok.value, A.StringEncoding.ASCII, span, self._id())
        if ttype is TokenType.STRING_UTF8:
            return A.StringLiteral(tok.value, A.StringEncoding.UTF8, span, self._id())
        if ttype is TokenType.BUFFER:
            return A.BufferLiteral(tok.value, span, self._id())
        address, dot, contract = tok.value.partition(".")
        return A.PrincipalLiteral(address, contract if dot else None, span, self._id())

    def _parse_paren_expression(self) -> A.Expression:
        open_pos = self._pos
        start = self._advance().location  # (
        head = self._peek()

        if head.type is TokenType.RPAREN:
            self._advance()
            self._diag.error(ErrorCode.PARSE_ERROR, "Empty expression '()'", start)
            return self._placeholder(start)

        if head.type is TokenType.KEYWORD and head.value in DEFINE_KEYWORDS:
            self._diag.error(
                ErrorCode.UNTERMINATED_FORM,
                f"'{head.value}' cannot appear inside an expression; "
                "is a closing ')' missing?",
                head.location,
            )
            self._pos = open_pos
            raise _FormAbort()

        if head.type is TokenType.KEYWORD and head.value in self._SPECIAL_FORMS:
            self._advance()
            return self._SPECIAL_FORMS[head.value](self, start)

        if head.type in (TokenType.IDENTIFIER, TokenType.KEYWORD):
            name = self._parse_name()
        else:
            self._error_here("Expected function name")
            if self._in_body():
                self._parse_expression()
            name = PLACEHOLDER
        args = self._parse_body()
        self._close(f"call to '{name}'")
        return A.FunctionCall(name, args, self._span(start), self._id())

    def _parse_let(self, start: A.SourceLocation) -> A.LetExpr:
        bindings: List[A.LetBinding] = []
        if self._expect(TokenType.LPAREN, "Expected '(' before let bindings"):
            while self._check(TokenType.LPAREN):
                bstart = self._advance().location
                name = self._expect_name("binding name")
                value = self._parse_expression()
                self._close(f"binding '{name}'")
                bindings.append(A.LetBinding(name, value, self._span(bstart), self._id()))
            self._close("let bindings")
        body = self._parse_body()
        self._close("let expression")
        return A.LetExpr(tuple(bindings), body, self._span(start), self._id())

    def _parse_begin(self, start: A.SourceLocation) -> A.BeginExpr:
        body = self._parse_body()
        self._close("begin expression")
        return A.BeginExpr(body, self._span(start), self._id())

    def _parse_if(self, start: A.SourceLocation) -> A.IfExpr:
        condition = self._parse_expression()
        then_branch = self._parse_expression()
        else_branch = self._parse_expression() if self._in_body() else None
        self._close("if expression")
        return A.IfExpr(condition, then_branch, else_branch, self._span(start), self._id())

    def _parse_match(self, start: A.SourceLocation) -> A.MatchExpr:
        subject = self._parse_expression()
        arms: List[A.MatchArm] = []
        while self._in_body():
            arms.append(self._parse_match_arm())
        self._close("match expression")
        return A.MatchExpr(subject, tuple(arms), self._span(start), self._id())

    def _parse_match_arm(self) -> A.MatchArm:
        start = self._peek().location
        last_element = (
            not self._check(TokenType.LPAREN)
            and self._peek(1).type in (TokenType.RPAREN, TokenType.EOF)
        )
        pattern = None if last_element else self._parse_pattern()
        if pattern is None:
            # Pattern-less arm: the ``none`` branch of an optional match.
            pattern = A.NonePattern(A.SourceRange(start, start), self._id())
        body = (self._parse_expression(),) if self._in_body() else ()
        return A.MatchArm(pattern, body, self._span(start), self._id())

    def _parse_pattern(self) -> Optional[A.Pattern]:
        tok = self._peek()
        if tok.type is TokenType.LPAREN:
            head = self._peek(1)
            if (
                head.type is TokenType.KEYWORD
                and head.value in _WRAPPER_PATTERNS | {"none"}
                and self._followed_by_expression(self._pos)
            ):
                self._advance()
                self._advance()
                inner = self._parse_pattern() if head.value != "none" and self._in_body() else None
                self._close(f"'{head.value}' pattern")
                return self._wrap_pattern(head.value, inner, tok.location)
            return None
        if tok.type is TokenType.KEYWORD and tok.value in _WRAPPER_PATTERNS:
            self._advance()
            inner = self._parse_pattern() if self._in_body() else None
            return self._wrap_pattern(tok.value, inner, tok.location)
        if tok.type is TokenType.KEYWORD and tok.value == "none":
            self._advance()
            return A.NonePattern(self._span(tok.location), self._id())
        if tok.type in (TokenType.IDENTIFIER, TokenType.KEYWORD):
            self._advance()
            return A.IdentifierPattern(tok.value, self._span(tok.location), self._id())
        if tok.type in LITERAL_TOKENS:
            literal = self._parse_literal()
            return A.LiteralPattern(literal, self._span(tok.location), self._id())  # type: ignore[arg-type]
        return None

    def _followed_by_expression(self, open_pos: int) -> bool:
        """True when the form opening at *open_pos* is followed by more body.

        A parenthesised ``(ok x)`` is only a pattern when an arm body comes
        after it; otherwise it is the final branch expression itself.
        """
        depth = 0
        idx = open_pos
        while idx < len(self._tokens):
            ttype = self._tokens[idx].type
            if ttype is TokenType.EOF:
                return False
            if ttype is TokenType.LPAREN:
                depth += 1
            elif ttype is TokenType.RPAREN:
                depth -= 1
                if depth == 0:
                    after = self._tokens[min(idx + 1, len(self._tokens) - 1)].type
                    return after not in (TokenType.RPAREN, TokenType.EOF)
            idx += 1
        return False

    def _wrap_pattern(
        self, kind: str, inner: Optional[A.Pattern], start: A.SourceLocation
    ) -> A.Pattern:
        if kind == "none":
            return A.NonePattern(self._span(start), self._id())
        return A.WrapperPattern(kind, inner, self._span(start), self._id())

    def _parse_list(self, start: A.SourceLocation) -> A.ListLiteral:
        elements = self._parse_body()
        self._close("list expression")
        return A.ListLiteral(elements, self._span(start), self._id())

    def _parse_tuple(self, start: A.SourceLocation) -> A.TupleLiteral:
        fields: List[A.TupleField] = []
        while self._in_body():
            fstart = self._peek().location
            if not self._expect(TokenType.LPAREN, "Expected '(' before tuple field"):
                self._advance()
                continue
            name = self._expect_name("tuple field name")
            value = self._parse_expression()
            self._close(f"tuple field '{name}'")
            fields.append(A.TupleField(name, value, self._span(fstart), self._id()))
        self._close("tuple expression")
        return A.TupleLiteral(tuple(fields), self._span(start), self._id())

    def _parse_brace_tuple(self) -> A.TupleLiteral:
        start = self._advance().location  # {
        fields: List[A.TupleField] = []
        while not self._check(TokenType.RBRACE) and not self._at_end():
            fstart = self._peek().location
            name = self._expect_name("tuple field name")
            self._expect(TokenType.COLON, "Expected ':' after tuple field name")
            value = self._parse_expression()
            fields.append(A.TupleField(name, value, self._span(fstart), self._id()))
            if not self._check(TokenType.COMMA):
                break
            self._advance()
        self._expect(TokenType.RBRACE, "Expected '}' after tuple literal")
        return A.TupleLiteral(tuple(fields), self._span(start), self._id())

    _SPECIAL_FORMS: Dict[str, Callable[..., A.Expression]] = {
        "let": _parse_let,
        "begin": _parse_begin,
        "if": _parse_if,
        "match": _parse_match,
        "list": _parse_list,
        "tuple": _parse_tuple,
    }


def parse(source: str) -> ParseResult:
    """Parse *source* with a fresh :class:`Parser`."""
    return Parser().parse(source)
