# tests/test_parser.py
"""
Tests for the recursive-descent parser: top-level forms, expressions,
match patterns, node ids and error recovery.
"""

import pytest

from clarity_audit import ast as A
from clarity_audit.parser import MAX_NESTING_DEPTH, PLACEHOLDER, Parser, parse
from clarity_audit.visitor import walk
from tests.conftest import (
    MISSING_PAREN_SOURCE,
    OWNER_CONSTANT_SOURCE,
    TOKEN_SOURCE,
)


def _only(source):
    result = parse(source)
    assert result.success, result.errors
    assert len(result.ast.body) == 1
    return result.ast.body[0]


def _body_expr(source):
    """First body expression of a single read-only function."""
    func = _only(f"(define-read-only (f) {source})")
    return func.body[0]


class TestDefinitions:

    def test_owner_constant(self):
        stmt = _only(OWNER_CONSTANT_SOURCE)
        assert isinstance(stmt, A.ConstantDef)
        assert stmt.name == "contract-owner"
        assert isinstance(stmt.value, A.Identifier)
        assert stmt.value.name == "tx-sender"

    def test_function_signature(self):
        stmt = _only("(define-public (transfer (amount uint) (to principal)) (ok true))")
        assert isinstance(stmt, A.FunctionDef)
        assert stmt.visibility is A.Visibility.PUBLIC
        assert stmt.is_public
        assert [p.name for p in stmt.params] == ["amount", "to"]
        assert [str(p.type) for p in stmt.params] == ["uint", "principal"]
        assert len(stmt.body) == 1

    @pytest.mark.parametrize("keyword,visibility", [
        ("define-public", A.Visibility.PUBLIC),
        ("define-private", A.Visibility.PRIVATE),
        ("define-read-only", A.Visibility.READ_ONLY),
    ])
    def test_visibility_from_keyword(self, keyword, visibility):
        stmt = _only(f"({keyword} (f) u1)")
        assert stmt.visibility is visibility

    def test_map_with_tuple_types(self):
        stmt = _only("(define-map orders {id: uint} (tuple (owner principal) (qty uint)))")
        assert isinstance(stmt, A.MapDef)
        assert stmt.key_type.name == "tuple"
        assert [k for k, _ in stmt.key_type.fields] == ["id"]
        assert [k for k, _ in stmt.value_type.fields] == ["owner", "qty"]

    def test_data_var_with_compound_type(self):
        stmt = _only("(define-data-var memo (string-ascii 34) \"\")")
        assert isinstance(stmt, A.DataVarDef)
        assert stmt.var_type.pretty() == "(string-ascii 34)"
        assert isinstance(stmt.initial_value, A.StringLiteral)

    def test_tokens(self):
        result = parse("(define-fungible-token gold u1000)\n(define-non-fungible-token badge uint)")
        ft, nft = result.ast.body
        assert isinstance(ft, A.FungibleTokenDef)
        assert isinstance(ft.supply, A.UIntLiteral)
        assert isinstance(nft, A.NonFungibleTokenDef)
        assert nft.asset_type.name == "uint"

    def test_fungible_token_without_supply(self):
        stmt = _only("(define-fungible-token gold)")
        assert stmt.supply is None

    def test_trait_definition(self):
        stmt = _only(
            "(define-trait sip-010 ("
            "(transfer (uint principal) (response bool uint))"
            "(get-name () (response (string-ascii 32) uint))))"
        )
        assert isinstance(stmt, A.TraitDef)
        assert [f.name for f in stmt.functions] == ["transfer", "get-name"]
        assert len(stmt.functions[0].arg_types) == 2
        assert stmt.functions[1].arg_types == ()
        assert stmt.functions[0].return_type.name == "response"

    def test_use_and_impl_trait(self):
        result = parse(
            "(use-trait ft-trait 'SP000.sip-010.sip-010-trait)\n"
            "(impl-trait .sip-010.sip-010-trait)"
        )
        assert result.success, result.errors
        use, impl = result.ast.body
        assert isinstance(use, A.UseTrait)
        assert use.alias == "ft-trait"
        assert use.trait_ref.address == "SP000"
        assert isinstance(impl, A.ImplTrait)
        assert impl.trait_ref.address == ""
        assert impl.trait_ref.contract_name == "sip-010.sip-010-trait"

    def test_trait_parameter_type(self):
        stmt = _only("(define-public (pay (token <ft-trait>)) (ok true))")
        assert stmt.params[0].type.name == "<ft-trait>"

    def test_token_contract_statement_kinds(self):
        result = parse(TOKEN_SOURCE)
        assert result.success
        kinds = [type(s).__name__ for s in result.ast.body]
        assert kinds == [
            "FungibleTokenDef", "ConstantDef", "ConstantDef", "DataVarDef",
            "MapDef", "FunctionDef", "FunctionDef", "FunctionDef",
            "FunctionDef", "FunctionDef",
        ]


class TestExpressions:

    def test_literals(self):
        func = _only("(define-read-only (f) u1 -2 true \"s\" u\"t\" 0x0a 'SP000)")
        kinds = [type(e) for e in func.body]
        assert kinds == [
            A.UIntLiteral, A.IntLiteral, A.BoolLiteral, A.StringLiteral,
            A.StringLiteral, A.BufferLiteral, A.PrincipalLiteral,
        ]
        assert func.body[4].encoding is A.StringEncoding.UTF8
        assert func.body[5].size == 1

    def test_function_call(self):
        expr = _body_expr("(+ u1 u2)")
        assert isinstance(expr, A.FunctionCall)
        assert expr.name == "+"
        assert len(expr.args) == 2

    def test_dotted_call_name(self):
        expr = _body_expr("(token.transfer u1)")
        assert expr.name == "token.transfer"

    def test_contract_call_with_relative_principal(self):
        expr = _body_expr("(contract-call? .oracle refresh u1)")
        target = expr.args[0]
        assert isinstance(target, A.PrincipalLiteral)
        assert target.contract_name == "oracle"
        assert target.is_contract

    def test_let(self):
        expr = _body_expr("(let ((a u1) (b (+ a u1))) b)")
        assert isinstance(expr, A.LetExpr)
        assert [b.name for b in expr.bindings] == ["a", "b"]
        assert len(expr.body) == 1

    def test_if_without_else(self):
        expr = _body_expr("(if true u1)")
        assert isinstance(expr, A.IfExpr)
        assert expr.else_branch is None

    def test_begin_list_and_tuple(self):
        func = _only("(define-read-only (f) (begin u1 u2) (list u1 u2 u3) (tuple (a u1) (b u2)))")
        begin, lst, tup = func.body
        assert isinstance(begin, A.BeginExpr) and len(begin.body) == 2
        assert isinstance(lst, A.ListLiteral) and len(lst.elements) == 3
        assert isinstance(tup, A.TupleLiteral)
        assert [f.name for f in tup.fields] == ["a", "b"]

    def test_brace_tuple(self):
        expr = _body_expr("{a: u1, b: true}")
        assert isinstance(expr, A.TupleLiteral)
        assert [f.name for f in expr.fields] == ["a", "b"]


class TestMatch:

    def test_response_match_with_wrapper_patterns(self):
        expr = _body_expr("(match (some u1) (ok v) v (err e) u0)")
        assert isinstance(expr, A.MatchExpr)
        ok_arm, err_arm = expr.arms
        assert isinstance(ok_arm.pattern, A.WrapperPattern)
        assert ok_arm.pattern.kind == "ok"
        assert ok_arm.bound_names() == ("v",)
        assert err_arm.bound_names() == ("e",)

    def test_optional_match_final_arm_has_none_pattern(self):
        expr = _body_expr("(match (some u1) value (ok value) (err u1))")
        first, last = expr.arms
        assert isinstance(first.pattern, A.IdentifierPattern)
        assert first.pattern.name == "value"
        assert isinstance(last.pattern, A.NonePattern)
        assert isinstance(last.body[0], A.FunctionCall)
        assert last.body[0].name == "err"


class TestNodeIds:

    def test_ids_unique(self):
        program = parse(TOKEN_SOURCE).ast
        ids = [n.node_id for n in walk(program)]
        assert len(ids) == len(set(ids))
        assert all(i >= 0 for i in ids)

    def test_program_created_last(self):
        program = parse(TOKEN_SOURCE).ast
        assert program.node_id == max(n.node_id for n in walk(program))

    def test_parse_is_deterministic(self):
        first = parse(TOKEN_SOURCE).ast
        second = parse(TOKEN_SOURCE).ast
        assert first == second
        assert [n.node_id for n in walk(first)] == [n.node_id for n in walk(second)]


class TestErrorRecovery:

    def test_missing_paren(self):
        result = parse(MISSING_PAREN_SOURCE)
        assert not result.success
        assert result.errors
        assert result.ast is not None

    def test_missing_paren_reports_unterminated_form(self):
        codes = {e.code for e in parse(MISSING_PAREN_SOURCE).errors}
        assert "unterminated-form" in codes

    def test_definition_inside_expression_resumes_at_definition(self):
        source = (
            "(define-constant a u1)\n"
            "(define-constant b (+ u1\n"
            "(define-constant c u3)\n"
        )
        result = parse(source)
        names = [s.name for s in result.ast.body]
        assert names == ["a", "c"]
        assert [e.code for e in result.errors] == ["unterminated-form"]

    def test_function_cut_short_is_kept(self):
        result = parse("(define-public (f) (ok u1)\n(define-public (g) (ok u2))")
        assert [s.name for s in result.ast.body] == ["f", "g"]
        assert [e.code for e in result.errors] == ["unterminated-form"]
        f = result.ast.body[0]
        assert isinstance(f, A.FunctionDef)
        assert f.visibility is A.Visibility.PUBLIC
        assert [c.name for c in f.body] == ["ok"]
        assert f.span.end.line == 1

    def test_deep_nesting_is_reported(self):
        depth = 500
        source = "(define-constant x " + "(+ u1 " * depth + "u1" + ")" * depth + ")"
        result = parse(source)
        assert result.ast is not None
        assert [s.name for s in result.ast.body] == ["x"]
        assert [e.code for e in result.errors] == ["parse-error"]
        assert "nested too deeply" in result.errors[0].message

    def test_nesting_at_limit_is_accepted(self):
        depth = MAX_NESTING_DEPTH
        source = "(define-constant x " + "(+ u1 " * depth + "u1" + ")" * depth + ")"
        assert parse(source).success

    def test_deep_tuple_nesting_is_reported(self):
        depth = 400
        source = "(define-constant x " + "{a: " * depth + "u1" + "}" * depth + ")"
        result = parse(source)
        assert [s.name for s in result.ast.body] == ["x"]
        assert [e.code for e in result.errors] == ["parse-error"]

    def test_unknown_top_level_form(self):
        result = parse("(frobnicate x)\n(define-constant a u1)")
        assert [e.code for e in result.errors] == ["unknown-definition"]
        assert [s.name for s in result.ast.body] == ["a"]

    def test_stray_atom_at_top_level(self):
        result = parse("u1\n(define-constant a u1)")
        assert result.errors[0].code == "unexpected-token"
        assert [s.name for s in result.ast.body] == ["a"]

    def test_empty_expression(self):
        result = parse("(define-read-only (f) ())")
        assert not result.success
        func = result.ast.body[0]
        assert isinstance(func.body[0], A.Identifier)
        assert func.body[0].name == PLACEHOLDER

    def test_errors_carry_locations(self):
        result = parse("(define-constant a u1)\n(oops)")
        err = result.errors[0]
        assert err.location.line == 2
        assert err.phase.value == "parse"

    @pytest.mark.parametrize("source", [
        ")", "(((", "(define-public", "(define-map m", "{a:", "(let ((x", "(match",
        "(define-trait t ((f (uint",
    ])
    def test_any_input_terminates(self, source):
        result = Parser().parse(source)
        assert result.ast is not None
        assert not result.success

    def test_parser_reuse_resets_state(self):
        parser = Parser()
        bad = parser.parse(MISSING_PAREN_SOURCE)
        good = parser.parse(OWNER_CONSTANT_SOURCE)
        assert bad.errors
        assert good.success
        assert good.ast.body[0].value.node_id == 0
