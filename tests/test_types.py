# tests/test_types.py
"""
Tests for ClarityType construction, rendering, compatibility and the
conversion from declared TypeSpec annotations.
"""

import pytest

from clarity_audit.ast import TypeSpec
from clarity_audit.parser import parse
from clarity_audit.types import ClarityType, TypeKind, type_from_spec


def _declared(type_text):
    """Convert the declared type of a data var into a ClarityType."""
    stmt = parse(f"(define-data-var v {type_text} u0)").ast.body[0]
    return type_from_spec(stmt.var_type)


class TestFactories:

    def test_simple_kinds(self):
        assert ClarityType.uint().kind is TypeKind.UINT
        assert ClarityType.int_type().kind is TypeKind.INT
        assert ClarityType.bool_type().kind is TypeKind.BOOL
        assert ClarityType.principal().kind is TypeKind.PRINCIPAL
        assert ClarityType.none().kind is TypeKind.NONE

    def test_response_accessors(self):
        resp = ClarityType.response(ClarityType.bool_type(), ClarityType.uint())
        assert resp.ok_type == ClarityType.bool_type()
        assert resp.err_type == ClarityType.uint()
        assert resp.element is None

    def test_optional_and_list_element(self):
        assert ClarityType.optional(ClarityType.int_type()).element == ClarityType.int_type()
        assert ClarityType.list_of(ClarityType.bool_type(), 5).element == ClarityType.bool_type()

    def test_non_response_has_no_ok_type(self):
        assert ClarityType.uint().ok_type is None
        assert ClarityType.uint().err_type is None


class TestRendering:

    @pytest.mark.parametrize("ctype,text", [
        (ClarityType.uint(), "uint"),
        (ClarityType.list_of(ClarityType.uint(), 10), "(list 10 uint)"),
        (ClarityType.optional(ClarityType.principal()), "(optional principal)"),
        (ClarityType.response(ClarityType.bool_type(), ClarityType.uint()), "(response bool uint)"),
        (ClarityType.buff(32), "(buff 32)"),
        (ClarityType.string(utf8=True, size=8), "(string-utf8 8)"),
        (ClarityType.tuple_of((("a", ClarityType.uint()),)), "{a: uint}"),
    ])
    def test_str(self, ctype, text):
        assert str(ctype) == text


class TestCompatibility:

    def test_same_kind(self):
        assert ClarityType.buff(1).compatible_with(ClarityType.buff(32))

    def test_different_kind(self):
        assert not ClarityType.uint().compatible_with(ClarityType.int_type())

    def test_none_fits_optional(self):
        opt = ClarityType.optional(ClarityType.uint())
        assert ClarityType.none().compatible_with(opt)
        assert opt.compatible_with(ClarityType.none())


class TestTypeFromSpec:

    def test_simple(self):
        assert _declared("uint") == ClarityType.uint()
        assert _declared("principal") == ClarityType.principal()

    def test_sized(self):
        assert _declared("(buff 20)") == ClarityType.buff(20)
        assert _declared("(string-ascii 34)") == ClarityType.string(False, 34)

    def test_nested(self):
        ctype = _declared("(list 5 (optional uint))")
        assert ctype.kind is TypeKind.LIST
        assert ctype.size == 5
        assert ctype.element == ClarityType.optional(ClarityType.uint())

    def test_response(self):
        ctype = _declared("(response bool uint)")
        assert ctype == ClarityType.response(ClarityType.bool_type(), ClarityType.uint())

    def test_tuple(self):
        ctype = _declared("{owner: principal, qty: uint}")
        assert ctype.kind is TypeKind.TUPLE
        assert [name for name, _ in ctype.fields] == ["owner", "qty"]

    def test_trait_reference(self):
        ctype = type_from_spec(TypeSpec("<sip-010-trait>"))
        assert ctype.kind is TypeKind.TRAIT
        assert str(ctype) == "<sip-010-trait>"

    def test_unknown_falls_back_to_uint(self):
        assert type_from_spec(TypeSpec("mystery")) == ClarityType.uint()
