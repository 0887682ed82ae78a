"""
clarity_audit/types.py
══════════════════════

Approximate Clarity value types used by the semantic analyzer.

Inference is deliberately shallow: literal kinds are exact, the common
builtins have fixed result kinds, and everything the analyzer cannot
place falls back to ``uint``.  The types exist to drive usage and effect
facts and the ``type-mismatch`` warnings, not to prove programs sound.

Compound kinds encode their structure in ``children``:

  - LIST:     children[0] = element type
  - OPTIONAL: children[0] = wrapped type
  - RESPONSE: children[0] = ok type; children[1] = err type
  - TUPLE:    fields = ((name, type), ...) in declaration order
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from clarity_audit.ast import TypeSpec


class TypeKind(Enum):
    """Discriminant for Clarity value types."""

    UINT = "uint"
    INT = "int"
    BOOL = "bool"
    PRINCIPAL = "principal"
    BUFF = "buff"
    STRING_ASCII = "string-ascii"
    STRING_UTF8 = "string-utf8"
    LIST = "list"
    OPTIONAL = "optional"
    RESPONSE = "response"
    TUPLE = "tuple"
    TRAIT = "trait"
    NONE = "none"


@dataclass(frozen=True)
class ClarityType:
    kind: TypeKind
    children: Tuple["ClarityType", ...] = ()
    fields: Tuple[Tuple[str, "ClarityType"], ...] = ()
    size: Optional[int] = None
    name: str = ""  # trait reference for TRAIT

    # ── Factory methods ──────────────────────────────────────────────

    @classmethod
    def uint(cls) -> "ClarityType":
        return cls(TypeKind.UINT)

    @classmethod
    def int_type(cls) -> "ClarityType":
        return cls(TypeKind.INT)

    @classmethod
    def bool_type(cls) -> "ClarityType":
        return cls(TypeKind.BOOL)

    @classmethod
    def principal(cls) -> "ClarityType":
        return cls(TypeKind.PRINCIPAL)

    @classmethod
    def buff(cls, size: Optional[int] = None) -> "ClarityType":
        return cls(TypeKind.BUFF, size=size)

    @classmethod
    def string(cls, utf8: bool = False, size: Optional[int] = None) -> "ClarityType":
        return cls(TypeKind.STRING_UTF8 if utf8 else TypeKind.STRING_ASCII, size=size)

    @classmethod
    def list_of(cls, element: "ClarityType", size: Optional[int] = None) -> "ClarityType":
        return cls(TypeKind.LIST, (element,), size=size)

    @classmethod
    def optional(cls, inner: "ClarityType") -> "ClarityType":
        return cls(TypeKind.OPTIONAL, (inner,))

    @classmethod
    def response(cls, ok: "ClarityType", err: "ClarityType") -> "ClarityType":
        return cls(TypeKind.RESPONSE, (ok, err))

    @classmethod
    def tuple_of(cls, fields: Tuple[Tuple[str, "ClarityType"], ...]) -> "ClarityType":
        return cls(TypeKind.TUPLE, fields=fields)

    @classmethod
    def none(cls) -> "ClarityType":
        return cls(TypeKind.NONE)

    # ── Queries ──────────────────────────────────────────────────────

    @property
    def element(self) -> Optional["ClarityType"]:
        if self.kind in (TypeKind.LIST, TypeKind.OPTIONAL) and self.children:
            return self.children[0]
        return None

    @property
    def ok_type(self) -> Optional["ClarityType"]:
        return self.children[0] if self.kind is TypeKind.RESPONSE else None

    @property
    def err_type(self) -> Optional["ClarityType"]:
        return self.children[1] if self.kind is TypeKind.RESPONSE else None

    def compatible_with(self, other: "ClarityType") -> bool:
        """Kind-level compatibility; ``none`` fits any optional."""
        if self.kind is other.kind:
            return True
        pair = {self.kind, other.kind}
        return pair == {TypeKind.NONE, TypeKind.OPTIONAL}

    def __str__(self) -> str:
        return _type_to_str(self)


def _type_to_str(t: ClarityType, depth: int = 0) -> str:
    if depth > 20:
        return "..."
    k = t.kind
    if k in (TypeKind.LIST, TypeKind.OPTIONAL):
        inner = _type_to_str(t.children[0], depth + 1) if t.children else "?"
        if k is TypeKind.LIST and t.size is not None:
            return f"(list {t.size} {inner})"
        return f"({k.value} {inner})"
    if k is TypeKind.RESPONSE:
        ok = _type_to_str(t.children[0], depth + 1)
        err = _type_to_str(t.children[1], depth + 1)
        return f"(response {ok} {err})"
    if k is TypeKind.TUPLE:
        inner = ", ".join(f"{n}: {_type_to_str(f, depth + 1)}" for n, f in t.fields)
        return "{" + inner + "}"
    if k in (TypeKind.BUFF, TypeKind.STRING_ASCII, TypeKind.STRING_UTF8) and t.size is not None:
        return f"({k.value} {t.size})"
    if k is TypeKind.TRAIT:
        return t.name or "<trait>"
    return k.value


_SIMPLE = {
    "uint": TypeKind.UINT,
    "int": TypeKind.INT,
    "bool": TypeKind.BOOL,
    "principal": TypeKind.PRINCIPAL,
}


def type_from_spec(spec: TypeSpec) -> ClarityType:
    """Convert a declared ``TypeSpec`` into a ``ClarityType``.

    Unknown heads (including the parser's error placeholder) map to
    ``uint``, matching the inference fallback.
    """
    name = spec.name
    if name in _SIMPLE:
        return ClarityType(_SIMPLE[name])
    if name.startswith("<") and name.endswith(">"):
        return ClarityType(TypeKind.TRAIT, name=name)
    if name == "tuple":
        return ClarityType.tuple_of(tuple((k, type_from_spec(v)) for k, v in spec.fields))

    sizes = [p for p in spec.params if isinstance(p, int)]
    inner = [p for p in spec.params if isinstance(p, TypeSpec)]
    size = sizes[0] if sizes else None
    if name == "buff":
        return ClarityType.buff(size)
    if name in ("string-ascii", "string-utf8"):
        return ClarityType.string(utf8=name == "string-utf8", size=size)
    if name == "list" and inner:
        return ClarityType.list_of(type_from_spec(inner[0]), size)
    if name == "optional" and inner:
        return ClarityType.optional(type_from_spec(inner[0]))
    if name == "response" and len(inner) >= 2:
        return ClarityType.response(type_from_spec(inner[0]), type_from_spec(inner[1]))
    return ClarityType.uint()
