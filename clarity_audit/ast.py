"""clarity_audit/ast.py – AST definitions for Clarity contracts.

Clarity is a Lisp-like smart-contract language: a contract is a sequence of
parenthesised top-level ``define-*`` forms whose bodies are expressions.
This module defines the *abstract* syntax – a tree of frozen dataclasses
that the parser produces and the semantic / static analyzers consume.

Design invariants
-----------------
* Every AST node is a frozen dataclass (immutable after construction).
* Nodes that carry children use tuples, never lists.
* Every node records its source range (``SourceRange``) for diagnostics.
* Every node carries a ``node_id`` assigned by the parser in creation
  order.  Analysis results live in side tables keyed by this id; the id
  takes no part in equality so that two parses of the same text compare
  equal.
* The node families are closed: ``Statement`` and ``Expression`` are
  unions of the concrete classes below, and each class names the visitor
  method it dispatches to (see :mod:`clarity_audit.visitor`).

Module layout
-------------
§1  Source locations
§2  Type annotations
§3  Expressions, literals and match patterns
§4  Top-level statements
§5  Program
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Optional, Tuple, Union

# ════════════════════════════════════════════════════════════════════════
# §1  Source locations
# ════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class SourceLocation:
    """A point in contract source text.

    ``line`` and ``column`` are 1-based, ``offset`` is the 0-based index
    into the source string.
    """

    line: int = 0
    column: int = 0
    offset: int = 0

    def __str__(self) -> str:
        return f"{self.line}:{self.column}"

    def to_dict(self) -> dict:
        return {"line": self.line, "column": self.column, "offset": self.offset}


#: Sentinel for positions that do not come from source text.
NO_LOC = SourceLocation()


@dataclass(frozen=True, slots=True)
class SourceRange:
    """Start/end pair covering a node's source text."""

    start: SourceLocation = NO_LOC
    end: SourceLocation = NO_LOC

    def __str__(self) -> str:
        return f"{self.start}-{self.end}"


NO_RANGE = SourceRange()


class Node:
    """Common behaviour of every AST node.

    Subclasses are frozen dataclasses declaring ``span`` and ``node_id``
    as their last two fields.
    """

    __slots__ = ()

    #: Name of the visitor method this node dispatches to.
    visit_name: ClassVar[str] = "node"

    def accept(self, visitor: Any) -> Any:
        return getattr(visitor, "visit_" + self.visit_name)(self)

    def children(self) -> Tuple["Node", ...]:
        return ()

    @property
    def location(self) -> SourceLocation:
        return self.span.start  # type: ignore[attr-defined]


# ════════════════════════════════════════════════════════════════════════
# §2  Type annotations
# ════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class TypeSpec:
    """A declared Clarity type, as written in source.

    ``name`` is the head (``uint``, ``buff``, ``list``, ``tuple``, a trait
    reference ``<my-trait>``, ...).  ``params`` holds length bounds and
    element types in source order; ``fields`` holds tuple members.
    """

    name: str
    params: Tuple[Union[int, "TypeSpec"], ...] = ()
    fields: Tuple[Tuple[str, "TypeSpec"], ...] = ()
    span: SourceRange = field(default=NO_RANGE, repr=False)

    def pretty(self) -> str:
        if self.name == "tuple":
            inner = ", ".join(f"{k}: {t.pretty()}" for k, t in self.fields)
            return "{" + inner + "}"
        if not self.params:
            return self.name
        args = " ".join(
            p.pretty() if isinstance(p, TypeSpec) else str(p) for p in self.params
        )
        return f"({self.name} {args})"

    def __str__(self) -> str:
        return self.pretty()


# ════════════════════════════════════════════════════════════════════════
# §3  Expressions
# ════════════════════════════════════════════════════════════════════════


class StringEncoding(Enum):
    ASCII = "ascii"
    UTF8 = "utf8"


# --- Literals ------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class UIntLiteral(Node):
    value: int
    span: SourceRange = field(default=NO_RANGE, repr=False)
    node_id: int = field(default=-1, compare=False, repr=False)

    visit_name: ClassVar[str] = "uint_literal"


@dataclass(frozen=True, slots=True)
class IntLiteral(Node):
    value: int
    span: SourceRange = field(default=NO_RANGE, repr=False)
    node_id: int = field(default=-1, compare=False, repr=False)

    visit_name: ClassVar[str] = "int_literal"


@dataclass(frozen=True, slots=True)
class BoolLiteral(Node):
    value: bool
    span: SourceRange = field(default=NO_RANGE, repr=False)
    node_id: int = field(default=-1, compare=False, repr=False)

    visit_name: ClassVar[str] = "bool_literal"


@dataclass(frozen=True, slots=True)
class StringLiteral(Node):
    value: str
    encoding: StringEncoding = StringEncoding.ASCII
    span: SourceRange = field(default=NO_RANGE, repr=False)
    node_id: int = field(default=-1, compare=False, repr=False)

    visit_name: ClassVar[str] = "string_literal"


@dataclass(frozen=True, slots=True)
class BufferLiteral(Node):
    """``0x``-prefixed byte buffer; ``hex`` excludes the prefix."""

    hex: str
    span: SourceRange = field(default=NO_RANGE, repr=False)
    node_id: int = field(default=-1, compare=False, repr=False)

    visit_name: ClassVar[str] = "buffer_literal"

    @property
    def size(self) -> int:
        return (len(self.hex) + 1) // 2


@dataclass(frozen=True, slots=True)
class PrincipalLiteral(Node):
    """A standard (``'SP...``) or contract (``'SP....name`` / ``.name``)
    principal.  ``address`` is empty for the deployer-relative form."""

    address: str
    contract_name: Optional[str] = None
    span: SourceRange = field(default=NO_RANGE, repr=False)
    node_id: int = field(default=-1, compare=False, repr=False)

    visit_name: ClassVar[str] = "principal_literal"

    @property
    def is_contract(self) -> bool:
        return self.contract_name is not None

    def __str__(self) -> str:
        if self.contract_name is None:
            return f"'{self.address}"
        return f"'{self.address}.{self.contract_name}"


Literal = Union[
    UIntLiteral, IntLiteral, BoolLiteral, StringLiteral, BufferLiteral,
    PrincipalLiteral,
]


# --- Identifiers and compound expressions --------------------------------

@dataclass(frozen=True, slots=True)
class Identifier(Node):
    name: str
    span: SourceRange = field(default=NO_RANGE, repr=False)
    node_id: int = field(default=-1, compare=False, repr=False)

    visit_name: ClassVar[str] = "identifier"

    @property
    def is_dotted(self) -> bool:
        return "." in self.name


@dataclass(frozen=True, slots=True)
class FunctionCall(Node):
    """``(name arg...)``.  ``name`` is the callee as written, which may be
    a builtin, a user function or a dotted contract reference."""

    name: str
    args: Tuple["Expression", ...] = ()
    span: SourceRange = field(default=NO_RANGE, repr=False)
    node_id: int = field(default=-1, compare=False, repr=False)

    visit_name: ClassVar[str] = "function_call"

    def children(self) -> Tuple[Node, ...]:
        return self.args


@dataclass(frozen=True, slots=True)
class LetBinding(Node):
    name: str
    value: "Expression"
    span: SourceRange = field(default=NO_RANGE, repr=False)
    node_id: int = field(default=-1, compare=False, repr=False)

    visit_name: ClassVar[str] = "let_binding"

    def children(self) -> Tuple[Node, ...]:
        return (self.value,)


@dataclass(frozen=True, slots=True)
class LetExpr(Node):
    bindings: Tuple[LetBinding, ...]
    body: Tuple["Expression", ...]
    span: SourceRange = field(default=NO_RANGE, repr=False)
    node_id: int = field(default=-1, compare=False, repr=False)

    visit_name: ClassVar[str] = "let_expr"

    def children(self) -> Tuple[Node, ...]:
        return self.bindings + self.body


@dataclass(frozen=True, slots=True)
class BeginExpr(Node):
    body: Tuple["Expression", ...]
    span: SourceRange = field(default=NO_RANGE, repr=False)
    node_id: int = field(default=-1, compare=False, repr=False)

    visit_name: ClassVar[str] = "begin_expr"

    def children(self) -> Tuple[Node, ...]:
        return self.body


@dataclass(frozen=True, slots=True)
class IfExpr(Node):
    condition: "Expression"
    then_branch: "Expression"
    else_branch: Optional["Expression"] = None
    span: SourceRange = field(default=NO_RANGE, repr=False)
    node_id: int = field(default=-1, compare=False, repr=False)

    visit_name: ClassVar[str] = "if_expr"

    def children(self) -> Tuple[Node, ...]:
        if self.else_branch is None:
            return (self.condition, self.then_branch)
        return (self.condition, self.then_branch, self.else_branch)


# --- Match patterns ------------------------------------------------------

@dataclass(frozen=True, slots=True)
class WrapperPattern(Node):
    """``(ok p)``, ``(err p)`` or ``(some p)``."""

    kind: str
    inner: Optional["Pattern"] = None
    span: SourceRange = field(default=NO_RANGE, repr=False)
    node_id: int = field(default=-1, compare=False, repr=False)

    visit_name: ClassVar[str] = "wrapper_pattern"

    def children(self) -> Tuple[Node, ...]:
        return () if self.inner is None else (self.inner,)


@dataclass(frozen=True, slots=True)
class NonePattern(Node):
    span: SourceRange = field(default=NO_RANGE, repr=False)
    node_id: int = field(default=-1, compare=False, repr=False)

    visit_name: ClassVar[str] = "none_pattern"


@dataclass(frozen=True, slots=True)
class IdentifierPattern(Node):
    name: str
    span: SourceRange = field(default=NO_RANGE, repr=False)
    node_id: int = field(default=-1, compare=False, repr=False)

    visit_name: ClassVar[str] = "identifier_pattern"


@dataclass(frozen=True, slots=True)
class LiteralPattern(Node):
    literal: Literal
    span: SourceRange = field(default=NO_RANGE, repr=False)
    node_id: int = field(default=-1, compare=False, repr=False)

    visit_name: ClassVar[str] = "literal_pattern"

    def children(self) -> Tuple[Node, ...]:
        return (self.literal,)


Pattern = Union[WrapperPattern, NonePattern, IdentifierPattern, LiteralPattern]


@dataclass(frozen=True, slots=True)
class MatchArm(Node):
    pattern: Pattern
    body: Tuple["Expression", ...]
    span: SourceRange = field(default=NO_RANGE, repr=False)
    node_id: int = field(default=-1, compare=False, repr=False)

    visit_name: ClassVar[str] = "match_arm"

    def children(self) -> Tuple[Node, ...]:
        return (self.pattern,) + self.body

    def bound_names(self) -> Tuple[str, ...]:
        """Names introduced by the pattern, outermost first."""
        names = []
        pat: Optional[Pattern] = self.pattern
        while pat is not None:
            if isinstance(pat, IdentifierPattern):
                names.append(pat.name)
                break
            pat = pat.inner if isinstance(pat, WrapperPattern) else None
        return tuple(names)


@dataclass(frozen=True, slots=True)
class MatchExpr(Node):
    subject: "Expression"
    arms: Tuple[MatchArm, ...]
    span: SourceRange = field(default=NO_RANGE, repr=False)
    node_id: int = field(default=-1, compare=False, repr=False)

    visit_name: ClassVar[str] = "match_expr"

    def children(self) -> Tuple[Node, ...]:
        return (self.subject,) + self.arms


@dataclass(frozen=True, slots=True)
class ListLiteral(Node):
    elements: Tuple["Expression", ...]
    span: SourceRange = field(default=NO_RANGE, repr=False)
    node_id: int = field(default=-1, compare=False, repr=False)

    visit_name: ClassVar[str] = "list_literal"

    def children(self) -> Tuple[Node, ...]:
        return self.elements


@dataclass(frozen=True, slots=True)
class TupleField(Node):
    name: str
    value: "Expression"
    span: SourceRange = field(default=NO_RANGE, repr=False)
    node_id: int = field(default=-1, compare=False, repr=False)

    visit_name: ClassVar[str] = "tuple_field"

    def children(self) -> Tuple[Node, ...]:
        return (self.value,)


@dataclass(frozen=True, slots=True)
class TupleLiteral(Node):
    fields: Tuple[TupleField, ...]
    span: SourceRange = field(default=NO_RANGE, repr=False)
    node_id: int = field(default=-1, compare=False, repr=False)

    visit_name: ClassVar[str] = "tuple_literal"

    def children(self) -> Tuple[Node, ...]:
        return self.fields


Expression = Union[
    FunctionCall, LetExpr, BeginExpr, IfExpr, MatchExpr, ListLiteral,
    TupleLiteral, Identifier, UIntLiteral, IntLiteral, BoolLiteral,
    StringLiteral, BufferLiteral, PrincipalLiteral,
]

LITERAL_TYPES = (
    UIntLiteral, IntLiteral, BoolLiteral, StringLiteral, BufferLiteral,
    PrincipalLiteral,
)


# ════════════════════════════════════════════════════════════════════════
# §4  Top-level statements
# ════════════════════════════════════════════════════════════════════════


class Visibility(Enum):
    PUBLIC = "public"
    PRIVATE = "private"
    READ_ONLY = "read-only"

    @classmethod
    def from_keyword(cls, keyword: str) -> "Visibility":
        """``define-public`` → ``PUBLIC`` and so on."""
        return cls(keyword[len("define-"):])


@dataclass(frozen=True, slots=True)
class Parameter:
    name: str
    type: TypeSpec
    span: SourceRange = field(default=NO_RANGE, repr=False)


@dataclass(frozen=True, slots=True)
class FunctionDef(Node):
    name: str
    visibility: Visibility
    params: Tuple[Parameter, ...]
    body: Tuple[Expression, ...]
    span: SourceRange = field(default=NO_RANGE, repr=False)
    node_id: int = field(default=-1, compare=False, repr=False)

    visit_name: ClassVar[str] = "function_def"

    def children(self) -> Tuple[Node, ...]:
        return self.body

    @property
    def is_public(self) -> bool:
        return self.visibility is Visibility.PUBLIC


@dataclass(frozen=True, slots=True)
class ConstantDef(Node):
    name: str
    value: Expression
    span: SourceRange = field(default=NO_RANGE, repr=False)
    node_id: int = field(default=-1, compare=False, repr=False)

    visit_name: ClassVar[str] = "constant_def"

    def children(self) -> Tuple[Node, ...]:
        return (self.value,)


@dataclass(frozen=True, slots=True)
class MapDef(Node):
    name: str
    key_type: TypeSpec
    value_type: TypeSpec
    span: SourceRange = field(default=NO_RANGE, repr=False)
    node_id: int = field(default=-1, compare=False, repr=False)

    visit_name: ClassVar[str] = "map_def"


@dataclass(frozen=True, slots=True)
class DataVarDef(Node):
    name: str
    var_type: TypeSpec
    initial_value: Expression
    span: SourceRange = field(default=NO_RANGE, repr=False)
    node_id: int = field(default=-1, compare=False, repr=False)

    visit_name: ClassVar[str] = "data_var_def"

    def children(self) -> Tuple[Node, ...]:
        return (self.initial_value,)


@dataclass(frozen=True, slots=True)
class NonFungibleTokenDef(Node):
    name: str
    asset_type: TypeSpec
    span: SourceRange = field(default=NO_RANGE, repr=False)
    node_id: int = field(default=-1, compare=False, repr=False)

    visit_name: ClassVar[str] = "nft_def"


@dataclass(frozen=True, slots=True)
class FungibleTokenDef(Node):
    name: str
    supply: Optional[Expression] = None
    span: SourceRange = field(default=NO_RANGE, repr=False)
    node_id: int = field(default=-1, compare=False, repr=False)

    visit_name: ClassVar[str] = "ft_def"

    def children(self) -> Tuple[Node, ...]:
        return () if self.supply is None else (self.supply,)


@dataclass(frozen=True, slots=True)
class TraitFunctionSig:
    """One ``(name (arg-types...) return-type)`` entry of a trait."""

    name: str
    arg_types: Tuple[TypeSpec, ...]
    return_type: TypeSpec
    span: SourceRange = field(default=NO_RANGE, repr=False)


@dataclass(frozen=True, slots=True)
class TraitDef(Node):
    name: str
    functions: Tuple[TraitFunctionSig, ...]
    span: SourceRange = field(default=NO_RANGE, repr=False)
    node_id: int = field(default=-1, compare=False, repr=False)

    visit_name: ClassVar[str] = "trait_def"


@dataclass(frozen=True, slots=True)
class UseTrait(Node):
    alias: str
    trait_ref: Expression
    span: SourceRange = field(default=NO_RANGE, repr=False)
    node_id: int = field(default=-1, compare=False, repr=False)

    visit_name: ClassVar[str] = "use_trait"


@dataclass(frozen=True, slots=True)
class ImplTrait(Node):
    trait_ref: Expression
    span: SourceRange = field(default=NO_RANGE, repr=False)
    node_id: int = field(default=-1, compare=False, repr=False)

    visit_name: ClassVar[str] = "impl_trait"


Statement = Union[
    FunctionDef, ConstantDef, MapDef, DataVarDef, NonFungibleTokenDef,
    FungibleTokenDef, TraitDef, UseTrait, ImplTrait,
]

#: Statements that introduce a name into the type environment.
NAMED_DEFINITIONS = (
    FunctionDef, ConstantDef, MapDef, DataVarDef, NonFungibleTokenDef,
    FungibleTokenDef, TraitDef,
)


# ════════════════════════════════════════════════════════════════════════
# §5  Program
# ════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Program(Node):
    """Root of one parsed contract."""

    body: Tuple[Statement, ...]
    span: SourceRange = field(default=NO_RANGE, repr=False)
    node_id: int = field(default=-1, compare=False, repr=False)

    visit_name: ClassVar[str] = "program"

    def children(self) -> Tuple[Node, ...]:
        return self.body

    def functions(self) -> Tuple[FunctionDef, ...]:
        return tuple(s for s in self.body if isinstance(s, FunctionDef))

    def find_definition(self, cls: type, name: str) -> Optional[Statement]:
        """First top-level statement of type *cls* named *name*."""
        for stmt in self.body:
            if isinstance(stmt, cls) and getattr(stmt, "name", None) == name:
                return stmt
        return None
