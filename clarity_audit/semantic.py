"""
Clarity Semantic Analyzer

Performs semantic analysis on a parsed contract in four ordered passes:

1. Declaration collection - registers every top-level definition in the
   ``TypeEnvironment``; a second definition of a name is reported and the
   first one is kept
2. Expression analysis - resolves identifiers through lexical scopes,
   infers approximate types and records a ``CallInfo`` for every call
3. Usage analysis - unused private functions, constants, variables and
   maps, and write-only storage
4. Annotation - per-function summaries (``FunctionFacts``) with the
   inferred return type

The AST is never mutated.  Everything the analyzer learns lives in the
``SemanticFacts`` side tables, keyed by ``node_id``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Iterator, List, Optional, Set, Tuple

from clarity_audit import ast as A
from clarity_audit.errors import Diagnostic, DiagnosticCollector, ErrorCode, ErrorPhase
from clarity_audit.parser import PLACEHOLDER
from clarity_audit.types import ClarityType, TypeKind, type_from_spec
from clarity_audit.visitor import ExpressionVisitor, walk_body

logger = logging.getLogger(__name__)

# ============================================================================
# PART 1 — BUILTIN VOCABULARY
# ============================================================================

BUILTIN_GLOBALS: FrozenSet[str] = frozenset({
    "tx-sender", "contract-caller", "block-height", "burn-block-height",
    "stx-liquid-supply", "is-in-mainnet", "is-in-regtest", "chain-id",
    "none", "true", "false",
})

BUILTIN_FUNCTIONS: FrozenSet[str] = frozenset({
    # arithmetic / comparison / logic
    "+", "-", "*", "/", "mod", "pow", "sqrti", "log2",
    "<", "<=", ">", ">=", "is-eq", "and", "or", "not", "xor",
    "bit-and", "bit-or", "bit-xor", "bit-not", "bit-shift-left",
    "bit-shift-right",
    # responses and optionals
    "unwrap!", "unwrap-panic", "unwrap-err!", "unwrap-err-panic", "try!",
    "is-ok", "is-err", "is-some", "is-none", "ok", "err", "some",
    "default-to", "asserts!",
    # storage
    "map-get?", "map-set", "map-insert", "map-delete", "var-get", "var-set",
    # sequences and tuples
    "list", "append", "concat", "len", "element-at", "element-at?",
    "index-of", "index-of?", "filter", "map", "fold", "slice?",
    "replace-at?", "as-max-len?", "get", "merge", "tuple",
    # control
    "begin", "if", "let", "match", "print",
    # contract context
    "contract-call?", "as-contract", "contract-of", "get-block-info?",
    "at-block", "is-standard", "principal-destruct?",
    "principal-construct?", "principal-of?", "stx-account",
    # tokens
    "stx-get-balance", "stx-transfer?", "stx-transfer-memo?", "stx-burn?",
    "ft-mint?", "ft-transfer?", "ft-burn?", "ft-get-balance", "ft-get-supply",
    "nft-mint?", "nft-transfer?", "nft-burn?", "nft-get-owner?",
    # hashing and conversions
    "sha256", "sha512", "sha512/256", "keccak256", "hash160",
    "secp256k1-recover?", "secp256k1-verify",
    "to-int", "to-uint", "buff-to-int-le", "buff-to-uint-le",
    "buff-to-int-be", "buff-to-uint-be", "int-to-ascii", "int-to-utf8",
    "string-to-int?", "string-to-uint?", "to-consensus-buff?",
    "from-consensus-buff?",
})

FAILABLE_FUNCTIONS: FrozenSet[str] = frozenset({
    "unwrap!", "unwrap-panic", "unwrap-err!", "unwrap-err-panic",
    "asserts!", "stx-transfer?", "ft-transfer?", "nft-transfer?",
    "map-insert", "contract-call?",
})

STATE_WRITE_FUNCTIONS: FrozenSet[str] = frozenset({
    "var-set", "map-set", "map-insert", "map-delete",
})

TOKEN_TRANSFER_FUNCTIONS: FrozenSet[str] = frozenset({
    "stx-transfer?", "ft-transfer?", "nft-transfer?",
})

_COMPARISONS = frozenset({
    "<", "<=", ">", ">=", "is-eq", "and", "or", "not", "is-ok", "is-err",
    "is-some", "is-none", "is-standard",
})
_ARITHMETIC = frozenset({"+", "-", "*", "/", "mod", "pow", "sqrti", "log2"})
_BLOCK_INFO_FUNCTIONS = frozenset({
    "get-block-info?", "get-burn-block-info?", "get-stacks-block-info?", "get-tenure-info?",
})
_TOKEN_OPERATIONS = frozenset({
    "ft-mint?", "ft-transfer?", "ft-burn?", "ft-get-balance", "ft-get-supply",
    "nft-mint?", "nft-transfer?", "nft-burn?", "nft-get-owner?",
})
_GLOBAL_TYPES = {
    "tx-sender": ClarityType.principal(),
    "contract-caller": ClarityType.principal(),
    "block-height": ClarityType.uint(),
    "burn-block-height": ClarityType.uint(),
    "stx-liquid-supply": ClarityType.uint(),
    "chain-id": ClarityType.uint(),
    "is-in-mainnet": ClarityType.bool_type(),
    "is-in-regtest": ClarityType.bool_type(),
    "true": ClarityType.bool_type(),
    "false": ClarityType.bool_type(),
    "none": ClarityType.none(),
}


# ============================================================================
# PART 2 — TYPE ENVIRONMENT
# ============================================================================


class _UsageFlags:
    """Monotonic usage flags: they start false and can only be set."""

    _accessed = False
    _modified = False

    @property
    def accessed(self) -> bool:
        return self._accessed

    @property
    def modified(self) -> bool:
        return self._modified

    def mark_accessed(self) -> None:
        self._accessed = True

    def mark_modified(self) -> None:
        self._modified = True


@dataclass(eq=False)
class FunctionSignature:
    name: str
    visibility: A.Visibility
    params: Tuple[Tuple[str, ClarityType], ...]
    span: A.SourceRange
    return_type: ClarityType = field(default_factory=ClarityType.uint)


@dataclass(eq=False)
class ConstantInfo:
    name: str
    type: ClarityType
    span: A.SourceRange
    _used: bool = field(default=False, init=False, repr=False)

    @property
    def used(self) -> bool:
        return self._used

    def mark_used(self) -> None:
        self._used = True


@dataclass(eq=False)
class VariableInfo(_UsageFlags):
    name: str
    type: ClarityType
    span: A.SourceRange


@dataclass(eq=False)
class MapInfo(_UsageFlags):
    name: str
    key_type: ClarityType
    value_type: ClarityType
    span: A.SourceRange


@dataclass(eq=False)
class TraitInfo:
    name: str
    functions: Tuple[str, ...]
    span: A.SourceRange
    imported: bool = False


@dataclass(eq=False)
class TokenInfo(_UsageFlags):
    name: str
    fungible: bool
    span: A.SourceRange


class TypeEnvironment:
    """Program-wide symbol table, one mapping per kind of definition.

    Entries refer to their definitions by name and span only.
    """

    def __init__(self) -> None:
        self.functions: Dict[str, FunctionSignature] = {}
        self.constants: Dict[str, ConstantInfo] = {}
        self.variables: Dict[str, VariableInfo] = {}
        self.maps: Dict[str, MapInfo] = {}
        self.traits: Dict[str, TraitInfo] = {}
        self.tokens: Dict[str, TokenInfo] = {}

    def summary(self) -> Dict[str, int]:
        return {
            "functions": len(self.functions),
            "constants": len(self.constants),
            "variables": len(self.variables),
            "maps": len(self.maps),
            "traits": len(self.traits),
            "tokens": len(self.tokens),
        }


# ============================================================================
# PART 3 — SIDE TABLES AND RESULT
# ============================================================================


class EffectKind(Enum):
    MAP_ACCESS = "map-access"
    VAR_ACCESS = "var-access"
    TOKEN_TRANSFER = "token-transfer"
    EXTERNAL_CALL = "external-call"


@dataclass(frozen=True)
class SideEffect:
    kind: EffectKind
    operation: str  # "read" or "write"
    target: Optional[str] = None

    @property
    def is_write(self) -> bool:
        return self.operation == "write"


@dataclass(frozen=True)
class CallInfo:
    name: str
    is_builtin: bool
    is_external: bool
    can_fail: bool
    side_effects: Tuple[SideEffect, ...] = ()


@dataclass(frozen=True)
class Resolution:
    """What an identifier refers to.

    ``kind`` is one of ``local``, ``constant``, ``variable``, ``function``,
    ``builtin``, ``contract``, ``map``, ``token``, ``contract-function``
    ``tuple-key`` or ``block-property``.
    """

    kind: str
    name: str


@dataclass(frozen=True)
class FunctionFacts:
    calls_external: bool
    modifies_state: bool
    can_fail: bool
    return_type: ClarityType
    callees: Tuple[str, ...] = ()


@dataclass
class SemanticFacts:
    calls: Dict[int, CallInfo] = field(default_factory=dict)
    types: Dict[int, ClarityType] = field(default_factory=dict)
    resolutions: Dict[int, Resolution] = field(default_factory=dict)
    functions: Dict[int, FunctionFacts] = field(default_factory=dict)
    # function name -> names of the definitions that refer to it
    references: Dict[str, Set[str]] = field(default_factory=dict)

    def calls_in(self, body: Tuple[A.Node, ...]) -> Iterator[Tuple[A.FunctionCall, CallInfo]]:
        """Calls inside *body* in pre-order, paired with their ``CallInfo``."""
        for node in walk_body(body):
            if isinstance(node, A.FunctionCall) and node.node_id in self.calls:
                yield node, self.calls[node.node_id]


@dataclass
class SemanticResult:
    program: A.Program
    environment: TypeEnvironment
    facts: SemanticFacts
    errors: List[Diagnostic] = field(default_factory=list)
    warnings: List[Diagnostic] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors

    def function_facts(self, func: A.FunctionDef) -> Optional[FunctionFacts]:
        return self.facts.functions.get(func.node_id)


# ============================================================================
# PART 4 — LEXICAL SCOPE
# ============================================================================


class Scope:
    """A chain of local bindings, innermost first."""

    def __init__(self, parent: Optional["Scope"] = None) -> None:
        self.parent = parent
        self._bindings: Dict[str, ClarityType] = {}

    def define(self, name: str, ctype: ClarityType) -> None:
        self._bindings[name] = ctype

    def lookup(self, name: str) -> Optional[ClarityType]:
        scope: Optional[Scope] = self
        while scope is not None:
            if name in scope._bindings:
                return scope._bindings[name]
            scope = scope.parent
        return None

    def child(self) -> "Scope":
        return Scope(self)


# ============================================================================
# PART 5 — EXPRESSION ANALYSIS
# ============================================================================


class _ExpressionAnalyzer(ExpressionVisitor):
    """Pass 2 walker: resolves names, infers types, records call facts.

    Each ``visit_*`` returns the inferred type and stores it in
    ``facts.types``.
    """

    def __init__(
        self,
        env: TypeEnvironment,
        facts: SemanticFacts,
        diagnostics: DiagnosticCollector,
        references: Dict[str, Set[str]],
    ) -> None:
        self.env = env
        self.facts = facts
        self.diag = diagnostics
        self.references = references
        self.scope = Scope()
        self.owner = ""

    def analyze(self, expr: A.Node, scope: Scope, owner: str) -> ClarityType:
        self.scope = scope
        self.owner = owner
        return self.visit(expr)

    def _record(self, node: A.Node, ctype: ClarityType) -> ClarityType:
        self.facts.types[node.node_id] = ctype
        return ctype

    def _refer(self, function_name: str) -> None:
        self.references.setdefault(function_name, set()).add(self.owner)

    def _sequence(self, body: Tuple[A.Expression, ...]) -> ClarityType:
        result = ClarityType.uint()
        for expr in body:
            result = self.visit(expr)
        return result

    # -- literals ---------------------------------------------------------

    def visit_uint_literal(self, node: A.UIntLiteral) -> ClarityType:
        return self._record(node, ClarityType.uint())

    def visit_int_literal(self, node: A.IntLiteral) -> ClarityType:
        return self._record(node, ClarityType.int_type())

    def visit_bool_literal(self, node: A.BoolLiteral) -> ClarityType:
        return self._record(node, ClarityType.bool_type())

    def visit_string_literal(self, node: A.StringLiteral) -> ClarityType:
        utf8 = node.encoding is A.StringEncoding.UTF8
        return self._record(node, ClarityType.string(utf8, len(node.value)))

    def visit_buffer_literal(self, node: A.BufferLiteral) -> ClarityType:
        return self._record(node, ClarityType.buff(node.size))

    def visit_principal_literal(self, node: A.PrincipalLiteral) -> ClarityType:
        return self._record(node, ClarityType.principal())

    # -- names ------------------------------------------------------------

    def visit_identifier(self, node: A.Identifier) -> ClarityType:
        return self._record(node, self._resolve(node))

    def _resolve(self, node: A.Identifier) -> ClarityType:
        name = node.name
        resolutions = self.facts.resolutions
        if name == PLACEHOLDER:
            return ClarityType.uint()

        local = self.scope.lookup(name)
        if local is not None:
            resolutions[node.node_id] = Resolution("local", name)
            return local

        constant = self.env.constants.get(name)
        if constant is not None:
            constant.mark_used()
            resolutions[node.node_id] = Resolution("constant", name)
            return constant.type

        variable = self.env.variables.get(name)
        if variable is not None:
            variable.mark_accessed()
            resolutions[node.node_id] = Resolution("variable", name)
            return variable.type

        function = self.env.functions.get(name)
        if function is not None:
            self._refer(name)
            resolutions[node.node_id] = Resolution("function", name)
            return function.return_type

        if name in BUILTIN_GLOBALS or name in BUILTIN_FUNCTIONS:
            resolutions[node.node_id] = Resolution("builtin", name)
            return _GLOBAL_TYPES.get(name, ClarityType.uint())

        if node.is_dotted:
            resolutions[node.node_id] = Resolution("contract", name.split(".", 1)[0])
            return ClarityType.principal()

        self.diag.error(
            ErrorCode.UNDEFINED_IDENTIFIER,
            f"Undefined identifier: {name}",
            node.location,
        )
        return ClarityType.uint()

    # -- compound forms -----------------------------------------------------

    def visit_let_expr(self, node: A.LetExpr) -> ClarityType:
        outer = self.scope
        inner = outer.child()
        for binding in node.bindings:
            # Bindings see the enclosing scope plus earlier bindings.
            self.scope = inner
            value_type = self.visit(binding.value)
            self.facts.types[binding.node_id] = value_type
            inner.define(binding.name, value_type)
        self.scope = inner
        try:
            result = self._sequence(node.body)
        finally:
            self.scope = outer
        return self._record(node, result)

    def visit_begin_expr(self, node: A.BeginExpr) -> ClarityType:
        return self._record(node, self._sequence(node.body))

    def visit_if_expr(self, node: A.IfExpr) -> ClarityType:
        cond = self.visit(node.condition)
        if cond.kind is not TypeKind.BOOL:
            self.diag.warning(
                ErrorCode.TYPE_MISMATCH,
                "If condition should be boolean",
                node.condition.location,
            )
        then_type = self.visit(node.then_branch)
        if node.else_branch is not None:
            else_type = self.visit(node.else_branch)
            if not then_type.compatible_with(else_type):
                self.diag.warning(
                    ErrorCode.TYPE_MISMATCH,
                    "If branches have incompatible types",
                    node.location,
                )
        return self._record(node, then_type)

    def visit_match_expr(self, node: A.MatchExpr) -> ClarityType:
        subject = self.visit(node.subject)
        outer = self.scope
        result: Optional[ClarityType] = None
        for index, arm in enumerate(node.arms):
            arm_scope = outer
            names = arm.bound_names()
            if names:
                arm_scope = outer.child()
                bound = _bound_type(subject, arm.pattern, index)
                for name in names:
                    arm_scope.define(name, bound)
            self.scope = arm_scope
            try:
                arm_type = self._sequence(arm.body)
            finally:
                self.scope = outer
            if result is None and arm.body:
                result = arm_type
        return self._record(node, result or ClarityType.uint())

    def visit_list_literal(self, node: A.ListLiteral) -> ClarityType:
        element: Optional[ClarityType] = None
        for expr in node.elements:
            etype = self.visit(expr)
            if element is None:
                element = etype
            elif not element.compatible_with(etype):
                self.diag.warning(
                    ErrorCode.TYPE_MISMATCH,
                    "List elements have incompatible types",
                    expr.location,
                )
        return self._record(
            node, ClarityType.list_of(element or ClarityType.uint(), len(node.elements))
        )

    def visit_tuple_literal(self, node: A.TupleLiteral) -> ClarityType:
        fields = []
        for tf in node.fields:
            ftype = self.visit(tf.value)
            self.facts.types[tf.node_id] = ftype
            fields.append((tf.name, ftype))
        return self._record(node, ClarityType.tuple_of(tuple(fields)))

    # -- calls ------------------------------------------------------------

    def visit_function_call(self, node: A.FunctionCall) -> ClarityType:
        name = node.name
        args = node.args
        skip = self._special_arguments(node)

        arg_types: List[ClarityType] = []
        for index, arg in enumerate(args):
            if index in skip:
                arg_types.append(skip[index])
            else:
                arg_types.append(self.visit(arg))

        is_user = name in self.env.functions
        if is_user:
            self._refer(name)
        elif name not in BUILTIN_FUNCTIONS and "." not in name and name != PLACEHOLDER:
            logger.debug("call to unknown function %r at %s", name, node.location)

        info = CallInfo(
            name=name,
            is_builtin=name in BUILTIN_FUNCTIONS,
            is_external=name == "contract-call?" or "." in name,
            can_fail=name in FAILABLE_FUNCTIONS,
            side_effects=_side_effects(node),
        )
        self.facts.calls[node.node_id] = info
        return self._record(node, self._call_type(name, args, arg_types))

    def _special_arguments(self, node: A.FunctionCall) -> Dict[int, ClarityType]:
        """Arguments that name storage, fields, block properties or remote functions.

        They are recorded and marked here rather than resolved as plain
        identifiers.  Returns index -> type for the handled arguments.
        """
        name = node.name
        args = node.args
        handled: Dict[int, ClarityType] = {}
        if not args:
            return handled
        first = args[0]

        if name in ("map-get?", "map-set", "map-insert", "map-delete"):
            if isinstance(first, A.Identifier):
                handled[0] = self._storage_target(first, "map", name != "map-get?")
        elif name in ("var-get", "var-set"):
            if isinstance(first, A.Identifier):
                handled[0] = self._storage_target(first, "variable", name == "var-set")
        elif name in _TOKEN_OPERATIONS:
            if isinstance(first, A.Identifier):
                handled[0] = self._storage_target(first, "token", False)
        elif name == "get":
            if isinstance(first, A.Identifier):
                self.facts.resolutions[first.node_id] = Resolution("tuple-key", first.name)
                handled[0] = self._record(first, ClarityType.uint())
        elif name in _BLOCK_INFO_FUNCTIONS:
            if isinstance(first, A.Identifier):
                self.facts.resolutions[first.node_id] = Resolution("block-property", first.name)
                handled[0] = self._record(first, ClarityType.uint())
        elif name == "contract-call?":
            if len(args) > 1 and isinstance(args[1], A.Identifier):
                remote = args[1]
                self.facts.resolutions[remote.node_id] = Resolution(
                    "contract-function", remote.name
                )
                handled[1] = self._record(remote, ClarityType.uint())
        return handled

    def _storage_target(self, ident: A.Identifier, kind: str, write: bool) -> ClarityType:
        name = ident.name
        if name == PLACEHOLDER:
            return ClarityType.uint()
        table = {"map": self.env.maps, "variable": self.env.variables, "token": self.env.tokens}[kind]
        info = table.get(name)
        if info is None:
            self.diag.error(
                ErrorCode.UNDEFINED_IDENTIFIER,
                f"Undefined identifier: {name}",
                ident.location,
            )
            return ClarityType.uint()
        if write:
            info.mark_modified()
        else:
            info.mark_accessed()
        self.facts.resolutions[ident.node_id] = Resolution(kind, name)
        if isinstance(info, VariableInfo):
            return self._record(ident, info.type)
        return self._record(ident, ClarityType.uint())

    def _call_type(
        self,
        name: str,
        args: Tuple[A.Expression, ...],
        arg_types: List[ClarityType],
    ) -> ClarityType:
        first = arg_types[0] if arg_types else ClarityType.uint()
        if name in _ARITHMETIC:
            return first
        if name in _COMPARISONS:
            return ClarityType.bool_type()
        if name == "ok":
            return ClarityType.response(first, ClarityType.uint())
        if name == "err":
            return ClarityType.response(ClarityType.uint(), first)
        if name == "some":
            return ClarityType.optional(first)
        if name == "var-get" and args and isinstance(args[0], A.Identifier):
            var = self.env.variables.get(args[0].name)
            return var.type if var is not None else ClarityType.uint()
        if name == "map-get?" and args and isinstance(args[0], A.Identifier):
            mp = self.env.maps.get(args[0].name)
            return ClarityType.optional(mp.value_type if mp is not None else ClarityType.uint())
        if name in ("unwrap!", "unwrap-panic", "try!"):
            return first.ok_type or first.element or ClarityType.uint()
        if name in ("unwrap-err!", "unwrap-err-panic"):
            return first.err_type or ClarityType.uint()
        if name == "default-to" and len(arg_types) > 1:
            return first
        if name == "to-int":
            return ClarityType.int_type()
        if name in ("append", "concat"):
            return first
        if name == "filter" and len(arg_types) > 1:
            return arg_types[1]
        if name == "as-contract" and arg_types:
            return arg_types[-1]
        func = self.env.functions.get(name)
        if func is not None:
            return func.return_type
        return ClarityType.uint()


def _bound_type(subject: ClarityType, pattern: A.Pattern, index: int) -> ClarityType:
    kind = pattern.kind if isinstance(pattern, A.WrapperPattern) else None
    if kind == "ok" or (kind is None and subject.kind is TypeKind.RESPONSE and index == 0):
        return subject.ok_type or ClarityType.uint()
    if kind == "err" or (kind is None and subject.kind is TypeKind.RESPONSE):
        return subject.err_type or ClarityType.uint()
    if kind == "some" or subject.kind is TypeKind.OPTIONAL:
        return subject.element or ClarityType.uint()
    return subject


def _storage_name(node: A.FunctionCall) -> Optional[str]:
    if node.args and isinstance(node.args[0], A.Identifier):
        return node.args[0].name
    return None


def _side_effects(node: A.FunctionCall) -> Tuple[SideEffect, ...]:
    name = node.name
    if name in ("map-set", "map-insert", "map-delete"):
        target = _storage_name(node)
        return (SideEffect(EffectKind.MAP_ACCESS, "write", target),) if target else ()
    if name == "map-get?":
        target = _storage_name(node)
        return (SideEffect(EffectKind.MAP_ACCESS, "read", target),) if target else ()
    if name in ("var-set", "var-get"):
        target = _storage_name(node)
        op = "write" if name == "var-set" else "read"
        return (SideEffect(EffectKind.VAR_ACCESS, op, target),) if target else ()
    if name in TOKEN_TRANSFER_FUNCTIONS:
        return (SideEffect(EffectKind.TOKEN_TRANSFER, "write"),)
    if name == "contract-call?" or "." in name:
        return (SideEffect(EffectKind.EXTERNAL_CALL, "write"),)
    return ()


# ============================================================================
# PART 6 — SEMANTIC ANALYZER
# ============================================================================


class SemanticAnalyzer:
    """
    Four-pass semantic analyzer for Clarity programs.

    All state is reset on every :meth:`analyze` call, so one instance may
    be reused sequentially.
    """

    def analyze(self, program: A.Program) -> SemanticResult:
        self._env = TypeEnvironment()
        self._facts = SemanticFacts()
        self._diag = DiagnosticCollector(ErrorPhase.SEMANTIC)

        self._collect_declarations(program)
        self._analyze_expressions(program)
        self._analyze_usage(program)
        self._annotate(program)

        logger.debug(
            "semantic analysis: %s, %d error(s), %d warning(s)",
            self._env.summary(), len(self._diag.errors), len(self._diag.warnings),
        )
        return SemanticResult(
            program=program,
            environment=self._env,
            facts=self._facts,
            errors=self._diag.errors,
            warnings=self._diag.warnings,
        )

    # ========================================================================
    # Pass 1: declarations
    # ========================================================================

    def _declare(self, table: Dict, label: str, name: str, info: object, loc: A.SourceLocation) -> None:
        if name == PLACEHOLDER:
            return
        if name in table:
            self._diag.error(
                ErrorCode.DUPLICATE_DEFINITION,
                f"{label} '{name}' is already defined",
                loc,
            )
            return
        table[name] = info

    def _collect_declarations(self, program: A.Program) -> None:
        env = self._env
        for stmt in program.body:
            loc = stmt.location
            if isinstance(stmt, A.FunctionDef):
                params = tuple((p.name, type_from_spec(p.type)) for p in stmt.params)
                sig = FunctionSignature(stmt.name, stmt.visibility, params, stmt.span)
                self._declare(env.functions, "Function", stmt.name, sig, loc)
            elif isinstance(stmt, A.ConstantDef):
                info = ConstantInfo(stmt.name, _literal_type(stmt.value), stmt.span)
                self._declare(env.constants, "Constant", stmt.name, info, loc)
            elif isinstance(stmt, A.DataVarDef):
                var = VariableInfo(stmt.name, type_from_spec(stmt.var_type), stmt.span)
                self._declare(env.variables, "Variable", stmt.name, var, loc)
            elif isinstance(stmt, A.MapDef):
                mp = MapInfo(
                    stmt.name,
                    type_from_spec(stmt.key_type),
                    type_from_spec(stmt.value_type),
                    stmt.span,
                )
                self._declare(env.maps, "Map", stmt.name, mp, loc)
            elif isinstance(stmt, A.TraitDef):
                trait = TraitInfo(stmt.name, tuple(f.name for f in stmt.functions), stmt.span)
                self._declare(env.traits, "Trait", stmt.name, trait, loc)
            elif isinstance(stmt, A.UseTrait):
                trait = TraitInfo(stmt.alias, (), stmt.span, imported=True)
                self._declare(env.traits, "Trait", stmt.alias, trait, loc)
            elif isinstance(stmt, A.FungibleTokenDef):
                self._declare(env.tokens, "Token", stmt.name, TokenInfo(stmt.name, True, stmt.span), loc)
            elif isinstance(stmt, A.NonFungibleTokenDef):
                self._declare(env.tokens, "Token", stmt.name, TokenInfo(stmt.name, False, stmt.span), loc)

    # ========================================================================
    # Pass 2: expressions
    # ========================================================================

    def _analyze_expressions(self, program: A.Program) -> None:
        walker = _ExpressionAnalyzer(self._env, self._facts, self._diag, self._facts.references)
        for stmt in program.body:
            if isinstance(stmt, A.ConstantDef):
                ctype = walker.analyze(stmt.value, Scope(), stmt.name)
                const = self._env.constants.get(stmt.name)
                if const is not None and const.span == stmt.span:
                    const.type = ctype
            elif isinstance(stmt, A.DataVarDef):
                walker.analyze(stmt.initial_value, Scope(), stmt.name)
            elif isinstance(stmt, A.FungibleTokenDef) and stmt.supply is not None:
                walker.analyze(stmt.supply, Scope(), stmt.name)
            elif isinstance(stmt, A.FunctionDef):
                self._analyze_function(walker, stmt)

    def _analyze_function(self, walker: _ExpressionAnalyzer, func: A.FunctionDef) -> None:
        scope = Scope()
        for param in func.params:
            scope.define(param.name, type_from_spec(param.type))
        result = ClarityType.uint()
        for expr in func.body:
            result = walker.analyze(expr, scope, func.name)
        sig = self._env.functions.get(func.name)
        if sig is not None and sig.span == func.span:
            sig.return_type = result

    # ========================================================================
    # Pass 3: usage
    # ========================================================================

    def _analyze_usage(self, program: A.Program) -> None:
        env = self._env
        for name, sig in env.functions.items():
            if sig.visibility is not A.Visibility.PRIVATE:
                continue
            referrers = self._facts.references.get(name, set()) - {name}
            if not referrers:
                self._diag.warning(
                    ErrorCode.UNUSED_FUNCTION,
                    f"Private function '{name}' is never called",
                    sig.span.start,
                )

        for name, const in env.constants.items():
            if not const.used:
                self._diag.warning(
                    ErrorCode.UNUSED_CONSTANT,
                    f"Constant '{name}' is never used",
                    const.span.start,
                )

        for name, var in env.variables.items():
            if var.modified and not var.accessed:
                self._diag.warning(
                    ErrorCode.WRITE_ONLY_VARIABLE,
                    f"Variable '{name}' is modified but never read",
                    var.span.start,
                )
            elif not var.accessed:
                self._diag.warning(
                    ErrorCode.UNUSED_VARIABLE,
                    f"Variable '{name}' is never accessed",
                    var.span.start,
                )

        for name, mp in env.maps.items():
            if mp.modified and not mp.accessed:
                self._diag.warning(
                    ErrorCode.WRITE_ONLY_MAP,
                    f"Map '{name}' is modified but never read",
                    mp.span.start,
                )
            elif not mp.accessed:
                self._diag.warning(
                    ErrorCode.UNUSED_MAP,
                    f"Map '{name}' is never accessed",
                    mp.span.start,
                )

    # ========================================================================
    # Pass 4: annotation
    # ========================================================================

    def _annotate(self, program: A.Program) -> None:
        for func in program.functions():
            calls_external = modifies_state = can_fail = False
            callees: List[str] = []
            for call, info in self._facts.calls_in(func.body):
                calls_external = calls_external or info.is_external
                modifies_state = modifies_state or call.name in STATE_WRITE_FUNCTIONS
                can_fail = can_fail or info.can_fail
                if call.name in self._env.functions and call.name not in callees:
                    callees.append(call.name)
            sig = self._env.functions.get(func.name)
            if sig is not None and sig.span == func.span:
                return_type = sig.return_type
            else:
                return_type = self._facts.types.get(
                    func.body[-1].node_id, ClarityType.uint()
                ) if func.body else ClarityType.uint()
            self._facts.functions[func.node_id] = FunctionFacts(
                calls_external=calls_external,
                modifies_state=modifies_state,
                can_fail=can_fail,
                return_type=return_type,
                callees=tuple(callees),
            )


def _literal_type(expr: A.Expression) -> ClarityType:
    """Declared type of a constant before its value is analyzed."""
    if isinstance(expr, A.IntLiteral):
        return ClarityType.int_type()
    if isinstance(expr, A.BoolLiteral):
        return ClarityType.bool_type()
    if isinstance(expr, A.PrincipalLiteral):
        return ClarityType.principal()
    if isinstance(expr, A.StringLiteral):
        return ClarityType.string(expr.encoding is A.StringEncoding.UTF8, len(expr.value))
    if isinstance(expr, A.BufferLiteral):
        return ClarityType.buff(expr.size)
    if isinstance(expr, A.Identifier) and expr.name in ("tx-sender", "contract-caller"):
        return ClarityType.principal()
    return ClarityType.uint()


def analyze_program(program: A.Program) -> SemanticResult:
    """Run a fresh :class:`SemanticAnalyzer` over *program*."""
    return SemanticAnalyzer().analyze(program)
