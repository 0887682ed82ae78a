#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
clarity_audit/visitor.py
========================

Visitor infrastructure for Clarity AST traversal.

Provides:
- ``ExpressionVisitor`` — abstract base with one abstract method per
  expression kind; a subclass that forgets a kind cannot be instantiated
- ``StatementVisitor`` — same contract for top-level statements
- ``walk`` — pre-order iterator over a subtree
- ``find_function_calls`` / ``find_nodes_by_type`` — search helpers
"""

from __future__ import annotations

import abc
from typing import Any, Iterator, List, Type, TypeVar

from clarity_audit import ast as A

__all__ = [
    "ExpressionVisitor",
    "StatementVisitor",
    "walk",
    "walk_body",
    "find_function_calls",
    "find_nodes_by_type",
]

N = TypeVar("N", bound=A.Node)


class ExpressionVisitor(abc.ABC):
    """Abstract base for visitors over the closed ``Expression`` family."""

    def visit(self, node: A.Node) -> Any:
        """Dispatch to the appropriate visit method."""
        return node.accept(self)

    @abc.abstractmethod
    def visit_function_call(self, node: A.FunctionCall) -> Any: ...

    @abc.abstractmethod
    def visit_let_expr(self, node: A.LetExpr) -> Any: ...

    @abc.abstractmethod
    def visit_begin_expr(self, node: A.BeginExpr) -> Any: ...

    @abc.abstractmethod
    def visit_if_expr(self, node: A.IfExpr) -> Any: ...

    @abc.abstractmethod
    def visit_match_expr(self, node: A.MatchExpr) -> Any: ...

    @abc.abstractmethod
    def visit_list_literal(self, node: A.ListLiteral) -> Any: ...

    @abc.abstractmethod
    def visit_tuple_literal(self, node: A.TupleLiteral) -> Any: ...

    @abc.abstractmethod
    def visit_identifier(self, node: A.Identifier) -> Any: ...

    @abc.abstractmethod
    def visit_uint_literal(self, node: A.UIntLiteral) -> Any: ...

    @abc.abstractmethod
    def visit_int_literal(self, node: A.IntLiteral) -> Any: ...

    @abc.abstractmethod
    def visit_bool_literal(self, node: A.BoolLiteral) -> Any: ...

    @abc.abstractmethod
    def visit_string_literal(self, node: A.StringLiteral) -> Any: ...

    @abc.abstractmethod
    def visit_buffer_literal(self, node: A.BufferLiteral) -> Any: ...

    @abc.abstractmethod
    def visit_principal_literal(self, node: A.PrincipalLiteral) -> Any: ...


class StatementVisitor(abc.ABC):
    """Abstract base for visitors over top-level statements."""

    def visit(self, node: A.Node) -> Any:
        return node.accept(self)

    @abc.abstractmethod
    def visit_function_def(self, node: A.FunctionDef) -> Any: ...

    @abc.abstractmethod
    def visit_constant_def(self, node: A.ConstantDef) -> Any: ...

    @abc.abstractmethod
    def visit_map_def(self, node: A.MapDef) -> Any: ...

    @abc.abstractmethod
    def visit_data_var_def(self, node: A.DataVarDef) -> Any: ...

    @abc.abstractmethod
    def visit_nft_def(self, node: A.NonFungibleTokenDef) -> Any: ...

    @abc.abstractmethod
    def visit_ft_def(self, node: A.FungibleTokenDef) -> Any: ...

    @abc.abstractmethod
    def visit_trait_def(self, node: A.TraitDef) -> Any: ...

    @abc.abstractmethod
    def visit_use_trait(self, node: A.UseTrait) -> Any: ...

    @abc.abstractmethod
    def visit_impl_trait(self, node: A.ImplTrait) -> Any: ...


def walk(node: A.Node) -> Iterator[A.Node]:
    """Yield *node* and all of its descendants in pre-order."""
    stack: List[A.Node] = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children()))


def walk_body(body: "tuple[A.Node, ...]") -> Iterator[A.Node]:
    """Pre-order walk over a sequence of sibling nodes.

    This is the flattening used for ordering-sensitive checks: an
    expression nested inside an earlier sibling comes before every node
    of a later sibling.
    """
    for node in body:
        yield from walk(node)


def find_function_calls(root: A.Node, name: str) -> List[A.FunctionCall]:
    return [
        n for n in walk(root)
        if isinstance(n, A.FunctionCall) and n.name == name
    ]


def find_nodes_by_type(root: A.Node, node_type: Type[N]) -> List[N]:
    return [n for n in walk(root) if isinstance(n, node_type)]
