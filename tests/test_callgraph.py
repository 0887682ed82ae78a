# tests/test_callgraph.py
"""
Tests for the call graph and data-flow graph built from a SemanticResult.
"""

from clarity_audit.callgraph import (
    build_callgraph,
    build_dataflow_graph,
    callgraph_summary,
    find_recursive_functions,
)
from tests.conftest import (
    RECURSIVE_SOURCE,
    SHARED_COUNTER_SOURCE,
    TOKEN_SOURCE,
    UNAUTHORIZED_SETTER_SOURCE,
)


class TestCallGraph:

    def test_one_node_per_function(self, semantic_of):
        cg = build_callgraph(semantic_of(TOKEN_SOURCE))
        assert list(cg.nodes) == [
            "get-balance", "add-minted", "mint", "approve", "get-allowance",
        ]
        assert len(cg) == 5
        assert "mint" in cg

    def test_calls_and_called_by(self, semantic_of):
        cg = build_callgraph(semantic_of(TOKEN_SOURCE))
        assert cg["mint"].calls == ["add-minted"]
        assert cg["add-minted"].called_by == ["mint"]
        assert cg["get-balance"].calls == []
        assert cg.edge_count == 1

    def test_node_flags(self, semantic_of):
        cg = build_callgraph(semantic_of(TOKEN_SOURCE))
        assert cg["approve"].modifies_state
        assert not cg["get-balance"].modifies_state
        assert not cg["approve"].is_external

    def test_calls_deduplicated_in_first_seen_order(self, semantic_of):
        cg = build_callgraph(semantic_of(
            "(define-private (a) u1)\n"
            "(define-private (b) u2)\n"
            "(define-read-only (c) (+ (b) (a) (b)))\n"
        ))
        assert cg["c"].calls == ["b", "a"]

    def test_roots_and_leaves(self, semantic_of):
        cg = build_callgraph(semantic_of(TOKEN_SOURCE))
        roots = {n.function_name for n in cg.roots}
        leaves = {n.function_name for n in cg.leaves}
        assert "add-minted" not in roots
        assert "mint" in roots
        assert "mint" not in leaves
        assert "add-minted" in leaves

    def test_transitive_queries(self, semantic_of):
        cg = build_callgraph(semantic_of(RECURSIVE_SOURCE))
        assert cg.transitive_callees("start") == {"ping", "pong"}
        assert cg.transitive_callers("pong") == {"ping", "pong", "start"}
        assert cg.transitive_callees("missing") == set()

    def test_recursion(self, semantic_of):
        cg = build_callgraph(semantic_of(RECURSIVE_SOURCE))
        assert cg.is_recursive("ping")
        assert not cg.is_recursive("start")
        assert find_recursive_functions(cg) == [{"ping", "pong"}]

    def test_self_recursion(self, semantic_of):
        cg = build_callgraph(semantic_of("(define-private (spin (n uint)) (spin n))"))
        assert cg["spin"].is_self_recursive
        assert find_recursive_functions(cg) == [{"spin"}]

    def test_statistics(self, semantic_of):
        stats = build_callgraph(semantic_of(RECURSIVE_SOURCE)).statistics()
        assert stats["functions"] == 3
        assert stats["edges"] == 3
        assert stats["recursive_groups"] == 1
        assert stats["root_functions"] == 1
        assert stats["leaf_functions"] == 0

    def test_dot_export(self, semantic_of):
        dot = build_callgraph(semantic_of(TOKEN_SOURCE)).to_dot("token")
        assert dot.startswith("digraph CallGraph {")
        assert '"mint" -> "add-minted";' in dot
        assert 'label="token";' in dot
        assert dot.rstrip().endswith("}")

    def test_summary_text(self, semantic_of):
        text = callgraph_summary(build_callgraph(semantic_of(TOKEN_SOURCE)))
        assert "Call Graph Summary" in text
        assert "mint: calls [add-minted], called by []" in text

    def test_to_dict(self, semantic_of):
        data = build_callgraph(semantic_of(TOKEN_SOURCE)).to_dict()
        assert data["add-minted"]["called_by"] == ["mint"]
        assert data["add-minted"]["modifies_state"] is True


class TestDataFlowGraph:

    def test_node_order_variables_maps_constants(self, semantic_of):
        dfg = build_dataflow_graph(semantic_of(TOKEN_SOURCE))
        assert [(n.name, n.kind) for n in dfg.nodes.values()] == [
            ("total-minted", "variable"),
            ("allowances", "map"),
            ("contract-owner", "constant"),
            ("err-owner-only", "constant"),
        ]

    def test_readers_and_writers(self, semantic_of):
        dfg = build_dataflow_graph(semantic_of(TOKEN_SOURCE))
        assert dfg["total-minted"].writers == ["add-minted"]
        assert dfg["total-minted"].readers == ["add-minted"]
        assert dfg["allowances"].writers == ["approve"]
        assert dfg["allowances"].readers == ["get-allowance"]
        assert dfg["contract-owner"].readers == ["mint", "approve"]

    def test_write_target_is_not_a_read(self, semantic_of):
        dfg = build_dataflow_graph(semantic_of(UNAUTHORIZED_SETTER_SOURCE))
        node = dfg["admin-setting"]
        assert node.writers == ["set-admin-setting"]
        assert node.readers == []

    def test_multiple_writers(self, semantic_of):
        dfg = build_dataflow_graph(semantic_of(SHARED_COUNTER_SOURCE))
        assert dfg["total"].writers == ["add", "reset"]
        assert dfg["total"].readers == ["add"]

    def test_dependencies(self, semantic_of):
        dfg = build_dataflow_graph(semantic_of(
            "(define-data-var rate uint u5)\n"
            "(define-data-var total uint u0)\n"
            "(define-public (bump) (begin (var-set total (var-get rate)) (ok true)))\n"
        ))
        assert dfg["total"].dependencies == ["rate"]
        assert dfg["rate"].dependencies == []

    def test_of_kind_and_to_dict(self, semantic_of):
        dfg = build_dataflow_graph(semantic_of(TOKEN_SOURCE))
        assert [n.name for n in dfg.of_kind("constant")] == ["contract-owner", "err-owner-only"]
        assert dfg.to_dict()["allowances"]["kind"] == "map"
