"""
clarity_audit.callgraph
=======================

Whole-contract graphs derived from a ``SemanticResult``.

Call graph
----------
One ``CallGraphNode`` per defined function.  ``calls`` lists the declared
functions invoked anywhere in the body (first-seen order, no duplicates);
``called_by`` is the reciprocal list, filled in a second pass.

Data-flow graph
---------------
One ``DataFlowNode`` per data variable, map and constant, in that order.
Readers and writers are function names taken from the recorded side
effects and identifier resolutions.  ``dependencies`` lists the other
storage entities read by the functions that write the node.

Public API
----------
    CallGraphNode / CallGraph     - the call graph
    build_callgraph               - build from a SemanticResult
    callgraph_summary             - human-readable summary
    find_recursive_functions      - recursive cycles
    DataFlowNode / DataFlowGraph  - the data-flow graph
    build_dataflow_graph          - build from a SemanticResult

Typical usage::

    from clarity_audit.service import ParsingService
    from clarity_audit.callgraph import build_callgraph

    result = ParsingService().parse_text(source)
    cg = build_callgraph(result.semantic)
    print(cg.to_dot())
"""

from __future__ import annotations

from collections import OrderedDict, deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Optional, Set

from clarity_audit import ast as A
from clarity_audit.semantic import EffectKind, SemanticResult
from clarity_audit.visitor import find_nodes_by_type

# ---------------------------------------------------------------------------
# Call graph
# ---------------------------------------------------------------------------


@dataclass
class CallGraphNode:
    function_name: str
    calls: List[str] = field(default_factory=list)
    called_by: List[str] = field(default_factory=list)
    is_external: bool = False
    modifies_state: bool = False
    visibility: Optional[A.Visibility] = None

    @property
    def is_leaf(self) -> bool:
        return not self.calls

    @property
    def is_root(self) -> bool:
        return not self.called_by

    @property
    def is_self_recursive(self) -> bool:
        return self.function_name in self.calls

    def to_dict(self) -> Dict[str, Any]:
        return {
            "function_name": self.function_name,
            "calls": list(self.calls),
            "called_by": list(self.called_by),
            "is_external": self.is_external,
            "modifies_state": self.modifies_state,
        }


class CallGraph:
    """Function-level call graph of one contract."""

    def __init__(self) -> None:
        self.nodes: "OrderedDict[str, CallGraphNode]" = OrderedDict()

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, name: object) -> bool:
        return name in self.nodes

    def __getitem__(self, name: str) -> CallGraphNode:
        return self.nodes[name]

    def get(self, name: str) -> Optional[CallGraphNode]:
        return self.nodes.get(name)

    @property
    def edge_count(self) -> int:
        return sum(len(n.calls) for n in self.nodes.values())

    @property
    def roots(self) -> List[CallGraphNode]:
        """Functions nobody else calls."""
        return [n for n in self.nodes.values() if n.is_root]

    @property
    def leaves(self) -> List[CallGraphNode]:
        """Functions that call no declared function."""
        return [n for n in self.nodes.values() if n.is_leaf]

    # ----- whole-graph queries ----------------------------------------------

    def transitive_callees(self, name: str) -> Set[str]:
        """Return all functions transitively reachable from *name*."""
        visited: Set[str] = set()
        worklist: Deque[str] = deque(self.nodes[name].calls if name in self.nodes else ())
        while worklist:
            n = worklist.popleft()
            if n in visited or n not in self.nodes:
                continue
            visited.add(n)
            worklist.extend(self.nodes[n].calls)
        return visited

    def transitive_callers(self, name: str) -> Set[str]:
        visited: Set[str] = set()
        worklist: Deque[str] = deque(self.nodes[name].called_by if name in self.nodes else ())
        while worklist:
            n = worklist.popleft()
            if n in visited or n not in self.nodes:
                continue
            visited.add(n)
            worklist.extend(self.nodes[n].called_by)
        return visited

    def is_recursive(self, name: str) -> bool:
        """Is *name* part of a (possibly indirect) recursive cycle?"""
        return name in self.transitive_callees(name)

    def strongly_connected_components(self) -> List[List[str]]:
        """Tarjan's algorithm; SCCs come out callee-first."""
        counter = [0]
        stack: List[str] = []
        lowlink: Dict[str, int] = {}
        index: Dict[str, int] = {}
        on_stack: Set[str] = set()
        result: List[List[str]] = []

        def strongconnect(v: str) -> None:
            index[v] = lowlink[v] = counter[0]
            counter[0] += 1
            stack.append(v)
            on_stack.add(v)

            for w in self.nodes[v].calls:
                if w not in self.nodes:
                    continue
                if w not in index:
                    strongconnect(w)
                    lowlink[v] = min(lowlink[v], lowlink[w])
                elif w in on_stack:
                    lowlink[v] = min(lowlink[v], index[w])

            if lowlink[v] == index[v]:
                scc: List[str] = []
                while True:
                    w = stack.pop()
                    on_stack.discard(w)
                    scc.append(w)
                    if w == v:
                        break
                result.append(scc)

        for v in self.nodes:
            if v not in index:
                strongconnect(v)
        return result

    def statistics(self) -> Dict[str, Any]:
        recursive = find_recursive_functions(self)
        return {
            "functions": len(self.nodes),
            "edges": self.edge_count,
            "external_callers": sum(1 for n in self.nodes.values() if n.is_external),
            "state_modifiers": sum(1 for n in self.nodes.values() if n.modifies_state),
            "recursive_groups": len(recursive),
            "root_functions": len(self.roots),
            "leaf_functions": len(self.leaves),
        }

    # ----- serialisation ----------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {name: node.to_dict() for name, node in self.nodes.items()}

    def to_dot(self, title: Optional[str] = None) -> str:
        """Return a Graphviz DOT representation."""
        lines = ["digraph CallGraph {"]
        lines.append("  rankdir=TB;")
        if title:
            lines.append(f'  label="{title}";')
        lines.append('  node [shape=box, fontname="Helvetica", fontsize=10];')
        for n in self.nodes.values():
            if n.is_external:
                attrs = 'style=filled, fillcolor="#fff3cd"'
            elif n.modifies_state:
                attrs = 'style=filled, fillcolor="#ffcccc"'
            else:
                attrs = 'style=filled, fillcolor="#ddeeff"'
            escaped = n.function_name.replace('"', '\\"')
            lines.append(f'  "{escaped}" [{attrs}];')
        for n in self.nodes.values():
            for callee in n.calls:
                lines.append(f'  "{n.function_name}" -> "{callee}";')
        lines.append("}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"CallGraph(nodes={len(self.nodes)}, edges={self.edge_count})"


def build_callgraph(semantic: SemanticResult) -> CallGraph:
    cg = CallGraph()
    for func in semantic.program.functions():
        if func.name in cg.nodes:
            continue
        facts = semantic.function_facts(func)
        cg.nodes[func.name] = CallGraphNode(
            function_name=func.name,
            calls=list(facts.callees) if facts else [],
            is_external=facts.calls_external if facts else False,
            modifies_state=facts.modifies_state if facts else False,
            visibility=func.visibility,
        )
    for node in cg.nodes.values():
        for callee in node.calls:
            target = cg.nodes.get(callee)
            if target is not None and node.function_name not in target.called_by:
                target.called_by.append(node.function_name)
    return cg


def callgraph_summary(cg: CallGraph) -> str:
    """Return a human-readable multi-line summary."""
    stats = cg.statistics()
    lines = [
        "Call Graph Summary",
        f"  Functions:            {stats['functions']}",
        f"  Edges:                {stats['edges']}",
        f"  External callers:     {stats['external_callers']}",
        f"  State modifiers:      {stats['state_modifiers']}",
        f"  Recursive groups:     {stats['recursive_groups']}",
        f"  Root functions:       {stats['root_functions']}",
        f"  Leaf functions:       {stats['leaf_functions']}",
        "",
        "Functions:",
    ]
    for node in cg.nodes.values():
        lines.append(
            f"  {node.function_name}: "
            f"calls [{', '.join(node.calls)}], "
            f"called by [{', '.join(node.called_by)}]"
        )
    return "\n".join(lines)


def find_recursive_functions(cg: CallGraph) -> List[Set[str]]:
    """Sets of mutually-recursive functions.

    Singleton sets indicate direct self-recursion.
    """
    result: List[Set[str]] = []
    for scc in cg.strongly_connected_components():
        if len(scc) == 1:
            if cg.nodes[scc[0]].is_self_recursive:
                result.append({scc[0]})
        else:
            result.append(set(scc))
    return result


# ---------------------------------------------------------------------------
# Data-flow graph
# ---------------------------------------------------------------------------


@dataclass
class DataFlowNode:
    name: str
    kind: str  # "variable", "map" or "constant"
    readers: List[str] = field(default_factory=list)
    writers: List[str] = field(default_factory=list)
    dependencies: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "kind": self.kind,
            "readers": list(self.readers),
            "writers": list(self.writers),
            "dependencies": list(self.dependencies),
        }


class DataFlowGraph:
    def __init__(self) -> None:
        self.nodes: "OrderedDict[str, DataFlowNode]" = OrderedDict()

    def __len__(self) -> int:
        return len(self.nodes)

    def __getitem__(self, name: str) -> DataFlowNode:
        return self.nodes[name]

    def get(self, name: str) -> Optional[DataFlowNode]:
        return self.nodes.get(name)

    def of_kind(self, kind: str) -> List[DataFlowNode]:
        return [n for n in self.nodes.values() if n.kind == kind]

    def to_dict(self) -> Dict[str, Any]:
        return {name: node.to_dict() for name, node in self.nodes.items()}


def _append_unique(items: List[str], value: str) -> None:
    if value not in items:
        items.append(value)


def build_dataflow_graph(semantic: SemanticResult) -> DataFlowGraph:
    env = semantic.environment
    dfg = DataFlowGraph()
    for name in env.variables:
        dfg.nodes[name] = DataFlowNode(name, "variable")
    for name in env.maps:
        dfg.nodes.setdefault(name, DataFlowNode(name, "map"))
    for name in env.constants:
        dfg.nodes.setdefault(name, DataFlowNode(name, "constant"))

    # Entities read by each function, for the dependency pass.
    reads: Dict[str, List[str]] = {}
    facts = semantic.facts
    for func in semantic.program.functions():
        fn_reads = reads.setdefault(func.name, [])
        # storage-name arguments are covered by the side effects
        targets: Set[int] = set()
        for call, info in facts.calls_in(func.body):
            for effect in info.side_effects:
                if effect.kind not in (EffectKind.MAP_ACCESS, EffectKind.VAR_ACCESS):
                    continue
                targets.add(call.args[0].node_id)
                node = dfg.get(effect.target or "")
                if node is None:
                    continue
                if effect.is_write:
                    _append_unique(node.writers, func.name)
                else:
                    _append_unique(node.readers, func.name)
                    _append_unique(fn_reads, node.name)
        for expr in func.body:
            for sub in find_nodes_by_type(expr, A.Identifier):
                if sub.node_id in targets:
                    continue
                res = facts.resolutions.get(sub.node_id)
                if res is None or res.kind not in ("constant", "variable"):
                    continue
                node = dfg.get(res.name)
                if node is not None:
                    _append_unique(node.readers, func.name)
                    _append_unique(fn_reads, node.name)

    for node in dfg.nodes.values():
        for writer in node.writers:
            for dep in reads.get(writer, ()):
                if dep != node.name:
                    _append_unique(node.dependencies, dep)
    return dfg
