"""
Call Graph Construction.

G_call = (V, E) where:
- V has one node per function reachable from the root
- E holds one edge per (call site, possible callee) pair

The root is a synthetic function, ``<root>``, with a site-less edge to each
entry point: ``main.init`` and ``main.main`` for a program, or every test
function when analysing tests. Edges keep the instruction they came from, and
the edge kind is read off that instruction:

- DIRECT:   an ordinary call (or a root edge, which has no site)
- DEFERRED: a ``defer`` statement
- SPAWN:    a ``go`` statement; the callee runs as an independent task

The graph is built once and only read afterwards.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum, auto
import itertools
import logging
from typing import Dict, Iterable, List, Optional, Set, Tuple

from ..errors import CallGraphError
from .program import (
    Function,
    Instruction,
    InstrKind,
    NO_POSITION,
    Program,
    SourcePosition,
)

logger = logging.getLogger(__name__)

ROOT_NAME = "<root>"


class EdgeKind(Enum):
    DIRECT = auto()
    DEFERRED = auto()
    SPAWN = auto()


def edge_kind_for(site: Optional[Instruction]) -> EdgeKind:
    """Infer the edge kind from its call-site instruction."""
    if site is None:
        return EdgeKind.DIRECT
    if site.kind is InstrKind.DEFER:
        return EdgeKind.DEFERRED
    if site.kind is InstrKind.SPAWN:
        return EdgeKind.SPAWN
    return EdgeKind.DIRECT


@dataclass(eq=False)
class Node:
    func: Function
    id: int
    in_edges: List["Edge"] = field(default_factory=list)
    out_edges: List["Edge"] = field(default_factory=list)

    def __str__(self) -> str:
        return f"n{self.id}:{self.func}"

    def __repr__(self) -> str:
        return f"Node({self.id}, {self.func.qualified_name!r})"


@dataclass(eq=False)
class Edge:
    caller: Node
    site: Optional[Instruction]
    callee: Node

    @property
    def kind(self) -> EdgeKind:
        return edge_kind_for(self.site)

    @property
    def position(self) -> SourcePosition:
        if self.site is None:
            return NO_POSITION
        return self.site.position

    def describe(self) -> str:
        """Human-readable form of the call site."""
        if self.site is not None:
            return str(self.site)
        return f"{self.caller.func} --> {self.callee.func}"

    def __str__(self) -> str:
        return self.describe()

    def __repr__(self) -> str:
        return f"Edge({self.caller.func} -> {self.callee.func}, {self.kind.name})"


class CallGraph:
    """
    Call graph with a distinguished root node.

    Nodes are created on demand per function; ``in_edges`` and ``out_edges``
    keep insertion order so that every traversal is deterministic.
    """

    def __init__(self, root_function: Optional[Function] = None):
        self._ids = itertools.count()
        self.nodes: Dict[Function, Node] = {}
        if root_function is None:
            root_function = Function(ROOT_NAME, synthetic="root")
        self.root = self.create_node(root_function)

    def create_node(self, func: Function) -> Node:
        """Return the node for ``func``, creating it if needed."""
        node = self.nodes.get(func)
        if node is None:
            node = Node(func, next(self._ids))
            self.nodes[func] = node
        return node

    def node_for(self, func: Function) -> Optional[Node]:
        return self.nodes.get(func)

    def add_edge(self, caller: Node, site: Optional[Instruction], callee: Node) -> Edge:
        edge = Edge(caller, site, callee)
        caller.out_edges.append(edge)
        callee.in_edges.append(edge)
        return edge

    def delete_node(self, node: Node) -> None:
        """Remove a node and every edge touching it."""
        for edge in node.in_edges:
            if edge.caller is not node:
                edge.caller.out_edges.remove(edge)
        for edge in node.out_edges:
            if edge.callee is not node:
                edge.callee.in_edges.remove(edge)
        node.in_edges = []
        node.out_edges = []
        del self.nodes[node.func]

    def delete_synthetic_nodes(self) -> int:
        """
        Splice compiler-generated functions out of the graph.

        Each synthetic node (other than the root and package initialisers)
        is replaced by edges from its callers straight to its callees; the
        new edge keeps the caller's call site. Duplicate edges are not added.

        Returns:
            Number of nodes removed.
        """
        existing: Set[Tuple[int, int, int]] = {
            _edge_key(e.caller, e.site, e.callee)
            for node in self.nodes.values()
            for e in node.out_edges
        }
        removed = 0
        for func, node in list(self.nodes.items()):
            if node is self.root or not func.synthetic or func.is_init:
                continue
            for e_in in list(node.in_edges):
                for e_out in list(node.out_edges):
                    if e_in.caller is node or e_out.callee is node:
                        continue  # self-loop on the wrapper itself
                    key = _edge_key(e_in.caller, e_in.site, e_out.callee)
                    if key in existing:
                        continue
                    self.add_edge(e_in.caller, e_in.site, e_out.callee)
                    existing.add(key)
            self.delete_node(node)
            removed += 1
        if removed:
            logger.debug("Deleted %d synthetic call graph nodes", removed)
        return removed

    def edges(self) -> Iterable[Edge]:
        for node in self.nodes.values():
            yield from node.out_edges

    def __len__(self) -> int:
        return len(self.nodes)


def _edge_key(caller: Node, site: Optional[Instruction], callee: Node) -> Tuple[int, int, int]:
    return (id(caller), id(site), id(callee))


def build_call_graph(program: Program, entry_points: List[Function]) -> CallGraph:
    """
    Build the call graph of everything reachable from ``entry_points``.

    Call targets come from the program dump (already resolved by points-to
    analysis). Built-in callees produce no edges.

    Raises:
        CallGraphError: a call site names a function the program lacks
    """
    graph = CallGraph()
    worklist: List[Function] = []

    for entry in entry_points:
        if entry not in graph.nodes:
            worklist.append(entry)
        graph.add_edge(graph.root, None, graph.create_node(entry))

    seen: Set[Function] = set()
    while worklist:
        func = worklist.pop(0)
        if func in seen:
            continue
        seen.add(func)
        caller = graph.create_node(func)

        for instr in func.instructions():
            if not instr.is_call or instr.callee is None or instr.callee.is_builtin:
                continue
            for target_name in instr.callee.targets:
                target = program.function(target_name)
                if target is None:
                    raise CallGraphError(
                        f"{instr.position}: call in {func} targets unknown function {target_name}"
                    )
                callee = graph.create_node(target)
                graph.add_edge(caller, instr, callee)
                if target not in seen:
                    worklist.append(target)

    logger.debug(
        "Call graph: %d nodes, %d edges",
        len(graph.nodes),
        sum(1 for _ in graph.edges()),
    )
    return graph


__all__ = [
    'ROOT_NAME',
    'EdgeKind',
    'edge_kind_for',
    'Node',
    'Edge',
    'CallGraph',
    'build_call_graph',
]
