"""
Root reachability of raise sites.

Running a plain path search on the call graph after deleting the nodes that
recover does not work: the search has to stop at *a* root, not only at the
graph root, and a ``go`` statement is an ordinary edge of the call graph. A
panic in a spawned task never reaches the spawner, so such a search would
wrongly conclude there is no path from the root.

Instead we search backwards from the function containing the panic, through
incoming call edges, until we hit a boundary:

- the graph root, or a node entered through a SPAWN edge: the panic is exposed
- a node with a deferred call that only dispatches to recovering functions:
  the panic is always stopped there, so this branch is a dead end

Boundary rules, in order (suppression wins over root/spawn status):

1. unresolved node (not in the graph)            -> success
2. some deferred call site whose callees are
   non-empty and all recover                     -> dead end
3. node is the root                              -> success
4. some incoming edge is a SPAWN edge            -> success
5. otherwise                                     -> keep searching callers

The visited set is global to one raise site's search by default, so each
node is expanded at most once. Whether a node is a boundary depends only on
the node, never on the path that led to it, so a node whose callers were
exhausted once cannot lead anywhere new later. VisitedScope.PATH only
excludes nodes on the current path instead. Both report a path in exactly the
same cases; the per-path search is exponential in the worst case.
"""

from __future__ import annotations
from enum import Enum
from typing import Callable, Dict, Iterator, List, NamedTuple, Optional, Set, Tuple

from ..cfg.call_graph import CallGraph, Edge, EdgeKind, Node
from ..cfg.program import Function, Instruction
from ..unsafe.suppression import SUPPRESSION_BUILTIN, has_suppression


class BoundaryDecision(NamedTuple):
    success: bool
    dead_end: bool


CONTINUE = BoundaryDecision(success=False, dead_end=False)
REACHED = BoundaryDecision(success=True, dead_end=False)
DEAD_END = BoundaryDecision(success=False, dead_end=True)


class VisitedScope(Enum):
    GLOBAL = "global"   # one visited set per raise site
    PATH = "path"       # only nodes on the current path are excluded


def deferred_callee_groups(node: Node) -> Dict[Instruction, List[Node]]:
    """Callees of each deferred call site of ``node``, keyed by the site."""
    groups: Dict[Instruction, List[Node]] = {}
    for edge in node.out_edges:
        if edge.kind is EdgeKind.DEFERRED:
            groups.setdefault(edge.site, []).append(edge.callee)
    return groups


def classify_boundary(
    root: Node,
    node: Optional[Node],
    suppresses: Optional[Callable[[Function], bool]] = None,
) -> BoundaryDecision:
    """
    Decide whether the backward search stops at ``node``.

    Args:
        root: The call graph root
        node: Candidate node; None when the function is not in the graph
        suppresses: Suppression predicate (defaults to has_suppression)

    Returns:
        BoundaryDecision(success, dead_end)
    """
    if node is None:
        return REACHED

    if suppresses is None:
        suppresses = has_suppression

    # Does one of the deferred calls only dispatch to functions that recover?
    for callees in deferred_callee_groups(node).values():
        if callees and all(suppresses(callee.func) for callee in callees):
            return DEAD_END

    if node is root:
        return REACHED

    for edge in node.in_edges:
        if edge.kind is EdgeKind.SPAWN:
            return REACHED

    return CONTINUE


class ReachabilitySearch:
    """
    Backward depth-first search from raise sites to boundaries.

    The graph is shared and only read. Each ``path_to_root`` call owns its own
    path, frame stack and visited set, so searches for different raise sites
    are independent of each other.
    """

    def __init__(
        self,
        graph: CallGraph,
        visited_scope: VisitedScope = VisitedScope.GLOBAL,
        suppression_builtin: str = SUPPRESSION_BUILTIN,
    ):
        self.graph = graph
        self.visited_scope = visited_scope
        self.suppression_builtin = suppression_builtin
        self._suppresses: Dict[Function, bool] = {}

    def suppresses(self, func: Function) -> bool:
        cached = self._suppresses.get(func)
        if cached is None:
            cached = has_suppression(func, self.suppression_builtin)
            self._suppresses[func] = cached
        return cached

    def classify(self, node: Optional[Node]) -> BoundaryDecision:
        return classify_boundary(self.graph.root, node, self.suppresses)

    def path_to_root(self, start: Optional[Node]) -> Optional[List[Edge]]:
        """
        Search backwards from ``start`` for a boundary.

        Returns:
            None when every branch dead-ends or the callers are exhausted.
            Otherwise the witness edges, innermost first; the list is empty
            when ``start`` itself is a boundary (or unresolved).
        """
        decision = self.classify(start)
        if decision.dead_end:
            return None
        if decision.success:
            return []

        per_path = self.visited_scope is VisitedScope.PATH
        visited: Set[Node] = {start}
        path: List[Edge] = []
        # One frame per node being expanded; len(path) == len(frames) - 1
        frames: List[Tuple[Node, Iterator[Edge]]] = [(start, iter(start.in_edges))]

        while frames:
            node, callers = frames[-1]
            edge = next(callers, None)
            if edge is None:
                frames.pop()
                if per_path:
                    visited.discard(node)
                if frames:
                    path.pop()
                continue

            caller = edge.caller
            path.append(edge)  # push
            decision = self.classify(caller)
            if decision.dead_end:
                path.pop()
                continue
            if decision.success:
                return list(path)
            if caller in visited:
                path.pop()
                continue
            visited.add(caller)
            frames.append((caller, iter(caller.in_edges)))

        return None


def path_to_root(
    graph: CallGraph,
    node: Optional[Node],
    visited_scope: VisitedScope = VisitedScope.GLOBAL,
    suppression_builtin: str = SUPPRESSION_BUILTIN,
) -> Optional[List[Edge]]:
    """One-shot form of ReachabilitySearch.path_to_root."""
    return ReachabilitySearch(graph, visited_scope, suppression_builtin).path_to_root(node)


__all__ = [
    'BoundaryDecision',
    'CONTINUE',
    'REACHED',
    'DEAD_END',
    'VisitedScope',
    'deferred_callee_groups',
    'classify_boundary',
    'ReachabilitySearch',
    'path_to_root',
]
