"""
Small builders for program models and call graphs used across the tests.

    prog = program(
        func("main", call("helper")),
        func("helper", panic()),
    )
"""

from __future__ import annotations

import itertools

from reckt.cfg.call_graph import CallGraph
from reckt.cfg.program import (
    BasicBlock,
    Callee,
    Function,
    InstrKind,
    Instruction,
    Package,
    Program,
    SourcePosition,
)

PKG = "example.com/app"

_lines = itertools.count(1)


def _pos() -> SourcePosition:
    return SourcePosition("main.go", next(_lines), 2)


def _callee(target) -> Callee:
    if isinstance(target, Callee):
        return target
    if isinstance(target, (list, tuple)):
        return Callee.dynamic("f", [_qualify(t) for t in target])
    return Callee.function(_qualify(target))


def _qualify(name: str) -> str:
    return name if "/" in name or "." in name else f"{PKG}.{name}"


def call(target) -> Instruction:
    callee = _callee(target)
    return Instruction(InstrKind.CALL, _pos(), f"{callee.name}()", callee)


def defer(target) -> Instruction:
    callee = _callee(target)
    return Instruction(InstrKind.DEFER, _pos(), f"defer {callee.name}()", callee)


def go(target) -> Instruction:
    callee = _callee(target)
    return Instruction(InstrKind.SPAWN, _pos(), f"go {callee.name}()", callee)


def builtin(name: str) -> Instruction:
    return Instruction(InstrKind.CALL, _pos(), f"{name}()", Callee.builtin(name))


def recover() -> Instruction:
    return builtin("recover")


def panic() -> Instruction:
    return Instruction(InstrKind.RAISE, _pos(), "panic(err)")


def other() -> Instruction:
    return Instruction(InstrKind.OTHER, _pos(), "t0 = 1 + 2")


def func(name: str, *instrs, blocks=None, package: str = PKG, synthetic: str = "",
         test_only: bool = False) -> Function:
    """A function with ``instrs`` in one block, or with explicit ``blocks``."""
    if blocks is None:
        blocks = [list(instrs)]
    return Function(
        name=name,
        package=package,
        blocks=tuple(BasicBlock(i, tuple(b)) for i, b in enumerate(blocks)),
        synthetic=synthetic,
        test_only=test_only,
    )


def program(*funcs: Function, packages=None) -> Program:
    prog = Program(packages=packages if packages is not None else [Package(PKG, "main")])
    for f in funcs:
        prog.add_function(f)
    return prog


class GraphBuilder:
    """
    Hand-built call graph for the reachability tests.

        g = GraphBuilder()
        g.call("root", "A").go("A", "B")
        g.node("B")

    ``"root"`` names the graph root. Every edge gets its own site instruction.
    """

    def __init__(self):
        self.funcs = {}
        self.graph = CallGraph(Function("<root>", synthetic="root"))
        self.funcs["root"] = self.graph.root.func

    def function(self, name: str, *instrs) -> Function:
        if name not in self.funcs:
            self.funcs[name] = func(name, *instrs)
        return self.funcs[name]

    def define(self, name: str, *instrs) -> "GraphBuilder":
        self.funcs[name] = func(name, *instrs)
        self.graph.create_node(self.funcs[name])
        return self

    def node(self, name: str):
        return self.graph.create_node(self.function(name))

    def _edge(self, kind: InstrKind, caller: str, callee: str, site=None):
        if site is None:
            site = Instruction(kind, _pos(), f"{caller}->{callee}", Callee.function(callee))
        return self.graph.add_edge(self.node(caller), site, self.node(callee))

    def call(self, caller: str, callee: str, site=None) -> "GraphBuilder":
        self._edge(InstrKind.CALL, caller, callee, site)
        return self

    def defer(self, caller: str, callee: str, site=None) -> "GraphBuilder":
        self._edge(InstrKind.DEFER, caller, callee, site)
        return self

    def go(self, caller: str, callee: str, site=None) -> "GraphBuilder":
        self._edge(InstrKind.SPAWN, caller, callee, site)
        return self

    def edge_names(self, path):
        """Render a witness path as ``caller->callee`` strings."""
        names = {f: n for n, f in self.funcs.items()}
        return [f"{names[e.caller.func]}->{names[e.callee.func]}" for e in path]
