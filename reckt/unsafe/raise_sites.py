"""
RAISE: abrupt termination that may escape to a root of the call graph.

A raise site is any RAISE instruction (a Go ``panic``). This module only finds
them; whether one can reach a root is decided by
``reckt.semantics.reachability``.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import List

from ..cfg.program import Function, Instruction, InstrKind, Program, SourcePosition


@dataclass(frozen=True, eq=False)
class RaiseSite:
    """One abrupt-termination instruction and the function it lives in."""
    function: Function
    instruction: Instruction

    @property
    def position(self) -> SourcePosition:
        return self.instruction.position

    def __str__(self) -> str:
        return f"{self.position} in {self.function}"


def find_raise_sites(program: Program, include_tests: bool = False) -> List[RaiseSite]:
    """
    Find every raise instruction in the program.

    Every block of every function is scanned once, in definition order. Sites
    are neither filtered nor deduplicated, and the program is not modified.
    """
    sites = []
    for func in program.all_functions(include_tests=include_tests):
        for block in func.blocks:
            for instr in block.instructions:
                if instr.kind is InstrKind.RAISE:
                    sites.append(RaiseSite(func, instr))
    return sites


__all__ = ['RaiseSite', 'find_raise_sites']
