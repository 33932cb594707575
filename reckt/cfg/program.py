"""
Program model consumed by the analysis.

A program is a set of packages and functions in SSA form: each function is an
ordered list of basic blocks, each block an ordered list of instructions. Only
the instruction shapes the analysis cares about are distinguished:

- CALL:   synchronous call
- DEFER:  call scheduled to run on every exit of the enclosing function
- SPAWN:  call that launches an independently scheduled task (``go f()``)
- RAISE:  abrupt termination (``panic``)
- OTHER:  everything else

Call-like instructions carry a Callee: a static function reference, a dynamic
value whose possible targets were resolved by points-to analysis, or a named
built-in such as ``recover``.

The model is immutable once built. Functions and instructions compare by
identity so that they can key dictionaries even when two of them look alike.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Dict, Iterator, List, Optional, Tuple


@dataclass(frozen=True)
class SourcePosition:
    """A file/line/column triple. Line 0 means the position is unknown."""
    filename: str = ""
    line: int = 0
    column: int = 0

    @property
    def is_valid(self) -> bool:
        return self.line > 0

    def __str__(self) -> str:
        if not self.is_valid:
            return "-"
        if self.column:
            return f"{self.filename}:{self.line}:{self.column}"
        return f"{self.filename}:{self.line}"


NO_POSITION = SourcePosition()


class CalleeKind(Enum):
    """What a call instruction invokes."""
    FUNCTION = auto()   # static reference to a declared function
    DYNAMIC = auto()    # interface method / closure, resolved by points-to
    BUILTIN = auto()    # panic, recover, len, ...


@dataclass(frozen=True)
class Callee:
    kind: CalleeKind
    name: str
    # Qualified names of the functions this call may invoke
    targets: Tuple[str, ...] = ()

    @classmethod
    def function(cls, name: str) -> "Callee":
        return cls(CalleeKind.FUNCTION, name, (name,))

    @classmethod
    def dynamic(cls, description: str, targets) -> "Callee":
        return cls(CalleeKind.DYNAMIC, description, tuple(targets))

    @classmethod
    def builtin(cls, name: str) -> "Callee":
        return cls(CalleeKind.BUILTIN, name)

    @property
    def is_builtin(self) -> bool:
        return self.kind is CalleeKind.BUILTIN


class InstrKind(Enum):
    CALL = auto()
    DEFER = auto()
    SPAWN = auto()
    RAISE = auto()
    OTHER = auto()


CALL_KINDS = frozenset({InstrKind.CALL, InstrKind.DEFER, InstrKind.SPAWN})


@dataclass(frozen=True, eq=False)
class Instruction:
    kind: InstrKind
    position: SourcePosition = NO_POSITION
    text: str = ""
    callee: Optional[Callee] = None

    @property
    def is_call(self) -> bool:
        return self.kind in CALL_KINDS

    def is_call_to_builtin(self, name: str) -> bool:
        """True for a plain CALL of the built-in called ``name``."""
        return (
            self.kind is InstrKind.CALL
            and self.callee is not None
            and self.callee.is_builtin
            and self.callee.name == name
        )

    def __str__(self) -> str:
        if self.text:
            return self.text
        if self.callee is not None:
            prefix = {InstrKind.DEFER: "defer ", InstrKind.SPAWN: "go "}.get(self.kind, "")
            return f"{prefix}{self.callee.name}(...)"
        return self.kind.name.lower()


@dataclass(frozen=True, eq=False)
class BasicBlock:
    index: int
    instructions: Tuple[Instruction, ...] = ()


@dataclass(frozen=True, eq=False)
class Function:
    name: str
    package: str = ""
    blocks: Tuple[BasicBlock, ...] = ()
    position: SourcePosition = NO_POSITION
    # Non-empty when the function was produced by the compiler (wrappers,
    # thunks, bound closures) rather than written by the user
    synthetic: str = ""
    # Declared in a _test file
    test_only: bool = False

    @property
    def qualified_name(self) -> str:
        if self.package:
            return f"{self.package}.{self.name}"
        return self.name

    @property
    def is_init(self) -> bool:
        return self.name == "init"

    def instructions(self) -> Iterator[Instruction]:
        """All instructions, block by block, in order."""
        for block in self.blocks:
            yield from block.instructions

    def __str__(self) -> str:
        return self.qualified_name

    def __repr__(self) -> str:
        return f"Function({self.qualified_name!r})"


@dataclass(frozen=True)
class Package:
    path: str
    name: str


@dataclass
class Program:
    """Whole-program closure: every package and every function."""
    packages: List[Package] = field(default_factory=list)
    functions: Dict[str, Function] = field(default_factory=dict)

    def add_function(self, func: Function) -> None:
        self.functions[func.qualified_name] = func

    def function(self, qualified_name: str) -> Optional[Function]:
        return self.functions.get(qualified_name)

    def package_functions(self, package_path: str) -> List[Function]:
        return [f for f in self.functions.values() if f.package == package_path]

    def all_functions(self, include_tests: bool = False) -> List[Function]:
        """Every function in the program, in definition order.

        Test-only functions are left out unless ``include_tests`` is set.
        """
        return [
            f for f in self.functions.values()
            if include_tests or not f.test_only
        ]


__all__ = [
    'SourcePosition',
    'NO_POSITION',
    'CalleeKind',
    'Callee',
    'InstrKind',
    'CALL_KINDS',
    'Instruction',
    'BasicBlock',
    'Function',
    'Package',
    'Program',
]
