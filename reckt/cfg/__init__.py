"""CFG: program model and call graph."""

from .program import (
    SourcePosition,
    NO_POSITION,
    CalleeKind,
    Callee,
    InstrKind,
    Instruction,
    BasicBlock,
    Function,
    Package,
    Program,
)

from .call_graph import (
    ROOT_NAME,
    EdgeKind,
    Node,
    Edge,
    CallGraph,
    build_call_graph,
)
