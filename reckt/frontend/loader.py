"""
Frontend: load a program dump into the program model.

The dump is the SSA form of a type-checked program, exported by an external
tool together with the points-to resolution of every dynamic call. It may be
JSON or YAML:

    packages:
      - {path: example.com/app, name: main}
    functions:
      - name: main
        package: example.com/app
        position: main.go:10:6
        blocks:
          - - {op: call, callee: {function: example.com/app.run}, pos: main.go:11:5, text: "run()"}
            - {op: go, callee: {dynamic: "t0", targets: [example.com/app.worker]}}
            - {op: panic, pos: main.go:13:7}
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Union

import yaml

from ..errors import ProgramLoadError
from ..cfg.program import (
    BasicBlock,
    Callee,
    Function,
    InstrKind,
    Instruction,
    NO_POSITION,
    Package,
    Program,
    SourcePosition,
)

logger = logging.getLogger(__name__)


_OPCODES: Dict[str, InstrKind] = {
    "call": InstrKind.CALL,
    "defer": InstrKind.DEFER,
    "go": InstrKind.SPAWN,
    "spawn": InstrKind.SPAWN,
    "panic": InstrKind.RAISE,
    "raise": InstrKind.RAISE,
    "other": InstrKind.OTHER,
}


def load_program(filepath: Union[str, Path]) -> Program:
    """
    Load a program dump from disk.

    Args:
        filepath: Path to a .json, .yml or .yaml dump

    Returns:
        The program model

    Raises:
        ProgramLoadError: the file cannot be read or does not describe a program
    """
    filepath = Path(filepath)
    try:
        with open(filepath, 'r', encoding='utf-8') as f:
            if filepath.suffix == '.json':
                raw = json.load(f)
            else:
                raw = yaml.safe_load(f)
    except OSError as e:
        raise ProgramLoadError(f"cannot read {filepath}: {e.strerror or e}") from e
    except (json.JSONDecodeError, yaml.YAMLError, UnicodeDecodeError) as e:
        raise ProgramLoadError(f"cannot parse {filepath}: {e}") from e

    program = load_program_from_dict(raw, source=str(filepath))
    logger.debug(
        "Loaded %s: %d packages, %d functions",
        filepath, len(program.packages), len(program.functions),
    )
    return program


def load_program_from_dict(raw: Any, source: str = "<dict>") -> Program:
    """Build the program model from an already-parsed dump."""
    if not isinstance(raw, Mapping):
        raise ProgramLoadError(f"{source}: expected a mapping at top level")

    program = Program()
    for i, pkg in enumerate(_as_list(raw.get("packages", []), f"{source}: packages")):
        if not isinstance(pkg, Mapping) or "path" not in pkg:
            raise ProgramLoadError(f"{source}: packages[{i}] needs a 'path'")
        path = str(pkg["path"])
        program.packages.append(Package(path=path, name=str(pkg.get("name", path.rsplit("/", 1)[-1]))))

    for i, fn in enumerate(_as_list(raw.get("functions", []), f"{source}: functions")):
        where = f"{source}: functions[{i}]"
        func = _parse_function(fn, where)
        if func.qualified_name in program.functions:
            raise ProgramLoadError(f"{where}: duplicate function {func.qualified_name}")
        program.add_function(func)

    return program


def _parse_function(raw: Any, where: str) -> Function:
    if not isinstance(raw, Mapping) or "name" not in raw:
        raise ProgramLoadError(f"{where}: a function needs a 'name'")

    blocks: List[BasicBlock] = []
    for index, block in enumerate(_as_list(raw.get("blocks", []), f"{where}: blocks")):
        # A block is either a bare instruction list or {instructions: [...]}
        if isinstance(block, Mapping):
            block = block.get("instructions", [])
        instrs = tuple(
            _parse_instruction(instr, f"{where}: blocks[{index}][{j}]")
            for j, instr in enumerate(_as_list(block, f"{where}: blocks[{index}]"))
        )
        blocks.append(BasicBlock(index=index, instructions=instrs))

    synthetic = raw.get("synthetic", "")
    if synthetic is True:
        synthetic = "synthetic"
    elif not synthetic:
        synthetic = ""

    return Function(
        name=str(raw["name"]),
        package=str(raw.get("package") or ""),
        blocks=tuple(blocks),
        position=_parse_position(raw.get("position", raw.get("pos")), where),
        synthetic=str(synthetic),
        test_only=bool(raw.get("test_only", raw.get("test-only", False))),
    )


def _parse_instruction(raw: Any, where: str) -> Instruction:
    if not isinstance(raw, Mapping):
        raise ProgramLoadError(f"{where}: an instruction must be a mapping")
    op = str(raw.get("op", "other")).lower()
    kind = _OPCODES.get(op)
    if kind is None:
        raise ProgramLoadError(f"{where}: unknown op {op!r}")

    callee = None
    if kind in (InstrKind.CALL, InstrKind.DEFER, InstrKind.SPAWN):
        if "callee" not in raw:
            raise ProgramLoadError(f"{where}: {op} needs a 'callee'")
        callee = _parse_callee(raw["callee"], where)

    return Instruction(
        kind=kind,
        position=_parse_position(raw.get("pos", raw.get("position")), where),
        text=str(raw.get("text", "")),
        callee=callee,
    )


def _parse_callee(raw: Any, where: str) -> Callee:
    if isinstance(raw, str):
        return Callee.function(raw)
    if not isinstance(raw, Mapping):
        raise ProgramLoadError(f"{where}: bad callee {raw!r}")
    if "builtin" in raw:
        return Callee.builtin(str(raw["builtin"]))
    if "function" in raw:
        return Callee.function(str(raw["function"]))
    if "dynamic" in raw:
        targets = _as_list(raw.get("targets", []), f"{where}: targets")
        return Callee.dynamic(str(raw["dynamic"]), [str(t) for t in targets])
    raise ProgramLoadError(f"{where}: callee needs 'builtin', 'function' or 'dynamic'")


def _parse_position(raw: Any, where: str) -> SourcePosition:
    """Accept ``{file, line, column}`` or ``"file:line[:col]"``."""
    if raw is None:
        return NO_POSITION
    try:
        if isinstance(raw, Mapping):
            return SourcePosition(
                filename=str(raw.get("file", raw.get("filename", ""))),
                line=int(raw.get("line", 0)),
                column=int(raw.get("column", raw.get("col", 0))),
            )
        parts = str(raw).rsplit(":", 2)
        if len(parts) == 3 and parts[1].isdigit() and parts[2].isdigit():
            return SourcePosition(parts[0], int(parts[1]), int(parts[2]))
        parts = str(raw).rsplit(":", 1)
        if len(parts) == 2 and parts[1].isdigit():
            return SourcePosition(parts[0], int(parts[1]))
    except (TypeError, ValueError) as e:
        raise ProgramLoadError(f"{where}: bad position {raw!r}") from e
    raise ProgramLoadError(f"{where}: bad position {raw!r}")


def _as_list(value: Any, where: str) -> list:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ProgramLoadError(f"{where}: expected a list")
    return value
