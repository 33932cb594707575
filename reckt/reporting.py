"""
Text and JSON reports for analysis results.

The text form lists each exposed raise followed by its witness path, one call
site per line:

    Panic at main.go:12:3 reaches root
    	 main.go:20:6 helper()
    	 <root> --> example.com/app.main
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Optional, TextIO

from . import __version__
from .analyzer import AnalysisResult, RaiseFinding
from .cfg.call_graph import Edge


def format_edge(edge: Edge) -> str:
    """One witness line: site position and site text, or the bare edge."""
    if edge.site is not None:
        return f"\t {edge.position} {edge.describe()}"
    return f"\t {edge.describe()}"


def format_finding(finding: RaiseFinding) -> str:
    lines = [f"Panic at {finding.site.position} reaches root"]
    if finding.unresolved:
        lines[0] += f" ({finding.site.function} not in call graph)"
    for edge in finding.path or ():
        lines.append(format_edge(edge))
    return "\n".join(lines)


def format_text(result: AnalysisResult) -> str:
    """Every exposed raise with its witness path."""
    return "".join(format_finding(f) + "\n" for f in result.exposed)


def edge_to_dict(edge: Edge) -> dict[str, Any]:
    return {
        "position": str(edge.position) if edge.position.is_valid else None,
        "site": str(edge.site) if edge.site is not None else None,
        "caller": edge.caller.func.qualified_name,
        "callee": edge.callee.func.qualified_name,
        "kind": edge.kind.name.lower(),
    }


def finding_to_dict(finding: RaiseFinding) -> dict[str, Any]:
    return {
        "position": str(finding.site.position),
        "function": finding.site.function.qualified_name,
        "unresolved": finding.unresolved,
        "path": [edge_to_dict(e) for e in finding.path or ()],
    }


def result_to_dict(result: AnalysisResult) -> dict[str, Any]:
    return {
        "version": __version__,
        "target": result.target,
        "tests": result.tests,
        "verdict": result.verdict,
        "raise_sites": len(result.findings),
        "exposed": [finding_to_dict(f) for f in result.exposed],
    }


def format_json(result: AnalysisResult) -> str:
    return json.dumps(result_to_dict(result), indent=2) + "\n"


def write_report(text: str, output: Optional[Path] = None, stream: Optional[TextIO] = None) -> None:
    """Write a rendered report to ``output``, or to ``stream`` (stdout)."""
    if output is None:
        (stream or sys.stdout).write(text)
        return
    output = Path(output)
    output.parent.mkdir(parents=True, exist_ok=True)
    with open(output, "w") as f:
        f.write(text)


__all__ = [
    'format_edge',
    'format_finding',
    'format_text',
    'edge_to_dict',
    'finding_to_dict',
    'result_to_dict',
    'format_json',
    'write_report',
]
