"""
SARIF 2.1.0 serializer for reckt results.

Converts an AnalysisResult to the SARIF JSON format consumed by GitHub Code
Scanning, VS Code SARIF Viewer, and other SARIF-compatible tools. Each
exposed raise becomes one result; its witness path becomes a code flow,
innermost call first.

Spec: https://docs.oasis-open.org/sarif/sarif/v2.1.0/sarif-v2.1.0.html
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from .. import __version__
from ..analyzer import AnalysisResult, RaiseFinding
from ..cfg.program import SourcePosition

# ── Rule metadata ────────────────────────────────────────────────────────────

UNRECOVERED_PANIC_RULE: dict[str, str] = {
    "id": "RECKT001",
    "name": "UnrecoveredPanic",
    "shortDescription": "Panic may reach a root of the call graph",
    "fullDescription": (
        "A panic can propagate through its callers to the program entry "
        "point, a test, or a spawned goroutine without passing through a "
        "function that defers a call to recover."
    ),
    "level": "warning",
    "precision": "medium",
    "cwe": "CWE-248",
}


# ── Public API ────────────────────────────────────────────────────────────────


def results_to_sarif(result: AnalysisResult, repo_root: Path | str | None = None) -> dict[str, Any]:
    """
    Convert an analysis result to SARIF 2.1.0 JSON.

    Parameters
    ----------
    result : AnalysisResult
        Findings of one analysis run.
    repo_root : Path, optional
        File paths under this directory are made relative to it.

    Returns
    -------
    dict
        A SARIF 2.1.0 JSON-serialisable dict.
    """
    root = Path(repo_root).resolve() if repo_root is not None else None
    meta = UNRECOVERED_PANIC_RULE

    rules = [{
        "id": meta["id"],
        "name": meta["name"],
        "shortDescription": {"text": meta["shortDescription"]},
        "fullDescription": {"text": meta["fullDescription"]},
        "defaultConfiguration": {"level": meta["level"]},
        "properties": {
            "precision": meta["precision"],
            "tags": ["correctness"],
        },
        "helpUri": f"https://cwe.mitre.org/data/definitions/{meta['cwe'].split('-')[1]}.html",
    }]

    sarif_results = [_make_result(f, root) for f in result.exposed]

    return {
        "$schema": "https://json.schemastore.org/sarif-2.1.0.json",
        "version": "2.1.0",
        "runs": [
            {
                "tool": {
                    "driver": {
                        "name": "reckt",
                        "semanticVersion": __version__,
                        "rules": rules,
                    }
                },
                "results": sarif_results,
                "invocations": [
                    {
                        "executionSuccessful": True,
                        "toolExecutionNotifications": [],
                    }
                ],
                "properties": {
                    "metrics": {
                        "raiseSites": len(result.findings),
                        "exposed": len(sarif_results),
                        "callGraphNodes": len(result.graph) if result.graph is not None else 0,
                    }
                },
            }
        ],
    }


def format_sarif(result: AnalysisResult, repo_root: Path | str | None = None) -> str:
    return json.dumps(results_to_sarif(result, repo_root), indent=2) + "\n"


def load_sarif(path: Path | str) -> dict[str, Any]:
    """Load a SARIF JSON file."""
    with open(path) as f:
        return json.load(f)


# ── Internal helpers ─────────────────────────────────────────────────────────


def _physical_location(pos: SourcePosition, repo_root: Path | None) -> dict[str, Any]:
    uri = pos.filename
    if repo_root is not None and uri and Path(uri).is_absolute():
        try:
            uri = str(Path(uri).resolve().relative_to(repo_root))
        except ValueError:
            pass  # outside the repo; keep as given
    region: dict[str, Any] = {"startLine": max(pos.line, 1)}
    if pos.column:
        region["startColumn"] = pos.column
    return {
        "artifactLocation": {"uri": uri, "uriBaseId": "%SRCROOT%"},
        "region": region,
    }


def _make_result(finding: RaiseFinding, repo_root: Path | None) -> dict[str, Any]:
    """Build a single SARIF result object with the witness as a code flow."""
    meta = UNRECOVERED_PANIC_RULE
    func_name = finding.site.function.qualified_name

    message_text = f"Panic in `{finding.site.function.name}()` reaches a root"
    if finding.unresolved:
        message_text += " (function not in call graph)"

    result: dict[str, Any] = {
        "ruleId": meta["id"],
        "ruleIndex": 0,
        "level": meta["level"],
        "message": {"text": message_text},
        "locations": [
            {
                "physicalLocation": _physical_location(finding.site.position, repo_root),
                "logicalLocations": [
                    {"fullyQualifiedName": func_name, "kind": "function"}
                ],
            }
        ],
        "properties": {
            "qualifiedName": func_name,
            "pathLength": len(finding.path or ()),
            "unresolved": finding.unresolved,
        },
    }

    flow_locations = [
        {
            "location": {
                "physicalLocation": _physical_location(finding.site.position, repo_root),
                "message": {"text": "panic"},
            }
        }
    ]
    for edge in finding.path or ():
        if not edge.position.is_valid:
            continue  # root edges have no call site
        flow_locations.append({
            "location": {
                "physicalLocation": _physical_location(edge.position, repo_root),
                "message": {"text": edge.describe()},
            }
        })
    result["codeFlows"] = [{"threadFlows": [{"locations": flow_locations}]}]

    return result
