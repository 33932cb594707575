"""
Core analyzer: ties the program model, call graph and reachability search together.

This module implements the analysis loop:
1. Select the entry points (main package, or every test)
2. Build the call graph from the root and splice out synthetic nodes
3. Find every raise site in the program
4. Search backwards from each raise site for a root or a spawned task
5. Collect one finding per raise site, with its witness path when exposed

Setup failures (no entry point, broken call graph) are raised before any
search runs. The searches themselves cannot fail.
"""

from __future__ import annotations
from dataclasses import dataclass, field
import logging
from pathlib import Path
from typing import List, Optional, Union

from .ci.config import RecktConfig
from .cfg.call_graph import CallGraph, Edge, build_call_graph
from .cfg.program import Program
from .frontend.entry_points import detect_entry_points
from .frontend.loader import load_program
from .semantics.reachability import ReachabilitySearch, VisitedScope
from .unsafe.raise_sites import RaiseSite, find_raise_sites

logger = logging.getLogger(__name__)


@dataclass
class RaiseFinding:
    """
    Outcome for one raise site.

    ``path`` is None when no path reaches a boundary. Otherwise it is the
    witness, innermost edge first; it may be empty when the raise's own
    function is a boundary, or when that function is not in the call graph
    (``unresolved``).
    """
    site: RaiseSite
    path: Optional[List[Edge]] = None
    unresolved: bool = False

    @property
    def exposed(self) -> bool:
        return self.path is not None


@dataclass
class AnalysisResult:
    """
    Result of analysing a program.

    Verdict:
    - EXPOSED: at least one raise reaches a root
    - CONTAINED: every raise is stopped by a recovering deferred call, or
      cannot reach a root at all
    """
    findings: List[RaiseFinding] = field(default_factory=list)
    graph: Optional[CallGraph] = None
    target: str = ""
    tests: bool = False
    # When off, unresolved findings are neither reported nor counted
    report_unresolved: bool = True

    @property
    def exposed(self) -> List[RaiseFinding]:
        return [
            f for f in self.findings
            if f.exposed and (self.report_unresolved or not f.unresolved)
        ]

    @property
    def verdict(self) -> str:
        return "EXPOSED" if self.exposed else "CONTAINED"

    def summary(self) -> str:
        """Human-readable summary of result."""
        exposed = len(self.exposed)
        return (
            f"{self.verdict}: {exposed} of {len(self.findings)} raise sites reach a root"
        )


class Analyzer:
    """Runs the raise reachability analysis over a program model."""

    def __init__(self, config: Optional[RecktConfig] = None):
        self.config = config or RecktConfig()

    @property
    def tests(self) -> bool:
        return self.config.analysis.tests

    def build_graph(self, program: Program) -> CallGraph:
        entries = detect_entry_points(program, tests=self.tests)
        logger.debug("Entry points: %s", ", ".join(str(e) for e in entries))
        graph = build_call_graph(program, entries)
        graph.delete_synthetic_nodes()
        return graph

    def analyze_program(self, program: Program, target: str = "") -> AnalysisResult:
        sites = find_raise_sites(program, include_tests=self.tests)
        logger.debug("Found %d raise sites", len(sites))

        graph = self.build_graph(program)
        search = ReachabilitySearch(
            graph,
            visited_scope=VisitedScope(self.config.analysis.visited_scope),
            suppression_builtin=self.config.analysis.suppression_builtin,
        )

        result = AnalysisResult(
            graph=graph,
            target=target,
            tests=self.tests,
            report_unresolved=self.config.analysis.report_unresolved,
        )
        for site in sites:
            node = graph.node_for(site.function)
            path = search.path_to_root(node)
            finding = RaiseFinding(site=site, path=path, unresolved=node is None)
            if finding.exposed:
                logger.debug("%s: reaches root via %d edges", site, len(path))
            else:
                logger.debug("%s: contained", site)
            result.findings.append(finding)

        logger.info(result.summary())
        return result


def analyze(
    target: Union[str, Path],
    config: Optional[RecktConfig] = None,
) -> AnalysisResult:
    """
    Load a program dump and analyse it.

    Raises:
        RecktError: the program cannot be loaded, has no entry point, or its
            call graph cannot be built
    """
    program = load_program(target)
    return Analyzer(config).analyze_program(program, target=str(target))


__all__ = ['RaiseFinding', 'AnalysisResult', 'Analyzer', 'analyze']
