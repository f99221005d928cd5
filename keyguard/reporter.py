"""
Diagnostic reporter.

Runs after the propagator has converged, in two passes over the index:

  1. Local pass     — one warning per unguarded subscript, per function.
                      Top-level code is skipped unless configured otherwise,
                      but its flag is still recorded.
  2. Call-site pass — one warning per unguarded call to a known function
                      that may raise, unless that function already got a
                      local warning or the (line, callee) pair was reported.

The local pass completes before the call-site pass starts, so suppression
never depends on the order in which functions were defined.
"""

import logging
from typing import Dict, List, Optional, Set, Tuple

from pydantic import BaseModel

from .config import AnalyzerConfig, KEY_ERROR
from .function_index import FunctionInfo
from .guards import GuardChecker
from .propagator import call_sites_of, local_accesses, unguarded_labels
from .python_parser import node_line

logger = logging.getLogger(__name__)


class Diagnostic(BaseModel):
    file_path: str
    line: int
    column: int = 0
    kind: str                       # "local" | "call"
    function: str                   # enclosing function of the finding
    callee: Optional[str] = None    # called function, for "call" findings
    labels: List[str] = []
    message: str

    def render(self) -> str:
        return f"{self.file_path}:{self.line}: Warning: {self.message}"


class DiagnosticReporter:
    """Turns a converged function index into deduplicated diagnostics."""

    def __init__(self, functions: Dict[str, FunctionInfo], source: bytes,
                 guards: GuardChecker, file_path: str,
                 config: Optional[AnalyzerConfig] = None):
        self.functions = functions
        self.source = source
        self.guards = guards
        self.file_path = file_path
        self.config = config or AnalyzerConfig()
        self._reported_calls: Set[Tuple[int, str]] = set()

    def report(self) -> List[Diagnostic]:
        diagnostics: List[Diagnostic] = []
        for name, info in self.functions.items():
            diagnostics.extend(self._report_local(name, info))
        for name, info in self.functions.items():
            diagnostics.extend(self._report_calls(name, info))

        diagnostics.sort(key=lambda d: (d.line, d.column, d.message))
        return diagnostics

    # ────────────────────────────────────────────────────────────────
    #  Passes
    # ────────────────────────────────────────────────────────────────

    def _report_local(self, name: str, info: FunctionInfo) -> List[Diagnostic]:
        accesses = local_accesses(info, self.guards)
        if not accesses:
            return []
        info.reported_locally = True

        if name == self.config.module_name and not self.config.report_module_accesses:
            return []

        return [
            Diagnostic(
                file_path=self.file_path,
                line=node_line(node),
                column=node.start_point[1],
                kind="local",
                function=name,
                labels=[KEY_ERROR],
                message=f"Possible {KEY_ERROR} in function '{name}'",
            )
            for node in accesses
        ]

    def _report_calls(self, name: str, info: FunctionInfo) -> List[Diagnostic]:
        out = []
        for site in call_sites_of(info, self.source):
            callee = self.functions.get(site.name)
            if callee is None or not callee.may_raise:
                continue
            labels = unguarded_labels(site, callee, self.guards)
            if not labels:
                continue

            key = (site.line, site.name)
            if key in self._reported_calls or callee.reported_locally:
                continue
            self._reported_calls.add(key)

            ordered = sorted(labels)
            out.append(Diagnostic(
                file_path=self.file_path,
                line=site.line,
                column=site.node.start_point[1],
                kind="call",
                function=name,
                callee=site.name,
                labels=ordered,
                message=(
                    f"Possible {', '.join(ordered)} not handled when calling "
                    f"'{site.name}' in function '{name}'"
                ),
            ))
        return out
