"""
KeyError Analyzer — per-file orchestration.

Runs the full pipeline for one file at a time:

    source → tree → function index → fixed-point propagation → diagnostics

Nothing is shared between files: each call builds a fresh index, guard
cache and dedup set.  Batch analysis isolates failures per file.
"""

import logging
from typing import Dict, Iterator, List, Optional, Union
from dataclasses import dataclass

from tree_sitter import Tree

from .call_sites import CallGraph
from .config import AnalyzerConfig
from .errors import KeyguardError
from .function_index import FunctionInfo, build_function_index
from .guards import GuardChecker
from .propagator import ExceptionPropagator, call_sites_of
from .python_parser import parse_source, read_source
from .reporter import Diagnostic, DiagnosticReporter

logger = logging.getLogger(__name__)


@dataclass
class FileAnalysis:
    """Outcome of analyzing one file."""
    file_path: str
    source: bytes
    tree: Tree
    functions: Dict[str, FunctionInfo]
    diagnostics: List[Diagnostic]
    passes: int

    def call_graph(self) -> CallGraph:
        """Call relationships between the indexed functions."""
        graph = CallGraph()
        for name, info in self.functions.items():
            for site in call_sites_of(info, self.source):
                graph.add(name, site)
        return graph


@dataclass
class FileResult:
    """Batch entry: either an analysis or the error that stopped it."""
    file_path: str
    analysis: Optional[FileAnalysis] = None
    error: Optional[KeyguardError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class KeyErrorAnalyzer:
    """Finds subscript accesses whose KeyError can escape uncaught.

    Usage:
        analyzer = KeyErrorAnalyzer()
        result = analyzer.analyze_file("app/handlers.py")
        for diag in result.diagnostics:
            print(diag.render())
    """

    def __init__(self, config: Optional[AnalyzerConfig] = None):
        self.config = config or AnalyzerConfig()

    def analyze_file(self, file_path: str) -> FileAnalysis:
        """Read, parse and analyze one file.  Raises KeyguardError subclasses."""
        source = read_source(file_path, self.config)
        return self.analyze_source(source, file_path)

    def analyze_source(self, source: Union[str, bytes],
                       file_path: str = "<source>") -> FileAnalysis:
        """Analyze in-memory source text attributed to ``file_path``."""
        if isinstance(source, str):
            source = source.encode("utf-8")

        tree = parse_source(source, file_path, strict=self.config.strict_syntax)
        functions = build_function_index(
            tree.root_node, source, file_path, module_name=self.config.module_name
        )
        guards = GuardChecker(source, self.config)

        passes = ExceptionPropagator(functions, source, guards).run()
        diagnostics = DiagnosticReporter(
            functions, source, guards, file_path, self.config
        ).report()

        logger.info(
            "%s: %d function(s), fixed point after %d pass(es), %d diagnostic(s)",
            file_path, len(functions) - 1, passes, len(diagnostics),
        )
        return FileAnalysis(
            file_path=file_path,
            source=source,
            tree=tree,
            functions=functions,
            diagnostics=diagnostics,
            passes=passes,
        )

    def analyze_paths(self, paths: List[str]) -> Iterator[FileResult]:
        """Analyze each path in order, yielding one result per file.

        A failing file does not stop the batch.  Results are produced lazily
        so a caller can consume each file before the next one is parsed.
        """
        for path in paths:
            try:
                yield FileResult(path, analysis=self.analyze_file(path))
            except KeyguardError as e:
                logger.info("Skipping %s: %s", path, e.reason)
                yield FileResult(path, error=e)
