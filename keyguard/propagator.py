"""
Exception propagator — monotone fixed point over the function index.

Each function's may-raise set is the union of
  • local contribution:     KeyError if the body holds an unguarded subscript
  • inherited contribution: the labels of every known callee, restricted to
                            the labels the call site is not guarded against

Passes visit functions in index order and are repeated until one pass adds
nothing.  Sets only grow and are bounded by the finite label universe, so
the loop terminates at the least fixed point whatever the visiting order.
"""

import logging
from typing import Dict, List, Set

from tree_sitter import Node

from .call_sites import CallSite, collect_call_sites
from .config import KEY_ERROR
from .function_index import FunctionInfo
from .guards import GuardChecker
from .python_parser import walk_type

logger = logging.getLogger(__name__)


def local_accesses(info: FunctionInfo, guards: GuardChecker) -> List[Node]:
    """Unguarded subscript nodes in the function's subtree, cached on ``info``."""
    if info.accesses is None:
        info.accesses = [
            node for node in walk_type(info.node, "subscript")
            if not guards.is_guarded(node, KEY_ERROR)
        ]
    return info.accesses


def call_sites_of(info: FunctionInfo, source: bytes) -> List[CallSite]:
    """Call sites in the function's subtree, cached on ``info``."""
    if info.calls is None:
        info.calls = collect_call_sites(info.node, source)
    return info.calls


def unguarded_labels(site: CallSite, callee: FunctionInfo, guards: GuardChecker) -> Set[str]:
    """Labels of ``callee`` that would escape through ``site``."""
    return {label for label in callee.may_raise if not guards.is_guarded(site.node, label)}


class ExceptionPropagator:
    """Computes may-raise sets for every entry of a function index."""

    def __init__(self, functions: Dict[str, FunctionInfo], source: bytes,
                 guards: GuardChecker):
        self.functions = functions
        self.source = source
        self.guards = guards
        self.passes = 0

    def contribution(self, info: FunctionInfo) -> Set[str]:
        """Labels ``info`` may raise given the current state of its callees."""
        labels: Set[str] = set()
        if local_accesses(info, self.guards):
            labels.add(KEY_ERROR)

        for site in call_sites_of(info, self.source):
            callee = self.functions.get(site.name)
            if callee is None or not callee.may_raise:
                continue
            labels |= unguarded_labels(site, callee, self.guards)
        return labels

    def run_pass(self) -> bool:
        """One full pass over the index; returns True if any set grew."""
        self.passes += 1
        progress = False
        for name, info in self.functions.items():
            new_labels = self.contribution(info)
            if not new_labels <= info.may_raise:
                logger.debug(
                    "pass %d: '%s' may raise %s",
                    self.passes, name, sorted(new_labels - info.may_raise),
                )
                info.may_raise |= new_labels
                progress = True
        return progress

    def run(self) -> int:
        """Iterate to the fixed point and return the number of passes made."""
        start = self.passes
        while self.run_pass():
            pass
        made = self.passes - start
        logger.debug("fixed point reached after %d pass(es)", made)
        return made
