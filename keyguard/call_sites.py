"""
Call site collection and the intra-file call graph.

Call targets are kept as the raw text of the call's ``function`` field
(``helper``, ``self.helper``, ``table[k]``...).  Resolution is by plain
name equality against the function index, so only bare-name calls ever
match a definition.
"""

import logging
from typing import Dict, List
from dataclasses import dataclass

from tree_sitter import Node

from .python_parser import node_line, walk_type

logger = logging.getLogger(__name__)


@dataclass
class CallSite:
    """A call expression found in a function body."""
    name: str               # raw callee text, may not resolve
    node: Node              # the call node
    line: int               # 1-indexed


def collect_call_sites(body: Node, source: bytes) -> List[CallSite]:
    """Every call under ``body`` in source order, nested functions included.

    Calls whose callee text is missing or not valid UTF-8 are dropped.
    """
    sites = []
    for node in walk_type(body, "call"):
        function_node = node.child_by_field_name("function")
        if function_node is None:
            continue
        try:
            name = source[function_node.start_byte:function_node.end_byte].decode("utf-8")
        except UnicodeDecodeError:
            continue
        sites.append(CallSite(name=name, node=node, line=node_line(node)))
    return sites


class CallGraph:
    """Caller/callee relationships within one file."""

    def __init__(self):
        # callee_name -> list of (caller, CallSite)
        self._callers: Dict[str, List[tuple]] = {}
        # caller -> list of callee names
        self._callees: Dict[str, List[str]] = {}

    def add(self, caller: str, site: CallSite):
        self._callers.setdefault(site.name, []).append((caller, site))
        self._callees.setdefault(caller, []).append(site.name)

    def get_callers(self, function_name: str) -> List[tuple]:
        """All (caller, CallSite) pairs that invoke this function."""
        return self._callers.get(function_name, [])

    def get_callees(self, function_name: str) -> List[str]:
        """Callee names used by this function, in source order."""
        return self._callees.get(function_name, [])
