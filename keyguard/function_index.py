"""
Function index — one entry per function definition plus the module.

The index is a name-keyed, insertion-ordered mapping.  Its order (pre-order
declaration order, module entry last) is the canonical order in which
propagation and reporting visit functions.
"""

import logging
from typing import Dict, List, Optional, Set
from dataclasses import dataclass, field

from tree_sitter import Node

from .call_sites import CallSite
from .config import MODULE_FUNCTION
from .errors import MalformedTreeError
from .python_parser import node_line, walk_type

logger = logging.getLogger(__name__)


@dataclass
class FunctionInfo:
    """Exception profile of one function (or of top-level code)."""
    name: str
    node: Node              # function_definition node, or the tree root
    may_raise: Set[str] = field(default_factory=set)
    reported_locally: bool = False
    # Filled lazily by the propagator
    accesses: Optional[List[Node]] = field(default=None, repr=False)
    calls: Optional[List[CallSite]] = field(default=None, repr=False)

    @property
    def start_line(self) -> int:
        return node_line(self.node)

    @property
    def end_line(self) -> int:
        return self.node.end_point[0] + 1


def build_function_index(root: Node, source: bytes, file_path: str = "<source>",
                         module_name: str = MODULE_FUNCTION) -> Dict[str, FunctionInfo]:
    """Index every function_definition under ``root`` by name.

    Nested functions and methods are included.  A later definition with an
    already-seen name replaces the earlier one.  The module entry, whose
    node is ``root`` itself, is added last.
    """
    functions: Dict[str, FunctionInfo] = {}

    for node in walk_type(root, "function_definition"):
        name_node = node.child_by_field_name("name")
        if name_node is None:
            raise MalformedTreeError(
                file_path,
                f"function definition at line {node_line(node)} has no name",
            )
        name = source[name_node.start_byte:name_node.end_byte].decode(
            "utf-8", errors="replace"
        )
        if name in functions:
            logger.debug(
                "%s: function '%s' at line %d replaces definition at line %d",
                file_path, name, node_line(node), functions[name].start_line,
            )
        functions[name] = FunctionInfo(name=name, node=node)

    functions[module_name] = FunctionInfo(name=module_name, node=root)
    return functions
