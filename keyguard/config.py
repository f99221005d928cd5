"""
Analyzer configuration.

One ``AnalyzerConfig`` is shared by every file an analyzer processes; it
holds no per-file state.
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet

# Failure-kind label for a missing-key lookup.  The label doubles as the
# Python exception name shown to the user.
KEY_ERROR = "KeyError"

# Reserved name of the synthetic entry that represents top-level code
MODULE_FUNCTION = "<module>"

MAX_FILE_BYTES = 5_000_000  # larger files are refused rather than parsed


def _default_handler_names() -> Dict[str, FrozenSet[str]]:
    # "Exception" counts by convention, not by hierarchy resolution
    return {KEY_ERROR: frozenset({"KeyError", "Exception"})}


@dataclass
class AnalyzerConfig:
    """Tunables for ``KeyErrorAnalyzer``.

    Attributes:
        handler_names:  Handler type names that catch each failure kind.
                        Matching against them is textual equality.
        module_name:    Key of the module pseudo-function.
        strict_syntax:  Refuse files whose tree contains syntax errors
                        instead of analyzing tree-sitter's recovered tree.
        max_file_bytes: Upper bound on the size of a source file.
        report_module_accesses:
                        Emit local warnings for top-level code too.  Off by
                        default: module accesses only feed propagation.
    """
    handler_names: Dict[str, FrozenSet[str]] = field(default_factory=_default_handler_names)
    module_name: str = MODULE_FUNCTION
    strict_syntax: bool = False
    max_file_bytes: int = MAX_FILE_BYTES
    report_module_accesses: bool = False

    def accepted_handlers(self, failure_kind: str) -> FrozenSet[str]:
        """Handler type names that guard against ``failure_kind``."""
        return self.handler_names.get(failure_kind, frozenset({failure_kind}))
