"""
keyguard KeyError Analyzer — MCP Server

Exposes the interprocedural KeyError analysis via the Model Context Protocol:

  1. configure_analyzer — syntax strictness and extra handler names
  2. analyze_file       — diagnostics for one Python file on disk
  3. analyze_source     — diagnostics for inline Python source
  4. list_functions     — every indexed function with its may-raise set
  5. function_profile   — may-raise set, suppression flag, callers and callees
"""

from mcp.server.fastmcp import FastMCP
import os
import sys

# Ensure the keyguard package is importable when run from a checkout
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from keyguard.analyzer import FileAnalysis, KeyErrorAnalyzer
from keyguard.config import AnalyzerConfig, KEY_ERROR
from keyguard.errors import KeyguardError

# ═══════════════════════════════════════════════════════════════════════
#  Server Setup
# ═══════════════════════════════════════════════════════════════════════

mcp = FastMCP("keyguard KeyError Analyzer")

analyzer = KeyErrorAnalyzer()


def _format_diagnostics(analysis: FileAnalysis) -> str:
    norm_path = analysis.file_path.replace("\\", "/")
    if not analysis.diagnostics:
        return f"No unhandled KeyError paths found in `{norm_path}`."

    msg = f"## {len(analysis.diagnostics)} warning(s) in `{norm_path}`\n\n"
    for diag in analysis.diagnostics:
        msg += f"- **Line {diag.line}** ({diag.kind}): {diag.message}\n"
    return msg


def _labels(labels) -> str:
    return ", ".join(sorted(labels)) if labels else "—"


# ═══════════════════════════════════════════════════════════════════════
#  Tool 1 — Configure
# ═══════════════════════════════════════════════════════════════════════

@mcp.tool()
def configure_analyzer(strict_syntax: bool = False, extra_handlers: str = "") -> str:
    """
    Reconfigure the analyzer used by every other tool.

    Args:
        strict_syntax:  Refuse files with syntax errors instead of analyzing
                        tree-sitter's recovered tree.
        extra_handlers: Comma-separated handler type names that should also
                        count as catching KeyError (e.g. "LookupError").
    """
    global analyzer

    config = AnalyzerConfig(strict_syntax=strict_syntax)
    extras = {h.strip() for h in extra_handlers.split(",") if h.strip()}
    if extras:
        config.handler_names[KEY_ERROR] = config.accepted_handlers(KEY_ERROR) | extras
    analyzer = KeyErrorAnalyzer(config)

    return (
        f"Analyzer configured. strict_syntax={strict_syntax}; "
        f"KeyError handlers: {_labels(config.accepted_handlers(KEY_ERROR))}"
    )


# ═══════════════════════════════════════════════════════════════════════
#  Tool 2 — Analyze File
# ═══════════════════════════════════════════════════════════════════════

@mcp.tool()
def analyze_file(file_path: str) -> str:
    """
    Analyzes a Python file and lists every place a KeyError may escape:
    unguarded subscripts inside functions, and unguarded calls to functions
    that may raise.

    Args:
        file_path: Path to the Python source file.
    """
    try:
        return _format_diagnostics(analyzer.analyze_file(file_path))
    except KeyguardError as e:
        return f"Error: {e.reason} ({file_path})"


# ═══════════════════════════════════════════════════════════════════════
#  Tool 3 — Analyze Source
# ═══════════════════════════════════════════════════════════════════════

@mcp.tool()
def analyze_source(source: str, filename: str = "<source>") -> str:
    """
    Same as analyze_file, for Python source passed inline.

    Args:
        source:   Python source text.
        filename: Name used in the diagnostics.
    """
    try:
        return _format_diagnostics(analyzer.analyze_source(source, filename))
    except KeyguardError as e:
        return f"Error: {e.reason} ({filename})"


# ═══════════════════════════════════════════════════════════════════════
#  Tool 4 — List Functions
# ═══════════════════════════════════════════════════════════════════════

@mcp.tool()
def list_functions(file_path: str) -> str:
    """
    Lists the functions indexed in a file with their may-raise sets.

    Args:
        file_path: Path to the Python source file.
    """
    try:
        analysis = analyzer.analyze_file(file_path)
    except KeyguardError as e:
        return f"Error: {e.reason} ({file_path})"

    msg = f"## Functions in `{file_path}`\n\n"
    msg += "| Function | Lines | May raise | Reported locally |\n"
    msg += "|----------|-------|-----------|------------------|\n"
    for name, info in analysis.functions.items():
        msg += (
            f"| `{name}` | {info.start_line}-{info.end_line} | "
            f"{_labels(info.may_raise)} | {'yes' if info.reported_locally else 'no'} |\n"
        )
    return msg


# ═══════════════════════════════════════════════════════════════════════
#  Tool 5 — Function Profile
# ═══════════════════════════════════════════════════════════════════════

@mcp.tool()
def function_profile(file_path: str, function_name: str) -> str:
    """
    Shows the exception profile of one function: what it may raise, whether
    its own accesses were reported, and who it calls / is called by.

    Args:
        file_path:     Path to the Python source file.
        function_name: Function name (use "<module>" for top-level code).
    """
    try:
        analysis = analyzer.analyze_file(file_path)
    except KeyguardError as e:
        return f"Error: {e.reason} ({file_path})"

    info = analysis.functions.get(function_name)
    if info is None:
        known = ", ".join(f"`{n}`" for n in analysis.functions)
        return f"Error: no function `{function_name}` in `{file_path}`. Known: {known}"

    graph = analysis.call_graph()
    msg = f"## `{function_name}` (lines {info.start_line}-{info.end_line})\n\n"
    msg += f"- **May raise:** {_labels(info.may_raise)}\n"
    msg += f"- **Reported locally:** {'yes' if info.reported_locally else 'no'}\n"

    callees = sorted(set(c for c in graph.get_callees(function_name) if c in analysis.functions))
    msg += f"- **Calls:** {', '.join(f'`{c}`' for c in callees) or '—'}\n"

    callers = graph.get_callers(function_name)
    if callers:
        msg += "\n### Call sites\n\n"
        for caller, site in callers:
            msg += f"- line {site.line} in `{caller}`\n"
    else:
        msg += "- **Called from:** —\n"
    return msg


if __name__ == "__main__":
    mcp.run()
