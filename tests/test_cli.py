"""
CLI and error-isolation tests.

  1. Source reading guards (missing, directory, binary, oversized, non-UTF-8)
  2. Syntax errors: recovered by default, refused with strict syntax
  3. Batch analysis continues past failing files
  4. Command-line output format and exit status
"""

import io
import json
import os
import sys
import tempfile
import unittest

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)

MOCK_PROJECT = os.path.join(PROJECT_ROOT, "tests", "mock_project")

from keyguard.analyzer import KeyErrorAnalyzer
from keyguard.cli import run
from keyguard.config import AnalyzerConfig
from keyguard.errors import KeyguardError, MalformedTreeError, ParseError, SourceReadError
from keyguard.python_parser import read_source


def _mock(name: str) -> str:
    return os.path.join(MOCK_PROJECT, name)


class _TempFiles(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)

    def write(self, name: str, data: bytes) -> str:
        path = os.path.join(self._tmp.name, name)
        with open(path, "wb") as f:
            f.write(data)
        return path


class TestReadSource(_TempFiles):

    def test_missing_file(self):
        with self.assertRaises(SourceReadError):
            read_source(os.path.join(MOCK_PROJECT, "does_not_exist.py"))

    def test_directory(self):
        with self.assertRaises(SourceReadError) as ctx:
            read_source(MOCK_PROJECT)
        self.assertIn("directory", ctx.exception.reason)

    def test_binary_file(self):
        path = self.write("blob.py", b"\x00\x01compiled\x00")
        with self.assertRaises(SourceReadError) as ctx:
            read_source(path)
        self.assertIn("binary", ctx.exception.reason)

    def test_oversized_file(self):
        path = self.write("big.py", b"x = 1\n" * 100)
        with self.assertRaises(SourceReadError):
            read_source(path, AnalyzerConfig(max_file_bytes=10))

    def test_invalid_utf8(self):
        path = self.write("latin.py", b"name = '\xe9t\xe9'\n")
        with self.assertRaises(SourceReadError):
            read_source(path)

    def test_errors_share_base_class(self):
        self.assertTrue(issubclass(SourceReadError, KeyguardError))
        self.assertTrue(issubclass(ParseError, KeyguardError))


class TestSyntaxErrors(unittest.TestCase):

    def test_recovered_tree_is_analyzed(self):
        analysis = KeyErrorAnalyzer().analyze_file(_mock("broken_syntax.py"))
        self.assertIsNotNone(analysis.functions)

    def test_strict_syntax_refuses_file(self):
        analyzer = KeyErrorAnalyzer(AnalyzerConfig(strict_syntax=True))
        with self.assertRaises(ParseError) as ctx:
            analyzer.analyze_file(_mock("broken_syntax.py"))
        self.assertIsNotNone(ctx.exception.line)


class _MalformedOnce(KeyErrorAnalyzer):
    """Analyzer that fails one chosen file with a malformed-tree error."""

    def __init__(self, bad_path: str):
        super().__init__()
        self.bad_path = bad_path

    def analyze_source(self, source, file_path="<source>"):
        if file_path == self.bad_path:
            raise MalformedTreeError(file_path, "function definition at line 1 has no name")
        return super().analyze_source(source, file_path)


class TestBatchAnalysis(_TempFiles):

    def test_failures_are_isolated(self):
        results = list(KeyErrorAnalyzer().analyze_paths([
            _mock("does_not_exist.py"),
            _mock("scenario_local.py"),
        ]))
        self.assertEqual(len(results), 2)
        self.assertFalse(results[0].ok)
        self.assertIsInstance(results[0].error, SourceReadError)
        self.assertTrue(results[1].ok)
        self.assertEqual(len(results[1].analysis.diagnostics), 1)

    def test_malformed_tree_aborts_only_that_file(self):
        bad = _mock("scenario_guarded.py")
        results = list(_MalformedOnce(bad).analyze_paths([bad, _mock("scenario_local.py")]))
        self.assertIsInstance(results[0].error, MalformedTreeError)
        self.assertTrue(results[1].ok)
        self.assertEqual(len(results[1].analysis.diagnostics), 1)

    def test_results_are_produced_one_file_at_a_time(self):
        """The next file is not read until the previous result is consumed."""
        first = _mock("scenario_local.py")
        second = os.path.join(self._tmp.name, "later.py")
        results = KeyErrorAnalyzer().analyze_paths([first, second])

        self.assertTrue(next(results).ok)
        self.write("later.py", b"def late(d):\n    return d['k']\n")
        later = next(results)
        self.assertTrue(later.ok)
        self.assertEqual(later.analysis.diagnostics[0].function, "late")


class TestCommandLine(unittest.TestCase):

    def _run(self, *argv):
        out, err = io.StringIO(), io.StringIO()
        status = run(list(argv), out=out, err=err)
        return status, out.getvalue(), err.getvalue()

    def test_text_output(self):
        path = _mock("scenario_local.py")
        status, out, err = self._run(path)
        self.assertEqual(status, 0)
        self.assertEqual(
            out.splitlines(),
            [f"{path}:2: Warning: Possible KeyError in function 'get'"],
        )
        self.assertEqual(err, "")

    def test_clean_file_prints_nothing(self):
        status, out, _ = self._run(_mock("scenario_guarded.py"))
        self.assertEqual(status, 0)
        self.assertEqual(out, "")

    def test_json_output(self):
        status, out, _ = self._run("--format", "json", _mock("scenario_module.py"))
        self.assertEqual(status, 0)
        records = [json.loads(line) for line in out.splitlines()]
        self.assertEqual([r["line"] for r in records], [6, 14, 17])
        self.assertEqual(records[1]["kind"], "call")
        self.assertEqual(records[1]["callee"], "middle")

    def test_missing_file_continues(self):
        missing = _mock("does_not_exist.py")
        status, out, err = self._run(missing, _mock("scenario_local.py"))
        self.assertEqual(status, 1)
        self.assertIn(f"Error reading file '{missing}'", err)
        self.assertEqual(len(out.splitlines()), 1)

    def test_strict_syntax_reports_analysis_error(self):
        path = _mock("broken_syntax.py")
        status, _, err = self._run("--strict-syntax", path)
        self.assertEqual(status, 1)
        self.assertIn(f"Error analyzing file '{path}'", err)

    def test_no_arguments_is_usage_error(self):
        with self.assertRaises(SystemExit) as ctx:
            self._run()
        self.assertEqual(ctx.exception.code, 2)


if __name__ == "__main__":
    unittest.main()
