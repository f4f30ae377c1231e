"""
Tests that the example scripts run against a small repository.
"""
import importlib.util
import os
import sys
import tempfile
import unittest
from unittest import mock

EXAMPLES_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "examples")


def load_example(name):
    spec = importlib.util.spec_from_file_location(name, os.path.join(EXAMPLES_DIR, f"{name}.py"))
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class TestAnalyzeRepositoryExample(unittest.TestCase):
    """Test cases for examples/analyze_repository.py."""

    def setUp(self):
        self.example = load_example("analyze_repository")

    def test_reports_complex_functions(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with open(os.path.join(tmpdir, "app.ts"), "w") as f:
                f.write("export function pick(a: boolean) {\n  if (a) { return 1; }\n  return 0;\n}\n")

            with mock.patch.object(sys, "argv", ["analyze_repository.py", tmpdir]), \
                    mock.patch.object(self.example, "console") as console:
                self.assertEqual(self.example.main(), 0)

        tables = [call.args[0] for call in console.print.call_args_list
                  if call.args and hasattr(call.args[0], "title")]
        self.assertIn("Most Complex Functions", [table.title for table in tables])

    def test_missing_argument(self):
        with mock.patch.object(sys, "argv", ["analyze_repository.py"]), \
                mock.patch.object(self.example, "console"):
            self.assertEqual(self.example.main(), 1)


if __name__ == "__main__":
    unittest.main()
