"""
Tests for the command-line interface, using the in-memory backend.
"""
import os
import tempfile
import unittest

from click.testing import CliRunner

from repokg.cli import cli


class TestCli(unittest.TestCase):
    """Test cases for the click commands."""

    def setUp(self):
        self.runner = CliRunner()

    def test_version(self):
        result = self.runner.invoke(cli, ["--version"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("0.1.0", result.output)

    def test_analyze_local_directory(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with open(os.path.join(tmpdir, "app.ts"), "w") as f:
                f.write("export function main(flag: boolean) {\n  if (flag) { return 1; }\n  return 0;\n}\n")

            result = self.runner.invoke(cli, [
                "analyze", tmpdir, "--db-type", "memory", "--workers", "2",
            ])

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Entity Statistics", result.output)
        self.assertIn("Analysis complete", result.output)

    def test_analyze_missing_directory_fails(self):
        result = self.runner.invoke(cli, [
            "analyze", "/definitely/not/a/repo", "--db-type", "memory",
        ])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("Analysis failed", result.output)

    def test_unknown_graph_is_reported(self):
        result = self.runner.invoke(cli, ["stats", "--graph-id", "nope", "--db-type", "memory"])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("Graph not found", result.output)

    def test_invalid_language_is_rejected(self):
        result = self.runner.invoke(cli, ["analyze", ".", "--language", "cobol", "--db-type", "memory"])
        self.assertNotEqual(result.exit_code, 0)


if __name__ == "__main__":
    unittest.main()
