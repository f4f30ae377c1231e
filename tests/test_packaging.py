"""
Tests for the packaging metadata in pyproject.toml.
"""
import os
import re
import unittest

import repokg

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


class TestPyproject(unittest.TestCase):
    """Test cases for pyproject.toml."""

    def setUp(self):
        with open(os.path.join(ROOT, "pyproject.toml")) as f:
            self.pyproject = f.read()

    def test_version_matches_package(self):
        self.assertRegex(self.pyproject, rf'(?m)^version = "{re.escape(repokg.__version__)}"$')

    def test_readme_points_at_project_file(self):
        for readme in re.findall(r'(?m)^readme = "([^"]+)"$', self.pyproject):
            with self.subTest(readme=readme):
                self.assertTrue(os.path.isfile(os.path.join(ROOT, readme)))


if __name__ == "__main__":
    unittest.main()
