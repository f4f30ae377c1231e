"""
Tests for natural-language query translation.
"""
import unittest

from repokg.graph.query_translator import DEFAULT_TEMPLATE, match_template, translate


class TestQueryTranslator(unittest.TestCase):
    """Test cases for the keyword-based translator."""

    def test_templates(self):
        cases = {
            "Which functions are the most complex?": "most_complex",
            "Are there any circular dependencies?": "circular_dependencies",
            "How many functions does the project have?": "function_count",
            "What is the test coverage?": "test_coverage",
            "Show me the largest classes": "largest_classes",
            "Which files are the biggest by size?": "largest_files",
        }
        for question, expected in cases.items():
            with self.subTest(question=question):
                self.assertEqual(match_template(question).name, expected)

    def test_all_keyword_groups_must_match(self):
        # "function" alone does not select the counting template
        self.assertEqual(match_template("show me a function").name, DEFAULT_TEMPLATE.name)

    def test_fallback(self):
        translated = translate("tell me something", "g1")
        self.assertEqual(translated.name, "entities")

    def test_graph_id_is_a_parameter(self):
        translated = translate("How many functions are there?", "graph-123")
        self.assertEqual(translated.parameters, {"graph_id": "graph-123"})
        self.assertIn("$graph_id", translated.cypher)
        self.assertNotIn("graph-123", translated.cypher)


if __name__ == "__main__":
    unittest.main()
