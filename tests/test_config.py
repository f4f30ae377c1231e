"""
Tests for configuration loading.
"""
import os
import tempfile
import unittest
from unittest import mock

from repokg.config import AnalysisConfig, SystemConfig, load_config
from repokg.core.errors import ValidationError


class TestLoadConfig(unittest.TestCase):
    """Test cases for load_config."""

    def test_defaults(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            config = load_config(use_dotenv=False)
        self.assertEqual(config.storage_type, "neo4j")
        self.assertEqual(config.database.uri, "bolt://localhost:7687")
        self.assertEqual(config.database.batch_size, 1000)
        self.assertEqual(config.analysis.max_file_size, 10 * 1024 * 1024)
        self.assertEqual(config.analysis.parallel_workers, 8)
        self.assertFalse(config.analysis.include_tests)
        self.assertIn("node_modules", config.analysis.exclude_dirs)
        self.assertEqual(config.logging.level, "INFO")

    def test_environment_variables(self):
        environ = {
            "STORAGE_TYPE": "memory",
            "NEO4J_URI": "bolt://graph:7687",
            "NEO4J_BATCH_SIZE": "250",
            "NEO4J_ENABLE_QUERY_LOGGING": "true",
            "PARALLEL_WORKERS": "4",
            "INCLUDE_TESTS": "1",
            "EXCLUDE_DIRS": "vendor, generated ,",
            "LOG_LEVEL": "debug",
        }
        with mock.patch.dict(os.environ, environ, clear=True):
            config = load_config(use_dotenv=False)
        self.assertEqual(config.storage_type, "memory")
        self.assertEqual(config.database.uri, "bolt://graph:7687")
        self.assertEqual(config.database.batch_size, 250)
        self.assertTrue(config.database.enable_query_logging)
        self.assertEqual(config.analysis.parallel_workers, 4)
        self.assertTrue(config.analysis.include_tests)
        self.assertEqual(config.analysis.exclude_dirs, ["vendor", "generated"])
        self.assertEqual(config.logging.level, "DEBUG")

    def test_empty_variables_are_ignored(self):
        with mock.patch.dict(os.environ, {"NEO4J_URI": ""}, clear=True):
            config = load_config(use_dotenv=False)
        self.assertEqual(config.database.uri, "bolt://localhost:7687")

    def test_overrides_merge_with_environment(self):
        with mock.patch.dict(os.environ, {"MAX_FILE_SIZE": "100"}, clear=True):
            config = load_config(use_dotenv=False, analysis={"parallel_workers": 2})
        self.assertEqual(config.analysis.max_file_size, 100)
        self.assertEqual(config.analysis.parallel_workers, 2)

    def test_invalid_values(self):
        for environ in ({"PARALLEL_WORKERS": "0"}, {"PARALLEL_WORKERS": "many"},
                        {"STORAGE_TYPE": "sqlite"}, {"LOG_LEVEL": "loud"}):
            with self.subTest(environ=environ):
                with mock.patch.dict(os.environ, environ, clear=True):
                    with self.assertRaises(ValidationError):
                        load_config(use_dotenv=False)

    def test_env_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            env_path = os.path.join(tmpdir, ".env")
            with open(env_path, "w") as f:
                f.write("NEO4J_USERNAME=alice\nNEO4J_DATABASE=code\n")

            with mock.patch.dict(os.environ, {"NEO4J_DATABASE": "from-env"}, clear=True):
                config = load_config(env_file=env_path)
        self.assertEqual(config.database.username, "alice")
        # Variables already set win over the file
        self.assertEqual(config.database.database, "from-env")

    def test_models_validate_directly(self):
        self.assertEqual(AnalysisConfig(parallel_workers=1).parallel_workers, 1)
        self.assertEqual(SystemConfig(storage_type="memory").storage_type, "memory")


if __name__ == "__main__":
    unittest.main()
