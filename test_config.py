#!/usr/bin/env python3
"""
Tests for configuration loading, validation and logging setup.
"""

import logging
import os
import unittest
from pathlib import Path
from unittest.mock import patch

import sys
sys.path.insert(0, str(Path(__file__).parent))

from reposync.config import Config, load_configuration, validate_configuration
from reposync.platform import get_system_info
from reposync.logging_config import LOGGERS, StructuredFormatter, setup_logging


class TestConfig(unittest.TestCase):

    def test_defaults(self):
        config = Config()
        self.assertEqual(config.log_level, "INFO")
        self.assertEqual(config.auth_retry_count, 10)
        self.assertEqual(config.retry_sleep_interval, 2.0)
        self.assertEqual(config.max_submodule_depth, 16)
        self.assertEqual(config.slow_sync_threshold, 60.0)
        self.assertEqual(config.default_remote_name, "origin")
        self.assertGreater(config.worker_count, 0)
        print("  ✓ Defaults")

    def test_log_level_normalized(self):
        self.assertEqual(Config(log_level="debug").log_level, "DEBUG")

    def test_invalid_values(self):
        for kwargs in (
            {"log_level": "LOUD"},
            {"auth_retry_count": 0},
            {"retry_sleep_interval": -1.0},
            {"max_submodule_depth": 0},
            {"slow_sync_threshold": 0},
            {"worker_count": 0},
            {"default_remote_name": ""},
        ):
            with self.subTest(**kwargs):
                with self.assertRaises(ValueError):
                    Config(**kwargs)
        print("  ✓ Invalid values rejected")

    def test_load_from_environment(self):
        env = {
            "REPOSYNC_LOG_LEVEL": "warning",
            "REPOSYNC_AUTH_RETRY_COUNT": "3",
            "REPOSYNC_RETRY_SLEEP_INTERVAL": "0.5",
            "REPOSYNC_MAX_SUBMODULE_DEPTH": "4",
            "REPOSYNC_SLOW_SYNC_THRESHOLD": "10",
            "REPOSYNC_WORKER_COUNT": "2",
            "REPOSYNC_DEFAULT_REMOTE": "up",
        }
        with patch.dict(os.environ, env):
            config = load_configuration()

        self.assertEqual(config.log_level, "WARNING")
        self.assertEqual(config.auth_retry_count, 3)
        self.assertEqual(config.retry_sleep_interval, 0.5)
        self.assertEqual(config.max_submodule_depth, 4)
        self.assertEqual(config.slow_sync_threshold, 10.0)
        self.assertEqual(config.worker_count, 2)
        self.assertEqual(config.default_remote_name, "up")
        print("  ✓ Environment variables loaded")

    def test_load_rejects_garbage(self):
        with patch.dict(os.environ, {"REPOSYNC_WORKER_COUNT": "many"}):
            with self.assertRaises(ValueError):
                load_configuration()

    def test_validate_missing_git(self):
        with patch('reposync.config.validate_git_availability', return_value=(False, "Git executable not found")):
            issues = validate_configuration(Config())
        self.assertIn("ERROR: Git executable not found", issues)

    def test_system_info(self):
        info = get_system_info()
        self.assertIn(info["platform"], {"windows", "macos", "linux", "unknown"})
        self.assertIn("ssh_auth_sock_set", info)

    def test_validate_warnings(self):
        with patch('reposync.config.validate_git_availability', return_value=(True, None)):
            issues = validate_configuration(Config(auth_retry_count=1, worker_count=100))
        self.assertEqual(len(issues), 2)
        self.assertTrue(all(issue.startswith("WARNING:") for issue in issues))
        print("  ✓ Validation issues reported")


class TestLogging(unittest.TestCase):

    def restore_loggers(self, root_handlers, root_level):
        for logger_name in LOGGERS:
            logger = logging.getLogger(logger_name)
            logger.handlers.clear()
            logger.setLevel(logging.NOTSET)
            logger.propagate = True
        root = logging.getLogger()
        root.handlers[:] = root_handlers
        root.setLevel(root_level)

    def test_structured_formatter_prefix(self):
        formatter = StructuredFormatter('%(levelname)s - %(message)s')
        record = logging.LogRecord("reposync.test", logging.INFO, __file__, 1, "synced", None, None)
        record.operation = "sync"

        self.assertEqual(formatter.format(record), "INFO - [sync] synced")
        self.assertEqual(formatter.format(record), "INFO - [sync] synced")

    def test_setup_logging_sets_levels(self):
        root = logging.getLogger()
        self.addCleanup(self.restore_loggers, list(root.handlers), root.level)
        setup_logging(Config(log_level="DEBUG"))
        logger = logging.getLogger('reposync.git_sync')
        self.assertEqual(logger.level, logging.DEBUG)
        self.assertTrue(logger.handlers)
        print("  ✓ Logging configured")


if __name__ == "__main__":
    unittest.main(verbosity=2)
