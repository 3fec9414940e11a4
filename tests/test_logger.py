"""
Invite Relay - Logger Tests
===========================

Tests for log directory selection and file output.
"""

import os
from pathlib import Path

from src.core.config import Config
from src.core.logger import TreeLogger, logger


class TestLogDirectory:
    """LOG_DIR is read by the logger, not by Config."""

    def test_global_logger_uses_log_dir_env(self):
        assert logger.logs_dir == Path(os.environ["LOG_DIR"])

    def test_config_has_no_log_dir_field(self):
        assert "log_dir" not in Config.__dataclass_fields__

    def test_explicit_directory_receives_log_files(self, tmp_path):
        tree_logger = TreeLogger(name="RelayTest", logs_dir=tmp_path)
        tree_logger.info("hello")
        tree_logger.error("boom", [("Where", "tests")])

        assert tree_logger.log_file.parent.parent == tmp_path
        assert "hello" in tree_logger.log_file.read_text(encoding="utf-8")
        assert "boom" in tree_logger.error_file.read_text(encoding="utf-8")
