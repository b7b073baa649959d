"""
Unit tests for configuration module.

Tests configuration loading, path resolution, and validation.
"""

import logging
import os
from pathlib import Path
from unittest.mock import patch

from config import Config


class TestConfig:
    """Test suite for Config class."""

    def test_default_configuration(self):
        """Test that default configuration values are set correctly."""
        with patch.dict(os.environ, {}, clear=True):
            config = Config()

            assert config.log_level == "INFO"
            assert config.log_file is None
            assert config.server_name == "lifecycle-mcp-server"
            assert config.note_max_length == 500
            assert config.audit_read_limit == 50
            assert config.publish_events is True

            assert config._repo_root.exists()
            assert config._repo_root.is_dir()

    def test_db_path_from_env_absolute(self):
        """Test database path resolution from LIFECYCLE_DB (absolute)."""
        with patch.dict(os.environ, {"LIFECYCLE_DB": "/absolute/path/lifecycle.db"}, clear=True):
            config = Config()
            assert str(config.db_path) == "/absolute/path/lifecycle.db"

    def test_db_path_from_env_relative(self):
        """Test database path resolution from LIFECYCLE_DB (relative)."""
        with patch.dict(os.environ, {"LIFECYCLE_DB": "custom/lifecycle.db"}, clear=True):
            config = Config()
            assert config.db_path == config._repo_root / "custom" / "lifecycle.db"

    def test_db_path_from_lifecycle_root(self):
        """Test database path resolution from LIFECYCLE_ROOT."""
        with patch.dict(os.environ, {"LIFECYCLE_ROOT": "/opt/lifecycle"}, clear=True):
            config = Config()
            assert config.db_path == Path("/opt/lifecycle") / "data" / "lifecycle.db"

    def test_db_path_default(self):
        """Test default database path resolution."""
        with patch.dict(os.environ, {}, clear=True):
            config = Config()
            assert config.db_path == config._repo_root / "data" / "lifecycle.db"

    def test_db_path_priority(self):
        """Test that LIFECYCLE_DB takes priority over LIFECYCLE_ROOT."""
        with patch.dict(
            os.environ,
            {"LIFECYCLE_DB": "/custom/db.db", "LIFECYCLE_ROOT": "/opt/lifecycle"},
            clear=True,
        ):
            config = Config()
            assert str(config.db_path) == "/custom/db.db"

    def test_log_level_case_insensitive(self):
        """Test that log level is converted to uppercase."""
        with patch.dict(os.environ, {"LIFECYCLE_LOG_LEVEL": "debug"}, clear=True):
            assert Config().log_level == "DEBUG"

    def test_log_file_from_env_relative(self):
        """Test log file path from environment (relative)."""
        with patch.dict(os.environ, {"LIFECYCLE_LOG_FILE": "logs/server.log"}, clear=True):
            config = Config()
            assert config.log_file == config._repo_root / "logs" / "server.log"

    def test_lifecycle_settings_from_env(self):
        """Test note limit, audit limit and event publishing overrides."""
        with patch.dict(
            os.environ,
            {
                "LIFECYCLE_NOTE_MAX_LENGTH": "200",
                "LIFECYCLE_AUDIT_READ_LIMIT": "10",
                "LIFECYCLE_PUBLISH_EVENTS": "false",
                "LIFECYCLE_SERVER_NAME": "custom-server",
            },
            clear=True,
        ):
            config = Config()
            assert config.note_max_length == 200
            assert config.audit_read_limit == 10
            assert config.publish_events is False
            assert config.server_name == "custom-server"

    def test_publish_events_truthy_values(self):
        for value in ("1", "yes", "TRUE"):
            with patch.dict(os.environ, {"LIFECYCLE_PUBLISH_EVENTS": value}, clear=True):
                assert Config().publish_events is True

    def test_get_db_path_str(self):
        """Test getting database path as string."""
        with patch.dict(os.environ, {"LIFECYCLE_DB": "/test/db.db"}, clear=True):
            assert Config().get_db_path_str() == "/test/db.db"

    def test_validate_missing_database(self, tmp_path):
        """Test validation warns when database doesn't exist yet."""
        missing = tmp_path / "missing.db"
        with patch.dict(os.environ, {"LIFECYCLE_DB": str(missing)}, clear=True):
            warnings = Config().validate()
            assert "Database file not found" in warnings[0]
            assert str(missing) in warnings[0]

    def test_validate_existing_database(self, tmp_path):
        """Test validation passes when database exists."""
        db_file = tmp_path / "lifecycle.db"
        db_file.touch()
        with patch.dict(os.environ, {"LIFECYCLE_DB": str(db_file)}, clear=True):
            assert Config().validate() == []

    def test_validate_non_positive_limits(self, tmp_path):
        db_file = tmp_path / "lifecycle.db"
        db_file.touch()
        with patch.dict(
            os.environ,
            {
                "LIFECYCLE_DB": str(db_file),
                "LIFECYCLE_NOTE_MAX_LENGTH": "0",
                "LIFECYCLE_AUDIT_READ_LIMIT": "-1",
            },
            clear=True,
        ):
            warnings = Config().validate()
            assert any("LIFECYCLE_NOTE_MAX_LENGTH" in w for w in warnings)
            assert any("LIFECYCLE_AUDIT_READ_LIMIT" in w for w in warnings)

    def test_setup_logging_default(self):
        """Test logging setup with default configuration."""
        with patch.dict(os.environ, {}, clear=True):
            Config().setup_logging()
            root_logger = logging.getLogger()
            assert root_logger.level == logging.INFO
            assert len(root_logger.handlers) >= 1

    def test_setup_logging_invalid_level(self):
        """Test logging setup with invalid log level falls back to INFO."""
        with patch.dict(os.environ, {"LIFECYCLE_LOG_LEVEL": "INVALID"}, clear=True):
            Config().setup_logging()
            assert logging.getLogger().level == logging.INFO


class TestConfigIntegration:
    """Integration tests for configuration module."""

    def test_full_configuration_workflow(self, tmp_path):
        """Test complete configuration workflow with file logging."""
        db_file = tmp_path / "data" / "lifecycle.db"
        db_file.parent.mkdir(parents=True)
        db_file.touch()
        log_file = tmp_path / "logs" / "server.log"

        with patch.dict(
            os.environ,
            {
                "LIFECYCLE_DB": str(db_file),
                "LIFECYCLE_LOG_LEVEL": "DEBUG",
                "LIFECYCLE_LOG_FILE": str(log_file),
            },
            clear=True,
        ):
            config = Config()
            assert config.validate() == []

            config.setup_logging()
            assert logging.getLogger().level == logging.DEBUG

            logging.getLogger("test").info("Test message")
            for handler in logging.getLogger().handlers:
                handler.flush()

            assert "Test message" in log_file.read_text()
