"""
Configuration module for the Lifecycle MCP Server.

Provides centralized configuration management with support for:
- Environment variables
- Default values
- Path resolution
- Logging configuration
"""

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file at project root
# config.py is in mcp-server-python/, so .env is in parent directory
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=_env_path)


def _parse_bool(env_var: str, default: bool) -> bool:
    """Parse a boolean value from an environment variable."""
    value = os.getenv(env_var)
    if value is None:
        return default
    return value.lower() in ("true", "1", "t", "y", "yes")


class Config:
    """
    Configuration class for MCP server settings.

    Supports configuration via environment variables (and .env file) with sensible defaults.
    All paths are resolved relative to the repository root.
    """

    def __init__(self):
        """Initialize configuration from environment variables and defaults."""
        # Repository root detection
        self._repo_root = self._find_repo_root()

        # Database configuration
        self.db_path = self._resolve_db_path()

        # Logging configuration
        self.log_level = os.getenv("LIFECYCLE_LOG_LEVEL", "INFO").upper()
        self.log_file = self._resolve_log_path()

        # Server configuration
        self.server_name = os.getenv("LIFECYCLE_SERVER_NAME", "lifecycle-mcp-server")

        # Audit notes and reads
        self.note_max_length = int(os.getenv("LIFECYCLE_NOTE_MAX_LENGTH", "500"))
        self.audit_read_limit = int(os.getenv("LIFECYCLE_AUDIT_READ_LIMIT", "50"))

        # Event outbox
        self.publish_events = _parse_bool("LIFECYCLE_PUBLISH_EVENTS", True)

    def _find_repo_root(self) -> Path:
        """
        Find the repository root directory.

        Returns:
            Path to repository root
        """
        current_file = Path(__file__).resolve()
        # config.py is in mcp-server-python/, so parent is repo root
        return current_file.parent.parent

    def _resolve_db_path(self) -> Path:
        """
        Resolve the database path from environment or default.

        Resolution order:
        1. LIFECYCLE_DB environment variable (absolute or relative)
        2. LIFECYCLE_ROOT/data/lifecycle.db
        3. Default: <repo_root>/data/lifecycle.db

        Returns:
            Resolved absolute Path to database
        """
        db_env = os.getenv("LIFECYCLE_DB")
        if db_env:
            db_path = Path(db_env)
            if db_path.is_absolute():
                return db_path
            return self._repo_root / db_path

        root_env = os.getenv("LIFECYCLE_ROOT")
        if root_env:
            return Path(root_env) / "data" / "lifecycle.db"

        return self._repo_root / "data" / "lifecycle.db"

    def _resolve_log_path(self) -> Optional[Path]:
        """
        Resolve the log file path from environment.

        If LIFECYCLE_LOG_FILE is set, logs will be written to that file.
        Otherwise, logs go to stderr only.

        Returns:
            Path to log file, or None for stderr-only logging
        """
        log_env = os.getenv("LIFECYCLE_LOG_FILE")
        if not log_env:
            return None

        log_path = Path(log_env)
        if log_path.is_absolute():
            return log_path
        return self._repo_root / log_path

    def setup_logging(self):
        """
        Configure logging based on configuration settings.

        Sets up logging to stderr and optionally to a file.
        Log level is controlled by LIFECYCLE_LOG_LEVEL.
        """
        numeric_level = getattr(logging, self.log_level, logging.INFO)

        formatter = logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
        )

        root_logger = logging.getLogger()
        root_logger.setLevel(numeric_level)

        # Remove existing handlers to avoid duplicates
        root_logger.handlers.clear()

        # Always add stderr handler; stdout carries the MCP stdio transport
        stderr_handler = logging.StreamHandler()
        stderr_handler.setLevel(numeric_level)
        stderr_handler.setFormatter(formatter)
        root_logger.addHandler(stderr_handler)

        if self.log_file:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.FileHandler(self.log_file)
            file_handler.setLevel(numeric_level)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)

            logging.info(f"Logging to file: {self.log_file}")

        logging.info(f"Log level set to: {self.log_level}")
        logging.info(f"Repository root: {self._repo_root}")
        logging.info(f"Database path: {self.db_path}")

    def get_db_path_str(self) -> str:
        """
        Get database path as string for use in tool handlers.

        Returns:
            Database path as string
        """
        return str(self.db_path)

    def validate(self) -> list[str]:
        """
        Validate configuration and return any warnings.

        Returns:
            List of warning messages (empty if all valid)
        """
        warnings = []

        # The schema is bootstrapped on first connection, so a missing file is informational
        if not self.db_path.exists():
            warnings.append(
                f"Database file not found: {self.db_path}. "
                "It will be created on the first tool call."
            )

        if self.note_max_length < 1:
            warnings.append(
                f"LIFECYCLE_NOTE_MAX_LENGTH must be positive, got {self.note_max_length}"
            )

        if self.audit_read_limit < 1:
            warnings.append(
                f"LIFECYCLE_AUDIT_READ_LIMIT must be positive, got {self.audit_read_limit}"
            )

        if self.log_file:
            log_dir = self.log_file.parent
            if not log_dir.exists():
                try:
                    log_dir.mkdir(parents=True, exist_ok=True)
                except OSError as e:
                    warnings.append(f"Cannot create log directory {log_dir}: {e}")
            elif not os.access(log_dir, os.W_OK):
                warnings.append(f"Log directory not writable: {log_dir}")

        return warnings


# Global configuration instance
config = Config()


def get_config() -> Config:
    """
    Get the global configuration instance.

    Returns:
        Global Config instance
    """
    return config
