"""
Configuration management for the Cablebook application.

This module handles:
- Database path configuration
- Environment-specific configuration (development, test, production)
- Database URL override from the environment
"""

import logging
import os
from pathlib import Path
from typing import Optional

from .constants import DATABASE_FILENAME

logger = logging.getLogger(__name__)

VALID_ENVIRONMENTS = ("production", "development", "test")


class Config:
    """
    Application configuration manager.

    Handles database location, environment settings and the optional
    database URL override used to point the application at PostgreSQL.
    """

    def __init__(self, environment: str = "production"):
        """
        Initialize configuration.

        Args:
            environment: Environment mode - 'production', 'development' or 'test'

        Raises:
            ValueError: If environment is not a known mode
        """
        if environment not in VALID_ENVIRONMENTS:
            raise ValueError(
                f"Unknown environment '{environment}'. "
                f"Expected one of: {', '.join(VALID_ENVIRONMENTS)}"
            )

        self.environment = environment
        self._database_url_override = os.environ.get("CABLEBOOK_DATABASE_URL")

        # Determine base directory
        data_dir = os.environ.get("CABLEBOOK_DATA_DIR")
        if data_dir:
            self._base_dir = Path(data_dir)
        elif environment == "development":
            self._base_dir = self._get_project_data_dir()
        else:
            self._base_dir = Path.home() / ".cablebook"

        self._database_dir = self._base_dir
        self._database_path = self._database_dir / DATABASE_FILENAME

    def _get_project_data_dir(self) -> Path:
        """
        Get the project's data directory for development.

        Returns:
            Path to project data/ directory
        """
        project_root = Path(__file__).parent.parent.parent.parent
        return project_root / "data"

    def ensure_directories(self) -> None:
        """Create the database directory if it doesn't exist."""
        if self.uses_sqlite_file:
            self._database_dir.mkdir(parents=True, exist_ok=True)

    @property
    def database_path(self) -> Path:
        """Full path to the SQLite database file."""
        return self._database_path

    @property
    def database_url(self) -> str:
        """
        SQLAlchemy database URL.

        In the test environment an in-memory SQLite database is used unless
        CABLEBOOK_DATABASE_URL says otherwise.

        Returns:
            Database URL string for SQLAlchemy
        """
        if self._database_url_override:
            return self._database_url_override
        if self.environment == "test":
            return "sqlite:///:memory:"
        db_path_str = str(self._database_path).replace("\\", "/")
        return f"sqlite:///{db_path_str}"

    @property
    def uses_sqlite_file(self) -> bool:
        """True when the database lives in the configured SQLite file."""
        return self._database_url_override is None and self.environment != "test"

    def database_exists(self) -> bool:
        """
        Check if database file exists.

        Returns:
            True if database file exists (always True for non-file databases)
        """
        if not self.uses_sqlite_file:
            return True
        return self._database_path.exists()

    def __repr__(self) -> str:
        """String representation of config."""
        return f"Config(environment='{self.environment}', database_url='{self.database_url}')"


# Global configuration instance
_config_instance: Optional[Config] = None


def get_config(environment: Optional[str] = None) -> Config:
    """
    Get the global configuration instance.

    Once created, the singleton's environment cannot be changed by passing
    a different environment argument; this prevents switching databases
    mid-session.

    Args:
        environment: Optional environment for initial creation. If None, uses
                    CABLEBOOK_ENV or defaults to production. Ignored if
                    singleton already exists.

    Returns:
        Config instance
    """
    global _config_instance

    if _config_instance is None:
        if environment is None:
            environment = os.environ.get("CABLEBOOK_ENV", "production")
        _config_instance = Config(environment)
    elif environment is not None and environment != _config_instance.environment:
        logger.warning(
            f"get_config() called with environment='{environment}' but singleton "
            f"already exists with environment='{_config_instance.environment}'. "
            f"Returning existing singleton."
        )

    return _config_instance


def reset_config():
    """
    Reset the global configuration instance.

    Useful for testing.
    """
    global _config_instance
    _config_instance = None


def get_database_url() -> str:
    """
    Get the database URL.

    Returns:
        SQLAlchemy database URL string
    """
    return get_config().database_url
