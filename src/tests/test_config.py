"""
Tests for configuration management.
"""

import pytest

from cablebook.utils import config as config_module
from cablebook.utils.config import Config, get_config, reset_config


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    monkeypatch.delenv("CABLEBOOK_DATABASE_URL", raising=False)
    monkeypatch.delenv("CABLEBOOK_DATA_DIR", raising=False)
    monkeypatch.delenv("CABLEBOOK_ENV", raising=False)
    reset_config()
    yield
    reset_config()


class TestConfig:
    def test_unknown_environment(self):
        with pytest.raises(ValueError):
            Config("staging")

    def test_test_environment_uses_memory_database(self):
        config = Config("test")
        assert config.database_url == "sqlite:///:memory:"
        assert not config.uses_sqlite_file
        assert config.database_exists()

    def test_data_dir_override(self, monkeypatch, tmp_path):
        monkeypatch.setenv("CABLEBOOK_DATA_DIR", str(tmp_path))
        config = Config("production")

        assert config.database_path == tmp_path / "cablebook.db"
        assert config.database_url.startswith("sqlite:///")
        assert not config.database_exists()

        config.ensure_directories()
        assert tmp_path.exists()

    def test_development_uses_project_data_dir(self):
        config = Config("development")
        assert config.database_path.parent.name == "data"
        assert config.uses_sqlite_file

    def test_database_url_override(self, monkeypatch):
        monkeypatch.setenv("CABLEBOOK_DATABASE_URL", "postgresql://localhost/cablebook")
        config = Config("production")
        assert config.database_url == "postgresql://localhost/cablebook"
        assert not config.uses_sqlite_file


class TestConfigSingleton:
    def test_environment_variable_selects_environment(self, monkeypatch):
        monkeypatch.setenv("CABLEBOOK_ENV", "test")
        assert get_config().environment == "test"

    def test_singleton_keeps_first_environment(self):
        first = get_config("test")
        second = get_config("development")
        assert first is second
        assert second.environment == "test"

    def test_get_database_url(self):
        get_config("test")
        assert config_module.get_database_url() == "sqlite:///:memory:"
