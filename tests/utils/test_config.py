"""Tests for configuration loading."""

import pytest

from mavlinklog.utils.config import Config, get_config, reset_config

ENV_VARS = (
    "MAVLOG_MAX_BYTES",
    "MAVLOG_BACKUP_COUNT",
    "MAVLOG_MAVLINK_ONLY",
    "MAVLOG_NO_TIMESTAMP",
    "MAVLOG_DIALECT",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()


class TestConfig:
    """Test Config class."""

    def test_defaults(self):
        config = Config()

        assert config.get("logger.max_bytes") == 10 * 1024 * 1024
        assert config.get("logger.backup_count") == 5
        assert config.get("logger.mavlink_only") is False
        assert config.get("definition.dialect") == "common"
        assert config.get("logging.level") == "INFO"

    def test_missing_key(self):
        config = Config()

        assert config.get("logger.nothing") is None
        assert config.get("nothing.at.all", 42) == 42

    def test_user_file_overrides_defaults(self, temp_dir):
        """Test that a YAML file is deep merged over the defaults."""
        path = temp_dir / "mavlog.yaml"
        path.write_text("logger:\n  max_bytes: 2048\ndefinition:\n  dialect: ardupilotmega\n")

        config = Config(str(path))

        assert config.get("logger.max_bytes") == 2048
        assert config.get("logger.backup_count") == 5
        assert config.get("definition.dialect") == "ardupilotmega"

    def test_empty_user_file(self, temp_dir):
        path = temp_dir / "empty.yaml"
        path.write_text("")

        assert Config(str(path)).get("logger.backup_count") == 5

    def test_env_overrides(self, monkeypatch, temp_dir):
        """Test that environment variables win over files."""
        path = temp_dir / "mavlog.yaml"
        path.write_text("logger:\n  max_bytes: 2048\n")
        monkeypatch.setenv("MAVLOG_MAX_BYTES", "4096")
        monkeypatch.setenv("MAVLOG_BACKUP_COUNT", "0")
        monkeypatch.setenv("MAVLOG_MAVLINK_ONLY", "yes")
        monkeypatch.setenv("MAVLOG_NO_TIMESTAMP", "false")
        monkeypatch.setenv("MAVLOG_DIALECT", "minimal")
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")

        config = Config(str(path))

        assert config.get("logger.max_bytes") == 4096
        assert config.get("logger.backup_count") == 0
        assert config.get("logger.mavlink_only") is True
        assert config.get("logger.no_timestamp") is False
        assert config.get("definition.dialect") == "minimal"
        assert config.get("logging.level") == "DEBUG"

    def test_set_nested(self):
        config = Config()
        config.set("extra.section.value", 3)

        assert config.get("extra.section.value") == 3
        assert config.to_dict()["extra"] == {"section": {"value": 3}}

    def test_global_instance(self):
        first = get_config()

        assert get_config() is first

        reset_config()
        assert get_config() is not first
