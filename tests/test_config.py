"""
Tests for toolkit configuration.
"""

import json
from datetime import datetime

import pytest
import yaml
from pydantic import ValidationError

from softdelete_toolkit import SoftDeleteConfig, configure, get_config, set_config
from softdelete_toolkit.config import LogLevel


class TestSoftDeleteConfig:
    """Test configuration defaults and validation."""

    def test_defaults(self):
        config = SoftDeleteConfig()

        assert config.deleted_field == "deleted"
        assert config.deleted_date_field == "deleted_date"
        assert config.not_deleted_sentinel == "0"
        assert config.timestamp_format == "%Y-%m-%d %H:%M:%S"
        assert config.with_deleted_option == "with_deleted"
        assert config.check_rules is True
        assert config.cascade_enabled is True
        assert config.retention_days == 90
        assert config.database_url is None
        assert config.log_level == LogLevel.INFO

    def test_invalid_timezone(self):
        with pytest.raises(ValidationError, match="Unknown timezone"):
            SoftDeleteConfig(timezone="Mars/Olympus")

    def test_invalid_timestamp_format(self):
        with pytest.raises(ValidationError):
            SoftDeleteConfig(timestamp_format="%H:%M")

    def test_retention_must_be_positive(self):
        with pytest.raises(ValidationError):
            SoftDeleteConfig(retention_days=0)

    def test_empty_field_names(self):
        with pytest.raises(ValidationError):
            SoftDeleteConfig(deleted_field="")

    def test_log_level_case_insensitive(self):
        assert SoftDeleteConfig(log_level="debug").log_level == LogLevel.DEBUG

    def test_format_timestamp(self):
        config = SoftDeleteConfig()
        moment = datetime(2026, 3, 1, 7, 5, 9)
        assert config.format_timestamp(moment) == "2026-03-01 07:05:09"

    def test_now_is_naive(self):
        now = SoftDeleteConfig(timezone="Asia/Tokyo").now()
        assert now.tzinfo is None

    def test_to_dict(self):
        data = SoftDeleteConfig(retention_days=30).to_dict()

        assert data["retention_days"] == 30
        assert data["log_level"] == "INFO"
        json.dumps(data)


class TestConfigSources:
    """Test loading configuration from the environment and files."""

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("SOFTDELETE_DELETED_FIELD", "is_deleted")
        monkeypatch.setenv("SOFTDELETE_RETENTION_DAYS", "30")
        monkeypatch.setenv("SOFTDELETE_CASCADE_ENABLED", "false")
        monkeypatch.setenv("SOFTDELETE_DATABASE_URL", "sqlite:///app.db")

        config = SoftDeleteConfig.from_env()

        assert config.deleted_field == "is_deleted"
        assert config.retention_days == 30
        assert config.cascade_enabled is False
        assert config.database_url == "sqlite:///app.db"

    def test_from_env_custom_prefix(self, monkeypatch):
        monkeypatch.setenv("TRASH_CHECK_RULES", "no")

        assert SoftDeleteConfig.from_env(prefix="TRASH_").check_rules is False

    def test_from_env_invalid_value(self, monkeypatch):
        monkeypatch.setenv("SOFTDELETE_RETENTION_DAYS", "soon")

        with pytest.raises(ValidationError):
            SoftDeleteConfig.from_env()

    def test_from_json_file(self, tmp_path):
        path = tmp_path / "softdelete.json"
        path.write_text(json.dumps({"deleted_date_field": "removed_at"}))

        assert SoftDeleteConfig.from_file(path).deleted_date_field == "removed_at"

    def test_from_yaml_file(self, tmp_path):
        path = tmp_path / "softdelete.yaml"
        data = {"timezone": "Europe/Berlin", "retention_days": 14}
        path.write_text(yaml.safe_dump(data))

        config = SoftDeleteConfig.from_file(str(path))

        assert config.timezone == "Europe/Berlin"
        assert config.retention_days == 14

    def test_empty_file(self, tmp_path):
        path = tmp_path / "softdelete.yml"
        path.write_text("")

        assert SoftDeleteConfig.from_file(path) == SoftDeleteConfig()

    def test_file_must_contain_mapping(self, tmp_path):
        path = tmp_path / "softdelete.yaml"
        path.write_text("- deleted\n- deleted_date\n")

        with pytest.raises(ValueError, match="must contain a mapping"):
            SoftDeleteConfig.from_file(path)


class TestGlobalConfig:
    """Test the process-wide configuration."""

    def test_get_config_reads_environment(self, monkeypatch):
        monkeypatch.setenv("SOFTDELETE_RETENTION_DAYS", "7")
        set_config(None)

        assert get_config().retention_days == 7

    def test_get_config_ignores_invalid_environment(self, monkeypatch, caplog):
        monkeypatch.setenv("SOFTDELETE_TIMEZONE", "Nowhere/Special")
        set_config(None)

        with caplog.at_level("WARNING"):
            config = get_config()

        assert config.timezone == "UTC"
        assert "SOFTDELETE_" in caplog.text

    def test_get_config_is_cached(self):
        assert get_config() is get_config()

    def test_set_config(self):
        custom = SoftDeleteConfig(retention_days=5)
        set_config(custom)

        assert get_config() is custom

    def test_configure(self):
        configure(retention_days=10)
        config = configure(check_rules=False)

        assert config is get_config()
        assert config.retention_days == 10
        assert config.check_rules is False

    def test_configure_validates(self):
        with pytest.raises(ValidationError):
            configure(timezone="Invalid/Zone")
