"""Tests for settings and scoped loggers."""

from pathlib import Path

import pytest
from ff_logger import ConsoleLogger, JSONLogger

from emudock.config import EmuDockSettings, get_logger, get_settings
from emudock.exceptions import ConfigError
from emudock.render import RecipeOptions


class TestSettings:
    """Test EmuDockSettings."""

    def test_defaults(self, tmp_path):
        settings = EmuDockSettings()

        assert settings.project_dir == tmp_path
        assert settings.project_id == "my-local-test-project"
        assert settings.compose_project == "emudock"
        assert settings.readiness_timeout == 60.0
        assert settings.descriptor_path == tmp_path / "emulators.yaml"

    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("EMUDOCK_PROJECT_ID", "demo")
        monkeypatch.setenv("EMUDOCK_READINESS_TIMEOUT", "5")
        monkeypatch.setenv("EMUDOCK_SYSTEM_PACKAGES", '["openjdk17-jre"]')
        monkeypatch.setenv("EMUDOCK_LOG_LEVEL", "debug")

        settings = EmuDockSettings()

        assert settings.project_id == "demo"
        assert settings.readiness_timeout == 5.0
        assert settings.system_packages == ["openjdk17-jre"]
        assert settings.log_level == "DEBUG"

    def test_dotenv_file(self, tmp_path):
        (tmp_path / ".env").write_text("EMUDOCK_COMPOSE_PROJECT=fromdotenv\n")
        assert EmuDockSettings().compose_project == "fromdotenv"

    def test_absolute_descriptor_file(self):
        settings = EmuDockSettings(descriptor_file="/etc/emulators.yaml")
        assert settings.descriptor_path == Path("/etc/emulators.yaml")

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

    def test_invalid_environment_is_config_error(self, monkeypatch):
        monkeypatch.setenv("EMUDOCK_READINESS_TIMEOUT", "-1")

        with pytest.raises(ConfigError, match="readiness_timeout"):
            get_settings()

    def test_invalid_log_format(self, monkeypatch):
        monkeypatch.setenv("EMUDOCK_LOG_FORMAT", "xml")
        with pytest.raises(ConfigError, match="log_format"):
            get_settings()

    def test_recipe_options_from_settings(self):
        settings = EmuDockSettings(project_id="demo", base_image="node:22-alpine")

        options = RecipeOptions.from_settings(settings)
        assert options.project_id == "demo"
        assert options.base_image == "node:22-alpine"

        override = RecipeOptions.from_settings(settings, project_id="from-file")
        assert override.project_id == "from-file"

    def test_hosts_are_independent(self, monkeypatch):
        monkeypatch.setenv("EMUDOCK_ENDPOINT_HOST", "docker-host.lan")

        options = RecipeOptions.from_settings(EmuDockSettings())

        assert options.endpoint_host == "docker-host.lan"
        assert options.container_host == "localhost"

    def test_health_start_period_follows_readiness_timeout(self):
        settings = EmuDockSettings(readiness_timeout=45.5)
        assert RecipeOptions.from_settings(settings).health_start_period == "46s"


class TestGetLogger:
    """Test scoped logger selection."""

    def test_console_by_default(self):
        logger = get_logger("docker")

        assert isinstance(logger, ConsoleLogger)
        assert logger.name == "docker"

    def test_json_format(self, monkeypatch):
        monkeypatch.setenv("EMUDOCK_LOG_FORMAT", "json")
        assert isinstance(get_logger("render"), JSONLogger)

    def test_cached_per_scope(self):
        assert get_logger("bootstrap") is get_logger("bootstrap")
        assert get_logger("bootstrap") is not get_logger("client")

    def test_survives_invalid_settings(self, monkeypatch):
        monkeypatch.setenv("EMUDOCK_LOG_LEVEL", "loud")
        assert isinstance(get_logger("cli"), ConsoleLogger)
