"""Tests for settings resolution."""

import pytest
from pydantic import ValidationError

from localstack_mcp.config import DEFAULT_CONTAINER_NAME, Settings


class TestSettingsFromEnv:
    """Tests for Settings.from_env."""

    def test_defaults(self):
        settings = Settings.from_env({})

        assert settings.localstack_hostname == "localhost"
        assert settings.localstack_port == 4566
        assert settings.auth_token is None
        assert settings.container_name == DEFAULT_CONTAINER_NAME
        assert settings.base_url == "http://localhost:4566"

    def test_reads_environment(self):
        settings = Settings.from_env(
            {
                "LOCALSTACK_HOSTNAME": "ls.internal",
                "LOCALSTACK_PORT": "4567",
                "LOCALSTACK_AUTH_TOKEN": "ls-token",
                "LOCALSTACK_CONTAINER_NAME": "my-localstack",
            }
        )

        assert settings.base_url == "http://ls.internal:4567"
        assert settings.auth_token == "ls-token"
        assert settings.container_name == "my-localstack"

    def test_empty_values_are_ignored(self):
        assert Settings.from_env({"LOCALSTACK_AUTH_TOKEN": ""}).auth_token is None

    def test_not_cached(self, monkeypatch):
        monkeypatch.setenv("LOCALSTACK_AUTH_TOKEN", "first")
        assert Settings.from_env().auth_token == "first"
        monkeypatch.setenv("LOCALSTACK_AUTH_TOKEN", "second")
        assert Settings.from_env().auth_token == "second"

    def test_invalid_port(self):
        with pytest.raises(ValidationError):
            Settings.from_env({"LOCALSTACK_PORT": "not-a-port"})


class TestSettingsFromYaml:
    """Tests for Settings.from_yaml."""

    def test_overlays_environment(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("localstack_port: 5000\ncommand_timeout_s: 60\n")

        settings = Settings.from_yaml(path, {"LOCALSTACK_HOSTNAME": "ls.internal", "LOCALSTACK_PORT": "4567"})

        assert settings.base_url == "http://ls.internal:5000"
        assert settings.command_timeout_s == 60

    def test_empty_file(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("")
        assert Settings.from_yaml(path, {}) == Settings()

    def test_rejects_non_mapping(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError, match="must contain a mapping"):
            Settings.from_yaml(path, {})

    def test_validates_values(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("fetch_timeout_s: 0\n")
        with pytest.raises(ValidationError):
            Settings.from_yaml(path, {})
