"""Tests for settings resolution.

Validates:
- rc file loading (YAML and JSON, camelCase aliases)
- environment variable and explicit override precedence
- error reporting for invalid settings
"""
import json
from pathlib import Path

import pytest
import yaml

from mysterio_toolkit.configs.domains import config_loader
from mysterio_toolkit.configs.domains.config_loader import Settings, load_settings
from mysterio_toolkit.configs.domains.errors import ConfigError, ValidationError


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Run from an empty working directory with no toolkit variables set."""
    for var in list(config_loader._ENV_VARS) + ["DEBUG"]:
        monkeypatch.delenv(var, raising=False)
    workdir = tmp_path / "work"
    workdir.mkdir()
    monkeypatch.chdir(workdir)
    return workdir


class TestLoadSettings:
    def test_defaults_without_rc_file(self, clean_env):
        settings = load_settings()

        assert settings == Settings()
        assert settings.env == "local"
        assert settings.backend == "gcp"
        assert settings.config_dir == Path("./config")

    def test_reads_rc_from_working_directory(self, clean_env):
        (clean_env / ".mysteriorc").write_text(json.dumps({
            "packageName": "my-service",
            "configDirPath": "./settings",
            "awsRegion": "eu-west-1",
        }))

        settings = load_settings()

        assert settings.package_name == "my-service"
        assert settings.config_dir == Path("./settings")
        assert settings.region == "eu-west-1"

    def test_reads_yaml_rc(self, clean_env, tmp_path):
        rc = tmp_path / "custom.yml"
        with open(rc, 'w') as f:
            yaml.dump({"package_name": "svc", "backend": "aws", "project_id": "p"}, f)

        settings = load_settings(rc)

        assert settings.package_name == "svc"
        assert settings.backend == "aws"
        assert settings.project_id == "p"

    def test_unknown_keys_are_ignored(self, clean_env):
        (clean_env / ".mysteriorc").write_text("packageName: svc\nsomethingElse: 1\n")

        assert load_settings().package_name == "svc"

    def test_environment_overrides_rc(self, clean_env, monkeypatch):
        (clean_env / ".mysteriorc").write_text("packageName: from-rc\n")
        monkeypatch.setenv("MYSTERIO_PACKAGE_NAME", "from-env")
        monkeypatch.setenv("GCP_PROJECT", "env-project")
        monkeypatch.setenv("MYSTERIO_ENV", "staging")

        settings = load_settings()

        assert settings.package_name == "from-env"
        assert settings.project_id == "env-project"
        assert settings.env == "staging"

    def test_explicit_overrides_win(self, clean_env, monkeypatch):
        monkeypatch.setenv("AWS_REGION", "us-west-2")

        settings = load_settings(region="ap-south-1", package_name=None)

        assert settings.region == "ap-south-1"
        assert settings.package_name is None

    def test_debug_variable(self, clean_env, monkeypatch):
        monkeypatch.setenv("DEBUG", "mysterio")

        assert load_settings().debug is True

    def test_settings_are_not_cached(self, clean_env):
        """Changing the rc file takes effect on the next load."""
        rc = clean_env / ".mysteriorc"
        rc.write_text("packageName: one\n")
        assert load_settings().package_name == "one"

        rc.write_text("packageName: two\n")
        assert load_settings().package_name == "two"


class TestSettingsErrors:
    def test_missing_explicit_rc(self, clean_env, tmp_path):
        with pytest.raises(ConfigError) as exc_info:
            load_settings(tmp_path / "nope.yml")

        assert "not found" in str(exc_info.value)

    def test_invalid_yaml(self, clean_env):
        (clean_env / ".mysteriorc").write_text("invalid: yaml: content: [")

        with pytest.raises(ConfigError) as exc_info:
            load_settings()

        assert "parse" in str(exc_info.value).lower()

    def test_non_mapping_rc(self, clean_env):
        (clean_env / ".mysteriorc").write_text("- a\n- b\n")

        with pytest.raises(ConfigError):
            load_settings()

    def test_empty_rc_uses_defaults(self, clean_env):
        (clean_env / ".mysteriorc").write_text("")

        assert load_settings() == Settings()

    def test_unsupported_backend(self, clean_env):
        with pytest.raises(ConfigError) as exc_info:
            load_settings(backend="vault")

        assert "Unsupported secret store backend" in str(exc_info.value)

    def test_missing_credentials_file(self, clean_env):
        with pytest.raises(ConfigError) as exc_info:
            load_settings(credentials_path="/nonexistent/sa.json")

        assert "Service account file not found" in str(exc_info.value)

    def test_config_error_is_validation_error(self):
        assert issubclass(ConfigError, ValidationError)
