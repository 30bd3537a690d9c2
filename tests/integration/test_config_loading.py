"""Integration tests for configuration loading with layered precedence.

Tests the real load_config() function with actual YAML files, environment
variables, and CLI overrides to verify precedence: defaults < YAML < ENV < CLI.
"""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from tabguard.infrastructure.config.load import load_config

pytestmark = [pytest.mark.integration, pytest.mark.usefixtures("clean_env")]


@pytest.fixture()
def yaml_config(tmp_path: Path) -> Path:
    """Write a config modelled on a student-services deployment."""
    config = {
        "app_name": "tabguard-test",
        "environment": "test",
        "global": {"max_tabs": 8},
        "roles": {
            "counselor": {
                "applications": {
                    "max_tabs": 3,
                    "routes": ["application.*", "applications.*"],
                },
                "students": {"max_tabs": 5, "routes": ["student.*"]},
            },
            "admin": {
                "users": {"max_tabs": 2, "routes": ["admin.users.*"]},
            },
        },
        "routes": {
            "sensitive.*": {
                "max_tabs": 1,
                "message": "Only one sensitive page at a time.",
            }
        },
        "session": {"tab_timeout": 900},
        "logging": {"level": "DEBUG", "format": "console"},
        "cache": {"backend": "diskcache", "dir": str(tmp_path / "cache")},
    }
    path = tmp_path / "config.yaml"
    path.write_text(yaml.dump(config), encoding="utf-8")
    return path


class TestDefaultsOnly:
    """Load with no YAML, no ENV, no CLI: pure defaults."""

    def test_defaults_produce_valid_config(self) -> None:
        config = load_config()
        assert config.app_name == "tabguard"
        assert config.environment == "dev"
        assert config.global_.max_tabs == 5
        assert config.global_.excluded_routes == [
            "login", "logout", "password.*", "register"
        ]
        assert config.session.key_prefix == "tab_guard_"
        assert config.security.prevent_incognito_bypass is True
        assert config.cache.backend == "memory"
        assert config.logging.format == "console"  # dev -> console

    def test_defaults_derive_log_format_from_environment(self) -> None:
        config = load_config(cli_overrides={"environment": "prod"})
        assert config.logging.format == "json"


class TestYamlOverrides:
    """YAML values override defaults."""

    def test_yaml_overrides_defaults(self, yaml_config: Path, tmp_path: Path) -> None:
        config = load_config(config_path=yaml_config)
        assert config.app_name == "tabguard-test"
        assert config.global_.max_tabs == 8
        assert config.session.tab_timeout == 900
        assert config.logging.level == "DEBUG"
        assert config.cache.backend == "diskcache"
        assert config.cache.directory == tmp_path / "cache"

    def test_yaml_rules_reach_rule_config(self, yaml_config: Path) -> None:
        rules = load_config(config_path=yaml_config).to_rules()
        assert [m.name for m in rules.roles["counselor"]] == ["applications", "students"]
        assert rules.routes[0].pattern == "sensitive.*"
        assert rules.routes[0].message == "Only one sensitive page at a time."

    def test_yaml_partial_override_preserves_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "partial.yaml"
        path.write_text(yaml.dump({"global": {"max_tabs": 3}}), encoding="utf-8")

        config = load_config(config_path=path)
        assert config.global_.max_tabs == 3
        assert config.global_.enabled is True  # default preserved
        assert "password.*" in config.global_.excluded_routes  # default preserved

    def test_yaml_file_not_found_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(config_path=tmp_path / "nonexistent.yaml")

    def test_yaml_must_be_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ValueError, match="mapping"):
            load_config(config_path=path)

    def test_empty_yaml_is_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config(config_path=path).global_.max_tabs == 5


class TestEnvOverrides:
    """Environment variables override YAML and defaults."""

    def test_env_overrides_yaml(
        self, yaml_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("TABGUARD_LOG_LEVEL", "WARNING")
        monkeypatch.setenv("TABGUARD_GLOBAL_MAX_TABS", "12")
        monkeypatch.setenv("TABGUARD_FAIL_OPEN", "true")

        config = load_config(config_path=yaml_config)
        assert config.logging.level == "WARNING"
        assert config.global_.max_tabs == 12
        assert config.security.fail_open is True
        # YAML values not overridden by ENV stay
        assert config.session.tab_timeout == 900

    def test_env_overrides_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TABGUARD_ENVIRONMENT", "prod")

        config = load_config()
        assert config.environment == "prod"
        assert config.logging.format == "json"  # prod -> json

    def test_dotenv_file_feeds_env_layer(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        dotenv = tmp_path / ".env"
        dotenv.write_text("TABGUARD_TAB_TIMEOUT=600\n", encoding="utf-8")
        # Registered with monkeypatch so the value load_dotenv sets is undone.
        monkeypatch.setenv("TABGUARD_TAB_TIMEOUT", "")
        monkeypatch.delenv("TABGUARD_TAB_TIMEOUT")

        config = load_config(dotenv_path=dotenv)
        assert config.session.tab_timeout == 600

    def test_missing_dotenv_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(dotenv_path=tmp_path / "missing.env")


class TestCliOverrides:
    """CLI overrides beat everything (highest precedence)."""

    def test_cli_overrides_yaml_and_env(
        self, yaml_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("TABGUARD_LOG_LEVEL", "WARNING")

        config = load_config(
            config_path=yaml_config,
            cli_overrides={"log_level": "ERROR"},
        )
        assert config.logging.level == "ERROR"

    def test_cli_overrides_with_sectioned_format(self, yaml_config: Path) -> None:
        config = load_config(
            config_path=yaml_config,
            cli_overrides={"security": {"on_deny": "evict"}},
        )
        assert config.security.on_deny == "evict"
