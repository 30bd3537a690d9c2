"""Tests for AppConfig validation and its conversion to RuleConfig."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from tabguard.domain.entities.rules import ModuleRule, RouteRule
from tabguard.infrastructure.config.schema import AppConfig


def _config(**sections) -> AppConfig:
    return AppConfig.model_validate(sections)


class TestDefaults:
    def test_defaults_are_valid(self) -> None:
        config = AppConfig()
        assert config.global_.max_tabs == 5
        assert config.session.tab_timeout == 1800
        assert config.security.fail_open is False
        assert config.concurrency.lock_backend == "local"
        assert config.logging.format == "console"

    def test_prod_defaults_to_json_logs(self) -> None:
        assert _config(environment="prod").logging.format == "json"

    def test_explicit_log_format_wins(self) -> None:
        config = _config(environment="prod", logging={"format": "console"})
        assert config.logging.format == "console"


class TestValidation:
    def test_negative_max_tabs_rejected(self) -> None:
        with pytest.raises(ValidationError):
            _config(**{"global": {"max_tabs": -1}})

    def test_zero_timeout_rejected(self) -> None:
        with pytest.raises(ValidationError):
            _config(session={"tab_timeout": 0})

    def test_unknown_deny_policy_rejected(self) -> None:
        with pytest.raises(ValidationError):
            _config(security={"on_deny": "explode"})

    def test_module_requires_max_tabs(self) -> None:
        with pytest.raises(ValidationError):
            _config(roles={"counselor": {"applications": {"routes": ["a.*"]}}})


class TestToRules:
    def test_converts_all_tiers_in_declaration_order(self) -> None:
        config = _config(
            **{
                "global": {"max_tabs": 7, "excluded_routes": ["login"]},
                "roles": {
                    "counselor": {
                        "applications": {"max_tabs": 2, "routes": ["application.*"]},
                        "students": {"max_tabs": 3, "routes": ["student.*"], "enabled": False},
                    }
                },
                "routes": {
                    "sensitive.*": {"max_tabs": 1},
                    "reports.*": {"max_tabs": 2, "message": "Max :max reports"},
                },
                "messages": {"global_limit_exceeded": "Too many tabs (:max)"},
            }
        )

        rules = config.to_rules()

        assert rules.global_max_tabs == 7
        assert rules.excluded_routes == ("login",)
        assert rules.roles["counselor"] == (
            ModuleRule(name="applications", max_tabs=2, routes=("application.*",)),
            ModuleRule(name="students", max_tabs=3, routes=("student.*",), enabled=False),
        )
        assert rules.routes == (
            RouteRule(pattern="sensitive.*", max_tabs=1),
            RouteRule(pattern="reports.*", max_tabs=2, message="Max :max reports"),
        )
        assert rules.messages.global_limit_exceeded == "Too many tabs (:max)"

    def test_master_switch(self) -> None:
        assert _config(enabled=False).to_rules().enabled is False
