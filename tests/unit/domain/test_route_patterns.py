"""Tests for route-name glob matching."""

from __future__ import annotations

import pytest

from tabguard.domain.route_patterns import matches_any, route_matches


class TestExactPatterns:
    def test_identical_name_matches(self) -> None:
        assert route_matches("dashboard", "dashboard") is True

    def test_different_name_does_not_match(self) -> None:
        assert route_matches("dashboard", "dashboards") is False

    def test_case_sensitive(self) -> None:
        assert route_matches("Dashboard", "dashboard") is False

    def test_empty_pattern_only_matches_empty_route(self) -> None:
        assert route_matches("", "") is True
        assert route_matches("", "home") is False


class TestWildcard:
    @pytest.mark.parametrize(
        "route",
        ["application.show", "application.edit.notes", "application."],
    )
    def test_trailing_star_matches_any_suffix(self, route: str) -> None:
        assert route_matches("application.*", route) is True

    @pytest.mark.parametrize("route", ["application", "applications.index"])
    def test_trailing_star_requires_prefix(self, route: str) -> None:
        assert route_matches("application.*", route) is False

    def test_star_crosses_separators(self) -> None:
        assert route_matches("admin.*.edit", "admin.users.roles.edit") is True

    def test_leading_star(self) -> None:
        assert route_matches("*.export", "reports.monthly.export") is True
        assert route_matches("*.export", "reports.monthly.exports") is False

    def test_lone_star_matches_everything(self) -> None:
        assert route_matches("*", "") is True
        assert route_matches("*", "anything.at.all") is True

    def test_middle_chunks_must_appear_in_order(self) -> None:
        assert route_matches("a*b*c", "a-b-c") is True
        assert route_matches("a*c*b", "a-b-c") is False

    def test_head_and_tail_cannot_overlap(self) -> None:
        assert route_matches("ab*ba", "aba") is False
        assert route_matches("ab*ba", "abba") is True

    def test_dot_is_literal(self) -> None:
        assert route_matches("password.*", "passwordXreset") is False
        assert route_matches("password.*", "password.reset") is True


class TestMatchesAny:
    def test_true_when_one_pattern_matches(self) -> None:
        assert matches_any(["login", "password.*"], "password.reset") is True

    def test_false_for_no_patterns(self) -> None:
        assert matches_any([], "login") is False
