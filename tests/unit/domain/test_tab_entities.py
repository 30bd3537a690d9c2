"""Tests for Tab, TabSet helpers and Verdict."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from tabguard.domain.entities import Messages, Tab, Verdict
from tabguard.domain.entities.tab import live_tabs, merge_tab_sets

T0 = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def _tab(tab_id: str, route: str = "home", at: datetime = T0) -> Tab:
    return Tab(id=tab_id, route=route, created_at=at)


class TestTab:
    def test_last_activity_defaults_to_created_at(self) -> None:
        tab = _tab("a")
        assert tab.last_activity == T0
        assert tab.seen_at == T0

    def test_touched_refreshes_only_last_activity(self) -> None:
        later = T0 + timedelta(minutes=5)
        tab = _tab("a").touched(later)
        assert tab.created_at == T0
        assert tab.last_activity == later

    def test_boundary_is_live(self) -> None:
        tab = _tab("a")
        assert tab.is_stale(T0 + timedelta(seconds=1800), 1800) is False

    def test_one_second_past_boundary_is_stale(self) -> None:
        tab = _tab("a")
        assert tab.is_stale(T0 + timedelta(seconds=1801), 1800) is True

    def test_staleness_uses_last_activity(self) -> None:
        tab = _tab("a").touched(T0 + timedelta(seconds=1000))
        assert tab.is_stale(T0 + timedelta(seconds=2500), 1800) is False


class TestTabSetHelpers:
    def test_live_tabs_drops_stale_entries(self) -> None:
        tabs = {
            "old": _tab("old", at=T0 - timedelta(seconds=1801)),
            "new": _tab("new", at=T0 - timedelta(seconds=100)),
        }
        assert set(live_tabs(tabs, T0, 1800)) == {"new"}

    def test_live_tabs_returns_new_mapping(self) -> None:
        tabs = {"a": _tab("a")}
        result = live_tabs(tabs, T0, 1800)
        result.pop("a")
        assert "a" in tabs

    def test_merge_secondary_wins_on_collision(self) -> None:
        primary = {"a": _tab("a", route="from.primary"), "b": _tab("b")}
        secondary = {"a": _tab("a", route="from.secondary"), "c": _tab("c")}
        merged = merge_tab_sets(primary, secondary)
        assert set(merged) == {"a", "b", "c"}
        assert merged["a"].route == "from.secondary"


class TestVerdict:
    def test_allow_serializes_minimal(self) -> None:
        assert Verdict.allow(tab_id="x").to_dict() == {"allowed": True}

    def test_deny_carries_tier_and_context(self) -> None:
        verdict = Verdict(
            allowed=False,
            tier="role",
            current=3,
            max=2,
            message="too many",
            role="counselor",
            module="applications",
        )
        assert verdict.to_dict() == {
            "allowed": False,
            "type": "role",
            "current": 3,
            "max": 2,
            "message": "too many",
            "role": "counselor",
            "module": "applications",
        }

    def test_render_substitutes_max(self) -> None:
        assert Messages.render("limit is :max", 4) == "limit is 4"
        assert "(5)" in Messages.render(Messages.global_limit_exceeded, 5)
