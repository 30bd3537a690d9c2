"""Admission rule evaluator.

Every request that passes ``should_guard`` is registered first and then
checked against one ordered rule table:

1. the global ceiling (all live tabs),
2. role modules, roles in identity order then modules in declaration order,
3. standalone route patterns in declaration order.

A rule applies when the request's route matches it; it denies when the
number of live tabs in its scope is strictly greater than its ceiling. The
first denying rule wins and nothing after it is evaluated.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Literal

import structlog

from tabguard.application.audit import AuditPolicy
from tabguard.application.context import RequestContext
from tabguard.application.registry import TabRegistry
from tabguard.application.tab_ids import generate_tab_id, is_valid_tab_id
from tabguard.domain.entities.errors import StoreUnavailable
from tabguard.domain.entities.rules import Messages, RuleConfig
from tabguard.domain.entities.tab import Tab, TabSet
from tabguard.domain.entities.verdict import Tier, Verdict
from tabguard.domain.ports.clock import ClockPort
from tabguard.domain.route_patterns import matches_any

log = structlog.get_logger(__name__)

DenyPolicy = Literal["retain", "evict"]


def should_guard(route: str, *, enabled: bool, excluded_routes: Iterable[str]) -> bool:
    """False when guarding is off or *route* matches an exclusion pattern."""
    if not enabled:
        return False
    return not matches_any(excluded_routes, route)


@dataclass(frozen=True)
class TierRule:
    """One row of the rule table.

    ``scope`` lists the route patterns whose tabs are counted against
    ``max_tabs``; ``None`` counts every live tab and applies to every route.
    """

    tier: Tier
    max_tabs: int
    scope: tuple[str, ...] | None
    template: str
    role: str | None = None
    module: str | None = None
    route_pattern: str | None = None

    def applies_to(self, route: str) -> bool:
        return self.scope is None or matches_any(self.scope, route)

    def count(self, tabs: TabSet) -> int:
        if self.scope is None:
            return len(tabs)
        scope = self.scope
        return sum(1 for tab in tabs.values() if matches_any(scope, tab.route))


def build_rule_table(rules: RuleConfig, roles: Iterable[str]) -> Iterator[TierRule]:
    """Yield the applicable rules for a user holding *roles*, in tier order."""
    messages = rules.messages

    if rules.global_enabled:
        yield TierRule(
            tier="global",
            max_tabs=rules.global_max_tabs,
            scope=None,
            template=messages.global_limit_exceeded,
        )

    for role in roles:
        for module in rules.roles.get(role, ()):
            if not module.enabled:
                continue
            yield TierRule(
                tier="role",
                max_tabs=module.max_tabs,
                scope=module.routes,
                template=messages.role_limit_exceeded,
                role=role,
                module=module.name,
            )

    for route_rule in rules.routes:
        if not route_rule.enabled:
            continue
        yield TierRule(
            tier="route",
            max_tabs=route_rule.max_tabs,
            scope=(route_rule.pattern,),
            template=route_rule.message or messages.route_limit_exceeded,
            route_pattern=route_rule.pattern,
        )


class AdmissionEvaluator:
    """Decides whether a request may open (or keep) a tab.

    Args:
        registry: Tab registry; its lock backend serializes each user's
            register-and-check cycle.
        rules: Immutable rule configuration.
        clock: Time source for new tabs.
        fail_open: Allow instead of deny when a store is unavailable.
        on_deny: ``"retain"`` keeps a denied tab registered, ``"evict"``
            closes it before returning the verdict.
        audit: Which violation events to emit.
    """

    def __init__(
        self,
        *,
        registry: TabRegistry,
        rules: RuleConfig,
        clock: ClockPort,
        fail_open: bool = False,
        on_deny: DenyPolicy = "retain",
        audit: AuditPolicy | None = None,
    ) -> None:
        self._registry = registry
        self._rules = rules
        self._clock = clock
        self._fail_open = fail_open
        self._on_deny = on_deny
        self._audit = audit or AuditPolicy()

    @property
    def rules(self) -> RuleConfig:
        return self._rules

    def should_guard(self, route: str) -> bool:
        return should_guard(
            route,
            enabled=self._rules.enabled,
            excluded_routes=self._rules.excluded_routes,
        )

    async def evaluate(self, ctx: RequestContext) -> Verdict:
        """Register the request's tab and run the rule table against it."""
        if not ctx.user_id or not self.should_guard(ctx.route):
            return Verdict.allow(tab_id=ctx.tab_id)

        user_id = ctx.user_id
        try:
            async with self._registry.locks.hold(user_id):
                tab = await self._tab_for(ctx, user_id)
                await self._registry.register(user_id, tab)
                tabs = await self._registry.current_tabs(
                    user_id, session_id=ctx.session_id
                )
                verdict = self._check(tabs, ctx, user_id, tab.id)

                if not verdict.allowed and self._on_deny == "evict":
                    await self._registry.close(
                        user_id, tab.id, session_id=ctx.session_id
                    )
                return verdict
        except StoreUnavailable as e:
            return self._store_failure(ctx, user_id, e)

    async def _tab_for(self, ctx: RequestContext, user_id: str) -> Tab:
        """Reuse the client's tab id only if it names one of the user's live tabs."""
        tab_id = None
        if ctx.tab_id and is_valid_tab_id(ctx.tab_id):
            known = await self._registry.current_tabs(user_id, session_id=ctx.session_id)
            if ctx.tab_id in known:
                tab_id = ctx.tab_id
        if tab_id is None:
            tab_id = generate_tab_id(
                session_id=ctx.session_id, user_agent=ctx.user_agent, ip=ctx.ip
            )

        return Tab(
            id=tab_id,
            route=ctx.route,
            created_at=self._clock.now(),
            user_agent=ctx.user_agent,
            ip=ctx.ip,
            session_id=ctx.session_id,
        )

    def _check(
        self, tabs: TabSet, ctx: RequestContext, user_id: str, tab_id: str
    ) -> Verdict:
        for rule in build_rule_table(self._rules, ctx.roles):
            if not rule.applies_to(ctx.route):
                continue
            current = rule.count(tabs)
            if current > rule.max_tabs:
                return self._deny(rule, current, user_id, tab_id)
        return Verdict.allow(tab_id=tab_id)

    def _deny(self, rule: TierRule, current: int, user_id: str, tab_id: str) -> Verdict:
        context: dict[str, str] = {}
        if rule.role is not None:
            context["role"] = rule.role
        if rule.module is not None:
            context["module"] = rule.module
        if rule.route_pattern is not None:
            context["route_pattern"] = rule.route_pattern

        self._audit.violation(
            f"{rule.tier}_limit_exceeded",
            user_id=user_id,
            current=current,
            max_allowed=rule.max_tabs,
            tab_id=tab_id,
            **context,
        )
        return Verdict(
            allowed=False,
            tier=rule.tier,
            current=current,
            max=rule.max_tabs,
            message=Messages.render(rule.template, rule.max_tabs),
            role=rule.role,
            module=rule.module,
            route_pattern=rule.route_pattern,
            tab_id=tab_id,
        )

    def _store_failure(
        self, ctx: RequestContext, user_id: str, error: StoreUnavailable
    ) -> Verdict:
        log.error(
            "tab_store_unavailable",
            user_id=user_id,
            route=ctx.route,
            backend=error.backend,
            error=error.detail,
            fail_open=self._fail_open,
        )
        if self._fail_open:
            return Verdict.allow(tab_id=ctx.tab_id)
        return Verdict(
            allowed=False,
            tier="store",
            message=self._rules.messages.store_unavailable,
        )
