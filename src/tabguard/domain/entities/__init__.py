from .errors import StoreUnavailable, TabGuardError, Unauthenticated, ValidationFailure
from .rules import Messages, ModuleRule, RouteRule, RuleConfig
from .tab import SweepReport, Tab, TabSet, live_tabs, merge_tab_sets
from .verdict import Tier, Verdict

__all__ = [
    "Messages",
    "ModuleRule",
    "RouteRule",
    "RuleConfig",
    "StoreUnavailable",
    "SweepReport",
    "Tab",
    "TabGuardError",
    "TabSet",
    "Tier",
    "Unauthenticated",
    "ValidationFailure",
    "Verdict",
    "live_tabs",
    "merge_tab_sets",
]
