"""Structured activity/violation events emitted by the core.

The core only emits key/value events; rendering and routing belong to the
structlog/stdlib configuration of the host process.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog

log = structlog.get_logger("tabguard.audit")


@dataclass(frozen=True)
class AuditPolicy:
    enabled: bool = True
    log_attempts: bool = True
    log_violations: bool = True
    log_cleanup: bool = False

    def activity(
        self,
        action: str,
        *,
        user_id: str,
        tab_id: str | None = None,
        route: str | None = None,
        **context: Any,
    ) -> None:
        if not (self.enabled and self.log_attempts):
            return
        log.info(action, action=action, user_id=user_id, tab_id=tab_id, route=route, **context)

    def violation(
        self,
        violation_type: str,
        *,
        user_id: str,
        current: int,
        max_allowed: int,
        **context: Any,
    ) -> None:
        if not (self.enabled and self.log_violations):
            return
        log.warning(
            violation_type,
            violation_type=violation_type,
            user_id=user_id,
            current_tabs=current,
            max_allowed=max_allowed,
            **context,
        )

    def cleanup(self, event: str, **context: Any) -> None:
        if not (self.enabled and self.log_cleanup):
            return
        log.info(event, **context)
