"""Application state container for FastAPI dependency injection."""

from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.datastructures import State

from tabguard.infrastructure.config import AppConfig

if TYPE_CHECKING:
    from tabguard.application.evaluator import AdmissionEvaluator
    from tabguard.application.registry import TabRegistry
    from tabguard.application.use_cases import (
        CloseTabUseCase,
        GuardStatusUseCase,
        HeartbeatUseCase,
        TabInfoUseCase,
    )
    from tabguard.domain.entities.rules import RuleConfig
    from tabguard.domain.ports import CachePort


class AppState(State):
    """FastAPI application state with all DI resources.

    Lifecycle managed by composition.py::lifespan().
    """

    # Configuration
    config: AppConfig
    rules: RuleConfig

    # Infrastructure
    cache: CachePort

    # Core
    registry: TabRegistry
    evaluator: AdmissionEvaluator

    # Use cases behind the /tab-guard endpoints
    close_tab_uc: CloseTabUseCase
    heartbeat_uc: HeartbeatUseCase
    tab_info_uc: TabInfoUseCase
    guard_status_uc: GuardStatusUseCase
