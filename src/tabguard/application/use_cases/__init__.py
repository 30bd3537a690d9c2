from .close_tab import CloseTabUseCase
from .guard_status import GuardStatus, GuardStatusUseCase
from .heartbeat import HeartbeatUseCase
from .tab_info import TabInfo, TabInfoUseCase

__all__ = [
    "CloseTabUseCase",
    "GuardStatus",
    "GuardStatusUseCase",
    "HeartbeatUseCase",
    "TabInfo",
    "TabInfoUseCase",
]
