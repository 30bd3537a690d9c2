from .cache import CachePort
from .clock import ClockPort
from .tab_store import StoreSlot, TabStorePort
from .user_lock import UserLockPort

__all__ = [
    "CachePort",
    "ClockPort",
    "StoreSlot",
    "TabStorePort",
    "UserLockPort",
]
