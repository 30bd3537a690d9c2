"""Hardcoded default configuration values."""

from __future__ import annotations

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "app_name": "tabguard",
    "environment": "dev",
    "enabled": True,
    "global": {
        "enabled": True,
        "max_tabs": 5,
        "excluded_routes": ["login", "logout", "password.*", "register"],
    },
    "roles": {},
    "routes": {},
    "session": {
        "key_prefix": "tab_guard_",
        "tab_timeout": 1800,  # 30 minutes
        "lifetime_seconds": 7200,
        "cookie_name": "session",
    },
    "security": {
        "prevent_incognito_bypass": True,
        "fail_open": False,
        "on_deny": "retain",
    },
    "concurrency": {
        "lock_backend": "local",
        "lock_timeout_seconds": 5.0,
    },
    "cache": {
        "backend": "memory",
        "dir": "./.cache/tabguard",
        "redis_url": "redis://localhost:6379/0",
        "max_concurrent": 10,
    },
    "logging": {
        "level": "INFO",
        "format": None,  # Derived from environment in schema.py
        "enabled": True,
        "log_attempts": True,
        "log_violations": True,
        "log_cleanup": False,
    },
    "response": {
        "type": "json",
        "redirect_url": "/",
    },
}
