"""Pydantic configuration models with validation."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tabguard.domain.entities.rules import Messages, ModuleRule, RouteRule, RuleConfig

Environment = Literal["dev", "test", "prod"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console"]
CacheBackendName = Literal["memory", "diskcache", "redis"]
LockBackendName = Literal["none", "local", "redis"]
ResponseType = Literal["json", "redirect"]
DenyPolicyName = Literal["retain", "evict"]


def _normalize_path(value: Any) -> Path:
    """
    Normalize a path-like value without causing filesystem side-effects.

    This function MUST NOT create directories or files.
    """
    if isinstance(value, Path):
        return value.expanduser()
    if isinstance(value, str):
        return Path(value).expanduser()
    raise TypeError(f"Expected path-like value, got: {type(value)!r}")


def _non_negative(name: str, value: int) -> int:
    if value < 0:
        raise ValueError(f"{name} must be >= 0")
    return value


class GlobalConfig(BaseModel):
    """Global ceiling across the whole application (YAML section: global.*)."""

    enabled: bool = True
    max_tabs: int = Field(default=5, description="Last allowed total tab count.")
    excluded_routes: list[str] = Field(
        default_factory=lambda: ["login", "logout", "password.*", "register"],
        description="Route-name globs that are never guarded.",
    )

    @field_validator("max_tabs")
    @classmethod
    def _validate_max(cls, v: int) -> int:
        return _non_negative("global.max_tabs", v)


class ModuleConfig(BaseModel):
    """One module of a role (YAML: roles.<role>.<module>.*)."""

    enabled: bool = True
    max_tabs: int
    routes: list[str] = Field(default_factory=list)

    @field_validator("max_tabs")
    @classmethod
    def _validate_max(cls, v: int) -> int:
        return _non_negative("max_tabs", v)


class RouteConfig(BaseModel):
    """Standalone route-pattern ceiling (YAML: routes.<pattern>.*)."""

    enabled: bool = True
    max_tabs: int
    message: Optional[str] = None

    @field_validator("max_tabs")
    @classmethod
    def _validate_max(cls, v: int) -> int:
        return _non_negative("max_tabs", v)


class SessionConfig(BaseModel):
    key_prefix: str = Field(default="tab_guard_", description="Store key namespace.")
    tab_timeout: int = Field(
        default=1800, description="Seconds of inactivity after which a tab expires."
    )
    lifetime_seconds: int = Field(
        default=7200, description="TTL of the session-scoped TabSet."
    )
    cookie_name: str = Field(
        default="session",
        description="Cookie carrying the session id when request.state has none.",
    )

    @field_validator("tab_timeout", "lifetime_seconds")
    @classmethod
    def _validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("session timeouts must be > 0")
        return v


class SecurityConfig(BaseModel):
    prevent_incognito_bypass: bool = Field(
        default=True,
        description="Mirror tabs into the cross-session user store.",
    )
    fail_open: bool = Field(
        default=False,
        description="Allow requests when the tab store is unreachable.",
    )
    on_deny: DenyPolicyName = Field(
        default="retain",
        description="'retain' keeps a denied tab registered, 'evict' closes it.",
    )


class ConcurrencyConfig(BaseModel):
    lock_backend: LockBackendName = Field(
        default="local",
        description="Per-user serialization: none, local (asyncio) or redis.",
    )
    lock_timeout_seconds: float = Field(
        default=5.0, description="Lock expiry and max wait (redis backend)."
    )


class CacheConfig(BaseModel):
    """Cache configuration (backend-agnostic)."""

    model_config = ConfigDict(populate_by_name=True)

    backend: CacheBackendName = Field(
        default="memory",
        description="Cache backend: 'memory', 'diskcache' (SQLite) or 'redis'",
    )
    directory: Path = Field(
        default=Path("./.cache/tabguard"),
        alias="dir",
        description="Diskcache SQLite DB path",
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL (backend=redis or lock_backend=redis)",
    )
    max_concurrent: int = Field(
        default=10,
        description="Max parallel cache ops (semaphore limit)",
    )

    @field_validator("directory", mode="before")
    @classmethod
    def _validate_dir(cls, v: Any) -> Path:
        return _normalize_path(v)


class LoggingConfig(BaseModel):
    level: LogLevel = "INFO"
    format: Optional[LogFormat] = Field(
        default=None,
        description="Log renderer format (console/json). If unset, derived from environment.",
    )
    enabled: bool = True
    log_attempts: bool = True
    log_violations: bool = True
    log_cleanup: bool = False


class JsonResponseConfig(BaseModel):
    success: bool = False
    message: str = "Tab limit exceeded"
    code: str = "TAB_LIMIT_EXCEEDED"


class ResponseConfig(BaseModel):
    type: ResponseType = "json"
    redirect_url: str = "/"
    json_response: JsonResponseConfig = Field(default_factory=JsonResponseConfig)


class MessagesConfig(BaseModel):
    global_limit_exceeded: str = Messages.global_limit_exceeded
    role_limit_exceeded: str = Messages.role_limit_exceeded
    route_limit_exceeded: str = Messages.route_limit_exceeded
    store_unavailable: str = Messages.store_unavailable


class AppConfig(BaseModel):
    """
    Canonical application configuration (validated, final).

    Note:
    - YAML is expected to be sectioned (global/roles/routes/session/...).
    - Environment variables are handled by EnvOverrides(BaseSettings) to allow strict
      precedence control (defaults < YAML < ENV < CLI) in load.py.
    """

    model_config = ConfigDict(populate_by_name=True)

    app_name: str = Field(default="tabguard", description="Application name.")
    environment: Environment = Field(
        default="dev",
        description="Runtime environment (affects defaults like log format).",
    )
    enabled: bool = Field(default=True, description="Master switch for guarding.")

    global_: GlobalConfig = Field(default_factory=GlobalConfig, alias="global")
    roles: dict[str, dict[str, ModuleConfig]] = Field(default_factory=dict)
    routes: dict[str, RouteConfig] = Field(default_factory=dict)

    session: SessionConfig = Field(default_factory=SessionConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    concurrency: ConcurrencyConfig = Field(default_factory=ConcurrencyConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    response: ResponseConfig = Field(default_factory=ResponseConfig)
    messages: MessagesConfig = Field(default_factory=MessagesConfig)

    @model_validator(mode="after")
    def _derive_defaults(self) -> "AppConfig":
        # Default log format: console in dev/test, json in prod.
        if self.logging.format is None:
            self.logging.format = "json" if self.environment == "prod" else "console"
        return self

    def to_rules(self) -> RuleConfig:
        """Freeze the rule sections into the domain RuleConfig."""
        return RuleConfig(
            enabled=self.enabled,
            global_enabled=self.global_.enabled,
            global_max_tabs=self.global_.max_tabs,
            excluded_routes=tuple(self.global_.excluded_routes),
            roles={
                role: tuple(
                    ModuleRule(
                        name=name,
                        max_tabs=module.max_tabs,
                        routes=tuple(module.routes),
                        enabled=module.enabled,
                    )
                    for name, module in modules.items()
                )
                for role, modules in self.roles.items()
            },
            routes=tuple(
                RouteRule(
                    pattern=pattern,
                    max_tabs=rule.max_tabs,
                    enabled=rule.enabled,
                    message=rule.message,
                )
                for pattern, rule in self.routes.items()
            ),
            messages=Messages(**self.messages.model_dump()),
        )


class EnvOverrides(BaseSettings):
    """
    Environment-variable overrides (all optional).

    Intended usage:
    - load.py creates EnvOverrides() to read TABGUARD_* variables,
      converts to dict of set values, merges into YAML/defaults,
      then validates AppConfig.

    Supported env var examples (flat, explicit):
    - TABGUARD_ENABLED
    - TABGUARD_GLOBAL_MAX_TABS
    - TABGUARD_TAB_TIMEOUT
    - TABGUARD_CACHE_BACKEND
    - TABGUARD_LOG_LEVEL
    """

    model_config = SettingsConfigDict(
        env_prefix="TABGUARD_",
        extra="ignore",
        case_sensitive=False,
    )

    app_name: Optional[str] = None
    environment: Optional[Environment] = None
    enabled: Optional[bool] = None

    global_enabled: Optional[bool] = None
    global_max_tabs: Optional[int] = None

    tab_timeout: Optional[int] = None
    session_key_prefix: Optional[str] = None
    session_cookie_name: Optional[str] = None

    prevent_incognito_bypass: Optional[bool] = None
    fail_open: Optional[bool] = None
    on_deny: Optional[DenyPolicyName] = None

    lock_backend: Optional[LockBackendName] = None

    cache_backend: Optional[CacheBackendName] = None
    cache_dir: Optional[Path] = None
    redis_url: Optional[str] = None

    log_level: Optional[LogLevel] = None
    log_format: Optional[LogFormat] = None
    logging_enabled: Optional[bool] = None

    response_type: Optional[ResponseType] = None

    @field_validator("cache_dir", mode="before")
    @classmethod
    def _validate_paths(cls, v: Any) -> Any:
        if v is None:
            return None
        return _normalize_path(v)

    def to_update_dict(self) -> dict[str, Any]:
        """
        Return only values that were actually provided (non-None), for merging.
        """
        return self.model_dump(exclude_none=True)
