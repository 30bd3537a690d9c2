from __future__ import annotations


class TabGuardError(Exception):
    """Base error for the tab guard domain and use cases."""


class Unauthenticated(TabGuardError):
    """No user identity is available for an operation that needs one."""

    def __init__(self, operation: str = "") -> None:
        self.operation = operation
        super().__init__(
            f"Authentication required for {operation!r}"
            if operation
            else "Authentication required"
        )


class ValidationFailure(TabGuardError):
    """Required input is missing or malformed."""

    def __init__(self, field_name: str, reason: str = "is required") -> None:
        self.field_name = field_name
        self.reason = reason
        super().__init__(f"{field_name} {reason}")


class StoreUnavailable(TabGuardError):
    """The session or cache backend cannot be reached."""

    def __init__(self, backend: str, detail: str = "") -> None:
        self.backend = backend
        self.detail = detail
        super().__init__(
            f"{backend} store unavailable: {detail}"
            if detail
            else f"{backend} store unavailable"
        )
