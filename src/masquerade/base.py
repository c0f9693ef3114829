"""Shared building blocks for masquerade.

Provides the exception hierarchy, the session store contract consumed by the
resolution engine, and a mapping-backed store that works with plain dicts
(background jobs, tests) as well as ``flask.session``.
"""

from __future__ import annotations

from collections.abc import MutableMapping
from typing import Any, Protocol, runtime_checkable


class _Missing:
    """Marker for "no session entry" (distinct from a stored ``None``)."""

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


class MasqueradeError(Exception):
    """Base exception for masquerade operations."""


class ConfigurationError(MasqueradeError):
    """Raised when roles are declared or wired incorrectly.

    Always surfaced at startup (or on first use of a miswired provider);
    never recovered silently.
    """


class UnknownRoleError(ConfigurationError):
    """Raised when a role name was never registered."""

    def __init__(self, name: str):
        super().__init__(f"Unknown role: {name!r}")
        self.name = name


class ImpersonationValidationError(MasqueradeError):
    """Raised when an impersonation target id is not a storable scalar."""


class TargetNotFoundError(MasqueradeError):
    """Raised by eager validation when the target id does not resolve."""

    def __init__(self, role: str, target_id: Any):
        super().__init__(f"No {role} found for id {target_id!r}")
        self.role = role
        self.target_id = target_id


class PrincipalLookupError(MasqueradeError):
    """Raised when a lookup backend fails (not when a principal is missing)."""

    def __init__(self, message: str, sqlstate: str | None = None):
        super().__init__(message)
        self.sqlstate = sqlstate


@runtime_checkable
class SessionStore(Protocol):
    """Per-caller session storage: string keys to scalar values.

    Writes must be visible to later reads within the same logical session.
    """

    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...


class MappingSessionStore:
    """SessionStore over any mutable mapping.

    Example:
        store = MappingSessionStore({})          # background job
        store = MappingSessionStore(session)     # flask.session
    """

    def __init__(self, mapping: MutableMapping[str, Any] | None = None) -> None:
        self.mapping = {} if mapping is None else mapping

    def get(self, key: str, default: Any = None) -> Any:
        return self.mapping.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.mapping[key] = value

    def delete(self, key: str) -> None:
        """Remove key. Missing keys are ignored."""
        self.mapping.pop(key, None)

    def __contains__(self, key: object) -> bool:
        return key in self.mapping

    def __repr__(self) -> str:
        return f"MappingSessionStore({self.mapping!r})"
