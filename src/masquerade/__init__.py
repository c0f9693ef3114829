"""masquerade - let a signed-in principal act as another, per role.

Usage:
    from masquerade import IdentityContext, RoleRegistry

    roles = RoleRegistry()
    roles.register_role("user", lookup=get_user)
    roles.freeze()

    ctx = IdentityContext(roles, session, providers={"current_user": load_user})
    ctx.for_role("user").impersonate(42)
    ctx.for_role("user").current()
"""

from masquerade.accessors import BoundRole, IdentityContext, RoleAccessors
from masquerade.audit import actor_fields, principal_id
from masquerade.base import (
    MISSING,
    ConfigurationError,
    ImpersonationValidationError,
    MappingSessionStore,
    MasqueradeError,
    PrincipalLookupError,
    SessionStore,
    TargetNotFoundError,
    UnknownRoleError,
)
from masquerade.registry import DEFAULT_KEY_FORMAT, RoleConfig, RoleRegistry
from masquerade.resolution import ResolvedIdentity, resolve_identity

__all__ = [
    # Configuration
    "RoleRegistry",
    "RoleConfig",
    "DEFAULT_KEY_FORMAT",
    # Resolution
    "ResolvedIdentity",
    "resolve_identity",
    "MISSING",
    # Accessors
    "IdentityContext",
    "RoleAccessors",
    "BoundRole",
    # Sessions
    "SessionStore",
    "MappingSessionStore",
    # Audit
    "actor_fields",
    "principal_id",
    # Errors
    "MasqueradeError",
    "ConfigurationError",
    "UnknownRoleError",
    "ImpersonationValidationError",
    "TargetNotFoundError",
    "PrincipalLookupError",
]
