"""
Resolution engine - computes who is acting for one role.

Pure computation: given a role's configuration, the raw session entry and
the principal providers, produce a ResolvedIdentity. The only calls made are
to the role's ``lookup`` and to the supplied providers.

Usage:
    identity = resolve_identity(config, session.get(config.session_key, MISSING),
                                true_provider=lambda: g.user)
    identity.effective_principal   # who the application treats as acting
    identity.true_principal        # who is really signed in
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

from .base import MISSING, ConfigurationError

if TYPE_CHECKING:
    from .registry import RoleConfig

log = logging.getLogger(__name__)

PrincipalProvider = Callable[[], Any]


@dataclass(frozen=True)
class ResolvedIdentity:
    """
    Identity state of one role at one point in a request.

    Never persisted; recomputed from the session on each resolution.
    """

    role: str

    # From the authentication layer. Always None for impersonator-backed roles.
    true_principal: Any = None

    # lookup(entry_id), None when there is no entry or the id no longer resolves
    impersonated_principal: Any = None

    # Who owns the impersonation (same-role true principal, or other role's
    # effective principal for cross-role configurations)
    impersonator: Any = None
    impersonator_role: str | None = None

    # Raw session state
    has_entry: bool = False
    entry_id: Any = None

    @property
    def effective_principal(self) -> Any:
        """The principal the application must treat as acting."""
        if self.impersonated_principal is not None:
            return self.impersonated_principal
        return self.true_principal

    @property
    def is_impersonating(self) -> bool:
        """True only when an entry exists and its id resolved."""
        return self.has_entry and self.impersonated_principal is not None

    @property
    def is_stale(self) -> bool:
        """True when an entry exists but its id no longer resolves."""
        return self.has_entry and self.impersonated_principal is None


def resolve_identity(
    config: RoleConfig,
    entry: Any = MISSING,
    true_provider: PrincipalProvider | None = None,
    impersonator_provider: PrincipalProvider | None = None,
) -> ResolvedIdentity:
    """
    Compute the ResolvedIdentity for a role.

    Args:
        config: The role's configuration
        entry: Session impersonation entry value, or MISSING when absent
        true_provider: Zero-arg callable returning the true principal.
            Required for roles without impersonator_role, never invoked otherwise.
        impersonator_provider: Zero-arg callable returning the effective
            principal of config.impersonator_role. Required for cross-role configs.

    Returns:
        ResolvedIdentity

    Raises:
        ConfigurationError: If a required provider was not supplied
    """
    cross_role = config.impersonator_role is not None

    true_principal = None
    if not cross_role:
        if true_provider is None:
            raise ConfigurationError(
                f"No principal provider {config.true_accessor_name!r} "
                f"for role {config.name!r}"
            )
        true_principal = true_provider()

    has_entry = entry is not MISSING
    impersonated = None
    if has_entry:
        impersonated = config.lookup(entry)
        if impersonated is None:
            # Left in the session until stop_impersonating is called
            log.warning(
                f"Stale impersonation entry: role={config.name} id={entry!r} not found"
            )

    if cross_role:
        if impersonator_provider is None:
            raise ConfigurationError(
                f"No impersonator provider for role {config.name!r} "
                f"(impersonator_role={config.impersonator_role!r})"
            )
        impersonator = impersonator_provider()
    elif impersonated is not None:
        impersonator = true_principal
    else:
        impersonator = None

    return ResolvedIdentity(
        role=config.name,
        true_principal=true_principal,
        impersonated_principal=impersonated,
        impersonator=impersonator,
        impersonator_role=config.impersonator_role,
        has_entry=has_entry,
        entry_id=entry if has_entry else None,
    )
