"""
Accessor surface - the per-role operations callers use.

Each registered role gets one RoleAccessors. Every operation takes the
IdentityContext of the current request explicitly; nothing reads ambient
session state.

Usage:
    ctx = IdentityContext(roles, session, providers={"current_user": load_user})
    users = roles.accessors("user")

    users.impersonate(ctx, 42)
    users.current(ctx)            # User 42
    users.true(ctx)               # the signed-in user
    users.impersonator(ctx)       # the signed-in user
    users.stop_impersonating(ctx)

    # or, bound to the context
    ctx.for_role("user").current()
"""

from __future__ import annotations

import logging
from functools import partial
from typing import TYPE_CHECKING, Any, Callable, Mapping, MutableMapping

from .base import (
    MISSING,
    ImpersonationValidationError,
    MappingSessionStore,
    SessionStore,
    TargetNotFoundError,
)
from .resolution import ResolvedIdentity, resolve_identity

if TYPE_CHECKING:
    from .registry import RoleConfig, RoleRegistry

log = logging.getLogger(__name__)


class IdentityContext:
    """
    Everything needed to resolve identities for one request (or one job).

    Holds the session store, the principal providers keyed by accessor name,
    and a cache of one ResolvedIdentity per role. The cache makes all
    accessor calls within a request agree; mutations made through this
    context invalidate the affected entries.

    Creating a context marks the end of startup: the registry is frozen.
    """

    def __init__(
        self,
        registry: RoleRegistry,
        session: SessionStore | MutableMapping[str, Any],
        providers: Mapping[str, Callable[[], Any]] | None = None,
    ) -> None:
        registry.freeze()
        if not isinstance(session, SessionStore):
            session = MappingSessionStore(session)
        self.registry = registry
        self.session = session
        self.providers: dict[str, Callable[[], Any]] = dict(providers or {})
        self._cache: dict[str, ResolvedIdentity] = {}

    def provider(self, name: str | None) -> Callable[[], Any] | None:
        if name is None:
            return None
        return self.providers.get(name)

    def resolve(self, role: str) -> ResolvedIdentity:
        return self.registry.accessors(role).resolve(self)

    def for_role(self, role: str) -> BoundRole:
        return BoundRole(self.registry.accessors(role), self)

    def invalidate(self, role: str) -> None:
        """Drop cached identities for a role and roles impersonated on its behalf."""
        self._cache.pop(role, None)
        for dependent in self.registry.dependents(role):
            self._cache.pop(dependent, None)

    def refresh(self) -> None:
        """Drop every cached identity (e.g. after the session was changed elsewhere)."""
        self._cache.clear()


class RoleAccessors:
    """
    Capability interface for one role.

    Built by RoleRegistry at registration time. For impersonator-backed roles
    the impersonator role's accessors are resolved then and held here.
    """

    def __init__(
        self, config: RoleConfig, impersonator_role: RoleAccessors | None = None
    ) -> None:
        self.config = config
        self._impersonator_role = impersonator_role

    @property
    def name(self) -> str:
        return self.config.name

    def resolve(self, ctx: IdentityContext) -> ResolvedIdentity:
        """Full identity state for this role, computed once per context."""
        cached = ctx._cache.get(self.name)
        if cached is not None:
            return cached

        impersonator_provider = None
        if self._impersonator_role is not None:
            impersonator_provider = partial(self._impersonator_role.current, ctx)

        identity = resolve_identity(
            self.config,
            ctx.session.get(self.config.session_key, MISSING),
            true_provider=ctx.provider(self.config.true_accessor_name),
            impersonator_provider=impersonator_provider,
        )
        ctx._cache[self.name] = identity
        return identity

    def true(self, ctx: IdentityContext) -> Any:
        """The authenticated principal. Always None for impersonator-backed roles."""
        return self.resolve(ctx).true_principal

    def current(self, ctx: IdentityContext) -> Any:
        """The effective principal: impersonated if active, else true."""
        return self.resolve(ctx).effective_principal

    def is_impersonating(self, ctx: IdentityContext) -> bool:
        return self.resolve(ctx).is_impersonating

    def impersonator(self, ctx: IdentityContext) -> Any:
        return self.resolve(ctx).impersonator

    def impersonate(
        self, ctx: IdentityContext, target_id: Any, validate: bool = False
    ) -> None:
        """
        Start (or retarget) impersonation of target_id.

        The target is not looked up unless validate=True; an id that does not
        resolve simply leaves the role acting as its true principal.

        Args:
            ctx: Current identity context
            target_id: Identifier passed to the role's lookup (str or int)
            validate: Look the target up now and refuse unknown ids

        Raises:
            ImpersonationValidationError: If target_id is not a str or int
            TargetNotFoundError: If validate=True and lookup finds nothing
        """
        if isinstance(target_id, bool) or not isinstance(target_id, (str, int)):
            raise ImpersonationValidationError(
                f"Impersonation id for role {self.name!r} must be str or int, "
                f"got {type(target_id).__name__}"
            )
        if validate and self.config.lookup(target_id) is None:
            raise TargetNotFoundError(self.name, target_id)

        ctx.session.set(self.config.session_key, target_id)
        ctx.invalidate(self.name)
        log.info(f"Impersonation started: role={self.name} id={target_id}")

    def stop_impersonating(self, ctx: IdentityContext) -> None:
        """End impersonation. No-op when not impersonating."""
        previous = ctx.session.get(self.config.session_key, MISSING)
        ctx.session.delete(self.config.session_key)
        ctx.invalidate(self.name)
        if previous is not MISSING:
            log.info(f"Impersonation stopped: role={self.name} id={previous}")

    def __repr__(self) -> str:
        return f"<RoleAccessors {self.name}>"


class BoundRole:
    """RoleAccessors bound to one IdentityContext."""

    def __init__(self, accessors: RoleAccessors, ctx: IdentityContext) -> None:
        self.accessors = accessors
        self.ctx = ctx

    @property
    def name(self) -> str:
        return self.accessors.name

    def resolve(self) -> ResolvedIdentity:
        return self.accessors.resolve(self.ctx)

    def true(self) -> Any:
        return self.accessors.true(self.ctx)

    def current(self) -> Any:
        return self.accessors.current(self.ctx)

    def is_impersonating(self) -> bool:
        return self.accessors.is_impersonating(self.ctx)

    def impersonator(self) -> Any:
        return self.accessors.impersonator(self.ctx)

    def impersonate(self, target_id: Any, validate: bool = False) -> None:
        self.accessors.impersonate(self.ctx, target_id, validate=validate)

    def stop_impersonating(self) -> None:
        self.accessors.stop_impersonating(self.ctx)
