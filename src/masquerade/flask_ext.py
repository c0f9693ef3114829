"""
Flask integration - flask.session as the session store, one IdentityContext
per request on flask.g.

Usage:
    from masquerade import RoleRegistry
    from masquerade.flask_ext import Masquerade, current_principal, impersonate

    roles = RoleRegistry()
    roles.register_role("user", lookup=get_user)

    masquerade = Masquerade(roles)

    @masquerade.provider("current_user")
    def load_signed_in_user():
        return get_user(session.get("user_id"))

    def create_app():
        app = Flask(__name__)
        masquerade.init_app(app)
        ...

    @app.post("/admin/impersonate/<int:user_id>")
    def start(user_id):
        impersonate("user", user_id)
        ...

Templates get ``is_impersonating(role)`` and ``impersonator(role)`` for
rendering an impersonation banner.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, TypeVar

from flask import Flask, current_app, g, has_request_context, session

from .accessors import IdentityContext
from .registry import RoleRegistry

log = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[[], Any])

_G_KEY = "_masquerade_context"


class Masquerade:
    """Flask extension owning the role registry and principal providers."""

    def __init__(self, registry: RoleRegistry, app: Flask | None = None) -> None:
        self.registry = registry
        self.providers: dict[str, Callable[[], Any]] = {}
        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        """Freeze the registry and wire request lifecycle hooks."""
        self.registry.freeze()
        app.config.setdefault("MASQUERADE_PERMANENT_SESSION", False)
        app.extensions["masquerade"] = self
        app.teardown_appcontext(clear_identity_context)
        app.context_processor(_template_helpers)
        log.debug(f"Masquerade initialized for {app.name}: roles={list(self.registry)}")

    def register_provider(self, name: str, func: Callable[[], Any]) -> None:
        """
        Register the function yielding a role's true principal.

        Args:
            name: Accessor name (a role's true_accessor_name, e.g. "current_user")
            func: Zero-arg function returning the signed-in principal or None
        """
        self.providers[name] = func

    def provider(self, name: str) -> Callable[[F], F]:
        """Decorator form of register_provider()."""

        def decorator(func: F) -> F:
            self.register_provider(name, func)
            return func

        return decorator


def get_identity_context() -> IdentityContext:
    """
    Get the IdentityContext for the current request, creating it on first use.

    Raises:
        RuntimeError: Outside a request, or if Masquerade was not initialized
    """
    if not has_request_context():
        raise RuntimeError("Identity context requires an active request")

    ctx = g.get(_G_KEY)
    if ctx is None:
        ext = current_app.extensions.get("masquerade")
        if ext is None:
            raise RuntimeError("Masquerade is not initialized on this app")
        ctx = IdentityContext(ext.registry, session, ext.providers)
        setattr(g, _G_KEY, ctx)
    return ctx


def clear_identity_context(exc: BaseException | None = None) -> None:
    """Drop the request's IdentityContext. Called on app context teardown."""
    g.pop(_G_KEY, None)


def current_principal(role: str) -> Any:
    """Effective principal for role: impersonated if active, else true."""
    return get_identity_context().for_role(role).current()


def true_principal(role: str) -> Any:
    return get_identity_context().for_role(role).true()


def is_impersonating(role: str) -> bool:
    return get_identity_context().for_role(role).is_impersonating()


def impersonator(role: str) -> Any:
    return get_identity_context().for_role(role).impersonator()


def impersonate(role: str, target_id: Any, validate: bool = False) -> None:
    """Start impersonating target_id as role. See RoleAccessors.impersonate()."""
    get_identity_context().for_role(role).impersonate(target_id, validate=validate)
    if current_app.config.get("MASQUERADE_PERMANENT_SESSION"):
        session.permanent = True


def stop_impersonating(role: str) -> None:
    get_identity_context().for_role(role).stop_impersonating()


def _template_helpers() -> dict[str, Any]:
    return {
        "is_impersonating": is_impersonating,
        "impersonator": impersonator,
    }
