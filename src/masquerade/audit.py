"""
Audit actor fields derived from a resolved identity.

Audit trails record who actually did something (actor) and whose account it
was done as (on_behalf_of). Feed the result to any ``set_actor`` style client:

    authn.set_actor(**actor_fields(ctx.resolve("user")), request_id=g.request_id)
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Callable

from .resolution import ResolvedIdentity


def principal_id(principal: Any) -> Any:
    """Default id extractor: ``.id`` attribute, ``["id"]`` key, or the value itself."""
    if isinstance(principal, Mapping):
        return principal.get("id", principal)
    return getattr(principal, "id", principal)


def actor_fields(
    identity: ResolvedIdentity,
    id_of: Callable[[Any], Any] = principal_id,
) -> dict[str, str | None]:
    """
    Compute actor_id and on_behalf_of for an identity.

    Impersonating:   actor = impersonator, on_behalf_of = impersonated principal
    Not impersonating: actor = effective principal, on_behalf_of = None

    Cross-role impersonators are labelled with their own role name
    (e.g. "employee:7" acting on behalf of "client:42"). An impersonation
    with no impersonator signed in has actor_id None.
    """
    if identity.is_impersonating:
        actor_id = None
        if identity.impersonator is not None:
            actor_role = identity.impersonator_role or identity.role
            actor_id = f"{actor_role}:{id_of(identity.impersonator)}"
        return {
            "actor_id": actor_id,
            "on_behalf_of": f"{identity.role}:{id_of(identity.impersonated_principal)}",
        }

    principal = identity.effective_principal
    if principal is None:
        return {"actor_id": None, "on_behalf_of": None}
    return {"actor_id": f"{identity.role}:{id_of(principal)}", "on_behalf_of": None}
