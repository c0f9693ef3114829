"""
Role registry - declares which principal types can be impersonated.

Built once at startup, frozen before serving, read-only afterwards.

Usage:
    from masquerade import RoleRegistry

    roles = RoleRegistry()
    roles.register_role("employee", lookup=get_employee)
    roles.register_role("client", lookup=get_client, impersonator_role="employee")
    roles.freeze()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Iterator

from .accessors import RoleAccessors
from .base import ConfigurationError, UnknownRoleError

log = logging.getLogger(__name__)

DEFAULT_KEY_FORMAT = "{name}_impersonate_id"

# lookup(id) -> principal, or None when not found
Lookup = Callable[[Any], Any]


@dataclass(frozen=True)
class RoleConfig:
    """
    Configuration for one impersonable role.

    true_accessor_name defaults to ``current_<name>`` and is forced to None
    for impersonator-backed roles, which have no true principal of their own.
    session_key is filled in from the registry's key_format on registration
    unless set explicitly.
    """

    name: str
    lookup: Lookup = field(compare=False)
    true_accessor_name: str | None = None
    impersonator_role: str | None = None
    session_key: str | None = None

    def __post_init__(self) -> None:
        if self.impersonator_role is not None:
            object.__setattr__(self, "true_accessor_name", None)
        elif self.true_accessor_name is None:
            object.__setattr__(self, "true_accessor_name", f"current_{self.name}")

    @property
    def is_cross_role(self) -> bool:
        return self.impersonator_role is not None


class RoleRegistry:
    """
    Process-wide role configuration, owned by the application and passed
    explicitly to whatever needs role resolution.

    Registering a role installs its RoleAccessors, retrievable with
    accessors(name).
    """

    def __init__(self, key_format: str = DEFAULT_KEY_FORMAT) -> None:
        if "{name}" not in key_format:
            raise ConfigurationError(
                f"Session key format must contain '{{name}}': {key_format!r}"
            )
        try:
            key_format.format(name="role")
        except (KeyError, IndexError, ValueError) as e:
            raise ConfigurationError(
                f"Invalid session key format {key_format!r}: {e}"
            ) from e

        self.key_format = key_format
        self._roles: dict[str, RoleAccessors] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        """End of startup. Further registrations are rejected."""
        if not self._frozen:
            log.debug(f"Role registry frozen with roles: {', '.join(self._roles)}")
        self._frozen = True

    def session_key(self, name: str) -> str:
        """Session key holding the impersonation entry for a role."""
        return self.key_format.format(name=name)

    def register_role(
        self,
        name: str,
        lookup: Lookup,
        true_accessor_name: str | None = None,
        impersonator_role: str | None = None,
    ) -> RoleAccessors:
        """
        Declare a role and install its accessors.

        Args:
            name: Unique role name (e.g., "user", "client")
            lookup: Function(id) -> principal or None
            true_accessor_name: Provider name yielding the true principal
                (default "current_<name>"). Ignored when impersonator_role is set.
            impersonator_role: Registered role whose effective principal acts
                as the impersonator for this role

        Returns:
            The role's RoleAccessors

        Raises:
            ConfigurationError: On any invalid declaration
        """
        return self.register(
            RoleConfig(
                name=name,
                lookup=lookup,
                true_accessor_name=true_accessor_name,
                impersonator_role=impersonator_role,
            )
        )

    def register(self, config: RoleConfig) -> RoleAccessors:
        """
        Register a prepared RoleConfig. See register_role().

        A config without a session_key gets this registry's key for its name;
        an explicit session_key is kept.
        """
        if self._frozen:
            raise ConfigurationError(
                f"Cannot register role {config.name!r}: registry is frozen"
            )
        if not _is_name(config.name):
            raise ConfigurationError(
                f"Role name must be a valid identifier: {config.name!r}"
            )
        if config.name in self._roles:
            raise ConfigurationError(f"Role {config.name!r} is already registered")
        if not callable(config.lookup):
            raise ConfigurationError(f"Role {config.name!r}: lookup must be callable")
        if config.true_accessor_name is not None and not _is_name(
            config.true_accessor_name
        ):
            raise ConfigurationError(
                f"Role {config.name!r}: invalid true_accessor_name "
                f"{config.true_accessor_name!r}"
            )

        impersonator = None
        if config.impersonator_role is not None:
            impersonator = self._impersonator_for(config)

        if not config.session_key:
            config = replace(config, session_key=self.session_key(config.name))

        for other in self._roles.values():
            if other.config.session_key == config.session_key:
                raise ConfigurationError(
                    f"Role {config.name!r}: session key {config.session_key!r} "
                    f"already used by role {other.name!r}"
                )

        accessors = RoleAccessors(config, impersonator)
        self._roles[config.name] = accessors
        log.debug(
            f"Role registered: name={config.name} key={config.session_key} "
            f"impersonator_role={config.impersonator_role}"
        )
        return accessors

    def _impersonator_for(self, config: RoleConfig) -> RoleAccessors:
        """Validate the impersonator_role reference and return its accessors."""
        target = config.impersonator_role
        if target == config.name:
            raise ConfigurationError(
                f"Role {config.name!r} cannot be its own impersonator"
            )
        if target not in self._roles:
            raise ConfigurationError(
                f"Role {config.name!r}: impersonator_role {target!r} is not registered"
            )
        accessors = self._roles[target]
        if accessors.config.impersonator_role is not None:
            raise ConfigurationError(
                f"Role {config.name!r}: impersonator_role {target!r} is itself "
                f"impersonator-backed by {accessors.config.impersonator_role!r}; "
                "chains of more than two roles are not supported"
            )
        return accessors

    def resolve(self, name: str) -> RoleConfig:
        """Get a role's configuration. Raises UnknownRoleError if absent."""
        return self.accessors(name).config

    def accessors(self, name: str) -> RoleAccessors:
        """Get a role's accessor surface. Raises UnknownRoleError if absent."""
        try:
            return self._roles[name]
        except KeyError:
            raise UnknownRoleError(name) from None

    def dependents(self, name: str) -> list[str]:
        """Roles whose impersonator_role is ``name``."""
        return [
            other
            for other, acc in self._roles.items()
            if acc.config.impersonator_role == name
        ]

    def __contains__(self, name: object) -> bool:
        return name in self._roles

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._roles))

    def __len__(self) -> int:
        return len(self._roles)

    def __repr__(self) -> str:
        state = "frozen" if self._frozen else "open"
        return f"<RoleRegistry {state} roles={list(self._roles)}>"


def _is_name(value: Any) -> bool:
    return isinstance(value, str) and value.isidentifier()
