"""Shared pytest fixtures for masquerade tests."""

import pytest

from masquerade import IdentityContext, RoleRegistry
from tests.helpers import ALICE, BOB, CAROL, CLIENT, EMPLOYEE, Directory, SignedIn


@pytest.fixture
def users():
    """User directory, usable as the "user" role's lookup."""
    return Directory(ALICE, BOB, CAROL)

@pytest.fixture
def signed_in():
    """Alice is signed in as a user."""
    return SignedIn(ALICE)

@pytest.fixture
def registry(users):
    """Registry with a single "user" role (not yet frozen)."""
    roles = RoleRegistry()
    roles.register_role("user", lookup=users)
    return roles

@pytest.fixture
def session():
    """Plain dict session, as a background job or test would use."""
    return {}

@pytest.fixture
def ctx(registry, session, signed_in):
    """
    IdentityContext for one request.

    Example:
        def test_something(ctx):
            ctx.for_role("user").impersonate(2)
            assert ctx.for_role("user").current() == BOB
    """
    return IdentityContext(registry, session, providers={"current_user": signed_in})

@pytest.fixture
def make_ctx(registry, session, signed_in):
    """Build a fresh IdentityContext over the same session (a new request)."""

    def _make(**providers):
        return IdentityContext(
            registry, session, providers=providers or {"current_user": signed_in}
        )

    return _make

@pytest.fixture
def operator_registry():
    """
    Cross-role registry: employees impersonate clients.

    Returns (registry, employees, clients, signed_in_employee).
    """
    employees = Directory(EMPLOYEE)
    clients = Directory(CLIENT)
    roles = RoleRegistry()
    roles.register_role("employee", lookup=employees)
    roles.register_role("client", lookup=clients, impersonator_role="employee")
    roles.freeze()
    return roles, employees, clients, SignedIn(EMPLOYEE)
