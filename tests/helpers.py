"""Test helpers - in-memory principals and directories."""

from contextlib import contextmanager
from dataclasses import dataclass


@dataclass(frozen=True)
class Principal:
    id: int
    email: str


class Directory:
    """
    In-memory principal store standing in for a database-backed lookup.

    Use cases:
    - Serving as a role's lookup function (call the instance)
    - Deleting principals to produce stale impersonation entries
    - Counting lookups to verify per-request caching
    """

    def __init__(self, *principals: Principal):
        self._by_id = {p.id: p for p in principals}
        self.lookups: list = []

    def __call__(self, principal_id):
        self.lookups.append(principal_id)
        return self._by_id.get(principal_id)

    def add(self, principal: Principal) -> Principal:
        self._by_id[principal.id] = principal
        return principal

    def remove(self, principal_id) -> None:
        self._by_id.pop(principal_id, None)


class SignedIn:
    """Mutable "authentication layer": whoever is signed in for a role."""

    def __init__(self, principal=None):
        self.principal = principal
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return self.principal


class FakeCursor:
    """
    Minimal psycopg cursor double returning canned rows.

    Records executed statements so tests can assert on parameters.
    """

    def __init__(self, pool, row_factory=None):
        self.pool = pool
        self.row_factory = row_factory
        self.executed: list = []
        self.closed = False
        self._result = None

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.closed = True

    @property
    def description(self):
        return [(name,) for name in self.pool.columns]

    def execute(self, sql, params=None):
        self.executed.append((sql, params))
        if self.pool.error is not None:
            raise self.pool.error
        self._result = self.pool.rows.get(params[0]) if params else None

    def fetchone(self):
        return self._result


class FakeConnection:
    def __init__(self, pool):
        self.pool = pool
        self.cursors: list = []
        self.rolled_back = False

    def cursor(self, row_factory=None):
        cursor = FakeCursor(self.pool, row_factory=row_factory)
        self.cursors.append(cursor)
        return cursor


class FakePool:
    """
    psycopg_pool.ConnectionPool double.

    connection() hands out a fresh connection, rolls it back when the block
    raises (as the real pool does) and counts returns.
    """

    def __init__(self, rows=None, columns=("id", "email"), error=None):
        self.rows = dict(rows or {})
        self.columns = columns
        self.error = error
        self.connections: list = []
        self.returned = 0

    @contextmanager
    def connection(self):
        conn = FakeConnection(self)
        self.connections.append(conn)
        try:
            yield conn
        except BaseException:
            conn.rolled_back = True
            raise
        finally:
            self.returned += 1

    @property
    def cursors(self):
        return [cur for conn in self.connections for cur in conn.cursors]


ALICE = Principal(1, "alice@example.com")
BOB = Principal(2, "bob@example.com")
CAROL = Principal(3, "carol@example.com")

EMPLOYEE = Principal(100, "support@platform.example.com")
CLIENT = Principal(42, "client@customer.example.com")
