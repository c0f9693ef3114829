"""Lookup functions backed by PostgreSQL.

A lookup maps a stored impersonation id to a principal, or None when the id
no longer resolves. Database failures are errors, not misses.
"""

from __future__ import annotations

from typing import Any, Callable

import psycopg
from psycopg.rows import tuple_row
from psycopg_pool import ConnectionPool

from .base import PrincipalLookupError


def sql_lookup(
    pool: ConnectionPool, query: str
) -> Callable[[Any], dict[str, Any] | None]:
    """
    Build a lookup that runs ``query`` with the id as its only parameter.

    Each call checks a connection out of the pool and uses its own cursor, so
    one lookup is safe to share across request threads. The pool rolls the
    connection back if the query fails, so one failure does not poison
    later lookups.

    Args:
        pool: A psycopg_pool ConnectionPool
        query: SQL with a single %s placeholder, e.g.
            "SELECT id, email FROM users WHERE id = %s AND disabled_at IS NULL"

    Returns:
        Function(id) -> first row as a dict, or None if no row matched

    Raises (from the returned function):
        PrincipalLookupError: On any psycopg error, with its SQLSTATE

    Example:
        pool = ConnectionPool(DATABASE_URL, kwargs={"autocommit": True})
        roles.register_role(
            "user",
            lookup=sql_lookup(pool, "SELECT * FROM users WHERE id = %s"),
        )
    """

    def lookup(principal_id: Any) -> dict[str, Any] | None:
        try:
            with pool.connection() as conn:
                # Tuple rows regardless of the connection's row factory
                with conn.cursor(row_factory=tuple_row) as cur:
                    cur.execute(query, (principal_id,))
                    row = cur.fetchone()
                    if row is None:
                        return None
                    columns = [desc[0] for desc in cur.description]
        except psycopg.Error as e:
            raise PrincipalLookupError(str(e), getattr(e, "sqlstate", None)) from e
        return dict(zip(columns, row))

    return lookup
