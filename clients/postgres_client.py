"""
PostgreSQL client with connection pooling and RLS tenant isolation.

Uses psycopg2 with ThreadedConnectionPool. Tenant isolation enforced via
PostgreSQL Row Level Security - automatically reads the company ID from the
contextvar and sets app.current_company_id on each connection.

Security: No tenant context = see nothing (RLS blocks all rows). This is safe.
Cross-tenant maintenance requires connecting as ledger_admin with BYPASSRLS.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Tuple
from uuid import UUID

import psycopg2
import psycopg2.extensions
import psycopg2.extras
import psycopg2.pool

from utils.tenant_context import _current_company_id

logger = logging.getLogger(__name__)

# Global JSONB registration flag
_jsonb_registered = False


def _convert_params(params: Tuple | Dict | None) -> Tuple | Dict | None:
    """Convert UUID objects to strings."""
    if params is None:
        return None

    def convert(value: Any) -> Any:
        if isinstance(value, UUID):
            return str(value)
        if isinstance(value, list):
            return [convert(v) for v in value]
        if isinstance(value, tuple):
            return tuple(convert(v) for v in value)
        if isinstance(value, dict):
            return {k: convert(v) for k, v in value.items()}
        return value

    return convert(params)


class Transaction:
    """
    A single open transaction on one pooled connection.

    Obtained from PostgresClient.transaction() or PostgresClient.snapshot().
    Statements share the connection, so they see one consistent state and
    commit (or roll back) together when the context exits.
    """

    def __init__(self, conn):
        self._conn = conn

    def execute(self, query: str, params: Tuple | Dict | None = None) -> List[Dict[str, Any]]:
        """Execute query, return list of row dicts. Empty list if no results."""
        with self._conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
            cur.execute(query, _convert_params(params))
            if cur.description:
                return [dict(row) for row in cur.fetchall()]
            return []

    def execute_single(self, query: str, params: Tuple | Dict | None = None) -> Dict[str, Any] | None:
        """Execute query, return first row or None."""
        results = self.execute(query, params)
        return results[0] if results else None

    def execute_scalar(self, query: str, params: Tuple | Dict | None = None) -> Any:
        """Execute query, return first value of first row or None."""
        with self._conn.cursor() as cur:
            cur.execute(query, _convert_params(params))
            result = cur.fetchone()
            return result[0] if result else None

    @contextmanager
    def savepoint(self, name: str) -> Iterator["Transaction"]:
        """
        Run a block under a savepoint.

        A failing statement inside the block rolls back to the savepoint and
        re-raises, leaving the enclosing transaction usable.
        """
        with self._conn.cursor() as cur:
            cur.execute(f"SAVEPOINT {name}")
        try:
            yield self
        except Exception:
            with self._conn.cursor() as cur:
                cur.execute(f"ROLLBACK TO SAVEPOINT {name}")
            raise
        with self._conn.cursor() as cur:
            cur.execute(f"RELEASE SAVEPOINT {name}")


class PostgresClient:
    """
    PostgreSQL client with automatic RLS context from contextvar.

    Tenant context is read from utils.tenant_context contextvar on each query.
    - Tenant context set → sees only that company's rows (RLS filtered)
    - No tenant context → sees nothing (RLS blocks all rows)

    Usage:
        db = PostgresClient(database_url)

        # With tenant context (normal request flow)
        with tenant_context(company_id):
            notes = db.execute("SELECT * FROM credit_notes")  # Company's rows only

        # Several statements on one consistent state
        with db.snapshot() as tx:
            payments = tx.execute("SELECT * FROM payments")
            notes = tx.execute("SELECT * FROM credit_notes")
    """

    # Class-level connection pools shared across instances
    _connection_pools: Dict[str, psycopg2.pool.ThreadedConnectionPool] = {}
    _pools_lock = threading.RLock()

    def __init__(self, database_url: str):
        self._database_url = database_url
        self._ensure_connection_pool()

    def _ensure_connection_pool(self) -> None:
        """Create connection pool if it doesn't exist."""
        with self._pools_lock:
            if self._database_url not in self._connection_pools:
                pool = psycopg2.pool.ThreadedConnectionPool(
                    minconn=2,
                    maxconn=20,
                    dsn=self._database_url,
                    connect_timeout=30,
                )

                global _jsonb_registered
                if not _jsonb_registered:
                    psycopg2.extras.register_default_jsonb(globally=True)
                    _jsonb_registered = True

                self._connection_pools[self._database_url] = pool
                logger.info("Connection pool created")

    @contextmanager
    def get_connection(self):
        """Get connection with RLS context from contextvar."""
        if self._database_url not in self._connection_pools:
            self._ensure_connection_pool()

        pool = self._connection_pools[self._database_url]
        conn = None

        try:
            conn = pool.getconn()
            if conn is None:
                raise RuntimeError("Could not get connection from pool")

            company_id = _current_company_id.get()

            with conn.cursor() as cur:
                if company_id is not None:
                    cur.execute("SET app.current_company_id = %s", (str(company_id),))
                else:
                    # Set to empty string to clear context
                    # RLS policies use ::uuid cast which fails on empty string = no rows
                    cur.execute("SET app.current_company_id = ''")
            conn.commit()

            yield conn

        finally:
            if conn:
                if conn.status != psycopg2.extensions.STATUS_READY:
                    conn.rollback()
                pool.putconn(conn)

    def execute(self, query: str, params: Tuple | Dict | None = None) -> List[Dict[str, Any]]:
        """Execute query, return list of row dicts. Empty list if no results."""
        params = _convert_params(params)
        with self.get_connection() as conn:
            with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                cur.execute(query, params)
                if cur.description:
                    rows = [dict(row) for row in cur.fetchall()]
                    conn.commit()
                    return rows
                conn.commit()
                return []

    def execute_single(self, query: str, params: Tuple | Dict | None = None) -> Dict[str, Any] | None:
        """Execute query, return first row or None."""
        results = self.execute(query, params)
        return results[0] if results else None

    def execute_scalar(self, query: str, params: Tuple | Dict | None = None) -> Any:
        """Execute query, return first value of first row or None."""
        params = _convert_params(params)
        with self.get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(query, params)
                result = cur.fetchone()
                conn.commit()
                return result[0] if result else None

    def execute_returning(self, query: str, params: Tuple | Dict | None = None) -> List[Dict[str, Any]]:
        """Execute INSERT/UPDATE with RETURNING, return results."""
        params = _convert_params(params)
        with self.get_connection() as conn:
            with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                cur.execute(query, params)
                conn.commit()
                return [dict(row) for row in cur.fetchall()]

    @contextmanager
    def transaction(self) -> Iterator[Transaction]:
        """
        Read-write transaction. Commits on clean exit, rolls back on error.
        """
        with self.get_connection() as conn:
            try:
                yield Transaction(conn)
                conn.commit()
            except Exception:
                conn.rollback()
                raise

    @contextmanager
    def snapshot(self) -> Iterator[Transaction]:
        """
        Read-only REPEATABLE READ transaction.

        Every statement inside sees the database as of the first statement,
        so concurrent writers can never be observed half-applied.
        """
        with self.get_connection() as conn:
            conn.set_session(
                isolation_level=psycopg2.extensions.ISOLATION_LEVEL_REPEATABLE_READ,
                readonly=True,
            )
            try:
                yield Transaction(conn)
                conn.commit()
            except Exception:
                conn.rollback()
                raise
            finally:
                conn.set_session(
                    isolation_level=psycopg2.extensions.ISOLATION_LEVEL_DEFAULT,
                    readonly=False,
                )

    def close(self) -> None:
        """Close connection pool."""
        with self._pools_lock:
            if self._database_url in self._connection_pools:
                self._connection_pools[self._database_url].closeall()
                del self._connection_pools[self._database_url]

    @classmethod
    def close_all_pools(cls) -> None:
        """Close all connection pools."""
        with cls._pools_lock:
            for pool in cls._connection_pools.values():
                pool.closeall()
            cls._connection_pools.clear()
