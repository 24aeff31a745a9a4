"""
PostgreSQL client with connection pooling and explicit transactions.

Uses psycopg2 with ThreadedConnectionPool. Single statements commit on their
own; multi-statement writes (an invoice and its line items) go through
transaction() so they commit or roll back together.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterable, List, Tuple
from uuid import UUID

import psycopg2
import psycopg2.extras
import psycopg2.pool

logger = logging.getLogger(__name__)

# Global JSONB registration flag
_jsonb_registered = False


def _convert_value(value: Any) -> Any:
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, list):
        return [_convert_value(v) for v in value]
    if isinstance(value, tuple):
        return tuple(_convert_value(v) for v in value)
    if isinstance(value, dict):
        return {k: _convert_value(v) for k, v in value.items()}
    return value


def convert_params(params: Tuple | Dict | None) -> Tuple | Dict | None:
    """Convert UUID objects (including inside lists for ANY(%s)) to strings."""
    if params is None:
        return None
    return _convert_value(params)


class Transaction:
    """
    Cursor wrapper handed out by PostgresClient.transaction().

    Nothing is committed until the surrounding with-block exits cleanly.
    """

    def __init__(self, cursor):
        self._cursor = cursor

    def execute(self, query: str, params: Tuple | Dict | None = None) -> List[Dict[str, Any]]:
        """Execute a statement, return rows if it produced any."""
        self._cursor.execute(query, convert_params(params))
        if self._cursor.description:
            return [dict(row) for row in self._cursor.fetchall()]
        return []

    def execute_returning(self, query: str, params: Tuple | Dict | None = None) -> List[Dict[str, Any]]:
        """Execute INSERT/UPDATE ... RETURNING inside the transaction."""
        self._cursor.execute(query, convert_params(params))
        return [dict(row) for row in self._cursor.fetchall()]

    def insert_many(self, query: str, rows: Iterable[Tuple]) -> List[Dict[str, Any]]:
        """
        Bulk insert with a single VALUES %s placeholder.

        The query must end in RETURNING; returned rows keep insertion order.
        """
        converted = [convert_params(row) for row in rows]
        if not converted:
            return []
        result = psycopg2.extras.execute_values(
            self._cursor, query, converted, fetch=True
        )
        return [dict(row) for row in result]


class PostgresClient:
    """
    PostgreSQL client for the billing tables.

    Usage:
        db = PostgresClient(database_url)

        invoice = db.execute_single("SELECT * FROM invoices WHERE id = %s", (invoice_id,))

        with db.transaction() as tx:
            row = tx.execute_returning("INSERT INTO invoices (...) VALUES (...) RETURNING *", params)[0]
            tx.insert_many("INSERT INTO invoice_line_items (...) VALUES %s RETURNING *", rows)
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
        """Borrow a pooled connection, returning it when done."""
        if self._database_url not in self._connection_pools:
            self._ensure_connection_pool()

        pool = self._connection_pools[self._database_url]
        conn = None

        try:
            conn = pool.getconn()
            if conn is None:
                raise RuntimeError("Could not get connection from pool")
            yield conn
        finally:
            if conn:
                pool.putconn(conn)

    @contextmanager
    def transaction(self):
        """
        Run several statements as one unit of work.

        Commits when the block exits normally, rolls back and re-raises on any
        exception.
        """
        with self.get_connection() as conn:
            try:
                with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                    yield Transaction(cur)
                conn.commit()
            except Exception:
                conn.rollback()
                logger.warning("Transaction rolled back")
                raise

    def execute(self, query: str, params: Tuple | Dict | None = None) -> List[Dict[str, Any]]:
        """Execute query, return list of row dicts. Empty list if no results."""
        params = convert_params(params)
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
        params = convert_params(params)
        with self.get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(query, params)
                result = cur.fetchone()
                conn.commit()
                return result[0] if result else None

    def execute_returning(self, query: str, params: Tuple | Dict | None = None) -> List[Dict[str, Any]]:
        """Execute INSERT/UPDATE with RETURNING, return results."""
        params = convert_params(params)
        with self.get_connection() as conn:
            with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                cur.execute(query, params)
                rows = [dict(row) for row in cur.fetchall()]
                conn.commit()
                return rows

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
