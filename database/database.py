"""
Database connection and transaction management using raw PostgreSQL
Provides the pooled query/query_one/transaction primitives used by the services
"""
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Sequence, Tuple

import psycopg2
from psycopg2 import extras, pool, sql
from psycopg2.extensions import ISOLATION_LEVEL_READ_COMMITTED

logger = logging.getLogger(__name__)


class DatabaseManager:
    """
    Database manager with transaction support and connection pooling
    """

    def __init__(self, database_url: str, minconn: int = 2, maxconn: int = 10):
        """
        Initialize database manager

        Args:
            database_url: libpq connection URL, e.g. postgresql://user:pw@host/db
            minconn: Connections opened eagerly
            maxconn: Upper bound on concurrently checked-out connections
        """
        self.database_url = database_url

        try:
            self.connection_pool = pool.ThreadedConnectionPool(
                minconn=minconn,
                maxconn=maxconn,
                dsn=database_url,
            )
        except psycopg2.Error as e:
            raise RuntimeError(f"Failed to create database connection pool: {e}") from e

    @classmethod
    def from_settings(cls, settings) -> "DatabaseManager":
        """Build a manager from the application settings object"""
        return cls(
            settings.database_url,
            minconn=settings.db_pool_min,
            maxconn=settings.db_pool_max,
        )

    def get_connection(self):
        """Get a connection from the pool"""
        return self.connection_pool.getconn()

    def return_connection(self, conn):
        """Return a connection to the pool"""
        self.connection_pool.putconn(conn)

    def close_all_connections(self):
        """Close all connections in the pool"""
        if self.connection_pool:
            self.connection_pool.closeall()

    def create_tables(self):
        """Create all database tables from schema"""
        schema_file = Path(__file__).parent / 'schema.sql'

        if not schema_file.exists():
            raise FileNotFoundError(f"Schema file not found: {schema_file}")

        schema_sql = schema_file.read_text()

        with self.transaction() as conn:
            with conn.cursor() as cursor:
                cursor.execute(schema_sql)

    def drop_tables(self):
        """Drop all database tables (use with caution!)"""
        with self.transaction() as conn:
            with conn.cursor() as cursor:
                cursor.execute("""
                    SELECT tablename FROM pg_tables
                    WHERE schemaname = 'public'
                """)
                tables = [row[0] for row in cursor.fetchall()]

                for table in tables:
                    cursor.execute(sql.SQL("DROP TABLE IF EXISTS {} CASCADE").format(
                        sql.Identifier(table)
                    ))

    @contextmanager
    def get_cursor(self, cursor_factory=None):
        """
        Get a cursor with automatic connection management

        Usage:
            with db.get_cursor() as cursor:
                cursor.execute("SELECT * FROM users")
                results = cursor.fetchall()
        """
        with self.transaction() as conn:
            cursor = conn.cursor(cursor_factory=cursor_factory or extras.RealDictCursor)
            try:
                yield cursor
            finally:
                cursor.close()

    @contextmanager
    def transaction(self):
        """
        Provide a transactional scope with a connection

        The connection is committed when the block exits normally, rolled back
        when it raises, and returned to the pool on every path.

        Usage:
            with db.transaction() as conn:
                with conn.cursor() as cursor:
                    cursor.execute("INSERT INTO users ...")
        """
        conn = self.get_connection()
        conn.set_isolation_level(ISOLATION_LEVEL_READ_COMMITTED)

        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            self.return_connection(conn)

    def query(self, statement, params: Optional[Sequence[Any]] = None) -> list:
        """Run a statement and return every row as a dict"""
        with self.get_cursor() as cursor:
            cursor.execute(statement, params)
            if cursor.description is None:
                return []
            return cursor.fetchall()

    def query_one(self, statement, params: Optional[Sequence[Any]] = None):
        """Run a statement and return the first row, or None"""
        with self.get_cursor() as cursor:
            cursor.execute(statement, params)
            if cursor.description is None:
                return None
            return cursor.fetchone()


def build_update(table: str, key_column: str, key: Any, fields: Mapping[str, Any],
                 allowed: Iterable[str]) -> Tuple[sql.Composed, list]:
    """
    Build a parameterized UPDATE for a fixed set of columns

    Only keys listed in ``allowed`` are assigned; values travel as parameters
    and identifiers are quoted, so no caller input is formatted into the SQL.

    Args:
        table: Table name
        key_column: Primary key column
        key: Primary key value
        fields: Column -> new value
        allowed: Columns callers may change

    Returns:
        (statement, params) ready for ``cursor.execute``

    Raises:
        ValueError: If a field is not allowed or nothing would be updated
    """
    allowed = set(allowed)
    unknown = sorted(set(fields) - allowed)
    if unknown:
        raise ValueError(f"Cannot update field(s): {', '.join(unknown)}")
    if not fields:
        raise ValueError("No fields to update")

    columns = sorted(fields)
    assignments = [
        sql.SQL("{} = %s").format(sql.Identifier(column)) for column in columns
    ]
    assignments.append(sql.SQL("updated_at = NOW()"))

    statement = sql.SQL("UPDATE {table} SET {assignments} WHERE {key} = %s").format(
        table=sql.Identifier(table),
        assignments=sql.SQL(", ").join(assignments),
        key=sql.Identifier(key_column),
    )
    params = [fields[column] for column in columns]
    params.append(key)
    return statement, params
