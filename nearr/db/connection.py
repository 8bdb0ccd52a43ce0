"""Database connection management."""

import os
from contextlib import contextmanager
from typing import Any, Dict, Generator, Optional

import psycopg
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool


class DatabaseConfig:
    """Database configuration."""

    def __init__(self, config: Dict[str, Any]) -> None:
        """Initialize database config from dict."""
        self.host = config.get("host", "localhost")
        self.port = config.get("port", 5432)
        self.database = config.get("database", "postgres")
        self.user = config.get("user", "postgres")
        self.statement_timeout_ms = int(config.get("statement_timeout_ms", 5000))
        self.pool_min_size = int(config.get("pool_min_size", 1))
        self.pool_max_size = int(config.get("pool_max_size", 10))
        self.pool_timeout = float(config.get("pool_timeout", 10.0))

        # Handle password from environment variable if specified
        password_env = config.get("password_env")
        if password_env and os.environ.get(password_env):
            self.password = os.environ[password_env]
        else:
            self.password = config.get("password") or ""

    @property
    def connection_string(self) -> str:
        """Get psycopg connection string."""
        return f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.database}"

    @property
    def connection_kwargs(self) -> Dict[str, Any]:
        """Per-connection settings; every statement is bounded by statement_timeout."""
        return {
            "row_factory": dict_row,
            "options": f"-c statement_timeout={self.statement_timeout_ms}",
        }


class Database:
    """Owns the connection pool; opened and closed with the application."""

    def __init__(self, config: Dict[str, Any]) -> None:
        self.config = DatabaseConfig(config)
        self._pool: Optional[ConnectionPool] = None

    def open(self) -> None:
        """Create and open the connection pool."""
        if self._pool is not None:
            return
        self._pool = ConnectionPool(
            self.config.connection_string,
            min_size=self.config.pool_min_size,
            max_size=self.config.pool_max_size,
            timeout=self.config.pool_timeout,
            kwargs=self.config.connection_kwargs,
            open=False,
        )
        self._pool.open(wait=False)

    def close(self) -> None:
        """Close the pool and release all connections."""
        if self._pool is not None:
            self._pool.close()
            self._pool = None

    @property
    def pool(self) -> ConnectionPool:
        if self._pool is None:
            self.open()
        return self._pool

    @contextmanager
    def connection(self) -> Generator[psycopg.Connection, None, None]:
        """Get a database connection from the pool."""
        with self.pool.connection() as conn:
            yield conn

    @contextmanager
    def transaction(self) -> Generator[psycopg.Connection, None, None]:
        """Run the block in one transaction; rolled back if it raises."""
        with self.connection() as conn:
            with conn.transaction():
                yield conn


@contextmanager
def get_connection(config: Dict[str, Any]) -> Generator[psycopg.Connection, None, None]:
    """Open a single short-lived connection outside the pool (CLI helpers)."""
    db_config = DatabaseConfig(config)
    with psycopg.connect(db_config.connection_string, **db_config.connection_kwargs) as conn:
        yield conn
