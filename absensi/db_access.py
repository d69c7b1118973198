import os
from contextlib import contextmanager
from typing import Generator, Optional

from psycopg2 import pool
from psycopg2.extras import DictCursor
from dotenv import load_dotenv

load_dotenv()

REQUIRED_KEYS = [
    "DB_NAME",
    "DB_USER",
    "DB_PASS",
    "DB_HOST",
    "DB_PORT",
]

_POOL: Optional[pool.SimpleConnectionPool] = None


def _connection_kwargs() -> dict:
    db_config = {key: os.getenv(key) for key in REQUIRED_KEYS}
    missing = [key for key, value in db_config.items() if not value]
    if missing:
        missing_keys = ", ".join(missing)
        raise RuntimeError(
            f"Missing database environment variables: {missing_keys}. "
            "Please update your .env or deployment configuration."
        )

    conn_kwargs = dict(
        dbname=db_config["DB_NAME"],
        user=db_config["DB_USER"],
        password=db_config["DB_PASS"],
        host=db_config["DB_HOST"],
        port=db_config["DB_PORT"],
    )
    optional_sslmode: Optional[str] = os.getenv("DB_SSLMODE")
    if optional_sslmode:
        conn_kwargs["sslmode"] = optional_sslmode
    return conn_kwargs


def _get_pool() -> pool.SimpleConnectionPool:
    global _POOL
    if _POOL is None:
        _POOL = pool.SimpleConnectionPool(
            minconn=1,
            maxconn=int(os.getenv("DASHBOARD_DB_MAX_CONN", "8")),
            **_connection_kwargs(),
        )
    return _POOL


@contextmanager
def get_cursor(commit: bool = False) -> Generator[DictCursor, None, None]:
    """Yield a DictCursor from the shared connection pool."""
    connection_pool = _get_pool()
    connection = connection_pool.getconn()
    cursor = None
    try:
        cursor = connection.cursor(cursor_factory=DictCursor)
        yield cursor
        if commit:
            connection.commit()
    except Exception:
        connection.rollback()
        raise
    finally:
        if cursor is not None:
            cursor.close()
        connection_pool.putconn(connection)


def shutdown_pool() -> None:
    """Close all pooled connections. Call from application teardown."""
    global _POOL
    if _POOL:
        _POOL.closeall()
        _POOL = None
