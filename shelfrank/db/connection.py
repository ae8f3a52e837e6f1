"""Pooled Postgres connections."""

import os
from contextlib import contextmanager
from typing import Any, Dict, Generator

import psycopg
from psycopg.conninfo import make_conninfo
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

_pools: Dict[str, ConnectionPool] = {}


def build_conninfo(config: Dict[str, Any]) -> str:
    """
    Build a libpq connection string from a postgres config dict.

    An explicit password wins; otherwise it is read from the variable
    named by password_env. Without either, libpq falls back to ~/.pgpass.
    """
    password = config.get("password")
    if not password and config.get("password_env"):
        password = os.environ.get(config["password_env"])

    return make_conninfo(
        host=config.get("host", "localhost"),
        port=config.get("port", 5432),
        dbname=config.get("database", "shelfrank"),
        user=config.get("user", "shelfrank_user"),
        password=password or None,
    )


def get_connection_pool(config: Dict[str, Any]) -> ConnectionPool:
    """Get or create the pool for this database."""
    conninfo = build_conninfo(config)
    pool = _pools.get(conninfo)
    if pool is None:
        pool = ConnectionPool(
            conninfo,
            min_size=1,
            max_size=4,
            kwargs={"row_factory": dict_row},
            open=True,
        )
        _pools[conninfo] = pool
    return pool


def close_pools() -> None:
    """Close every pool opened by this process."""
    while _pools:
        _, pool = _pools.popitem()
        pool.close()


@contextmanager
def get_connection(config: Dict[str, Any]) -> Generator[psycopg.Connection, None, None]:
    """Borrow a dict-row connection from the pool."""
    with get_connection_pool(config).connection() as conn:
        yield conn
