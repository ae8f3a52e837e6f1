from unittest.mock import patch

import pytest
from psycopg.conninfo import conninfo_to_dict

from shelfrank.db import connection


@pytest.fixture(autouse=True)
def no_pools():
    connection._pools.clear()
    yield
    connection._pools.clear()


def test_conninfo_reads_password_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("SHELF_TEST_PW", "p@ss word")

    info = conninfo_to_dict(
        connection.build_conninfo({"host": "db", "user": "reader", "password_env": "SHELF_TEST_PW"})
    )

    assert info["host"] == "db"
    assert info["port"] == "5432"
    assert info["dbname"] == "shelfrank"
    assert info["user"] == "reader"
    assert info["password"] == "p@ss word"


def test_conninfo_without_password() -> None:
    assert "password" not in conninfo_to_dict(connection.build_conninfo({}))


def test_pool_is_reused_per_database() -> None:
    with patch.object(connection, "ConnectionPool") as pool_cls:
        first = connection.get_connection_pool({"database": "a"})
        again = connection.get_connection_pool({"database": "a"})
        connection.get_connection_pool({"database": "b"})

    assert first is again
    assert pool_cls.call_count == 2


def test_close_pools() -> None:
    with patch.object(connection, "ConnectionPool") as pool_cls:
        connection.get_connection_pool({"database": "a"})
        connection.close_pools()

    pool_cls.return_value.close.assert_called_once()
    assert connection._pools == {}
