from __future__ import annotations

import pytest

from dbm_agent.credentials import ConnectionParams
from dbm_agent.pool import ConnectionPool


class FakeCursor:
    def __init__(self, conn: "FakeConnection"):
        self.conn = conn

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    async def execute(self, sql, args=None):
        self.conn.executed.append((sql, args))
        if self.conn.error is not None:
            raise self.conn.error

    async def fetchall(self):
        return list(self.conn.rows)


class FakeConnection:
    """aiomysql.Connection 대역. cursor() 와 ensure_closed() 만 흉내낸다."""

    def __init__(self, rows=(), error=None):
        self.rows = list(rows)
        self.error = error
        self.executed = []
        self.closed = 0

    def cursor(self, cursor_class=None):
        return FakeCursor(self)

    async def ensure_closed(self):
        self.closed += 1


@pytest.fixture
def params():
    return ConnectionParams(host="localhost", port=3306, user="root", password="pw", database="mydb")


@pytest.fixture
def catalog_rows():
    return [
        {
            "COLUMN_NAME": "id",
            "COLUMN_TYPE": "int(11)",
            "IS_NULLABLE": "NO",
            "COLUMN_DEFAULT": None,
            "COLUMN_KEY": "PRI",
            "EXTRA": "auto_increment",
            "DATA_TYPE": "int",
            "COLUMN_COMMENT": "PK",
            "TABLE_COMMENT": "user table",
        },
        {
            "COLUMN_NAME": "user_name",
            "COLUMN_TYPE": "varchar(64)",
            "IS_NULLABLE": "YES",
            "COLUMN_DEFAULT": None,
            "COLUMN_KEY": "",
            "EXTRA": "",
            "DATA_TYPE": "varchar",
            "COLUMN_COMMENT": "",
            "TABLE_COMMENT": "user table",
        },
        {
            "COLUMN_NAME": "created_at",
            "COLUMN_TYPE": "int(11)",
            "IS_NULLABLE": "NO",
            "COLUMN_DEFAULT": "0",
            "COLUMN_KEY": "",
            "EXTRA": "",
            "DATA_TYPE": "int",
            "COLUMN_COMMENT": "",
            "TABLE_COMMENT": "user table",
        },
    ]


@pytest.fixture
def connections():
    return []


@pytest.fixture
def make_pool(catalog_rows, connections):
    """가짜 접속을 만드는 ConnectionPool. 만든 접속은 connections 에 (params, conn) 으로 쌓인다."""

    def factory(rows=None, error=None):
        async def connector(p):
            conn = FakeConnection(catalog_rows if rows is None else rows, error)
            connections.append((p, conn))
            return conn

        return ConnectionPool(connector=connector)

    return factory
