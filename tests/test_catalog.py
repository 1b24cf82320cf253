import pytest

from dbm_agent.catalog import CATALOG_SQL, read_columns
from dbm_agent.errors import ConnectivityError, EmptyCatalogError


@pytest.mark.asyncio
async def test_read_columns(make_pool, connections, params):
    async with make_pool() as pool:
        columns = await read_columns(pool, params, "user")

    conn = connections[0][1]
    assert conn.executed == [(CATALOG_SQL, ("mydb", "user"))]
    assert [c.name for c in columns] == ["id", "user_name", "created_at"]
    first = columns[0]
    assert first.is_primary
    assert first.is_auto_increment
    assert not first.nullable
    assert first.data_type == "int"
    assert first.table_comment == "user table"
    assert columns[1].nullable
    assert columns[2].default == "0"


@pytest.mark.asyncio
async def test_empty_result_is_fatal(make_pool, params):
    async with make_pool(rows=[]) as pool:
        with pytest.raises(EmptyCatalogError) as exc_info:
            await read_columns(pool, params, "nope")
    assert exc_info.value.table == "nope"
    assert exc_info.value.database == "mydb"


@pytest.mark.asyncio
async def test_query_error_carries_sql(make_pool, params):
    async with make_pool(error=OSError("lost connection")) as pool:
        with pytest.raises(ConnectivityError) as exc_info:
            await read_columns(pool, params, "user")
    assert exc_info.value.sql == CATALOG_SQL
