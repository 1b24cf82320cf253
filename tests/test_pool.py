import asyncio
from dataclasses import replace

import pytest

from dbm_agent.errors import ConnectivityError
from dbm_agent.pool import ConnectionPool


@pytest.mark.asyncio
async def test_same_identity_reuses_connection(make_pool, connections, params):
    pool = make_pool()
    first = await pool.acquire(params)
    second = await pool.acquire(replace(params))
    assert first is second
    assert len(connections) == 1
    assert len(pool) == 1
    await pool.close()


@pytest.mark.asyncio
async def test_concurrent_requests_share_pending_connection(make_pool, connections, params):
    pool = make_pool()
    a, b = await asyncio.gather(pool.acquire(params), pool.acquire(params))
    assert a is b
    assert len(connections) == 1
    await pool.close()


@pytest.mark.asyncio
async def test_any_differing_field_opens_new_connection(make_pool, connections, params):
    pool = make_pool()
    a = await pool.acquire(params)
    b = await pool.acquire(replace(params, password="other"))
    c = await pool.acquire(replace(params, database="otherdb"))
    assert len({id(a), id(b), id(c)}) == 3
    assert len(pool) == 3
    await pool.close()


@pytest.mark.asyncio
async def test_close_awaits_every_connection_once(make_pool, connections, params):
    pool = make_pool()
    await pool.acquire(params)
    await pool.acquire(replace(params, port=3307))
    await pool.close()

    assert [conn.closed for _, conn in connections] == [1, 1]
    assert len(pool) == 0
    # 두 번째 close 는 아무것도 하지 않는다
    await pool.close()
    assert [conn.closed for _, conn in connections] == [1, 1]


@pytest.mark.asyncio
async def test_close_failure_does_not_escape(make_pool, connections, params):
    pool = make_pool()
    broken = await pool.acquire(params)
    await pool.acquire(replace(params, user="other"))

    async def fail():
        raise OSError("socket already gone")

    broken.ensure_closed = fail
    await pool.close()

    assert connections[1][1].closed == 1
    assert len(pool) == 0


@pytest.mark.asyncio
async def test_run_error_is_not_masked_by_close_error(make_pool, params):
    async def fail():
        raise OSError("socket already gone")

    with pytest.raises(RuntimeError, match="run failed"):
        async with make_pool() as pool:
            conn = await pool.acquire(params)
            conn.ensure_closed = fail
            raise RuntimeError("run failed")


@pytest.mark.asyncio
async def test_context_manager_closes(make_pool, connections, params):
    async with make_pool() as pool:
        await pool.acquire(params)
    assert connections[0][1].closed == 1


@pytest.mark.asyncio
async def test_connect_error_is_connectivity_error(params):
    async def refuse(_params):
        raise OSError("connection refused")

    pool = ConnectionPool(connector=refuse)
    with pytest.raises(ConnectivityError) as exc_info:
        await pool.acquire(params)
    assert "localhost:3306/mydb" in str(exc_info.value)
    assert "pw" not in str(exc_info.value)
    await pool.close()


def test_identity_includes_every_field(params):
    assert params.identity == "root:pw@localhost:3306/mydb"
    assert "pw" not in repr(params)
