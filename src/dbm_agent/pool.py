from __future__ import annotations
import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional

import aiomysql

from dbm_agent.credentials import ConnectionParams
from dbm_agent.errors import ConnectivityError

logger = logging.getLogger(__name__)

Connector = Callable[[ConnectionParams], Awaitable[aiomysql.Connection]]


async def connect_mysql(params: ConnectionParams) -> aiomysql.Connection:
    return await aiomysql.connect(
        host=params.host,
        port=params.port,
        user=params.user,
        password=params.password,
        db=params.database,
        charset="utf8mb4",
        autocommit=True,
        cursorclass=aiomysql.DictCursor,
    )


class ConnectionPool:
    """
    프로세스 수명 동안 접속을 식별자(user:password@host:port/db)별로 하나씩 공유한다.
    실행 단위(run/rebuild)가 소유하고, 종료 전에 close() 로 모든 접속이 닫힐 때까지 기다린다.
    """

    def __init__(self, connector: Optional[Connector] = None) -> None:
        self._connector = connector or connect_mysql
        self._entries: Dict[str, asyncio.Task] = {}

    def __len__(self) -> int:
        return len(self._entries)

    async def acquire(self, params: ConnectionParams) -> aiomysql.Connection:
        key = params.identity
        task = self._entries.get(key)
        if task is None:
            # 처음 요청한 쪽이 만든 task 를 이후 요청이 함께 기다린다
            task = asyncio.ensure_future(self._open(params))
            self._entries[key] = task
        return await task

    async def _open(self, params: ConnectionParams) -> aiomysql.Connection:
        logger.debug("connecting to %s:%s/%s as %s", params.host, params.port, params.database, params.user)
        try:
            return await self._connector(params)
        except (aiomysql.Error, OSError) as exc:
            raise ConnectivityError(
                f"connect error => {params.host}:{params.port}/{params.database}: {exc}"
            ) from exc

    async def close(self) -> None:
        tasks = list(self._entries.values())
        self._entries.clear()
        if not tasks:
            return
        results = await asyncio.gather(*tasks, return_exceptions=True)
        closing = [conn.ensure_closed() for conn in results if not isinstance(conn, BaseException)]
        # 닫기 실패는 기록만 한다
        failures = [r for r in await asyncio.gather(*closing, return_exceptions=True) if isinstance(r, BaseException)]
        for exc in failures:
            logger.debug("close pooled connection failed: %r", exc)
        logger.debug("closed %d pooled connection(s)", len(closing) - len(failures))

    async def __aenter__(self) -> "ConnectionPool":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
