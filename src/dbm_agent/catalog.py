from __future__ import annotations
import logging
from typing import List

import aiomysql

from dbm_agent.credentials import ConnectionParams
from dbm_agent.errors import ConnectivityError, EmptyCatalogError
from dbm_agent.model import ColumnMetadata
from dbm_agent.pool import ConnectionPool

logger = logging.getLogger(__name__)

CATALOG_SQL = """SELECT a.*, b.TABLE_COMMENT
      FROM information_schema.COLUMNS AS a, information_schema.TABLES AS b
      WHERE a.TABLE_SCHEMA = %s
      AND a.TABLE_NAME = %s
      AND a.TABLE_NAME = b.TABLE_NAME
      AND a.TABLE_SCHEMA = b.TABLE_SCHEMA"""


async def read_columns(pool: ConnectionPool, params: ConnectionParams, table: str) -> List[ColumnMetadata]:
    """테이블의 컬럼 카탈로그를 읽는다. 결과가 없으면 EmptyCatalogError."""
    conn = await pool.acquire(params)
    logger.debug("sql => %s [%s, %s]", CATALOG_SQL, params.database, table)
    try:
        async with conn.cursor(aiomysql.DictCursor) as cursor:
            await cursor.execute(CATALOG_SQL, (params.database, table))
            rows = await cursor.fetchall()
    except (aiomysql.Error, OSError) as exc:
        raise ConnectivityError(f"query error => {exc}", sql=CATALOG_SQL) from exc

    if not rows:
        raise EmptyCatalogError(params.database, table)
    return [ColumnMetadata.from_row(row) for row in rows]
