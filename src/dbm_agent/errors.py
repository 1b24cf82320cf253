"""dbm-agent 예외. CLI 가 exit_code 로 종료 상태를 결정한다."""
from __future__ import annotations


class DbmError(Exception):
    exit_code = 2


class InputError(DbmError):
    """필수 입력(테이블, 데이터베이스, 접속 정보) 누락."""


class EmptyCatalogError(InputError):
    def __init__(self, database: str | None, table: str):
        super().__init__(f"Table `{table}` not found in database `{database}` (catalog returned no columns)")
        self.database = database
        self.table = table


class ConnectivityError(DbmError):
    """접속 또는 카탈로그 쿼리 실패. 재시도하지 않는다."""

    def __init__(self, message: str, sql: str | None = None):
        super().__init__(message)
        self.sql = sql


class ProvenanceMismatch(DbmError):
    def __init__(self, current: str, previous: str):
        super().__init__("Generation command differs from the one recorded in the existing model")
        self.current = current
        self.previous = previous


class ArtifactWriteError(DbmError):
    exit_code = 1
