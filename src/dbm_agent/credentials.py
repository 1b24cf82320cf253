"""
접속 정보 결정: CLI 옵션 > 데이터베이스별 환경 변수(SAILS_DBM_*_<DB>) > 범용 환경 변수(SAILS_DBM_*).
환경 변수의 USER/PWD 는 vault 로 암호화된 값이며, 복호화에 실패하면 평문으로 그대로 쓴다.
"""
from __future__ import annotations
import logging
import sys
from dataclasses import dataclass, field
from typing import Callable, Mapping, Optional

from dbm_agent import vault
from dbm_agent.errors import InputError

logger = logging.getLogger(__name__)

PREFIX = "SAILS_DBM_"

FIRST_RUN_HINT = (
    "First run: pass `--host HOST --port PORT --username USER --save`, "
    "or set SAILS_DBM_HOST / SAILS_DBM_PORT / SAILS_DBM_USER / SAILS_DBM_PWD "
    "(or their _<DATABASE> variants). See `dbm-agent env-guide --help`."
)


@dataclass(frozen=True)
class ConnectionParams:
    host: str
    port: int
    user: str
    password: str = field(repr=False)
    database: str

    @property
    def identity(self) -> str:
        """풀링 키. 저장하거나 로그로 남기지 않는다."""
        return f"{self.user}:{self.password}@{self.host}:{self.port}/{self.database}"


@dataclass(frozen=True)
class EnvKeys:
    """데이터베이스별 환경 변수 이름과 암호화 키."""
    suffix: str     # "" 또는 "_MYDB"

    @classmethod
    def for_database(cls, database: Optional[str]) -> "EnvKeys":
        return cls(f"_{database.upper()}" if database else "")

    def name(self, field_name: str) -> str:
        return f"{PREFIX}{field_name}{self.suffix}"

    @property
    def user_key(self) -> str:
        return self.suffix

    def secret(self, encoded_user: str, host: str) -> str:
        return f"{encoded_user}@{host}{'/' + self.suffix if self.suffix else ''}"


def resolve_database(database: Optional[str], environ: Mapping[str, str]) -> str:
    db = database or environ.get(f"{PREFIX}DB") or environ.get(f"{PREFIX}DATABASE")
    if not db:
        raise InputError("Database is required: pass `--database NAME` or set SAILS_DBM_DB")
    return db


def _first(environ: Mapping[str, str], *names: str) -> Optional[str]:
    for name in names:
        value = environ.get(name)
        if value:
            return value
    return None


def resolve_credentials(
    database: str,
    host: Optional[str] = None,
    port: Optional[int] = None,
    username: Optional[str] = None,
    password: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
    default_port: int = 3306,
    prompt_password: Optional[Callable[[], str]] = None,
) -> ConnectionParams:
    env = environ if environ is not None else {}
    db_keys = EnvKeys.for_database(database)
    generic = EnvKeys("")

    if username and not password and prompt_password is not None:
        password = prompt_password()

    host = host or _first(env, db_keys.name("HOST"), generic.name("HOST"))
    raw_port = port or _first(env, db_keys.name("PORT"), generic.name("PORT"))
    try:
        port = int(raw_port) if raw_port else default_port
    except ValueError:
        port = default_port

    user = username
    if not user:
        user = vault.decode(env.get(db_keys.name("USER")), db_keys.user_key)
    if not user and host:
        user = vault.decode(env.get(generic.name("USER")), host)

    if not password and user and host:
        encoded_user = vault.encode(user, db_keys.user_key)
        password = vault.decode(
            _first(env, db_keys.name("PWD"), f"{PREFIX}PASSWORD{db_keys.suffix}"),
            db_keys.secret(encoded_user, host),
        ) or vault.decode(
            _first(env, generic.name("PWD"), f"{PREFIX}PASSWORD"),
            generic.secret(encoded_user, host),
        )

    if not host or not user or password is None:
        logger.debug("missing connection parameters: host=%s user=%s password=%s", host, bool(user), password is not None)
        raise InputError(FIRST_RUN_HINT)

    return ConnectionParams(host=host, port=port, user=user, password=password, database=database)


def render_env_guidance(params: ConnectionParams, platform: str = sys.platform) -> str:
    """--save: 사용자 환경 변수에 넣을 명령을 출력용 텍스트로 만든다. 직접 export 하지 않는다."""
    db_keys = EnvKeys.for_database(params.database)
    generic = EnvKeys("")
    encoded_user = vault.encode(params.user, db_keys.user_key)
    setter = "SETX {}={}" if platform == "win32" else "export {}={}"

    def block(keys: EnvKeys, user_key: str) -> list[str]:
        return [
            setter.format(keys.name("HOST"), params.host),
            setter.format(keys.name("PORT"), params.port),
            setter.format(keys.name("USER"), vault.encode(params.user, user_key)),
            setter.format(keys.name("PWD"), vault.encode(params.password, keys.secret(encoded_user, params.host))),
        ]

    lines = ["Save the following to your user environment:", "`"]
    lines += block(db_keys, db_keys.user_key)
    lines += ["`", "or use the generic (all databases) settings:", "`"]
    lines += block(generic, params.host)
    lines.append("`")
    return "\n".join(lines)
