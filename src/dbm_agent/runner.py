"""모델 생성 파이프라인: 접속 정보 → 카탈로그 → descriptor → api/generates, api/models."""
from __future__ import annotations
import json
import logging
import os
import re
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable, Mapping, Optional, Tuple, TypeVar

from dbm_agent import provenance
from dbm_agent.builder import build
from dbm_agent.catalog import read_columns
from dbm_agent.config import Settings, settings as default_settings
from dbm_agent.credentials import ConnectionParams, render_env_guidance, resolve_credentials, resolve_database
from dbm_agent.errors import ArtifactWriteError, InputError
from dbm_agent.model import ModelDescriptor
from dbm_agent.naming import model_filename, model_name_from_table
from dbm_agent.pool import ConnectionPool
from dbm_agent.provenance import FlagValue, Invocation
from dbm_agent.writer import write_generated, write_model

logger = logging.getLogger(__name__)

T = TypeVar("T")

# 생성 명령에 기록되는 옵션 (접속 정보는 기록하지 않는다)
KNOWN_FLAGS = {"database", "templates", "target-version", "auto-created-at", "auto-updated-at"}


class RunStatus(str, Enum):
    CREATED = "created"         # api/models 파일을 새로 만듦
    UP_TO_DATE = "up_to_date"   # 기존 모델의 생성 명령과 동일, generates 만 갱신


@dataclass
class GenerateRequest:
    table: str
    name: Optional[str] = None
    root: Path = Path(".")
    database: Optional[str] = None
    host: Optional[str] = None
    port: Optional[int] = None
    username: Optional[str] = None
    password: Optional[str] = None
    save: bool = False
    templates: Optional[str] = None
    target_version: Optional[int] = None
    auto_created_at: Optional[bool] = None
    auto_updated_at: Optional[bool] = None
    # 기록된 명령에 있었지만 이 도구가 해석하지 않는 옵션. 서명 비교를 위해 그대로 유지
    extra_flags: Tuple[Tuple[str, FlagValue], ...] = ()

    @property
    def filename(self) -> str:
        return model_filename(self.name or model_name_from_table(self.table))

    def invocation(self) -> Invocation:
        flags: list[Tuple[str, FlagValue]] = []
        if self.database:
            flags.append(("database", self.database))
        if self.templates:
            flags.append(("templates", self.templates))
        if self.target_version is not None:
            flags.append(("target-version", str(self.target_version)))
        if self.auto_created_at is not None:
            flags.append(("auto-created-at", self.auto_created_at))
        if self.auto_updated_at is not None:
            flags.append(("auto-updated-at", self.auto_updated_at))
        flags.extend(self.extra_flags)
        return Invocation(filename=self.filename, table=self.table, flags=tuple(flags))

    @classmethod
    def from_invocation(cls, invocation: Invocation, root: Path) -> "GenerateRequest":
        return cls(table=invocation.table, name=invocation.filename, root=root).with_flags(invocation.flags)

    def with_flags(self, flags: Tuple[Tuple[str, FlagValue], ...]) -> "GenerateRequest":
        """기록된 옵션 중 이번에 지정하지 않은 것만 채운다."""
        updates: dict = {}
        extra = list(self.extra_flags)
        for name, value in flags:
            if name == "database" and self.database is None:
                updates["database"] = str(value)
            elif name == "templates" and self.templates is None:
                updates["templates"] = str(value)
            elif name == "target-version" and self.target_version is None:
                try:
                    updates["target_version"] = int(value)
                except (TypeError, ValueError):
                    raise InputError(f"Invalid recorded --target-version: {value!r}") from None
            elif name == "auto-created-at" and self.auto_created_at is None:
                updates["auto_created_at"] = bool(value)
            elif name == "auto-updated-at" and self.auto_updated_at is None:
                updates["auto_updated_at"] = bool(value)
            elif name not in KNOWN_FLAGS:
                extra.append((name, value))
        return replace(self, extra_flags=tuple(extra), **updates)


@dataclass
class GenerateResult:
    status: RunStatus
    descriptor: ModelDescriptor
    generated_path: Path
    model_path: Path
    target_version: int
    env_guidance: Optional[str] = None
    invocation: Optional[Invocation] = field(default=None, repr=False)


SAILS_VERSION_RE = re.compile(r"^\D*(\d+)")


def detect_target_version(root: Path) -> int:
    """node_modules/sails/package.json 의 major 버전. 없으면 0 (구 스키마)."""
    pkg = root / "node_modules" / "sails" / "package.json"
    if not pkg.is_file():
        return 0
    try:
        version = json.loads(pkg.read_text(encoding="utf-8")).get("version", "")
    except (OSError, ValueError):
        logger.warning("unreadable %s, assuming sails 0.x", pkg)
        return 0
    m = SAILS_VERSION_RE.match(str(version))
    return int(m.group(1)) if m else 0


@dataclass
class Described:
    descriptor: ModelDescriptor
    params: ConnectionParams
    target_version: int


async def describe(
    request: GenerateRequest,
    pool: ConnectionPool,
    cfg: Settings = default_settings,
    environ: Optional[Mapping[str, str]] = None,
    prompt_password: Optional[Callable[[], str]] = None,
) -> Described:
    """접속 정보 결정 → 카탈로그 조회 → descriptor. 파일은 쓰지 않는다."""
    if not request.table:
        raise InputError("Table is required: `dbm-agent generate NAME --table TABLE`")

    env = environ if environ is not None else os.environ
    database = resolve_database(request.database, env)
    params = resolve_credentials(
        database,
        host=request.host,
        port=request.port,
        username=request.username,
        password=request.password,
        environ=env,
        default_port=cfg.default_port,
        prompt_password=prompt_password,
    )

    if request.target_version is not None:
        version = request.target_version
    elif cfg.target_version is not None:
        version = cfg.target_version
    else:
        version = detect_target_version(request.root)

    columns = await read_columns(pool, params, request.table)
    descriptor = build(
        request.table,
        columns,
        version,
        auto_created_at=request.auto_created_at,
        auto_updated_at=request.auto_updated_at,
    )
    return Described(descriptor=descriptor, params=params, target_version=version)


async def generate(
    request: GenerateRequest,
    pool: ConnectionPool,
    cfg: Settings = default_settings,
    environ: Optional[Mapping[str, str]] = None,
    prompt_password: Optional[Callable[[], str]] = None,
) -> GenerateResult:
    described = await describe(request, pool, cfg=cfg, environ=environ, prompt_password=prompt_password)
    descriptor, params, version = described.descriptor, described.params, described.target_version
    root = request.root

    filename = request.filename
    generated_path = root / cfg.generates_dir / filename
    model_path = root / cfg.models_dir / filename
    invocation = request.invocation()

    # 기록된 명령과 다르면 generates 파일도 건드리지 않는다
    status = RunStatus.CREATED
    if model_path.exists():
        recorded = provenance.check(_read_model(model_path), invocation)
        if recorded is provenance.ProvenanceStatus.UNRECORDED:
            logger.warning("%s has no generation command, leaving it untouched", model_path)
        status = RunStatus.UP_TO_DATE

    write_generated(descriptor, generated_path)
    logger.info("update generated model(%s) => %s", version, generated_path)

    result = GenerateResult(
        status=status,
        descriptor=descriptor,
        generated_path=generated_path,
        model_path=model_path,
        target_version=version,
        env_guidance=render_env_guidance(params) if request.save else None,
        invocation=invocation,
    )
    if status is RunStatus.UP_TO_DATE:
        return result

    templates_dir = root / request.templates if request.templates else None
    generated_require = os.path.relpath(generated_path, model_path.parent).replace(os.sep, "/")
    if not generated_require.startswith("."):
        generated_require = "./" + generated_require
    write_model(
        templates_dir,
        root,
        {
            "name": Path(filename).stem,
            "filename": filename,
            "table": request.table,
            "command": invocation.command,
            "provenance": invocation.provenance_line(),
            "generatedPath": (cfg.generates_dir / filename).as_posix(),
            "generatedRequire": generated_require[:-3] if generated_require.endswith(".js") else generated_require,
        },
        model_path,
    )
    return result


def _read_model(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ArtifactWriteError(f"read model error => {path}: {exc}") from exc


def _model_files(models_dir: Path) -> list[Path]:
    return sorted(p for p in models_dir.glob("*.js") if p.is_file())


async def rebuild(
    root: Path,
    pool: ConnectionPool,
    cfg: Settings = default_settings,
    environ: Optional[Mapping[str, str]] = None,
    files: Optional[list[Path]] = None,
) -> list[GenerateResult]:
    """api/models 의 각 모델을 기록된 생성 명령으로 순서대로 다시 생성한다."""
    results: list[GenerateResult] = []
    for path in files if files is not None else _model_files(root / cfg.models_dir):
        invocation = provenance.read_invocation(_read_model(path))
        if invocation is None:
            logger.info("skip %s (no generation command)", path)
            continue
        request = GenerateRequest.from_invocation(invocation, root)
        results.append(await generate(request, pool, cfg=cfg, environ=environ))
    return results


async def rebuild_all(
    projects_root: Path,
    pool: ConnectionPool,
    cfg: Settings = default_settings,
    environ: Optional[Mapping[str, str]] = None,
) -> dict[Path, list[GenerateResult]]:
    """하위 디렉터리 중 api/models 가 있는 프로젝트를 하나씩 rebuild."""
    done: dict[Path, list[GenerateResult]] = {}
    for project in sorted(p for p in projects_root.iterdir() if p.is_dir()):
        if not (project / cfg.models_dir).is_dir():
            continue
        logger.info("start build project => %s", project)
        done[project] = await rebuild(project, pool, cfg=cfg, environ=environ)
        logger.info("project build done => %s", project)
    return done


async def with_pool(fn: Callable[[ConnectionPool], Awaitable[T]]) -> T:
    """풀을 만들고, 성공/실패와 관계없이 모든 접속이 닫힌 뒤 반환한다."""
    async with ConnectionPool() as pool:
        return await fn(pool)
