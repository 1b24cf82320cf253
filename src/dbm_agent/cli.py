"""
MySQL 테이블 → Sails 모델 생성 CLI.
- dbm-agent generate: 테이블 하나로 api/generates/<Name>.js 와 api/models/<Name>.js 생성
- dbm-agent rebuild: api/models 에 기록된 생성 명령으로 다시 생성
- dbm-agent rebuild-all: 하위 프로젝트 전체 rebuild
- dbm-agent env-guide: 접속 정보 환경 변수 안내
"""
from __future__ import annotations
import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, TypeVar

import typer
from rich.console import Console
from rich.logging import RichHandler

from dbm_agent import provenance
from dbm_agent.config import load_environ, settings
from dbm_agent.errors import ConnectivityError, DbmError, ProvenanceMismatch
from dbm_agent.pool import ConnectionPool
from dbm_agent.runner import (
    GenerateRequest,
    GenerateResult,
    RunStatus,
    describe,
    generate,
    rebuild,
    rebuild_all,
    with_pool,
)
from dbm_agent.writer import to_js_module

console = Console()
err_console = Console(stderr=True)

T = TypeVar("T")

app = typer.Typer(
    name="dbm-agent",
    add_completion=False,
    help="MySQL 테이블 카탈로그로 Sails 모델 생성. 예: dbm-agent generate User --table user --database mydb",
)


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose or settings.verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False, show_time=False)],
        force=True,
    )


def _run(fn: Callable[[ConnectionPool], Awaitable[T]]) -> T:
    """실패는 모두 종료 코드로 변환한다. 풀은 종료 전에 항상 닫힌다."""
    try:
        return asyncio.run(with_pool(fn))
    except ProvenanceMismatch as e:
        err_console.print(
            "\n[bold red]The generation command differs from the one recorded in the model.[/bold red]\n"
            "Delete the model file and run again if the model should be regenerated with the new command.\n"
        )
        err_console.print(f"current command:  {e.current}")
        err_console.print(f"recorded command: {e.previous}")
        raise typer.Exit(e.exit_code)
    except ConnectivityError as e:
        err_console.print(f"[bold red]{e}[/bold red]")
        if e.sql:
            err_console.print(f"sql => {e.sql}")
        raise typer.Exit(e.exit_code)
    except DbmError as e:
        err_console.print(f"[bold red]{e}[/bold red]")
        raise typer.Exit(e.exit_code)


def _report(result: GenerateResult) -> None:
    console.print(f"[bold green]Generated:[/bold green] {result.generated_path} (schema v{result.target_version})")
    if result.status is RunStatus.CREATED:
        console.print(f"[bold green]Model:[/bold green]     {result.model_path}")
    else:
        console.print(f"[yellow]Up to date:[/yellow] {result.model_path}")
    if result.env_guidance:
        console.print(result.env_guidance, markup=False, soft_wrap=True)


@app.command("generate")
def cmd_generate(
    name: Optional[str] = typer.Argument(None, help="모델명 (생략 시 테이블명에서 유도: user_info → UserInfo)"),
    table: Optional[str] = typer.Option(None, "--table", "-t", help="모델에 대응하는 테이블"),
    database: Optional[str] = typer.Option(None, "--database", "-d", help="데이터베이스 (SAILS_DBM_DB 로도 지정 가능)"),
    host: Optional[str] = typer.Option(None, help="데이터베이스 주소"),
    port: Optional[int] = typer.Option(None, help="데이터베이스 포트"),
    username: Optional[str] = typer.Option(None, help="로그인 사용자"),
    password: Optional[str] = typer.Option(None, help="로그인 비밀번호 (명령행 입력 비권장, 생략하면 프롬프트)"),
    save: bool = typer.Option(False, "--save", help="접속 정보를 환경 변수로 저장하는 명령 출력"),
    templates: Optional[str] = typer.Option(None, help="model.template.js 가 있는 디렉터리"),
    target_version: Optional[int] = typer.Option(None, "--target-version", help="sails major 버전 (생략 시 node_modules 에서 감지)"),
    auto_created_at: Optional[bool] = typer.Option(None, "--auto-created-at/--no-auto-created-at", help="정수 createdAt 자동 채움"),
    auto_updated_at: Optional[bool] = typer.Option(None, "--auto-updated-at/--no-auto-updated-at", help="정수 updatedAt 자동 채움"),
    like: Optional[Path] = typer.Option(None, "--like", help="기존 모델 파일의 생성 옵션을 재사용 (--table 필수)"),
    root: Path = typer.Option(Path("."), help="Sails 프로젝트 루트"),
    dry_run: bool = typer.Option(False, "--dry-run", help="파일을 쓰지 않고 생성 결과만 출력"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="상세 로그 (실행 SQL 포함)"),
):
    """테이블 하나로 모델 생성."""
    _setup_logging(verbose)
    if not table:
        err_console.print("Table is required: `dbm-agent generate NAME --table TABLE`")
        raise typer.Exit(2)

    request = GenerateRequest(
        table=table,
        name=name,
        root=root,
        database=database,
        host=host,
        port=port,
        username=username,
        password=password,
        save=save,
        templates=templates,
        target_version=target_version,
        auto_created_at=auto_created_at,
        auto_updated_at=auto_updated_at,
    )
    if like is not None:
        try:
            recorded = provenance.read_invocation(like.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError) as e:
            err_console.print(f"[bold red]cannot read {like}: {e}[/bold red]")
            raise typer.Exit(1)
        if recorded is None:
            err_console.print(f"[bold red]{like} has no generation command[/bold red]")
            raise typer.Exit(2)
        request = request.with_flags(recorded.flags)

    environ = load_environ(root / ".env")

    def prompt() -> str:
        return typer.prompt("Database Password", hide_input=True)

    if dry_run:
        described = _run(lambda pool: describe(request, pool, environ=environ, prompt_password=prompt))
        console.print(to_js_module(described.descriptor), markup=False, highlight=False, soft_wrap=True)
        return

    result = _run(lambda pool: generate(request, pool, environ=environ, prompt_password=prompt))
    _report(result)


@app.command("rebuild")
def cmd_rebuild(
    files: Optional[List[Path]] = typer.Argument(None, help="다시 생성할 모델 파일 (생략 시 api/models 전체)"),
    root: Path = typer.Option(Path("."), help="Sails 프로젝트 루트"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """api/models 파일에 기록된 생성 명령으로 모델을 다시 생성."""
    _setup_logging(verbose)
    environ = load_environ(root / ".env")
    results = _run(lambda pool: rebuild(root, pool, environ=environ, files=files or None))
    for result in results:
        _report(result)
    console.print(f"[bold green]Rebuilt {len(results)} model(s)[/bold green]")


@app.command("rebuild-all")
def cmd_rebuild_all(
    projects_root: Path = typer.Argument(Path("."), help="Sails 프로젝트들이 있는 디렉터리"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """하위 디렉터리의 모든 Sails 프로젝트를 순서대로 rebuild."""
    _setup_logging(verbose)
    environ = load_environ(projects_root / ".env")
    done = _run(lambda pool: rebuild_all(projects_root, pool, environ=environ))
    for project, results in done.items():
        console.print(f"[bold]{project}[/bold]: {len(results)} model(s)")


@app.command("env-guide")
def cmd_env_guide(
    database: Optional[str] = typer.Option(None, "--database", "-d", help="데이터베이스명"),
):
    """접속 정보를 미리 설정해 둘 환경 변수 안내."""
    db = (database or "DATABASE").upper()
    console.print(
        "Host, port, user and password can be set in environment variables beforehand.\n\n"
        "Shared by all databases:\n"
        " SAILS_DBM_HOST  database host\n"
        " SAILS_DBM_PORT  database port\n"
        " SAILS_DBM_USER  login user (encrypted, see --save)\n"
        " SAILS_DBM_PWD   login password (encrypted, see --save)\n\n"
        "Per database (suffixed with the upper-case database name, takes precedence):\n"
        f" SAILS_DBM_HOST_{db}\n"
        f" SAILS_DBM_PORT_{db}\n"
        f" SAILS_DBM_USER_{db}\n"
        f" SAILS_DBM_PWD_{db}\n",
        markup=False,
    )


def main() -> None:
    app()


if __name__ == "__main__":
    main()
