import pytest
from typer.testing import CliRunner

from dbm_agent import cli
from dbm_agent.pool import ConnectionPool

runner = CliRunner()

ENV = {"SAILS_DBM_HOST": "localhost", "SAILS_DBM_USER": "root", "SAILS_DBM_PWD": "pw"}


@pytest.fixture
def fake_pool(monkeypatch, make_pool):
    async def with_pool(fn):
        async with make_pool() as pool:
            return await fn(pool)

    monkeypatch.setattr(cli, "with_pool", with_pool)
    monkeypatch.setattr(cli, "load_environ", lambda _path: dict(ENV))


def generate_args(root, *extra):
    return [
        "generate", "User",
        "--table", "user",
        "--database", "mydb",
        "--host", "localhost",
        "--username", "root",
        "--password", "pw",
        "--root", str(root),
        *extra,
    ]


def test_env_guide():
    result = runner.invoke(cli.app, ["env-guide", "--database", "shop"])
    assert result.exit_code == 0
    assert "SAILS_DBM_HOST_SHOP" in result.output
    assert "SAILS_DBM_PWD" in result.output


def test_generate_requires_table():
    result = runner.invoke(cli.app, ["generate", "User"])
    assert result.exit_code == 2


def test_missing_credentials_exit_2(tmp_path, monkeypatch):
    monkeypatch.setattr(cli, "load_environ", lambda _path: {})
    result = runner.invoke(cli.app, ["generate", "User", "--table", "user", "--database", "mydb", "--root", str(tmp_path)])
    assert result.exit_code == 2
    assert not (tmp_path / "api").exists()


def test_generate_then_up_to_date(tmp_path, fake_pool):
    first = runner.invoke(cli.app, generate_args(tmp_path, "--target-version", "0"))
    assert first.exit_code == 0, first.output
    assert "Model:" in first.output
    assert (tmp_path / "api" / "models" / "User.js").exists()

    second = runner.invoke(cli.app, generate_args(tmp_path, "--target-version", "0"))
    assert second.exit_code == 0
    assert "Up to date:" in second.output


def test_provenance_mismatch_exit_2(tmp_path, fake_pool):
    assert runner.invoke(cli.app, generate_args(tmp_path, "--target-version", "0")).exit_code == 0
    result = runner.invoke(cli.app, generate_args(tmp_path, "--target-version", "1"))
    assert result.exit_code == 2


def test_dry_run_writes_nothing(tmp_path, fake_pool):
    result = runner.invoke(cli.app, generate_args(tmp_path, "--dry-run"))
    assert result.exit_code == 0
    assert "module.exports = {" in result.output
    assert not (tmp_path / "api").exists()


def test_like_reuses_recorded_flags(tmp_path, fake_pool):
    assert runner.invoke(cli.app, generate_args(tmp_path, "--target-version", "1", "--no-auto-created-at")).exit_code == 0
    model = tmp_path / "api" / "models" / "User.js"

    result = runner.invoke(cli.app, generate_args(tmp_path, "--like", str(model)))
    assert result.exit_code == 0, result.output
    assert "Up to date:" in result.output


def test_rebuild(tmp_path, fake_pool):
    assert runner.invoke(cli.app, generate_args(tmp_path)).exit_code == 0
    result = runner.invoke(cli.app, ["rebuild", "--root", str(tmp_path)])
    assert result.exit_code == 0, result.output
    assert "Rebuilt 1 model(s)" in result.output


def test_pool_is_closed_on_failure(tmp_path, monkeypatch, make_pool, connections):
    pools = []

    async def with_pool(fn):
        async with make_pool(rows=[]) as pool:
            pools.append(pool)
            return await fn(pool)

    monkeypatch.setattr(cli, "with_pool", with_pool)
    monkeypatch.setattr(cli, "load_environ", lambda _path: {})
    result = runner.invoke(cli.app, generate_args(tmp_path, "--target-version", "0"))

    assert result.exit_code == 2
    assert isinstance(pools[0], ConnectionPool)
    assert connections[0][1].closed == 1
