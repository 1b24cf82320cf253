from dbm_agent.config import Settings, load_environ


def test_environment_wins_over_dotenv(tmp_path, monkeypatch):
    env_file = tmp_path / ".env"
    env_file.write_text("SAILS_DBM_HOST=fromfile\nSAILS_DBM_PORT=1111\n", encoding="utf-8")
    monkeypatch.setenv("SAILS_DBM_PORT", "2222")
    monkeypatch.delenv("SAILS_DBM_HOST", raising=False)

    environ = load_environ(env_file)
    assert environ["SAILS_DBM_HOST"] == "fromfile"
    assert environ["SAILS_DBM_PORT"] == "2222"


def test_missing_dotenv_is_fine(tmp_path, monkeypatch):
    monkeypatch.setenv("SAILS_DBM_DB", "shop")
    assert load_environ(tmp_path / ".env")["SAILS_DBM_DB"] == "shop"


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("DBM_TARGET_VERSION", "1")
    monkeypatch.setenv("DBM_MODELS_DIR", "app/models")
    cfg = Settings()
    assert cfg.target_version == 1
    assert cfg.models_dir.as_posix() == "app/models"
    assert cfg.default_port == 3306
