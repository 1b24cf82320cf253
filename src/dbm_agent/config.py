from __future__ import annotations
import os
from pathlib import Path

from dotenv import dotenv_values
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    models_dir: Path = Field(default=Path("api/models"), alias="DBM_MODELS_DIR")
    generates_dir: Path = Field(default=Path("api/generates"), alias="DBM_GENERATES_DIR")
    default_port: int = Field(default=3306, alias="DBM_DEFAULT_PORT")
    # None 이면 node_modules/sails/package.json 에서 감지
    target_version: int | None = Field(default=None, alias="DBM_TARGET_VERSION")
    verbose: bool = Field(default=False, alias="DBM_VERBOSE")

settings = Settings()


def load_environ(env_file: Path | str = ".env") -> dict[str, str]:
    """
    SAILS_DBM_* 접속 변수 조회용 환경.
    변수명이 데이터베이스 이름에 따라 달라지므로 Settings 필드가 아니라 dict 로 다룬다.
    .env 값은 기본값이고 실제 환경 변수가 우선한다.
    """
    values = {k: v for k, v in dotenv_values(env_file).items() if v is not None}
    values.update(os.environ)
    return values
