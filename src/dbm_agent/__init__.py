"""MySQL 테이블 카탈로그 → Sails(Waterline) 모델 생성기."""
from dbm_agent.runner import GenerateRequest, GenerateResult, RunStatus, generate, rebuild, rebuild_all

__all__ = ["GenerateRequest", "GenerateResult", "RunStatus", "generate", "rebuild", "rebuild_all"]
