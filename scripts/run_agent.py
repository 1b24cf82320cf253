#!/usr/bin/env python3
"""
dbm-agent 와 동일한 진입점. pip install 없이 저장소에서 바로 실행할 때 사용.

  python scripts/run_agent.py generate User --table user --database mydb
  python scripts/run_agent.py generate --table user_info --host 127.0.0.1 --username root --save
  python scripts/run_agent.py rebuild --root ./my-sails-app
  python scripts/run_agent.py rebuild-all ./projects
"""
from __future__ import annotations

import sys
from pathlib import Path

# 프로젝트 루트에서 실행 시 src 로드 (pip install 없이 실행 가능)
_ROOT = Path(__file__).resolve().parent.parent
_SRC = _ROOT / "src"
if _SRC.exists() and str(_SRC) not in sys.path:
    sys.path.insert(0, str(_SRC))


def main() -> None:
    from dbm_agent.cli import app

    app()


if __name__ == "__main__":
    main()
