"""
모델 파일에 기록된 생성 명령과 현재 명령 비교.

명령은 `dbm-agent generate <파일명> --table <테이블> [명시적으로 지정한 옵션...]` 형태로 모델 파일 주석에 남는다.
옵션 순서는 무시하고 토큰 집합만 비교한다.
"""
from __future__ import annotations
import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Tuple, Union

from dbm_agent.errors import ProvenanceMismatch

COMMAND = "dbm-agent generate"
MARKER = f"`{COMMAND}"
LINE_RE = re.compile(rf"`{re.escape(COMMAND)}\s+(.*?)`")

FlagValue = Union[str, bool]


class ProvenanceStatus(str, Enum):
    UP_TO_DATE = "up_to_date"
    UNRECORDED = "unrecorded"


def canonicalize(tokens: Iterable[str]) -> str:
    return " ".join(sorted(t for t in tokens if t))


def signatures_equal(a: str, b: str) -> bool:
    return a == b


@dataclass(frozen=True)
class Invocation:
    filename: str
    table: str
    # 이번 실행에서 명시적으로 지정한 옵션만. True → --x, False → --no-x
    flags: Tuple[Tuple[str, FlagValue], ...] = ()

    def tokens(self) -> list[str]:
        out = [self.filename, "--table", self.table]
        for name, value in self.flags:
            if value is True:
                out.append(f"--{name}")
            elif value is False:
                out.append(f"--no-{name}")
            else:
                out += [f"--{name}", str(value)]
        return out

    @property
    def command(self) -> str:
        return " ".join(self.tokens())

    @property
    def signature(self) -> str:
        return canonicalize(self.tokens())

    def provenance_line(self) -> str:
        return f"`{COMMAND} {self.command}`"

    def flag(self, name: str, default: Optional[FlagValue] = None) -> Optional[FlagValue]:
        for key, value in self.flags:
            if key == name:
                return value
        return default


def parse_args(args: list[str]) -> list[Tuple[str, FlagValue]]:
    flags: list[Tuple[str, FlagValue]] = []
    i = 0
    while i < len(args):
        token = args[i]
        if token.startswith("--no-"):
            flags.append((token[5:], False))
        elif token.startswith("--"):
            nxt = args[i + 1] if i + 1 < len(args) else None
            if nxt is None or nxt.startswith("--"):
                flags.append((token[2:], True))
            else:
                flags.append((token[2:], nxt))
                i += 1
        i += 1
    return flags


def parse_provenance_line(line: str) -> Optional[Invocation]:
    m = LINE_RE.search(line)
    if not m:
        return None
    parts = m.group(1).split()
    if not parts:
        return None
    filename, rest = parts[0], parts[1:]
    flags = parse_args(rest)
    table = next((str(v) for k, v in flags if k == "table"), "")
    return Invocation(filename=filename, table=table, flags=tuple((k, v) for k, v in flags if k != "table"))


def find_provenance_line(text: str) -> Optional[str]:
    return next((line for line in text.splitlines() if MARKER in line), None)


def read_invocation(text: str) -> Optional[Invocation]:
    line = find_provenance_line(text)
    return parse_provenance_line(line) if line else None


def check(existing_text: str, current: Invocation) -> ProvenanceStatus:
    """기록된 명령과 같으면 UP_TO_DATE, 기록이 없으면 UNRECORDED, 다르면 ProvenanceMismatch."""
    line = find_provenance_line(existing_text)
    m = LINE_RE.search(line) if line else None
    if not m:
        return ProvenanceStatus.UNRECORDED
    recorded = m.group(1)
    if signatures_equal(canonicalize(recorded.split()), current.signature):
        return ProvenanceStatus.UP_TO_DATE
    raise ProvenanceMismatch(current=current.command, previous=recorded)
