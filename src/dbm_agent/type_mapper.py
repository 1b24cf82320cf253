"""MySQL COLUMN_TYPE → Waterline attribute type."""
from __future__ import annotations
import re

from dbm_agent.model import SchemaVersion, TargetType, TypeKind

BOOLEAN_TYPES = {"tinyint(1)", "boolean", "bit(1)"}

INTEGER_RE = re.compile(r"^(smallint|mediumint|tinyint|bigint|int)")
FLOAT_RE = re.compile(r"^(float|decimal)")
STRING_RE = re.compile(r"^(string|varchar|varying|nvarchar|char)")
ENUM_RE = re.compile(r"^enum\s*\((.*)\)", re.IGNORECASE | re.DOTALL)

# 스키마 버전별 타입 이름. 1.x 에서는 정수/실수가 number 로, 텍스트가 string 으로 합쳐진다.
TYPE_NAMES: dict[SchemaVersion, dict[str, str]] = {
    SchemaVersion.LEGACY: {
        "integer": "integer",
        "float": "float",
        "longtext": "longtext",
        "mediumtext": "mediumtext",
        "text": "text",
        "datetime": "datetime",
    },
    SchemaVersion.VERSIONED: {
        "integer": "number",
        "float": "number",
        "longtext": "string",
        "mediumtext": "string",
        "text": "string",
        # 1.x 는 datetime 을 ref 로 선언한다
        "datetime": "ref",
    },
}

UNSUPPORTED = TargetType(TypeKind.UNSUPPORTED, "<unsupported type>")
UNKNOWN = TargetType(TypeKind.UNKNOWN, "<unknown type>")


def parse_enum_choices(sql_type: str) -> tuple[str, ...] | None:
    """enum('a','b') → ('a', 'b'). 괄호가 없으면 None."""
    m = ENUM_RE.match(sql_type.strip())
    if not m:
        return None
    choices: list[str] = []
    for raw in m.group(1).split(","):
        value = raw.strip().strip("'\"")
        if value and value not in choices:
            choices.append(value)
    return tuple(choices)


def map_type(sql_type: str, target_version: int | SchemaVersion = 0) -> TargetType:
    version = SchemaVersion.from_target(int(target_version))
    names = TYPE_NAMES[version]
    t = (sql_type or "").strip().lower()

    if t in BOOLEAN_TYPES:
        return TargetType(TypeKind.BOOLEAN, "boolean")
    if INTEGER_RE.match(t):
        return TargetType(TypeKind.INTEGER, names["integer"])
    if FLOAT_RE.match(t):
        return TargetType(TypeKind.FLOAT, names["float"])
    if STRING_RE.match(t):
        return TargetType(TypeKind.STRING, "string")

    if t.startswith("longtext"):
        return TargetType(TypeKind.TEXT, names["longtext"])
    if t.startswith("mediumtext"):
        return TargetType(TypeKind.TEXT, names["mediumtext"])
    if t.endswith("text"):
        return TargetType(TypeKind.TEXT, names["text"])

    if t == "datetime":
        if version is SchemaVersion.VERSIONED:
            return TargetType(TypeKind.REFERENCE, names["datetime"])
        return TargetType(TypeKind.DATETIME, names["datetime"])
    if t.startswith("date"):
        return TargetType(TypeKind.DATE, "date")
    if t.startswith("time"):
        return UNSUPPORTED

    if t.startswith("json"):
        return TargetType(TypeKind.JSON, "json")

    if t.startswith("enum"):
        choices = parse_enum_choices(t)
        if choices is None:
            return UNKNOWN
        return TargetType(TypeKind.ENUM, "string", choices)

    return UNKNOWN
