from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Callable, Dict, List, Mapping, Optional, Union


class SchemaVersion(IntEnum):
    LEGACY = 0      # sails < 1.0
    VERSIONED = 1   # sails 1.x

    @classmethod
    def from_target(cls, target_version: int) -> "SchemaVersion":
        return cls.VERSIONED if target_version > 0 else cls.LEGACY


class TypeKind(str, Enum):
    BOOLEAN = "boolean"
    INTEGER = "integer"
    FLOAT = "float"
    STRING = "string"
    TEXT = "text"
    DATE = "date"
    DATETIME = "datetime"
    REFERENCE = "ref"
    JSON = "json"
    ENUM = "enum"
    UNSUPPORTED = "unsupported"
    UNKNOWN = "unknown"


class TimestampRole(str, Enum):
    NONE = "none"
    CREATED_AT = "createdAt"
    UPDATED_AT = "updatedAt"


@dataclass(frozen=True)
class TargetType:
    kind: TypeKind
    name: str
    choices: tuple[str, ...] = ()

    @property
    def is_numeric(self) -> bool:
        return self.kind in (TypeKind.INTEGER, TypeKind.FLOAT)

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class ColumnMetadata:
    name: str
    column_type: str
    nullable: bool = True
    default: Optional[str] = None
    key: str = ""
    extra: str = ""
    data_type: str = ""
    comment: str = ""
    table_comment: str = ""

    @property
    def is_primary(self) -> bool:
        return self.key == "PRI"

    @property
    def is_auto_increment(self) -> bool:
        return "auto_increment" in (self.extra or "").lower()

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "ColumnMetadata":
        """information_schema.COLUMNS (+ TABLES.TABLE_COMMENT) 한 행을 변환."""
        default = row.get("COLUMN_DEFAULT")
        return cls(
            name=row["COLUMN_NAME"],
            column_type=row.get("COLUMN_TYPE") or "",
            nullable=row.get("IS_NULLABLE") == "YES",
            default=None if default is None else str(default),
            key=row.get("COLUMN_KEY") or "",
            extra=row.get("EXTRA") or "",
            data_type=(row.get("DATA_TYPE") or "").lower(),
            comment=row.get("COLUMN_COMMENT") or "",
            table_comment=row.get("TABLE_COMMENT") or "",
        )


@dataclass(frozen=True)
class LifecycleHook:
    name: str
    source: str     # 생성 파일에 그대로 렌더링되는 JS 소스
    fn: Callable[..., None] = field(compare=False, repr=False)

    def __call__(self, record: Dict[str, Any], proceed: Optional[Callable[[], None]] = None) -> None:
        self.fn(record, proceed)


@dataclass
class AttributeDescriptor:
    type: str
    comment: Optional[str] = None
    column_name: Optional[str] = None
    enum: Optional[List[str]] = None
    column_type: Optional[str] = None
    defaults_to: Any = None
    auto_created_at: bool = False
    auto_updated_at: bool = False
    auto_increment: bool = False
    required: bool = False
    unique: bool = False
    primary_key: bool = False
    allow_null: bool = False
    timestamp_role: TimestampRole = TimestampRole.NONE

    def to_dict(self) -> Dict[str, Any]:
        # comment 는 writer 의 주석 치환을 위해 항상 첫 번째 키
        out: Dict[str, Any] = {}
        if self.comment:
            out["comment"] = self.comment
        if self.column_name is not None:
            out["columnName"] = self.column_name
        out["type"] = self.type
        if self.enum is not None:
            out["enum"] = list(self.enum)
        if self.column_type is not None:
            out["columnType"] = self.column_type
        if self.defaults_to is not None:
            out["defaultsTo"] = self.defaults_to
        for key, flag in (
            ("autoCreatedAt", self.auto_created_at),
            ("autoUpdatedAt", self.auto_updated_at),
            ("autoIncrement", self.auto_increment),
            ("required", self.required),
            ("unique", self.unique),
            ("primaryKey", self.primary_key),
            ("allowNull", self.allow_null),
        ):
            if flag:
                out[key] = True
        return out


# createdAt: false / updatedAt: false (sails 1.x 의 자동 타임스탬프 끄기)
TIMESTAMPS_DISABLED = False

Attribute = Union[AttributeDescriptor, bool]


@dataclass(frozen=True)
class ModelDescriptor:
    table_name: str
    attributes: Dict[str, Attribute] = field(default_factory=dict)
    primary_key: Optional[str] = None
    before_create: Optional[LifecycleHook] = None
    before_update: Optional[LifecycleHook] = None
    table_comment: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "tableName": self.table_name,
            "attributes": {
                k: (v.to_dict() if isinstance(v, AttributeDescriptor) else v)
                for k, v in self.attributes.items()
            },
        }
        if self.primary_key:
            out["primaryKey"] = self.primary_key
        if self.before_create is not None:
            out["beforeCreate"] = self.before_create
        if self.before_update is not None:
            out["beforeUpdate"] = self.before_update
        return out
