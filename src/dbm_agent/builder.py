"""카탈로그 컬럼 목록 → ModelDescriptor."""
from __future__ import annotations
import re
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from dbm_agent.errors import EmptyCatalogError
from dbm_agent.model import (
    Attribute,
    AttributeDescriptor,
    ColumnMetadata,
    LifecycleHook,
    ModelDescriptor,
    SchemaVersion,
    TargetType,
    TimestampRole,
    TypeKind,
    TIMESTAMPS_DISABLED,
)
from dbm_agent.naming import camel_case
from dbm_agent.type_mapper import map_type

TIMESTAMP_KEYS = {"createdAt": TimestampRole.CREATED_AT, "updatedAt": TimestampRole.UPDATED_AT}

BOOL_DEFAULT_RE = re.compile(r"b?['\"]?([01])['\"]?")


def unix_now() -> int:
    return int(time.time())


def _before_create(record: Dict[str, Any], proceed: Optional[Callable[[], None]] = None) -> None:
    if not record.get("createdAt"):
        record["createdAt"] = record["updatedAt"] = unix_now()
    if proceed is not None:
        proceed()


def _before_update(record: Dict[str, Any], proceed: Optional[Callable[[], None]] = None) -> None:
    if not record.get("updatedAt"):
        record["updatedAt"] = unix_now()
    if proceed is not None:
        proceed()


BEFORE_CREATE = LifecycleHook(
    name="beforeCreate",
    source=(
        "function (recordToCreate, proceed) {\n"
        "  if (!recordToCreate.createdAt) {\n"
        "    recordToCreate.createdAt = recordToCreate.updatedAt = parseInt(Date.now() / 1000);\n"
        "  }\n"
        "  proceed();\n"
        "}"
    ),
    fn=_before_create,
)

BEFORE_UPDATE = LifecycleHook(
    name="beforeUpdate",
    source=(
        "function (valuesToSet, proceed) {\n"
        "  if (!valuesToSet.updatedAt) {\n"
        "    valuesToSet.updatedAt = parseInt(Date.now() / 1000);\n"
        "  }\n"
        "  proceed();\n"
        "}"
    ),
    fn=_before_update,
)


def _to_number(raw: str) -> Any:
    try:
        return int(raw)
    except ValueError:
        pass
    try:
        value = float(raw)
    except ValueError:
        return raw
    return int(value) if value.is_integer() else value


def coerce_default(raw: Optional[str], target: TargetType) -> Any:
    """COLUMN_DEFAULT 문자열을 속성 타입에 맞게 변환. 빈 문자열은 기본값 없음."""
    if raw is None or raw == "":
        return None
    if target.kind is TypeKind.BOOLEAN:
        m = BOOL_DEFAULT_RE.search(raw)
        return m.group(1) == "1" if m else raw
    if target.is_numeric:
        return _to_number(raw)
    return raw


@dataclass
class _BuildState:
    auto_created_at: Optional[bool]
    auto_updated_at: Optional[bool]
    primary_keys: List[str] = field(default_factory=list)
    before_create: Optional[LifecycleHook] = None
    before_update: Optional[LifecycleHook] = None


class _LegacyPolicy:
    """sails 0.x: primaryKey 는 속성에, int 타임스탬프는 lifecycle hook 으로."""

    def column_type(self, column: ColumnMetadata) -> Optional[str]:
        return None

    def integer_timestamp(self, attr: AttributeDescriptor, key: str, column: ColumnMetadata, state: _BuildState) -> None:
        if column.data_type == "int":
            if state.auto_created_at is not False:
                state.before_create = BEFORE_CREATE
            if state.auto_updated_at is not False:
                state.before_update = BEFORE_UPDATE
        else:
            attr.defaults_to = None

    def primary_key(self, attr: AttributeDescriptor, key: str, state: _BuildState) -> None:
        attr.primary_key = True

    def nullability(self, attr: AttributeDescriptor, column: ColumnMetadata, target: TargetType) -> None:
        pass

    def finalize(self, attributes: Dict[str, Attribute]) -> None:
        pass


class _VersionedPolicy:
    """sails 1.x: autoCreatedAt/autoUpdatedAt 플래그, 모델 레벨 primaryKey, allowNull."""

    def column_type(self, column: ColumnMetadata) -> Optional[str]:
        return column.column_type

    def integer_timestamp(self, attr: AttributeDescriptor, key: str, column: ColumnMetadata, state: _BuildState) -> None:
        if key == "createdAt" and state.auto_created_at is not False:
            attr.auto_created_at = True
        if key == "updatedAt" and state.auto_updated_at is not False:
            attr.auto_updated_at = True
        attr.defaults_to = None

    def primary_key(self, attr: AttributeDescriptor, key: str, state: _BuildState) -> None:
        if not attr.auto_increment:
            attr.required = True
        attr.unique = True
        state.primary_keys.append(key)

    def nullability(self, attr: AttributeDescriptor, column: ColumnMetadata, target: TargetType) -> None:
        if column.nullable and target.kind is not TypeKind.REFERENCE:
            attr.allow_null = True

    def finalize(self, attributes: Dict[str, Attribute]) -> None:
        for key in TIMESTAMP_KEYS:
            if key not in attributes:
                attributes[key] = TIMESTAMPS_DISABLED


POLICIES = {
    SchemaVersion.LEGACY: _LegacyPolicy(),
    SchemaVersion.VERSIONED: _VersionedPolicy(),
}


def _describe(column: ColumnMetadata, key: str, target: TargetType, policy, state: _BuildState) -> AttributeDescriptor:
    attr = AttributeDescriptor(type=target.name.lower())
    if column.comment:
        attr.comment = column.comment
    if key != column.name:
        attr.column_name = column.name
    if target.kind is TypeKind.ENUM:
        attr.enum = list(target.choices)
    attr.column_type = policy.column_type(column)
    attr.defaults_to = coerce_default(column.default, target)
    attr.timestamp_role = TIMESTAMP_KEYS.get(key, TimestampRole.NONE)

    if attr.timestamp_role is not TimestampRole.NONE:
        if target.kind in (TypeKind.DATETIME, TypeKind.REFERENCE) and attr.defaults_to == "CURRENT_TIMESTAMP":
            # DB 가 직접 채우는 컬럼
            attr.defaults_to = None
        elif target.kind is TypeKind.INTEGER and attr.defaults_to == 0:
            policy.integer_timestamp(attr, key, column, state)

    if column.is_auto_increment:
        attr.auto_increment = True
    if column.is_primary:
        policy.primary_key(attr, key, state)
    policy.nullability(attr, column, target)
    return attr


def build(
    table_name: str,
    columns: Sequence[ColumnMetadata],
    target_version: int | SchemaVersion = 0,
    auto_created_at: Optional[bool] = None,
    auto_updated_at: Optional[bool] = None,
) -> ModelDescriptor:
    """
    auto_created_at / auto_updated_at 은 None(지정 안 함), True, False.
    False 일 때만 해당 자동 타임스탬프를 끈다.
    """
    if not columns:
        raise EmptyCatalogError(None, table_name)

    version = SchemaVersion.from_target(int(target_version))
    policy = POLICIES[version]
    state = _BuildState(auto_created_at=auto_created_at, auto_updated_at=auto_updated_at)

    attributes: Dict[str, Attribute] = {}
    for column in columns:
        key = camel_case(column.name)
        target = map_type(column.column_type, version)
        attributes[key] = _describe(column, key, target, policy, state)

    policy.finalize(attributes)

    # 복합 PK 는 표현할 수 없으므로 선언하지 않는다
    primary_key = state.primary_keys[0] if len(state.primary_keys) == 1 else None

    return ModelDescriptor(
        table_name=table_name,
        attributes=attributes,
        primary_key=primary_key,
        before_create=state.before_create,
        before_update=state.before_update,
        table_comment=columns[0].table_comment or None,
    )
