"""ModelDescriptor → JS 모듈 (api/generates/*.js) 및 모델 파일 템플릿 렌더링."""
from __future__ import annotations
import re
from pathlib import Path
from typing import Any, Mapping, Optional

from jinja2 import Environment, FileSystemLoader, TemplateError

from dbm_agent.errors import ArtifactWriteError
from dbm_agent.model import LifecycleHook, ModelDescriptor

IDENT_RE = re.compile(r"^[A-Za-z_$][\w$]*$")
FUNCTION_NAME_RE = re.compile(r"function \w+\s*\(")
# {\n    comment: '...',  →  { // ...
COMMENT_RE = re.compile(r"(\{)\n\s*comment:\s*'(.*)',?", re.IGNORECASE)

TEMPLATE_NAME = "model.template.js"
BUILTIN_TEMPLATES = Path(__file__).resolve().parent / "templates"


def js_string(s: str) -> str:
    body = s.replace("\\", "\\\\").replace("\n", "\\n").replace("\r", "\\r")
    if "'" in s and '"' not in s:
        return f'"{body}"'
    return "'" + body.replace("'", "\\'") + "'"


def js_literal(v: Any) -> str:
    if v is True:
        return "true"
    if v is False:
        return "false"
    if v is None:
        return "null"
    if isinstance(v, (int, float)):
        return repr(v)
    if isinstance(v, (list, tuple)):
        return "[ " + ", ".join(js_literal(x) for x in v) + " ]" if v else "[]"
    return js_string(str(v))


def js_key(key: str) -> str:
    return key if IDENT_RE.match(key) else js_string(key)


def inspect(obj: Mapping[str, Any], space: str = "") -> str:
    rs = ["{"]
    for key, v in obj.items():
        if isinstance(v, Mapping):
            rs.append(f"  {space}{js_key(key)}: {inspect(v, space + '  ')},")
        elif isinstance(v, LifecycleHook):
            source = FUNCTION_NAME_RE.sub("function (", v.source, count=1).replace("\n", "\n" + space + "  ")
            rs.append(f"  {space}{js_key(key)}: {source},")
        else:
            rs.append(f"  {space}{js_key(key)}: {js_literal(v)},")
    joined = "\n".join(rs)
    if joined.endswith(","):
        joined = joined[:-1]
    return joined + "\n" + space + "}"


def to_js_module(descriptor: ModelDescriptor) -> str:
    parts = ["/* eslint semi: off */"]
    if descriptor.table_comment:
        parts.append(f"/**\n * {descriptor.table_comment}\n */")
    parts.append(f"module.exports = {inspect(descriptor.to_dict())};")
    parts.append("")
    return COMMENT_RE.sub(r"\1 // \2", "\n".join(parts))


def write_artifact(text: str, out_path: Path) -> Path:
    """대상 디렉터리가 없을 때만 만들고 다시 쓴다. 그 외 쓰기 오류는 ArtifactWriteError."""
    try:
        out_path.write_text(text, encoding="utf-8")
    except FileNotFoundError:
        try:
            out_path.parent.mkdir(parents=True, exist_ok=True)
            out_path.write_text(text, encoding="utf-8")
        except OSError as exc:
            raise ArtifactWriteError(f"generate file error => {out_path}: {exc}") from exc
    except OSError as exc:
        raise ArtifactWriteError(f"generate file error => {out_path}: {exc}") from exc
    return out_path


def write_generated(descriptor: ModelDescriptor, out_path: Path) -> Path:
    return write_artifact(to_js_module(descriptor), out_path)


def template_env(templates_dir: Optional[Path], root: Path) -> Environment:
    """--templates 디렉터리 > <root>/templates > 내장 템플릿 순으로 찾는다."""
    search = [d for d in (templates_dir, root / "templates", BUILTIN_TEMPLATES) if d is not None]
    return Environment(loader=FileSystemLoader(search), keep_trailing_newline=True)


def render_model(env: Environment, context: Mapping[str, Any]) -> str:
    try:
        return env.get_template(TEMPLATE_NAME).render(**context)
    except TemplateError as exc:
        raise ArtifactWriteError(f"template error => {TEMPLATE_NAME}: {exc}") from exc


def write_model(templates_dir: Optional[Path], root: Path, context: Mapping[str, Any], out_path: Path) -> Path:
    return write_artifact(render_model(template_env(templates_dir, root), context), out_path)
