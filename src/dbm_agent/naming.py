from __future__ import annotations
import re

# lodash words() 와 같은 단어 분리: userID → user, ID / XMLHttp → XML, Http / col2 → col, 2
WORD_RE = re.compile(r"[A-Z]+(?=[A-Z][a-z])|[A-Z]?[a-z]+|[A-Z]+|\d+")


def split_words(name: str) -> list[str]:
    return WORD_RE.findall(name or "")


def camel_case(name: str) -> str:
    """컬럼명 → 속성 키. created_at → createdAt, USER_ID → userId"""
    words = [w.lower() for w in split_words(name)]
    if not words:
        return ""
    return words[0] + "".join(w[:1].upper() + w[1:] for w in words[1:])


def model_name_from_table(table: str) -> str:
    """모델명 생략 시 테이블명에서 유도. user_login_log → UserLoginLog"""
    return "".join(part[:1].upper() + part[1:].lower() for part in table.split("_") if part)


def model_filename(name: str) -> str:
    # 확장자가 없으면 .js
    return name if re.search(r"\.[^.]+$", name) else f"{name}.js"
