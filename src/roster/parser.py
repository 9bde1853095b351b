"""
Roster Parser
=============

名簿データの正規化

- normalize_roster: HTTP取得データ（配列 / {data: [...]} / 単一オブジェクト）を正規化
- parse_local_roster: ローカル名簿テキスト（1行1名 "氏名 - 職務"）を解析
"""

import re
from typing import Any

from src.review.models import RosterEntry


NAME_KEYS = ("name", "姓名", "fullName", "full_name")
POSITION_KEYS = ("position", "role", "职务", "title")

_SEPARATOR = re.compile(r"\s*[-—－]\s*|\s+")


def _first_value(record: dict[str, Any], keys: tuple[str, ...]) -> str:
    for key in keys:
        value = record.get(key)
        if value:
            return str(value).strip()
    return ""


def normalize_roster(raw_data: Any) -> list[RosterEntry]:
    """
    名簿データを正規化

    Args:
        raw_data: JSONデコード済みの取得データ

    Returns:
        氏名が空のレコードを除いた RosterEntry リスト
    """
    if isinstance(raw_data, list):
        records = raw_data
    elif isinstance(raw_data, dict):
        data = raw_data.get("data")
        records = data if isinstance(data, list) else [raw_data]
    else:
        records = []

    entries = []
    for record in records:
        if not isinstance(record, dict):
            continue
        name = _first_value(record, NAME_KEYS)
        if not name:
            continue
        entries.append(RosterEntry(name=name, position=_first_value(record, POSITION_KEYS)))
    return entries


def parse_local_roster(text: str) -> list[RosterEntry]:
    """ローカル名簿テキストを解析（最後の区切りで氏名と職務に分割）"""
    if not text:
        return []

    entries = []
    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue

        separators = list(_SEPARATOR.finditer(line))
        if not separators:
            name, position = line, ""
        else:
            last = separators[-1]
            name, position = line[:last.start()], line[last.end():]

        name = re.sub(r"\s", "", name)
        position = re.sub(r"\s", "", position)
        if name:
            entries.append(RosterEntry(name=name, position=position))
    return entries
