"""
Response Extractor
==================

AI応答（自由形式テキスト）からJSON候補文字列を取り出す

前処理（コードブロック展開・前置き除去）の後、候補抽出戦略を順に試す。
各戦略は例外を送出せず、候補文字列または None を返す。
すべて失敗した場合は元のテキストをそのまま返す。
"""

import re
from typing import Callable, Optional


Strategy = Callable[[str], Optional[str]]


_FENCE_PATTERN = re.compile(r"```[ \t]*(?:[A-Za-z0-9_+-]+)?[ \t]*\r?\n?(.*?)```", re.DOTALL)

# 既知の前置き文（英語・中国語・日本語）
_PREAMBLE_PATTERNS = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"^(?:here\s+is|here's|below\s+is)\s+(?:the\s+)?(?:json|result|response|output|answer)"
        r"(?:\s+(?:result|response|output|object|format))?\s*[:：]\s*",
        r"^(?:the\s+)?json(?:\s+(?:result|response|output))?\s*[:：]\s*",
        r"^以下是(?:检查|核对|修改|处理)?(?:后的)?(?:json|JSON)?(?:格式)?(?:的)?(?:结果|内容|数据)?\s*[:：]\s*",
        r"^(?:检查|核对)?结果(?:如下)?\s*[:：]\s*",
        r"^以下(?:が|は)?(?:JSON|json)(?:形式)?(?:の)?(?:結果|回答)?(?:です)?\s*[:：]\s*",
    )
)


# ==============================================
# Preprocessing
# ==============================================

def unwrap_code_fence(text: str) -> Optional[str]:
    """フェンス付きコードブロックの中身を返す（全体が "{...}" なら対象外）"""
    if text.startswith("{") and text.endswith("}"):
        return None
    match = _FENCE_PATTERN.search(text)
    if not match:
        return None
    return match.group(1).strip()


def strip_preamble(text: str) -> Optional[str]:
    """既知の前置き文を先頭から除去する"""
    for pattern in _PREAMBLE_PATTERNS:
        stripped, count = pattern.subn("", text, count=1)
        if count:
            return stripped.strip()
    return None


PREPROCESSORS: tuple[Strategy, ...] = (
    unwrap_code_fence,
    strip_preamble,
)


# ==============================================
# Candidate Strategies
# ==============================================

def bare_object(text: str) -> Optional[str]:
    """先頭が "{" ならそのまま候補とする"""
    if text.startswith("{"):
        return text
    return None


def brace_span(text: str) -> Optional[str]:
    """最初の "{" から最後の "}" までを切り出す"""
    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end != -1 and start < end:
        return text[start:end + 1]
    return None


CANDIDATE_STRATEGIES: tuple[Strategy, ...] = (
    bare_object,
    brace_span,
)


def extract_json_candidate(raw_text: str) -> str:
    """
    AI応答からJSON候補を抽出

    Args:
        raw_text: AI応答テキスト

    Returns:
        JSON候補文字列（抽出できない場合は raw_text そのもの）
    """
    if not isinstance(raw_text, str):
        return raw_text

    working = raw_text.strip()
    for preprocess in PREPROCESSORS:
        processed = preprocess(working)
        if processed is not None:
            working = processed

    for strategy in CANDIDATE_STRATEGIES:
        candidate = strategy(working)
        if candidate is not None:
            return candidate

    return raw_text
